"""Core models and LLM plumbing for Storefront."""
