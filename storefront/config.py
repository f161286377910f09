"""Configuration management for Storefront.

Config sections:
- oracle: decision oracle model string and call tuning
- simulation: batch size, concurrency, seed
- policy: memory and market-dynamics thresholds
- defaults: database and catalog locations

Model strings use "provider/model" format (e.g., "openai/gpt-5-mini").

Config resolution order (highest priority first):
1. Programmatic (StorefrontConfig constructed in code)
2. Environment variables (ORACLE_MODEL, SIMULATION_BATCH_SIZE, etc.)
3. Config file (~/.config/storefront/config.json, managed by `storefront config`)
4. Hardcoded defaults

API keys are ALWAYS from env vars, never stored in config file.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "storefront"
CONFIG_FILE = CONFIG_DIR / "config.json"


# =============================================================================
# Model string parsing
# =============================================================================


def parse_model_string(model_string: str) -> tuple[str, str]:
    """Parse a "provider/model" string into (provider, model) tuple.

    Examples:
        "openai/gpt-5-mini" → ("openai", "gpt-5-mini")
        "gemini/gemini-2.5-flash" → ("gemini", "gemini-2.5-flash")
        "openrouter/anthropic/claude-sonnet-4.5" → ("openrouter", "anthropic/claude-sonnet-4.5")

    Raises:
        ValueError: If the string doesn't contain a '/' separator.
    """
    if "/" not in model_string:
        raise ValueError(
            f"Invalid model string: {model_string!r}. "
            f"Expected format: 'provider/model' (e.g., 'openai/gpt-5-mini')"
        )
    provider, _, model = model_string.partition("/")
    if not provider or not model:
        raise ValueError(
            f"Invalid model string: {model_string!r}. "
            f"Both provider and model must be non-empty."
        )
    return provider, model


# Default oracle model per bare provider name (AI_PROVIDER env var)
PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-5-mini",
    "gemini": "gemini-2.5-flash",
    "anthropic": "claude-haiku-4-5-20251001",
    "claude": "claude-haiku-4-5-20251001",
    "deepseek": "deepseek-chat",
    "groq": "llama-3.3-70b-versatile",
}

_PROVIDER_CANONICAL = {
    "claude": "anthropic",
}


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class OracleConfig:
    """Decision oracle configuration.

    - model: "provider/model" string routed through the provider registry
    - timeout_seconds: per-call deadline enforced by the orchestrator
    - max_retries: attempts per persona before the call counts as failed
    """

    model: str = "openai/gpt-5-mini"
    timeout_seconds: float = 30.0
    max_retries: int = 2
    max_tokens: int = 400


@dataclass
class SimulationConfig:
    """Turn orchestration tuning."""

    batch_size: int = 3
    max_concurrent: int = 12
    seed: int | None = None


@dataclass
class MemoryPolicy:
    """Thresholds and deltas for the persona memory state machine.

    Defaults reproduce the calibrated market dynamics; override for experiments.
    """

    history_size: int = 10
    recent_visits: int = 3
    last_chance_after: int = 2
    gone_after: int = 3
    routine_after: int = 5
    peak_quality: int = 8
    fair_band: float = 0.05
    outrageous_threshold: float = 0.20
    cheap_threshold: float = 0.10
    loss_aversion: float = 2.0
    recovery_divisor: int = 3
    habit_break_frustration: int = 20
    seed_trust_min: int = 40
    seed_trust_max: int = 99
    trust_deltas: dict[str, int] = field(
        default_factory=lambda: {
            "satisfied": 5,
            "delighted": 10,
            "loyal": 15,
            "neutral": 0,
            "frustrated": -15,
            "angry": -25,
            "betrayed": -40,
        }
    )


@dataclass
class CustomProviderConfig:
    """Configuration for a custom OpenAI-compatible provider endpoint."""

    base_url: str = ""
    api_key_env: str = ""


@dataclass
class DefaultsConfig:
    """Storage and catalog locations."""

    db_path: str = "./storage/storefront.db"
    catalog_path: str = ""  # empty = built-in catalog


# =============================================================================
# Main config class
# =============================================================================


@dataclass
class StorefrontConfig:
    """Top-level storefront configuration.

    Construct programmatically for package use, or load from config file for CLI use.

    Examples:
        # Package use, no files needed
        config = StorefrontConfig(
            oracle=OracleConfig(model="anthropic/claude-haiku-4-5-20251001"),
        )

        # CLI use, loads from ~/.config/storefront/config.json
        config = StorefrontConfig.load()
    """

    oracle: OracleConfig = field(default_factory=OracleConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    policy: MemoryPolicy = field(default_factory=MemoryPolicy)
    providers: dict[str, CustomProviderConfig] = field(default_factory=dict)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls) -> "StorefrontConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: Load from config file if it exists
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError, ValueError, TypeError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: Env var overrides
        _ensure_dotenv()
        if val := os.environ.get("AI_PROVIDER"):
            if not os.environ.get("ORACLE_MODEL"):
                canonical = _PROVIDER_CANONICAL.get(val, val)
                default_model = PROVIDER_DEFAULT_MODELS.get(val)
                if default_model:
                    config.oracle.model = f"{canonical}/{default_model}"
                else:
                    logger.warning("Unknown AI_PROVIDER=%r, ignoring", val)
        if val := os.environ.get("ORACLE_MODEL"):
            config.oracle.model = val
        if val := os.environ.get("ORACLE_TIMEOUT"):
            try:
                config.oracle.timeout_seconds = float(val)
            except ValueError:
                logger.warning("Invalid ORACLE_TIMEOUT=%r, ignoring", val)
        if val := os.environ.get("ORACLE_MAX_RETRIES"):
            try:
                config.oracle.max_retries = int(val)
            except ValueError:
                logger.warning("Invalid ORACLE_MAX_RETRIES=%r, ignoring", val)
        if val := os.environ.get("SIMULATION_BATCH_SIZE"):
            try:
                config.simulation.batch_size = int(val)
            except ValueError:
                logger.warning("Invalid SIMULATION_BATCH_SIZE=%r, ignoring", val)
        if val := os.environ.get("SIMULATION_MAX_CONCURRENT"):
            try:
                config.simulation.max_concurrent = int(val)
            except ValueError:
                logger.warning("Invalid SIMULATION_MAX_CONCURRENT=%r, ignoring", val)
        if val := os.environ.get("SIMULATION_SEED"):
            try:
                config.simulation.seed = int(val)
            except ValueError:
                logger.warning("Invalid SIMULATION_SEED=%r, ignoring", val)
        if val := os.environ.get("DB_PATH"):
            config.defaults.db_path = val
        if val := os.environ.get("CATALOG_PATH"):
            config.defaults.catalog_path = val

        return config

    def save(self) -> None:
        """Save config to ~/.config/storefront/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        data: dict[str, Any] = {
            "oracle": asdict(self.oracle),
            "simulation": asdict(self.simulation),
        }
        if self.policy != MemoryPolicy():
            data["policy"] = asdict(self.policy)
        if self.providers:
            data["providers"] = {
                name: asdict(cfg) for name, cfg in self.providers.items()
            }
        if self.defaults != DefaultsConfig():
            data["defaults"] = asdict(self.defaults)
        with open(CONFIG_FILE, "w") as f:
            json.dump(data, f, indent=2)

    @property
    def db_path_resolved(self) -> Path:
        """Resolve database path."""
        path = Path(self.defaults.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


# =============================================================================
# Config dict application
# =============================================================================

_INT_FIELDS = {
    "max_retries",
    "max_tokens",
    "batch_size",
    "max_concurrent",
    "history_size",
    "recent_visits",
    "last_chance_after",
    "gone_after",
    "routine_after",
    "peak_quality",
    "recovery_divisor",
    "habit_break_frustration",
    "seed_trust_min",
    "seed_trust_max",
}

_FLOAT_FIELDS = {
    "timeout_seconds",
    "fair_band",
    "outrageous_threshold",
    "cheap_threshold",
    "loss_aversion",
}


def _coerce(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in _INT_FIELDS:
        return int(value)
    if name in _FLOAT_FIELDS:
        return float(value)
    return value


def _apply_section(target: Any, values: dict) -> None:
    for k, v in values.items():
        if hasattr(target, k):
            if k == "trust_deltas" and isinstance(v, dict):
                merged = dict(target.trust_deltas)
                merged.update({str(e): int(d) for e, d in v.items()})
                v = merged
            setattr(target, k, _coerce(k, v))


def _apply_dict(config: StorefrontConfig, data: dict) -> None:
    """Apply a dict of values onto a StorefrontConfig."""
    if "oracle" in data and isinstance(data["oracle"], dict):
        _apply_section(config.oracle, data["oracle"])
    if "simulation" in data and isinstance(data["simulation"], dict):
        _apply_section(config.simulation, data["simulation"])
    if "policy" in data and isinstance(data["policy"], dict):
        _apply_section(config.policy, data["policy"])
    if "providers" in data and isinstance(data["providers"], dict):
        for name, provider_data in data["providers"].items():
            if isinstance(provider_data, dict):
                config.providers[name] = CustomProviderConfig(
                    base_url=provider_data.get("base_url", ""),
                    api_key_env=provider_data.get("api_key_env", ""),
                )
    if "defaults" in data and isinstance(data["defaults"], dict):
        _apply_section(config.defaults, data["defaults"])


# =============================================================================
# API key resolution
# =============================================================================

_dotenv_loaded = False


def _ensure_dotenv() -> None:
    """Load .env file into os.environ if not already loaded."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        _dotenv_loaded = True
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path=dotenv_path, override=False)


def get_api_key_for_provider(
    provider_name: str,
    custom_providers: dict[str, CustomProviderConfig] | None = None,
) -> str:
    """Get API key for a provider.

    Resolution order:
    1. Custom provider api_key_env override
    2. Convention: {PROVIDER_UPPER}_API_KEY

    Returns empty string if not found.
    """
    _ensure_dotenv()

    if custom_providers and provider_name in custom_providers:
        custom = custom_providers[provider_name]
        if custom.api_key_env:
            return os.environ.get(custom.api_key_env, "")

    return os.environ.get(f"{provider_name.upper()}_API_KEY", "")


# =============================================================================
# Global config singleton
# =============================================================================

_config: StorefrontConfig | None = None


def get_config() -> StorefrontConfig:
    """Get the global StorefrontConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = StorefrontConfig.load()
    return _config


def configure(config: StorefrontConfig) -> None:
    """Set the global StorefrontConfig programmatically.

    Use this when storefront is used as a package:
        from storefront.config import configure, StorefrontConfig, OracleConfig
        configure(StorefrontConfig(oracle=OracleConfig(model="gemini/gemini-2.5-flash")))
    """
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
