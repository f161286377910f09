"""Shared fixtures: isolated config, sample personas, temporary databases."""

import pytest

from storefront import config as config_module
from storefront.cli.commands import config_cmd
from storefront.config import reset_config
from storefront.core.models import Persona
from storefront.core.providers import reset_provider_cache


_ENV_VARS = (
    "AI_PROVIDER",
    "ORACLE_MODEL",
    "ORACLE_TIMEOUT",
    "ORACLE_MAX_RETRIES",
    "SIMULATION_BATCH_SIZE",
    "SIMULATION_MAX_CONCURRENT",
    "SIMULATION_SEED",
    "DB_PATH",
    "CATALOG_PATH",
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temp dir and clear storefront env vars."""
    config_dir = tmp_path / "config"
    config_file = config_dir / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_cmd, "CONFIG_FILE", config_file)
    monkeypatch.setattr(config_module, "_dotenv_loaded", True)
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DB_PATH", str(tmp_path / "storage" / "storefront.db"))

    reset_config()
    reset_provider_cache()
    yield config_file
    reset_config()
    reset_provider_cache()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "memory.db"


@pytest.fixture
def make_persona():
    """Factory for personas with neutral traits; override any field."""

    def _make(persona_id: int = 1, **overrides) -> Persona:
        fields = {
            "id": persona_id,
            "name": f"Persona {persona_id}",
            "archetype": "Student",
            "base_price_sensitivity": 0.5,
            "brand_loyalty": 0.5,
            "social_influence_weight": 0.5,
            "quality_threshold": 0.5,
            "risk_tolerance": 0.5,
            "mood_variance": 0.5,
            "weekday_preference": 0.5,
            "budget_range": (10.0, 20.0),
            "preferred_times": ("morning",),
        }
        fields.update(overrides)
        return Persona.model_validate(fields)

    return _make
