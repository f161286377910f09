"""Tests for configuration loading, env overrides and persistence."""

import json

from storefront import config as config_module
from storefront.config import (
    CustomProviderConfig,
    DefaultsConfig,
    MemoryPolicy,
    OracleConfig,
    StorefrontConfig,
    configure,
    get_api_key_for_provider,
    get_config,
    reset_config,
)


class TestDefaults:
    def test_default_values(self):
        config = StorefrontConfig()
        assert config.oracle.model == "openai/gpt-5-mini"
        assert config.oracle.max_retries == 2
        assert config.simulation.batch_size == 3
        assert config.simulation.seed is None
        assert config.policy.history_size == 10
        assert config.policy.trust_deltas["betrayed"] == -40
        assert config.defaults.catalog_path == ""

    def test_policy_instances_do_not_share_deltas(self):
        a, b = MemoryPolicy(), MemoryPolicy()
        a.trust_deltas["angry"] = -99
        assert b.trust_deltas["angry"] == -25


class TestEnvOverrides:
    def test_env_values_applied(self, monkeypatch):
        monkeypatch.setenv("ORACLE_MODEL", "gemini/gemini-2.5-flash")
        monkeypatch.setenv("ORACLE_TIMEOUT", "12.5")
        monkeypatch.setenv("SIMULATION_BATCH_SIZE", "5")
        monkeypatch.setenv("SIMULATION_SEED", "42")
        monkeypatch.setenv("CATALOG_PATH", "/tmp/personas.yaml")

        config = StorefrontConfig.load()
        assert config.oracle.model == "gemini/gemini-2.5-flash"
        assert config.oracle.timeout_seconds == 12.5
        assert config.simulation.batch_size == 5
        assert config.simulation.seed == 42
        assert config.defaults.catalog_path == "/tmp/personas.yaml"

    def test_invalid_env_value_ignored(self, monkeypatch):
        monkeypatch.setenv("SIMULATION_BATCH_SIZE", "many")
        monkeypatch.setenv("ORACLE_MAX_RETRIES", "x")
        config = StorefrontConfig.load()
        assert config.simulation.batch_size == 3
        assert config.oracle.max_retries == 2

    def test_ai_provider_picks_default_model(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "claude")
        assert StorefrontConfig.load().oracle.model == "anthropic/claude-haiku-4-5-20251001"

    def test_oracle_model_beats_ai_provider(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "gemini")
        monkeypatch.setenv("ORACLE_MODEL", "openai/gpt-5")
        assert StorefrontConfig.load().oracle.model == "openai/gpt-5"

    def test_unknown_ai_provider_ignored(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "mystery")
        assert StorefrontConfig.load().oracle.model == "openai/gpt-5-mini"


class TestConfigFile:
    def test_save_and_load(self, isolated_config, monkeypatch):
        monkeypatch.delenv("DB_PATH", raising=False)
        config = StorefrontConfig(oracle=OracleConfig(model="deepseek/deepseek-chat"))
        config.simulation.batch_size = 4
        config.providers["local"] = CustomProviderConfig(base_url="http://localhost:8000/v1")
        config.save()

        data = json.loads(isolated_config.read_text())
        assert data["oracle"]["model"] == "deepseek/deepseek-chat"
        assert "policy" not in data
        assert "defaults" not in data

        loaded = StorefrontConfig.load()
        assert loaded.oracle.model == "deepseek/deepseek-chat"
        assert loaded.simulation.batch_size == 4
        assert loaded.providers["local"].base_url == "http://localhost:8000/v1"
        assert loaded.defaults == DefaultsConfig()

    def test_env_beats_file(self, isolated_config, monkeypatch):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text(json.dumps({"simulation": {"batch_size": 8}}))
        monkeypatch.setenv("SIMULATION_BATCH_SIZE", "2")
        assert StorefrontConfig.load().simulation.batch_size == 2

    def test_trust_deltas_merge(self, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text(
            json.dumps({"policy": {"gone_after": "4", "trust_deltas": {"angry": -30}}})
        )
        policy = StorefrontConfig.load().policy
        assert policy.gone_after == 4
        assert policy.trust_deltas["angry"] == -30
        assert policy.trust_deltas["delighted"] == 10

    def test_corrupt_file_falls_back_to_defaults(self, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("{not json")
        assert StorefrontConfig.load().oracle.model == "openai/gpt-5-mini"


class TestApiKeys:
    def test_convention(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "ds-key")
        assert get_api_key_for_provider("deepseek") == "ds-key"

    def test_custom_env_var(self, monkeypatch):
        monkeypatch.setenv("MY_LOCAL_KEY", "local-key")
        custom = {"local": CustomProviderConfig(base_url="x", api_key_env="MY_LOCAL_KEY")}
        assert get_api_key_for_provider("local", custom) == "local-key"

    def test_missing_key_is_empty(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        assert get_api_key_for_provider("groq") == ""


class TestGlobalConfig:
    def test_configure_and_reset(self):
        custom = StorefrontConfig(oracle=OracleConfig(model="groq/llama-3.3-70b-versatile"))
        configure(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom
        assert get_config() is get_config()

    def test_config_file_location_is_patched(self, isolated_config):
        assert config_module.CONFIG_FILE == isolated_config
