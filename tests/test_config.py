"""
Tests for configuration loading.

Covers:
  - JSON config file as fallback source
  - Environment variables overriding the file
  - Missing and malformed config files
  - Routing settings validation
  - ProviderAvailability derivation
"""

import json

import pytest

from second_opinion.config import (
    Config,
    ProviderAvailability,
    ProviderCredentials,
)


@pytest.fixture
def config_file(tmp_path):
    """Write a config.json and return its path."""
    def _write(data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data) if not isinstance(data, str) else data)
        return str(path)
    return _write


class TestConfigLoad:

    def test_empty_environment_and_no_file(self, tmp_path):
        config = Config.load(str(tmp_path / "missing.json"), environ={})
        assert config.openai is None
        assert config.gemini is None
        assert config.availability.any is False
        assert config.mode == "delegated"
        assert config.confidence_threshold == 0.65

    def test_file_credentials(self, config_file):
        path = config_file({
            "openai": {"apiKey": "sk-file", "baseUrl": "https://proxy.example/v1"},
            "gemini": {"api_key": "gm-file"},
        })
        config = Config.load(path, environ={})
        assert config.openai == ProviderCredentials("sk-file", "https://proxy.example/v1")
        assert config.gemini.api_key == "gm-file"
        assert config.availability == ProviderAvailability(True, True)

    def test_environment_overrides_file(self, config_file):
        path = config_file({"openai": {"apiKey": "sk-file"}})
        config = Config.load(path, environ={
            "OPENAI_API_KEY": "sk-env",
            "OPENAI_BASE_URL": "https://env.example/v1",
            "GEMINI_API_KEY": "gm-env",
        })
        assert config.openai.api_key == "sk-env"
        assert config.openai.base_url == "https://env.example/v1"
        assert config.gemini.api_key == "gm-env"

    def test_mcp_config_path_env(self, config_file):
        path = config_file({"gemini": {"apiKey": "gm-file"}})
        config = Config.load(environ={"MCP_CONFIG_PATH": path})
        assert config.availability.providers() == ["gemini"]

    def test_malformed_file_is_ignored(self, config_file, caplog):
        path = config_file("{not json")
        config = Config.load(path, environ={"OPENAI_API_KEY": "sk-env"})
        assert config.openai.api_key == "sk-env"
        assert "Ignoring unreadable config file" in caplog.text

    def test_entry_without_key_is_not_configured(self, config_file):
        path = config_file({"openai": {"baseUrl": "https://proxy.example/v1"}})
        assert Config.load(path, environ={}).openai is None

    def test_routing_settings_from_file(self, config_file):
        path = config_file({"routing": {
            "mode": "heuristic",
            "classifierModel": "gemini-3-flash-preview",
            "confidenceThreshold": 0.5,
        }})
        config = Config.load(path, environ={})
        assert config.mode == "heuristic"
        assert config.classifier_model == "gemini-3-flash-preview"
        assert config.confidence_threshold == 0.5

    @pytest.mark.parametrize("routing", ["heuristic", ["heuristic"], 3])
    def test_non_object_routing_section_is_ignored(self, config_file, caplog, routing):
        path = config_file({"openai": {"apiKey": "sk-file"}, "routing": routing})
        config = Config.load(path, environ={"SECOND_OPINION_MODE": "heuristic"})
        assert config.openai.api_key == "sk-file"
        assert config.mode == "heuristic"
        assert config.confidence_threshold == 0.65
        assert "Ignoring 'routing' section" in caplog.text

    def test_routing_settings_from_environment(self, tmp_path):
        config = Config.load(str(tmp_path / "none.json"), environ={
            "SECOND_OPINION_MODE": "heuristic",
            "SECOND_OPINION_CONFIDENCE_THRESHOLD": "0.7",
        })
        assert config.mode == "heuristic"
        assert config.confidence_threshold == 0.7


class TestConfigValidation:

    def test_invalid_mode(self):
        with pytest.raises(ValueError, match="mode"):
            Config(mode="random")

    def test_unknown_classifier_model(self):
        with pytest.raises(ValueError, match="classifier_model"):
            Config(classifier_model="gpt-2")

    def test_threshold_out_of_range(self):
        with pytest.raises(ValueError, match="confidence_threshold"):
            Config(confidence_threshold=1.5)

    def test_non_numeric_threshold(self, tmp_path):
        with pytest.raises(ValueError, match="confidence_threshold"):
            Config.load(str(tmp_path / "none.json"), environ={
                "SECOND_OPINION_CONFIDENCE_THRESHOLD": "high",
            })

    def test_config_is_immutable(self):
        config = Config()
        with pytest.raises(Exception):
            config.mode = "heuristic"


class TestProviderAvailability:

    def test_is_available(self):
        availability = ProviderAvailability(has_openai=True)
        assert availability.is_available("openai") is True
        assert availability.is_available("gemini") is False
        assert availability.is_available("anthropic") is False

    def test_providers_order(self):
        assert ProviderAvailability(True, True).providers() == ["openai", "gemini"]
        assert ProviderAvailability().providers() == []

    def test_credentials_for(self):
        config = Config(openai=ProviderCredentials("sk"))
        assert config.credentials_for("openai").api_key == "sk"
        assert config.credentials_for("gemini") is None
