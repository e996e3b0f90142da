"""Tests for stars_categorizer.config module."""

import os
from unittest.mock import patch

import pytest

from stars_categorizer.config import ConfigError, load_settings

FULL_ENV = {
    "GH_TOKEN": "gh-token",
    "GITHUB_USERNAME": "octocat",
    "API_KEY": "llm-key",
}


@patch("stars_categorizer.config.load_dotenv")
class TestLoadSettings:
    def test_reads_environment(self, mock_load_dotenv) -> None:
        with patch.dict(os.environ, {**FULL_ENV, "BASE_URL": "https://llm.example/v1", "MODEL": "m1"}, clear=True):
            settings = load_settings()

        assert settings.github_token == "gh-token"
        assert settings.github_username == "octocat"
        assert settings.api_key == "llm-key"
        assert settings.base_url == "https://llm.example/v1"
        assert settings.model == "m1"
        mock_load_dotenv.assert_called_once_with(None, override=False)

    def test_defaults(self, mock_load_dotenv) -> None:
        with patch.dict(os.environ, FULL_ENV, clear=True):
            settings = load_settings()

        assert settings.base_url is None
        assert settings.model == "gpt-4o-mini"

    def test_fallback_variable_names(self, mock_load_dotenv) -> None:
        env = {"GITHUB_TOKEN": "t", "GITHUB_USERNAME": "u", "OPENAI_API_KEY": "k"}
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings()

        assert settings.github_token == "t"
        assert settings.api_key == "k"

    def test_arguments_override_environment(self, mock_load_dotenv) -> None:
        with patch.dict(os.environ, {**FULL_ENV, "MODEL": "env-model"}, clear=True):
            settings = load_settings(username="someone", base_url="https://x", model="cli-model")

        assert settings.github_username == "someone"
        assert settings.base_url == "https://x"
        assert settings.model == "cli-model"

    def test_missing_values_are_all_reported(self, mock_load_dotenv) -> None:
        with patch.dict(os.environ, {"GITHUB_USERNAME": "  "}, clear=True):
            with pytest.raises(ConfigError) as excinfo:
                load_settings()

        message = str(excinfo.value)
        assert "GH_TOKEN" in message
        assert "GITHUB_USERNAME" in message
        assert "API_KEY" in message
