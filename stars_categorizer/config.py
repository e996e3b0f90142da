"""
Run-time configuration from the environment (optionally via a .env file).

Required:
- GH_TOKEN (or GITHUB_TOKEN): GitHub access token for the starred listing.
- GITHUB_USERNAME: account whose stars are categorized.
- API_KEY (or OPENAI_API_KEY): key for the OpenAI-compatible classification endpoint.

Optional:
- BASE_URL: endpoint base address (OpenAI default when unset).
- MODEL: model name, default gpt-4o-mini.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from stars_categorizer.classifier import DEFAULT_MODEL


class ConfigError(RuntimeError):
    """Required configuration is missing."""


@dataclass(frozen=True)
class Settings:
    github_token: str
    github_username: str
    api_key: str
    base_url: Optional[str] = None
    model: str = DEFAULT_MODEL


def _first_env(*keys: str) -> Optional[str]:
    for key in keys:
        value = (os.environ.get(key) or "").strip()
        if value:
            return value
    return None


def load_settings(
    env_file: Optional[str] = None,
    username: Optional[str] = None,
    base_url: Optional[str] = None,
    model: Optional[str] = None,
) -> Settings:
    """
    Load settings; explicit arguments take precedence over environment variables.
    Values already present in the environment are not overridden by the .env file.
    Raises ConfigError listing every missing required variable.
    """
    load_dotenv(env_file, override=False)

    github_token = _first_env("GH_TOKEN", "GITHUB_TOKEN")
    github_username = username or _first_env("GITHUB_USERNAME")
    api_key = _first_env("API_KEY", "OPENAI_API_KEY")

    missing = []
    if not github_token:
        missing.append("GH_TOKEN")
    if not github_username:
        missing.append("GITHUB_USERNAME")
    if not api_key:
        missing.append("API_KEY")
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    return Settings(
        github_token=github_token,
        github_username=github_username,
        api_key=api_key,
        base_url=base_url or _first_env("BASE_URL"),
        model=model or _first_env("MODEL") or DEFAULT_MODEL,
    )
