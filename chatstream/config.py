"""Configuration management for the chat streaming client."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from .llm.models import DEFAULT_BASE_URL, DEFAULT_MODEL
from .llm.retry import RetryPolicy

DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yaml")
API_KEY_ENV = "OPENAI_API_KEY"


class LLMSettings(BaseModel):
    """Validated ``llm`` section of config.yaml."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = 2048
    temperature: float = 0.0
    top_p: float = 1.0
    frequency_penalty: float = 0.2
    presence_penalty: float = 0.1


class RetrySettings(BaseModel):
    """Validated ``retry`` section of config.yaml."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout: float = 1.0
    max_attempts: int | None = None
    backoff_base: float = 0.0
    backoff_factor: float = 2.0
    backoff_max: float = 30.0


class Configuration:
    """Manages configuration and environment variables for the client."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path) as file:
            config = yaml.safe_load(file) or {}
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def llm_api_key(self) -> str:
        """Get the API key for the chat completions endpoint.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        api_key = os.getenv(API_KEY_ENV)
        if not api_key:
            raise ValueError(
                f"API key '{API_KEY_ENV}' not found in environment variables"
            )
        return api_key

    def get_llm_settings(self) -> LLMSettings:
        """Get validated model and sampling settings.

        Raises:
            pydantic.ValidationError: If the ``llm`` section is malformed.
        """
        return LLMSettings.model_validate(self._config.get("llm") or {})

    def get_retry_policy(self) -> RetryPolicy:
        """Build the retry policy from the ``retry`` section.

        Missing keys keep the defaults: retry forever on a 1s header timeout.

        Raises:
            pydantic.ValidationError: If the ``retry`` section is malformed.
            ValueError: If the values are out of range.
        """
        settings = RetrySettings.model_validate(self._config.get("retry") or {})
        return RetryPolicy(**settings.model_dump())

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        return self._config.get("logging", {})
