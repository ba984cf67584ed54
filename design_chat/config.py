"""Configuration management for the design chat client."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from design_chat.llm.models import EndpointConfig

URL_ENV_VAR = "DESIGN_CHAT_URL"
API_KEY_ENV_VAR = "DESIGN_CHAT_API_KEY"
DECODE_ERROR_POLICIES = ("strict", "replace", "ignore")


class Configuration:
    """Manages configuration and environment variables for the chat client."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for the API key
        self.config_path = config_path or os.path.join(
            os.path.dirname(__file__), "config.yaml"
        )
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def get_chat_config(self) -> dict[str, Any]:
        return self._config.get("chat", {})

    @property
    def endpoint_url(self) -> str:
        """Get the streaming chat endpoint URL.

        The environment variable takes precedence over config.yaml.

        Raises:
            ValueError: If no URL is configured anywhere.
        """
        url = os.getenv(URL_ENV_VAR) or self.get_chat_config().get(
            "endpoint", {}
        ).get("url")
        if not url:
            raise ValueError(
                "chat.endpoint.url must be explicitly configured in config.yaml "
                f"or via the {URL_ENV_VAR} environment variable"
            )
        return url

    @property
    def api_key(self) -> str:
        """Get the bearer token for the chat endpoint.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        api_key = os.getenv(API_KEY_ENV_VAR)
        if not api_key:
            raise ValueError(
                f"API key '{API_KEY_ENV_VAR}' not found in environment variables"
            )
        return api_key

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client timeouts.

        Returns:
            HTTP client configuration dictionary with validated values.

        Raises:
            ValueError: If required HTTP client parameters are missing or invalid.
        """
        http_config = self.get_chat_config().get("http_client", {})

        required_keys = [
            "connect_timeout", "read_timeout", "write_timeout", "pool_timeout"
        ]
        for key in required_keys:
            if key not in http_config:
                raise ValueError(
                    f"http_client.{key} must be explicitly configured "
                    "in config.yaml under chat.http_client"
                )
            value = http_config[key]
            if not isinstance(value, int | float) or value <= 0:
                raise ValueError(f"http_client.{key} must be positive")

        return http_config

    def get_streaming_config(self) -> dict[str, Any]:
        """Get streaming configuration.

        Raises:
            ValueError: If decode_errors is missing or not a known policy.
        """
        streaming_config = self.get_chat_config().get("streaming", {})

        if "decode_errors" not in streaming_config:
            raise ValueError(
                "streaming.decode_errors must be explicitly configured "
                "in config.yaml under chat.streaming"
            )

        if streaming_config["decode_errors"] not in DECODE_ERROR_POLICIES:
            raise ValueError(
                "streaming.decode_errors must be one of "
                f"{', '.join(DECODE_ERROR_POLICIES)}"
            )

        return streaming_config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})

    def get_endpoint_config(self) -> EndpointConfig:
        """Assemble the validated endpoint settings used by the client."""
        http_config = self.get_http_client_config()
        return EndpointConfig(
            url=self.endpoint_url,
            api_key=self.api_key,
            connect_timeout=http_config["connect_timeout"],
            read_timeout=http_config["read_timeout"],
            write_timeout=http_config["write_timeout"],
            pool_timeout=http_config["pool_timeout"],
            decode_errors=self.get_streaming_config()["decode_errors"],
        )
