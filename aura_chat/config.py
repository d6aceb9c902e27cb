"""Configuration management for the chat relay."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from aura_chat.llm.models import HttpClientSettings, RelaySettings

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class Configuration:
    """Manages configuration and environment variables for the relay."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Configuration":
        """Build a configuration from an in-memory dictionary."""
        instance = cls.__new__(cls)
        instance.load_env()
        instance.config_path = None
        instance._config = config
        return instance

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

    def get_upstream_config(self) -> dict[str, Any]:
        """Get upstream provider configuration from YAML.

        Returns:
            Upstream configuration dictionary.

        Raises:
            ValueError: If a required upstream parameter is missing.
        """
        upstream_config = self._config.get("upstream", {})

        required_keys = ["url", "model", "api_key_env"]
        for key in required_keys:
            if not upstream_config.get(key):
                raise ValueError(
                    f"upstream.{key} must be explicitly configured in config.yaml"
                )

        return upstream_config

    @property
    def upstream_api_key(self) -> str | None:
        """Get the upstream API key, or None when it is not set.

        A missing key is reported per request by the relay rather than at
        startup, so the server can boot and answer with a configuration error.
        """
        env_key = self.get_upstream_config()["api_key_env"]
        return os.getenv(env_key) or None

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client configuration for the upstream provider.

        Returns:
            HTTP client configuration dictionary with validated values.

        Raises:
            ValueError: If required HTTP client parameters are missing or invalid.
        """
        http_config = self.get_upstream_config().get("http_client", {})

        required_keys = [
            "max_connections", "max_keepalive", "keepalive_expiry",
            "connect_timeout", "read_timeout", "write_timeout", "pool_timeout",
        ]
        for key in required_keys:
            if key not in http_config:
                raise ValueError(
                    f"upstream.http_client.{key} must be explicitly configured "
                    "in config.yaml (use null to disable a timeout)"
                )

        if http_config["max_connections"] < 1:
            raise ValueError("http_client.max_connections must be at least 1")
        if http_config["max_keepalive"] > http_config["max_connections"]:
            raise ValueError("http_client.max_keepalive must be <= max_connections")

        for key in ["connect_timeout", "read_timeout", "write_timeout", "pool_timeout"]:
            value = http_config[key]
            if value is not None and value <= 0:
                raise ValueError(
                    f"http_client.{key} must be positive or null"
                )

        return http_config

    def get_persona_config(self) -> dict[str, Any]:
        """Get persona configuration from YAML."""
        persona_config = self._config.get("persona", {})
        if not persona_config.get("companion_name"):
            raise ValueError(
                "persona.companion_name must be explicitly configured in config.yaml"
            )
        return persona_config

    def get_server_config(self) -> dict[str, Any]:
        """Get HTTP server configuration from YAML.

        Raises:
            ValueError: If host, port or path is missing or invalid.
        """
        server_config = self._config.get("server", {})

        for key in ["host", "port", "path"]:
            if key not in server_config:
                raise ValueError(
                    f"server.{key} must be explicitly configured in config.yaml"
                )

        port = server_config["port"]
        if not isinstance(port, int) or not 0 < port < 65536:
            raise ValueError("server.port must be an integer between 1 and 65535")
        if not str(server_config["path"]).startswith("/"):
            raise ValueError("server.path must start with '/'")

        return server_config

    def get_cors_config(self) -> dict[str, Any]:
        """Get CORS configuration, defaulting to fully permissive."""
        cors_config = self._config.get("cors", {})
        return {
            "allow_origins": cors_config.get("allow_origins", ["*"]),
            "allow_headers": cors_config.get("allow_headers", ["*"]),
        }

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {"level": "INFO"})

    def get_relay_settings(self) -> RelaySettings:
        """Resolve everything the relay needs into a frozen settings object."""
        upstream_config = self.get_upstream_config()
        http_config = self.get_http_client_config()
        persona_config = self.get_persona_config()

        return RelaySettings(
            url=upstream_config["url"],
            model=upstream_config["model"],
            api_key_env=upstream_config["api_key_env"],
            companion_name=persona_config["companion_name"],
            http_client=HttpClientSettings(
                max_connections=http_config["max_connections"],
                max_keepalive=http_config["max_keepalive"],
                keepalive_expiry=http_config["keepalive_expiry"],
                connect_timeout=http_config["connect_timeout"],
                read_timeout=http_config["read_timeout"],
                write_timeout=http_config["write_timeout"],
                pool_timeout=http_config["pool_timeout"],
            ),
        )
