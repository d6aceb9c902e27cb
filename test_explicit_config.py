#!/usr/bin/env python3
"""
Test explicit configuration requirements.
"""

import copy

import pytest
import yaml

from aura_chat.config import Configuration
from aura_chat.llm.models import RelaySettings

BASE_CONFIG = {
    "upstream": {
        "url": "https://gateway.test/v1/chat/completions",
        "model": "google/gemini-2.5-flash",
        "api_key_env": "AURA_TEST_API_KEY",
        "http_client": {
            "max_connections": 10,
            "max_keepalive": 5,
            "keepalive_expiry": 5.0,
            "connect_timeout": 10.0,
            "read_timeout": None,
            "write_timeout": 10.0,
            "pool_timeout": None,
        },
    },
    "persona": {"companion_name": "Aura"},
    "server": {"host": "127.0.0.1", "port": 8080, "path": "/chat"},
    "logging": {"level": "DEBUG"},
}


def make_config(**overrides) -> Configuration:
    config = copy.deepcopy(BASE_CONFIG)
    for section, values in overrides.items():
        if values is None:
            config.pop(section, None)
        else:
            config[section] = values
    return Configuration.from_dict(config)


def test_bundled_config_loads():
    """The shipped config.yaml satisfies every accessor."""
    config = Configuration()

    settings = config.get_relay_settings()
    assert isinstance(settings, RelaySettings)
    assert settings.model == "google/gemini-2.5-flash"
    assert settings.api_key_env == "AI_GATEWAY_API_KEY"
    assert settings.http_client.read_timeout is None
    assert config.get_server_config()["path"] == "/mental-health-chat"
    assert config.get_cors_config()["allow_origins"] == ["*"]


def test_config_from_yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(BASE_CONFIG))

    config = Configuration(str(path))
    assert config.get_server_config()["port"] == 8080
    assert config.get_logging_config()["level"] == "DEBUG"


def test_non_dict_yaml_is_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError, match="Config file must be YAML dict"):
        Configuration(str(path))


@pytest.mark.parametrize("key", ["url", "model", "api_key_env"])
def test_upstream_requires_explicit_config(key):
    upstream = copy.deepcopy(BASE_CONFIG["upstream"])
    del upstream[key]
    config = make_config(upstream=upstream)

    with pytest.raises(ValueError, match=f"upstream.{key} must be explicitly configured"):
        config.get_upstream_config()


def test_http_client_requires_every_timeout():
    upstream = copy.deepcopy(BASE_CONFIG["upstream"])
    del upstream["http_client"]["read_timeout"]
    config = make_config(upstream=upstream)

    with pytest.raises(ValueError, match="read_timeout must be explicitly configured"):
        config.get_http_client_config()


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("max_connections", 0, "max_connections must be at least 1"),
        ("max_keepalive", 50, "max_keepalive must be <= max_connections"),
        ("connect_timeout", -1, "connect_timeout must be positive or null"),
    ],
)
def test_http_client_values_are_validated(field, value, message):
    upstream = copy.deepcopy(BASE_CONFIG["upstream"])
    upstream["http_client"][field] = value
    config = make_config(upstream=upstream)

    with pytest.raises(ValueError, match=message):
        config.get_http_client_config()


def test_server_config_validation():
    with pytest.raises(ValueError, match="server.path must be explicitly configured"):
        make_config(server={"host": "0.0.0.0", "port": 80}).get_server_config()

    with pytest.raises(ValueError, match="server.port must be an integer"):
        make_config(
            server={"host": "0.0.0.0", "port": 70000, "path": "/chat"}
        ).get_server_config()

    with pytest.raises(ValueError, match="server.path must start with '/'"):
        make_config(
            server={"host": "0.0.0.0", "port": 80, "path": "chat"}
        ).get_server_config()


def test_persona_requires_companion_name():
    with pytest.raises(ValueError, match="persona.companion_name"):
        make_config(persona=None).get_persona_config()


def test_cors_defaults_to_permissive():
    cors = make_config().get_cors_config()
    assert cors == {"allow_origins": ["*"], "allow_headers": ["*"]}


def test_upstream_api_key_from_environment(monkeypatch):
    config = make_config()

    monkeypatch.delenv("AURA_TEST_API_KEY", raising=False)
    assert config.upstream_api_key is None

    monkeypatch.setenv("AURA_TEST_API_KEY", "")
    assert config.upstream_api_key is None

    monkeypatch.setenv("AURA_TEST_API_KEY", "secret")
    assert config.upstream_api_key == "secret"


def test_relay_settings_carry_persona_and_pool():
    settings = make_config(persona={"companion_name": "Nova"}).get_relay_settings()

    assert settings.companion_name == "Nova"
    assert settings.http_client.max_connections == 10
    assert settings.http_client.pool_timeout is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
