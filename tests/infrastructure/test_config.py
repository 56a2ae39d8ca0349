"""Tests for configuration module."""

import json

import pytest

from notion_mcp_wrapper.infrastructure.config import (
    ClientConfig,
    CredentialsConfig,
    FallbackConfig,
    HealthConfig,
    RetryConfig,
    ServerConfig,
    load_config,
    resolve_credential,
)

NO_ENV: dict = {}


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/wrapper.json", environ=NO_ENV)
        assert config.log_level == "WARNING"
        assert config.server.command == "npx"
        assert config.server.args == ("-y", "@notionhq/notion-mcp-server")
        assert config.client.protocol_version == "2024-11-05"
        assert config.client.request_timeout == 30.0
        assert config.health.interval == 5.0
        assert config.health.timeout == 10.0
        assert config.retry.max_retries == 3
        assert config.fallback.notion_version == "2022-06-28"
        assert config.credentials.primary_env == "NOTION_TOKEN"

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/wrapper.json", environ=NO_ENV)
        assert isinstance(config.server, ServerConfig)
        assert isinstance(config.client, ClientConfig)
        assert isinstance(config.health, HealthConfig)
        assert isinstance(config.retry, RetryConfig)
        assert isinstance(config.fallback, FallbackConfig)
        assert isinstance(config.credentials, CredentialsConfig)

    def test_frozen(self):
        config = load_config(path="/nonexistent/wrapper.json", environ=NO_ENV)
        with pytest.raises(AttributeError):
            config.log_level = "DEBUG"


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "wrapper.json"
        config_file.write_text(json.dumps({
            "log_level": "DEBUG",
            "server": {"command": "node", "args": ["server.js", "--stdio"]},
            "retry": {"max_retries": 5, "base_delay": 2},
            "health": {"enabled": False},
        }))

        config = load_config(path=str(config_file), environ=NO_ENV)
        assert config.log_level == "DEBUG"
        assert config.server.command == "node"
        assert config.server.args == ("server.js", "--stdio")
        assert config.retry.max_retries == 5
        assert config.retry.base_delay == 2.0
        assert isinstance(config.retry.base_delay, float)
        assert config.health.enabled is False

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "wrapper.json"
        config_file.write_text(json.dumps({
            "retry": {"max_retries": 1, "jitter": True},
            "mystery": {"x": 1},
        }))
        config = load_config(path=str(config_file), environ=NO_ENV)
        assert config.retry.max_retries == 1

    def test_invalid_json_uses_defaults(self, tmp_path):
        config_file = tmp_path / "wrapper.json"
        config_file.write_text("{ not json")
        config = load_config(path=str(config_file), environ=NO_ENV)
        assert config.retry.max_retries == 3

    def test_non_object_uses_defaults(self, tmp_path):
        config_file = tmp_path / "wrapper.json"
        config_file.write_text("[1, 2, 3]")
        config = load_config(path=str(config_file), environ=NO_ENV)
        assert config.server.command == "npx"

    def test_non_object_section_uses_defaults(self, tmp_path):
        config_file = tmp_path / "wrapper.json"
        config_file.write_text(json.dumps({"retry": 7}))
        config = load_config(path=str(config_file), environ=NO_ENV)
        assert config.retry.max_retries == 3


class TestEnvOverrides:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "wrapper.json"
        config_file.write_text(json.dumps({"retry": {"max_retries": 5}}))
        env = {"NOTION_MCP_WRAPPER_RETRY_MAX_RETRIES": "7"}

        config = load_config(path=str(config_file), environ=env)
        assert config.retry.max_retries == 7

    def test_env_coercion(self):
        env = {
            "NOTION_MCP_WRAPPER_HEALTH_ENABLED": "false",
            "NOTION_MCP_WRAPPER_HEALTH_INTERVAL": "2.5",
            "NOTION_MCP_WRAPPER_SERVER_ARGS": "-y, @notionhq/notion-mcp-server@1.9",
            "NOTION_MCP_WRAPPER_LOG_LEVEL": "INFO",
        }
        config = load_config(path="/nonexistent/wrapper.json", environ=env)
        assert config.health.enabled is False
        assert config.health.interval == 2.5
        assert config.server.args == ("-y", "@notionhq/notion-mcp-server@1.9")
        assert config.log_level == "INFO"

    def test_custom_prefix(self):
        env = {"MYAPP_CLIENT_REQUEST_TIMEOUT": "3"}
        config = load_config(path="/nonexistent/wrapper.json", env_prefix="MYAPP", environ=env)
        assert config.client.request_timeout == 3.0

    def test_unknown_section_ignored(self):
        env = {"NOTION_MCP_WRAPPER_BOGUS_KEY": "1"}
        config = load_config(path="/nonexistent/wrapper.json", environ=env)
        assert config.retry.max_retries == 3


class TestResolveCredential:
    def test_first_non_empty_wins(self):
        env = {"NOTION_TOKEN": "  ", "NOTION_API_KEY": "secret_b"}
        assert resolve_credential(("NOTION_TOKEN", "NOTION_API_KEY"), env) == "secret_b"

    def test_order_matters(self):
        env = {"NOTION_TOKEN": "secret_a", "NOTION_API_KEY": "secret_b"}
        assert resolve_credential(("NOTION_TOKEN", "NOTION_API_KEY"), env) == "secret_a"
        assert resolve_credential(("NOTION_API_KEY", "NOTION_TOKEN"), env) == "secret_b"

    def test_none_when_missing(self):
        assert resolve_credential(("NOTION_TOKEN",), {}) is None
