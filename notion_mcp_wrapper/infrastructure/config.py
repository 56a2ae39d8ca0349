"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all wrapper settings
- Falls back to sensible defaults when the config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- Credentials are resolved once here from the configured variable names and
  handed to components explicitly; components never read os.environ
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import dataclasses
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "notion-mcp-wrapper.json"
DEFAULT_ENV_PREFIX = "NOTION_MCP_WRAPPER"


@dataclass(frozen=True)
class ServerConfig:
    """How to launch the MCP server subprocess."""
    command: str = "npx"
    args: tuple[str, ...] = ("-y", "@notionhq/notion-mcp-server")


@dataclass(frozen=True)
class ClientConfig:
    """MCP client identity and connection timings (seconds)."""
    protocol_version: str = "2024-11-05"
    client_name: str = "notion-mcp-wrapper"
    client_version: str = "2.0.0"
    initialize_timeout: float = 10.0
    request_timeout: float = 30.0
    connect_attempts: int = 3
    connect_retry_delay: float = 1.0
    shutdown_timeout: float = 5.0


@dataclass(frozen=True)
class HealthConfig:
    """Health prober configuration (seconds)."""
    enabled: bool = True
    interval: float = 5.0
    timeout: float = 10.0
    probe_tool: str = "API-get-self"


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy configuration (seconds)."""
    enabled: bool = True
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0


@dataclass(frozen=True)
class FallbackConfig:
    """Direct Notion REST API fallback configuration."""
    enabled: bool = True
    base_url: str = "https://api.notion.com/v1"
    notion_version: str = "2022-06-28"
    timeout: float = 30.0


@dataclass(frozen=True)
class CredentialsConfig:
    """Names of the environment variables that may carry the Notion token."""
    primary_env: str = "NOTION_TOKEN"
    secondary_env: str = "NOTION_API_KEY"


@dataclass(frozen=True)
class WrapperConfig:
    """Root configuration for the wrapper."""
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
    log_level: str = "WARNING"


_SECTIONS = {
    "server": ServerConfig,
    "client": ClientConfig,
    "health": HealthConfig,
    "retry": RetryConfig,
    "fallback": FallbackConfig,
    "credentials": CredentialsConfig,
}


def resolve_credential(
    names: tuple[str, ...], environ: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """Return the first non-empty value among the given environment variables."""
    env = os.environ if environ is None else environ
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return None


def _env_override(
    data: dict, prefix: str = DEFAULT_ENV_PREFIX, environ: Optional[Mapping[str, str]] = None
) -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern PREFIX_SECTION_KEY.
    For example: NOTION_MCP_WRAPPER_RETRY_MAX_RETRIES=5,
    NOTION_MCP_WRAPPER_SERVER_ARGS=-y,@notionhq/notion-mcp-server
    """
    env = os.environ if environ is None else environ
    for key, value in env.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name == "log_level":
            data["log_level"] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2 and parts[0] in _SECTIONS:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
        else:
            logger.debug("Ignoring unknown config override %s", key)
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s must contain a JSON object", path)
        return {}
    return data


def _coerce(type_name: str, value):
    if type_name == "tuple[str, ...]":
        if isinstance(value, str):
            return tuple(v.strip() for v in value.split(",") if v.strip())
        if isinstance(value, list):
            return tuple(str(v) for v in value)
        return value
    if not isinstance(value, str):
        if type_name == "float" and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    if type_name == "bool":
        return value.lower() in ("true", "1", "yes")
    return value


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid = {f.name: f.type for f in dataclasses.fields(cls)}
    filtered = {
        k: _coerce(valid[k], v) for k, v in data.items() if k in valid
    }
    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Optional[Mapping[str, str]] = None,
) -> WrapperConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (PREFIX_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to notion-mcp-wrapper.json in CWD.
        env_prefix: Environment variable prefix. Defaults to NOTION_MCP_WRAPPER.
        environ: Environment mapping to read; defaults to os.environ.
    """
    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix, environ)

    sections = {
        name: _build_sub_config(
            cls, data[name] if isinstance(data.get(name), dict) else {}
        )
        for name, cls in _SECTIONS.items()
    }
    return WrapperConfig(
        **sections,
        log_level=str(data.get("log_level", "WARNING")),
    )
