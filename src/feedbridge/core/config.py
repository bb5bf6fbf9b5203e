"""
feedbridge Config — Load connector configs and field mappings from disk.

Config files are YAML or JSON. String values inside a connector's
`config` block may reference environment variables as ${VAR}, so tokens
and passwords can stay out of the file itself.
"""

import json
import os
import re
from dataclasses import dataclass
from typing import Any, List

import yaml

from ..errors import ConfigError
from .schema import ConnectorConfig, FieldMapping

_ENV_REF = re.compile(r"\$\{(\w+)\}")


@dataclass(frozen=True)
class Settings:
    """Process-wide defaults, read from FEEDBRIDGE_* environment variables."""

    http_timeout: float = 30.0
    mcp_connect_timeout: float = 10.0
    mcp_request_timeout: float = 30.0
    max_pages: int = 100

    @classmethod
    def from_env(cls) -> "Settings":
        def read(name: str, default, cast):
            raw = os.environ.get(name)
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except ValueError:
                raise ConfigError(f"Invalid value for {name}: {raw!r}")

        return cls(
            http_timeout=read("FEEDBRIDGE_HTTP_TIMEOUT", cls.http_timeout, float),
            mcp_connect_timeout=read("FEEDBRIDGE_MCP_CONNECT_TIMEOUT", cls.mcp_connect_timeout, float),
            mcp_request_timeout=read("FEEDBRIDGE_MCP_REQUEST_TIMEOUT", cls.mcp_request_timeout, float),
            max_pages=read("FEEDBRIDGE_MAX_PAGES", cls.max_pages, int),
        )


def expand_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment values.

    Unset variables expand to an empty string.

    Examples:
        >>> os.environ["TOKEN"] = "abc"
        >>> expand_env({"auth": {"bearerToken": "${TOKEN}"}})
        {'auth': {'bearerToken': 'abc'}}
    """
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v) for v in value]
    return value


def _read_file(path: str) -> Any:
    """Parse a YAML or JSON file, chosen by extension."""
    path = os.path.expanduser(path)
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    ext = os.path.splitext(path)[1].lower()
    try:
        if ext in (".yaml", ".yml"):
            return yaml.safe_load(content)
        return json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e


def load_connector_config(path: str) -> ConnectorConfig:
    """Load a ConnectorConfig from a YAML/JSON file.

    Example file:
        id: bosch-catalog
        name: Bosch Product Catalog
        type: bmecat
        config:
          filePath: ./Bosch_BMEcat.xml
        schedule: "0 3 * * *"
    """
    data = _read_file(path)
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    data = {**data, "config": expand_env(data.get("config") or {})}
    try:
        return ConnectorConfig.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"{path}: {e}") from e


def load_mappings(path: str) -> List[FieldMapping]:
    """Load an ordered list of field mappings.

    Accepts either a top-level list or a mapping with a `mappings` key.
    """
    data = _read_file(path)
    if isinstance(data, dict):
        data = data.get("mappings")
    if not isinstance(data, list):
        raise ConfigError(f"{path}: expected a list of field mappings")

    try:
        return [FieldMapping.from_dict(item) for item in data]
    except ValueError as e:
        raise ConfigError(f"{path}: {e}") from e
