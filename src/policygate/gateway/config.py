"""
policygate Gateway Configuration

Loads the gateway's startup data from a JSON file:

    {
      "mcpServers": {"search": {"command": "npx", "args": ["-y", "search-mcp"]}},
      "allowedTools": ["search"],
      "policies": [
        {
          "toolName": "search",
          "paramsFilter": {"visibility": "public"},
          "responseFilter": {"jsonPath": "$.items[*].title", "contains": ["urgent"]}
        }
      ],
      "server": {"host": "127.0.0.1", "port": 3000}
    }

The file path comes from the caller, else POLICYGATE_CONFIG, else
./config.json. Environment variables POLICYGATE_HOST, POLICYGATE_PORT,
POLICYGATE_LOG_LEVEL and POLICYGATE_LOG_JSON override the file.

Every problem found here is a ConfigError: the gateway refuses to start
rather than serve with a half-valid configuration.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator

from policygate.exceptions import ConfigError, PolicyError
from policygate.logging import get_logger
from policygate.policy.path import compile_path
from policygate.policy.store import PolicyStore, summarize_validation_errors

logger = get_logger("policygate.gateway.config")

CONFIG_ENV_VAR = "POLICYGATE_CONFIG"
DEFAULT_CONFIG_PATH = "config.json"


class ServerConfig(BaseModel):
    """How to launch one downstream tool server over stdio."""
    model_config = ConfigDict(extra="forbid")

    command: str = Field(min_length=1)
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None
    cwd: str | None = None


class ListenConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)


class GatewayConfig(BaseModel):
    """Validated gateway configuration."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    servers: dict[str, ServerConfig] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("servers", "mcpServers", "mcp_servers"),
    )
    allowed_tools: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("allowed_tools", "allowedTools"),
    )
    policies: list[Any] = Field(default_factory=list)
    require_contains: bool = Field(
        default=False,
        validation_alias=AliasChoices("require_contains", "requireContains"),
    )
    remove_tags: list[str] = Field(
        default_factory=lambda: ["style"],
        validation_alias=AliasChoices("remove_tags", "removeTags"),
    )
    server: ListenConfig = Field(default_factory=ListenConfig)
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("log_level", "logLevel"))
    log_json: bool = Field(default=False, validation_alias=AliasChoices("log_json", "logJson"))
    source: str | None = Field(default=None, exclude=True)
    _store: PolicyStore | None = PrivateAttr(default=None)

    @field_validator("allowed_tools")
    @classmethod
    def _unique_tools(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        seen: set[str] = set()
        for name in value:
            if not name:
                raise ValueError("tool names must be non-empty")
            if name in seen:
                raise ValueError(f"tool '{name}' is listed twice")
            seen.add(name)
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{value}'")
        return level

    def build_store(self) -> PolicyStore:
        """Validate the policies and build the PolicyStore.

        Built once per config; later calls return the same store, so the
        warnings below are logged once. Invalid path expressions are
        reported as warnings and fail per call at runtime; everything else
        is a ConfigError.
        """
        if self._store is not None:
            return self._store

        store = PolicyStore.from_records(
            self.policies,
            require_contains=self.require_contains,
            source=self.source,
        )
        for record in store:
            try:
                compile_path(record.response_filter.path, record.tool_name)
            except PolicyError as e:
                logger.warning(str(e), extra={"tool_name": record.tool_name})
            if self.allowed_tools is not None and record.tool_name not in self.allowed_tools:
                logger.warning(
                    f"Policy for '{record.tool_name}' targets a tool outside allowedTools",
                    extra={"tool_name": record.tool_name},
                )
            if not record.response_filter.contains:
                logger.info(
                    "Policy has an empty contains list; every extracted item is kept",
                    extra={"tool_name": record.tool_name},
                )
        self._store = store
        return store


def resolve_config_path(path: str | os.PathLike[str] | None = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))


def parse_config(data: Any, source: str | None = None, environ: Mapping[str, str] | None = None) -> GatewayConfig:
    """Validate already-decoded config data, applying environment overrides."""
    if not isinstance(data, Mapping):
        raise ConfigError(f"top level must be an object, got {type(data).__name__}", source=source)

    merged = dict(data)
    env = os.environ if environ is None else environ
    _apply_env_overrides(merged, env, source)

    try:
        config = GatewayConfig.model_validate({**merged, "source": source})
    except ValidationError as e:
        raise ConfigError(summarize_validation_errors(e), source=source) from e

    config.build_store()
    return config


def load_config(
    path: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> GatewayConfig:
    """Read, decode and validate the config file."""
    config_path = resolve_config_path(path)
    source = str(config_path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read file: {e.strerror or e}", source=source) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON at line {e.lineno} column {e.colno}: {e.msg}", source=source) from e

    config = parse_config(data, source=source, environ=environ)
    logger.info(
        f"Loaded {len(config.servers)} servers and {len(config.policies)} policies",
        extra={"path": source},
    )
    return config


def _apply_env_overrides(data: dict[str, Any], env: Mapping[str, str], source: str | None) -> None:
    raw_server = data.get("server")
    # A non-object "server" is left for model validation to report.
    if raw_server is None or isinstance(raw_server, Mapping):
        server = dict(raw_server or {})
        if env.get("POLICYGATE_HOST"):
            server["host"] = env["POLICYGATE_HOST"]
        if env.get("POLICYGATE_PORT"):
            try:
                server["port"] = int(env["POLICYGATE_PORT"])
            except ValueError as e:
                raise ConfigError(
                    f"POLICYGATE_PORT is not a number: {env['POLICYGATE_PORT']!r}", source=source
                ) from e
        if server:
            data["server"] = server

    if env.get("POLICYGATE_LOG_LEVEL"):
        data.pop("logLevel", None)
        data["log_level"] = env["POLICYGATE_LOG_LEVEL"]
    if env.get("POLICYGATE_LOG_JSON"):
        data.pop("logJson", None)
        data["log_json"] = env["POLICYGATE_LOG_JSON"].lower() in ("1", "true", "yes", "on")
