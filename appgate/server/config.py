"""Configuration management with validation.

This module provides centralized configuration for the appgate server with:
- YAML file support (appgate_config.yml)
- Environment variable overrides
- Validation in frozen dataclasses

Configuration precedence (highest to lowest):
1. Environment variables (APPGATE_*)
2. YAML config file
3. Default values

Example appgate_config.yml:
    server:
      http_host: "127.0.0.1"
      http_port: 8780
      log_level: "INFO"

    dispatcher:
      default_timeout_seconds: 30
      max_concurrent_per_tool: 4

    resources:
      assets_dir: "web/dist"
      declarations:
        - uri: "ui://widget/echo.html"
          name: "echo-widget"

Usage:
    config = load_config()
    timeout = config.dispatcher.default_timeout_seconds
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from appgate.framework.tools.tool_interface import WIDGET_MIME_TYPE

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "appgate_config.yml"

_VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
_VALID_TRANSPORTS = ["stdio", "http"]
_VALID_STATE_BACKENDS = ["memory"]


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration.

    Attributes:
        version: Configuration schema version (for migration compatibility)
        name: Server name advertised during MCP initialization
        transport: Default transport ("stdio" | "http")
        http_host: HTTP server bind address
        http_port: HTTP server port
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file (empty = stderr only)
    """

    version: str = "1.0.0"
    name: str = "appgate"
    transport: str = "stdio"
    http_host: str = "127.0.0.1"
    http_port: int = 8780
    log_level: str = "INFO"
    log_file: str = ""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.log_level.upper() not in _VALID_LOG_LEVELS:
            msg = f"log_level must be one of {_VALID_LOG_LEVELS}, got '{self.log_level}'"
            raise ValueError(msg)

        if self.transport not in _VALID_TRANSPORTS:
            msg = f"transport must be one of {_VALID_TRANSPORTS}, got '{self.transport}'"
            raise ValueError(msg)

        if not (0 < self.http_port < 65536):
            msg = f"http_port must be 1-65535, got {self.http_port}"
            raise ValueError(msg)

        object.__setattr__(self, "log_level", self.log_level.upper())


@dataclass(frozen=True)
class DispatcherConfig:
    """Invocation dispatcher configuration.

    Attributes:
        version: Configuration schema version
        default_timeout_seconds: Handler deadline when a tool sets none
        max_concurrent_per_tool: In-flight invocations allowed per tool (0 = unlimited)
    """

    version: str = "1.0.0"
    default_timeout_seconds: float = 30.0
    max_concurrent_per_tool: int = 0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.default_timeout_seconds <= 0:
            msg = f"default_timeout_seconds must be > 0, got {self.default_timeout_seconds}"
            raise ValueError(msg)

        if self.max_concurrent_per_tool < 0:
            msg = f"max_concurrent_per_tool must be >= 0, got {self.max_concurrent_per_tool}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ResourceDeclaration:
    """A resource declared in the config file."""

    uri: str
    name: str | None = None
    mime_type: str = WIDGET_MIME_TYPE
    description: str = ""
    title: str | None = None

    def __post_init__(self) -> None:
        if not self.uri:
            msg = "resource declaration requires a uri"
            raise ValueError(msg)


@dataclass(frozen=True)
class ResourcesConfig:
    """Widget resource configuration.

    Attributes:
        version: Configuration schema version
        assets_dir: Directory holding built widget assets (None = in-memory only)
        root_element_id: Element id used when wrapping a bundle into HTML
        declarations: Resources to declare at startup
    """

    version: str = "1.0.0"
    assets_dir: str | None = None
    root_element_id: str = "root"
    declarations: tuple[ResourceDeclaration, ...] = ()

    def __post_init__(self) -> None:
        """Validate and normalize configuration."""
        if self.assets_dir:
            normalized_path = str(Path(self.assets_dir).expanduser().resolve())
            object.__setattr__(self, "assets_dir", normalized_path)

        declarations = tuple(
            d if isinstance(d, ResourceDeclaration) else ResourceDeclaration(**d)
            for d in self.declarations
        )
        uris = [d.uri for d in declarations]
        if len(uris) != len(set(uris)):
            msg = f"duplicate resource uri in declarations: {uris}"
            raise ValueError(msg)
        object.__setattr__(self, "declarations", declarations)


@dataclass(frozen=True)
class StateConfig:
    """Session state store configuration.

    Attributes:
        version: Configuration schema version
        backend: State backend ("memory")
        tombstone_limit: Evicted session ids remembered
        idle_eviction_seconds: Idle time after which sessions are evicted (0 = never)
    """

    version: str = "1.0.0"
    backend: str = "memory"
    tombstone_limit: int = 10_000
    idle_eviction_seconds: float = 0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.backend not in _VALID_STATE_BACKENDS:
            msg = f"backend must be one of {_VALID_STATE_BACKENDS}, got '{self.backend}'"
            raise ValueError(msg)

        if self.tombstone_limit <= 0:
            msg = f"tombstone_limit must be > 0, got {self.tombstone_limit}"
            raise ValueError(msg)

        if self.idle_eviction_seconds < 0:
            msg = f"idle_eviction_seconds must be >= 0, got {self.idle_eviction_seconds}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ObservabilityConfig:
    """Observability configuration.

    Attributes:
        version: Configuration schema version
        metrics_enabled: Whether component counters are exposed by the health endpoint
        structured_logging: Whether to emit JSON log lines
    """

    version: str = "1.0.0"
    metrics_enabled: bool = True
    structured_logging: bool = False


@dataclass
class Config:
    """Root configuration object.

    Attributes:
        server: Server configuration
        dispatcher: Dispatcher configuration
        resources: Resource configuration
        state: State store configuration
        observability: Observability configuration
        _config_path: Path of the file the config was loaded from
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    dispatcher: DispatcherConfig = field(default_factory=DispatcherConfig)
    resources: ResourcesConfig = field(default_factory=ResourcesConfig)
    state: StateConfig = field(default_factory=StateConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    _config_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dict representation of config with version fields
        """
        return {
            "server": dict(self.server.__dict__),
            "dispatcher": dict(self.dispatcher.__dict__),
            "resources": {
                "version": self.resources.version,
                "assets_dir": self.resources.assets_dir,
                "root_element_id": self.resources.root_element_id,
                "declarations": [dict(d.__dict__) for d in self.resources.declarations],
            },
            "state": dict(self.state.__dict__),
            "observability": dict(self.observability.__dict__),
        }


def _section(yaml_config: dict[str, Any], key: str) -> dict[str, Any]:
    value = yaml_config.get(key) or {}
    if not isinstance(value, dict):
        msg = f"config section '{key}' must be a mapping, got {type(value).__name__}"
        raise ValueError(msg)
    return value


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file and environment variables.

    Precedence (highest to lowest):
    1. Environment variables (APPGATE_*)
    2. YAML config file
    3. Default values

    Args:
        config_path: Optional path to config YAML file
            (default: $APPGATE_CONFIG or ./appgate_config.yml)

    Returns:
        Config object

    Raises:
        ValueError: If a value fails validation or the YAML is malformed

    Environment variables:
        APPGATE_CONFIG: Config file path
        APPGATE_TRANSPORT: Default transport (stdio/http)
        APPGATE_HTTP_HOST: HTTP server host
        APPGATE_HTTP_PORT: HTTP server port
        APPGATE_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        APPGATE_LOG_FILE: Log file path
        APPGATE_TOOL_TIMEOUT: Default tool timeout in seconds
        APPGATE_MAX_CONCURRENT_PER_TOOL: Per-tool concurrency cap (0 = unlimited)
        APPGATE_ASSETS_DIR: Widget asset directory
        APPGATE_STRUCTURED_LOGGING: Emit JSON logs (true/false)
    """
    config = Config()

    if config_path is None:
        config_path = Path(os.getenv("APPGATE_CONFIG", DEFAULT_CONFIG_FILE))

    if config_path.exists():
        logger.info("Loading configuration from %s", config_path)
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            msg = f"Failed to parse {config_path}: {e}"
            raise ValueError(msg) from e

        if not isinstance(yaml_config, dict):
            msg = f"{config_path} must contain a mapping at top level"
            raise ValueError(msg)

        try:
            config.server = ServerConfig(**_section(yaml_config, "server"))
            config.dispatcher = DispatcherConfig(**_section(yaml_config, "dispatcher"))
            resources_dict = _section(yaml_config, "resources")
            config.resources = ResourcesConfig(
                **{
                    **resources_dict,
                    "declarations": tuple(resources_dict.get("declarations") or ()),
                }
            )
            config.state = StateConfig(**_section(yaml_config, "state"))
            config.observability = ObservabilityConfig(**_section(yaml_config, "observability"))
        except TypeError as e:
            # Unknown keys in a section
            msg = f"Invalid configuration in {config_path}: {e}"
            raise ValueError(msg) from e

        logger.info("Configuration loaded from %s", config_path)

    config._config_path = config_path if config_path.exists() else None

    # Environment variable overrides (highest precedence)
    if os.getenv("APPGATE_TRANSPORT"):
        config.server = ServerConfig(
            **{**config.server.__dict__, "transport": os.getenv("APPGATE_TRANSPORT")}
        )

    if os.getenv("APPGATE_HTTP_HOST"):
        config.server = ServerConfig(
            **{**config.server.__dict__, "http_host": os.getenv("APPGATE_HTTP_HOST")}
        )

    if os.getenv("APPGATE_HTTP_PORT"):
        config.server = ServerConfig(
            **{**config.server.__dict__, "http_port": int(os.getenv("APPGATE_HTTP_PORT"))}
        )

    if os.getenv("APPGATE_LOG_LEVEL"):
        config.server = ServerConfig(
            **{**config.server.__dict__, "log_level": os.getenv("APPGATE_LOG_LEVEL")}
        )

    if os.getenv("APPGATE_LOG_FILE"):
        config.server = ServerConfig(
            **{**config.server.__dict__, "log_file": os.getenv("APPGATE_LOG_FILE")}
        )

    if os.getenv("APPGATE_TOOL_TIMEOUT"):
        config.dispatcher = DispatcherConfig(
            **{
                **config.dispatcher.__dict__,
                "default_timeout_seconds": float(os.getenv("APPGATE_TOOL_TIMEOUT")),
            }
        )

    if os.getenv("APPGATE_MAX_CONCURRENT_PER_TOOL"):
        config.dispatcher = DispatcherConfig(
            **{
                **config.dispatcher.__dict__,
                "max_concurrent_per_tool": int(os.getenv("APPGATE_MAX_CONCURRENT_PER_TOOL")),
            }
        )

    if os.getenv("APPGATE_ASSETS_DIR"):
        config.resources = ResourcesConfig(
            **{**config.resources.__dict__, "assets_dir": os.getenv("APPGATE_ASSETS_DIR")}
        )

    if os.getenv("APPGATE_STRUCTURED_LOGGING"):
        config.observability = ObservabilityConfig(
            **{
                **config.observability.__dict__,
                "structured_logging": _env_bool(os.getenv("APPGATE_STRUCTURED_LOGGING")),
            }
        )

    return config


# Global config instance (lazy-loaded)
_global_config: Config | None = None


def get_config() -> Config:
    """Get global config instance (singleton pattern).

    Returns:
        Config object
    """
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def reset_config() -> None:
    """Drop the global config instance (used by tests)."""
    global _global_config
    _global_config = None
