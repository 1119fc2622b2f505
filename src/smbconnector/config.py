"""Configuration management module.

Connection, pool and listener settings are explicit value objects built
before any component is instantiated. They can be loaded from a TOML file
(default ``~/.smbconnector/config.toml``) with environment overrides for the
connection fields.

Example config.toml:

    [connection]
    host = "fileserver.local"
    domain = "CORP"
    username = "svc-ingest"
    share_root = "ingest/inbox"
    log_level = "WARN"

    [pool]
    max_sessions = 4

    [listener]
    directory = "incoming"
    polling_frequency = 1.0

    [listener.matcher]
    filename_pattern = "glob:*.{csv, txt}"
    regular_files = "REQUIRE"

    [listener.post_action]
    move_to_directory = "processed"

Security:
- The password is never written to logs or reprs
- Prefer SMBCONNECTOR_PASSWORD over storing the password in the file
"""

import logging
import os
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any

from smbconnector.exceptions import ConfigurationError, IllegalPathError
from smbconnector.matcher import MatcherCriteria, MatchPolicy
from smbconnector.path_resolver import PathResolver
from smbconnector.post_action import PostActionConfig

try:
    import tomllib as tomli  # type: ignore[import]
except ImportError:
    # Python < 3.11
    import tomli  # type: ignore[import,no-redef]

logger = logging.getLogger(__name__)

ENV_PREFIX = "SMBCONNECTOR_"
ENV_OVERRIDES = ("host", "domain", "username", "password", "share_root", "log_level")


class LogLevel(str, Enum):
    """Log level applied to the SMB protocol client."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @classmethod
    def parse(cls, value: "str | LogLevel") -> "LogLevel":
        """Parse a level name (case-insensitive, WARNING accepted)."""
        if isinstance(value, LogLevel):
            return value
        name = str(value).strip().upper()
        if name == "WARNING":
            name = "WARN"
        try:
            return cls(name)
        except ValueError as e:
            valid = ", ".join(level.value for level in cls)
            raise ConfigurationError(f"Invalid log level '{value}'. Valid: {valid}") from e


@dataclass(frozen=True)
class ConnectionConfig:
    """SMB connection settings.

    Equality and hashing compare every field, password included, so two
    configs are interchangeable only when they authenticate identically.
    """

    host: str
    domain: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    share_root: str | None = None
    log_level: LogLevel = LogLevel.WARN
    port: int = 445
    connection_timeout: int = 60

    def __post_init__(self):
        """Validate configuration."""
        if not self.host or not self.host.strip():
            raise ConfigurationError("host is required")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"port out of range: {self.port}")
        if self.connection_timeout <= 0:
            raise ConfigurationError("connection_timeout must be positive")
        object.__setattr__(self, "log_level", LogLevel.parse(self.log_level))

    def describe(self) -> str:
        """Connection summary safe for logs."""
        return (
            f"host: '{self.host}', domain: '{self.domain}', user: '{self.username}', "
            f"share root: '{self.share_root}'"
        )


@dataclass(frozen=True)
class PoolConfig:
    """Session pool configuration.

    Attributes:
        max_sessions: Maximum number of concurrently open sessions
        max_idle: Maximum idle sessions kept for reuse
        acquire_timeout: Seconds to wait for a free session (None waits forever)
    """

    max_sessions: int = 8
    max_idle: int = 4
    acquire_timeout: float | None = None

    def __post_init__(self):
        """Validate configuration."""
        if self.max_sessions <= 0:
            raise ConfigurationError("max_sessions must be positive")
        if self.max_idle < 0:
            raise ConfigurationError("max_idle must not be negative")


@dataclass(frozen=True)
class ListenerConfig:
    """Directory listener configuration."""

    directory: str
    criteria: MatcherCriteria = field(default_factory=MatcherCriteria)
    post_action: PostActionConfig = field(default_factory=PostActionConfig)
    polling_frequency: float = 1.0
    recursive: bool = True
    max_backoff: float = 30.0

    def __post_init__(self):
        """Validate configuration."""
        if not self.directory or not self.directory.strip():
            raise ConfigurationError("listener directory is required")
        if self.polling_frequency <= 0:
            raise ConfigurationError("polling_frequency must be positive")
        if self.max_backoff < self.polling_frequency:
            raise ConfigurationError("max_backoff must be >= polling_frequency")
        self.criteria.validate()
        self.post_action.validate()
        self._validate_move_target()

    def _validate_move_target(self) -> None:
        """Reject a move target the listener would list again."""
        move_to = self.post_action.move_to_directory
        if not move_to or self.post_action.auto_delete:
            return
        resolver = PathResolver()
        try:
            directory = PurePosixPath(resolver.resolve(self.directory))
            target = PurePosixPath(resolver.resolve(move_to))
        except IllegalPathError as e:
            raise ConfigurationError(f"Invalid listener path: {e}") from e

        if target == directory:
            raise ConfigurationError(
                f"move_to_directory '{move_to}' is the listened directory '{self.directory}'"
            )
        if self.recursive and directory in target.parents:
            raise ConfigurationError(
                f"move_to_directory '{move_to}' is inside '{self.directory}', which is "
                "listened recursively. Moved files would be delivered again."
            )


@dataclass
class ConnectorConfig:
    """Everything loaded from one config file."""

    connection: ConnectionConfig
    pool: PoolConfig = field(default_factory=PoolConfig)
    listener: ListenerConfig | None = None


class ConfigManager:
    """Load connector configuration from TOML and the environment."""

    DEFAULT_CONFIG_DIR = Path.home() / ".smbconnector"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Validate configuration file path.

        Raises:
            ConfigurationError: Path does not exist or is not a regular file
        """
        resolved = path.expanduser().resolve()
        if not resolved.exists():
            raise ConfigurationError(f"Config file not found: {resolved}")
        if not resolved.is_file():
            raise ConfigurationError(f"Config path is not a file: {resolved}")
        return resolved

    @classmethod
    def read_file(cls, path: Path | None = None) -> dict[str, Any]:
        """Read raw TOML data.

        Returns an empty dict when no path is given and the default file does
        not exist.
        """
        if path is None:
            if not cls.DEFAULT_CONFIG_FILE.exists():
                return {}
            path = cls.DEFAULT_CONFIG_FILE

        config_path = cls._validate_config_path(Path(path))
        try:
            with open(config_path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        overrides: dict[str, Any] | None = None,
        environ: dict[str, str] | None = None,
    ) -> ConnectorConfig:
        """Load configuration.

        Precedence (highest first): explicit overrides, environment variables,
        config file.

        Args:
            path: Config file (default: ~/.smbconnector/config.toml if present)
            overrides: Connection fields set explicitly (None values ignored)
            environ: Environment mapping (default: os.environ)

        Returns:
            ConnectorConfig

        Raises:
            ConfigurationError: Missing host, unknown keys or invalid values
        """
        data = cls.read_file(path)
        env = os.environ if environ is None else environ

        connection_data = dict(data.get("connection", {}))
        for key in ENV_OVERRIDES:
            value = env.get(f"{ENV_PREFIX}{key.upper()}")
            if value:
                connection_data[key] = value
        for key, value in (overrides or {}).items():
            if value is not None:
                connection_data[key] = value

        if not connection_data.get("host"):
            raise ConfigurationError(
                f"No SMB host configured. Set [connection] host in the config file "
                f"or {ENV_PREFIX}HOST."
            )

        connection = cls._build(ConnectionConfig, connection_data, "connection")
        pool = cls._build(PoolConfig, data.get("pool", {}), "pool")

        listener = None
        if "listener" in data:
            listener = cls.listener_from_dict(data["listener"])

        logger.debug(f"Loaded configuration ({connection.describe()})")
        return ConnectorConfig(connection=connection, pool=pool, listener=listener)

    @classmethod
    def listener_from_dict(cls, data: dict[str, Any]) -> ListenerConfig:
        """Build a ListenerConfig from the ``[listener]`` table."""
        data = dict(data)
        matcher_data = dict(data.pop("matcher", {}))
        for key in ("regular_files", "directories", "sym_links"):
            if key in matcher_data:
                matcher_data[key] = cls._parse_policy(matcher_data[key], key)
        for key in ("timestamp_since", "timestamp_until"):
            if isinstance(matcher_data.get(key), str):
                matcher_data[key] = cls._parse_timestamp(matcher_data[key], key)

        criteria = cls._build(MatcherCriteria, matcher_data, "listener.matcher")
        post_action = cls._build(PostActionConfig, data.pop("post_action", {}), "listener.post_action")
        return cls._build(
            ListenerConfig,
            {**data, "criteria": criteria, "post_action": post_action},
            "listener",
        )

    @staticmethod
    def _parse_policy(value: Any, key: str) -> MatchPolicy:
        try:
            return MatchPolicy(str(value).upper())
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid {key} policy '{value}'. Valid: REQUIRE, INCLUDE, EXCLUDE"
            ) from e

    @staticmethod
    def _parse_timestamp(value: str, key: str) -> datetime:
        try:
            return datetime.fromisoformat(value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {key} timestamp '{value}'") from e

    @staticmethod
    def _build(cls_: type, data: dict[str, Any], section: str):
        known = {f.name for f in fields(cls_)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown key(s) in [{section}]: {', '.join(unknown)}")
        try:
            return cls_(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid [{section}] configuration: {e}") from e


__all__ = [
    "ConfigManager",
    "ConnectionConfig",
    "ConnectorConfig",
    "ListenerConfig",
    "LogLevel",
    "PoolConfig",
]
