"""Configuration for success-mcp: layered YAML config files resolved into runtime settings."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".success-mcp"
CONFIG_FILE_NAME = "config.yaml"
DEFAULT_ONLINE_ENDPOINT = "https://www.success.co/graphql"
DEFAULT_LOCAL_ENDPOINT = "http://localhost:5174/graphql"
DEFAULT_DEBUG_LOG_FILE = "/tmp/mcp-success-co-debug.log"
API_KEY_FILE = ".api_key"


def global_config_dir() -> Path:
    return Path.home() / CONFIG_DIR_NAME


def local_config_dir() -> Path:
    return Path.cwd() / CONFIG_DIR_NAME


class ConfigFile:
    """One YAML mapping of dotted keys (``graphql.mode``, ``database.host``) to values."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.path = self.directory / CONFIG_FILE_NAME
        self.values: dict[str, Any] = {}

    def read(self) -> "ConfigFile":
        """Load values from disk; a missing file reads as empty.

        Raises:
            ValueError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            logger.debug("No config file", path=str(self.path))
            return self
        try:
            self.values = yaml.safe_load(self.path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", path=str(self.path), error=str(e))
            raise ValueError(f"Failed to load config from {self.path}: {e}") from e
        logger.debug("Config loaded", path=str(self.path), keys=sorted(self.values))
        return self

    def write(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(self.values, default_flow_style=False, sort_keys=False))
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to save config", path=str(self.path), error=str(e))
            raise ValueError(f"Failed to save config to {self.path}: {e}") from e
        logger.debug("Config saved", path=str(self.path))


class Config:
    """Layered success-mcp configuration.

    The first layer is the writable one: ``./.success-mcp/config.yaml`` by
    default, or ``~/.success-mcp/config.yaml`` with ``use_global``. A local
    Config also reads the global file as a fallback layer. A broken fallback
    file is skipped with a warning; a broken writable file is an error.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize the layers.

        Args:
            use_global: Write to the global file and ignore local config
            config_dir: Directory of the writable layer (overrides the default location)
        """
        self.is_global = use_global
        if config_dir is None:
            config_dir = global_config_dir() if use_global else local_config_dir()
        self.layers: list[ConfigFile] = [ConfigFile(config_dir).read()]

        fallback = ConfigFile(global_config_dir())
        if not use_global and fallback.path != self.layers[0].path:
            try:
                self.layers.append(fallback.read())
            except ValueError as e:
                logger.warning("Ignoring global config", error=str(e))

    @property
    def config_file(self) -> Path:
        return self.layers[0].path

    def get(self, key: str, default: Any = None) -> Any:
        for layer in self.layers:
            if key in layer.values:
                return layer.values[key]
        return default

    def set(self, key: str, value: str) -> None:
        logger.debug("Setting config value", key=key, path=str(self.config_file))
        self.layers[0].values[key] = value
        self.layers[0].write()

    def unset(self, key: str) -> None:
        writable = self.layers[0]
        if key in writable.values:
            del writable.values[key]
            logger.debug("Unset config value", key=key, path=str(self.config_file))
            writable.write()

    def list(self) -> dict[str, Any]:
        """All visible values, earlier layers winning."""
        merged: dict[str, Any] = {}
        for layer in reversed(self.layers):
            merged.update(layer.values)
        return merged

    def settings(self, env: Mapping[str, str] | None = None, working_dir: Path | None = None) -> "Settings":
        """Resolve runtime settings with this config as the file fallback."""
        return Settings.resolve(env, self, working_dir)


def get_config(use_global: bool = False) -> Config:
    """Config for the current directory, or the global one."""
    return Config(use_global=use_global)


# Settings field -> (environment variable, config key)
SETTING_SOURCES = {
    "endpoint_mode": ("GRAPHQL_ENDPOINT_MODE", "graphql.mode"),
    "online_endpoint": ("GRAPHQL_ENDPOINT_ONLINE", "graphql.online_endpoint"),
    "local_endpoint": ("GRAPHQL_ENDPOINT_LOCAL", "graphql.local_endpoint"),
    "api_key": ("DEVMODE_SUCCESS_API_KEY", "api_key"),
    "use_api_key": ("DEVMODE_SUCCESS_USE_API_KEY", "use_api_key"),
    "debug": ("DEBUG", "debug"),
    "database_url": ("DATABASE_URL", "database.url"),
    "db_host": ("DB_HOST", "database.host"),
    "db_port": ("DB_PORT", "database.port"),
    "db_name": ("DB_NAME", "database.name"),
    "db_user": ("DB_USER", "database.user"),
    "db_password": ("DB_PASS", "database.password"),
    "oauth_server_url": ("OAUTH_SERVER_URL", "oauth_server_url"),
    "debug_log_file": ("SUCCESS_MCP_DEBUG_LOG", "debug_log_file"),
}


def _is_true(value: str | None) -> bool:
    return (value or "").lower() == "true"


def _read_api_key_file(directory: Path) -> str | None:
    path = directory / API_KEY_FILE
    try:
        if path.exists():
            return path.read_text().strip() or None
    except OSError as e:
        logger.warning("Failed to read API key file", path=str(path), error=str(e))
    return None


@dataclass
class Settings:
    """Resolved runtime settings for the tool server."""

    endpoint_mode: str = "online"
    online_endpoint: str = DEFAULT_ONLINE_ENDPOINT
    local_endpoint: str = DEFAULT_LOCAL_ENDPOINT
    api_key: str | None = None
    use_api_key: bool = False
    dev_mode: bool = False
    database_url: str | None = None
    db_host: str | None = None
    db_port: int = 5432
    db_name: str | None = None
    db_user: str | None = None
    db_password: str | None = None
    oauth_server_url: str | None = None
    debug_log_file: str = DEFAULT_DEBUG_LOG_FILE

    @classmethod
    def resolve(
        cls,
        env: Mapping[str, str] | None = None,
        config: Config | None = None,
        working_dir: Path | None = None,
    ) -> "Settings":
        """Build settings from the environment with config-file fallback.

        Environment variables win over config keys. The API key is looked up in
        DEVMODE_SUCCESS_API_KEY, then the ``api_key`` config key, then an
        ``.api_key`` file in the working directory.

        Args:
            env: Environment mapping (defaults to os.environ)
            config: Config whose layers back up missing variables
            working_dir: Directory holding the optional .api_key file
        """
        env = os.environ if env is None else env
        raw: dict[str, str] = {}
        for name, (env_key, config_key) in SETTING_SOURCES.items():
            value = env.get(env_key) or (config.get(config_key) if config is not None else None)
            if value is not None and value != "":
                raw[name] = str(value)

        settings = cls(
            endpoint_mode=raw.get("endpoint_mode", "online"),
            online_endpoint=raw.get("online_endpoint", DEFAULT_ONLINE_ENDPOINT),
            local_endpoint=raw.get("local_endpoint", DEFAULT_LOCAL_ENDPOINT),
            api_key=raw.get("api_key") or _read_api_key_file(working_dir or Path.cwd()),
            use_api_key=_is_true(raw.get("use_api_key")),
            dev_mode=env.get("NODE_ENV") == "development" or _is_true(raw.get("debug")),
            database_url=raw.get("database_url"),
            db_host=raw.get("db_host"),
            db_port=int(raw.get("db_port", 5432)),
            db_name=raw.get("db_name"),
            db_user=raw.get("db_user"),
            db_password=raw.get("db_password"),
            oauth_server_url=raw.get("oauth_server_url"),
            debug_log_file=raw.get("debug_log_file", DEFAULT_DEBUG_LOG_FILE),
        )
        logger.debug(
            "Settings loaded",
            endpoint=settings.graphql_endpoint,
            dev_mode=settings.dev_mode,
            api_key_mode=settings.api_key_mode,
            database_configured=settings.database_configured,
        )
        return settings

    @property
    def graphql_endpoint(self) -> str:
        if self.endpoint_mode == "local":
            return self.local_endpoint
        return self.online_endpoint

    @property
    def api_key_mode(self) -> bool:
        """API keys are only honoured when explicitly enabled in dev mode."""
        return self.use_api_key and self.dev_mode

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url or self.db_host)
