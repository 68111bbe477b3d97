"""
Configuration management for the Veriflow SDK runtime.

Loads YAML configuration from file with sensible defaults and validation.
Supports environment variable substitution using ${ENV_VAR} syntax, a flat
keyword surface for programmatic construction, and VERIFLOW_* environment
variables.
"""

import copy
import os
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

import yaml

from veriflow.exceptions import ConfigurationLoadError, InvalidConfigurationError
from veriflow.logging_config import get_logger

logger = get_logger(__name__)


def _expand_env_vars(value: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports ${ENV_VAR} syntax with optional default values: ${ENV_VAR:default}

    Args:
        value: Configuration value (string, dict, list, or other)

    Returns:
        Value with environment variables expanded

    Examples:
        "${VERIFLOW_API_KEY}" -> value of VERIFLOW_API_KEY env var
        "${VERIFLOW_BASE_URL:https://api.veriflow.io}" -> value or the default
    """
    if isinstance(value, str):
        # Pattern matches ${VAR} or ${VAR:default}
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replace_env_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


@dataclass
class HttpConfig:
    """HTTP transport configuration."""

    max_connections: int = 10
    request_timeout_ms: int = 30000
    max_retries: int = 3
    retry_base_delay_ms: int = 200
    retry_max_delay_ms: int = 10000
    user_agent: str = "Veriflow-SDK-Python"


@dataclass
class CacheConfig:
    """Response cache configuration."""

    enabled: bool = True
    ttl_ms: int = 60000
    max_entries: int = 1024


@dataclass
class AuthConfig:
    """Token exchange configuration."""

    api_key_path: str = "/auth/api-key"
    refresh_path: str = "/auth/refresh"
    refresh_margin_s: float = 30.0


@dataclass
class WebSocketConfig:
    """Streaming connection configuration."""

    url: Optional[str] = None
    path: str = "/ws"
    max_reconnect_attempts: int = 5
    reconnect_base_delay_ms: int = 500
    reconnect_max_delay_ms: int = 30000


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    file: str = ""
    json_format: bool = False


@dataclass
class VeriflowConfig:
    """Main SDK configuration."""

    api_key: str = ""
    base_url: str = "https://api.veriflow.io"
    secret_key: Optional[str] = None
    graphql_path: str = "/graphql"
    http: HttpConfig = field(default_factory=HttpConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    websocket: WebSocketConfig = field(default_factory=WebSocketConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def websocket_url(self) -> str:
        """WebSocket endpoint, derived from ``base_url`` unless set explicitly."""
        if self.websocket.url:
            return self.websocket.url
        base = self.base_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return base + self.websocket.path


# Flat option name -> (section, attribute). ``None`` section means top level.
_FLAT_OPTIONS = {
    "api_key": (None, "api_key"),
    "base_url": (None, "base_url"),
    "secret_key": (None, "secret_key"),
    "graphql_path": (None, "graphql_path"),
    "max_connections": ("http", "max_connections"),
    "request_timeout_ms": ("http", "request_timeout_ms"),
    "max_retries": ("http", "max_retries"),
    "retry_base_delay_ms": ("http", "retry_base_delay_ms"),
    "retry_max_delay_ms": ("http", "retry_max_delay_ms"),
    "user_agent": ("http", "user_agent"),
    "cache_enabled": ("cache", "enabled"),
    "cache_ttl_ms": ("cache", "ttl_ms"),
    "cache_max_entries": ("cache", "max_entries"),
    "refresh_margin_s": ("auth", "refresh_margin_s"),
    "websocket_url": ("websocket", "url"),
    "max_reconnect_attempts": ("websocket", "max_reconnect_attempts"),
    "reconnect_base_delay_ms": ("websocket", "reconnect_base_delay_ms"),
    "reconnect_max_delay_ms": ("websocket", "reconnect_max_delay_ms"),
}

_ENV_OPTIONS = {
    "VERIFLOW_API_KEY": ("api_key", str),
    "VERIFLOW_BASE_URL": ("base_url", str),
    "VERIFLOW_SECRET_KEY": ("secret_key", str),
    "VERIFLOW_MAX_CONNECTIONS": ("max_connections", int),
    "VERIFLOW_CACHE_TTL_MS": ("cache_ttl_ms", int),
    "VERIFLOW_REQUEST_TIMEOUT_MS": ("request_timeout_ms", int),
    "VERIFLOW_MAX_RETRIES": ("max_retries", int),
    "VERIFLOW_MAX_RECONNECT_ATTEMPTS": ("max_reconnect_attempts", int),
    "VERIFLOW_WEBSOCKET_URL": ("websocket_url", str),
}


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    return os.path.expanduser("~/.veriflow/config.yaml")


def get_default_config() -> VeriflowConfig:
    """
    Get default configuration with sensible defaults.

    Returns:
        VeriflowConfig: Default configuration object
    """
    return VeriflowConfig()


def build_config(base: Optional[VeriflowConfig] = None, **options: Any) -> VeriflowConfig:
    """
    Build a configuration from the flat option surface.

    Accepts ``api_key, base_url, max_connections, cache_ttl_ms,
    request_timeout_ms, max_retries, max_reconnect_attempts, secret_key``
    plus the finer-grained tuning options. Options set to None are ignored.

    Args:
        base: Configuration to start from (defaults are used if omitted)
        **options: Flat option overrides

    Returns:
        VeriflowConfig: Validated configuration

    Raises:
        InvalidConfigurationError: On unknown options or invalid values
    """
    config = copy.deepcopy(base) if base is not None else get_default_config()
    for name, value in options.items():
        if value is None:
            continue
        if name not in _FLAT_OPTIONS:
            raise InvalidConfigurationError(f"Unknown configuration option '{name}'")
        section, attr = _FLAT_OPTIONS[name]
        target = config if section is None else getattr(config, section)
        setattr(target, attr, value)

    _validate_config(config)
    return config


def config_from_env(environ: Optional[Dict[str, str]] = None) -> VeriflowConfig:
    """
    Build configuration from VERIFLOW_* environment variables.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        VeriflowConfig: Validated configuration
    """
    environ = os.environ if environ is None else environ
    options: Dict[str, Any] = {}
    for env_name, (option, cast) in _ENV_OPTIONS.items():
        raw = environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            options[option] = cast(raw)
        except ValueError as e:
            raise InvalidConfigurationError(
                f"Environment variable {env_name} must be {cast.__name__}, got '{raw}'"
            ) from e
    return build_config(**options)


def load_config(config_path: Optional[str] = None) -> VeriflowConfig:
    """
    Load configuration from YAML file with validation.

    If config file is not found, returns default configuration.
    If config file is malformed or invalid, raises InvalidConfigurationError.

    Args:
        config_path: Path to configuration file. If None, uses default path.

    Returns:
        VeriflowConfig: Loaded and validated configuration

    Raises:
        InvalidConfigurationError: If configuration is invalid or malformed
        ConfigurationLoadError: If the file exists but cannot be read
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = os.path.expanduser(config_path)

    if not os.path.exists(config_path):
        logger.info(f"Configuration file not found at {config_path}, using defaults")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
        logger.debug(f"Loaded configuration from {config_path}")
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration file '{config_path}': {e}", exc_info=True)
        raise InvalidConfigurationError(
            f"Failed to parse YAML configuration file '{config_path}': {e}"
        )
    except OSError as e:
        logger.error(f"Failed to read configuration file '{config_path}': {e}", exc_info=True)
        raise ConfigurationLoadError(
            f"Failed to read configuration file '{config_path}': {e}"
        )

    if config_data is None:
        logger.info(f"Configuration file {config_path} is empty, using defaults")
        return get_default_config()

    if not isinstance(config_data, dict):
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': top level must be a mapping"
        )

    config_data = _expand_env_vars(config_data)

    try:
        config = _build_config_from_dict(config_data)
        _validate_config(config)
    except (TypeError, ValueError, InvalidConfigurationError) as e:
        logger.error(f"Invalid configuration in '{config_path}': {e}", exc_info=True)
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': {e}"
        ) from e

    logger.info(f"Successfully loaded and validated configuration from {config_path}")
    return config


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _to_bool(value: Any) -> bool:
    """Coerce a YAML or environment-expanded value to bool."""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got '{value}'")


def _build_section(cls: type, data: Optional[Dict[str, Any]]) -> Any:
    """Instantiate a section dataclass, ignoring unknown keys."""
    if not data:
        return cls()
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**{k: v for k, v in data.items() if k in known})


def _build_config_from_dict(config_data: Dict[str, Any]) -> VeriflowConfig:
    """
    Build VeriflowConfig from dictionary loaded from YAML.

    Merges user configuration with defaults. YAML values arrive as strings
    after environment expansion, so numeric fields are coerced.

    Args:
        config_data: Dictionary loaded from YAML file

    Returns:
        VeriflowConfig: Configuration object
    """
    http = _build_section(HttpConfig, config_data.get("http"))
    http.max_connections = int(http.max_connections)
    http.request_timeout_ms = int(http.request_timeout_ms)
    http.max_retries = int(http.max_retries)
    http.retry_base_delay_ms = int(http.retry_base_delay_ms)
    http.retry_max_delay_ms = int(http.retry_max_delay_ms)

    cache = _build_section(CacheConfig, config_data.get("cache"))
    cache.ttl_ms = int(cache.ttl_ms)
    cache.max_entries = int(cache.max_entries)
    cache.enabled = _to_bool(cache.enabled)

    auth = _build_section(AuthConfig, config_data.get("auth"))
    auth.refresh_margin_s = float(auth.refresh_margin_s)

    websocket = _build_section(WebSocketConfig, config_data.get("websocket"))
    websocket.max_reconnect_attempts = int(websocket.max_reconnect_attempts)
    websocket.reconnect_base_delay_ms = int(websocket.reconnect_base_delay_ms)
    websocket.reconnect_max_delay_ms = int(websocket.reconnect_max_delay_ms)

    logging_config = _build_section(LoggingConfig, config_data.get("logging"))
    logging_config.json_format = _to_bool(logging_config.json_format)

    return VeriflowConfig(
        api_key=config_data.get("api_key", ""),
        base_url=config_data.get("base_url", VeriflowConfig.base_url),
        secret_key=config_data.get("secret_key") or None,
        graphql_path=config_data.get("graphql_path", VeriflowConfig.graphql_path),
        http=http,
        cache=cache,
        auth=auth,
        websocket=websocket,
        logging=logging_config,
    )


def _validate_config(config: VeriflowConfig) -> None:
    """
    Validate configuration values.

    Args:
        config: Configuration to validate

    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    if not config.base_url or not config.base_url.startswith(("http://", "https://")):
        raise InvalidConfigurationError(
            f"base_url must be an http(s) URL, got '{config.base_url}'"
        )

    if config.http.max_connections < 1:
        raise InvalidConfigurationError(
            f"max_connections must be at least 1, got {config.http.max_connections}"
        )
    if config.http.request_timeout_ms <= 0:
        raise InvalidConfigurationError(
            f"request_timeout_ms must be positive, got {config.http.request_timeout_ms}"
        )
    if config.http.max_retries < 0:
        raise InvalidConfigurationError(
            f"max_retries cannot be negative, got {config.http.max_retries}"
        )
    if config.http.retry_base_delay_ms < 0 or config.http.retry_max_delay_ms < 0:
        raise InvalidConfigurationError("retry delays cannot be negative")

    if config.cache.ttl_ms <= 0:
        raise InvalidConfigurationError(
            f"cache ttl_ms must be positive, got {config.cache.ttl_ms}"
        )
    if config.cache.max_entries < 1:
        raise InvalidConfigurationError(
            f"cache max_entries must be at least 1, got {config.cache.max_entries}"
        )

    if config.auth.refresh_margin_s < 0:
        raise InvalidConfigurationError(
            f"refresh_margin_s cannot be negative, got {config.auth.refresh_margin_s}"
        )

    if config.websocket.max_reconnect_attempts < 0:
        raise InvalidConfigurationError(
            f"max_reconnect_attempts cannot be negative, "
            f"got {config.websocket.max_reconnect_attempts}"
        )
    if config.websocket.reconnect_base_delay_ms < 0:
        raise InvalidConfigurationError("reconnect_base_delay_ms cannot be negative")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.logging.level.upper() not in valid_log_levels:
        raise InvalidConfigurationError(
            f"logging level must be one of {valid_log_levels}, "
            f"got '{config.logging.level}'"
        )
