"""
Configuration management for the Veriflow SDK runtime.

Handles loading and validation of configuration files.
"""

from veriflow.config.settings import (
    AuthConfig,
    CacheConfig,
    HttpConfig,
    LoggingConfig,
    VeriflowConfig,
    WebSocketConfig,
    build_config,
    config_from_env,
    get_default_config,
    get_default_config_path,
    load_config,
)

__all__ = [
    "AuthConfig",
    "CacheConfig",
    "HttpConfig",
    "LoggingConfig",
    "VeriflowConfig",
    "WebSocketConfig",
    "build_config",
    "config_from_env",
    "get_default_config",
    "get_default_config_path",
    "load_config",
]
