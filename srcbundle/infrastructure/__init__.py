"""srcbundle infrastructure.

Services used by the bundling core and its host wiring:
- ConfigManager: Layered configuration (defaults, project file, env, CLI)
- Logger: Structured logging
"""

from .config_manager import ConfigError, ConfigManager, ConfigSource
from .logger import Logger, LogLevel, get_logger, set_global_logger

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "set_global_logger",
    # ConfigManager exports
    "ConfigSource",
    "ConfigError",
    "ConfigManager",
]
