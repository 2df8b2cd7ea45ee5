"""
srcbundle: Constants

This module provides package-wide constants, error codes, and the
configuration keys understood by the bundler.
"""
import re
from enum import Enum, IntEnum
from typing import Pattern, Tuple

# Version information
SRCBUNDLE_VERSION = "1.0.0"


# Error codes (0-9 range)
class ErrorCode(IntEnum):
    """Standardized error codes for srcbundle operations."""

    INVALID_INPUT = 1  # Bad pattern, invalid configuration
    NOT_FOUND = 2  # File or resource doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Duplicate artifact entry
    DEPENDENCY_ERROR = 5  # External tool missing
    INTERNAL_ERROR = 6  # Bug or unexpected failure
    TIMEOUT = 7  # External tool timed out


class TransformMethod(Enum):
    """Code-transform stage selector."""

    NONE = "none"  # No compile stage
    COMPILE = "compile"  # External compiler (babel-style)


# Prune rules applied during traversal, before user rules are consulted.
# Tested against "/<relative dir>/".
STRUCTURAL_EXCLUDES: Tuple[Pattern[str], ...] = (re.compile(r"/node_modules/", re.IGNORECASE),)

# Per-directory filter marker files
INCLUDE_MARKER = ".srcbundle-include"
EXCLUDE_MARKER = ".srcbundle-ignore"

# Project-level compiler config looked up when no compile options are given
DEFAULT_COMPILE_CONFIG_FILE = ".babelrc"

# Suffix appended to a relative path for its emitted source map
SOURCE_MAP_SUFFIX = ".map"


class Limits:
    """Resource limits and default values."""

    MAX_PATH_LENGTH = 4096
    MAX_TRANSFORM_TIME = 120  # seconds, per external tool invocation
    LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUPS = 5


# Configuration keys
class ConfigKey:
    """Configuration key constants."""

    ROOT = "srcbundle"

    INCLUDES = "includes"
    EXCLUDES = "excludes"
    METHOD = "method"
    COMPILE = "compile"
    COMPILE_CONFIG_FILE = "compile_config_file"
    COMPILE_COMMAND = "compile_command"
    MINIFY = "minify"
    MINIFY_OPTIONS = "minify_options"
    MINIFY_COMMAND = "minify_command"
    COMPRESS = "compress"
    FILTER_FILES = "filter_files"
    LOGGING = "logging"

    # Rule mapping forms
    RULE_GLOB = "glob"
    RULE_REGEX = "regex"
    RULE_IGNORE_CASE = "ignore_case"


# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.INCLUDES: [],
    ConfigKey.EXCLUDES: [],
    ConfigKey.METHOD: TransformMethod.NONE.value,
    ConfigKey.COMPILE: None,
    ConfigKey.COMPILE_CONFIG_FILE: DEFAULT_COMPILE_CONFIG_FILE,
    ConfigKey.MINIFY: False,
    ConfigKey.MINIFY_OPTIONS: {},
    ConfigKey.COMPRESS: True,
    ConfigKey.FILTER_FILES: False,
    ConfigKey.LOGGING: {
        "level": "INFO",
        "file": None,
    },
}
