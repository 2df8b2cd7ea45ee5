#!/usr/bin/env python3
"""Layered configuration manager for srcbundle.

This module provides configuration management with:
- 5-level precedence hierarchy
- YAML project files
- Environment variable overrides (SRCBUNDLE_*)
- Dot-path get/set
- Deep merge of nested sections
- Thread-safe operations

Example:
    >>> config = ConfigManager()
    >>> config.load_file("srcbundle.yaml")
    >>> config.get("srcbundle.minify", default=False)
    >>> section = config.get_section()
"""

import copy
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from srcbundle.core.constants import DEFAULT_CONFIG, ConfigKey, ErrorCode
from srcbundle.core.errors import BundleError
from srcbundle.core.validators import validate_bundle_config

ENV_PREFIX = "SRCBUNDLE_"
ENV_NESTING = "__"


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    PROJECT_CONFIG = 2
    ENVIRONMENT = 3
    CLI_ARGS = 4
    RUNTIME = 5  # Highest precedence


class ConfigError(BundleError):
    """Configuration error."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        super().__init__(message, error_code)


class ConfigManager:
    """Thread-safe layered configuration manager.

    Manages configuration from multiple sources with precedence:
    1. Compiled defaults (lowest)
    2. Project config file (srcbundle.yaml)
    3. Environment variables (SRCBUNDLE_*)
    4. CLI arguments
    5. Runtime updates (highest)

    Every source is stored under the top-level ``srcbundle`` key.
    """

    DEFAULT_CONFIG = {ConfigKey.ROOT: DEFAULT_CONFIG}

    def __init__(
        self,
        config_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Optional project config file to load
            environ: Environment mapping (defaults to os.environ)
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._files: Dict[str, float] = {}

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file:
            self.load_file(config_file)

        self._load_environment(os.environ if environ is None else environ)

    def load_file(self, file_path: str, source: ConfigSource = ConfigSource.PROJECT_CONFIG) -> None:
        """Load configuration from YAML file.

        A file without a top-level ``srcbundle`` key is treated as the
        section itself.

        Args:
            file_path: Path to YAML config file
            source: Configuration source level

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        path = Path(file_path).expanduser().resolve()

        if not path.exists():
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.INVALID_INPUT)
        except OSError as e:
            raise ConfigError(f"Error loading config {file_path}: {e}", ErrorCode.INTERNAL_ERROR)

        if config_data is None:
            config_data = {}

        if not isinstance(config_data, dict):
            raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)

        if ConfigKey.ROOT not in config_data:
            config_data = {ConfigKey.ROOT: config_data}

        with self._lock:
            self._config[source] = config_data
            self._files[str(path)] = path.stat().st_mtime

    def load_dict(self, config_data: Dict[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Load configuration from dictionary.

        Args:
            config_data: Configuration dictionary (with or without ``srcbundle`` key)
            source: Configuration source level
        """
        if ConfigKey.ROOT not in config_data:
            config_data = {ConfigKey.ROOT: config_data}

        with self._lock:
            self._config[source] = copy.deepcopy(config_data)

    def _load_environment(self, environ: Mapping[str, str]) -> None:
        """Load configuration from environment variables.

        Environment variables in format: SRCBUNDLE_KEY=value, with ``__``
        separating nested keys.
        Example: SRCBUNDLE_MINIFY=true, SRCBUNDLE_LOGGING__LEVEL=DEBUG
        """
        env_config: Dict[str, Any] = {}

        for key, value in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING)

            current = env_config
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = self._parse_env_value(value)

        if env_config:
            with self._lock:
                self._config[ConfigSource.ENVIRONMENT] = {ConfigKey.ROOT: env_config}

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value.

        Args:
            value: String value from environment

        Returns:
            Parsed value (bool, int, float, or str)
        """
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Dot-separated key path (e.g., "srcbundle.minify")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return value

            return default

    def _get_nested(self, config: Dict[str, Any], key: str) -> Optional[Any]:
        parts = key.split(".")
        current = config

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]

        return current

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set configuration value.

        Args:
            key: Dot-separated key path
            value: Value to set
            source: Configuration source level
        """
        with self._lock:
            current = self._config.setdefault(source, {})

            parts = key.split(".")
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = value

    def get_all(self) -> Dict[str, Any]:
        """Get merged configuration from all sources.

        Returns:
            Merged configuration dictionary
        """
        with self._lock:
            merged: Dict[str, Any] = {}

            for source in sorted(self._config.keys(), key=lambda s: s.value):
                merged = self._deep_merge(merged, self._config[source])

            return merged

    def get_section(self, validate: bool = True) -> Dict[str, Any]:
        """Get the merged ``srcbundle`` section.

        Args:
            validate: Run structural validation on the merged section

        Returns:
            Section dictionary

        Raises:
            ValidationError: If validation is requested and fails
        """
        section = self.get_all().get(ConfigKey.ROOT, {})
        if validate:
            validate_bundle_config(section)
        return section

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries.

        Lists are replaced, not concatenated.
        """
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

        return result

    def loaded_files(self) -> Dict[str, float]:
        """Return loaded config files mapped to their mtime at load."""
        with self._lock:
            return dict(self._files)

    def clear(self, source: Optional[ConfigSource] = None) -> None:
        """Clear configuration.

        Args:
            source: Specific source to clear, or None for all except defaults
        """
        with self._lock:
            if source:
                if source in self._config and source != ConfigSource.COMPILED_DEFAULTS:
                    del self._config[source]
            else:
                for s in [s for s in self._config if s != ConfigSource.COMPILED_DEFAULTS]:
                    del self._config[s]
