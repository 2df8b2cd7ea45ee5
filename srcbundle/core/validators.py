"""
srcbundle: Input Validators.

Structural validation of the merged ``srcbundle`` configuration section
before it is turned into a BundleConfig. Pattern *syntax* is checked later,
when the RuleSet is compiled; here we only check shapes and types.
"""
import re
from typing import Any, Dict

from srcbundle.core.constants import ConfigKey, ErrorCode, Limits, TransformMethod
from srcbundle.core.errors import BundleError


class ValidationError(BundleError):
    """Raised when configuration values have the wrong shape or type."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message, error_code)


def validate_bundle_config(config: Dict[str, Any]) -> bool:
    """Validate the ``srcbundle`` configuration section.

    Args:
        config: Configuration dictionary (the ``srcbundle`` section)

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    for key in (ConfigKey.INCLUDES, ConfigKey.EXCLUDES):
        if key not in config:
            continue

        rules = config[key]
        if not isinstance(rules, list):
            raise ValidationError(f"'{key}' must be a list")

        for i, rule in enumerate(rules):
            try:
                validate_rule_spec(rule)
            except ValidationError as e:
                raise ValidationError(f"Invalid rule in '{key}' at index {i}: {e}")

    if ConfigKey.METHOD in config:
        method = config[ConfigKey.METHOD]
        try:
            TransformMethod(method)
        except ValueError:
            valid_methods = [m.value for m in TransformMethod]
            raise ValidationError(f"Invalid method: {method}. Must be one of {valid_methods}")

    compile_options = config.get(ConfigKey.COMPILE)
    if compile_options is not None and not isinstance(compile_options, dict):
        raise ValidationError("'compile' must be a mapping of compiler options")

    if ConfigKey.COMPILE_CONFIG_FILE in config:
        name = config[ConfigKey.COMPILE_CONFIG_FILE]
        if not validate_path(name):
            raise ValidationError(f"Invalid compile_config_file: {name}")

    for key in (ConfigKey.MINIFY, ConfigKey.COMPRESS, ConfigKey.FILTER_FILES):
        if key in config and not isinstance(config[key], bool):
            raise ValidationError(f"'{key}' must be boolean: {config[key]}")

    minify_options = config.get(ConfigKey.MINIFY_OPTIONS)
    if minify_options is not None and not isinstance(minify_options, dict):
        raise ValidationError("'minify_options' must be a mapping")

    for key in (ConfigKey.COMPILE_COMMAND, ConfigKey.MINIFY_COMMAND):
        if config.get(key) is not None:
            validate_command(config[key])

    return True


def validate_rule_spec(rule: Any) -> bool:
    """Validate the shape of a single include/exclude rule.

    A rule is a glob string, a compiled regex, or a mapping with exactly
    one of ``glob`` / ``regex`` (plus optional ``ignore_case`` for regexes).

    Args:
        rule: Rule specification

    Returns:
        True if valid

    Raises:
        ValidationError: If the rule has the wrong shape
    """
    if isinstance(rule, (str, re.Pattern)):
        return True

    if not isinstance(rule, dict):
        raise ValidationError(f"Rule must be a string or mapping, got {type(rule).__name__}")

    kinds = [k for k in (ConfigKey.RULE_GLOB, ConfigKey.RULE_REGEX) if k in rule]
    if len(kinds) != 1:
        raise ValidationError("Rule mapping must have exactly one of 'glob' or 'regex'")

    if not isinstance(rule[kinds[0]], str):
        raise ValidationError(f"Rule '{kinds[0]}' value must be a string")

    unknown = set(rule) - {ConfigKey.RULE_GLOB, ConfigKey.RULE_REGEX, ConfigKey.RULE_IGNORE_CASE}
    if unknown:
        raise ValidationError(f"Unknown rule fields: {', '.join(sorted(unknown))}")

    if ConfigKey.RULE_IGNORE_CASE in rule and not isinstance(rule[ConfigKey.RULE_IGNORE_CASE], bool):
        raise ValidationError("Rule 'ignore_case' must be boolean")

    return True


def validate_command(command: Any) -> bool:
    """Validate an external tool argv template.

    Args:
        command: Candidate argv list

    Returns:
        True if valid

    Raises:
        ValidationError: If command is not a non-empty list of strings
    """
    if not isinstance(command, list) or not command:
        raise ValidationError("Command must be a non-empty list of arguments")

    for arg in command:
        if not isinstance(arg, str):
            raise ValidationError(f"Command arguments must be strings: {arg!r}")

    return True


def validate_path(path: Any) -> bool:
    """Check that a value is a usable path string.

    Args:
        path: Path to validate

    Returns:
        True if path is a non-empty string without NUL bytes
    """
    if not isinstance(path, str) or not path:
        return False

    if "\x00" in path:
        return False

    return len(path) <= Limits.MAX_PATH_LENGTH
