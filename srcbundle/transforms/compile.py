#!/usr/bin/env python3
"""Compiler stage.

Runs a babel-style compiler as an external program. Compiler options come
either from the bundle configuration or from a project-level config file
(``.babelrc`` by default). That file is read as JSON, falling back to
PyYAML for files written in YAML.

Example:
    >>> options = resolve_compile_config("/srv/app", None, ".babelrc")
    >>> stage = CompileTransform(options)
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from srcbundle.core.constants import DEFAULT_COMPILE_CONFIG_FILE, ErrorCode
from srcbundle.core.errors import ConfigResolutionError
from srcbundle.transforms.base import TransformType
from srcbundle.transforms.command import CommandTransform

DEFAULT_COMPILE_COMMAND = [
    "npx",
    "babel",
    "{{ input }}",
    "--out-file",
    "{{ output }}",
    "--source-maps",
    "--config-file",
    "{{ options_file }}",
    "{% if input_map %}--input-source-map={{ input_map }}{% endif %}",
]


def resolve_compile_config(
    project_root: Union[str, Path],
    options: Optional[Dict[str, Any]] = None,
    config_file: str = DEFAULT_COMPILE_CONFIG_FILE,
) -> Dict[str, Any]:
    """Resolve compiler options.

    Explicit options win. Otherwise ``<project_root>/<config_file>`` must
    exist and hold a mapping.

    Args:
        project_root: Project root directory
        options: Options from the bundle configuration
        config_file: Project-level config file name

    Returns:
        Compiler options

    Raises:
        ConfigResolutionError: If the config file is missing or invalid
    """
    if options is not None:
        return dict(options)

    path = Path(project_root) / config_file

    if not path.is_file():
        raise ConfigResolutionError(
            f"No compile options configured and {path} not found", ErrorCode.NOT_FOUND
        )

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigResolutionError(f"Cannot decode {path}: {e}", ErrorCode.INVALID_INPUT) from e
    except OSError as e:
        raise ConfigResolutionError(f"Cannot read {path}: {e}", ErrorCode.INTERNAL_ERROR) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Not JSON; YAML spellings are accepted too
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigResolutionError(f"Cannot parse {path}: {e}", ErrorCode.INVALID_INPUT) from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigResolutionError(
            f"{path} must contain a mapping, got {type(data).__name__}", ErrorCode.INVALID_INPUT
        )

    return data


class CompileTransform(CommandTransform):
    """Compile stage; always first in the pipeline when selected."""

    transform_type = TransformType.COMPILE
    default_command: List[str] = DEFAULT_COMPILE_COMMAND

    def __init__(
        self,
        options: Dict[str, Any],
        name: str = "compile",
        command: Optional[List[str]] = None,
        **kwargs,
    ):
        """Initialize compile transform.

        Args:
            options: Resolved compiler options
            name: Transform name
            command: argv template override
            **kwargs: Passed to CommandTransform
        """
        super().__init__(name=name, command=command, options=options, **kwargs)
