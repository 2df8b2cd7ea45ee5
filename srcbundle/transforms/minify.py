#!/usr/bin/env python3
"""Minifier stage.

Runs a terser-style minifier as an external program, feeding it the map
from the previous stage so the emitted map points at the original source.
"""

from typing import Any, Dict, List, Optional

from srcbundle.transforms.base import TransformType
from srcbundle.transforms.command import CommandTransform

DEFAULT_MINIFY_COMMAND = [
    "npx",
    "terser",
    "{{ input }}",
    "--output",
    "{{ output }}",
    "--config-file",
    "{{ options_file }}",
    "--source-map",
    "{% if input_map %}content='{{ input_map }}',{% endif %}url='{{ map_name }}'",
]


class MinifyTransform(CommandTransform):
    """Minify stage; runs after the compile stage when both are enabled."""

    transform_type = TransformType.MINIFY
    default_command: List[str] = DEFAULT_MINIFY_COMMAND

    def __init__(
        self,
        options: Optional[Dict[str, Any]] = None,
        name: str = "minify",
        command: Optional[List[str]] = None,
        **kwargs,
    ):
        super().__init__(name=name, command=command, options=options, **kwargs)
