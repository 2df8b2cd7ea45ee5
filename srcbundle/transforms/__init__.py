"""srcbundle transforms - code/source-map transformation stages.

This module provides:
- TransformPipeline: Chain stages, threading (code, map) through them
- Transform base class, TransformResult, TransformError
- CommandTransform: Stage backed by an external program
- CompileTransform / MinifyTransform: the compile and minify stages
"""

from .base import Transform, TransformError, TransformResult, TransformType
from .command import CommandTransform
from .compile import CompileTransform, resolve_compile_config
from .minify import MinifyTransform
from .pipeline import TransformPipeline, build_pipeline

__all__ = [
    # Pipeline
    "TransformPipeline",
    "build_pipeline",
    # Base classes
    "Transform",
    "TransformResult",
    "TransformError",
    "TransformType",
    # External program stages
    "CommandTransform",
    "CompileTransform",
    "MinifyTransform",
    "resolve_compile_config",
]
