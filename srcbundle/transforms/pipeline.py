#!/usr/bin/env python3
"""Transform pipeline for chaining code transformations.

This module provides pipeline execution for stages:
- Sequential chaining of (code, source map) pairs
- Halt on first error, with stage and file context
- Construction from bundle configuration
- Pipeline statistics

The pipeline threads values only. It never merges source maps; a stage
that wants an accurate combined map reads the incoming map itself.

Example:
    >>> pipeline = TransformPipeline()
    >>> pipeline.add_transform(CompileTransform(options))
    >>> pipeline.add_transform(MinifyTransform())
    >>> result = pipeline.run(code, b"", "/srv/app/lib/a.js")
"""

import threading
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from srcbundle.core.constants import ErrorCode, TransformMethod
from srcbundle.core.errors import ConfigResolutionError
from srcbundle.infrastructure.logger import Logger, get_logger
from srcbundle.transforms.base import Transform, TransformError, TransformResult
from srcbundle.transforms.compile import CompileTransform, resolve_compile_config
from srcbundle.transforms.minify import MinifyTransform

if TYPE_CHECKING:
    from srcbundle.bundler import BundleConfig


class TransformPipeline:
    """Ordered chain of stages applied to every bundled file."""

    def __init__(self, transforms: Optional[List[Transform]] = None, logger: Optional[Logger] = None):
        """Initialize transform pipeline.

        Args:
            transforms: Initial stages, in execution order
            logger: Logger (global logger if None)
        """
        self._transforms: List[Transform] = list(transforms or [])
        self._lock = threading.RLock()
        self._logger = logger or get_logger()
        self.reset_stats()

    def add_transform(self, transform: Transform) -> None:
        """Append a stage; stages run in the order they are added."""
        with self._lock:
            self._transforms.append(transform)

    def remove_transform(self, name: str) -> bool:
        """Remove stage by name.

        Returns:
            True if a stage was removed
        """
        with self._lock:
            for i, transform in enumerate(self._transforms):
                if transform.name == name:
                    self._transforms.pop(i)
                    return True
        return False

    def clear_transforms(self) -> None:
        """Remove all stages."""
        with self._lock:
            self._transforms.clear()

    def get_transforms(self) -> List[Transform]:
        """Get all stages (copy)."""
        with self._lock:
            return self._transforms.copy()

    def run(self, code: bytes, source_map: bytes = b"", file_path: str = "") -> TransformResult:
        """Run all stages on one file.

        Args:
            code: File content
            source_map: Initial map (normally empty)
            file_path: Path of the file, for stages and error context

        Returns:
            Final (code, map). With no stages this is the input unchanged.

        Raises:
            TransformError: From the first failing stage
        """
        with self._lock:
            transforms = self._transforms.copy()

        current = TransformResult(code=code, map=source_map)
        applied = []

        for transform in transforms:
            try:
                current = transform.apply(current.code, current.map, file_path)
            except TransformError as e:
                self._stats["failed_runs"] += 1
                self._logger.error(
                    "Transform failed",
                    stage=e.transform_name or transform.name,
                    file=file_path,
                    error=e.message,
                )
                raise

            if not current.metadata.get("skipped"):
                applied.append(transform.name)

        self._stats["total_runs"] += 1
        self._stats["successful_runs"] += 1

        return TransformResult(
            code=current.code,
            map=current.map,
            metadata={"transforms_applied": applied},
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get pipeline and per-stage statistics."""
        stats: Dict[str, Any] = self._stats.copy()
        with self._lock:
            stats["transform_stats"] = {t.name: t.get_stats() for t in self._transforms}
        return stats

    def reset_stats(self) -> None:
        """Reset pipeline and stage statistics."""
        self._stats = {
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
        }
        with self._lock:
            for transform in self._transforms:
                transform.reset_stats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._transforms)

    def __repr__(self) -> str:
        with self._lock:
            transform_names = [t.name for t in self._transforms]
        return f"<TransformPipeline transforms={transform_names}>"


def build_pipeline(config: "BundleConfig", logger: Optional[Logger] = None) -> TransformPipeline:
    """Build the stage list for a bundle call.

    Order is fixed: the compile stage (if ``method`` selects it), then the
    minify stage (if enabled), then any custom ``transforms``. Compiler options are resolved here, so a
    missing or broken project config fails before any file is read.

    Args:
        config: Bundle configuration
        logger: Logger passed to the pipeline

    Returns:
        Configured pipeline

    Raises:
        ConfigResolutionError: Unknown method or unresolvable stage config
    """
    try:
        method = TransformMethod(config.method)
    except ValueError as e:
        valid_methods = [m.value for m in TransformMethod]
        raise ConfigResolutionError(
            f"Unknown transform method: {config.method!r}. Must be one of {valid_methods}",
            ErrorCode.INVALID_INPUT,
        ) from e

    pipeline = TransformPipeline(logger=logger)

    if method is TransformMethod.COMPILE:
        options = resolve_compile_config(
            config.project_root, config.compile_options, config.compile_config_file
        )
        pipeline.add_transform(
            CompileTransform(options, command=config.compile_command, cwd=str(config.project_root))
        )

    if config.minify:
        pipeline.add_transform(
            MinifyTransform(
                config.minify_options, command=config.minify_command, cwd=str(config.project_root)
            )
        )

    for transform in config.transforms:
        pipeline.add_transform(transform)

    return pipeline
