#!/usr/bin/env python3
"""Base classes for code transformations.

This module provides the foundation for all pipeline stages:
- Transform abstract base class
- TransformResult carrying code and source map
- TransformError with stage and file context

A stage receives ``(code, source_map, file_path)`` and returns a new
``(code, source_map)`` pair. An empty map means "no map". Stages hold only
their own options, so the same instance is reused for every file.

Example:
    >>> class UppercaseTransform(Transform):
    ...     def transform(self, code, source_map, file_path):
    ...         return code.upper(), source_map
    ...
    >>> result = UppercaseTransform().apply(b"ok", b"", "src/x.js")
    >>> result.code
    b'OK'
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from srcbundle.core.constants import ErrorCode
from srcbundle.core.errors import BundleError

Buffer = Union[bytes, bytearray, str, None]


class TransformType(Enum):
    """Type of transformation."""

    COMPILE = "compile"  # Language compiler (babel-style)
    MINIFY = "minify"  # Minifier
    CUSTOM = "custom"  # Custom transformation


@dataclass
class TransformResult:
    """Result of running one stage, or a whole pipeline, on one file."""

    code: bytes
    map: bytes = b""
    transform_name: Optional[str] = None
    duration_ms: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_map(self) -> bool:
        return bool(self.map)


class TransformError(BundleError):
    """Error raised by a stage; aborts the file and the bundle."""

    def __init__(
        self,
        message: str,
        transform_name: Optional[str] = None,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ):
        self.transform_name = transform_name
        self.file_path = file_path
        super().__init__(message, error_code)

    def __str__(self) -> str:
        context = []
        if self.transform_name:
            context.append(f"stage={self.transform_name}")
        if self.file_path:
            context.append(f"file={self.file_path}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


def to_bytes(value: Buffer) -> bytes:
    """Coerce stage output to bytes; None becomes empty."""
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class Transform(ABC):
    """Abstract base class for pipeline stages.

    Subclasses implement transform(). Optional overrides:
    - supports(): Restrict the stage to some files
    - get_metadata(): Extra result metadata
    """

    transform_type = TransformType.CUSTOM

    def __init__(self, name: Optional[str] = None, enabled: bool = True):
        """Initialize transform.

        Args:
            name: Optional name for this transform
            enabled: Whether transform is enabled
        """
        self.name = name or self.__class__.__name__
        self.enabled = enabled
        self.reset_stats()

    @abstractmethod
    def transform(self, code: bytes, source_map: bytes, file_path: str) -> Tuple[Buffer, Buffer]:
        """Transform code.

        Args:
            code: Input code
            source_map: Map produced by the previous stage (empty if none)
            file_path: Absolute path of the source file (for context)

        Returns:
            (code, source_map) pair

        Raises:
            TransformError: If transformation fails
        """

    def supports(self, file_path: str) -> bool:
        """Check if this transform applies to the given file."""
        return True

    def apply(self, code: bytes, source_map: bytes, file_path: str) -> TransformResult:
        """Run transform() with timing, stats and error context.

        Disabled or unsupporting stages pass input through unchanged.

        Raises:
            TransformError: Wrapping any failure, tagged with stage and file
        """
        if not self.enabled or not self.supports(file_path):
            return TransformResult(
                code=code,
                map=source_map,
                transform_name=self.name,
                metadata={"skipped": True},
            )

        start_time = time.time()
        self._stats["total_transforms"] += 1

        try:
            new_code, new_map = self.transform(code, source_map, file_path)
            result = TransformResult(
                code=to_bytes(new_code),
                map=to_bytes(new_map),
                transform_name=self.name,
                metadata=self.get_metadata(file_path),
            )
        except TransformError as e:
            self._record_failure(start_time)
            if e.transform_name is None:
                e.transform_name = self.name
            if e.file_path is None:
                e.file_path = file_path
            raise
        except Exception as e:
            self._record_failure(start_time)
            raise TransformError(f"{type(e).__name__}: {e}", self.name, file_path) from e

        result.duration_ms = (time.time() - start_time) * 1000
        self._stats["successful_transforms"] += 1
        self._stats["total_duration_ms"] += result.duration_ms
        return result

    def _record_failure(self, start_time: float) -> None:
        self._stats["failed_transforms"] += 1
        self._stats["total_duration_ms"] += (time.time() - start_time) * 1000

    def get_metadata(self, file_path: str) -> Dict[str, Any]:
        """Get transform metadata for a result."""
        return {"transform": self.name, "type": self.transform_type.value}

    def get_stats(self) -> Dict[str, Any]:
        """Get transform statistics.

        Returns:
            Statistics dictionary
        """
        stats = self._stats.copy()
        if stats["total_transforms"] > 0:
            stats["avg_duration_ms"] = stats["total_duration_ms"] / stats["total_transforms"]
            stats["success_rate"] = stats["successful_transforms"] / stats["total_transforms"]
        else:
            stats["avg_duration_ms"] = 0.0
            stats["success_rate"] = 0.0

        return stats

    def reset_stats(self) -> None:
        """Reset transform statistics."""
        self._stats = {
            "total_transforms": 0,
            "successful_transforms": 0,
            "failed_transforms": 0,
            "total_duration_ms": 0.0,
        }

    def enable(self) -> None:
        """Enable this transform."""
        self.enabled = True

    def disable(self) -> None:
        """Disable this transform."""
        self.enabled = False

    def __repr__(self) -> str:
        status = "enabled" if self.enabled else "disabled"
        return f"<{self.__class__.__name__} name={self.name} {status}>"
