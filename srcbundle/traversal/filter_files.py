#!/usr/bin/env python3
"""Per-directory include/ignore marker files.

A project may drop ``.srcbundle-include`` and ``.srcbundle-ignore`` files
anywhere in its tree. Each non-blank line is a pattern relative to the
directory holding the marker; the scanner rewrites them relative to the
project root so that ``*`` in ``lib/.srcbundle-ignore`` becomes ``lib/*``.

The bundler never runs this scan on its own. Callers merge the result into
a BundleConfig with ``BundleConfig.with_filter_rules``.
"""

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Union

from srcbundle.core.constants import EXCLUDE_MARKER, INCLUDE_MARKER, ErrorCode
from srcbundle.core.errors import TraversalError, error_code_for_os_error
from srcbundle.infrastructure.logger import Logger, get_logger
from srcbundle.traversal.walker import FileEntry, TreeWalker


@dataclass
class FilterRules:
    """Root-relative patterns collected from marker files."""

    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.includes or self.excludes)


def relativize_pattern(relative_dir: str, line: str) -> str:
    """Join a marker line onto its directory and normalize the result.

    Args:
        relative_dir: Marker directory relative to the project root ("" for root)
        line: Trimmed, non-blank pattern line

    Returns:
        Root-relative pattern without leading slash; a trailing slash on
        the line is kept
    """
    joined = posixpath.join(relative_dir, line.lstrip("/")) if relative_dir else line
    pattern = posixpath.normpath(joined).strip("/")
    if line.endswith("/") and pattern not in ("", "."):
        pattern += "/"
    return pattern


class FilterFileScanner:
    """Collects include/exclude patterns from marker files under a root."""

    def __init__(
        self,
        include_marker: str = INCLUDE_MARKER,
        exclude_marker: str = EXCLUDE_MARKER,
        structural_excludes: Optional[Iterable[Union[str, Pattern[str]]]] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize scanner.

        Args:
            include_marker: File name contributing include patterns
            exclude_marker: File name contributing exclude patterns
            structural_excludes: Prune rules for the walk (walker default if None)
            logger: Logger (global logger if None)
        """
        self.include_marker = include_marker
        self.exclude_marker = exclude_marker
        self._walker = TreeWalker(structural_excludes)
        self._logger = logger or get_logger()

    def scan(self, root: Union[str, Path]) -> FilterRules:
        """Walk root and aggregate marker file patterns in traversal order.

        Raises:
            TraversalError: If the tree or a marker file cannot be read
        """
        rules = FilterRules()

        def on_file(entry: FileEntry) -> None:
            if entry.name == self.exclude_marker:
                rules.excludes.extend(self._parse(entry))
            elif entry.name == self.include_marker:
                rules.includes.extend(self._parse(entry))

        self._walker.walk(root, on_file)

        self._logger.debug(
            "Scanned filter files",
            root=str(root),
            includes=len(rules.includes),
            excludes=len(rules.excludes),
        )
        return rules

    def _parse(self, entry: FileEntry) -> List[str]:
        try:
            text = entry.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise TraversalError(
                f"Filter file {entry.path} is not valid UTF-8: {e.reason}",
                str(entry.path),
                ErrorCode.INVALID_INPUT,
            ) from e
        except OSError as e:
            raise TraversalError(
                f"Cannot read filter file {entry.path}: {e.strerror or e}",
                str(entry.path),
                error_code_for_os_error(e),
            ) from e

        relative_dir = posixpath.dirname(entry.relative_path)
        return [
            relativize_pattern(relative_dir, line.strip())
            for line in text.splitlines()
            if line.strip()
        ]
