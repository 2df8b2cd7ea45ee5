#!/usr/bin/env python3
"""Depth-first project tree traversal.

This module provides the file enumeration used by the bundler:
- Sorted, depth-first descent for a deterministic visit order
- Structural prune rules (dependency caches) applied before descending
- One-file-at-a-time callback protocol
- I/O failures surfaced as TraversalError

Example:
    >>> walker = TreeWalker()
    >>> for entry in walker.iter_files("/srv/app"):
    ...     print(entry.relative_path)
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Pattern, Tuple, Union

from srcbundle.core.constants import STRUCTURAL_EXCLUDES
from srcbundle.core.errors import TraversalError, error_code_for_os_error

# Callback return value False stops the walk; anything else continues.
FileCallback = Callable[["FileEntry"], Optional[bool]]


@dataclass(frozen=True)
class FileEntry:
    """A file found under the project root."""

    root: Path  # Project root the walk started from
    directory: Path  # Directory containing the file
    name: str
    relative_path: str  # Root-relative, "/" separated, no leading/trailing slash

    @property
    def path(self) -> Path:
        """Absolute path of the file."""
        return self.directory / self.name


class TreeWalker:
    """Recursive file enumerator with structural pruning.

    Directories whose root-relative path (as ``/<rel>/``) matches any
    structural exclude are neither entered nor reported. Directories are
    never reported; only regular files are. Symlinked directories are not
    followed.
    """

    def __init__(self, structural_excludes: Optional[Iterable[Union[str, Pattern[str]]]] = None):
        """Initialize walker.

        Args:
            structural_excludes: Prune regexes (strings are compiled);
                defaults to the dependency-cache rules
        """
        if structural_excludes is None:
            structural_excludes = STRUCTURAL_EXCLUDES

        self._structural_excludes: Tuple[Pattern[str], ...] = tuple(
            p if isinstance(p, re.Pattern) else re.compile(p) for p in structural_excludes
        )

    @property
    def structural_excludes(self) -> Tuple[Pattern[str], ...]:
        return self._structural_excludes

    def is_pruned(self, relative_dir: str) -> bool:
        """Check whether a root-relative directory is structurally excluded."""
        probe = f"/{relative_dir}/"
        return any(p.search(probe) for p in self._structural_excludes)

    def iter_files(self, root: Union[str, Path]) -> Iterator[FileEntry]:
        """Yield every non-pruned file under root, depth-first, sorted by name.

        The generator only lists the next directory when the caller asks
        for the next entry, so a caller that finishes each file before
        advancing never has more than one file in flight.

        Raises:
            TraversalError: If a directory cannot be listed
        """
        root_path = Path(root)
        yield from self._walk_dir(root_path, root_path, "")

    def walk(self, root: Union[str, Path], on_file: FileCallback) -> int:
        """Invoke ``on_file`` for each file, advancing only after it returns.

        Args:
            root: Directory to walk
            on_file: Per-file callback; returning False stops the walk

        Returns:
            Number of files delivered to the callback

        Raises:
            TraversalError: If a directory cannot be listed. Files already
                delivered are not retracted.
        """
        count = 0
        for entry in self.iter_files(root):
            count += 1
            if on_file(entry) is False:
                break
        return count

    def _walk_dir(self, root: Path, directory: Path, relative_dir: str) -> Iterator[FileEntry]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise TraversalError(
                f"Cannot list directory {directory}: {e.strerror or e}",
                str(directory),
                error_code_for_os_error(e),
            ) from e

        for entry in entries:
            relative = f"{relative_dir}/{entry.name}" if relative_dir else entry.name

            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file()
            except OSError as e:
                raise TraversalError(
                    f"Cannot stat {entry.path}: {e.strerror or e}",
                    entry.path,
                    error_code_for_os_error(e),
                ) from e

            if is_dir:
                if self.is_pruned(relative):
                    continue
                yield from self._walk_dir(root, Path(entry.path), relative)
            elif is_file:
                yield FileEntry(
                    root=root,
                    directory=directory,
                    name=entry.name,
                    relative_path=relative,
                )
