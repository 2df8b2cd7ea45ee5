#!/usr/bin/env python3
"""Artifact sinks that receive bundled files.

The bundler only needs ``add_buffer(data, relative_path, compress)``.
Two sinks are provided:
- MemoryArtifact: keeps entries in insertion order (hosts, tests)
- ZipArtifact: writes a zip archive with fixed timestamps so that the same
  input produces the same bytes

Both refuse a second entry for the same path.

Example:
    >>> with ZipArtifact("dist/app.zip") as artifact:
    ...     SourceBundler(artifact).bundle(config)
"""

import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from srcbundle.core.constants import ErrorCode
from srcbundle.core.errors import ArtifactError
from srcbundle.rules.patterns import normalize_path

# Earliest timestamp a zip entry can carry
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
ZIP_FILE_MODE = 0o644


class ArtifactSink(ABC):
    """Destination for emitted files."""

    @abstractmethod
    def add_buffer(self, data: bytes, relative_path: str, compress: bool) -> None:
        """Add one file.

        Args:
            data: File content
            relative_path: Path inside the artifact
            compress: Whether to compress the entry

        Raises:
            ArtifactError: If the entry cannot be added
        """


@dataclass(frozen=True)
class ArtifactEntry:
    """One file held by a MemoryArtifact."""

    data: bytes
    compress: bool


class MemoryArtifact(ArtifactSink):
    """In-memory artifact keeping entries in write order."""

    def __init__(self):
        self._entries: Dict[str, ArtifactEntry] = {}

    def add_buffer(self, data: bytes, relative_path: str, compress: bool) -> None:
        path = normalize_path(relative_path)
        if path in self._entries:
            raise ArtifactError(f"Duplicate artifact entry: {path}")
        self._entries[path] = ArtifactEntry(bytes(data), compress)

    def get(self, relative_path: str) -> Optional[bytes]:
        """Content stored at a path, or None."""
        entry = self._entries.get(normalize_path(relative_path))
        return entry.data if entry else None

    def get_entry(self, relative_path: str) -> Optional[ArtifactEntry]:
        return self._entries.get(normalize_path(relative_path))

    def paths(self) -> List[str]:
        """Entry paths in write order."""
        return list(self._entries)

    def __contains__(self, relative_path: object) -> bool:
        return isinstance(relative_path, str) and normalize_path(relative_path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<MemoryArtifact entries={len(self._entries)}>"


class ZipArtifact(ArtifactSink):
    """Zip archive artifact.

    Entries are deflated when ``compress`` is true and stored otherwise.
    Use as a context manager, or call close() when done. A context that
    exits with an exception deletes the partial archive.
    """

    def __init__(self, path: Union[str, Path], compresslevel: Optional[int] = None):
        """Open a new archive for writing (truncates an existing file).

        Args:
            path: Archive path
            compresslevel: Deflate level (zlib default if None)
        """
        self.path = Path(path)
        self.compresslevel = compresslevel
        self._names: List[str] = []
        self._name_set: Set[str] = set()
        self._zip: Optional[zipfile.ZipFile] = zipfile.ZipFile(self.path, "w")

    def add_buffer(self, data: bytes, relative_path: str, compress: bool) -> None:
        if self._zip is None:
            raise ArtifactError(f"Artifact already closed: {self.path}", ErrorCode.INVALID_INPUT)

        name = normalize_path(relative_path)
        if name in self._name_set:
            raise ArtifactError(f"Duplicate artifact entry: {name}")

        info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
        info.compress_type = zipfile.ZIP_DEFLATED if compress else zipfile.ZIP_STORED
        info.external_attr = ZIP_FILE_MODE << 16

        self._zip.writestr(info, bytes(data), compresslevel=self.compresslevel)
        self._names.append(name)
        self._name_set.add(name)

    def namelist(self) -> List[str]:
        """Entry names in write order."""
        return list(self._names)

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def discard(self) -> None:
        """Close and delete the archive, leaving nothing at ``path``."""
        self.close()
        self.path.unlink(missing_ok=True)

    @property
    def closed(self) -> bool:
        return self._zip is None

    def __enter__(self) -> "ZipArtifact":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.discard()
        else:
            self.close()

    def __repr__(self) -> str:
        return f"<ZipArtifact path={self.path} entries={len(self._names)}>"
