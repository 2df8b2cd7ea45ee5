"""srcbundle artifact sinks.

- ArtifactSink: the ``add_buffer(data, relative_path, compress)`` interface
- MemoryArtifact: in-memory sink
- ZipArtifact: reproducible zip archive sink
"""

from .sink import ArtifactEntry, ArtifactSink, MemoryArtifact, ZipArtifact

__all__ = [
    "ArtifactSink",
    "ArtifactEntry",
    "MemoryArtifact",
    "ZipArtifact",
]
