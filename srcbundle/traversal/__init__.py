"""srcbundle traversal.

- TreeWalker: depth-first file enumeration with structural pruning
- FileEntry: one file found under the project root
- FilterFileScanner: optional marker-file pre-pass producing extra rules
"""

from .filter_files import FilterFileScanner, FilterRules, relativize_pattern
from .walker import FileEntry, TreeWalker

__all__ = [
    "FileEntry",
    "TreeWalker",
    "FilterFileScanner",
    "FilterRules",
    "relativize_pattern",
]
