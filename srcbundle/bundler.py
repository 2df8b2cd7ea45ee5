#!/usr/bin/env python3
"""Source bundler: select, transform and emit project files.

SourceBundler ties the pieces together for one bundle call:

1. Compile the include/exclude RuleSet (bad patterns fail here)
2. Build the transform pipeline (bad stage config fails here)
3. Walk the project root, pruning dependency caches
4. For each file accepted by the RuleSet: read, transform, emit code and,
   when the pipeline produced one, ``<path>.map``

Files are handled strictly one at a time, so the artifact receives entries
in traversal order.

Example:
    >>> config = BundleConfig(
    ...     project_root="/srv/app",
    ...     includes=["lib/**"],
    ...     excludes=["**/*.test.js"],
    ... )
    >>> artifact = SourceBundler(MemoryArtifact()).bundle(config)
"""

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple, Union

from srcbundle.artifact.sink import ArtifactSink
from srcbundle.core.constants import (
    DEFAULT_COMPILE_CONFIG_FILE,
    SOURCE_MAP_SUFFIX,
    STRUCTURAL_EXCLUDES,
    ConfigKey,
    ErrorCode,
    TransformMethod,
)
from srcbundle.core.errors import TraversalError, error_code_for_os_error
from srcbundle.core.validators import validate_bundle_config
from srcbundle.infrastructure.logger import Logger, LogLevel, get_logger
from srcbundle.rules.patterns import RuleSet
from srcbundle.transforms.base import Transform
from srcbundle.transforms.pipeline import TransformPipeline, build_pipeline
from srcbundle.traversal.filter_files import FilterRules
from srcbundle.traversal.walker import FileEntry, TreeWalker


@dataclass(frozen=True)
class BundleConfig:
    """Configuration for a single bundle call."""

    project_root: Path
    includes: Tuple[Any, ...] = ()
    excludes: Tuple[Any, ...] = ()
    method: str = TransformMethod.NONE.value
    compile_options: Optional[Dict[str, Any]] = None
    compile_config_file: str = DEFAULT_COMPILE_CONFIG_FILE
    compile_command: Optional[List[str]] = None
    minify: bool = False
    minify_options: Dict[str, Any] = field(default_factory=dict)
    minify_command: Optional[List[str]] = None
    compress: bool = True
    transforms: Tuple[Transform, ...] = ()  # custom stages, run after compile/minify
    structural_excludes: Tuple[Pattern[str], ...] = STRUCTURAL_EXCLUDES

    def __post_init__(self) -> None:
        object.__setattr__(self, "project_root", Path(self.project_root))
        object.__setattr__(self, "includes", tuple(self.includes))
        object.__setattr__(self, "excludes", tuple(self.excludes))
        object.__setattr__(self, "transforms", tuple(self.transforms))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], project_root: Union[str, Path]) -> "BundleConfig":
        """Build a config from a ``srcbundle`` configuration section.

        Unknown keys are ignored.

        Raises:
            ValidationError: If the section has the wrong shape
        """
        data = dict(data)
        validate_bundle_config(data)

        kwargs: Dict[str, Any] = {"project_root": project_root}
        mapping = {
            ConfigKey.INCLUDES: "includes",
            ConfigKey.EXCLUDES: "excludes",
            ConfigKey.METHOD: "method",
            ConfigKey.COMPILE: "compile_options",
            ConfigKey.COMPILE_CONFIG_FILE: "compile_config_file",
            ConfigKey.COMPILE_COMMAND: "compile_command",
            ConfigKey.MINIFY: "minify",
            ConfigKey.MINIFY_OPTIONS: "minify_options",
            ConfigKey.MINIFY_COMMAND: "minify_command",
            ConfigKey.COMPRESS: "compress",
        }
        for key, attr in mapping.items():
            if data.get(key) is not None:
                kwargs[attr] = data[key]

        return cls(**kwargs)

    def with_filter_rules(self, rules: FilterRules) -> "BundleConfig":
        """Return a copy with marker-file patterns appended."""
        return dataclasses.replace(
            self,
            includes=self.includes + tuple(rules.includes),
            excludes=self.excludes + tuple(rules.excludes),
        )


class SourceBundler:
    """Walks a project and feeds selected, transformed files to an artifact."""

    def __init__(self, artifact: ArtifactSink, logger: Optional[Logger] = None):
        """Initialize bundler.

        Args:
            artifact: Sink receiving emitted files
            logger: Logger (global logger if None)
        """
        self.artifact = artifact
        self._logger = logger or get_logger()
        self._reset_stats()

    def bundle(self, config: BundleConfig) -> ArtifactSink:
        """Bundle the project described by ``config`` into the artifact.

        Args:
            config: Bundle configuration

        Returns:
            The bundler's artifact (same instance, now holding the files)

        Raises:
            PatternConfigError: Invalid include/exclude rule, before traversal
            ConfigResolutionError: Unresolvable stage config, before traversal
            TraversalError: Directory listing or file read failure
            TransformError: A stage failed on a file
            ArtifactError: The sink refused an entry
        """
        rules = RuleSet.compile(config.includes, config.excludes)
        pipeline = build_pipeline(config, self._logger)
        walker = TreeWalker(config.structural_excludes)

        root = config.project_root
        if not root.is_dir():
            raise TraversalError(
                f"Project root is not a directory: {root}", str(root), ErrorCode.NOT_FOUND
            )

        self._reset_stats()
        self._logger.info(
            "Bundling sources",
            root=str(root),
            includes=len(rules.includes),
            excludes=len(rules.excludes),
            stages=len(pipeline),
        )

        walker.walk(root, lambda entry: self._process(entry, rules, pipeline, config))

        self._logger.info("Bundle complete", **self._stats)
        return self.artifact

    def _process(
        self,
        entry: FileEntry,
        rules: RuleSet,
        pipeline: TransformPipeline,
        config: BundleConfig,
    ) -> None:
        relative_path = entry.relative_path
        self._stats["files_seen"] += 1

        if self._logger.is_enabled_for(LogLevel.DEBUG):
            self._logger.debug("Evaluating file", file=relative_path, excludes=rules.explain(relative_path))

        if not rules.accepts(relative_path):
            self._stats["files_excluded"] += 1
            return

        try:
            code = entry.path.read_bytes()
        except OSError as e:
            raise TraversalError(
                f"Cannot read {entry.path}: {e.strerror or e}",
                str(entry.path),
                error_code_for_os_error(e),
            ) from e

        with self._logger.add_context(file=relative_path):
            result = pipeline.run(code, b"", str(entry.path))

            self.artifact.add_buffer(result.code, relative_path, config.compress)
            if result.map:
                self.artifact.add_buffer(
                    result.map, relative_path + SOURCE_MAP_SUFFIX, config.compress
                )
                self._stats["maps_emitted"] += 1

            self._logger.debug("Bundled file", stages=result.metadata["transforms_applied"])

        self._stats["files_included"] += 1

    def _reset_stats(self) -> None:
        self._stats = {
            "files_seen": 0,
            "files_included": 0,
            "files_excluded": 0,
            "maps_emitted": 0,
        }

    def get_stats(self) -> Dict[str, int]:
        """Counters for the most recent bundle call."""
        return self._stats.copy()
