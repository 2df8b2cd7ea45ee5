"""srcbundle - source selection and transform pipeline for deployment artifacts.

Public API:
    SourceBundler: Walk a project, select files, transform and emit them
    BundleConfig: Immutable per-call bundle configuration
    RuleSet: Compiled include/exclude rules
    TransformPipeline: Ordered chain of code/map transforms
    MemoryArtifact, ZipArtifact: Artifact sinks
"""

from srcbundle.artifact import ArtifactSink, MemoryArtifact, ZipArtifact
from srcbundle.bundler import BundleConfig, SourceBundler
from srcbundle.core.constants import SRCBUNDLE_VERSION
from srcbundle.rules import GlobRule, RegexRule, Rule, RuleSet
from srcbundle.transforms import Transform, TransformPipeline, TransformResult

__version__ = SRCBUNDLE_VERSION

__all__ = [
    "ArtifactSink",
    "MemoryArtifact",
    "ZipArtifact",
    "BundleConfig",
    "SourceBundler",
    "GlobRule",
    "RegexRule",
    "Rule",
    "RuleSet",
    "Transform",
    "TransformPipeline",
    "TransformResult",
]
