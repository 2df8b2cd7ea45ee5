"""srcbundle rules.

This module provides file selection rules:
- GlobRule / RegexRule: the two Rule variants
- RuleSet: include/exclude lists with exclude precedence

Rules decide which files under the project root end up in the artifact,
based only on each file's root-relative path.
"""

from .patterns import (
    GlobRule,
    PatternType,
    RegexRule,
    Rule,
    RuleSet,
    matches,
    normalize_path,
    parse_rule,
)

__all__ = [
    "PatternType",
    "Rule",
    "GlobRule",
    "RegexRule",
    "RuleSet",
    "matches",
    "normalize_path",
    "parse_rule",
]
