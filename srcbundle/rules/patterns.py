#!/usr/bin/env python3
r"""Pattern rules for selecting files by root-relative path.

This module provides the include/exclude rule system:
- GlobRule: minimatch-style globs (``*``, ``?``, ``[...]``, ``{a,b}``, ``**``)
  matched against the full relative path, dotfiles included
- RegexRule: regular expressions searched in the relative path
- RuleSet: include/exclude lists with exclude precedence
- Path normalization for consistent matching

Patterns are compiled when a rule is built, so a bad pattern fails before
any file is looked at.

Example:
    >>> rules = RuleSet.compile(includes=["lib/**"], excludes=["**/*.test.js"])
    >>> rules.accepts("lib/a.js")
    True
    >>> rules.accepts("lib/a.test.js")
    False
"""

import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Pattern, Tuple

from srcbundle.core.constants import ConfigKey
from srcbundle.core.errors import PatternConfigError
from srcbundle.core.validators import ValidationError, validate_rule_spec


class PatternType(Enum):
    """Pattern matching type."""

    GLOB = "glob"  # Shell-style patterns (*.js, lib/**)
    REGEX = "regex"  # Regular expressions


def normalize_path(path: Any) -> str:
    """Normalize a relative path for matching.

    Args:
        path: str or PathLike

    Returns:
        Path with ``/`` separators and no leading or trailing slash
    """
    path = os.fspath(path)
    return path.replace("\\", "/").strip("/")


class Rule(ABC):
    """A single include/exclude rule.

    Each variant decides with its own semantics; there is no normalization
    across rule types.
    """

    pattern: str

    @property
    @abstractmethod
    def pattern_type(self) -> PatternType:
        """Kind of pattern this rule holds."""

    @abstractmethod
    def matches(self, path: Any) -> bool:
        """Check whether a relative path matches this rule."""

    def __str__(self) -> str:
        return f"{self.pattern_type.value}:{self.pattern}"


@dataclass(frozen=True)
class GlobRule(Rule):
    """Glob rule evaluated against the whole relative path."""

    pattern: str
    _regex: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", _compile_glob(self.pattern))

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.GLOB

    @property
    def regex(self) -> Pattern[str]:
        """Compiled regular expression equivalent of the glob."""
        return self._regex

    def matches(self, path: Any) -> bool:
        return self._regex.fullmatch(normalize_path(path)) is not None


@dataclass(frozen=True)
class RegexRule(Rule):
    """Regular-expression rule; matches if the pattern is found anywhere."""

    pattern: str
    ignore_case: bool = False
    _regex: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.pattern, str):
            raise PatternConfigError(
                f"Regex pattern must be a string, got {type(self.pattern).__name__}",
                self.pattern,
            )

        flags = re.IGNORECASE if self.ignore_case else 0
        try:
            compiled = re.compile(self.pattern, flags)
        except re.error as e:
            raise PatternConfigError(f"Invalid regex {self.pattern!r}: {e}", self.pattern) from e

        object.__setattr__(self, "_regex", compiled)

    @classmethod
    def from_compiled(cls, compiled: Pattern[str]) -> "RegexRule":
        """Build a rule from an already compiled pattern, keeping IGNORECASE."""
        return cls(compiled.pattern, ignore_case=bool(compiled.flags & re.IGNORECASE))

    @property
    def pattern_type(self) -> PatternType:
        return PatternType.REGEX

    def matches(self, path: Any) -> bool:
        return self._regex.search(normalize_path(path)) is not None


def parse_rule(spec: Any) -> Rule:
    """Build a Rule from a configuration value.

    Accepted forms:
    - Rule instance (returned unchanged)
    - compiled ``re.Pattern`` -> RegexRule
    - str -> GlobRule
    - ``{"glob": "..."}`` or ``{"regex": "...", "ignore_case": bool}``

    Args:
        spec: Rule specification

    Returns:
        Compiled rule

    Raises:
        PatternConfigError: If the rule is malformed or the pattern is invalid
    """
    if isinstance(spec, Rule):
        return spec

    if isinstance(spec, re.Pattern):
        return RegexRule.from_compiled(spec)

    if isinstance(spec, str):
        return GlobRule(spec)

    try:
        validate_rule_spec(spec)
    except ValidationError as e:
        raise PatternConfigError(f"Invalid rule {spec!r}: {e}", spec) from e

    if ConfigKey.RULE_REGEX in spec:
        return RegexRule(spec[ConfigKey.RULE_REGEX], spec.get(ConfigKey.RULE_IGNORE_CASE, False))

    return GlobRule(spec[ConfigKey.RULE_GLOB])


def matches(path: Any, rule: Any) -> bool:
    """Check whether a relative path matches a single rule.

    Args:
        path: Root-relative path
        rule: Rule or rule specification (see parse_rule)

    Returns:
        True if the rule matches
    """
    return parse_rule(rule).matches(path)


@dataclass(frozen=True)
class RuleSet:
    """Include and exclude rules for one bundle call.

    A path is accepted iff it matches at least one include rule and no
    exclude rule. An empty include list accepts nothing.
    """

    includes: Tuple[Rule, ...] = ()
    excludes: Tuple[Rule, ...] = ()

    @classmethod
    def compile(cls, includes: Iterable[Any] = (), excludes: Iterable[Any] = ()) -> "RuleSet":
        """Compile raw rule specifications.

        Raises:
            PatternConfigError: On the first invalid rule
        """
        return cls(
            includes=tuple(parse_rule(spec) for spec in includes),
            excludes=tuple(parse_rule(spec) for spec in excludes),
        )

    def is_excluded(self, path: Any) -> bool:
        """Check if any exclude rule matches."""
        return any(rule.matches(path) for rule in self.excludes)

    def is_included(self, path: Any) -> bool:
        """Check if any include rule matches."""
        return any(rule.matches(path) for rule in self.includes)

    def accepts(self, path: Any) -> bool:
        """Check if a path should be bundled.

        Logic:
        1. If matches any exclude rule -> False
        2. If matches any include rule -> True
        3. Otherwise -> False (including when there are no include rules)
        """
        if self.is_excluded(path):
            return False
        return self.is_included(path)

    def explain(self, path: Any) -> Dict[str, bool]:
        """Per-exclude-rule match results, in configuration order."""
        return {str(rule): rule.matches(path) for rule in self.excludes}

    def get_matching_rules(self, path: Any) -> List[Rule]:
        """All include and exclude rules that match the path."""
        return [rule for rule in self.includes + self.excludes if rule.matches(path)]

    def extend(self, includes: Iterable[Any] = (), excludes: Iterable[Any] = ()) -> "RuleSet":
        """Return a new RuleSet with extra rules appended."""
        extra = RuleSet.compile(includes, excludes)
        return RuleSet(self.includes + extra.includes, self.excludes + extra.excludes)


# Glob compilation


def _compile_glob(pattern: Any) -> Pattern[str]:
    """Compile a glob pattern to an anchored regular expression.

    Raises:
        PatternConfigError: If the glob is empty or malformed
    """
    if not isinstance(pattern, str):
        raise PatternConfigError(
            f"Glob pattern must be a string, got {type(pattern).__name__}", pattern
        )

    normalized = pattern.strip()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    normalized = normalized.lstrip("/")

    if not normalized:
        raise PatternConfigError(f"Empty glob pattern: {pattern!r}", pattern)

    alternatives = [_translate(alt) for alt in _expand_braces(normalized, pattern)]

    try:
        return re.compile("(?s)(?:" + "|".join(alternatives) + ")")
    except re.error as e:
        raise PatternConfigError(f"Invalid glob {pattern!r}: {e}", pattern) from e


def _find_unescaped(text: str, char: str, start: int = 0) -> int:
    i = start
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == char:
            return i
        i += 1
    return -1


def _expand_braces(pattern: str, original: str) -> List[str]:
    """Expand ``{a,b}`` alternations into separate patterns.

    A brace group without a top-level comma is kept literally.
    """
    start = _find_unescaped(pattern, "{")
    if start < 0:
        if _find_unescaped(pattern, "}") >= 0:
            raise PatternConfigError(f"Unbalanced '}}' in glob {original!r}", original)
        return [pattern]

    if _find_unescaped(pattern[:start], "}") >= 0:
        raise PatternConfigError(f"Unbalanced '}}' in glob {original!r}", original)

    depth = 0
    parts = []
    last = start + 1
    i = start
    while i < len(pattern):
        c = pattern[i]
        if c == "\\":
            i += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                break
        elif c == "," and depth == 1:
            parts.append(pattern[last:i])
            last = i + 1
        i += 1
    else:
        raise PatternConfigError(f"Unbalanced '{{' in glob {original!r}", original)

    parts.append(pattern[last:i])
    prefix, suffix = pattern[:start], pattern[i + 1 :]

    if len(parts) == 1:
        alternatives = ["\\{" + p + "\\}" for p in _expand_braces(parts[0], original)]
    else:
        alternatives = [alt for part in parts for alt in _expand_braces(part, original)]

    return [prefix + alt + tail for alt in alternatives for tail in _expand_braces(suffix, original)]


def _translate(pattern: str) -> str:
    """Translate one brace-free glob into a regex body."""
    if pattern.endswith("/"):
        pattern += "**"

    segments: List[str] = []
    for segment in pattern.split("/"):
        if segment == "**" and segments and segments[-1] == "**":
            continue
        segments.append(segment)

    pieces = []
    last = len(segments) - 1
    for i, segment in enumerate(segments):
        if segment == "**":
            if i == last:
                pieces.append(".*" if i == 0 else "/.*")
            else:
                pieces.append("(?:.*/)?" if i == 0 else "/(?:.*/)?")
            continue

        separator = "" if i == 0 or segments[i - 1] == "**" else "/"
        pieces.append(separator + _translate_segment(segment, pattern))

    return "".join(pieces)


def _translate_segment(segment: str, pattern: str) -> str:
    """Translate a single path segment; wildcards never cross ``/``."""
    out = []
    i = 0
    n = len(segment)
    while i < n:
        c = segment[i]
        if c == "\\":
            if i + 1 >= n:
                raise PatternConfigError(f"Trailing escape in glob {pattern!r}", pattern)
            out.append(re.escape(segment[i + 1]))
            i += 2
            continue

        if c == "*":
            while i + 1 < n and segment[i + 1] == "*":
                i += 1
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i + 1
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                raise PatternConfigError(f"Unclosed '[' in glob {pattern!r}", pattern)

            body = segment[i + 1 : j]
            negate = body[:1] in ("!", "^")
            if negate:
                body = body[1:]
            body = body.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")
            out.append(("[^/" if negate else "[") + body + "]")
            i = j
        else:
            out.append(re.escape(c))
        i += 1

    return "".join(out)
