"""
Exclusion rules for typst-pack.

Patterns from ``[package] exclude`` are classified once, when the matcher is
built:

- Glob rules contain any of ``* ? [ ]`` and are matched against the entry's
  own package-relative path. ``*`` and ``?`` never cross ``/``; ``**`` is only
  special as a whole path segment.
- Literal rules are exact relative paths. A literal that ends with a separator
  or names an existing directory also excludes everything beneath it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import pathspec
from pathspec.pattern import RegexPattern

from .errors import ConfigError
from .utils import normalize_path

GLOB_METACHARACTERS = frozenset("*?[]")


def has_glob_metacharacters(pattern: str) -> bool:
    """Return True if the pattern should be treated as a glob."""
    return any(c in GLOB_METACHARACTERS for c in pattern)


def _clean_relative(path: str) -> str:
    """Normalize a package-relative path to ``a/b/c`` form."""
    path = normalize_path(path)
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def _translate_segment(segment: str, pattern: str) -> str:
    """Translate one path segment of a glob into a regex fragment."""
    out: list[str] = []
    i, n = 0, len(segment)

    while i < n:
        c = segment[i]
        i += 1

        if c == "*":
            # A run of stars inside a segment is a plain wildcard
            while i < n and segment[i] == "*":
                i += 1
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                raise ConfigError(
                    f"Invalid exclude pattern {pattern!r}: unclosed character class"
                )

            body = segment[i:j]
            i = j + 1

            negate = body[:1] in ("!", "^")
            if negate:
                body = body[1:]
            body = body.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")
            out.append(f"[^/{body}]" if negate else f"[{body}]")
        else:
            out.append(re.escape(c))

    return "".join(out)


def glob_to_regex(pattern: str) -> str:
    """
    Translate a glob pattern into an anchored regular expression.

    Args:
        pattern: Glob pattern, using ``/`` (or ``\\``) as separator.

    Returns:
        Regex source matching whole package-relative paths.

    Raises:
        ConfigError: If the pattern is malformed.
    """
    segments = _clean_relative(pattern).rstrip("/").split("/")
    parts: list[str] = []

    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            parts.append(".*" if last else "(?:.*/)?")
        else:
            parts.append(_translate_segment(segment, pattern))
            if not last:
                parts.append("/")

    return "^" + "".join(parts) + "$"


@dataclass(frozen=True)
class LiteralRule:
    """A non-glob exclusion rule.

    Attributes:
        pattern: Original pattern text.
        path: Normalized relative path (``/`` separated, no trailing slash).
        is_directory: Whether descendants of `path` are excluded too.
    """

    pattern: str
    path: str
    is_directory: bool

    def matches(self, rel_path: str) -> bool:
        if rel_path == self.path:
            return True
        return self.is_directory and rel_path.startswith(self.path + "/")


class ExclusionMatcher:
    """
    Decides whether a package-relative path is excluded.

    The rule set is built once and is read-only afterwards, so results depend
    only on the path and the patterns.
    """

    def __init__(self, patterns: Iterable[str], root_path: Optional[Path] = None):
        """
        Classify and compile exclusion patterns.

        Args:
            patterns: Raw patterns from the manifest.
            root_path: Package root; used to detect literals naming directories.

        Raises:
            ConfigError: If any pattern is empty or an invalid glob.
        """
        self.root_path = root_path
        self.patterns = list(patterns)

        self._glob_rules: list[tuple[str, RegexPattern]] = []
        self._dir_glob_rules: list[tuple[str, RegexPattern]] = []
        self.literal_rules: list[LiteralRule] = []

        for pattern in self.patterns:
            if not _clean_relative(pattern).strip("/"):
                raise ConfigError(f"Invalid exclude pattern {pattern!r}: pattern is empty")

            if has_glob_metacharacters(pattern):
                compiled = self._compile_glob(pattern)
                # "build*/" only matches directories
                if normalize_path(pattern).endswith("/"):
                    self._dir_glob_rules.append((pattern, compiled))
                else:
                    self._glob_rules.append((pattern, compiled))
            else:
                self.literal_rules.append(self._classify_literal(pattern))

        self._glob_spec = pathspec.PathSpec([rule for _, rule in self._glob_rules])
        self._dir_glob_spec = pathspec.PathSpec([rule for _, rule in self._dir_glob_rules])

    @staticmethod
    def _compile_glob(pattern: str) -> RegexPattern:
        regex = glob_to_regex(pattern)
        try:
            return RegexPattern(regex)
        except re.error as e:
            raise ConfigError(f"Invalid exclude pattern {pattern!r}: {e}") from e

    def _classify_literal(self, pattern: str) -> LiteralRule:
        native = _clean_relative(pattern)
        path = native.rstrip("/")

        if native.endswith("/"):
            is_directory = True
        elif self.root_path is not None:
            is_directory = (self.root_path / path).is_dir()
        else:
            is_directory = False

        return LiteralRule(pattern=pattern, path=path, is_directory=is_directory)

    def matched_rule(self, relative_path: str, is_directory: bool = False) -> Optional[str]:
        """
        Find the pattern that excludes a path.

        Args:
            relative_path: Path relative to the package root.
            is_directory: Whether the path names a directory.

        Returns:
            The first matching pattern, or None if the path is included.
        """
        rel_path = _clean_relative(relative_path)

        for pattern, rule in self._glob_rules:
            if rule.match_file(rel_path) is not None:
                return pattern
        if is_directory:
            for pattern, rule in self._dir_glob_rules:
                if rule.match_file(rel_path) is not None:
                    return pattern

        for literal in self.literal_rules:
            if literal.matches(rel_path):
                return literal.pattern

        return None

    def is_excluded(self, relative_path: str, is_directory: bool = False) -> bool:
        """
        Check whether a path is excluded.

        Args:
            relative_path: Path relative to the package root (any separator).
            is_directory: Whether the path names a directory.

        Returns:
            True if any glob or literal rule matches.
        """
        rel_path = _clean_relative(relative_path)

        if self._glob_spec.match_file(rel_path):
            return True
        if is_directory and self._dir_glob_spec.match_file(rel_path):
            return True

        return any(literal.matches(rel_path) for literal in self.literal_rules)
