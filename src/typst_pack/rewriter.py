"""
Content transforms applied while assembling a package.

- `rewrite_imports`: turns ``#import "../main.typ"`` style self-imports in
  ``.typ`` files into ``#import "@preview/<name>:<version>"``
- `strip_schema_lines`: drops editor ``#:schema`` hints from ``typst.toml``
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import PurePosixPath

from .errors import ConfigError
from .utils import normalize_path

SCHEMA_DIRECTIVE = "#:schema"
PACKAGE_NAMESPACE = "preview"


def package_import_path(package_name: str, package_version: str) -> str:
    """Return the qualified import coordinate ``@preview/<name>:<version>``."""
    return f"@{PACKAGE_NAMESPACE}/{package_name}:{package_version}"


def entrypoint_file_name(entrypoint: str) -> str:
    """
    Get the file name part of an entrypoint path.

    Raises:
        ConfigError: If the entrypoint has no file name (e.g. ``""`` or ``"src/.."``).
    """
    name = PurePosixPath(normalize_path(entrypoint)).name
    if not name or name == "..":
        raise ConfigError(f"Invalid entrypoint name: {entrypoint!r}")
    return name


@lru_cache(maxsize=32)
def _self_import_regex(entrypoint_name: str) -> re.Pattern[str]:
    # Group 1: the ascending path. Group 2: an in-string specifier, kept verbatim.
    return re.compile(
        r'#import\s+"((?:\.\./)+' + re.escape(entrypoint_name) + r')((?::\s*[^"]*)?)"'
    )


def rewrite_imports(
    content: str,
    package_name: str,
    package_version: str,
    entrypoint: str,
) -> str:
    """
    Rewrite relative imports of the package entrypoint to the published coordinate.

    Only paths made purely of ``../`` segments followed by the entrypoint's file
    name are rewritten; anything after the closing quote (``: foo, bar``) is left
    as is. Already-qualified imports do not match, so the rewrite is idempotent.

    Args:
        content: Source of a ``.typ`` file.
        package_name: Published package name.
        package_version: Published package version.
        entrypoint: Package entrypoint (only its file name is used).

    Returns:
        The rewritten source.
    """
    regex = _self_import_regex(entrypoint_file_name(entrypoint))
    target = package_import_path(package_name, package_version)

    def _replace(match: re.Match[str]) -> str:
        specifier = match.group(2) or ""
        return f'#import "{target}{specifier}"'

    return regex.sub(_replace, content)


def strip_schema_lines(content: str) -> str:
    """
    Remove ``#:schema`` lines from a manifest.

    Lines are split on ``\\n`` (a trailing ``\\r`` is dropped) and re-joined with
    ``\\n``; blank lines and ordering are preserved.

    Args:
        content: Manifest text.

    Returns:
        Manifest text without schema directives.
    """
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    kept = []
    for line in lines:
        if line.endswith("\r"):
            line = line[:-1]
        if line.lstrip().startswith(SCHEMA_DIRECTIVE):
            continue
        kept.append(line)

    return "\n".join(kept)
