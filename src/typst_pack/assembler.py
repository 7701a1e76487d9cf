"""
Tree assembler for typst-pack.

Walks a package directory, applies exclusion rules, and materializes the
included subset under the destination directory with per-file transforms.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Generator, Iterable, Optional, Union

from .errors import IoError
from .exclusions import ExclusionMatcher
from .manifest import MANIFEST_FILE_NAME
from .rewriter import entrypoint_file_name, rewrite_imports, strip_schema_lines
from .utils import normalize_path, read_text_strict, write_text_exact

TYPST_SUFFIX = ".typ"


class Action(str, Enum):
    """What the assembler does with a source entry."""

    CREATE_DIR = "mkdir"
    STRIP_MANIFEST = "strip"
    REWRITE_IMPORTS = "rewrite"
    COPY = "copy"
    EXCLUDE = "exclude"
    SKIP = "skip"


@dataclass(frozen=True)
class SourceEntry:
    """A file or directory discovered in the package tree.

    Attributes:
        path: Absolute path on disk.
        relative_path: Package-relative path using forward slashes.
        is_dir: True for real (non-symlinked) directories.
        is_symlink: True if the entry itself is a symbolic link.
    """

    path: Path
    relative_path: str
    is_dir: bool
    is_symlink: bool = False


@dataclass(frozen=True)
class PlannedEntry:
    """A source entry together with the action taken for it."""

    entry: SourceEntry
    action: Action
    reason: Optional[str] = None


@dataclass
class AssemblyStats:
    """Counters collected while assembling the output tree."""

    directories_created: int = 0
    files_rewritten: int = 0
    manifests_stripped: int = 0
    files_copied: int = 0
    entries_excluded: int = 0
    entries_skipped: int = 0

    @property
    def files_written(self) -> int:
        return self.files_rewritten + self.manifests_stripped + self.files_copied

    def to_dict(self) -> dict[str, int]:
        return {
            "directories_created": self.directories_created,
            "entries_excluded": self.entries_excluded,
            "entries_skipped": self.entries_skipped,
            "files_copied": self.files_copied,
            "files_rewritten": self.files_rewritten,
            "manifests_stripped": self.manifests_stripped,
        }


def _list_dir(directory: Path) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as entries:
            return sorted(entries, key=lambda e: e.name)
    except OSError as e:
        raise IoError(f"Failed to list directory {directory}: {e}") from e


def walk_entries(root_path: Path) -> Generator[SourceEntry, None, None]:
    """
    Walk a directory tree depth-first, parents before children.

    Siblings are visited in name order, so the traversal is stable across runs.
    Symlinked directories are reported but never descended into.

    Args:
        root_path: Directory to walk (not itself yielded).

    Yields:
        SourceEntry for every file and directory below `root_path`.

    Raises:
        IoError: If a directory cannot be listed or an entry cannot be inspected.
    """
    stack = list(reversed(_list_dir(root_path)))

    while stack:
        dir_entry = stack.pop()
        entry_path = Path(dir_entry.path)

        try:
            is_symlink = dir_entry.is_symlink()
            is_dir = dir_entry.is_dir(follow_symlinks=False)
        except OSError as e:
            raise IoError(f"Failed to inspect {entry_path}: {e}") from e

        try:
            rel_path = normalize_path(str(entry_path.relative_to(root_path)))
        except ValueError as e:
            raise IoError(f"Entry {entry_path} is outside of {root_path}") from e

        yield SourceEntry(
            path=entry_path,
            relative_path=rel_path,
            is_dir=is_dir,
            is_symlink=is_symlink,
        )

        if is_dir:
            stack.extend(reversed(_list_dir(entry_path)))


def _as_matcher(
    exclusions: Union[ExclusionMatcher, Iterable[str]],
    root: Path,
) -> ExclusionMatcher:
    if isinstance(exclusions, ExclusionMatcher):
        return exclusions
    return ExclusionMatcher(exclusions, root)


def _contains_output(entry_path: Path, dest_dir: Path) -> bool:
    """True if `entry_path` is the destination or one of its ancestors."""
    try:
        resolved = entry_path.resolve()
    except OSError:
        return False
    return dest_dir == resolved or dest_dir.is_relative_to(resolved)


def plan_entries(
    source_dir: Path,
    exclusions: Union[ExclusionMatcher, Iterable[str]],
    dest_dir: Optional[Path] = None,
) -> Generator[PlannedEntry, None, None]:
    """
    Decide what to do with every entry of the source tree, without writing.

    Excluded directories are still descended into: glob rules are evaluated per
    path, and directory-prefix literal rules exclude every descendant anyway.

    Args:
        source_dir: Package root.
        exclusions: Exclusion matcher or raw patterns.
        dest_dir: Destination root; if it lies inside `source_dir`, it is skipped.

    Yields:
        PlannedEntry for each entry, in walk order.
    """
    source_dir = source_dir.resolve()
    matcher = _as_matcher(exclusions, source_dir)
    resolved_dest = dest_dir.resolve() if dest_dir is not None else None

    skipped_dirs: list[str] = []

    for entry in walk_entries(source_dir):
        if any(entry.relative_path.startswith(prefix + "/") for prefix in skipped_dirs):
            continue

        if matcher.is_excluded(entry.relative_path, entry.is_dir):
            rule = matcher.matched_rule(entry.relative_path, entry.is_dir)
            yield PlannedEntry(entry, Action.EXCLUDE, rule)
            continue

        if entry.is_dir:
            if resolved_dest is not None and _contains_output(entry.path, resolved_dest):
                skipped_dirs.append(entry.relative_path)
                yield PlannedEntry(entry, Action.SKIP, "output directory")
            else:
                yield PlannedEntry(entry, Action.CREATE_DIR)
        elif entry.is_symlink and entry.path.is_dir():
            yield PlannedEntry(entry, Action.SKIP, "symlinked directory")
        elif entry.relative_path == MANIFEST_FILE_NAME:
            yield PlannedEntry(entry, Action.STRIP_MANIFEST)
        elif entry.path.suffix == TYPST_SUFFIX:
            yield PlannedEntry(entry, Action.REWRITE_IMPORTS)
        else:
            yield PlannedEntry(entry, Action.COPY)


def _ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError(f"Failed to create directory {path}: {e}") from e


def assemble(
    source_dir: Path,
    dest_dir: Path,
    exclusions: Union[ExclusionMatcher, Iterable[str]],
    package_name: str,
    package_version: str,
    entrypoint: str,
    on_entry: Optional[Callable[[PlannedEntry], None]] = None,
) -> AssemblyStats:
    """
    Copy the included subset of `source_dir` into `dest_dir`.

    - Directories are created (idempotently)
    - The root ``typst.toml`` has its ``#:schema`` lines stripped
    - ``.typ`` files have self-imports rewritten
    - Everything else is copied byte for byte

    Existing content in `dest_dir` is not cleaned; on failure the tree may be
    partially written.

    Args:
        source_dir: Package root.
        dest_dir: Output directory (``<root>/<name>/<version>``).
        exclusions: Exclusion matcher or raw patterns.
        package_name: Package name used in rewritten imports.
        package_version: Package version used in rewritten imports.
        entrypoint: Package entrypoint; its file name is the rewrite target.
        on_entry: Optional callback invoked for every planned entry.

    Returns:
        AssemblyStats describing what was written.

    Raises:
        ConfigError: If an exclusion pattern or the entrypoint is invalid.
        IoError: On any filesystem or decoding failure.
    """
    source_dir = source_dir.resolve()

    # Fail on bad patterns/entrypoint before touching the filesystem
    matcher = _as_matcher(exclusions, source_dir)
    entrypoint_file_name(entrypoint)

    _ensure_dir(dest_dir)

    stats = AssemblyStats()

    for planned in plan_entries(source_dir, matcher, dest_dir):
        entry = planned.entry
        if on_entry is not None:
            on_entry(planned)

        dst_path = dest_dir / entry.relative_path

        if planned.action == Action.EXCLUDE:
            stats.entries_excluded += 1
        elif planned.action == Action.SKIP:
            stats.entries_skipped += 1
        elif planned.action == Action.CREATE_DIR:
            _ensure_dir(dst_path)
            stats.directories_created += 1
        else:
            _ensure_dir(dst_path.parent)

            if planned.action == Action.STRIP_MANIFEST:
                write_text_exact(dst_path, strip_schema_lines(read_text_strict(entry.path)))
                stats.manifests_stripped += 1
            elif planned.action == Action.REWRITE_IMPORTS:
                content = rewrite_imports(
                    read_text_strict(entry.path),
                    package_name,
                    package_version,
                    entrypoint,
                )
                write_text_exact(dst_path, content)
                stats.files_rewritten += 1
            else:
                try:
                    shutil.copy(entry.path, dst_path)
                except OSError as e:
                    raise IoError(f"Failed to copy {entry.path} to {dst_path}: {e}") from e
                stats.files_copied += 1

    return stats
