"""
End-to-end packaging pipeline.

load manifest -> validate name -> build template -> assemble output tree
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from .assembler import AssemblyStats, PlannedEntry, assemble, plan_entries
from .compiler import DEFAULT_COMPILER, build_template
from .exclusions import ExclusionMatcher
from .manifest import (
    OutputRoot,
    PackageManifest,
    load_manifest,
    resolve_manifest_path,
    validate_package_name,
)
from .rewriter import entrypoint_file_name


@dataclass
class PackageResult:
    """Outcome of a packaging run."""

    manifest: PackageManifest
    output_dir: Path
    stats: AssemblyStats
    thumbnail: Optional[Path] = None

    @property
    def summary(self) -> str:
        return (
            f"Package '{self.manifest.name}' v{self.manifest.version} "
            f"built successfully to {self.output_dir}"
        )


def prepare(path: Path) -> PackageManifest:
    """Load the manifest at `path` and validate the package name.

    Raises:
        ConfigError: If the manifest is missing, invalid, or misnamed.
    """
    manifest = load_manifest(resolve_manifest_path(path))
    validate_package_name(manifest.name, manifest.package_dir)
    return manifest


def build_package(
    path: Path,
    output_root: Union[str, OutputRoot] = OutputRoot.OUTPUT,
    compiler: str = DEFAULT_COMPILER,
    base_dir: Optional[Path] = None,
    on_entry: Optional[Callable[[PlannedEntry], None]] = None,
) -> PackageResult:
    """
    Package a Typst template into ``<output_root>/<name>/<version>``.

    Args:
        path: Manifest file or directory containing ``typst.toml``.
        output_root: Output root name (``output`` or ``universe``).
        compiler: Compiler executable used for the template build.
        base_dir: Directory the output root is created in (default: cwd).
        on_entry: Optional callback for every assembled entry.

    Returns:
        PackageResult with the output directory and assembly statistics.

    Raises:
        ConfigError: Bad manifest, name mismatch, invalid pattern or output root.
        BuildError: The template or thumbnail failed to build.
        IoError: Any filesystem failure while assembling.
    """
    root = OutputRoot.parse(output_root)
    manifest = prepare(path)

    # Validate patterns and entrypoint before running the compiler
    matcher = ExclusionMatcher(manifest.exclude, manifest.package_dir)
    entrypoint_file_name(manifest.entrypoint)

    thumbnail = build_template(manifest, compiler)

    base = base_dir if base_dir is not None else Path()
    output_dir = manifest.output_dir(base / root.value)

    stats = assemble(
        manifest.package_dir,
        output_dir,
        matcher,
        manifest.name,
        manifest.version,
        manifest.entrypoint,
        on_entry=on_entry,
    )

    return PackageResult(manifest=manifest, output_dir=output_dir, stats=stats, thumbnail=thumbnail)


def plan_package(
    path: Path,
    output_root: Union[str, OutputRoot] = OutputRoot.OUTPUT,
    base_dir: Optional[Path] = None,
) -> tuple[PackageManifest, Path, list[PlannedEntry]]:
    """
    Compute what `build_package` would write, without compiling or writing.

    Returns:
        Tuple of (manifest, output directory, planned entries in walk order).
    """
    root = OutputRoot.parse(output_root)
    manifest = prepare(path)
    matcher = ExclusionMatcher(manifest.exclude, manifest.package_dir)

    base = base_dir if base_dir is not None else Path()
    output_dir = manifest.output_dir(base / root.value)
    return manifest, output_dir, list(plan_entries(manifest.package_dir, matcher, output_dir))
