"""
Template build orchestration.

Runs the external ``typst`` compiler to check that a package's template
entrypoint builds, and to render its thumbnail.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .errors import BuildError
from .manifest import PackageManifest, TemplateDescriptor

console = Console()

DEFAULT_COMPILER = "typst"


def template_entrypoint_path(package_name: str, template: TemplateDescriptor) -> Path:
    """Path of the template entrypoint, relative to the package's parent directory."""
    return Path(package_name) / template.relative_path / template.entrypoint


def _run_compiler(
    args: list[str],
    cwd: Path,
    description: str,
    failure_message: str,
) -> subprocess.CompletedProcess[str]:
    """
    Run the compiler and raise if it fails.

    Args:
        args: Full command line.
        cwd: Working directory.
        description: What is being built (used if the process cannot start).
        failure_message: Heading for the error on a non-zero exit.

    Raises:
        BuildError: If the process cannot be launched or exits non-zero.
    """
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise BuildError(f"Failed to {description}: {e}") from e

    if result.returncode != 0:
        raise BuildError(
            f"{failure_message}\nStdout: {result.stdout}\nStderr: {result.stderr}"
        )
    return result


def compile_template(
    package_dir: Path,
    package_name: str,
    template: TemplateDescriptor,
    compiler: str = DEFAULT_COMPILER,
) -> None:
    """
    Compile the template entrypoint to check that it builds.

    Args:
        package_dir: Package root (the directory holding ``typst.toml``).
        package_name: Package name; the template path is rooted at it.
        template: Template descriptor from the manifest.
        compiler: Compiler executable.

    Raises:
        BuildError: If compilation fails.
    """
    template_path = template_entrypoint_path(package_name, template)
    _run_compiler(
        [compiler, "compile", "--root", ".", str(template_path)],
        cwd=package_dir.parent,
        description=f"compile template: {template_path}",
        failure_message="Template compilation failed",
    )


def generate_thumbnail(
    package_dir: Path,
    package_name: str,
    template: TemplateDescriptor,
    thumbnail: str,
    compiler: str = DEFAULT_COMPILER,
) -> Path:
    """
    Render the first page of the template into the thumbnail image.

    Returns:
        Thumbnail path, relative to the package's parent directory.

    Raises:
        BuildError: If rendering fails.
    """
    template_path = template_entrypoint_path(package_name, template)
    thumbnail_path = Path(package_name) / thumbnail
    _run_compiler(
        [
            compiler,
            "compile",
            "--root",
            ".",
            "--pages",
            "1",
            str(template_path),
            str(thumbnail_path),
        ],
        cwd=package_dir.parent,
        description="generate thumbnail",
        failure_message="Thumbnail generation failed",
    )
    return thumbnail_path


def build_template(
    manifest: PackageManifest,
    compiler: str = DEFAULT_COMPILER,
) -> Optional[Path]:
    """
    Build the manifest's template, then its thumbnail if one is declared.

    The thumbnail is only attempted after the template compiled successfully.

    Args:
        manifest: Loaded package manifest.
        compiler: Compiler executable.

    Returns:
        The thumbnail path if one was generated, otherwise None.

    Raises:
        BuildError: If either compiler invocation fails.
    """
    template = manifest.template
    if template is None:
        return None

    package_dir = manifest.package_dir
    template_path = template_entrypoint_path(manifest.name, template)
    console.print(f"[cyan]Compiling template {escape(str(template_path))}...[/cyan]")
    compile_template(package_dir, manifest.name, template, compiler)

    if template.thumbnail is None:
        return None

    thumbnail_path = generate_thumbnail(
        package_dir, manifest.name, template, template.thumbnail, compiler
    )
    console.print(f"[green]✓ Thumbnail written to {escape(str(thumbnail_path))}[/green]")
    return thumbnail_path
