"""
CLI entry point for typst-pack.

Provides a command-line interface for packaging Typst templates for publication.
"""

from __future__ import annotations

import traceback
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .assembler import Action, PlannedEntry
from .compiler import DEFAULT_COMPILER
from .errors import BuildError, ConfigError, PackError
from .manifest import OutputRoot
from .packager import build_package, plan_package

# Initialize CLI app
app = typer.Typer(
    name="typst-pack",
    help="Package a Typst template for publication under @preview/<name>:<version>.",
    add_completion=False,
)

console = Console()

ACTION_STYLES: dict[Action, str] = {
    Action.CREATE_DIR: "blue",
    Action.STRIP_MANIFEST: "magenta",
    Action.REWRITE_IMPORTS: "green",
    Action.COPY: "white",
    Action.EXCLUDE: "yellow",
    Action.SKIP: "yellow",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"typst-pack version {__version__}")
        raise typer.Exit()


def format_entry(planned: PlannedEntry) -> str:
    """Render one planned entry as a console line."""
    style = ACTION_STYLES[planned.action]
    path = escape(planned.entry.relative_path + ("/" if planned.entry.is_dir else ""))
    line = f"[{style}]{planned.action.value:>7}[/{style}] {path}"
    if planned.reason:
        line += f" [dim]({escape(planned.reason)})[/dim]"
    return line


@app.command()
def build(
    toml_file: Path = typer.Argument(
        ...,
        metavar="TOML_FILE",
        help="Path to typst.toml, or to the package directory containing it.",
    ),
    output_dir: OutputRoot = typer.Option(
        OutputRoot.OUTPUT,
        "--output-dir", "-o",
        help="Output root directory: 'output' or 'universe'.",
    ),
    typst: str = typer.Option(
        DEFAULT_COMPILER,
        "--typst",
        envvar="TYPST_PACK_TYPST",
        help="Typst compiler executable used to build the template.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run", "-n",
        help="List what would be packaged without compiling or writing anything.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Print every packaged entry and full tracebacks on error.",
    ),
    version: bool = typer.Option(
        False,
        "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """
    Package a Typst template into <output-dir>/<name>/<version>.

    Examples:

        # Package the template in ./cards
        typst-pack cards

        # Point at the manifest directly and write into ./universe
        typst-pack cards/typst.toml --output-dir universe

        # See what would be packaged
        typst-pack cards --dry-run
    """
    try:
        if dry_run:
            manifest, target, planned = plan_package(toml_file, output_dir)
            heading = f"{manifest.name} v{manifest.version} -> {target}"
            console.print(f"[bold]{escape(heading)}[/bold]", soft_wrap=True)
            for entry in planned:
                console.print(format_entry(entry))
            included = sum(1 for p in planned if p.action not in (Action.EXCLUDE, Action.SKIP))
            console.print(f"[cyan]{included} of {len(planned)} entries would be packaged[/cyan]")
            return

        on_entry = (lambda p: console.print(format_entry(p))) if verbose else None

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Packaging...", total=None)
            result = build_package(toml_file, output_dir, compiler=typst, on_entry=on_entry)

        if verbose:
            stats = result.stats
            console.print(
                f"[dim]{stats.files_written} files written, "
                f"{stats.files_rewritten} rewritten, "
                f"{stats.entries_excluded} excluded[/dim]"
            )
        console.print(escape(result.summary), soft_wrap=True)

    except ConfigError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]", soft_wrap=True)
        raise typer.Exit(1)
    except BuildError as e:
        console.print(f"[red]Build error: {escape(str(e))}[/red]", soft_wrap=True)
        raise typer.Exit(1)
    except PackError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]", soft_wrap=True)
        if verbose:
            console.print(traceback.format_exc())
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
