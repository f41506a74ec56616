"""
voxref CLI

Command line entry point: build the index for a project, resolve
transcripts against it, list files, and keep the index live while
reading transcripts from stdin.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import structlog
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from voxref import __version__
from voxref.config import Config, load_config
from voxref.errors import VoxrefError
from voxref.models import TranscriptMatchResult
from voxref.service import VoxrefService

console = Console()
error_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[bold red]Error:[/bold red] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[bold blue]i[/bold blue] {message}")


def render_result(result: TranscriptMatchResult) -> None:
    """Print an annotated transcript and its matches."""
    console.print(Panel(result.annotated_transcript or "[dim](empty)[/dim]", title="Transcript"))

    if not result.matches:
        print_info("No matches")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=3)
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Path", style="green")
    table.add_column("Score", style="yellow", justify="right")

    for i, match in enumerate(result.matches, 1):
        table.add_row(str(i), match.name, match.kind.value, match.path, f"{match.score:.2f}")

    console.print(table)


def _start(config: Config) -> VoxrefService:
    service = VoxrefService(config)
    try:
        with console.status("[bold blue]Indexing..."):
            service.initialize()
    except VoxrefError as e:
        print_error(str(e))
        sys.exit(1)
    return service


@click.group()
@click.version_option(version=__version__, prog_name="voxref")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--project",
    "-p",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root directory (defaults to the current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, project: Path | None, verbose: bool) -> None:
    """voxref - resolve spoken phrases to files, components and functions."""
    ctx.ensure_object(dict)

    cfg = load_config(config_path=config, project_root=project)
    log_level = logging.DEBUG if verbose else getattr(logging, cfg.log_level)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    ctx.obj["config"] = cfg


@cli.command()
@click.pass_context
def index(ctx: click.Context) -> None:
    """Build the index and show its size."""
    service = _start(ctx.obj["config"])
    try:
        stats = service.get_stats()
        table = Table(title="Index", box=box.ROUNDED, header_style="bold cyan")
        table.add_column("Mapping", style="cyan")
        table.add_column("Entries", justify="right")
        for key in ("files", "folders", "components", "functions"):
            table.add_row(key, str(stats["index"][key]))
        console.print(f"[bold]Root:[/bold] {stats['root']}")
        console.print(table)
    finally:
        service.dispose()


@cli.command()
@click.argument("transcript", nargs=-1, required=True)
@click.pass_context
def match(ctx: click.Context, transcript: tuple[str, ...]) -> None:
    """Resolve artifact references in a transcript."""
    service = _start(ctx.obj["config"])
    try:
        render_result(service.find_in_transcript(" ".join(transcript)))
    finally:
        service.dispose()


@cli.command()
@click.option("--pattern", "-r", help="Regular expression searched in file names")
@click.option("--name", "-n", help="Exact file name to look for")
@click.pass_context
def files(ctx: click.Context, pattern: str | None, name: str | None) -> None:
    """List or search the files under the project root."""
    from voxref.tree import FileTree

    config: Config = ctx.obj["config"]
    tree = FileTree(
        [config.project_root],
        ttl_seconds=config.tree.cache_ttl_seconds,
        ignore_patterns=config.tree.ignore_patterns,
    )

    if name:
        found = tree.find_file(name)
        console.print(f"{name}: {'[green]found[/green]' if found else '[red]not found[/red]'}")
        if not found:
            sys.exit(1)
        return

    paths = tree.search_files(pattern) if pattern else tree.get_file_tree()
    for path in paths:
        console.print(path, highlight=False, soft_wrap=True)
    print_info(f"Found {len(paths)} files")


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Keep the index live and match transcripts read from stdin."""
    service = _start(ctx.obj["config"])
    print_info("Watching for changes. Enter a transcript per line, Ctrl+D to stop.")
    try:
        for line in sys.stdin:
            text = line.strip()
            if text:
                render_result(service.find_in_transcript(text))
    except KeyboardInterrupt:
        pass
    finally:
        service.dispose()


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
