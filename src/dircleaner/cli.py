"""CLI interface for dircleaner."""

import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.logging import RichHandler
from rich.prompt import Prompt

from dircleaner import __version__
from dircleaner.cleaner import DirectoryCleaner
from dircleaner.config import MAX_WORKERS, TARGET_DIR_TO_REMOVE, CleanerConfig
from dircleaner.display import (
    confirm_removal,
    console,
    select_directories,
    show_run_report,
    show_scanning_progress,
)
from dircleaner.fixtures import init_test_dirs
from dircleaner.models import RunStatus, SortKey

app = typer.Typer(
    name="dircleaner",
    help="Find and remove dependency directories like node_modules",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"dircleaner version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def prompt_working_dir(default: Path) -> Path:
    """Ask for a working directory until an existing one is given."""
    while True:
        answer = Prompt.ask("Enter the working directory", default=str(default))
        path = Path(answer).expanduser()
        if path.is_dir():
            return path
        console.print(f"[red]Not a directory: {answer}[/red]")


@app.command()
def main(
    working_dir: Optional[Path] = typer.Argument(
        None,
        help="Directory to search (defaults to the current directory).",
    ),
    target: str = typer.Option(
        TARGET_DIR_TO_REMOVE,
        "--target",
        "-d",
        envvar="DIRCLEANER_TARGET",
        help="Name of the directories to remove.",
    ),
    sort_by: SortKey = typer.Option(
        SortKey.SIZE,
        "--sort-by",
        "-s",
        case_sensitive=False,
        help="Order candidates by size, last modified or last accessed.",
    ),
    yes: bool = typer.Option(
        False,
        "-y",
        "--yes",
        help="Skip all prompts: select every candidate and don't ask to confirm.",
    ),
    show_all: bool = typer.Option(False, "-a", "--all", help="Show empty candidates too."),
    init_test: bool = typer.Option(
        False, "-t", "--init-test", help="Create test directories of known sizes first."
    ),
    no_cache: bool = typer.Option(False, "-n", "--no-cache", help="Ignore the size cache."),
    workers: int = typer.Option(
        MAX_WORKERS,
        "--workers",
        envvar="DIRCLEANER_WORKERS",
        min=1,
        help="Directories to size in parallel.",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Find directories holding TARGET under WORKING_DIR and remove the ones you pick."""
    configure_logging(verbose)

    if working_dir is None:
        working_dir = Path.cwd() if yes else prompt_working_dir(Path.cwd())
    if not working_dir.is_dir():
        console.print(f"[red]Not a directory: {working_dir}[/red]")
        raise typer.Exit(1)

    if not yes:
        sort_by = SortKey(
            Prompt.ask(
                "Sort by",
                choices=[key.value for key in SortKey],
                default=sort_by.value,
            )
        )
        target = Prompt.ask("Select target directory", default=target)

    try:
        config = CleanerConfig(
            working_dir=working_dir,
            target_dir=target,
            sort_by=sort_by,
            show_empty=show_all,
            use_cache=not no_cache,
            max_workers=workers,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid options: {e.errors()[0]['msg']}[/red]")
        raise typer.Exit(1)

    if init_test:
        created = init_test_dirs(config.test_dir, config.target_dir)
        console.print(f"[dim]Created {len(created)} test directories in {config.test_dir}[/dim]")

    cleaner = DirectoryCleaner(config)
    cleaner.load_cache()

    with show_scanning_progress() as progress:
        progress.add_task(f"Scanning {config.working_dir} for {config.target_dir}...", total=None)

        def select(choices):
            progress.stop()
            if yes:
                return [c.name for c in choices]
            return select_directories(choices, config.target_dir)

        def confirm(names, total):
            if yes:
                return True
            return confirm_removal(names, total, config.target_dir)

        report = cleaner.run(select=select, confirm=confirm)

    show_run_report(report)

    if report.status == RunStatus.SCAN_FAILED:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
