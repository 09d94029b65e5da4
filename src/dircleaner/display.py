"""Rich terminal display for dircleaner."""

from datetime import datetime

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from dircleaner.models import Candidate, CandidateError, RunReport, RunStatus, SizeInfo
from dircleaner.scanner import days_ago

console = Console()


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


def format_age(then: datetime) -> str:
    """Whole days since then, like '3d ago'."""
    return f"{days_ago(then)}d ago"


def show_choices(choices: list[Candidate], target_dir: str) -> None:
    """Display candidates as a numbered table."""
    table = Table(title=f"Directories containing {target_dir}", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Directory")
    table.add_column("Size", justify="right")
    table.add_column("Modified", justify="right")
    table.add_column("Accessed", justify="right")

    for i, choice in enumerate(choices, start=1):
        table.add_row(
            str(i),
            choice.name,
            format_size(choice.size),
            format_age(choice.mtime),
            format_age(choice.atime),
        )

    console.print(table)


def parse_selection(answer: str, choices: list[Candidate]) -> list[str]:
    """
    Turn a selection answer into candidate names.

    Accepts comma or space separated 1-based indices or names, or 'all'.
    Unknown entries are ignored. An empty answer selects nothing.
    """
    answer = answer.strip()
    if not answer:
        return []
    if answer.lower() == "all":
        return [c.name for c in choices]

    names = [c.name for c in choices]
    selected: list[str] = []
    for token in answer.replace(",", " ").split():
        if token.isdigit() and 1 <= int(token) <= len(choices):
            name = names[int(token) - 1]
        elif token in names:
            name = token
        else:
            console.print(f"[yellow]Ignoring unknown selection: {token}[/yellow]")
            continue
        if name not in selected:
            selected.append(name)
    return selected


def select_directories(choices: list[Candidate], target_dir: str) -> list[str]:
    """Show the candidates and ask which to clean."""
    from rich.prompt import Prompt

    show_choices(choices, target_dir)
    answer = Prompt.ask(
        f"Select directories to remove {target_dir} from (numbers or names, 'all')",
        default="",
        show_default=False,
    )
    return parse_selection(answer, choices)


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message, default=True)


def confirm_removal(names: list[str], total: SizeInfo, target_dir: str) -> bool:
    """Ask whether to remove target_dir from the selected directories."""
    return confirm_action(
        f"Are you sure you want to remove {target_dir} from {len(names)} directories?\n"
        f"total size: {total.size_in_mb:.2f} MB"
    )


def show_scan_errors(failures: list[CandidateError]) -> None:
    """List candidates that could not be scanned."""
    if not failures:
        return
    console.print(f"[yellow]Skipped {len(failures)} directories that could not be scanned:[/yellow]")
    for failure in failures:
        console.print(f"  [dim]{failure.name}: {failure.error}[/dim]")


def show_run_report(report: RunReport) -> None:
    """Display the outcome of a run."""
    show_scan_errors(report.scan_failures)

    if report.status == RunStatus.SCAN_FAILED:
        console.print(f"[red]Could not scan {report.working_dir}: {report.error}[/red]")
    elif report.status == RunStatus.NOTHING_FOUND:
        console.print(f"[yellow]No directories found to remove {report.target_dir} from[/yellow]")
    elif report.status == RunStatus.NOTHING_SELECTED:
        console.print("[yellow]Nothing selected[/yellow]")
    elif report.status == RunStatus.ABORTED:
        console.print("[yellow]Aborting[/yellow]")
    else:
        for error in report.errors:
            console.print(f"[red]✗[/red] {error}")
        console.print(
            f"[green]✓[/green] Removal of {report.target_dir} from {len(report.selected)} "
            f"directories in {report.working_dir} completed "
            f"({format_size(report.total.size)} freed)"
        )


def show_scanning_progress() -> Progress:
    """Create spinner for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
