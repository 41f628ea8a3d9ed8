"""
Rich formatting utilities for CLI output.
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from bbrsetup.__version__ import __version__
from bbrsetup.core.configurator import ObservedState, Outcome, RunReport


def print_header(console: Console) -> None:
    """Print application header."""
    console.print()
    console.print(
        Panel.fit(
            f"TCP BBR Setup {__version__}",
            subtitle="enable BBR congestion control",
            border_style="cyan",
        ),
        style="bold cyan",
    )


def _status_icon_and_color(state: ObservedState) -> tuple[str, str]:
    """Map an observed state to icon and color."""
    if state.is_satisfied:
        return "✓", "green"
    return "✗", "red"


def format_status(state: ObservedState, console: Console) -> None:
    """Display the live values of both managed parameters."""
    icon, color = _status_icon_and_color(state)

    table = Table(title="Current Status", show_header=False, box=None, padding=(0, 2))
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="bold white")

    table.add_row("Congestion control", state.congestion_control)
    table.add_row("Default qdisc", state.default_qdisc)

    console.print()
    console.print(table)
    label = "enabled" if state.is_satisfied else "NOT enabled"
    console.print(f"[{color}]{icon} BBR is {label}[/{color}]")
    console.print()


def format_dry_run(report: RunReport, console: Console) -> None:
    """Show the file and lines an apply run would write."""
    console.print()
    console.print(f"[bold]Would write to:[/bold] {escape(str(report.target_file))}", soft_wrap=True)
    if report.planned_lines:
        console.print("[bold]Parameters:[/bold]")
        for line in report.planned_lines:
            console.print(f"  {escape(line)}", soft_wrap=True)
    else:
        console.print("[dim]Both parameters are already present; nothing would be added.[/dim]")
    console.print()


def format_summary(report: RunReport, console: Console) -> None:
    """Before/after comparison of both parameters."""
    after = report.after or report.before

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("", style="cyan", min_width=20)
    table.add_column("Before", style="white")
    table.add_column("After", style="white")

    table.add_row("Congestion control", report.before.congestion_control, after.congestion_control)
    table.add_row("Default qdisc", report.before.default_qdisc, after.default_qdisc)

    console.print()
    console.print(table)
    console.print()

    if report.backup_path is not None:
        console.print(f"[dim]Backup saved to:[/dim] {escape(str(report.backup_path))}", soft_wrap=True)

    if report.outcome == Outcome.APPLIED:
        if report.written_keys:
            console.print(
                f"[dim]Written to {escape(str(report.target_file))}:[/dim] {', '.join(report.written_keys)}",
                soft_wrap=True,
            )
        else:
            console.print("[dim]Configuration files already contained both parameters.[/dim]")
        console.print("[bold green]Done.[/bold green]")


def format_report(report: RunReport, console: Console) -> None:
    """Display a run report according to its outcome."""
    if report.outcome == Outcome.NOT_ENABLED:
        format_status(report.before, console)
    elif report.outcome == Outcome.DRY_RUN:
        format_status(report.before, console)
        format_dry_run(report, console)
    else:
        format_summary(report, console)
