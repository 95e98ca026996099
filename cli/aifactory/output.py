"""Rich console output utilities for the AI Factory CLI."""

import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

console = Console()
error_console = Console(stderr=True)


def setup_logging(level: str = "WARNING", verbose: bool = False) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=verbose)],
        force=True,
    )


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]→[/blue] {message}")


def print_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        print_warning(warning)


def print_install_report(report: Any) -> None:
    """Print what an extension install provided."""
    manifest = report.manifest
    verb = "Upgraded" if report.upgraded else "Installed"
    print_success(f"{verb} {manifest.name} v{manifest.version}")
    if manifest.description:
        console.print(f"  [dim]{manifest.description}[/dim]")

    if manifest.commands:
        console.print("\n[bold]Commands:[/bold]")
        for cmd in manifest.commands:
            console.print(f"  [cyan]{cmd.name}[/cyan]  {cmd.description}")

    if manifest.agents:
        console.print("\n[bold]Agents:[/bold]")
        for agent in manifest.agents:
            console.print(f"  [cyan]{agent.id}[/cyan]  {agent.display_name}")

    if report.custom_skills:
        console.print("\n[bold]Skills:[/bold]")
        for skill in report.custom_skills:
            console.print(f"  [cyan]{skill}[/cyan]")

    if report.record.replaced_skills:
        console.print("\n[bold]Replaced base skills:[/bold]")
        for skill in report.record.replaced_skills:
            console.print(f"  [cyan]{skill}[/cyan]")

    if report.injections_applied:
        print_info(f"Applied {report.injections_applied} injection(s)")

    if report.mcp_servers:
        print_info(f"MCP servers configured: {', '.join(report.mcp_servers)}")
        for instruction in report.instructions:
            console.print(f"    [dim]{instruction}[/dim]")

    if report.warnings:
        console.print()
        print_warnings(report.warnings)


def print_extensions(listings: list[Any]) -> None:
    """Print installed extensions as a table."""
    table = Table(title="Installed Extensions")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Source", style="dim")
    table.add_column("Replaces", style="yellow")
    table.add_column("Provides")

    for listing in listings:
        record = listing.record
        manifest = listing.manifest
        if manifest is None:
            provides = "[red]manifest missing[/red]"
        else:
            features = ", ".join(manifest.feature_summary) or "-"
            provides = f"{manifest.description}\n{features}" if manifest.description else features
        table.add_row(
            record.name,
            record.version,
            record.source,
            ", ".join(record.replaced_skills) or "-",
            provides,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(listings)} extensions[/dim]")


def print_agent_summary(
    display_name: str,
    skills_dir: Path,
    base_skills: list[str],
    custom_skills: list[str],
    new_skills: list[str] | None = None,
) -> None:
    """Print the skills installed for one agent."""
    new = set(new_skills or [])
    console.print(f"[bold]{display_name}:[/bold]")
    console.print(f"  [dim]Skills directory: {skills_dir}[/dim]")
    base = [f"{s} [green](new)[/green]" if s in new else s for s in base_skills]
    console.print(f"  Base skills ({len(base_skills)}): {', '.join(base) or '-'}")
    if custom_skills:
        console.print(f"  Custom skills ({len(custom_skills)}): {', '.join(custom_skills)}")
