"""AI Factory CLI.

Main command-line interface: project setup, updates and extensions.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.aifactory.output import (
    console,
    print_agent_summary,
    print_error,
    print_info,
    print_success,
    print_warnings,
    setup_logging,
)
from project.config import (
    ConfigError,
    ProjectConfig,
    get_current_version,
    load_project_config,
)
from project.settings import Settings, load_settings

app = typer.Typer(
    name="ai-factory",
    help="AI Factory - skills, extensions and MCP setup for AI coding agents",
    no_args_is_help=True,
)


@dataclass
class CliState:
    """Options shared by every command."""

    project_dir: Path
    settings: Settings
    verbose: bool = False


def get_state(ctx: typer.Context) -> CliState:
    return ctx.obj


def require_config(state: CliState) -> ProjectConfig:
    """Load the project configuration or exit with an error."""
    try:
        config = load_project_config(state.project_dir)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)
    if config is None:
        print_error("No .ai-factory.json found. Run 'ai-factory init' first.")
        raise typer.Exit(1)
    return config


@app.callback()
def main_callback(
    ctx: typer.Context,
    project_dir: Optional[Path] = typer.Option(
        None,
        "--project-dir",
        "-C",
        help="Project directory (default: current directory)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """AI Factory - skills, extensions and MCP setup for AI coding agents."""
    project = (project_dir or Path.cwd()).resolve()
    settings = load_settings(project)
    setup_logging(settings.log_level, verbose)
    ctx.obj = CliState(project_dir=project, settings=settings, verbose=verbose)


# Register sub-apps
from cli.commands.extensions import extension_app

app.add_typer(extension_app, name="extension")


@app.command()
def init(
    ctx: typer.Context,
    agents: Optional[List[str]] = typer.Option(
        None,
        "--agent",
        "-a",
        help="Agent to configure (repeatable; default: existing agents or claude)",
    ),
    skills: Optional[List[str]] = typer.Option(
        None,
        "--skill",
        "-s",
        help="Base skill to install (repeatable; default: all)",
    ),
    mcp: Optional[List[str]] = typer.Option(
        None,
        "--mcp",
        "-m",
        help="Built-in MCP server to configure (repeatable)",
    ),
) -> None:
    """Set up AI Factory in a project.

    Examples:
        ai-factory init
        ai-factory init --agent claude --agent codex --mcp github
    """
    from agents.mcp import get_instructions
    from agents.registry import get_agent_config
    from agents.transformers import default_transformers
    from project.initializer import ProjectInitializer

    state = get_state(ctx)
    transformers = default_transformers()

    try:
        report = ProjectInitializer(state.project_dir, transformers=transformers).run(
            agent_ids=agents, skills=skills, mcp=mcp
        )
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)

    for agent_id in report.removed_agents:
        print_info(f"Removed: {agent_id}")
    if report.injections_applied:
        print_success(f"Re-applied {report.injections_applied} extension injection(s)")
    print_success("Configuration saved to .ai-factory.json")
    print_warnings(report.warnings)

    console.print("\n[bold green]Setup complete![/bold green]\n")
    for agent in report.config.agents:
        profile = get_agent_config(agent.id)
        print_agent_summary(
            profile.display_name,
            state.project_dir / agent.skills_dir,
            agent.base_skills,
            agent.custom_skills,
        )
        configured = report.mcp_configured.get(agent.id, [])
        if configured:
            console.print(f"  [green]MCP servers configured: {', '.join(configured)}[/green]")
            for instruction in get_instructions(configured):
                console.print(f"    [dim]{instruction}[/dim]")
        console.print()

    console.print("[bold]Next steps:[/bold]")
    for idx, agent in enumerate(report.config.agents, 1):
        console.print(f"  [dim]{idx}. {get_agent_config(agent.id).display_name}[/dim]")
        for line in transformers.get(agent.id).welcome_message():
            console.print(f"     [dim]{line}[/dim]")


@app.command()
def update(ctx: typer.Context) -> None:
    """Refresh base skills and re-apply extensions after an upgrade.

    Example:
        ai-factory update
    """
    from agents.registry import get_agent_config
    from agents.transformers import default_transformers
    from extensions.reconciler import UpdateReconciler
    from skills.catalog import DirectorySkillCatalog
    from skills.installer import SkillInstaller

    state = get_state(ctx)
    config = require_config(state)
    catalog = DirectorySkillCatalog()
    skills = SkillInstaller(state.project_dir, default_transformers(), catalog)

    try:
        report = UpdateReconciler(state.project_dir, config, skills, catalog).run()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)

    for summary in report.agents:
        agent = next(a for a in config.agents if a.id == summary.agent_id)
        print_agent_summary(
            get_agent_config(agent.id, agent.skills_dir).display_name,
            state.project_dir / agent.skills_dir,
            agent.base_skills,
            agent.custom_skills,
            summary.new_skills,
        )
    print_warnings(report.warnings)
    print_success(f"Updated to v{report.version}")


@app.command()
def version() -> None:
    """Show AI Factory version."""
    console.print(f"AI Factory v{get_current_version()}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
