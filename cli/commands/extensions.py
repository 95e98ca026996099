"""Extension CLI commands for AI Factory.

Install, remove and list project extensions.
"""

import typer

from cli.aifactory.output import (
    console,
    print_error,
    print_extensions,
    print_install_report,
    print_info,
    print_success,
    print_warning,
    print_warnings,
)

extension_app = typer.Typer(
    name="extension",
    help="Manage project extensions.",
    no_args_is_help=True,
)


def get_manager(ctx: typer.Context):
    """Build an extension manager for the current project, or exit."""
    from cli.aifactory.cli import get_state, require_config
    from extensions import ExtensionManager

    state = get_state(ctx)
    config = require_config(state)
    return ExtensionManager(state.project_dir, config, settings=state.settings)


@extension_app.command("add")
def add(
    ctx: typer.Context,
    source: str = typer.Argument(
        ...,
        help="Local path, git URL (git+url#ref) or registry package (name@version)",
    ),
) -> None:
    """Install or upgrade an extension.

    Examples:
        ai-factory extension add ./my-extension
        ai-factory extension add https://github.com/org/aif-ext.git#v1.2.0
        ai-factory extension add @org/aif-ext@1.0.0
    """
    from extensions import ExtensionError
    from project.config import ConfigError

    manager = get_manager(ctx)
    print_info(f"Installing extension from {source}...")

    try:
        report = manager.add(source)
    except (ExtensionError, ConfigError) as e:
        print_error(f"Failed to install extension: {e}")
        raise typer.Exit(1)

    print_install_report(report)


@extension_app.command("remove")
def remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Extension name"),
) -> None:
    """Remove an installed extension and restore replaced skills.

    Example:
        ai-factory extension remove my-extension
    """
    from extensions import ExtensionError
    from project.config import ConfigError

    manager = get_manager(ctx)

    try:
        report = manager.remove(name)
    except (ExtensionError, ConfigError) as e:
        print_error(f"Failed to remove extension: {e}")
        raise typer.Exit(1)

    for skill in report.restored_skills:
        print_info(f"Restored base skill: {skill}")
    print_warnings(report.warnings)
    print_success(f"Removed extension: {name}")


@extension_app.command("list")
def list_extensions(ctx: typer.Context) -> None:
    """List installed extensions.

    Example:
        ai-factory extension list
    """
    from cli.aifactory.cli import get_state, require_config
    from extensions import ExtensionManager
    from project.config import ConfigError, load_project_config

    state = get_state(ctx)
    try:
        config = load_project_config(state.project_dir)
    except ConfigError as e:
        # Only a missing config is fatal for list
        print_warning(f"Cannot list extensions: {e}")
        return
    if config is None:
        config = require_config(state)

    manager = ExtensionManager(state.project_dir, config, settings=state.settings)
    listings = manager.list_extensions()

    if not listings:
        console.print("[yellow]No extensions installed[/yellow]")
        console.print("[dim]Install extensions with: ai-factory extension add <source>[/dim]")
        return

    print_extensions(listings)
