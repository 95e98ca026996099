"""CLI command modules for AI Factory."""

import cli.aifactory  # noqa: F401  (load first to avoid a circular import)
from cli.commands.extensions import extension_app

__all__ = ["extension_app"]
