"""AI Factory CLI.

Command-line interface for setting up skills and extensions in a project.
"""

from cli.aifactory.cli import app, main
from project.config import get_current_version

__version__ = get_current_version()

__all__ = ["__version__", "app", "main"]
