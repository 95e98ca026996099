"""Project state and tool settings for AI Factory.

Project state is stored in .ai-factory.json at the project root, installed
extensions under .ai-factory/extensions/.
"""

from project.config import (
    AgentInstallation,
    ConfigError,
    ExtensionRecord,
    McpSelection,
    ProjectConfig,
    collect_replaced_skills,
    load_project_config,
    save_project_config,
)
from project.settings import Settings, load_settings

__all__ = [
    "AgentInstallation",
    "ConfigError",
    "ExtensionRecord",
    "McpSelection",
    "ProjectConfig",
    "Settings",
    "collect_replaced_skills",
    "load_project_config",
    "load_settings",
    "save_project_config",
]
