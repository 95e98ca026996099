"""Companion MCP server registration in agent settings files.

Servers are merged into the agent's settings file without touching other
keys. Two shapes exist, picked by the agent profile:

- standard: ``{"mcpServers": {"<key>": {"command", "args", "env"}}}``
- opencode: ``{"mcp": {"<key>": {"type": "local", "command": [...], "environment"}}}``
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agents.registry import AgentConfig, McpSettingsFormat

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "mcp_templates"


class McpError(Exception):
    """Raised when a settings file or server template cannot be used."""

    pass


@dataclass(frozen=True)
class BuiltinServer:
    """Companion server shipped with AI Factory."""

    key: str
    template_file: str
    instruction: str


BUILTIN_SERVERS: list[BuiltinServer] = [
    BuiltinServer(
        key="github",
        template_file="github.json",
        instruction="GitHub MCP: Set GITHUB_TOKEN environment variable with your GitHub personal access token",
    ),
    BuiltinServer(
        key="filesystem",
        template_file="filesystem.json",
        instruction="Filesystem MCP: No additional configuration needed. Server provides file access tools.",
    ),
    BuiltinServer(
        key="postgres",
        template_file="postgres.json",
        instruction="Postgres MCP: Set DATABASE_URL environment variable with your PostgreSQL connection string",
    ),
    BuiltinServer(
        key="chromeDevtools",
        template_file="chrome-devtools.json",
        instruction="Chrome Devtools MCP: No additional configuration needed. Server lets your coding agent control and inspect a live Chrome browser.",
    ),
    BuiltinServer(
        key="playwright",
        template_file="playwright.json",
        instruction="Playwright MCP: No additional configuration needed. Server provides browser automation through the accessibility tree.",
    ),
]


def load_template(template_path: Path) -> dict[str, Any]:
    """Read a server template ({command, args?, env?}).

    Raises:
        McpError: If the template is missing or malformed.
    """
    try:
        data = json.loads(template_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise McpError(f"Cannot read MCP template {template_path}: {e}")
    if not isinstance(data, dict) or not isinstance(data.get("command"), str):
        raise McpError(f"MCP template must define a 'command': {template_path}")
    args = data.get("args", [])
    if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
        raise McpError(f"MCP template 'args' must be a list of strings: {template_path}")
    env = data.get("env", {})
    if not isinstance(env, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in env.items()
    ):
        raise McpError(f"MCP template 'env' must map strings to strings: {template_path}")
    return data


def to_opencode_format(template: dict[str, Any]) -> dict[str, Any]:
    """Convert a standard template into OpenCode's local server entry."""
    result: dict[str, Any] = {
        "type": "local",
        "command": [template["command"], *template.get("args", [])],
    }
    if template.get("env"):
        result["environment"] = template["env"]
    return result


def get_instructions(keys: list[str]) -> list[str]:
    """Setup instructions for the selected built-in servers."""
    selected = set(keys)
    return [s.instruction for s in BUILTIN_SERVERS if s.key in selected]


class McpConfigurator:
    """Merge companion servers into agents' settings files.

    Example:
        >>> configurator = McpConfigurator(Path("/my/project"))
        >>> configurator.configure(AGENTS["claude"], {"search": template})
        ['search']
    """

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)

    def settings_path(self, agent: AgentConfig) -> Path | None:
        if not agent.settings_file:
            return None
        return self.project_dir / agent.settings_file

    def _load_settings(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise McpError(f"Cannot parse settings file {path}: {e}")
        if not isinstance(data, dict):
            raise McpError(f"Settings file is not a JSON object: {path}")
        return data

    def _section(self, settings: dict[str, Any], agent: AgentConfig) -> dict[str, Any]:
        key = "mcp" if agent.mcp_format == McpSettingsFormat.OPENCODE else "mcpServers"
        section = settings.get(key)
        if not isinstance(section, dict):
            section = {}
            settings[key] = section
        return section

    def configure(
        self, agent: AgentConfig, servers: dict[str, dict[str, Any]]
    ) -> list[str]:
        """Merge servers (key -> template) into the agent's settings.

        Returns:
            Keys written; empty if the agent cannot take MCP servers.

        Raises:
            McpError: If the existing settings file is unreadable.
        """
        path = self.settings_path(agent)
        if not agent.supports_mcp or path is None or not servers:
            return []

        settings = self._load_settings(path)
        section = self._section(settings, agent)

        for key, template in servers.items():
            if agent.mcp_format == McpSettingsFormat.OPENCODE:
                section[key] = to_opencode_format(template)
            else:
                section[key] = template

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(settings, indent=2) + "\n", encoding="utf-8")
        logger.debug("Configured MCP servers %s for %s", list(servers), agent.id)
        return list(servers)

    def remove(self, agent: AgentConfig, keys: list[str]) -> list[str]:
        """Remove servers by key; missing keys and files are ignored."""
        path = self.settings_path(agent)
        if not agent.supports_mcp or path is None or not path.exists():
            return []

        settings = self._load_settings(path)
        section = self._section(settings, agent)
        removed = [key for key in keys if section.pop(key, None) is not None]

        if removed:
            path.write_text(json.dumps(settings, indent=2) + "\n", encoding="utf-8")
        return removed

    def configure_builtin(self, agent: AgentConfig, keys: list[str]) -> list[str]:
        """Configure the selected built-in servers from bundled templates."""
        selected = set(keys)
        servers: dict[str, dict[str, Any]] = {}
        for server in BUILTIN_SERVERS:
            if server.key in selected:
                servers[server.key] = load_template(TEMPLATES_DIR / server.template_file)
        return self.configure(agent, servers)
