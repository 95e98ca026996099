"""Profiles of the coding agents AI Factory can provision.

Each profile says where the agent keeps its configuration and skills and
whether (and in which shape) it accepts companion MCP servers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath


class McpSettingsFormat(str, Enum):
    """Shape of the MCP section in an agent's settings file."""

    STANDARD = "standard"  # {"mcpServers": {key: {command, args, env}}}
    OPENCODE = "opencode"  # {"mcp": {key: {type, command: [...], environment}}}


@dataclass(frozen=True)
class AgentConfig:
    """Static profile of a supported agent.

    Attributes:
        id: Agent identifier stored in the project config.
        display_name: Human-readable name.
        config_dir: Agent configuration directory, relative to the project.
        skills_dir: Skills directory, relative to the project.
        settings_file: Settings file receiving MCP servers, if any.
        supports_mcp: Whether companion servers can be registered.
        mcp_format: Settings shape used for MCP servers.
    """

    id: str
    display_name: str
    config_dir: str
    skills_dir: str
    settings_file: str | None = None
    supports_mcp: bool = False
    mcp_format: McpSettingsFormat = McpSettingsFormat.STANDARD


AGENTS: dict[str, AgentConfig] = {
    "claude": AgentConfig(
        id="claude",
        display_name="Claude Code",
        config_dir=".claude",
        skills_dir=".claude/skills",
        settings_file=".mcp.json",
        supports_mcp=True,
    ),
    "cursor": AgentConfig(
        id="cursor",
        display_name="Cursor",
        config_dir=".cursor",
        skills_dir=".cursor/skills",
        settings_file=".cursor/mcp.json",
        supports_mcp=True,
    ),
    "windsurf": AgentConfig(
        id="windsurf",
        display_name="Windsurf",
        config_dir=".windsurf",
        skills_dir=".windsurf/skills",
    ),
    "codex": AgentConfig(
        id="codex",
        display_name="Codex CLI",
        config_dir=".codex",
        skills_dir=".codex/skills",
    ),
    "qwen": AgentConfig(
        id="qwen",
        display_name="Qwen Code",
        config_dir=".qwen",
        skills_dir=".qwen/skills",
        settings_file=".qwen/settings.json",
        supports_mcp=True,
    ),
    "opencode": AgentConfig(
        id="opencode",
        display_name="OpenCode",
        config_dir=".opencode",
        skills_dir=".opencode/skills",
        settings_file="opencode.json",
        supports_mcp=True,
        mcp_format=McpSettingsFormat.OPENCODE,
    ),
    "copilot": AgentConfig(
        id="copilot",
        display_name="GitHub Copilot",
        config_dir=".github",
        skills_dir=".github/skills",
        settings_file=".vscode/mcp.json",
        supports_mcp=True,
    ),
}


def get_agent_config(agent_id: str, skills_dir: str | None = None) -> AgentConfig:
    """Get the profile for an agent.

    Unknown agents get a generic profile built from their recorded skills
    directory, without settings file or MCP support.

    Raises:
        KeyError: If the agent is unknown and no skills_dir is given.
    """
    if agent_id in AGENTS:
        return AGENTS[agent_id]
    if skills_dir is None:
        raise KeyError(f"Unknown agent: {agent_id}")
    parent = str(PurePosixPath(skills_dir).parent)
    return AgentConfig(
        id=agent_id,
        display_name=agent_id,
        config_dir="" if parent == "." else parent,
        skills_dir=skills_dir,
    )


def list_agent_ids() -> list[str]:
    return list(AGENTS)
