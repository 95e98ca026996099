"""Register an extension's companion MCP servers with capable agents."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from agents.mcp import McpConfigurator, McpError, load_template
from agents.registry import get_agent_config
from extensions.manifest import ExtensionManifest
from project.config import AgentInstallation

logger = logging.getLogger(__name__)


class CompanionServerActivator:
    """Merge extension server templates into agent settings files."""

    def __init__(self, configurator: McpConfigurator):
        self.configurator = configurator

    def activate(
        self,
        agents: list[AgentInstallation],
        extension_dir: Path,
        manifest: ExtensionManifest,
        warnings: list[str] | None = None,
    ) -> list[str]:
        """Configure every declared server on every capable agent.

        A bad template or settings file only skips that server.

        Returns:
            Keys configured on at least one agent.
        """
        configured: list[str] = []
        for server in manifest.mcp_servers:
            try:
                template: dict[str, Any] = load_template(extension_dir / server.template)
            except McpError as e:
                self._warn(warnings, f'MCP server "{server.key}" of {manifest.name}: {e}')
                continue

            for agent in agents:
                try:
                    keys = self.configurator.configure(
                        get_agent_config(agent.id, agent.skills_dir),
                        {server.key: template},
                    )
                except McpError as e:
                    self._warn(warnings, f'MCP server "{server.key}" for {agent.id}: {e}')
                    continue
                if keys and server.key not in configured:
                    configured.append(server.key)
        return configured

    def deactivate(self, agents: list[AgentInstallation], keys: list[str]) -> None:
        """Remove server entries by key from every agent's settings."""
        if not keys:
            return
        for agent in agents:
            try:
                self.configurator.remove(get_agent_config(agent.id, agent.skills_dir), keys)
            except McpError as e:
                logger.warning("Could not remove MCP servers for %s: %s", agent.id, e)

    @staticmethod
    def _warn(warnings: list[str] | None, message: str) -> None:
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
