"""Non-interactive project setup.

Installs base skills for the selected agents, registers the selected
built-in MCP servers, and tears down agents that are no longer selected.
Installed extensions are kept and their injections re-applied.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from agents.mcp import BUILTIN_SERVERS, McpConfigurator, McpError
from agents.registry import AGENTS, get_agent_config
from agents.transformers import TransformerRegistry, default_transformers
from extensions.injections import InjectionActivator
from extensions.installer import ExtensionStore
from project.config import (
    AgentInstallation,
    ConfigError,
    McpSelection,
    ProjectConfig,
    get_current_version,
    load_project_config,
    save_project_config,
)
from skills.catalog import DirectorySkillCatalog, SkillCatalog
from skills.installer import SkillInstaller

logger = logging.getLogger(__name__)

DEFAULT_AGENT = "claude"


@dataclass
class InitReport:
    config: ProjectConfig
    removed_agents: list[str] = field(default_factory=list)
    mcp_configured: dict[str, list[str]] = field(default_factory=dict)
    injections_applied: int = 0
    warnings: list[str] = field(default_factory=list)


class ProjectInitializer:
    """Set up or reconfigure AI Factory in a project.

    Example:
        >>> report = ProjectInitializer(Path(".")).run(["claude", "cursor"], mcp=["github"])
        >>> [a.id for a in report.config.agents]
        ['claude', 'cursor']
    """

    def __init__(
        self,
        project_dir: Path,
        catalog: SkillCatalog | None = None,
        transformers: TransformerRegistry | None = None,
    ):
        self.project_dir = Path(project_dir)
        self.catalog = catalog or DirectorySkillCatalog()
        self.skills = SkillInstaller(
            self.project_dir, transformers or default_transformers(), self.catalog
        )
        self.mcp = McpConfigurator(self.project_dir)

    def _check_selection(
        self, agent_ids: list[str], skills: list[str], mcp: list[str]
    ) -> None:
        unknown_agents = [a for a in agent_ids if a not in AGENTS]
        if unknown_agents:
            raise ConfigError(
                f"Unknown agent(s): {', '.join(unknown_agents)}. "
                f"Available: {', '.join(AGENTS)}"
            )
        unknown_skills = [s for s in skills if s not in self.catalog]
        if unknown_skills:
            raise ConfigError(f"Unknown skill(s): {', '.join(unknown_skills)}")
        builtin = [s.key for s in BUILTIN_SERVERS]
        unknown_servers = [k for k in mcp if k not in builtin]
        if unknown_servers:
            raise ConfigError(
                f"Unknown MCP server(s): {', '.join(unknown_servers)}. "
                f"Available: {', '.join(builtin)}"
            )

    def _remove_agent_setup(self, agent: AgentInstallation) -> None:
        skills_root = (self.project_dir / agent.skills_dir).resolve()
        if self.project_dir.resolve() not in skills_root.parents:
            logger.warning("Not removing %s: outside the project", skills_root)
            return
        shutil.rmtree(skills_root, ignore_errors=True)

    def run(
        self,
        agent_ids: list[str] | None = None,
        skills: list[str] | None = None,
        mcp: list[str] | None = None,
    ) -> InitReport:
        """Install AI Factory for the given agents.

        Args:
            agent_ids: Agents to configure. Defaults to the agents of an
                existing configuration, else Claude Code.
            skills: Base skills to install. Defaults to the whole catalog.
            mcp: Built-in MCP server keys to register on capable agents.

        Raises:
            ConfigError: On an unreadable configuration or unknown selection.
        """
        existing = load_project_config(self.project_dir)
        if not agent_ids:
            agent_ids = [a.id for a in existing.agents] if existing and existing.agents else [DEFAULT_AGENT]
        agent_ids = list(dict.fromkeys(agent_ids))
        selected_skills = skills or self.catalog.list_skills()
        mcp = mcp or []
        self._check_selection(agent_ids, selected_skills, mcp)

        config = ProjectConfig(
            version=get_current_version(),
            extensions=existing.extensions if existing else [],
        )
        report = InitReport(config=config)

        previous = {a.id: a for a in existing.agents} if existing else {}
        for agent_id, agent in previous.items():
            if agent_id not in agent_ids:
                self._remove_agent_setup(agent)
                report.removed_agents.append(agent_id)
                logger.info("Removed setup of %s", agent_id)

        selection = McpSelection.model_validate({key: True for key in mcp})
        for agent_id in agent_ids:
            profile = get_agent_config(agent_id)
            agent = AgentInstallation(
                id=agent_id, skills_dir=profile.skills_dir, mcp=selection.model_copy()
            )
            installed = self.skills.install_base_skills(agent, selected_skills, report.warnings)
            kept_custom = previous[agent_id].custom_skills if agent_id in previous else []
            agent.installed_skills = installed + kept_custom

            try:
                configured = self.mcp.configure_builtin(profile, mcp)
            except McpError as e:
                logger.warning("MCP setup failed for %s: %s", agent_id, e)
                report.warnings.append(f"MCP setup failed for {agent_id}: {e}")
                configured = []
            if configured:
                report.mcp_configured[agent_id] = configured
            config.agents.append(agent)

        save_project_config(self.project_dir, config)

        store = ExtensionStore(self.project_dir)
        injections = InjectionActivator(self.skills)
        for record in config.extensions:
            manifest = store.load_manifest(record.name)
            if manifest is not None:
                report.injections_applied += injections.apply(
                    config.agents, store.extension_dir(record.name), manifest, report.warnings
                )

        return report
