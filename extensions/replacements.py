"""All-or-nothing activation of base-skill replacements.

A replacement is active only when it is installed on every configured
agent. A partial install is rolled back to the base skill everywhere so no
agent is left with a different variant than its peers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from project.config import AgentInstallation
from skills.catalog import SkillCatalog
from skills.installer import SkillInstaller, SkillInstallError

logger = logging.getLogger(__name__)


class ReplacementStatus(str, Enum):
    ACTIVATED = "activated"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass
class ReplacementOutcome:
    """Result of activating one replacement on all agents."""

    skill_path: str
    base_skill: str
    status: ReplacementStatus
    success_count: int
    agent_count: int

    @property
    def activated(self) -> bool:
        return self.status == ReplacementStatus.ACTIVATED

    def describe(self) -> str:
        if self.status == ReplacementStatus.ROLLED_BACK:
            return (
                f'Replacement "{self.base_skill}" installed on {self.success_count}/'
                f"{self.agent_count} agents; rolled back to the base skill"
            )
        if self.status == ReplacementStatus.FAILED:
            return f'Replacement "{self.base_skill}" could not be installed on any agent'
        return f'Replacement "{self.base_skill}" active on {self.agent_count} agent(s)'


class ReplacementCoordinator:
    """Install, roll back and restore replaced base skills.

    Example:
        >>> coordinator = ReplacementCoordinator(skill_installer, catalog)
        >>> outcomes = coordinator.activate(config.agents, ext_dir, {"skills/c": "aif-commit"})
        >>> [o.base_skill for o in outcomes if o.activated]
        ['aif-commit']
    """

    def __init__(self, skills: SkillInstaller, catalog: SkillCatalog):
        self.skills = skills
        self.catalog = catalog

    def install_everywhere(
        self,
        agents: list[AgentInstallation],
        source_dir: Path,
        base_skill: str,
        warnings: list[str] | None = None,
    ) -> int:
        """Install a replacement under the base name on each agent.

        Returns:
            Number of agents it was installed on.
        """
        success = 0
        for agent in agents:
            try:
                self.skills.install_skill_dir(agent, source_dir, base_skill)
                success += 1
            except SkillInstallError as e:
                logger.warning('Replacement "%s" failed for %s: %s', base_skill, agent.id, e)
                if warnings is not None:
                    warnings.append(f'Replacement "{base_skill}" failed for {agent.id}: {e}')
        return success

    def activate(
        self,
        agents: list[AgentInstallation],
        extension_dir: Path,
        replaces: dict[str, str],
        warnings: list[str] | None = None,
    ) -> list[ReplacementOutcome]:
        """Activate each replacement independently.

        Args:
            agents: Configured agents, in order.
            extension_dir: Installed extension directory.
            replaces: Extension skill path -> base skill name.
            warnings: Optional list collecting per-agent failures.

        Returns:
            One outcome per replacement, in declaration order.
        """
        outcomes: list[ReplacementOutcome] = []
        for skill_path, base_skill in replaces.items():
            count = self.install_everywhere(
                agents, extension_dir / skill_path, base_skill, warnings
            )

            if count == len(agents):
                status = ReplacementStatus.ACTIVATED
            elif count > 0:
                status = ReplacementStatus.ROLLED_BACK
                self.restore_base_skills(agents, [base_skill], warnings)
            else:
                status = ReplacementStatus.FAILED

            outcome = ReplacementOutcome(
                skill_path=skill_path,
                base_skill=base_skill,
                status=status,
                success_count=count,
                agent_count=len(agents),
            )
            if not outcome.activated:
                logger.warning(outcome.describe())
            outcomes.append(outcome)
        return outcomes

    def restore_base_skills(
        self,
        agents: list[AgentInstallation],
        base_skills: list[str],
        warnings: list[str] | None = None,
    ) -> list[str]:
        """Put the catalog version of each base skill back on every agent.

        Skills the catalog no longer ships are only removed.

        Returns:
            Base skills that were processed.
        """
        restored: list[str] = []
        for base_skill in dict.fromkeys(base_skills):
            for agent in agents:
                self.skills.remove_skills(agent, [base_skill])
                if base_skill not in self.catalog:
                    continue
                try:
                    self.skills.install_skill_dir(
                        agent, self.catalog.skill_dir(base_skill), base_skill
                    )
                except SkillInstallError as e:
                    logger.warning('Could not restore "%s" for %s: %s', base_skill, agent.id, e)
                    if warnings is not None:
                        warnings.append(f'Could not restore "{base_skill}" for {agent.id}: {e}')
            restored.append(base_skill)
        return restored
