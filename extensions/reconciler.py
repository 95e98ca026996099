"""Bring a project in line with the running tool version.

Base skills are refreshed from the catalog without clobbering active
replacements, replacements are reinstalled from their extensions, and any
replacement that can no longer be honored falls back to its base skill.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from extensions.injections import InjectionActivator
from extensions.installer import ExtensionStore
from extensions.replacements import ReplacementCoordinator
from project.config import (
    ProjectConfig,
    collect_replaced_skills,
    get_current_version,
    save_project_config,
)
from skills.catalog import SkillCatalog
from skills.installer import SkillInstaller

logger = logging.getLogger(__name__)


@dataclass
class AgentUpdateSummary:
    agent_id: str
    base_skills: list[str]
    custom_skills: list[str]
    new_skills: list[str] = field(default_factory=list)


@dataclass
class FailedReplacement:
    extension: str
    base_skill: str
    reason: str


@dataclass
class UpdateReport:
    """What an update did, for display."""

    version: str
    agents: list[AgentUpdateSummary] = field(default_factory=list)
    failed_replacements: list[FailedReplacement] = field(default_factory=list)
    restored_skills: list[str] = field(default_factory=list)
    injections_applied: int = 0
    warnings: list[str] = field(default_factory=list)


class UpdateReconciler:
    """Refresh base skills and re-honor active replacements.

    Example:
        >>> reconciler = UpdateReconciler(project_dir, config, skills, catalog)
        >>> report = reconciler.run()
        >>> [f.base_skill for f in report.failed_replacements]
        []
    """

    def __init__(
        self,
        project_dir: Path,
        config: ProjectConfig,
        skills: SkillInstaller,
        catalog: SkillCatalog,
    ):
        self.project_dir = Path(project_dir)
        self.config = config
        self.skills = skills
        self.catalog = catalog
        self.store = ExtensionStore(self.project_dir)
        self.replacements = ReplacementCoordinator(skills, catalog)
        self.injections = InjectionActivator(skills)

    def run(self) -> UpdateReport:
        report = UpdateReport(version=get_current_version())

        self._sync_base_skills(report)
        failed = self._reinstall_replacements(report)

        claimed = collect_replaced_skills(self.config.extensions)
        to_restore = [f.base_skill for f in failed if f.base_skill not in claimed]
        report.restored_skills = self.replacements.restore_base_skills(
            self.config.agents, to_restore, report.warnings
        )
        for agent in self.config.agents:
            for skill in report.restored_skills:
                if skill in self.catalog and skill not in agent.installed_skills:
                    agent.installed_skills.append(skill)

        # Skill files were regenerated, so every injection is gone
        for record in self.config.extensions:
            manifest = self.store.load_manifest(record.name)
            if manifest is None:
                continue
            report.injections_applied += self.injections.apply(
                self.config.agents,
                self.store.extension_dir(record.name),
                manifest,
                report.warnings,
            )

        self.config.version = report.version
        save_project_config(self.project_dir, self.config)
        logger.info("Project updated to v%s", report.version)
        return report

    def _sync_base_skills(self, report: UpdateReport) -> None:
        excluded = collect_replaced_skills(self.config.extensions)
        for agent in self.config.agents:
            previous = set(agent.base_skills)
            agent.installed_skills = self.skills.sync_base_skills(
                agent, excluded, report.warnings
            )
            report.agents.append(
                AgentUpdateSummary(
                    agent_id=agent.id,
                    base_skills=agent.base_skills,
                    custom_skills=agent.custom_skills,
                    new_skills=[s for s in agent.base_skills if s not in previous],
                )
            )

    def _reinstall_replacements(self, report: UpdateReport) -> list[FailedReplacement]:
        agents = self.config.agents
        failed: list[FailedReplacement] = []

        for record in self.config.extensions:
            if not record.replaced_skills:
                continue

            manifest = self.store.load_manifest(record.name)
            if manifest is None:
                for base_skill in record.replaced_skills:
                    failed.append(
                        FailedReplacement(record.name, base_skill, "extension manifest not loadable")
                    )
                record.replaced_skills = []
                continue

            # Last declaration wins for duplicate targets
            declared = {base: path for path, base in manifest.replaces.items()}
            extension_dir = self.store.extension_dir(record.name)
            still_active: list[str] = []

            for base_skill in record.replaced_skills:
                skill_path = declared.get(base_skill)
                if skill_path is None:
                    failed.append(
                        FailedReplacement(record.name, base_skill, "no longer declared")
                    )
                    continue

                count = self.replacements.install_everywhere(
                    agents, extension_dir / skill_path, base_skill, report.warnings
                )
                if count < len(agents):
                    failed.append(
                        FailedReplacement(
                            record.name,
                            base_skill,
                            f"installed on {count}/{len(agents)} agents",
                        )
                    )
                    continue
                still_active.append(base_skill)

            record.replaced_skills = still_active

        for failure in failed:
            message = (
                f'Replacement "{failure.base_skill}" from {failure.extension} '
                f"deactivated: {failure.reason}"
            )
            logger.warning(message)
            report.warnings.append(message)
        report.failed_replacements = failed
        return failed
