"""Extension install and removal pipelines.

Install runs: resolve, conflict guard, commit, upgrade teardown,
replacements, custom skills, persistence, injections and companion servers.
Everything before commit is read-only, so a fatal error there leaves the
project untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from agents.mcp import McpConfigurator
from agents.transformers import TransformerRegistry, default_transformers
from extensions.errors import InstallError
from extensions.injections import InjectionActivator
from extensions.installer import ExtensionStore, check_replacement_conflicts
from extensions.manifest import ExtensionManifest, validate_extension_name
from extensions.replacements import ReplacementCoordinator, ReplacementOutcome
from extensions.resolver import SourceResolver
from extensions.servers import CompanionServerActivator
from project.config import (
    AgentInstallation,
    ExtensionRecord,
    ProjectConfig,
    collect_replaced_skills,
    save_project_config,
)
from project.settings import Settings
from skills.catalog import DirectorySkillCatalog, SkillCatalog
from skills.installer import SkillInstaller, skill_basename

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """What an install did, for display."""

    manifest: ExtensionManifest
    record: ExtensionRecord
    upgraded: bool = False
    replacements: list[ReplacementOutcome] = field(default_factory=list)
    custom_skills: list[str] = field(default_factory=list)
    injections_applied: int = 0
    mcp_servers: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def instructions(self) -> list[str]:
        return [s.instruction for s in self.manifest.mcp_servers if s.instruction]


@dataclass
class RemovalReport:
    name: str
    restored_skills: list[str] = field(default_factory=list)
    injections_removed: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass
class ExtensionListing:
    """An installed extension with its manifest, if still loadable."""

    record: ExtensionRecord
    manifest: ExtensionManifest | None


class ExtensionManager:
    """Add, remove and list extensions of one project.

    The manager mutates ``config`` in place and persists it.

    Example:
        >>> config = load_project_config(project_dir)
        >>> manager = ExtensionManager(project_dir, config)
        >>> report = manager.add("./my-extension")
        >>> report.record.replaced_skills
        ['aif-commit']
    """

    def __init__(
        self,
        project_dir: Path,
        config: ProjectConfig,
        catalog: SkillCatalog | None = None,
        transformers: TransformerRegistry | None = None,
        resolver: SourceResolver | None = None,
        settings: Settings | None = None,
    ):
        self.project_dir = Path(project_dir)
        self.config = config
        self.catalog = catalog or DirectorySkillCatalog()
        self.transformers = transformers or default_transformers()
        self.resolver = resolver or SourceResolver(settings)

        self.skills = SkillInstaller(self.project_dir, self.transformers, self.catalog)
        self.store = ExtensionStore(self.project_dir)
        self.injections = InjectionActivator(self.skills)
        self.replacements = ReplacementCoordinator(self.skills, self.catalog)
        self.servers = CompanionServerActivator(McpConfigurator(self.project_dir))

    @property
    def agents(self) -> list[AgentInstallation]:
        return self.config.agents

    def add(self, source: str) -> InstallReport:
        """Install or upgrade an extension from a source string.

        Raises:
            ResolveError: If the source cannot be fetched or has no manifest.
            ManifestError: If the manifest is invalid or unsafe.
            ConflictError: If a replaced skill is owned by another extension.
            InstallError: If the package cannot be committed.
        """
        with self.resolver.resolve(source) as resolved:
            manifest = resolved.manifest
            check_replacement_conflicts(manifest, self.config.extensions)

            existing = self.config.find_extension(manifest.name)
            old_record = existing.model_copy(deep=True) if existing else None
            old_manifest = self.store.load_manifest(manifest.name) if existing else None

            extension_dir = self.store.commit(resolved)

        report = InstallReport(
            manifest=manifest,
            record=ExtensionRecord(
                name=manifest.name, source=source, version=manifest.version
            ),
            upgraded=old_record is not None,
        )

        if old_record is not None:
            logger.info("Upgrading %s from v%s", manifest.name, old_record.version)
            self._teardown(old_record, old_manifest, manifest, report.warnings)

        report.replacements = self.replacements.activate(
            self.agents, extension_dir, manifest.replaces, report.warnings
        )
        for outcome in report.replacements:
            if outcome.activated:
                if outcome.base_skill not in report.record.replaced_skills:
                    report.record.replaced_skills.append(outcome.base_skill)
            else:
                report.warnings.append(outcome.describe())

        report.custom_skills = self._install_custom_skills(
            extension_dir, manifest, report.warnings
        )

        self.config.upsert_extension(report.record)
        save_project_config(self.project_dir, self.config)

        report.injections_applied = self.injections.apply(
            self.agents, extension_dir, manifest, report.warnings
        )
        report.mcp_servers = self.servers.activate(
            self.agents, extension_dir, manifest, report.warnings
        )

        logger.info("Installed %s v%s", manifest.name, manifest.version)
        return report

    def remove(self, name: str) -> RemovalReport:
        """Uninstall an extension and restore what it replaced.

        Raises:
            UnsafeNameError: If the name fails validation.
            InstallError: If no such extension is installed.
        """
        validate_extension_name(name)
        record = self.config.find_extension(name)
        if record is None:
            raise InstallError(f"Extension not found: {name}")

        report = RemovalReport(name=name)
        manifest = self.store.load_manifest(name)

        report.injections_removed = self.injections.strip(self.agents, name, manifest)

        claimed = collect_replaced_skills(self.config.extensions, exclude=name)
        to_restore = [s for s in record.replaced_skills if s not in claimed]
        report.restored_skills = self.replacements.restore_base_skills(
            self.agents, to_restore, report.warnings
        )

        self._remove_custom_skills(name, manifest)

        if manifest is not None:
            self.servers.deactivate(self.agents, [s.key for s in manifest.mcp_servers])

        self.store.remove(name)
        self.config.drop_extension(name)
        save_project_config(self.project_dir, self.config)

        logger.info("Removed extension %s", name)
        return report

    def list_extensions(self) -> list[ExtensionListing]:
        return [
            ExtensionListing(record=record, manifest=self.store.load_manifest(record.name))
            for record in self.config.extensions
        ]

    def _teardown(
        self,
        old_record: ExtensionRecord,
        old_manifest: ExtensionManifest | None,
        manifest: ExtensionManifest,
        warnings: list[str],
    ) -> None:
        """Undo what the previous version of an extension left behind."""
        name = old_record.name
        self.injections.strip(self.agents, name, old_manifest)

        claimed = collect_replaced_skills(self.config.extensions, exclude=name)
        self.replacements.restore_base_skills(
            self.agents,
            [s for s in old_record.replaced_skills if s not in claimed],
            warnings,
        )
        # Replacements are re-activated from scratch by the new version
        existing = self.config.find_extension(name)
        if existing is not None:
            existing.replaced_skills = []

        self._remove_custom_skills(name, old_manifest)

        if old_manifest is not None:
            new_keys = {s.key for s in manifest.mcp_servers}
            stale = [s.key for s in old_manifest.mcp_servers if s.key not in new_keys]
            self.servers.deactivate(self.agents, stale)

    def _install_custom_skills(
        self,
        extension_dir: Path,
        manifest: ExtensionManifest,
        warnings: list[str],
    ) -> list[str]:
        installed_any: list[str] = []
        for agent in self.agents:
            installed = self.skills.install_extension_skills(
                agent, extension_dir, manifest.custom_skills, warnings=warnings
            )
            for skill in installed:
                entry = f"{manifest.name}/{skill}"
                if entry not in agent.installed_skills:
                    agent.installed_skills.append(entry)
                if skill not in installed_any:
                    installed_any.append(skill)
        return installed_any

    def _remove_custom_skills(self, name: str, manifest: ExtensionManifest | None) -> None:
        """Remove an extension's custom skills, files and config entries."""
        prefix = f"{name}/"
        declared = [skill_basename(p) for p in manifest.custom_skills] if manifest else []
        for agent in self.agents:
            recorded = [s[len(prefix) :] for s in agent.installed_skills if s.startswith(prefix)]
            self.skills.remove_skills(agent, list(dict.fromkeys(recorded + declared)))
            agent.installed_skills = [
                s for s in agent.installed_skills if not s.startswith(prefix)
            ]
