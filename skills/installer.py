"""Install and remove skills in an agent's skills directory.

Every write goes through the agent's transformer, so the same source skill
lands in the right place and dialect for each agent.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path, PurePosixPath

from agents.registry import AgentConfig, get_agent_config
from agents.transformers import TransformerRegistry, TransformResult
from project.config import AgentInstallation
from skills.catalog import SKILL_ENTRYPOINT, SkillCatalog

logger = logging.getLogger(__name__)


class SkillInstallError(Exception):
    """Raised when a single skill cannot be installed."""

    pass


def render_template_vars(content: str, agent: AgentConfig) -> str:
    """Substitute agent-specific placeholders in skill text."""
    values = {
        "skills_dir": agent.skills_dir,
        "config_dir": agent.config_dir,
        "settings_file": agent.settings_file or "",
    }
    for key, value in values.items():
        content = content.replace("{{" + key + "}}", value)
        content = content.replace("{{ " + key + " }}", value)
    return content


def skill_basename(skill_path: str) -> str:
    """Name a skill directory path installs under (its last component)."""
    return PurePosixPath(skill_path.replace("\\", "/").rstrip("/")).name


class SkillInstaller:
    """Materialize skills for configured agents.

    Example:
        >>> installer = SkillInstaller(project_dir, default_transformers(), catalog)
        >>> installer.install_base_skills(agent, ["aif", "aif-plan"])
        ['aif', 'aif-plan']
    """

    def __init__(
        self,
        project_dir: Path,
        transformers: TransformerRegistry,
        catalog: SkillCatalog,
    ):
        self.project_dir = Path(project_dir)
        self.transformers = transformers
        self.catalog = catalog

    def agent_config(self, agent: AgentInstallation) -> AgentConfig:
        return get_agent_config(agent.id, agent.skills_dir)

    def _target(self, agent: AgentInstallation, result: TransformResult) -> Path:
        """Path a transformed skill occupies (file if flat, else directory)."""
        if result.flat:
            config = self.agent_config(agent)
            return self.project_dir / config.config_dir / result.target_dir / result.target_name
        return self.project_dir / agent.skills_dir / result.target_dir

    def skill_file(self, agent: AgentInstallation, skill_name: str) -> Path:
        """Entry-point file of an installed skill."""
        result = self.transformers.get(agent.id).transform(skill_name, "")
        target = self._target(agent, result)
        return target if result.flat else target / result.target_name

    def install_skill_dir(
        self, agent: AgentInstallation, source_dir: Path, skill_name: str
    ) -> None:
        """Install one skill directory under ``skill_name``.

        Any previous install under the same name is replaced.

        Raises:
            SkillInstallError: If the source has no SKILL.md or writing fails.
        """
        skill_md = source_dir / SKILL_ENTRYPOINT
        if not skill_md.is_file():
            raise SkillInstallError(f"{SKILL_ENTRYPOINT} not found in {source_dir}")

        config = self.agent_config(agent)
        try:
            content = skill_md.read_text(encoding="utf-8")
            result = self.transformers.get(agent.id).transform(skill_name, content)
            rendered = render_template_vars(result.content, config)
            target = self._target(agent, result)

            if result.flat:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(rendered, encoding="utf-8")
            else:
                if target.exists():
                    shutil.rmtree(target)
                shutil.copytree(source_dir, target)
                (target / result.target_name).write_text(rendered, encoding="utf-8")
        except SkillInstallError:
            raise
        except Exception as e:
            raise SkillInstallError(f"Could not install skill '{skill_name}' for {agent.id}: {e}") from e

    def install_base_skills(
        self,
        agent: AgentInstallation,
        skills: list[str],
        warnings: list[str] | None = None,
    ) -> list[str]:
        """Install base skills from the catalog; failures are logged and skipped.

        Returns:
            Names that were installed.
        """
        (self.project_dir / agent.skills_dir).mkdir(parents=True, exist_ok=True)
        installed: list[str] = []
        for skill in skills:
            try:
                self.install_skill_dir(agent, self.catalog.skill_dir(skill), skill)
                installed.append(skill)
            except SkillInstallError as e:
                logger.warning('Could not install skill "%s": %s', skill, e)
                if warnings is not None:
                    warnings.append(f'Could not install skill "{skill}": {e}')
        return installed

    def install_extension_skills(
        self,
        agent: AgentInstallation,
        extension_dir: Path,
        skill_paths: list[str],
        name_overrides: dict[str, str] | None = None,
        warnings: list[str] | None = None,
    ) -> list[str]:
        """Install skills shipped by an extension; failures are logged and skipped.

        Args:
            agent: Target agent.
            extension_dir: Installed extension directory.
            skill_paths: Skill directories relative to extension_dir.
            name_overrides: skill path -> name to install under (replacements).
            warnings: Optional list collecting a message per failed skill.

        Returns:
            Names the skills were installed under.
        """
        overrides = name_overrides or {}
        installed: list[str] = []
        for skill_path in skill_paths:
            skill_name = overrides.get(skill_path, skill_basename(skill_path))
            try:
                self.install_skill_dir(agent, extension_dir / skill_path, skill_name)
                installed.append(skill_name)
            except SkillInstallError as e:
                logger.warning('Could not install extension skill "%s": %s', skill_name, e)
                if warnings is not None:
                    warnings.append(f'Could not install extension skill "{skill_name}": {e}')
        return installed

    def remove_skills(self, agent: AgentInstallation, skill_names: list[str]) -> list[str]:
        """Remove installed skills by name; missing ones are ignored."""
        transformer = self.transformers.get(agent.id)
        removed: list[str] = []
        for skill_name in skill_names:
            target = self._target(agent, transformer.transform(skill_name, ""))
            try:
                if target.is_dir():
                    shutil.rmtree(target)
                elif target.exists():
                    target.unlink()
            except OSError as e:
                logger.warning('Could not remove skill "%s" for %s: %s', skill_name, agent.id, e)
                continue
            removed.append(skill_name)
        return removed

    def sync_base_skills(
        self,
        agent: AgentInstallation,
        excluded: set[str],
        warnings: list[str] | None = None,
    ) -> list[str]:
        """Bring an agent's base skills in line with the catalog.

        Skills gone from the catalog are removed and every catalog skill is
        (re)installed, except names in ``excluded``, which are left on disk
        untouched. Custom skills are preserved.

        Returns:
            The agent's new installed-skills list.
        """
        available = self.catalog.list_skills()
        available_set = set(available)
        previous_base = agent.base_skills

        gone = [s for s in previous_base if s not in available_set and s not in excluded]
        if gone:
            self.remove_skills(agent, gone)

        to_install = [s for s in available if s not in excluded]
        installed = self.install_base_skills(agent, to_install, warnings)
        kept = [s for s in previous_base if s in excluded]

        return installed + kept + agent.custom_skills
