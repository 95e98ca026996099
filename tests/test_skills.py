"""Tests for the skill catalog, transformers and installer."""

from __future__ import annotations

from pathlib import Path

import pytest

from agents.registry import get_agent_config
from agents.transformers import (
    CodexTransformer,
    DefaultTransformer,
    QwenTransformer,
    TransformerRegistry,
    default_transformers,
)
from conftest import write_skill
from project.config import AgentInstallation
from skills.catalog import DirectorySkillCatalog
from skills.installer import SkillInstaller, SkillInstallError, render_template_vars


class TestDirectorySkillCatalog:
    """Tests for DirectorySkillCatalog."""

    def test_lists_only_real_skills(self, catalog: DirectorySkillCatalog) -> None:
        """Should skip private folders and folders without SKILL.md."""
        assert catalog.list_skills() == ["aif", "aif-commit", "writer"]
        assert "writer" in catalog
        assert "_shared" not in catalog

    def test_missing_root(self, tmp_path: Path) -> None:
        assert DirectorySkillCatalog(tmp_path / "nope").list_skills() == []

    def test_bundled_catalog_ships_aif(self) -> None:
        assert "aif" in DirectorySkillCatalog()


class TestTransformers:
    """Tests for per-agent transformers."""

    def test_codex_rewrites_invocations(self) -> None:
        result = CodexTransformer().transform("aif", "Run /aif-plan then /aif.\nSee docs/aif.")

        assert result.content == "Run $aif-plan then $aif.\nSee docs/aif."

    def test_qwen_rewrites_invocations(self) -> None:
        result = QwenTransformer().transform("aif", "Run /aif-commit")

        assert result.content == "Run /skills aif-commit"

    def test_default_keeps_content(self) -> None:
        result = DefaultTransformer().transform("aif", "Run /aif")

        assert result.target_dir == "aif"
        assert result.target_name == "SKILL.md"
        assert result.content == "Run /aif"

    def test_registry_falls_back_to_default(self) -> None:
        registry = default_transformers()

        assert isinstance(registry.get("codex"), CodexTransformer)
        assert isinstance(registry.get("claude"), DefaultTransformer)

    def test_with_override_leaves_original(self) -> None:
        registry = TransformerRegistry()
        overridden = registry.with_override("claude", CodexTransformer)

        assert isinstance(overridden.get("claude"), CodexTransformer)
        assert isinstance(registry.get("claude"), DefaultTransformer)


class TestSkillInstaller:
    """Tests for SkillInstaller."""

    def test_renders_template_vars(self) -> None:
        config = get_agent_config("claude")

        rendered = render_template_vars("{{skills_dir}} {{ config_dir }} {{settings_file}}", config)

        assert rendered == ".claude/skills .claude .mcp.json"

    def test_installs_through_agent_transformer(self, project_dir, catalog) -> None:
        agent = AgentInstallation(id="codex", skills_dir=".codex/skills")
        installer = SkillInstaller(project_dir, default_transformers(), catalog)
        source = write_skill(project_dir.parent / "src-skill", "x", "Use /aif-commit\n")
        (source / "notes.txt").write_text("extra file")

        installer.install_skill_dir(agent, source, "helper")

        target = project_dir / ".codex" / "skills" / "helper"
        assert (target / "SKILL.md").read_text() == "Use $aif-commit\n"
        assert (target / "notes.txt").exists()

    def test_missing_skill_md(self, project_dir, catalog, tmp_path) -> None:
        agent = AgentInstallation(id="claude", skills_dir=".claude/skills")
        installer = SkillInstaller(project_dir, TransformerRegistry(), catalog)

        with pytest.raises(SkillInstallError):
            installer.install_skill_dir(agent, tmp_path / "empty", "x")

    def test_remove_missing_skill_is_ignored(self, project_dir, catalog) -> None:
        agent = AgentInstallation(id="claude", skills_dir=".claude/skills")
        installer = SkillInstaller(project_dir, TransformerRegistry(), catalog)

        assert installer.remove_skills(agent, ["ghost"]) == ["ghost"]

    def test_sync_keeps_excluded_and_custom(self, project_dir, catalog) -> None:
        """Should leave excluded skills untouched and keep custom entries."""
        agent = AgentInstallation(
            id="claude",
            skills_dir=".claude/skills",
            installed_skills=["aif", "writer", "pack/review"],
        )
        installer = SkillInstaller(project_dir, TransformerRegistry(), catalog)
        write_skill(project_dir / ".claude" / "skills" / "writer", "writer", "# replaced\n")

        result = installer.sync_base_skills(agent, {"writer"})

        assert result == ["aif", "aif-commit", "writer", "pack/review"]
        assert (project_dir / ".claude" / "skills" / "writer" / "SKILL.md").read_text() == "# replaced\n"
