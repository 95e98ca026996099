"""Tests for the update reconciler."""

from __future__ import annotations

import shutil

from conftest import FailingTransformer, base_skill_text, read_skill, write_skill
from extensions.lifecycle import ExtensionManager
from extensions.reconciler import UpdateReconciler
from project.config import get_current_version, load_project_config
from skills.installer import SkillInstaller

REPLACEMENT = "---\nname: writer\n---\n\n# Writer replacement\n"


def reconcile(project_dir, config, catalog, transformers):
    skills = SkillInstaller(project_dir, transformers, catalog)
    return UpdateReconciler(project_dir, config, skills, catalog).run()


class TestUpdateReconciler:
    """Tests for UpdateReconciler.run."""

    def test_active_replacement_survives_update(
        self, project_dir, make_project, make_extension, catalog, catalog_dir, transformers
    ) -> None:
        """Should never overwrite an active replacement with the base skill."""
        config = make_project()
        ExtensionManager(project_dir, config, catalog=catalog, transformers=transformers).add(
            str(make_extension("pack", skills={"skills/w": REPLACEMENT}, replaces={"skills/w": "writer"}))
        )
        write_skill(catalog_dir / "writer", "writer", base_skill_text("writer") + "\nv2\n")

        report = reconcile(project_dir, config, catalog, transformers)

        for agent_id in ("claude", "cursor"):
            assert "Writer replacement" in read_skill(project_dir, agent_id, "writer")
        assert report.failed_replacements == []
        assert load_project_config(project_dir).find_extension("pack").replaced_skills == ["writer"]

    def test_new_and_removed_catalog_skills(
        self, project_dir, make_project, catalog, catalog_dir, transformers
    ) -> None:
        config = make_project()
        write_skill(catalog_dir / "aif-review", "aif-review", base_skill_text("aif-review"))
        shutil.rmtree(catalog_dir / "aif-commit")

        report = reconcile(project_dir, config, catalog, transformers)

        assert report.agents[0].new_skills == ["aif-review"]
        assert not (project_dir / ".claude" / "skills" / "aif-commit").exists()
        saved = load_project_config(project_dir)
        assert "aif-commit" not in saved.agents[0].installed_skills
        assert saved.version == get_current_version()

    def test_custom_skills_are_preserved(
        self, project_dir, make_project, make_extension, catalog, transformers
    ) -> None:
        config = make_project()
        ExtensionManager(project_dir, config, catalog=catalog, transformers=transformers).add(
            str(make_extension("helpers", skills={"skills/review": "# review\n"}))
        )

        reconcile(project_dir, config, catalog, transformers)

        assert "helpers/review" in load_project_config(project_dir).agents[0].installed_skills

    def test_unloadable_manifest_restores_base(
        self, project_dir, make_project, make_extension, catalog, transformers
    ) -> None:
        """Should fail every replacement of an extension whose manifest is gone."""
        config = make_project()
        ExtensionManager(project_dir, config, catalog=catalog, transformers=transformers).add(
            str(make_extension("pack", skills={"skills/w": REPLACEMENT}, replaces={"skills/w": "writer"}))
        )
        (project_dir / ".ai-factory" / "extensions" / "pack" / "extension.json").unlink()

        report = reconcile(project_dir, config, catalog, transformers)

        assert [f.base_skill for f in report.failed_replacements] == ["writer"]
        assert report.restored_skills == ["writer"]
        assert "Base content of writer" in read_skill(project_dir, "claude", "writer")
        assert load_project_config(project_dir).find_extension("pack").replaced_skills == []

    def test_undeclared_replacement_is_dropped(
        self, project_dir, make_project, make_extension, catalog, transformers
    ) -> None:
        config = make_project()
        ExtensionManager(project_dir, config, catalog=catalog, transformers=transformers).add(
            str(make_extension("pack", skills={"skills/w": REPLACEMENT}, replaces={"skills/w": "writer"}))
        )
        manifest_path = project_dir / ".ai-factory" / "extensions" / "pack" / "extension.json"
        manifest_path.write_text('{"name": "pack", "version": "1.1.0"}', encoding="utf-8")

        report = reconcile(project_dir, config, catalog, transformers)

        assert report.failed_replacements[0].reason == "no longer declared"
        assert "Base content of writer" in read_skill(project_dir, "cursor", "writer")

    def test_partial_reinstall_is_demoted(
        self, project_dir, make_project, make_extension, catalog, transformers, flaky_transformers
    ) -> None:
        """Should demote a replacement that no longer installs on every agent."""
        config = make_project()
        ExtensionManager(project_dir, config, catalog=catalog, transformers=transformers).add(
            str(make_extension("pack", skills={"skills/w": REPLACEMENT}, replaces={"skills/w": "writer"}))
        )
        stored = project_dir / ".ai-factory" / "extensions" / "pack" / "skills" / "w" / "SKILL.md"
        stored.write_text(REPLACEMENT + FailingTransformer.MARKER + "\n", encoding="utf-8")

        report = reconcile(project_dir, config, catalog, flaky_transformers)

        assert report.failed_replacements[0].base_skill == "writer"
        assert "Base content of writer" in read_skill(project_dir, "claude", "writer")
        assert "Base content of writer" in read_skill(project_dir, "cursor", "writer")

    def test_injections_are_reapplied(
        self, project_dir, make_project, make_extension, catalog, transformers
    ) -> None:
        config = make_project()
        ExtensionManager(project_dir, config, catalog=catalog, transformers=transformers).add(
            str(
                make_extension(
                    "pack",
                    injections=[{"target": "aif", "file": "inject/aif.md"}],
                    fragments={"inject/aif.md": "Pack rules.\n"},
                )
            )
        )

        report = reconcile(project_dir, config, catalog, transformers)

        assert report.injections_applied == 2
        assert read_skill(project_dir, "claude", "aif").count("Pack rules.") == 1
