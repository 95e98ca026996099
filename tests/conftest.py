"""Shared pytest fixtures for AI Factory tests."""

from __future__ import annotations

import json
from pathlib import Path
from textwrap import dedent
from typing import Any, Callable

import pytest

from agents.transformers import DefaultTransformer, TransformerRegistry, TransformResult
from project.config import AgentInstallation, ProjectConfig, save_project_config
from skills.catalog import DirectorySkillCatalog
from skills.installer import SkillInstaller

BASE_SKILLS = ["aif", "aif-commit", "writer"]


def base_skill_text(name: str) -> str:
    return dedent(
        f"""\
        ---
        name: {name}
        description: Base {name} skill
        ---

        # {name}

        Base content of {name}. Skills live in {{{{skills_dir}}}}.
        """
    )


def write_skill(directory: Path, name: str, body: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "SKILL.md").write_text(body, encoding="utf-8")
    return directory


class FailingTransformer(DefaultTransformer):
    """Refuses to transform content carrying a failure marker."""

    MARKER = "FAIL-ON-THIS-AGENT"

    def transform(self, skill_name: str, content: str) -> TransformResult:
        if self.MARKER in content:
            raise ValueError(f"cannot transform {skill_name}")
        return super().transform(skill_name, content)


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """Base-skill catalog with a few skills, a private folder and a stray dir."""
    root = tmp_path / "catalog"
    for name in BASE_SKILLS:
        write_skill(root / name, name, base_skill_text(name))
    write_skill(root / "_shared", "_shared", "# shared\n")
    (root / "not-a-skill").mkdir()
    return root


@pytest.fixture
def catalog(catalog_dir: Path) -> DirectorySkillCatalog:
    return DirectorySkillCatalog(catalog_dir)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def transformers() -> TransformerRegistry:
    return TransformerRegistry()


@pytest.fixture
def flaky_transformers() -> TransformerRegistry:
    """Cursor refuses extension content carrying the failure marker."""
    return TransformerRegistry().with_override("cursor", FailingTransformer)


@pytest.fixture
def make_project(
    project_dir: Path, catalog: DirectorySkillCatalog
) -> Callable[..., ProjectConfig]:
    """Create an initialized project with base skills installed per agent."""

    def _make(agent_ids: tuple[str, ...] = ("claude", "cursor")) -> ProjectConfig:
        installer = SkillInstaller(project_dir, TransformerRegistry(), catalog)
        config = ProjectConfig(version="0.0.1")
        for agent_id in agent_ids:
            agent = AgentInstallation(id=agent_id, skills_dir=f".{agent_id}/skills")
            agent.installed_skills = installer.install_base_skills(agent, catalog.list_skills())
            config.agents.append(agent)
        save_project_config(project_dir, config)
        return config

    return _make


@pytest.fixture
def make_extension(tmp_path: Path) -> Callable[..., Path]:
    """Write an extension package and return its directory."""

    def _make(
        name: str,
        version: str = "1.0.0",
        replaces: dict[str, str] | None = None,
        skills: dict[str, str] | None = None,
        injections: list[dict[str, Any]] | None = None,
        fragments: dict[str, str] | None = None,
        mcp_servers: list[dict[str, Any]] | None = None,
        templates: dict[str, dict[str, Any]] | None = None,
        directory: str | None = None,
    ) -> Path:
        root = tmp_path / "sources" / (directory or name.replace("/", "__")) / version
        root.mkdir(parents=True, exist_ok=True)

        skills = skills or {}
        for skill_path, body in skills.items():
            write_skill(root / skill_path, skill_path, body)
        for rel_path, text in (fragments or {}).items():
            (root / rel_path).parent.mkdir(parents=True, exist_ok=True)
            (root / rel_path).write_text(text, encoding="utf-8")
        for rel_path, template in (templates or {}).items():
            (root / rel_path).parent.mkdir(parents=True, exist_ok=True)
            (root / rel_path).write_text(json.dumps(template), encoding="utf-8")

        manifest: dict[str, Any] = {
            "name": name,
            "version": version,
            "description": f"{name} test extension",
            "skills": list(skills),
        }
        if replaces:
            manifest["replaces"] = replaces
        if injections:
            manifest["injections"] = injections
        if mcp_servers:
            manifest["mcpServers"] = mcp_servers
        (root / "extension.json").write_text(json.dumps(manifest), encoding="utf-8")
        return root

    return _make


def read_skill(project_dir: Path, agent_id: str, skill: str) -> str:
    return (project_dir / f".{agent_id}" / "skills" / skill / "SKILL.md").read_text(
        encoding="utf-8"
    )
