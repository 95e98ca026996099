"""Tests for project configuration and tool settings."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from project.config import (
    AgentInstallation,
    ConfigError,
    ExtensionRecord,
    McpSelection,
    ProjectConfig,
    collect_replaced_skills,
    load_project_config,
    save_project_config,
)
from project.settings import Settings, load_settings

ENV_VARS = ["AIF_REGISTRY_URL", "AIF_FETCH_TIMEOUT", "AIF_LOG_LEVEL", "AIF_GIT_BIN"]


class TestProjectConfig:
    """Tests for .ai-factory.json handling."""

    def test_round_trip_uses_camel_case(self, project_dir: Path) -> None:
        config = ProjectConfig(
            version="1.0.0",
            agents=[
                AgentInstallation(
                    id="claude",
                    skills_dir=".claude/skills",
                    installed_skills=["aif", "pack/review"],
                    mcp=McpSelection(chrome_devtools=True),
                )
            ],
            extensions=[
                ExtensionRecord(name="pack", source="./pack", version="1.0.0", replaced_skills=["writer"])
            ],
        )

        save_project_config(project_dir, config)
        raw = json.loads((project_dir / ".ai-factory.json").read_text())

        assert raw["agents"][0]["skillsDir"] == ".claude/skills"
        assert raw["agents"][0]["mcp"]["chromeDevtools"] is True
        assert raw["extensions"][0]["replacedSkills"] == ["writer"]
        loaded = load_project_config(project_dir)
        assert loaded == config
        assert loaded.agents[0].base_skills == ["aif"]
        assert loaded.agents[0].custom_skills == ["pack/review"]

    def test_missing_config(self, project_dir: Path) -> None:
        assert load_project_config(project_dir) is None

    def test_invalid_config(self, project_dir: Path) -> None:
        (project_dir / ".ai-factory.json").write_text('{"agents": "nope"}')

        with pytest.raises(ConfigError):
            load_project_config(project_dir)

    def test_upsert_and_drop(self) -> None:
        config = ProjectConfig(version="1.0.0")
        config.upsert_extension(ExtensionRecord(name="a", source="./a", version="1"))
        config.upsert_extension(ExtensionRecord(name="a", source="./a", version="2"))

        assert [r.version for r in config.extensions] == ["2"]
        config.drop_extension("a")
        assert config.extensions == []

    def test_collect_replaced_skills(self) -> None:
        records = [
            ExtensionRecord(name="a", source="./a", version="1", replaced_skills=["x"]),
            ExtensionRecord(name="b", source="./b", version="1", replaced_skills=["y"]),
        ]

        assert collect_replaced_skills(records) == {"x", "y"}
        assert collect_replaced_skills(records, exclude="a") == {"y"}

    def test_mcp_selection(self) -> None:
        selection = McpSelection.model_validate({"github": True, "chromeDevtools": True})

        assert selection.selected() == ["github", "chromeDevtools"]


class TestSettings:
    """Tests for load_settings."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(settings_path=tmp_path / "missing.toml")

        assert settings == Settings()

    def test_file_then_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should read the [ai-factory] table and let the environment win."""
        path = tmp_path / "ai-factory.toml"
        path.write_text(
            '[ai-factory]\nregistry_url = "https://npm.example"\nfetch_timeout = 30\n'
        )
        monkeypatch.setenv("AIF_FETCH_TIMEOUT", "5")

        settings = load_settings(settings_path=path)

        assert settings.registry_url == "https://npm.example"
        assert settings.fetch_timeout == 5.0

    def test_settings_file_found_in_parent(self, tmp_path: Path) -> None:
        (tmp_path / "ai-factory.toml").write_text('[ai-factory]\ngit_bin = "/usr/bin/git"\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert load_settings(nested).git_bin == "/usr/bin/git"
