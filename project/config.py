"""Project configuration schema.

The project state lives in ``.ai-factory.json`` at the project root:
- the tool version that last wrote it
- one AgentInstallation per configured agent
- one ExtensionRecord per installed extension
"""

from __future__ import annotations

import json
import logging
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".ai-factory.json"
STATE_DIRNAME = ".ai-factory"
DIST_NAME = "ai-factory"


class ConfigError(Exception):
    """Raised when the project configuration cannot be read or written."""

    pass


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class McpSelection(_CamelModel):
    """Built-in companion servers an agent opted into."""

    github: bool = False
    filesystem: bool = False
    postgres: bool = False
    chrome_devtools: bool = Field(default=False, alias="chromeDevtools")
    playwright: bool = False

    def selected(self) -> list[str]:
        """Return the selected server keys in their persisted spelling."""
        data = self.model_dump(by_alias=True)
        return [key for key, enabled in data.items() if enabled]


class AgentInstallation(_CamelModel):
    """A configured agent and the skills installed for it.

    Base skills are recorded by plain name, extension skills as
    ``<extension>/<skill>``.
    """

    id: str
    skills_dir: str = Field(alias="skillsDir")
    installed_skills: list[str] = Field(default_factory=list, alias="installedSkills")
    mcp: McpSelection = Field(default_factory=McpSelection)

    @property
    def base_skills(self) -> list[str]:
        return [s for s in self.installed_skills if "/" not in s]

    @property
    def custom_skills(self) -> list[str]:
        return [s for s in self.installed_skills if "/" in s]


class ExtensionRecord(_CamelModel):
    """An installed extension and the replacements currently active for it."""

    name: str
    source: str
    version: str
    replaced_skills: list[str] = Field(default_factory=list, alias="replacedSkills")


class ProjectConfig(_CamelModel):
    """Root of ``.ai-factory.json``."""

    version: str
    agents: list[AgentInstallation] = Field(default_factory=list)
    extensions: list[ExtensionRecord] = Field(default_factory=list)

    def find_extension(self, name: str) -> ExtensionRecord | None:
        for record in self.extensions:
            if record.name == name:
                return record
        return None

    def upsert_extension(self, record: ExtensionRecord) -> None:
        """Replace the record with the same name, or append a new one."""
        for idx, existing in enumerate(self.extensions):
            if existing.name == record.name:
                self.extensions[idx] = record
                return
        self.extensions.append(record)

    def drop_extension(self, name: str) -> None:
        self.extensions = [r for r in self.extensions if r.name != name]


def collect_replaced_skills(
    records: list[ExtensionRecord],
    exclude: str | None = None,
) -> set[str]:
    """Collect every active replacement, optionally skipping one extension."""
    claimed: set[str] = set()
    for record in records:
        if exclude is not None and record.name == exclude:
            continue
        claimed.update(record.replaced_skills)
    return claimed


def get_current_version() -> str:
    """Version of the installed ai-factory distribution."""
    try:
        return package_version(DIST_NAME)
    except PackageNotFoundError:
        return "0.0.0"


def get_config_path(project_dir: Path) -> Path:
    return Path(project_dir) / CONFIG_FILENAME


def load_project_config(project_dir: Path) -> ProjectConfig | None:
    """Load ``.ai-factory.json``.

    Returns:
        The parsed config, or None if the project has not been initialized.

    Raises:
        ConfigError: If the file exists but is not a valid config.
    """
    path = get_config_path(project_dir)
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}")

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid project configuration in {path}: {e}")


def save_project_config(project_dir: Path, config: ProjectConfig) -> None:
    """Write ``.ai-factory.json``."""
    path = get_config_path(project_dir)
    data = config.model_dump(by_alias=True)
    try:
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write {path}: {e}")
    logger.debug("Saved project configuration to %s", path)
