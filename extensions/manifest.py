"""Extension manifest schema.

Defines the structure and validation for extension manifests (extension.json).
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any

from extensions.errors import ManifestError, UnsafeNameError

MANIFEST_FILENAME = "extension.json"

SAFE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_@][\w.@/-]*$")


def validate_extension_name(name: str) -> None:
    """Reject names that are not identifiers or could traverse directories.

    Applies to extension names and to base skill names used as replacement
    targets.

    Raises:
        UnsafeNameError: If the name fails the check.
    """
    if (
        not isinstance(name, str)
        or not SAFE_NAME_PATTERN.match(name)
        or ".." in name
        or name.startswith("/")
        or Path(name).is_absolute()
    ):
        raise UnsafeNameError(
            f'Invalid extension name: "{name}". Names must be alphanumeric '
            '(with -, _, @, /) and cannot contain ".." or absolute paths.'
        )


def validate_relative_path(value: str, what: str = "path") -> None:
    """Reject absolute paths and paths with a ``..`` component."""
    if not isinstance(value, str) or not value.strip():
        raise UnsafeNameError(f"Invalid {what}: {value!r}")
    posix = PurePosixPath(value.replace("\\", "/"))
    if posix.is_absolute() or Path(value).is_absolute() or ".." in posix.parts:
        raise UnsafeNameError(
            f'Invalid {what}: "{value}". Paths must be relative to the '
            'extension root and cannot contain "..".'
        )


class InjectionPosition(str, Enum):
    """Where an injected fragment is placed in the target file."""

    APPEND = "append"
    PREPEND = "prepend"


@dataclass
class ExtensionCommand:
    """CLI command contributed by an extension."""

    name: str
    description: str = ""
    module: str = ""


@dataclass
class ExtensionAgentDef:
    """Agent definition contributed by an extension."""

    id: str
    display_name: str
    config_dir: str
    skills_dir: str
    settings_file: str | None = None
    supports_mcp: bool = False
    skills_cli_agent: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionAgentDef:
        return cls(
            id=data["id"],
            display_name=data.get("displayName", data["id"]),
            config_dir=data.get("configDir", ""),
            skills_dir=data.get("skillsDir", ""),
            settings_file=data.get("settingsFile"),
            supports_mcp=bool(data.get("supportsMcp", False)),
            skills_cli_agent=data.get("skillsCliAgent"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "configDir": self.config_dir,
            "skillsDir": self.skills_dir,
            "settingsFile": self.settings_file,
            "supportsMcp": self.supports_mcp,
            "skillsCliAgent": self.skills_cli_agent,
        }


@dataclass
class ExtensionInjection:
    """Text fragment injected into an agent's skill file.

    Attributes:
        target: Base skill whose SKILL.md receives the fragment.
        position: append or prepend.
        file: Fragment file, relative to the extension root.
    """

    target: str
    position: InjectionPosition
    file: str


@dataclass
class ExtensionMcpServer:
    """Companion server registered into capable agents' settings."""

    key: str
    template: str
    instruction: str | None = None


@dataclass
class ExtensionManifest:
    """Extension manifest containing metadata and contents.

    Attributes:
        name: Unique extension identifier, also its storage directory name.
        version: Version string (e.g., "1.0.0").
        description: Short description of what the extension does.
        commands: CLI commands the extension provides.
        agents: Agent definitions the extension provides.
        injections: Text fragments injected into agents' skill files.
        skills: Skill directories (relative paths) shipped by the extension.
        replaces: Extension skill path -> base skill name it supersedes.
        mcp_servers: Companion server definitions.
    """

    name: str
    version: str
    description: str | None = None
    commands: list[ExtensionCommand] = field(default_factory=list)
    agents: list[ExtensionAgentDef] = field(default_factory=list)
    injections: list[ExtensionInjection] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    replaces: dict[str, str] = field(default_factory=dict)
    mcp_servers: list[ExtensionMcpServer] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate the manifest after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate manifest fields."""
        if not self.name:
            raise ManifestError("Extension name is required")
        if not self.version:
            raise ManifestError("Extension version is required")

        validate_extension_name(self.name)

        for skill_path, base_skill in self.replaces.items():
            validate_relative_path(skill_path, "replacement skill path")
            validate_extension_name(base_skill)

        for skill_path in self.skills:
            validate_relative_path(skill_path, "skill path")

        for injection in self.injections:
            validate_extension_name(injection.target)
            validate_relative_path(injection.file, "injection file")

        for server in self.mcp_servers:
            if not server.key:
                raise ManifestError("MCP server key is required")
            validate_relative_path(server.template, "MCP server template")

    @classmethod
    def from_json(cls, json_path: Path) -> ExtensionManifest:
        """Load manifest from an extension.json file.

        Args:
            json_path: Path to extension.json.

        Returns:
            Parsed ExtensionManifest.

        Raises:
            ManifestError: If file is missing or invalid.
        """
        if not json_path.exists():
            raise ManifestError(f"Manifest not found: {json_path}")

        try:
            with open(json_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid JSON in {json_path}: {e}")
        except OSError as e:
            raise ManifestError(f"Cannot read {json_path}: {e}")

        if not isinstance(data, dict):
            raise ManifestError(f"Manifest must be a JSON object: {json_path}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionManifest:
        """Create manifest from a dictionary.

        Raises:
            ManifestError: If required fields are missing or invalid.
        """
        replaces = data.get("replaces") or {}
        if not isinstance(replaces, dict):
            raise ManifestError("'replaces' must be a mapping of skill path to base skill")

        try:
            return cls(
                name=data.get("name", ""),
                version=data.get("version", ""),
                description=data.get("description"),
                commands=[
                    ExtensionCommand(
                        name=cmd["name"],
                        description=cmd.get("description", ""),
                        module=cmd.get("module", ""),
                    )
                    for cmd in data.get("commands") or []
                ],
                agents=[
                    ExtensionAgentDef.from_dict(agent)
                    for agent in data.get("agents") or []
                ],
                injections=[
                    ExtensionInjection(
                        target=inj["target"],
                        position=InjectionPosition(inj.get("position", "append")),
                        file=inj["file"],
                    )
                    for inj in data.get("injections") or []
                ],
                skills=list(data.get("skills") or []),
                replaces={str(k): v for k, v in replaces.items()},
                mcp_servers=[
                    ExtensionMcpServer(
                        key=srv["key"],
                        template=srv["template"],
                        instruction=srv.get("instruction"),
                    )
                    for srv in data.get("mcpServers") or []
                ],
            )
        except (ValueError, KeyError, TypeError) as e:
            raise ManifestError(f"Invalid manifest data: {e}")

    def to_dict(self) -> dict[str, Any]:
        """Convert manifest to its extension.json representation."""
        result: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
        }

        if self.description:
            result["description"] = self.description
        if self.commands:
            result["commands"] = [
                {"name": c.name, "description": c.description, "module": c.module}
                for c in self.commands
            ]
        if self.agents:
            result["agents"] = [a.to_dict() for a in self.agents]
        if self.injections:
            result["injections"] = [
                {"target": i.target, "position": i.position.value, "file": i.file}
                for i in self.injections
            ]
        if self.skills:
            result["skills"] = list(self.skills)
        if self.replaces:
            result["replaces"] = dict(self.replaces)
        if self.mcp_servers:
            result["mcpServers"] = [
                {
                    "key": s.key,
                    "template": s.template,
                    **({"instruction": s.instruction} if s.instruction else {}),
                }
                for s in self.mcp_servers
            ]

        return result

    @property
    def custom_skills(self) -> list[str]:
        """Skill paths that are not used as a replacement source."""
        replace_paths = set(self.replaces)
        return [s for s in self.skills if s not in replace_paths]

    @property
    def feature_summary(self) -> list[str]:
        """Human-readable counts of what the extension provides."""
        features = []
        if self.commands:
            features.append(f"{len(self.commands)} command(s)")
        if self.agents:
            features.append(f"{len(self.agents)} agent(s)")
        if self.injections:
            features.append(f"{len(self.injections)} injection(s)")
        if self.skills:
            features.append(f"{len(self.skills)} skill(s)")
        if self.mcp_servers:
            features.append(f"{len(self.mcp_servers)} MCP server(s)")
        return features

    def __repr__(self) -> str:
        return f"ExtensionManifest(name={self.name!r}, version={self.version!r})"
