"""Base-skill catalog.

The catalog is a read-only repository of the skills shipped with AI Factory.
Consumers depend on the SkillCatalog protocol so tests can point it at any
directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

BUNDLED_SKILLS_DIR = Path(__file__).parent / "bundled"
SKILL_ENTRYPOINT = "SKILL.md"


class SkillCatalog(Protocol):
    """Read-only view of the base skills."""

    def list_skills(self) -> list[str]:
        ...

    def skill_dir(self, name: str) -> Path:
        ...

    def __contains__(self, name: object) -> bool:
        ...


class DirectorySkillCatalog:
    """Catalog backed by a directory with one sub-directory per skill.

    Directories starting with ``_`` and directories without a SKILL.md
    are not skills.
    """

    def __init__(self, root: Path | None = None):
        self.root = Path(root or BUNDLED_SKILLS_DIR)

    def list_skills(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_dir()
            and not entry.name.startswith("_")
            and (entry / SKILL_ENTRYPOINT).is_file()
        )

    def skill_dir(self, name: str) -> Path:
        return self.root / name

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self.list_skills()

    def __repr__(self) -> str:
        return f"DirectorySkillCatalog(root={str(self.root)!r})"
