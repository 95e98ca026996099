"""Base skills and their installation into agent skills directories.

Skills are directories with a SKILL.md entry point. The bundled catalog
ships with AI Factory; extensions can add or replace skills.
"""

from skills.catalog import DirectorySkillCatalog, SkillCatalog
from skills.installer import SkillInstaller, SkillInstallError

__all__ = [
    "DirectorySkillCatalog",
    "SkillCatalog",
    "SkillInstallError",
    "SkillInstaller",
]
