"""Inject extension text fragments into installed skill files.

Each fragment is wrapped in marker comments carrying the extension name so
it can be found and removed again:

    <!-- ai-factory:extension my-ext start -->
    ...fragment...
    <!-- ai-factory:extension my-ext end -->
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from extensions.manifest import ExtensionInjection, ExtensionManifest, InjectionPosition
from project.config import AgentInstallation
from skills.installer import SkillInstaller

logger = logging.getLogger(__name__)

MARKER_PREFIX = "ai-factory:extension"
FRONT_MATTER_PATTERN = re.compile(r"\A---[ \t]*\n.*?\n---[ \t]*(?:\n|\Z)", re.DOTALL)


def marker_lines(name: str) -> tuple[str, str]:
    return (
        f"<!-- {MARKER_PREFIX} {name} start -->",
        f"<!-- {MARKER_PREFIX} {name} end -->",
    )


def _block_pattern(name: str) -> re.Pattern[str]:
    start, end = marker_lines(name)
    return re.compile(
        rf"[ \t]*{re.escape(start)}.*?{re.escape(end)}[ \t]*\n*", re.DOTALL
    )


def strip_block(content: str, name: str) -> tuple[str, int]:
    """Remove every block tagged with ``name``.

    Returns:
        The new content and the number of blocks removed.
    """
    stripped, count = _block_pattern(name).subn("", content)
    if count and stripped.strip():
        stripped = stripped.rstrip("\n") + "\n"
    return stripped, count


def insert_block(
    content: str, name: str, fragment: str, position: InjectionPosition
) -> str:
    """Insert a marked fragment, replacing any previous block of ``name``.

    Prepended blocks go after YAML front matter when the file has one.
    """
    content, _ = strip_block(content, name)
    start, end = marker_lines(name)
    block = f"{start}\n{fragment.strip(chr(10))}\n{end}"

    if position == InjectionPosition.PREPEND:
        match = FRONT_MATTER_PATTERN.match(content)
        head = content[: match.end()] if match else ""
        if head and not head.endswith("\n"):
            head += "\n"
        body = content[match.end() :] if match else content
        body = body.lstrip("\n")
        return f"{head}{block}\n\n{body}" if body else f"{head}{block}\n"

    body = content.rstrip("\n")
    return f"{body}\n\n{block}\n" if body else f"{block}\n"


class InjectionActivator:
    """Apply and strip an extension's injections on configured agents."""

    def __init__(self, skills: SkillInstaller):
        self.skills = skills

    def _apply_one(
        self,
        agent: AgentInstallation,
        extension_dir: Path,
        name: str,
        injection: ExtensionInjection,
    ) -> None:
        target_file = self.skills.skill_file(agent, injection.target)
        if not target_file.is_file():
            raise FileNotFoundError(
                f'target skill "{injection.target}" is not installed for {agent.id}'
            )
        fragment = (extension_dir / injection.file).read_text(encoding="utf-8")
        content = target_file.read_text(encoding="utf-8")
        target_file.write_text(
            insert_block(content, name, fragment, injection.position), encoding="utf-8"
        )

    def apply(
        self,
        agents: list[AgentInstallation],
        extension_dir: Path,
        manifest: ExtensionManifest,
        warnings: list[str] | None = None,
    ) -> int:
        """Apply every injection on every agent.

        Returns:
            Number of successful (injection, agent) applications.
        """
        applied = 0
        for injection in manifest.injections:
            for agent in agents:
                try:
                    self._apply_one(agent, extension_dir, manifest.name, injection)
                    applied += 1
                except (OSError, UnicodeDecodeError) as e:
                    message = (
                        f'Injection from {manifest.name} into "{injection.target}" '
                        f"failed for {agent.id}: {e}"
                    )
                    logger.warning(message)
                    if warnings is not None:
                        warnings.append(message)
        return applied

    def _candidate_files(
        self, agent: AgentInstallation, manifest: ExtensionManifest | None
    ) -> list[Path]:
        if manifest is not None:
            targets = dict.fromkeys(i.target for i in manifest.injections)
            return [self.skills.skill_file(agent, target) for target in targets]
        skills_root = self.skills.project_dir / agent.skills_dir
        if not skills_root.is_dir():
            return []
        return sorted(skills_root.rglob("*.md"))

    def strip(
        self,
        agents: list[AgentInstallation],
        name: str,
        manifest: ExtensionManifest | None = None,
    ) -> int:
        """Remove the extension's blocks from every agent's skill files.

        Without a manifest, every Markdown file in each skills directory is
        scanned for blocks tagged with ``name``.

        Returns:
            Number of blocks removed.
        """
        removed = 0
        for agent in agents:
            for path in self._candidate_files(agent, manifest):
                if not path.is_file():
                    continue
                try:
                    content = path.read_text(encoding="utf-8")
                    stripped, count = strip_block(content, name)
                    if count:
                        path.write_text(stripped, encoding="utf-8")
                        removed += count
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("Could not strip %s injections from %s: %s", name, path, e)
        return removed
