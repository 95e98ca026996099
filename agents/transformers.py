"""Per-agent skill transformers.

A transformer decides where a skill lands inside an agent's skills directory
and rewrites its text for that agent's invocation conventions. Variants are
selected through an explicit lookup table; agents without an entry use the
default variant.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Mapping, Protocol

INVOCATION_PATTERN = re.compile(r"(^|[^A-Za-z0-9_-])/(aif(?:-[a-z0-9-]+)?)", re.MULTILINE)


@dataclass
class TransformResult:
    """Placement and content of a transformed skill.

    Attributes:
        target_dir: Directory (relative to the skills dir) receiving the skill.
        target_name: File name of the skill entry point.
        content: Transformed SKILL.md content.
        flat: If True, only the single file is written, under the agent's
            config dir, instead of copying the whole skill directory.
    """

    target_dir: str
    target_name: str
    content: str
    flat: bool = False


class AgentTransformer(Protocol):
    """Capability interface implemented once per agent identity."""

    def transform(self, skill_name: str, content: str) -> TransformResult:
        ...

    def welcome_message(self) -> list[str]:
        ...


def rewrite_invocations(content: str, replacement: str) -> str:
    """Rewrite ``/aif...`` invocations using a regex replacement template."""
    return INVOCATION_PATTERN.sub(replacement, content)


class DefaultTransformer:
    """Installs skills unchanged as ``<skill>/SKILL.md``."""

    def transform(self, skill_name: str, content: str) -> TransformResult:
        return TransformResult(
            target_dir=skill_name,
            target_name="SKILL.md",
            content=content,
        )

    def welcome_message(self) -> list[str]:
        return [
            "1. Open the agent in this directory",
            "2. Run /aif to analyze project and generate project-relevant skills",
        ]


class CodexTransformer:
    """Codex invokes skills with ``$name`` instead of ``/name``."""

    def transform(self, skill_name: str, content: str) -> TransformResult:
        return TransformResult(
            target_dir=skill_name,
            target_name="SKILL.md",
            content=rewrite_invocations(content, r"\1$\2"),
        )

    def welcome_message(self) -> list[str]:
        return [
            "1. Open Codex CLI in this directory",
            "2. Run $aif to analyze project and generate stack-specific skills",
        ]


class QwenTransformer:
    """Qwen Code invokes skills through ``/skills name``."""

    def transform(self, skill_name: str, content: str) -> TransformResult:
        return TransformResult(
            target_dir=skill_name,
            target_name="SKILL.md",
            content=rewrite_invocations(content, r"\1/skills \2"),
        )

    def welcome_message(self) -> list[str]:
        return [
            "1. Open Qwen Code in this directory",
            "2. MCP servers configured in .qwen/settings.json (if selected)",
            "3. Run /skills aif to analyze project and generate stack-specific skills",
        ]


TransformerFactory = Callable[[], AgentTransformer]


class TransformerRegistry:
    """Lookup table from agent id to transformer factory.

    Example:
        >>> registry = TransformerRegistry({"codex": CodexTransformer})
        >>> registry.get("codex").transform("aif", "Run /aif").content
        'Run $aif'
    """

    def __init__(
        self,
        factories: Mapping[str, TransformerFactory] | None = None,
        default: TransformerFactory = DefaultTransformer,
    ):
        self._factories = dict(factories or {})
        self._default = default

    def get(self, agent_id: str) -> AgentTransformer:
        factory = self._factories.get(agent_id, self._default)
        return factory()

    def with_override(self, agent_id: str, factory: TransformerFactory) -> TransformerRegistry:
        """Return a copy with one entry replaced."""
        factories = dict(self._factories)
        factories[agent_id] = factory
        return TransformerRegistry(factories, self._default)


def default_transformers() -> TransformerRegistry:
    """Registry with the built-in agent variants."""
    return TransformerRegistry(
        {
            "codex": CodexTransformer,
            "qwen": QwenTransformer,
        }
    )
