"""Supported coding agents.

Provides:
- agent profiles (skills directory, settings file, MCP capability)
- per-agent skill transformers
- companion MCP server registration in agent settings files
"""

from agents.mcp import McpConfigurator, McpError
from agents.registry import AGENTS, AgentConfig, McpSettingsFormat, get_agent_config, list_agent_ids
from agents.transformers import (
    AgentTransformer,
    TransformerRegistry,
    TransformResult,
    default_transformers,
)

__all__ = [
    "AGENTS",
    "AgentConfig",
    "AgentTransformer",
    "McpConfigurator",
    "McpError",
    "McpSettingsFormat",
    "TransformResult",
    "TransformerRegistry",
    "default_transformers",
    "get_agent_config",
    "list_agent_ids",
]
