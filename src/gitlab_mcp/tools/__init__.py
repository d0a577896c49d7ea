"""MCP tool surface: action-routed ``browse_*`` / ``manage_*`` tools."""

from gitlab_mcp.tools.registry import RegistryManager

__all__ = [
    "RegistryManager",
]
