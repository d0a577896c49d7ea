"""GitLab MCP - MCP server exposing GitLab REST/GraphQL APIs as action-routed tools."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gitlab-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "0.3.0"

from gitlab_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
