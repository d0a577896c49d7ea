"""Exceptions raised by gitlab-mcp core and tool code.

Core code raises these; the MCP surface converts them into the standard
response envelope (see ``gitlab_mcp.core.responses.exception_to_response``).
"""

from typing import Any, List, Optional, Sequence, Tuple


class GitLabMCPError(Exception):
    """Base exception for gitlab-mcp operations."""


class ToolValidationError(GitLabMCPError):
    """Tool input failed schema or cross-field validation.

    Attributes:
        issues: ``(field_path, reason)`` pairs, one per failed check
    """

    def __init__(self, issues: Sequence[Tuple[str, str]], *, tool: Optional[str] = None):
        self.issues: List[Tuple[str, str]] = list(issues)
        self.tool = tool
        summary = "; ".join(f"{path}: {reason}" for path, reason in self.issues)
        prefix = f"Invalid input for {tool}" if tool else "Invalid input"
        super().__init__(f"{prefix}: {summary}" if summary else prefix)

    @classmethod
    def single(cls, path: str, reason: str, *, tool: Optional[str] = None) -> "ToolValidationError":
        return cls([(path, reason)], tool=tool)


class ActionDeniedError(GitLabMCPError):
    """A ``(tool, action)`` pair is denied by policy or read-only mode."""

    def __init__(self, tool: str, action: str, reason: str = "denied by configuration"):
        self.tool = tool
        self.action = action
        self.reason = reason
        super().__init__(f"Action '{action}' of tool '{tool}' is {reason}")


class ToolUnavailableError(GitLabMCPError):
    """The connected instance's version or tier does not support the tool/action."""

    def __init__(self, tool: str, action: Optional[str] = None, reason: Optional[str] = None):
        self.tool = tool
        self.action = action
        self.reason = reason
        target = f"{tool} action '{action}'" if action else tool
        message = f"{target} is not available on this GitLab instance"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class GitLabAPIError(GitLabMCPError):
    """Upstream GitLab returned a non-2xx response.

    Attributes:
        status: HTTP status code
        status_text: HTTP reason phrase
        details: Parsed error message from the response body, if any
    """

    def __init__(self, status: int, status_text: str, details: Optional[str] = None):
        self.status = status
        self.status_text = status_text
        self.details = details
        message = f"GitLab API error: {status} {status_text}"
        if details:
            message = f"{message} - {details}"
        super().__init__(message)


class AmbiguousInputError(GitLabMCPError):
    """Neither of two alternative identifying fields resolved to a resource."""

    def __init__(self, message: str, *, fields: Sequence[str] = ()):
        self.fields = tuple(fields)
        super().__init__(message)


class ToolNotFoundError(GitLabMCPError):
    """The registry does not contain the requested tool."""

    def __init__(self, name: str, available: Sequence[str] = ()):
        self.name = name
        self.available = tuple(available)
        super().__init__(f"Tool '{name}' not found")


class ConnectionNotInitializedError(GitLabMCPError):
    """Instance information was requested before the session was initialized."""

    def __init__(self, message: str = "Connection not initialized. Call initialize() first."):
        super().__init__(message)


def is_connection_not_initialized(exc: Any) -> bool:
    """True for errors signalling that instance detection has not run yet."""
    if isinstance(exc, ConnectionNotInitializedError):
        return True
    return "Connection not initialized" in str(exc)
