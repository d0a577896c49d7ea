"""Request context for tool invocations.

Each MCP tool call runs inside a request context that carries a correlation
ID, the invoked tool name and the start time. The correlation ID is echoed in
the ``meta.request_id`` field of every response envelope.

Usage:
    from gitlab_mcp.core.context import request_context, get_correlation_id

    async with request_context(tool_name="browse_labels") as ctx:
        print(ctx.correlation_id)  # e.g., "req_a1b2c3d4e5f6"
"""

from __future__ import annotations

import secrets
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Optional

__all__ = [
    "correlation_id_var",
    "tool_name_var",
    "start_time_var",
    "RequestContext",
    "generate_correlation_id",
    "request_context",
    "sync_request_context",
    "get_correlation_id",
    "get_tool_name",
    "get_current_context",
]

# -----------------------------------------------------------------------------
# Context Variables
# -----------------------------------------------------------------------------

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
"""Request correlation ID for tracing a tool call across components."""

tool_name_var: ContextVar[str] = ContextVar("tool_name", default="")
"""Name of the tool being executed."""

start_time_var: ContextVar[float] = ContextVar("start_time", default=0.0)
"""Request start time as Unix timestamp."""


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a unique correlation ID with optional prefix.

    Format: {prefix}_{12_hex_chars}
    Example: "req_a1b2c3d4e5f6"
    """
    return f"{prefix}_{secrets.token_hex(6)}"


@dataclass
class RequestContext:
    """Snapshot of the current request context.

    Attributes:
        correlation_id: Unique request identifier
        tool_name: Tool being executed (empty outside tool calls)
        start_time: Request start timestamp
    """

    correlation_id: str = ""
    tool_name: str = ""
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time since request start in milliseconds."""
        if self.start_time <= 0:
            return 0.0
        return (time.time() - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "tool_name": self.tool_name,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def sync_request_context(
    *,
    correlation_id: Optional[str] = None,
    tool_name: Optional[str] = None,
) -> Generator[RequestContext, None, None]:
    """Set up context variables for the duration of the with block.

    Args:
        correlation_id: Request ID (auto-generated if None)
        tool_name: Tool being executed

    Yields:
        RequestContext snapshot
    """
    corr_id = correlation_id or generate_correlation_id()
    tool = tool_name or ""
    start = time.time()

    token_corr = correlation_id_var.set(corr_id)
    token_tool = tool_name_var.set(tool)
    token_start = start_time_var.set(start)

    try:
        yield RequestContext(correlation_id=corr_id, tool_name=tool, start_time=start)
    finally:
        correlation_id_var.reset(token_corr)
        tool_name_var.reset(token_tool)
        start_time_var.reset(token_start)


class _AsyncContextManager:
    """Wrapper to make the request context usable with ``async with``."""

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        tool_name: Optional[str] = None,
    ):
        self.correlation_id = correlation_id
        self.tool_name = tool_name
        self._sync_cm: Optional[Any] = None

    async def __aenter__(self) -> RequestContext:
        self._sync_cm = sync_request_context(
            correlation_id=self.correlation_id,
            tool_name=self.tool_name,
        )
        return self._sync_cm.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._sync_cm:
            self._sync_cm.__exit__(exc_type, exc_val, exc_tb)
        return False


def request_context(
    *,
    correlation_id: Optional[str] = None,
    tool_name: Optional[str] = None,
) -> _AsyncContextManager:
    """Create an async context manager for a tool call.

    Example:
        async with request_context(tool_name="manage_label") as ctx:
            await registry.execute_tool(...)
            logger.info(f"Completed request {ctx.correlation_id}")
    """
    return _AsyncContextManager(correlation_id=correlation_id, tool_name=tool_name)


# -----------------------------------------------------------------------------
# Context Accessors
# -----------------------------------------------------------------------------


def get_correlation_id() -> str:
    """Get the current correlation ID, or an empty string if not set."""
    return correlation_id_var.get()


def get_tool_name() -> str:
    return tool_name_var.get()


def get_current_context() -> RequestContext:
    """Get a snapshot of all current context values."""
    return RequestContext(
        correlation_id=get_correlation_id(),
        tool_name=get_tool_name(),
        start_time=start_time_var.get(),
    )
