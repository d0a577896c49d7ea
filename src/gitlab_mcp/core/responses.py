"""
Standard response contracts for gitlab-mcp tool calls.

Response Schema Contract
========================

Every tool call returns the same envelope:

    {
        "success": bool,       # Required: operation success/failure
        "data": {...},         # Required: payload ({"result": ...} on success)
        "error": str | null,   # Required: error message or null on success
        "meta": {              # Required: response metadata
            "version": "response-v2",
            "request_id": "req_abc123"?,
            "warnings": ["..."]?,
            "telemetry": { ... }?
        }
    }

On failure ``data`` carries ``error_code``, ``error_type``, ``remediation``
and, where available, structured ``details`` (validation issues, upstream
HTTP status).

Key Principle:
    - `success=True` means the GitLab call completed (even if the result is empty).
    - `success=False` means the tool could not complete; include actionable details.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import httpx
from mcp.types import TextContent

from gitlab_mcp.core.context import get_correlation_id
from gitlab_mcp.core.errors import (
    ActionDeniedError,
    AmbiguousInputError,
    ConnectionNotInitializedError,
    GitLabAPIError,
    ToolNotFoundError,
    ToolUnavailableError,
    ToolValidationError,
)

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes for tool responses."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED = "MISSING_REQUIRED"
    AMBIGUOUS_INPUT = "AMBIGUOUS_INPUT"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Access errors
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    ACTION_DENIED = "ACTION_DENIED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    FEATURE_DISABLED = "FEATURE_DISABLED"

    # System errors
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAVAILABLE = "UNAVAILABLE"


class ErrorType(str, Enum):
    """Error categories for routing and client-side handling.

    Each type corresponds to an HTTP status code analog.
    """

    VALIDATION = "validation"  # 400 - No retry, fix input
    AUTHENTICATION = "authentication"  # 401 - No retry, re-authenticate
    AUTHORIZATION = "authorization"  # 403 - No retry
    NOT_FOUND = "not_found"  # 404 - No retry
    CONFLICT = "conflict"  # 409 - Maybe retry, check state
    RATE_LIMIT = "rate_limit"  # 429 - Yes, after delay
    FEATURE_FLAG = "feature_flag"  # 403 - No retry, check instance tier/version
    INTERNAL = "internal"  # 500 - Yes, with backoff
    UNAVAILABLE = "unavailable"  # 503 - Yes, with backoff


@dataclass
class ToolResponse:
    """
    Standard response structure for tool calls.

    Attributes:
        success: Whether the operation completed successfully
        data: The primary payload
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": "response-v2"})


def _build_meta(
    *,
    request_id: Optional[str] = None,
    warnings: Optional[Sequence[str]] = None,
    telemetry: Optional[Mapping[str, Any]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Construct a metadata payload that always includes the response version.

    The correlation ID from the current request context is injected when no
    explicit ``request_id`` is given.
    """
    meta: Dict[str, Any] = {"version": "response-v2"}

    effective_request_id = request_id or get_correlation_id() or None
    if effective_request_id:
        meta["request_id"] = effective_request_id
    if warnings:
        meta["warnings"] = list(warnings)
    if telemetry:
        meta["telemetry"] = dict(telemetry)
    if extra:
        meta.update(dict(extra))

    return meta


def success_response(
    data: Optional[Mapping[str, Any]] = None,
    *,
    warnings: Optional[Sequence[str]] = None,
    telemetry: Optional[Mapping[str, Any]] = None,
    request_id: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
    **fields: Any,
) -> ToolResponse:
    """Create a standardized success response.

    Args:
        data: Optional mapping used as the base payload.
        warnings: Non-fatal issues to surface in ``meta.warnings``.
        telemetry: Timing/performance metadata.
        request_id: Correlation identifier propagated through logs.
        meta: Arbitrary extra metadata to merge into ``meta``.
        **fields: Additional payload fields (shorthand for ``data.update``).
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))
    if fields:
        payload.update(fields)

    meta_payload = _build_meta(
        request_id=request_id,
        warnings=warnings,
        telemetry=telemetry,
        extra=meta,
    )

    return ToolResponse(success=True, data=payload, error=None, meta=meta_payload)


def error_response(
    message: str,
    *,
    data: Optional[Mapping[str, Any]] = None,
    error_code: Optional[Union[ErrorCode, str]] = None,
    error_type: Optional[Union[ErrorType, str]] = None,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    request_id: Optional[str] = None,
    telemetry: Optional[Mapping[str, Any]] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized error response.

    Args:
        message: Human-readable description of the failure.
        data: Optional mapping with additional machine-readable context.
        error_code: Canonical error code (``ErrorCode`` enum or string).
        error_type: Error category for routing (``ErrorType`` enum or string).
        remediation: User-facing guidance on how to fix the issue.
        details: Nested structure describing validation failures or metadata.
        request_id: Correlation identifier propagated through logs.
        telemetry: Timing/performance metadata captured before failure.
        meta: Arbitrary extra metadata to merge into ``meta``.

    Example:
        >>> error_response(
        ...     "Invalid input for manage_milestone: milestone_id: Field required",
        ...     error_code=ErrorCode.VALIDATION_ERROR,
        ...     error_type=ErrorType.VALIDATION,
        ...     remediation="Provide milestone_id for the update action",
        ... )
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))

    effective_error_code: Union[ErrorCode, str] = (
        error_code if error_code is not None else ErrorCode.INTERNAL_ERROR
    )
    effective_error_type: Union[ErrorType, str] = (
        error_type if error_type is not None else ErrorType.INTERNAL
    )

    if "error_code" not in payload:
        payload["error_code"] = (
            effective_error_code.value
            if isinstance(effective_error_code, Enum)
            else effective_error_code
        )
    if "error_type" not in payload:
        payload["error_type"] = (
            effective_error_type.value
            if isinstance(effective_error_type, Enum)
            else effective_error_type
        )
    if remediation is not None and "remediation" not in payload:
        payload["remediation"] = remediation
    if details and "details" not in payload:
        payload["details"] = dict(details)

    meta_payload = _build_meta(request_id=request_id, telemetry=telemetry, extra=meta)

    return ToolResponse(success=False, data=payload, error=message, meta=meta_payload)


# ---------------------------------------------------------------------------
# Exception mapping
# ---------------------------------------------------------------------------

_STATUS_MAPPING: Dict[int, tuple] = {
    400: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    401: (ErrorCode.UNAUTHORIZED, ErrorType.AUTHENTICATION),
    403: (ErrorCode.FORBIDDEN, ErrorType.AUTHORIZATION),
    404: (ErrorCode.NOT_FOUND, ErrorType.NOT_FOUND),
    409: (ErrorCode.CONFLICT, ErrorType.CONFLICT),
    422: (ErrorCode.VALIDATION_ERROR, ErrorType.VALIDATION),
    429: (ErrorCode.RATE_LIMIT_EXCEEDED, ErrorType.RATE_LIMIT),
}


def _api_error_response(exc: GitLabAPIError) -> ToolResponse:
    code, kind = _STATUS_MAPPING.get(
        exc.status,
        (ErrorCode.UPSTREAM_ERROR, ErrorType.UNAVAILABLE if exc.status >= 500 else ErrorType.INTERNAL),
    )
    remediation = {
        401: "Check GITLAB_TOKEN or the auth cookie file.",
        403: "The token lacks permission for this resource.",
        404: "Verify the project, group and resource identifiers.",
        429: "Wait before retrying; GitLab rate limit reached.",
    }.get(exc.status, "Check the request parameters and GitLab instance state.")
    return error_response(
        str(exc),
        error_code=code,
        error_type=kind,
        remediation=remediation,
        details={
            "status": exc.status,
            "status_text": exc.status_text,
            "message": exc.details,
        },
    )


def exception_to_response(exc: Exception, *, tool_name: Optional[str] = None) -> ToolResponse:
    """Convert an exception raised by tool execution into an error envelope."""
    if isinstance(exc, ToolValidationError):
        return error_response(
            str(exc),
            error_code=ErrorCode.VALIDATION_ERROR,
            error_type=ErrorType.VALIDATION,
            remediation="Fix the listed fields and retry.",
            details={"issues": [{"path": path, "reason": reason} for path, reason in exc.issues]},
        )
    if isinstance(exc, AmbiguousInputError):
        return error_response(
            str(exc),
            error_code=ErrorCode.AMBIGUOUS_INPUT,
            error_type=ErrorType.VALIDATION,
            remediation=(
                f"Provide one of: {', '.join(exc.fields)}" if exc.fields else None
            ),
        )
    if isinstance(exc, ActionDeniedError):
        return error_response(
            str(exc),
            error_code=ErrorCode.ACTION_DENIED,
            error_type=ErrorType.AUTHORIZATION,
            data={"tool": exc.tool, "action": exc.action},
            remediation="Adjust GITLAB_DENIED_ACTIONS or GITLAB_READ_ONLY_MODE.",
        )
    if isinstance(exc, ToolUnavailableError):
        return error_response(
            str(exc),
            error_code=ErrorCode.FEATURE_DISABLED,
            error_type=ErrorType.FEATURE_FLAG,
            data={"tool": exc.tool, "action": exc.action},
            remediation="Upgrade the GitLab instance or license tier.",
        )
    if isinstance(exc, ToolNotFoundError):
        return error_response(
            str(exc),
            error_code=ErrorCode.NOT_FOUND,
            error_type=ErrorType.NOT_FOUND,
            remediation="List tools to see which are enabled.",
        )
    if isinstance(exc, ConnectionNotInitializedError):
        return error_response(
            str(exc),
            error_code=ErrorCode.UNAVAILABLE,
            error_type=ErrorType.UNAVAILABLE,
            remediation="Retry once the GitLab connection is established.",
        )
    if isinstance(exc, GitLabAPIError):
        return _api_error_response(exc)

    logger.exception(f"Unexpected error in {tool_name or 'tool call'}")
    return error_response(
        sanitize_error_message(exc, context=tool_name or ""),
        error_code=ErrorCode.INTERNAL_ERROR,
        error_type=ErrorType.INTERNAL,
        remediation="Check server logs for details and retry.",
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def minify_response(response: Union[ToolResponse, Dict[str, Any]]) -> TextContent:
    """Convert a response to TextContent with minified JSON."""
    result = asdict(response) if isinstance(response, ToolResponse) else response
    return TextContent(
        type="text",
        text=json.dumps(result, separators=(",", ":"), default=str),
    )


def sanitize_error_message(exc: Exception, context: str = "") -> str:
    """
    Convert exception to user-safe message without internal details.

    Logs full exception server-side for debugging.
    """
    if context:
        logger.debug(f"Error in {context}: {exc}", exc_info=True)
    else:
        logger.debug(f"Error: {exc}", exc_info=True)

    if isinstance(exc, httpx.TimeoutException):
        return "GitLab request timed out"
    if isinstance(exc, httpx.TransportError):
        return "Connection to GitLab failed - instance may be unavailable"
    if isinstance(exc, json.JSONDecodeError):
        return "Invalid JSON in GitLab response"
    if isinstance(exc, ValueError):
        return "Invalid value provided"

    return "An internal error occurred"
