"""Query-string and request-body construction from validated tool input."""

import json
from typing import Any, Dict, Iterable, Literal, Mapping, Optional

ContentType = Literal["json", "form"]


def _flatten_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(_flatten_value(item)) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return value


def _filtered(data: Mapping[str, Any], exclude: Optional[Iterable[str]]) -> Dict[str, Any]:
    skip = set(exclude or ())
    return {k: v for k, v in data.items() if k not in skip and v is not None}


def to_query(data: Mapping[str, Any], exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """Build query parameters from tool input.

    Excluded keys and ``None`` values are dropped. Lists become
    comma-separated strings, dicts are JSON-encoded and booleans are
    rendered as ``true``/``false``.

    Example:
        >>> to_query({"action": "list", "state": "active", "per_page": 10}, ["action"])
        {'state': 'active', 'per_page': 10}
    """
    return {k: _flatten_value(v) for k, v in _filtered(data, exclude).items()}


def to_body(
    data: Mapping[str, Any],
    exclude: Optional[Iterable[str]] = None,
    content_type: ContentType = "json",
) -> Dict[str, Any]:
    """Build a request body from tool input.

    JSON bodies keep structured values as-is; form bodies are flattened the
    same way as query parameters.
    """
    filtered = _filtered(data, exclude)
    if content_type == "form":
        return {k: _flatten_value(v) for k, v in filtered.items()}
    return filtered
