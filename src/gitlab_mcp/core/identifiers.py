"""Project and group identifier handling for GitLab URL paths."""

import re
from typing import Optional
from urllib.parse import quote, unquote

_ENCODED_RE = re.compile(r"%[0-9A-Fa-f]{2}")
_NUMERIC_RE = re.compile(r"[0-9]+")
_VALID_PATH_RE = re.compile(r"[A-Za-z0-9\-_./]+")


def normalize_identifier(identifier: str) -> str:
    """Return an identifier ready to be placed in a URL path segment.

    Surrounding whitespace is dropped. ASCII-numeric IDs are never encoded.
    Values that already contain a percent escape are returned unchanged, so
    encoding twice is a no-op. Everything else is percent-encoded with no
    safe characters, e.g. ``my-group/my-project`` becomes
    ``my-group%2Fmy-project``.
    """
    trimmed = identifier.strip()
    if _NUMERIC_RE.fullmatch(trimmed):
        return trimmed
    if _ENCODED_RE.search(trimmed):
        return trimmed
    return quote(trimmed, safe="")


def validate_identifier(identifier: Optional[str]) -> Optional[str]:
    """Return an error message for an unusable identifier, or None if valid."""
    if identifier is None or not str(identifier).strip():
        return "Identifier must not be empty"

    value = str(identifier).strip()
    if _NUMERIC_RE.fullmatch(value):
        return None

    decoded = unquote(value) if _ENCODED_RE.search(value) else value
    if not _VALID_PATH_RE.fullmatch(decoded):
        return (
            f"Invalid identifier '{value}': only letters, digits, '-', '_', '.' "
            "and '/' are allowed"
        )
    return None


def encode_path_segment(value: object) -> str:
    """Percent-encode any value for use as a single URL path segment."""
    return quote(str(value), safe="")
