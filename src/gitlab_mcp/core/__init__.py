"""Core GitLab transport, namespace and availability operations for gitlab-mcp."""

from gitlab_mcp.core.identifiers import (
    normalize_identifier,
    validate_identifier,
    encode_path_segment,
)

from gitlab_mcp.core.namespace import (
    NamespaceResolution,
    detect_namespace_type,
    resolve_namespace,
)

from gitlab_mcp.core.query import to_query, to_body

__all__ = [
    "normalize_identifier",
    "validate_identifier",
    "encode_path_segment",
    "NamespaceResolution",
    "detect_namespace_type",
    "resolve_namespace",
    "to_query",
    "to_body",
]
