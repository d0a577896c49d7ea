"""Namespace resolution: decide whether a path names a project or a group.

GitLab exposes many resources (labels, milestones, variables, wikis) under
both ``projects/{id}`` and ``groups/{id}``. The resolver guesses the likely
kind from the path shape, then confirms it against the live instance.
Results are not cached; every call probes again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from gitlab_mcp.core.identifiers import encode_path_segment

if TYPE_CHECKING:
    from gitlab_mcp.core.client import GitLabClient

logger = logging.getLogger(__name__)

EntityType = Literal["projects", "groups"]


@dataclass(frozen=True)
class NamespaceResolution:
    """Resolved namespace: entity collection plus the encoded path segment."""

    entity_type: EntityType
    encoded_path: str

    @property
    def base_path(self) -> str:
        return f"{self.entity_type}/{self.encoded_path}"

    @property
    def is_project(self) -> bool:
        return self.entity_type == "projects"


def detect_namespace_type(path: str) -> EntityType:
    """Heuristic only: a path containing ``/`` is most likely a project."""
    return "projects" if "/" in path else "groups"


async def _exists(client: "GitLabClient", entity_type: EntityType, encoded: str) -> bool:
    try:
        status = await client.probe(f"{entity_type}/{encoded}")
    except Exception as exc:
        # A failed probe only means "not confirmed"; resolution falls through
        logger.debug("Namespace probe %s/%s failed: %s", entity_type, encoded, exc)
        return False
    return status < 400


async def resolve_namespace(client: "GitLabClient", path: str) -> NamespaceResolution:
    """Resolve ``path`` to ``projects`` or ``groups``.

    Probes the heuristic kind first, then the other kind. When neither probe
    confirms a namespace the heuristic kind is returned.
    """
    encoded = encode_path_segment(path)
    likely = detect_namespace_type(path)
    other: EntityType = "groups" if likely == "projects" else "projects"

    for candidate in (likely, other):
        if await _exists(client, candidate, encoded):
            return NamespaceResolution(candidate, encoded)

    logger.debug("Namespace '%s' not confirmed, falling back to %s", path, likely)
    return NamespaceResolution(likely, encoded)
