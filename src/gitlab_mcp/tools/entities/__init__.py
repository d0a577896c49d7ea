"""Entity tool groups.

``core`` is always registered; every other group sits behind its ``USE_*``
feature gate (see ``gitlab_mcp.config.ENTITY_FLAGS``).
"""

from typing import Dict, List

from gitlab_mcp.tools.dispatch import ResourceTool
from gitlab_mcp.tools.entities import (
    core,
    labels,
    merge_requests,
    milestones,
    refs,
    releases,
    time_tracking,
    variables,
    webhooks,
    wiki,
)

CORE_GROUP = "core"

ENTITY_GROUPS: Dict[str, List[ResourceTool]] = {
    CORE_GROUP: core.TOOLS,
    "labels": labels.TOOLS,
    "mrs": merge_requests.TOOLS,
    "milestones": milestones.TOOLS,
    "variables": variables.TOOLS,
    "wiki": wiki.TOOLS,
    "webhooks": webhooks.TOOLS,
    "releases": releases.TOOLS,
    "refs": refs.TOOLS,
    "time_tracking": time_tracking.TOOLS,
}

__all__ = ["CORE_GROUP", "ENTITY_GROUPS"]
