"""Session state for one connection to a GitLab instance.

A ``GitLabSession`` owns the HTTP client and the instance information
(version and license tier) detected at startup. Nothing here is global:
each session is created by the caller and passed to tool handlers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

import httpx

from gitlab_mcp.config import GitLabSettings
from gitlab_mcp.core.client import GitLabClient
from gitlab_mcp.core.errors import ConnectionNotInitializedError, GitLabAPIError

logger = logging.getLogger(__name__)

Tier = Literal["free", "premium", "ultimate"]

_LICENSE_QUERY = "query { currentLicense { plan } }"

_GROUP_FEATURES = (
    "epicsEnabled iterationCadences(first: 1) { nodes { id } } workItemTypes { nodes { name } }"
)
_NAMED_GROUP_QUERY = "query($fullPath: ID!) { group(fullPath: $fullPath) { %s } }" % _GROUP_FEATURES
_FIRST_GROUP_QUERY = "query { groups(first: 1) { nodes { %s } } }" % _GROUP_FEATURES

# Work item types only licensed on Ultimate
_ULTIMATE_WORK_ITEMS = frozenset({"OBJECTIVE", "KEY_RESULT", "REQUIREMENT"})


@dataclass(frozen=True)
class InstanceInfo:
    """Detected GitLab instance capabilities."""

    version: str
    tier: Tier


def tier_from_plan(plan: Optional[str]) -> Tier:
    """Map a GitLab license plan name onto a tier."""
    lowered = (plan or "").lower()
    if "ultimate" in lowered or "gold" in lowered:
        return "ultimate"
    if "premium" in lowered or "silver" in lowered:
        return "premium"
    return "free"


def tier_from_features(group: Optional[Dict[str, Any]]) -> Tier:
    """Infer the tier from the licensed features a group exposes.

    Epics imply at least Premium; objectives, key results or requirements
    among the work item types imply Ultimate.
    """
    if not group or not group.get("epicsEnabled"):
        return "free"
    types = (group.get("workItemTypes") or {}).get("nodes") or []
    names = {str(node.get("name", "")).upper().replace(" ", "_") for node in types}
    if names & _ULTIMATE_WORK_ITEMS:
        return "ultimate"
    return "premium"


class GitLabSession:
    """Client plus detected instance info, usable as an async context manager.

    Example:
        async with GitLabSession(config.gitlab) as session:
            await session.initialize()
            print(session.instance_info.version)
    """

    def __init__(
        self,
        settings: GitLabSettings,
        *,
        client: Optional[GitLabClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.client = client or GitLabClient(settings, transport=transport)
        self._instance_info: Optional[InstanceInfo] = None

    async def __aenter__(self) -> "GitLabSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    @property
    def is_initialized(self) -> bool:
        return self._instance_info is not None

    @property
    def instance_info(self) -> InstanceInfo:
        if self._instance_info is None:
            raise ConnectionNotInitializedError()
        return self._instance_info

    def set_instance_info(self, info: InstanceInfo) -> None:
        self._instance_info = info

    async def initialize(self) -> InstanceInfo:
        """Detect version and tier of the connected instance."""
        version = await self._detect_version()
        tier = await self._detect_tier()
        self._instance_info = InstanceInfo(version=version, tier=tier)
        logger.info("Connected to GitLab %s (%s tier)", version, tier)
        return self._instance_info

    async def _detect_version(self) -> str:
        try:
            data = await self.client.get("version")
        except (GitLabAPIError, httpx.HTTPError) as exc:
            logger.warning("GitLab version detection failed: %s", exc)
            return "unknown"
        if isinstance(data, dict) and data.get("version"):
            return str(data["version"])
        return "unknown"

    async def _detect_tier(self) -> Tier:
        try:
            data = await self.client.graphql(_LICENSE_QUERY)
        except (GitLabAPIError, httpx.HTTPError) as exc:
            logger.debug("License query not available, trying feature detection: %s", exc)
        else:
            tier = tier_from_plan((data.get("currentLicense") or {}).get("plan"))
            if tier != "free":
                return tier
        return await self._detect_tier_by_features()

    async def _detect_tier_by_features(self) -> Tier:
        group_path = self.settings.tier_group
        try:
            if group_path:
                data = await self.client.graphql(_NAMED_GROUP_QUERY, {"fullPath": group_path})
                group = data.get("group")
            else:
                data = await self.client.graphql(_FIRST_GROUP_QUERY)
                nodes = (data.get("groups") or {}).get("nodes") or []
                group = nodes[0] if nodes else None
        except (GitLabAPIError, httpx.HTTPError) as exc:
            logger.info("Feature detection failed, assuming free tier: %s", exc)
            return "free"
        return tier_from_features(group)
