"""
Tool availability by GitLab version and license tier.

Each tool has a default requirement and optional per-action overrides. Tools
absent from the action table fall back to a flat legacy per-tool table;
unknown tools are allowed only on GitLab 15.0 or newer.

Versions compare as ``major + minor / 100`` (so ``8.11`` > ``8.9``), and the
requirement tables use the same notation.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Literal, Optional

from gitlab_mcp.core.errors import is_connection_not_initialized
from gitlab_mcp.core.session import InstanceInfo

logger = logging.getLogger(__name__)

Tier = Literal["free", "premium", "ultimate"]

TIER_ORDER: Dict[str, int] = {"free": 0, "premium": 1, "ultimate": 2}

UNKNOWN_TOOL_MIN_VERSION = 15.0
"""Minimum instance version for tools with no recorded requirement."""

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)")


def parse_version(version: str) -> float:
    """Parse ``"16.4.1-ee"`` as 16.04; ``"unknown"`` or unparsable gives 0."""
    if not version or version == "unknown":
        return 0.0
    match = _VERSION_RE.match(version)
    if not match:
        return 0.0
    return int(match.group(1)) + int(match.group(2)) / 100


def tier_rank(tier: str) -> int:
    return TIER_ORDER.get(tier, 0)


@dataclass(frozen=True)
class Requirement:
    """Minimum version and tier for a tool or action."""

    min_version: str
    tier: Tier = "free"
    notes: Optional[str] = None

    def satisfied_by(self, info: InstanceInfo) -> bool:
        if parse_version(info.version) < parse_version(self.min_version):
            return False
        return tier_rank(info.tier) >= tier_rank(self.tier)


@dataclass(frozen=True)
class ToolRequirements:
    default: Requirement
    actions: Dict[str, Requirement] = field(default_factory=dict)


def _req(min_version: str, tier: Tier = "free", notes: Optional[str] = None) -> Requirement:
    return Requirement(min_version=min_version, tier=tier, notes=notes)


_MR_APPROVALS = _req("10.6", "premium", "MR approvals")
_GROUP_HOOKS = _req("10.4", "premium", "Group webhooks")
_PROTECTED_TAGS = _req("11.3", "premium", "Protected tags")

ACTION_REQUIREMENTS: Dict[str, ToolRequirements] = {
    # Core
    "browse_projects": ToolRequirements(_req("8.0")),
    "browse_namespaces": ToolRequirements(_req("9.0")),
    # Merge requests
    "browse_merge_requests": ToolRequirements(
        _req("8.0"), {"approvals": _MR_APPROVALS}
    ),
    "browse_mr_discussions": ToolRequirements(_req("8.0")),
    "manage_merge_request": ToolRequirements(
        _req("8.0"),
        {
            "create": _req("8.0"),
            "update": _req("8.0"),
            "merge": _req("8.0"),
            "approve": _MR_APPROVALS,
            "unapprove": _MR_APPROVALS,
            "get_approval_state": _req("13.8", "premium", "MR approval state"),
        },
    ),
    "manage_mr_discussion": ToolRequirements(
        _req("8.0"),
        {
            "comment": _req("8.0"),
            "thread": _req("11.0"),
            "reply": _req("11.0"),
            "resolve": _req("10.0", notes="Resolve discussion threads"),
        },
    ),
    # Labels
    "browse_labels": ToolRequirements(_req("8.0")),
    "manage_label": ToolRequirements(_req("8.0")),
    # Wiki
    "browse_wiki": ToolRequirements(_req("9.0")),
    "manage_wiki": ToolRequirements(_req("9.0")),
    # Variables
    "browse_variables": ToolRequirements(_req("9.0")),
    "manage_variable": ToolRequirements(_req("9.0")),
    # Milestones
    "browse_milestones": ToolRequirements(
        _req("8.0"), {"burndown": _req("12.0", "premium", "Burndown charts")}
    ),
    "manage_milestone": ToolRequirements(_req("8.0")),
    # Webhooks
    "list_webhooks": ToolRequirements(
        _req("8.0", notes="Project webhooks"), {"list_group": _GROUP_HOOKS}
    ),
    "manage_webhook": ToolRequirements(
        _req("8.0", notes="Project webhooks"),
        {
            "create_group": _GROUP_HOOKS,
            "read_group": _GROUP_HOOKS,
            "update_group": _GROUP_HOOKS,
            "delete_group": _GROUP_HOOKS,
            "test_group": _GROUP_HOOKS,
        },
    ),
    # Releases
    "browse_releases": ToolRequirements(_req("11.7")),
    "manage_release": ToolRequirements(_req("11.7")),
    # Refs
    "browse_refs": ToolRequirements(
        _req("8.0"),
        {
            "list_branches": _req("8.0"),
            "get_branch": _req("8.0"),
            "list_tags": _req("8.0"),
            "get_tag": _req("8.0"),
            "list_protected_branches": _req("8.11"),
            "get_protected_branch": _req("8.11"),
            "list_protected_tags": _PROTECTED_TAGS,
        },
    ),
    "manage_ref": ToolRequirements(
        _req("8.0"),
        {
            "create_branch": _req("8.0"),
            "delete_branch": _req("8.0"),
            "protect_branch": _req("8.11"),
            "unprotect_branch": _req("8.11"),
            "update_branch_protection": _req(
                "11.9", notes="PATCH endpoint; code owners require Premium"
            ),
            "create_tag": _req("8.0"),
            "delete_tag": _req("8.0"),
            "protect_tag": _PROTECTED_TAGS,
            "unprotect_tag": _PROTECTED_TAGS,
        },
    ),
    # Time tracking
    "browse_time_estimates": ToolRequirements(_req("8.14")),
    "manage_time_estimate": ToolRequirements(_req("8.14")),
}

LEGACY_REQUIREMENTS: Dict[str, Requirement] = {
    "list_projects": _req("8.0"),
    "get_project": _req("8.0"),
    "list_namespaces": _req("9.0"),
    "get_namespace": _req("9.0"),
    "verify_namespace": _req("9.0"),
    "list_branches": _req("8.0"),
    "get_branch": _req("8.0"),
    "cherry_pick_commit": _req("8.15"),
    "revert_commit": _req("8.15"),
    "list_merge_requests": _req("8.0"),
    "get_merge_request": _req("8.0"),
    "rebase_merge_request": _req("11.6"),
    "mr_discussions": _req("8.0"),
    "create_merge_request_thread": _req("11.0"),
    "get_merge_request_approvals": _req("10.6", "premium", "MR approval rules"),
    "list_labels": _req("8.0"),
    "promote_label": _req("12.4"),
    "list_milestones": _req("8.0"),
    "promote_milestone": _req("11.9"),
    "get_milestone_burndown_events": _req("12.0", "premium", "Burndown charts"),
    "list_wiki_pages": _req("9.0"),
    "list_variables": _req("9.0"),
    "list_group_variables": _req("9.5"),
    "list_releases": _req("11.7"),
    "list_protected_branches": _req("9.5"),
    "list_protected_tags": _req("11.3"),
    "list_epics": _req("10.2", "premium", "Epic management"),
    "list_iterations": _req("13.1", "premium", "Sprint management"),
    "list_vulnerabilities": _req("12.5", "ultimate", "Vulnerability management"),
    "list_work_items": _req("15.0"),
}


class ToolAvailability:
    """Decide which tools and actions the connected instance supports.

    Args:
        info_provider: Callable returning the current ``InstanceInfo``. It may
            raise ``ConnectionNotInitializedError`` before detection has run,
            in which case everything is considered available.

    Example:
        availability = ToolAvailability(lambda: session.instance_info)
        if availability.is_available("browse_milestones", "burndown"):
            ...
    """

    def __init__(self, info_provider: Callable[[], InstanceInfo]):
        self._info_provider = info_provider

    @staticmethod
    def get_requirement(tool: str, action: Optional[str] = None) -> Optional[Requirement]:
        """Return the requirement for a tool/action, or None for unknown tools."""
        tool_reqs = ACTION_REQUIREMENTS.get(tool)
        if tool_reqs is not None:
            if action and action in tool_reqs.actions:
                return tool_reqs.actions[action]
            return tool_reqs.default
        return LEGACY_REQUIREMENTS.get(tool)

    def is_available(self, tool: str, action: Optional[str] = None) -> bool:
        try:
            info = self._info_provider()
        except Exception as exc:
            if is_connection_not_initialized(exc):
                logger.debug("Availability of '%s': instance info not available yet, allowing", tool)
                return True
            logger.warning("Failed to check tool availability for '%s': %s", tool, exc)
            return False

        requirement = self.get_requirement(tool, action)
        if requirement is None:
            logger.debug("Tool '%s' not found in requirements table", tool)
            return parse_version(info.version) >= UNKNOWN_TOOL_MIN_VERSION
        return requirement.satisfied_by(info)

    def get_unavailable_reason(self, tool: str, action: Optional[str] = None) -> Optional[str]:
        """Explain why a tool/action is unavailable, or None if it is available."""
        try:
            info = self._info_provider()
        except Exception as exc:
            if is_connection_not_initialized(exc):
                return None
            return "GitLab connection not initialized"

        requirement = self.get_requirement(tool, action)
        if requirement is None:
            if parse_version(info.version) >= UNKNOWN_TOOL_MIN_VERSION:
                return None
            return f"Tool '{tool}' is not recognized and requires GitLab {UNKNOWN_TOOL_MIN_VERSION}+"

        if parse_version(info.version) < parse_version(requirement.min_version):
            return (
                f"Requires GitLab {requirement.min_version}+, "
                f"current version is {info.version}"
            )
        if tier_rank(info.tier) < tier_rank(requirement.tier):
            return (
                f"Requires GitLab {requirement.tier} tier or higher, "
                f"current tier is {info.tier}"
            )
        return None

    @staticmethod
    def get_highest_tier(tool: str) -> Tier:
        """Highest tier required by any action of ``tool``."""
        tool_reqs = ACTION_REQUIREMENTS.get(tool)
        if tool_reqs is None:
            legacy = LEGACY_REQUIREMENTS.get(tool)
            return legacy.tier if legacy else "free"

        highest = tool_reqs.default.tier
        for requirement in tool_reqs.actions.values():
            if tier_rank(requirement.tier) > tier_rank(highest):
                highest = requirement.tier
        return highest

    @staticmethod
    def get_tier_restricted_actions(tool: str, tier: Tier) -> List[str]:
        """Actions of ``tool`` that need ``tier`` or higher."""
        tool_reqs = ACTION_REQUIREMENTS.get(tool)
        if tool_reqs is None:
            return []
        min_level = tier_rank(tier)
        return [
            action
            for action, requirement in tool_reqs.actions.items()
            if tier_rank(requirement.tier) >= min_level
        ]

    def filter_available(self, tools: Iterable[str]) -> List[str]:
        return [tool for tool in tools if self.is_available(tool)]
