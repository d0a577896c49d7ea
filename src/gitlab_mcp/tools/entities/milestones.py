"""Milestone tools: ``browse_milestones`` and ``manage_milestone``."""

import logging
from typing import Annotated, Any, List, Literal, Optional

from pydantic import Field

from gitlab_mcp.core.errors import ToolValidationError
from gitlab_mcp.tools.dispatch import ActionCall, ResourceTool, Route, echo
from gitlab_mcp.tools.entities.common import ActionInput, Namespace, Paginated

logger = logging.getLogger(__name__)

MilestoneId = Annotated[str, Field(description="The ID of a project or group milestone")]


# ---------------------------------------------------------------------------
# browse_milestones
# ---------------------------------------------------------------------------


class ListMilestones(Paginated):
    """List milestones with optional filtering."""

    action: Literal["list"]
    namespace: Namespace
    iids: Optional[List[str]] = Field(None, description="Return only the milestones having the given iid")
    state: Optional[Literal["active", "closed"]] = Field(
        None, description="Return only active or closed milestones"
    )
    title: Optional[str] = Field(
        None, description="Return only milestones with a title matching the provided string"
    )
    search: Optional[str] = Field(
        None,
        description="Return only milestones with a title or description matching the provided string",
    )
    include_ancestors: Optional[bool] = Field(None, description="Include ancestor groups")
    updated_before: Optional[str] = Field(
        None, description="Return milestones updated before the specified date (ISO 8601 format)"
    )
    updated_after: Optional[str] = Field(
        None, description="Return milestones updated after the specified date (ISO 8601 format)"
    )


class GetMilestone(ActionInput):
    """Get a single milestone by ID."""

    action: Literal["get"]
    namespace: Namespace
    milestone_id: MilestoneId


class MilestoneIssues(Paginated):
    """List issues assigned to a milestone."""

    action: Literal["issues"]
    namespace: Namespace
    milestone_id: MilestoneId


class MilestoneMergeRequests(Paginated):
    """List merge requests assigned to a milestone."""

    action: Literal["merge_requests"]
    namespace: Namespace
    milestone_id: MilestoneId


class MilestoneBurndown(Paginated):
    """Get burndown chart events for a milestone."""

    action: Literal["burndown"]
    namespace: Namespace
    milestone_id: MilestoneId


BROWSE_MILESTONES = ResourceTool(
    name="browse_milestones",
    description=(
        "Browse project or group milestones. Actions: list (filter by state, title, dates), "
        "get (single milestone), issues and merge_requests (work assigned to a milestone), "
        "burndown (burndown chart events, Premium)."
    ),
    models=[ListMilestones, GetMilestone, MilestoneIssues, MilestoneMergeRequests, MilestoneBurndown],
    scope="namespace",
    read_only=True,
    routes={
        "list": Route("GET", "{base}/milestones"),
        "get": Route("GET", "{base}/milestones/{milestone_id}"),
        "issues": Route("GET", "{base}/milestones/{milestone_id}/issues"),
        "merge_requests": Route("GET", "{base}/milestones/{milestone_id}/merge_requests"),
        "burndown": Route("GET", "{base}/milestones/{milestone_id}/burndown_events"),
    },
)


# ---------------------------------------------------------------------------
# manage_milestone
# ---------------------------------------------------------------------------


class CreateMilestone(ActionInput):
    """Create a new milestone."""

    action: Literal["create"]
    namespace: Namespace
    title: str = Field(min_length=1, description="The title of the milestone")
    description: Optional[str] = Field(None, description="The description of the milestone")
    due_date: Optional[str] = Field(None, description="The due date of the milestone (YYYY-MM-DD)")
    start_date: Optional[str] = Field(None, description="The start date of the milestone (YYYY-MM-DD)")


class UpdateMilestone(ActionInput):
    """Update an existing milestone."""

    action: Literal["update"]
    namespace: Namespace
    milestone_id: MilestoneId
    title: Optional[str] = Field(None, description="The title of the milestone")
    description: Optional[str] = Field(None, description="The description of the milestone")
    due_date: Optional[str] = Field(None, description="The due date of the milestone (YYYY-MM-DD)")
    start_date: Optional[str] = Field(None, description="The start date of the milestone (YYYY-MM-DD)")
    state_event: Optional[Literal["close", "activate"]] = Field(
        None, description="The state event of the milestone (close or activate)"
    )


class DeleteMilestone(ActionInput):
    """Delete a milestone."""

    action: Literal["delete"]
    namespace: Namespace
    milestone_id: MilestoneId


class PromoteMilestone(ActionInput):
    """Promote a project milestone to a group milestone."""

    action: Literal["promote"]
    namespace: Namespace
    milestone_id: MilestoneId


async def _promote(call: ActionCall) -> Any:
    if call.namespace is None or not call.namespace.is_project:
        raise ToolValidationError.single(
            "namespace",
            "Milestone promotion is only available for projects, not groups",
            tool=call.tool.name,
        )
    return await call.client.post(call.path("{base}/milestones/{milestone_id}/promote"))


MANAGE_MILESTONE = ResourceTool(
    name="manage_milestone",
    description=(
        "Create, update, delete or promote milestones. Promote moves a project milestone "
        "to its parent group and is not available for group milestones."
    ),
    models=[CreateMilestone, UpdateMilestone, DeleteMilestone, PromoteMilestone],
    scope="namespace",
    routes={
        "create": Route("POST", "{base}/milestones"),
        "update": Route("PUT", "{base}/milestones/{milestone_id}"),
        "delete": Route(
            "DELETE",
            "{base}/milestones/{milestone_id}",
            shape=echo("milestone_id", deleted=True),
        ),
    },
    handlers={"promote": _promote},
)

TOOLS = [BROWSE_MILESTONES, MANAGE_MILESTONE]
