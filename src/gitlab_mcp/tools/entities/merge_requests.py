"""Merge request tools.

``browse_merge_requests`` / ``manage_merge_request`` cover the MR itself,
``browse_mr_discussions`` / ``manage_mr_discussion`` its review threads.
Write calls use form encoding; structured values such as a diff ``position``
are sent as JSON strings.
"""

import logging
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, Field

from gitlab_mcp.core.errors import AmbiguousInputError
from gitlab_mcp.tools.dispatch import ActionCall, ResourceTool, Route
from gitlab_mcp.tools.entities.common import ActionInput, Paginated, ProjectId

logger = logging.getLogger(__name__)

MergeRequestIid = Annotated[str, Field(min_length=1, description="The internal ID of the merge request")]
DiscussionId = Annotated[str, Field(min_length=1, description="The ID of a discussion")]
UserIds = Annotated[List[int], Field(description="User IDs")]


# ---------------------------------------------------------------------------
# browse_merge_requests
# ---------------------------------------------------------------------------


class ListMergeRequests(Paginated):
    """List merge requests of a project."""

    action: Literal["list"]
    project_id: ProjectId
    state: Optional[Literal["opened", "closed", "locked", "merged", "all"]] = Field(
        None, description="Filter by state"
    )
    order_by: Optional[Literal["created_at", "updated_at", "title"]] = Field(
        None, description="Order by field (default: created_at)"
    )
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction")
    milestone: Optional[str] = Field(None, description="Milestone title; None or Any are special")
    labels: Optional[List[str]] = Field(None, description="Labels the merge request must have")
    scope: Optional[Literal["created_by_me", "assigned_to_me", "all"]] = Field(
        None, description="Scope of the listing"
    )
    author_username: Optional[str] = Field(None, description="Filter by author username")
    assignee_username: Optional[str] = Field(None, description="Filter by assignee username")
    reviewer_username: Optional[str] = Field(None, description="Filter by reviewer username")
    source_branch: Optional[str] = Field(None, description="Filter by source branch")
    target_branch: Optional[str] = Field(None, description="Filter by target branch")
    search: Optional[str] = Field(None, description="Search title and description")
    created_after: Optional[str] = Field(None, description="Created after (ISO 8601)")
    created_before: Optional[str] = Field(None, description="Created before (ISO 8601)")
    updated_after: Optional[str] = Field(None, description="Updated after (ISO 8601)")
    updated_before: Optional[str] = Field(None, description="Updated before (ISO 8601)")
    wip: Optional[Literal["yes", "no"]] = Field(None, description="Draft filter")


class GetMergeRequest(ActionInput):
    """Get a merge request by IID or by source branch."""

    action: Literal["get"]
    project_id: ProjectId
    merge_request_iid: Optional[MergeRequestIid] = None
    branch_name: Optional[str] = Field(None, description="Source branch name (alternative to the IID)")
    include_diverged_commits_count: Optional[bool] = Field(
        None, description="Include commits behind the target branch"
    )
    include_rebase_in_progress: Optional[bool] = Field(
        None, description="Include whether a rebase is in progress"
    )


class MergeRequestDiffs(Paginated):
    """List the file diffs of a merge request."""

    action: Literal["diffs"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    unidiff: Optional[bool] = Field(None, description="Return diffs in unified diff format")


class MergeRequestApprovals(ActionInput):
    """Get the approval configuration of a merge request."""

    action: Literal["approvals"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid


async def _get_merge_request(call: ActionCall) -> Any:
    iid = call.params.get("merge_request_iid")
    branch = call.params.get("branch_name")
    query = {
        k: v
        for k, v in call.params.items()
        if k in ("include_diverged_commits_count", "include_rebase_in_progress")
    }
    if iid:
        return await call.client.get(
            call.path("{base}/merge_requests/{merge_request_iid}"), query=query or None
        )
    if branch:
        found = await call.client.get(
            call.path("{base}/merge_requests"), query={"source_branch": branch}
        )
        if not found:
            raise AmbiguousInputError(
                f"No merge request found for branch '{branch}'", fields=["branch_name"]
            )
        if len(found) > 1:
            logger.debug("%d merge requests for branch %s, using the first", len(found), branch)
        return found[0]
    raise AmbiguousInputError(
        "Either merge_request_iid or branch_name must be provided",
        fields=["merge_request_iid", "branch_name"],
    )


BROWSE_MERGE_REQUESTS = ResourceTool(
    name="browse_merge_requests",
    description=(
        "Browse merge requests. Actions: list (with filters), get (by IID or source branch), "
        "diffs (changed files), approvals (approval rules, Premium)."
    ),
    models=[ListMergeRequests, GetMergeRequest, MergeRequestDiffs, MergeRequestApprovals],
    scope="project",
    read_only=True,
    routes={
        "list": Route("GET", "{base}/merge_requests"),
        "diffs": Route("GET", "{base}/merge_requests/{merge_request_iid}/diffs"),
        "approvals": Route("GET", "{base}/merge_requests/{merge_request_iid}/approvals"),
    },
    handlers={"get": _get_merge_request},
)


# ---------------------------------------------------------------------------
# manage_merge_request
# ---------------------------------------------------------------------------


class CreateMergeRequest(ActionInput):
    """Open a new merge request."""

    action: Literal["create"]
    project_id: ProjectId
    source_branch: str = Field(min_length=1, description="Branch containing the changes")
    target_branch: str = Field(min_length=1, description="Branch to merge into")
    title: str = Field(min_length=1, description="Title of the merge request")
    description: Optional[str] = Field(None, description="Description (Markdown)")
    assignee_ids: Optional[UserIds] = None
    reviewer_ids: Optional[UserIds] = None
    labels: Optional[List[str]] = Field(None, description="Labels to apply")
    milestone_id: Optional[str] = Field(None, description="Milestone ID")
    target_project_id: Optional[str] = Field(None, description="Target project for fork MRs")
    remove_source_branch: Optional[bool] = Field(None, description="Delete the source branch on merge")
    allow_collaboration: Optional[bool] = Field(
        None, description="Allow commits from members who can merge to the target branch"
    )
    squash: Optional[bool] = Field(None, description="Squash commits on merge")


class UpdateMergeRequest(ActionInput):
    """Update a merge request."""

    action: Literal["update"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    title: Optional[str] = Field(None, description="Title of the merge request")
    description: Optional[str] = Field(None, description="Description (Markdown)")
    target_branch: Optional[str] = Field(None, description="Branch to merge into")
    assignee_ids: Optional[UserIds] = None
    reviewer_ids: Optional[UserIds] = None
    labels: Optional[List[str]] = Field(None, description="Replace all labels")
    add_labels: Optional[List[str]] = Field(None, description="Labels to add")
    remove_labels: Optional[List[str]] = Field(None, description="Labels to remove")
    milestone_id: Optional[str] = Field(None, description="Milestone ID")
    state_event: Optional[Literal["close", "reopen"]] = Field(None, description="Close or reopen")
    remove_source_branch: Optional[bool] = Field(None, description="Delete the source branch on merge")
    squash: Optional[bool] = Field(None, description="Squash commits on merge")
    discussion_locked: Optional[bool] = Field(None, description="Lock the discussion")
    allow_collaboration: Optional[bool] = Field(
        None, description="Allow commits from members who can merge to the target branch"
    )


class MergeMergeRequest(ActionInput):
    """Merge an approved merge request."""

    action: Literal["merge"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    merge_commit_message: Optional[str] = Field(None, description="Custom merge commit message")
    squash_commit_message: Optional[str] = Field(None, description="Custom squash commit message")
    should_remove_source_branch: Optional[bool] = Field(None, description="Delete the source branch")
    merge_when_pipeline_succeeds: Optional[bool] = Field(
        None, description="Merge when the pipeline succeeds"
    )
    sha: Optional[str] = Field(None, description="Expected HEAD SHA of the source branch")
    squash: Optional[bool] = Field(None, description="Squash commits when merging")


class ApproveMergeRequest(ActionInput):
    """Approve a merge request."""

    action: Literal["approve"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    sha: Optional[str] = Field(None, description="Expected HEAD SHA of the source branch")


class UnapproveMergeRequest(ActionInput):
    """Withdraw your approval."""

    action: Literal["unapprove"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid


class GetApprovalState(ActionInput):
    """Get approval state against every approval rule."""

    action: Literal["get_approval_state"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid


MANAGE_MERGE_REQUEST = ResourceTool(
    name="manage_merge_request",
    description=(
        "Create, update, merge, approve or unapprove merge requests, and inspect the "
        "approval state. Approvals need GitLab Premium."
    ),
    models=[
        CreateMergeRequest,
        UpdateMergeRequest,
        MergeMergeRequest,
        ApproveMergeRequest,
        UnapproveMergeRequest,
        GetApprovalState,
    ],
    scope="project",
    read_only_actions=("get_approval_state",),
    routes={
        "create": Route("POST", "{base}/merge_requests", content_type="form"),
        "update": Route("PUT", "{base}/merge_requests/{merge_request_iid}", content_type="form"),
        "merge": Route("PUT", "{base}/merge_requests/{merge_request_iid}/merge", content_type="form"),
        "approve": Route("POST", "{base}/merge_requests/{merge_request_iid}/approve", content_type="form"),
        "unapprove": Route("POST", "{base}/merge_requests/{merge_request_iid}/unapprove"),
        "get_approval_state": Route("GET", "{base}/merge_requests/{merge_request_iid}/approval_state"),
    },
)


# ---------------------------------------------------------------------------
# browse_mr_discussions / manage_mr_discussion
# ---------------------------------------------------------------------------


class ListDiscussions(Paginated):
    """List discussion threads of a merge request."""

    action: Literal["list"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid


BROWSE_MR_DISCUSSIONS = ResourceTool(
    name="browse_mr_discussions",
    description="List discussion threads and comments on a merge request, resolved or not.",
    models=[ListDiscussions],
    scope="project",
    read_only=True,
    routes={"list": Route("GET", "{base}/merge_requests/{merge_request_iid}/discussions")},
)


class LinePoint(BaseModel):
    line_code: str
    type: Optional[Literal["new", "old"]] = None
    old_line: Optional[int] = None
    new_line: Optional[int] = None


class LineRange(BaseModel):
    start: LinePoint
    end: LinePoint


class DiffPosition(BaseModel):
    """Location of a diff comment."""

    base_sha: str = Field(description="Base commit SHA in the source branch")
    start_sha: str = Field(description="SHA referencing the commit in the target branch")
    head_sha: str = Field(description="SHA referencing the HEAD of this merge request")
    position_type: Literal["text", "image", "file"] = Field(description="Type of the position")
    old_path: Optional[str] = Field(None, description="File path before the change")
    new_path: Optional[str] = Field(None, description="File path after the change")
    old_line: Optional[int] = Field(None, description="Line number before the change")
    new_line: Optional[int] = Field(None, description="Line number after the change")
    line_range: Optional[LineRange] = Field(None, description="Multi-line comment range")
    width: Optional[int] = Field(None, description="Image width (image diffs)")
    height: Optional[int] = Field(None, description="Image height (image diffs)")
    x: Optional[float] = Field(None, description="Horizontal pixel position (image diffs)")
    y: Optional[float] = Field(None, description="Vertical pixel position (image diffs)")


class CommentOnMergeRequest(ActionInput):
    """Add a top-level comment to a merge request."""

    action: Literal["comment"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    body: str = Field(min_length=1, description="The content of the comment")
    created_at: Optional[str] = Field(None, description="Date time string, ISO 8601 formatted")
    confidential: Optional[bool] = Field(None, description="Confidential note flag")


class StartThread(ActionInput):
    """Start a discussion thread, optionally anchored to a diff position."""

    action: Literal["thread"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    body: str = Field(min_length=1, description="The content of the thread")
    position: Optional[DiffPosition] = None
    commit_id: Optional[str] = Field(None, description="SHA of the commit to start the discussion on")


class ReplyToThread(ActionInput):
    """Reply to an existing discussion thread."""

    action: Literal["reply"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    discussion_id: DiscussionId
    body: str = Field(min_length=1, description="The content of the reply")
    created_at: Optional[str] = Field(None, description="Date time string, ISO 8601 formatted")


class ResolveThread(ActionInput):
    """Resolve or unresolve a discussion thread."""

    action: Literal["resolve"]
    project_id: ProjectId
    merge_request_iid: MergeRequestIid
    discussion_id: DiscussionId
    resolved: bool = Field(True, description="Resolve (true) or unresolve (false) the thread")


MANAGE_MR_DISCUSSION = ResourceTool(
    name="manage_mr_discussion",
    description=(
        "Comment on merge requests: comment (top-level note), thread (new discussion, "
        "optionally on a diff position), reply (to a thread), resolve (thread state)."
    ),
    models=[CommentOnMergeRequest, StartThread, ReplyToThread, ResolveThread],
    scope="project",
    routes={
        "comment": Route("POST", "{base}/merge_requests/{merge_request_iid}/notes", content_type="form"),
        "thread": Route(
            "POST", "{base}/merge_requests/{merge_request_iid}/discussions", content_type="form"
        ),
        "reply": Route(
            "POST",
            "{base}/merge_requests/{merge_request_iid}/discussions/{discussion_id}/notes",
            content_type="form",
        ),
        "resolve": Route(
            "PUT",
            "{base}/merge_requests/{merge_request_iid}/discussions/{discussion_id}",
            query_fields=("resolved",),
        ),
    },
)

TOOLS = [BROWSE_MERGE_REQUESTS, MANAGE_MERGE_REQUEST, BROWSE_MR_DISCUSSIONS, MANAGE_MR_DISCUSSION]
