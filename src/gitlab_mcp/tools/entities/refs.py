"""Repository ref tools: ``browse_refs`` and ``manage_ref``.

Branches and tags live under ``repository/``; protection rules under
``protected_branches`` and ``protected_tags``.
"""

from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field

from gitlab_mcp.tools.dispatch import ResourceTool, Route, echo
from gitlab_mcp.tools.entities.common import ActionInput, Paginated, ProjectId

AccessLevel = Annotated[
    int, Field(description="Access level: 0=No access, 30=Developers, 40=Maintainers, 60=Admins")
]
RefPattern = Annotated[
    str, Field(min_length=1, description="Ref name or wildcard pattern (e.g. 'main', 'release-*')")
]
BranchName = Annotated[str, Field(min_length=1, description="Branch name")]
TagName = Annotated[str, Field(min_length=1, description="Tag name")]


class AccessRule(BaseModel):
    """Granular access entry (user, group or access level)."""

    user_id: Optional[int] = Field(None, description="User ID")
    group_id: Optional[int] = Field(None, description="Group ID")
    access_level: Optional[AccessLevel] = None


# ---------------------------------------------------------------------------
# browse_refs
# ---------------------------------------------------------------------------


class ListBranches(Paginated):
    """List repository branches."""

    action: Literal["list_branches"]
    project_id: ProjectId
    search: Optional[str] = Field(None, description="Filter branches by name (supports wildcards)")
    regex: Optional[str] = Field(None, description="Filter branches by regex pattern")


class GetBranch(ActionInput):
    """Get a single branch."""

    action: Literal["get_branch"]
    project_id: ProjectId
    branch: BranchName


class ListTags(Paginated):
    """List repository tags."""

    action: Literal["list_tags"]
    project_id: ProjectId
    search: Optional[str] = Field(None, description="Filter tags by name (supports wildcards)")
    order_by: Optional[Literal["name", "updated", "version"]] = Field(
        None, description="Sort by field (default: updated)"
    )
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction (default: desc)")


class GetTag(ActionInput):
    """Get a single tag."""

    action: Literal["get_tag"]
    project_id: ProjectId
    tag_name: TagName


class ListProtectedBranches(Paginated):
    """List protected branches."""

    action: Literal["list_protected_branches"]
    project_id: ProjectId
    search: Optional[str] = Field(None, description="Filter protected branches by name")


class GetProtectedBranch(ActionInput):
    """Get protection rules for a branch or pattern."""

    action: Literal["get_protected_branch"]
    project_id: ProjectId
    name: RefPattern


class ListProtectedTags(Paginated):
    """List protected tags."""

    action: Literal["list_protected_tags"]
    project_id: ProjectId


BROWSE_REFS = ResourceTool(
    name="browse_refs",
    description=(
        "Browse repository branches, tags and their protection rules. Actions: list_branches, "
        "get_branch, list_tags, get_tag, list_protected_branches, get_protected_branch, "
        "list_protected_tags."
    ),
    models=[
        ListBranches,
        GetBranch,
        ListTags,
        GetTag,
        ListProtectedBranches,
        GetProtectedBranch,
        ListProtectedTags,
    ],
    scope="project",
    read_only=True,
    routes={
        "list_branches": Route("GET", "{base}/repository/branches"),
        "get_branch": Route("GET", "{base}/repository/branches/{branch}"),
        "list_tags": Route("GET", "{base}/repository/tags"),
        "get_tag": Route("GET", "{base}/repository/tags/{tag_name}"),
        "list_protected_branches": Route("GET", "{base}/protected_branches"),
        "get_protected_branch": Route("GET", "{base}/protected_branches/{name}"),
        "list_protected_tags": Route("GET", "{base}/protected_tags"),
    },
)


# ---------------------------------------------------------------------------
# manage_ref
# ---------------------------------------------------------------------------


class CreateBranch(ActionInput):
    """Create a branch from an existing ref."""

    action: Literal["create_branch"]
    project_id: ProjectId
    branch: BranchName
    ref: str = Field(min_length=1, description="Source branch, tag or commit SHA")


class DeleteBranch(ActionInput):
    """Delete a branch."""

    action: Literal["delete_branch"]
    project_id: ProjectId
    branch: BranchName


class _BranchRules(ActionInput):
    allow_force_push: Optional[bool] = Field(None, description="Allow force push to the branch")
    allowed_to_push: Optional[List[AccessRule]] = Field(None, description="Granular push access (Premium)")
    allowed_to_merge: Optional[List[AccessRule]] = Field(None, description="Granular merge access (Premium)")
    allowed_to_unprotect: Optional[List[AccessRule]] = Field(
        None, description="Granular unprotect access (Premium)"
    )
    code_owner_approval_required: Optional[bool] = Field(
        None, description="Require code owner approval for pushes (Premium)"
    )


class ProtectBranch(_BranchRules):
    """Protect a branch or wildcard pattern."""

    action: Literal["protect_branch"]
    project_id: ProjectId
    name: RefPattern
    push_access_level: Optional[AccessLevel] = None
    merge_access_level: Optional[AccessLevel] = None
    unprotect_access_level: Optional[AccessLevel] = None


class UnprotectBranch(ActionInput):
    """Remove protection from a branch."""

    action: Literal["unprotect_branch"]
    project_id: ProjectId
    name: RefPattern


class UpdateBranchProtection(_BranchRules):
    """Update protection rules for a branch."""

    action: Literal["update_branch_protection"]
    project_id: ProjectId
    name: RefPattern


class CreateTag(ActionInput):
    """Create a tag."""

    action: Literal["create_tag"]
    project_id: ProjectId
    tag_name: TagName
    ref: str = Field(min_length=1, description="Source branch or commit SHA")
    message: Optional[str] = Field(None, description="Annotation message (creates an annotated tag)")


class DeleteTag(ActionInput):
    """Delete a tag."""

    action: Literal["delete_tag"]
    project_id: ProjectId
    tag_name: TagName


class ProtectTag(ActionInput):
    """Protect a tag pattern."""

    action: Literal["protect_tag"]
    project_id: ProjectId
    name: RefPattern
    create_access_level: Optional[AccessLevel] = None
    allowed_to_create: Optional[List[AccessRule]] = Field(
        None, description="Granular create access (Premium)"
    )


class UnprotectTag(ActionInput):
    """Remove protection from a tag pattern."""

    action: Literal["unprotect_tag"]
    project_id: ProjectId
    name: RefPattern


MANAGE_REF = ResourceTool(
    name="manage_ref",
    description=(
        "Create and delete branches and tags, and manage branch and tag protection. "
        "Granular allowed_to_* rules and tag protection need GitLab Premium."
    ),
    models=[
        CreateBranch,
        DeleteBranch,
        ProtectBranch,
        UnprotectBranch,
        UpdateBranchProtection,
        CreateTag,
        DeleteTag,
        ProtectTag,
        UnprotectTag,
    ],
    scope="project",
    routes={
        "create_branch": Route("POST", "{base}/repository/branches"),
        "delete_branch": Route(
            "DELETE", "{base}/repository/branches/{branch}", shape=echo("branch", deleted=True)
        ),
        "protect_branch": Route("POST", "{base}/protected_branches"),
        "unprotect_branch": Route(
            "DELETE", "{base}/protected_branches/{name}", shape=echo("name", unprotected=True)
        ),
        "update_branch_protection": Route("PATCH", "{base}/protected_branches/{name}"),
        "create_tag": Route("POST", "{base}/repository/tags"),
        "delete_tag": Route(
            "DELETE", "{base}/repository/tags/{tag_name}", shape=echo("tag_name", deleted=True)
        ),
        "protect_tag": Route("POST", "{base}/protected_tags"),
        "unprotect_tag": Route(
            "DELETE", "{base}/protected_tags/{name}", shape=echo("name", unprotected=True)
        ),
    },
)

TOOLS = [BROWSE_REFS, MANAGE_REF]
