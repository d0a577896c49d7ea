"""Always-on discovery tools: ``browse_projects`` and ``browse_namespaces``."""

import re
from typing import Annotated, Any, Dict, Literal, Optional

from pydantic import Field

from gitlab_mcp.core.errors import GitLabAPIError
from gitlab_mcp.tools.dispatch import ActionCall, ResourceTool, Route
from gitlab_mcp.tools.entities.common import ActionInput, Paginated, ProjectId

_TOPIC_RE = re.compile(r"topic:(\w+)")

Visibility = Literal["public", "internal", "private"]
ProjectOrder = Literal["id", "name", "path", "created_at", "updated_at", "last_activity_at", "star_count"]
NamespaceId = Annotated[str, Field(min_length=1, description="Namespace ID or full path")]


# ---------------------------------------------------------------------------
# browse_projects
# ---------------------------------------------------------------------------


class SearchProjects(Paginated):
    """Search projects across the instance; ``topic:<name>`` terms filter by topic."""

    action: Literal["search"]
    q: Optional[str] = Field(None, description="Search terms; 'topic:<name>' filters by topic")
    with_programming_language: Optional[str] = Field(None, description="Filter by language")
    visibility: Optional[Visibility] = Field(None, description="Filter by visibility")
    order_by: Optional[ProjectOrder] = Field(None, description="Order by field")
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction")


class ListProjects(Paginated):
    """List accessible projects, or the projects of a group."""

    action: Literal["list"]
    group_id: Optional[str] = Field(None, description="List the projects of this group")
    search: Optional[str] = Field(None, description="Filter by name")
    visibility: Optional[Visibility] = Field(None, description="Filter by visibility")
    archived: Optional[bool] = Field(None, description="Filter by archived status")
    owned: Optional[bool] = Field(None, description="Only projects you own")
    starred: Optional[bool] = Field(None, description="Only starred projects")
    membership: Optional[bool] = Field(None, description="Only projects you are a member of")
    simple: Optional[bool] = Field(None, description="Return reduced project fields (default: true)")
    with_programming_language: Optional[str] = Field(None, description="Filter by language")
    include_subgroups: Optional[bool] = Field(None, description="Include subgroup projects (group listing)")
    with_shared: Optional[bool] = Field(None, description="Include projects shared with the group")
    order_by: Optional[ProjectOrder] = Field(None, description="Order by field (default: created_at)")
    sort: Optional[Literal["asc", "desc"]] = Field(None, description="Sort direction (default: desc)")


class GetProject(ActionInput):
    """Get a single project."""

    action: Literal["get"]
    project_id: ProjectId
    statistics: Optional[bool] = Field(None, description="Include repository statistics")
    license: Optional[bool] = Field(None, description="Include license information")


_LIST_DEFAULTS = {"order_by": "created_at", "sort": "desc", "simple": True, "per_page": 20}


async def _search_projects(call: ActionCall) -> Any:
    query: Dict[str, Any] = call.fields(exclude=("q",))
    terms = call.params.get("q")
    if terms:
        topics = _TOPIC_RE.findall(terms)
        if topics:
            query["topic"] = topics
            terms = _TOPIC_RE.sub("", terms).strip()
        if terms:
            query["search"] = terms
    query["active"] = True
    return await call.client.get("projects", query=query)


async def _list_projects(call: ActionCall) -> Any:
    query = {**_LIST_DEFAULTS, **call.fields(exclude=("group_id",))}
    group_id = call.params.get("group_id")
    if group_id:
        return await call.client.get(call.path("groups/{group_id}/projects"), query=query)
    query["active"] = True
    return await call.client.get("projects", query=query)


BROWSE_PROJECTS = ResourceTool(
    name="browse_projects",
    description=(
        "Find and inspect projects. Actions: search (by name or 'topic:<name>' across the "
        "instance), list (your projects or a group's projects), get (one project by ID or path)."
    ),
    models=[SearchProjects, ListProjects, GetProject],
    scope="none",
    read_only=True,
    routes={"get": Route("GET", "projects/{project_id}")},
    handlers={"search": _search_projects, "list": _list_projects},
)


# ---------------------------------------------------------------------------
# browse_namespaces
# ---------------------------------------------------------------------------


class ListNamespaces(Paginated):
    """List namespaces (groups and user namespaces) you can access."""

    action: Literal["list"]
    search: Optional[str] = Field(None, description="Search namespaces by name or path")
    owned_only: Optional[bool] = Field(None, description="Only namespaces you own")
    top_level_only: Optional[bool] = Field(None, description="Only root-level namespaces")
    with_statistics: Optional[bool] = Field(None, description="Include storage and count statistics")
    min_access_level: Optional[Literal[10, 20, 30, 40, 50]] = Field(
        None, description="Minimum access level (10=Guest .. 50=Owner)"
    )


class GetNamespace(ActionInput):
    """Get a namespace by ID or path."""

    action: Literal["get"]
    namespace_id: NamespaceId


class VerifyNamespace(ActionInput):
    """Check whether a namespace path exists."""

    action: Literal["verify"]
    namespace_id: NamespaceId


async def _verify_namespace(call: ActionCall) -> Dict[str, Any]:
    namespace_id = call.params["namespace_id"]
    try:
        data = await call.client.get(call.path("namespaces/{namespace_id}"))
    except GitLabAPIError as exc:
        return {"exists": False, "status": exc.status, "namespace": namespace_id, "data": None}
    return {"exists": True, "status": 200, "namespace": namespace_id, "data": data}


BROWSE_NAMESPACES = ResourceTool(
    name="browse_namespaces",
    description=(
        "Explore groups and user namespaces. Actions: list (accessible namespaces), "
        "get (details by ID or path), verify (check a path exists before creating projects)."
    ),
    models=[ListNamespaces, GetNamespace, VerifyNamespace],
    scope="none",
    read_only=True,
    routes={
        "list": Route("GET", "namespaces"),
        "get": Route("GET", "namespaces/{namespace_id}"),
    },
    handlers={"verify": _verify_namespace},
)

TOOLS = [BROWSE_PROJECTS, BROWSE_NAMESPACES]
