"""Release tools: ``browse_releases`` and ``manage_release``."""

from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field

from gitlab_mcp.tools.dispatch import ResourceTool, Route, echo
from gitlab_mcp.tools.entities.common import ActionInput, Paginated, ProjectId

TagName = Annotated[str, Field(min_length=1, description="The Git tag the release is associated with")]
LinkType = Literal["other", "runbook", "image", "package"]


class AssetLink(BaseModel):
    name: str = Field(description="Display name for the asset link")
    url: str = Field(description="URL of the asset")
    direct_asset_path: Optional[str] = Field(
        None, description="Optional path for a permanent direct asset URL"
    )
    link_type: Optional[LinkType] = Field(None, description="Type of the link (default: other)")


class ReleaseAssets(BaseModel):
    links: Optional[List[AssetLink]] = Field(None, description="Asset links to create with the release")


class ListReleases(Paginated):
    """List releases of a project, newest first."""

    action: Literal["list"]
    project_id: ProjectId
    order_by: Optional[Literal["released_at", "created_at"]] = Field(
        None, description="Order releases by released_at (default) or created_at"
    )
    sort: Optional[Literal["desc", "asc"]] = Field(None, description="Sort direction (default: desc)")
    include_html_description: Optional[bool] = Field(
        None, description="Include the HTML-rendered description"
    )


class GetRelease(ActionInput):
    """Get a release by its tag name."""

    action: Literal["get"]
    project_id: ProjectId
    tag_name: TagName
    include_html_description: Optional[bool] = Field(
        None, description="Include the HTML-rendered description"
    )


class ListReleaseAssets(Paginated):
    """List the asset links of a release."""

    action: Literal["assets"]
    project_id: ProjectId
    tag_name: TagName


BROWSE_RELEASES = ResourceTool(
    name="browse_releases",
    description=(
        "Browse project releases. Actions: list (sorted by release date), get (by tag name), "
        "assets (asset links of a release)."
    ),
    models=[ListReleases, GetRelease, ListReleaseAssets],
    scope="project",
    read_only=True,
    routes={
        "list": Route("GET", "{base}/releases"),
        "get": Route("GET", "{base}/releases/{tag_name}"),
        "assets": Route("GET", "{base}/releases/{tag_name}/assets/links"),
    },
)


class CreateRelease(ActionInput):
    """Create a release for an existing or new tag."""

    action: Literal["create"]
    project_id: ProjectId
    tag_name: TagName
    name: Optional[str] = Field(None, description="The release name")
    description: Optional[str] = Field(None, description="Release notes (Markdown)")
    ref: Optional[str] = Field(
        None, description="Commit SHA, branch or tag to create the tag from when it does not exist"
    )
    tag_message: Optional[str] = Field(None, description="Message for a new annotated tag")
    milestones: Optional[List[str]] = Field(None, description="Milestone titles to associate")
    released_at: Optional[str] = Field(None, description="Release date (ISO 8601)")
    assets: Optional[ReleaseAssets] = None


class UpdateRelease(ActionInput):
    """Update an existing release."""

    action: Literal["update"]
    project_id: ProjectId
    tag_name: TagName
    name: Optional[str] = Field(None, description="The release name")
    description: Optional[str] = Field(None, description="Release notes (Markdown)")
    milestones: Optional[List[str]] = Field(None, description="Milestone titles to associate")
    released_at: Optional[str] = Field(None, description="Release date (ISO 8601)")


class DeleteRelease(ActionInput):
    """Delete a release; the Git tag is kept."""

    action: Literal["delete"]
    project_id: ProjectId
    tag_name: TagName


class CreateReleaseLink(ActionInput):
    """Add an asset link to a release."""

    action: Literal["create_link"]
    project_id: ProjectId
    tag_name: TagName
    name: str = Field(min_length=1, description="Display name (unique per release)")
    url: str = Field(min_length=1, description="URL of the asset (unique per release)")
    direct_asset_path: Optional[str] = Field(
        None, description="Optional path for a permanent direct asset URL"
    )
    link_type: Optional[LinkType] = Field(None, description="Type of the link (default: other)")


class DeleteReleaseLink(ActionInput):
    """Remove an asset link from a release."""

    action: Literal["delete_link"]
    project_id: ProjectId
    tag_name: TagName
    link_id: str = Field(min_length=1, description="The ID of the asset link to delete")


MANAGE_RELEASE = ResourceTool(
    name="manage_release",
    description=(
        "Create, update or delete project releases and their asset links. "
        "Deleting a release keeps its Git tag."
    ),
    models=[CreateRelease, UpdateRelease, DeleteRelease, CreateReleaseLink, DeleteReleaseLink],
    scope="project",
    routes={
        "create": Route("POST", "{base}/releases"),
        "update": Route("PUT", "{base}/releases/{tag_name}"),
        "delete": Route(
            "DELETE", "{base}/releases/{tag_name}", shape=echo("tag_name", deleted=True)
        ),
        "create_link": Route("POST", "{base}/releases/{tag_name}/assets/links"),
        "delete_link": Route(
            "DELETE",
            "{base}/releases/{tag_name}/assets/links/{link_id}",
            shape=echo("tag_name", "link_id", deleted=True),
        ),
    },
)

TOOLS = [BROWSE_RELEASES, MANAGE_RELEASE]
