"""Label tools: ``browse_labels`` and ``manage_label``."""

from typing import Annotated, Literal, Optional

from pydantic import Field

from gitlab_mcp.tools.dispatch import ResourceTool, Route, constant
from gitlab_mcp.tools.entities.common import ActionInput, Namespace, Paginated

LabelId = Annotated[str, Field(min_length=1, description="The ID or title of the label")]
LabelColor = Annotated[
    str,
    Field(description="6-digit hex color with leading '#' (e.g. #FFAABB) or a CSS color name"),
]


class ListLabels(Paginated):
    """List labels of a project or group."""

    action: Literal["list"]
    namespace: Namespace
    with_counts: Optional[bool] = Field(
        None, description="Include issue and merge request counts"
    )
    include_ancestor_groups: Optional[bool] = Field(None, description="Include ancestor groups")
    search: Optional[str] = Field(None, description="Keyword to filter labels by")


class GetLabel(ActionInput):
    """Get a single label by ID or title."""

    action: Literal["get"]
    namespace: Namespace
    label_id: LabelId
    include_ancestor_groups: Optional[bool] = Field(None, description="Include ancestor groups")


BROWSE_LABELS = ResourceTool(
    name="browse_labels",
    description=(
        "Browse labels of a project or group. Run list before creating labels to avoid "
        "duplicates; group labels are inherited by child projects."
    ),
    models=[ListLabels, GetLabel],
    scope="namespace",
    read_only=True,
    routes={
        "list": Route("GET", "{base}/labels"),
        "get": Route("GET", "{base}/labels/{label_id}"),
    },
)


class CreateLabel(ActionInput):
    """Create a new label."""

    action: Literal["create"]
    namespace: Namespace
    name: str = Field(min_length=1, description="The name of the label")
    color: LabelColor
    description: Optional[str] = Field(None, description="The description of the label")
    priority: Optional[int] = Field(None, ge=0, description="Label priority (0 or greater)")


class UpdateLabel(ActionInput):
    """Update a label's name, color, description or priority."""

    action: Literal["update"]
    namespace: Namespace
    label_id: LabelId
    new_name: Optional[str] = Field(None, description="The new name of the label")
    color: Optional[LabelColor] = None
    description: Optional[str] = Field(None, description="The description of the label")
    priority: Optional[int] = Field(None, ge=0, description="Label priority (0 or greater)")


class DeleteLabel(ActionInput):
    """Delete a label."""

    action: Literal["delete"]
    namespace: Namespace
    label_id: LabelId


MANAGE_LABEL = ResourceTool(
    name="manage_label",
    description=(
        "Create, update or delete labels in a project or group. Deleting a label "
        "removes it from every issue and merge request."
    ),
    models=[CreateLabel, UpdateLabel, DeleteLabel],
    scope="namespace",
    routes={
        "create": Route("POST", "{base}/labels"),
        "update": Route("PUT", "{base}/labels/{label_id}"),
        "delete": Route(
            "DELETE",
            "{base}/labels/{label_id}",
            shape=constant({"success": True, "message": "Label deleted successfully"}),
        ),
    },
)

TOOLS = [BROWSE_LABELS, MANAGE_LABEL]
