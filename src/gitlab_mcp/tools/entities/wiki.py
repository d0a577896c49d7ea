"""Wiki tools: ``browse_wiki`` and ``manage_wiki``."""

from typing import Annotated, Literal, Optional

from pydantic import Field

from gitlab_mcp.tools.dispatch import ResourceTool, Route, deleted
from gitlab_mcp.tools.entities.common import ActionInput, Namespace, Paginated

Slug = Annotated[str, Field(min_length=1, description="Slug of the wiki page")]
WikiFormat = Annotated[str, Field(description="Content format, e.g. markdown, rdoc, asciidoc")]


class ListWikiPages(Paginated):
    """List wiki pages."""

    action: Literal["list"]
    namespace: Namespace
    with_content: Optional[bool] = Field(None, description="Include content of the wiki pages")


class GetWikiPage(ActionInput):
    """Get a wiki page by slug."""

    action: Literal["get"]
    namespace: Namespace
    slug: Slug


BROWSE_WIKI = ResourceTool(
    name="browse_wiki",
    description="Browse project or group wiki pages. Actions: list (optionally with content), get (by slug).",
    models=[ListWikiPages, GetWikiPage],
    scope="namespace",
    read_only=True,
    routes={
        "list": Route("GET", "{base}/wikis"),
        "get": Route("GET", "{base}/wikis/{slug}"),
    },
)


class CreateWikiPage(ActionInput):
    """Create a wiki page."""

    action: Literal["create"]
    namespace: Namespace
    title: str = Field(min_length=1, description="Title of the wiki page")
    content: str = Field(description="Content of the wiki page")
    format: Optional[WikiFormat] = None


class UpdateWikiPage(ActionInput):
    """Update a wiki page."""

    action: Literal["update"]
    namespace: Namespace
    slug: Slug
    title: Optional[str] = Field(None, description="New title of the wiki page")
    content: Optional[str] = Field(None, description="New content of the wiki page")
    format: Optional[WikiFormat] = None


class DeleteWikiPage(ActionInput):
    """Delete a wiki page."""

    action: Literal["delete"]
    namespace: Namespace
    slug: Slug


MANAGE_WIKI = ResourceTool(
    name="manage_wiki",
    description="Create, update or delete project or group wiki pages.",
    models=[CreateWikiPage, UpdateWikiPage, DeleteWikiPage],
    scope="namespace",
    routes={
        "create": Route("POST", "{base}/wikis"),
        "update": Route("PUT", "{base}/wikis/{slug}"),
        "delete": Route("DELETE", "{base}/wikis/{slug}", shape=deleted),
    },
)

TOOLS = [BROWSE_WIKI, MANAGE_WIKI]
