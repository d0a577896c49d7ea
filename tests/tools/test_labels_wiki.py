"""Tests for label and wiki tools."""

import pytest

from gitlab_mcp.core.errors import GitLabAPIError, ToolValidationError
from gitlab_mcp.tools.entities.labels import BROWSE_LABELS, MANAGE_LABEL
from gitlab_mcp.tools.entities.wiki import BROWSE_WIKI, MANAGE_WIKI
from tests.conftest import gitlab_handler, json_body, request_path

PROJECT = "/api/v4/projects/g%2Fp"
GROUP = "/api/v4/groups/team"


class TestLabels:
    """Tests for browse_labels and manage_label."""

    @pytest.mark.asyncio
    async def test_list_with_counts(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("GET", f"{GROUP}/labels"): (200, [{"name": "bug"}])}, groups=["team"])
        )

        result = await BROWSE_LABELS.handler(
            session, {"action": "list", "namespace": "team", "with_counts": True, "search": "bu"}
        )

        assert result == [{"name": "bug"}]
        assert dict(recorder.requests[-1].url.params) == {"with_counts": "true", "search": "bu"}

    @pytest.mark.asyncio
    async def test_get_by_title_is_encoded(self, make_session):
        path = f"{PROJECT}/labels/needs%20review"
        session, recorder = make_session(gitlab_handler({("GET", path): (200, {"id": 3})}, projects=["g/p"]))

        await BROWSE_LABELS.handler(
            session, {"action": "get", "namespace": "g/p", "label_id": "needs review"}
        )

        assert request_path(recorder.requests[-1]) == path

    @pytest.mark.asyncio
    async def test_create(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("POST", f"{PROJECT}/labels"): (201, {"id": 5})}, projects=["g/p"])
        )

        await MANAGE_LABEL.handler(
            session,
            {"action": "create", "namespace": "g/p", "name": "bug", "color": "#FF0000", "priority": 1},
        )

        assert json_body(recorder.requests[-1]) == {"name": "bug", "color": "#FF0000", "priority": 1}

    @pytest.mark.asyncio
    async def test_update_renames(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("PUT", f"{PROJECT}/labels/5"): (200, {"id": 5})}, projects=["g/p"])
        )

        await MANAGE_LABEL.handler(
            session, {"action": "update", "namespace": "g/p", "label_id": 5, "new_name": "defect"}
        )

        assert json_body(recorder.requests[-1]) == {"new_name": "defect"}

    @pytest.mark.asyncio
    async def test_delete_message(self, make_session):
        session, _ = make_session(
            gitlab_handler({("DELETE", f"{PROJECT}/labels/5"): (204, None)}, projects=["g/p"])
        )

        result = await MANAGE_LABEL.handler(session, {"action": "delete", "namespace": "g/p", "label_id": 5})

        assert result == {"success": True, "message": "Label deleted successfully"}

    @pytest.mark.asyncio
    async def test_negative_priority_rejected(self, make_session):
        session, _ = make_session(gitlab_handler(projects=["g/p"]))
        with pytest.raises(ToolValidationError) as exc_info:
            await MANAGE_LABEL.handler(
                session,
                {"action": "create", "namespace": "g/p", "name": "x", "color": "red", "priority": -1},
            )
        assert exc_info.value.issues[0][0] == "priority"

    @pytest.mark.asyncio
    async def test_upstream_conflict_propagates(self, make_session):
        session, _ = make_session(
            gitlab_handler(
                {("POST", f"{PROJECT}/labels"): (409, {"message": "Label already exists"})},
                projects=["g/p"],
            )
        )

        with pytest.raises(GitLabAPIError) as exc_info:
            await MANAGE_LABEL.handler(
                session, {"action": "create", "namespace": "g/p", "name": "bug", "color": "red"}
            )

        assert exc_info.value.status == 409
        assert exc_info.value.details == "Label already exists"


class TestWiki:
    """Tests for browse_wiki and manage_wiki."""

    @pytest.mark.asyncio
    async def test_list_with_content(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("GET", f"{GROUP}/wikis"): (200, [])}, groups=["team"])
        )

        await BROWSE_WIKI.handler(session, {"action": "list", "namespace": "team", "with_content": True})

        assert dict(recorder.requests[-1].url.params) == {"with_content": "true"}

    @pytest.mark.asyncio
    async def test_get_nested_slug(self, make_session):
        path = f"{PROJECT}/wikis/docs%2Fsetup"
        session, recorder = make_session(gitlab_handler({("GET", path): (200, {"slug": "docs/setup"})}, projects=["g/p"]))

        result = await BROWSE_WIKI.handler(session, {"action": "get", "namespace": "g/p", "slug": "docs/setup"})

        assert result == {"slug": "docs/setup"}
        assert request_path(recorder.requests[-1]) == path

    @pytest.mark.asyncio
    async def test_create(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("POST", f"{PROJECT}/wikis"): (201, {"slug": "home"})}, projects=["g/p"])
        )

        await MANAGE_WIKI.handler(
            session,
            {"action": "create", "namespace": "g/p", "title": "Home", "content": "# Hi", "format": "markdown"},
        )

        assert json_body(recorder.requests[-1]) == {"title": "Home", "content": "# Hi", "format": "markdown"}

    @pytest.mark.asyncio
    async def test_delete(self, make_session):
        session, _ = make_session(
            gitlab_handler({("DELETE", f"{PROJECT}/wikis/home"): (204, None)}, projects=["g/p"])
        )

        result = await MANAGE_WIKI.handler(session, {"action": "delete", "namespace": "g/p", "slug": "home"})

        assert result == {"deleted": True}
