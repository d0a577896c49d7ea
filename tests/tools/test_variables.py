"""Tests for browse_variables and manage_variable."""

import pytest

from gitlab_mcp.core.errors import ToolValidationError
from gitlab_mcp.tools.entities.variables import BROWSE_VARIABLES, MANAGE_VARIABLE
from tests.conftest import gitlab_handler, json_body, request_path

PROJECT = "/api/v4/projects/g%2Fp"
GROUP = "/api/v4/groups/team"


class TestBrowseVariables:
    """Tests for browse_variables."""

    @pytest.mark.asyncio
    async def test_list_group_variables(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("GET", f"{GROUP}/variables"): (200, [{"key": "TOKEN"}])}, groups=["team"])
        )

        result = await BROWSE_VARIABLES.handler(session, {"action": "list", "namespace": "team"})

        assert result == [{"key": "TOKEN"}]
        assert request_path(recorder.requests[-1]) == f"{GROUP}/variables"

    @pytest.mark.asyncio
    async def test_get_with_scope_filter(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("GET", f"{PROJECT}/variables/API_KEY"): (200, {"key": "API_KEY"})}, projects=["g/p"])
        )

        await BROWSE_VARIABLES.handler(
            session,
            {
                "action": "get",
                "namespace": "g/p",
                "key": "API_KEY",
                "filter": {"environment_scope": "production"},
            },
        )

        assert dict(recorder.requests[-1].url.params) == {"filter[environment_scope]": "production"}

    @pytest.mark.asyncio
    async def test_key_length_limit(self, make_session):
        session, _ = make_session(gitlab_handler(projects=["g/p"]))
        with pytest.raises(ToolValidationError) as exc_info:
            await BROWSE_VARIABLES.handler(session, {"action": "get", "namespace": "g/p", "key": "K" * 256})
        assert exc_info.value.issues[0][0] == "key"


class TestManageVariable:
    """Tests for manage_variable."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("alias,expected", [("env", "env_var"), ("File", "file"), ("variable", "env_var")])
    async def test_create_normalizes_type_alias(self, make_session, alias, expected):
        session, recorder = make_session(
            gitlab_handler({("POST", f"{PROJECT}/variables"): (201, {"key": "A"})}, projects=["g/p"])
        )

        await MANAGE_VARIABLE.handler(
            session,
            {"action": "create", "namespace": "g/p", "key": "A", "value": "1", "variable_type": alias},
        )

        assert json_body(recorder.requests[-1]) == {"key": "A", "value": "1", "variable_type": expected}

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, make_session):
        session, _ = make_session(gitlab_handler(projects=["g/p"]))
        with pytest.raises(ToolValidationError) as exc_info:
            await MANAGE_VARIABLE.handler(
                session,
                {"action": "create", "namespace": "g/p", "key": "A", "value": "1", "variable_type": "secret"},
            )
        assert exc_info.value.issues[0][0] == "variable_type"

    @pytest.mark.asyncio
    async def test_update_filter_goes_to_query(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("PUT", f"{PROJECT}/variables/A"): (200, {"key": "A"})}, projects=["g/p"])
        )

        await MANAGE_VARIABLE.handler(
            session,
            {
                "action": "update",
                "namespace": "g/p",
                "key": "A",
                "value": "2",
                "masked": True,
                "filter": {"environment_scope": "staging"},
            },
        )

        request = recorder.requests[-1]
        assert dict(request.url.params) == {"filter[environment_scope]": "staging"}
        assert json_body(request) == {"value": "2", "masked": True}

    @pytest.mark.asyncio
    async def test_delete(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("DELETE", f"{PROJECT}/variables/A"): (204, None)}, projects=["g/p"])
        )

        result = await MANAGE_VARIABLE.handler(
            session,
            {"action": "delete", "namespace": "g/p", "key": "A", "filter": {"environment_scope": "*"}},
        )

        assert result == {"deleted": True}
        assert dict(recorder.requests[-1].url.params) == {"filter[environment_scope]": "*"}
