"""Tests for list_webhooks and manage_webhook."""

import pytest

from gitlab_mcp.core.errors import ToolUnavailableError, ToolValidationError
from gitlab_mcp.core.session import InstanceInfo
from gitlab_mcp.tools.entities.webhooks import LIST_WEBHOOKS, MANAGE_WEBHOOK
from tests.conftest import gitlab_handler, json_body, request_path

PROJECT_HOOKS = "/api/v4/projects/g%2Fp/hooks"
GROUP_HOOKS = "/api/v4/groups/team/hooks"

FREE = InstanceInfo(version="17.0.0", tier="free")
PREMIUM = InstanceInfo(version="17.0.0", tier="premium")


class TestListWebhooks:
    """Tests for list_webhooks."""

    @pytest.mark.asyncio
    async def test_project_hooks(self, make_session):
        session, recorder = make_session(gitlab_handler({("GET", PROJECT_HOOKS): (200, [{"id": 1}])}))

        result = await LIST_WEBHOOKS.handler(session, {"scope": "project", "projectId": "g/p", "per_page": 10})

        assert result == [{"id": 1}]
        request = recorder.requests[0]
        assert request_path(request) == PROJECT_HOOKS
        assert dict(request.url.params) == {"per_page": "10"}

    @pytest.mark.asyncio
    async def test_group_hooks_on_premium(self, make_session):
        session, recorder = make_session(
            gitlab_handler({("GET", GROUP_HOOKS): (200, [])}), instance=PREMIUM
        )

        await LIST_WEBHOOKS.handler(session, {"action": "list", "scope": "group", "groupId": "team"})

        assert request_path(recorder.requests[0]) == GROUP_HOOKS

    @pytest.mark.asyncio
    async def test_group_hooks_unavailable_on_free(self, make_session):
        session, recorder = make_session(gitlab_handler(), instance=FREE)

        with pytest.raises(ToolUnavailableError):
            await LIST_WEBHOOKS.handler(session, {"scope": "group", "groupId": "team"})

        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_project_hooks_available_on_free(self, make_session):
        session, _ = make_session(gitlab_handler({("GET", PROJECT_HOOKS): (200, [])}), instance=FREE)

        assert await LIST_WEBHOOKS.handler(session, {"scope": "project", "projectId": "g/p"}) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "arguments,message",
        [
            ({"scope": "project"}, "projectId is required when scope=project"),
            ({"scope": "group", "projectId": "g/p"}, "groupId is required when scope=group"),
        ],
    )
    async def test_scope_id_required(self, make_session, arguments, message):
        session, _ = make_session(gitlab_handler())

        with pytest.raises(ToolValidationError) as exc_info:
            await LIST_WEBHOOKS.handler(session, arguments)

        path, reason = exc_info.value.issues[0]
        assert path == "input"
        assert message in reason


class TestManageWebhook:
    """Tests for manage_webhook."""

    @pytest.mark.asyncio
    async def test_create_project_hook(self, make_session):
        session, recorder = make_session(gitlab_handler({("POST", PROJECT_HOOKS): (201, {"id": 7})}))

        result = await MANAGE_WEBHOOK.handler(
            session,
            {
                "action": "create",
                "scope": "project",
                "projectId": "g/p",
                "url": "https://hooks.example.com/in",
                "push_events": True,
                "token": "s3cret",
            },
        )

        assert result == {"id": 7}
        assert json_body(recorder.requests[0]) == {
            "url": "https://hooks.example.com/in",
            "push_events": True,
            "token": "s3cret",
        }

    @pytest.mark.asyncio
    async def test_create_group_hook_unavailable_on_free(self, make_session):
        session, recorder = make_session(gitlab_handler(), instance=FREE)

        with pytest.raises(ToolUnavailableError) as exc_info:
            await MANAGE_WEBHOOK.handler(
                session,
                {"action": "create", "scope": "group", "groupId": "team", "url": "https://x"},
            )

        assert exc_info.value.action == "create"
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_test_delivery(self, make_session):
        path = f"{PROJECT_HOOKS}/7/test/push_events"
        session, recorder = make_session(gitlab_handler({("POST", path): (201, {"message": "201 Created"})}))

        await MANAGE_WEBHOOK.handler(
            session,
            {"action": "test", "scope": "project", "projectId": "g/p", "hookId": "7", "trigger": "push_events"},
        )

        assert request_path(recorder.requests[0]) == path

    @pytest.mark.asyncio
    async def test_unknown_trigger_rejected(self, make_session):
        session, _ = make_session(gitlab_handler())

        with pytest.raises(ToolValidationError) as exc_info:
            await MANAGE_WEBHOOK.handler(
                session,
                {"action": "test", "scope": "project", "projectId": "g/p", "hookId": "7", "trigger": "deploys"},
            )

        assert exc_info.value.issues[0][0] == "trigger"

    @pytest.mark.asyncio
    async def test_delete_message(self, make_session):
        session, _ = make_session(gitlab_handler({("DELETE", f"{GROUP_HOOKS}/3"): (204, None)}))

        result = await MANAGE_WEBHOOK.handler(
            session, {"action": "delete", "scope": "group", "groupId": "team", "hookId": 3}
        )

        assert result == {"success": True, "message": "Webhook deleted successfully"}
