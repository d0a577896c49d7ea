"""Webhook tools: ``list_webhooks`` and ``manage_webhook``.

Webhooks are addressed explicitly: ``scope`` is ``project`` or ``group`` and
the matching ``projectId`` / ``groupId`` must be given. Group hooks need
GitLab Premium, so the availability gate checks ``<action>_group``.
"""

from typing import Any, Literal, Mapping, Optional

from pydantic import Field, model_validator

from gitlab_mcp.tools.dispatch import ResourceTool, Route, constant
from gitlab_mcp.tools.entities.common import ActionInput, Paginated

Trigger = Literal[
    "push_events",
    "tag_push_events",
    "merge_requests_events",
    "issues_events",
    "confidential_issues_events",
    "note_events",
    "job_events",
    "pipeline_events",
    "wiki_page_events",
    "releases_events",
    "milestone_events",
    "emoji_events",
    "resource_access_token_events",
]


class _Scoped(ActionInput):
    scope: Literal["project", "group"] = Field(description="Scope of the webhook")
    projectId: Optional[str] = Field(None, description="Project ID or path (required if scope=project)")
    groupId: Optional[str] = Field(None, description="Group ID or path (required if scope=group)")

    @model_validator(mode="after")
    def _check_scope_id(self):
        if self.scope == "project" and not self.projectId:
            raise ValueError("projectId is required when scope=project")
        if self.scope == "group" and not self.groupId:
            raise ValueError("groupId is required when scope=group")
        return self


class _HookSettings(_Scoped):
    name: Optional[str] = Field(None, description="Human-readable webhook name (GitLab 16.11+)")
    description: Optional[str] = Field(None, description="Webhook description (GitLab 16.11+)")
    token: Optional[str] = Field(None, description="Secret token for webhook validation")
    push_events: Optional[bool] = Field(None, description="Enable push events")
    push_events_branch_filter: Optional[str] = Field(
        None, description="Branch filter for push events (wildcard supported)"
    )
    tag_push_events: Optional[bool] = Field(None, description="Enable tag push events")
    merge_requests_events: Optional[bool] = Field(None, description="Enable merge request events")
    issues_events: Optional[bool] = Field(None, description="Enable issue events")
    confidential_issues_events: Optional[bool] = Field(None, description="Enable confidential issue events")
    note_events: Optional[bool] = Field(None, description="Enable note/comment events")
    confidential_note_events: Optional[bool] = Field(None, description="Enable confidential note events")
    job_events: Optional[bool] = Field(None, description="Enable job events")
    pipeline_events: Optional[bool] = Field(None, description="Enable pipeline events")
    wiki_page_events: Optional[bool] = Field(None, description="Enable wiki page events")
    deployment_events: Optional[bool] = Field(None, description="Enable deployment events")
    feature_flag_events: Optional[bool] = Field(None, description="Enable feature flag events")
    releases_events: Optional[bool] = Field(None, description="Enable release events")
    emoji_events: Optional[bool] = Field(None, description="Enable emoji events")
    resource_access_token_events: Optional[bool] = Field(
        None, description="Enable resource access token events"
    )
    member_events: Optional[bool] = Field(None, description="Enable member events")
    subgroup_events: Optional[bool] = Field(None, description="Enable subgroup events (group hooks only)")
    project_events: Optional[bool] = Field(None, description="Enable project events (group hooks only)")
    enable_ssl_verification: Optional[bool] = Field(None, description="Verify SSL certificates")


def _group_gate(action: str, params: Mapping[str, Any]) -> str:
    if params.get("scope") == "group":
        return f"{action}_group"
    return action


class ListWebhooks(Paginated, _Scoped):
    """List webhooks of a project or group."""

    action: Literal["list"] = "list"


LIST_WEBHOOKS = ResourceTool(
    name="list_webhooks",
    description=(
        "List webhooks configured for a project or group. Set scope to project or group "
        "and pass projectId or groupId accordingly. Group webhooks require GitLab Premium."
    ),
    models=[ListWebhooks],
    scope="explicit",
    read_only=True,
    routes={"list": Route("GET", "{base}/hooks")},
    gate_action=_group_gate,
)


class CreateWebhook(_HookSettings):
    """Create a webhook."""

    action: Literal["create"]
    url: str = Field(min_length=1, description="Webhook URL")


class ReadWebhook(_Scoped):
    """Get a webhook's configuration."""

    action: Literal["read"]
    hookId: str = Field(min_length=1, description="Webhook ID")


class UpdateWebhook(_HookSettings):
    """Update a webhook."""

    action: Literal["update"]
    hookId: str = Field(min_length=1, description="Webhook ID")
    url: Optional[str] = Field(None, description="Webhook URL")


class DeleteWebhook(_Scoped):
    """Delete a webhook."""

    action: Literal["delete"]
    hookId: str = Field(min_length=1, description="Webhook ID")


class WebhookTestDelivery(_Scoped):
    """Trigger a test delivery for one event type."""

    action: Literal["test"]
    hookId: str = Field(min_length=1, description="Webhook ID")
    trigger: Trigger = Field(description="Event type to test")


MANAGE_WEBHOOK = ResourceTool(
    name="manage_webhook",
    description=(
        "Create, read, update, delete or test project and group webhooks. "
        "Group webhooks require GitLab Premium."
    ),
    models=[CreateWebhook, ReadWebhook, UpdateWebhook, DeleteWebhook, WebhookTestDelivery],
    scope="explicit",
    read_only_actions=("read",),
    routes={
        "create": Route("POST", "{base}/hooks"),
        "read": Route("GET", "{base}/hooks/{hookId}"),
        "update": Route("PUT", "{base}/hooks/{hookId}"),
        "delete": Route(
            "DELETE",
            "{base}/hooks/{hookId}",
            shape=constant({"success": True, "message": "Webhook deleted successfully"}),
        ),
        "test": Route("POST", "{base}/hooks/{hookId}/test/{trigger}"),
    },
    gate_action=_group_gate,
)

TOOLS = [LIST_WEBHOOKS, MANAGE_WEBHOOK]
