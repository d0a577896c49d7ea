"""
Generic action dispatcher for ``browse_*`` / ``manage_*`` tools.

A ``ResourceTool`` is declared once per tool with:

- the pydantic model of every action (a discriminated union on ``action``),
- a scope telling how the URL base is resolved (``namespace``: project or
  group via live probing, ``project``: normalized ``project_id``,
  ``explicit``: ``scope`` plus ``projectId`` or ``groupId``, ``none``),
- a ``Route`` per plain action (verb, path template, body encoding, result
  shaping),
- extension handlers for actions with bespoke logic.

Calling the tool validates input, applies policy (denied actions, read-only
mode) and the availability gate, resolves the scope and performs the call.
"""

from __future__ import annotations

import functools
import logging
import string
from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from gitlab_mcp.config import PolicySettings
from gitlab_mcp.core.availability import ToolAvailability
from gitlab_mcp.core.client import GitLabClient
from gitlab_mcp.core.errors import (
    ActionDeniedError,
    ToolUnavailableError,
    ToolValidationError,
)
from gitlab_mcp.core.identifiers import normalize_identifier, validate_identifier
from gitlab_mcp.core.namespace import NamespaceResolution, resolve_namespace
from gitlab_mcp.core.query import ContentType
from gitlab_mcp.core.schema import JSONSchema, discriminated_schema, format_validation_error
from gitlab_mcp.core.session import GitLabSession
from gitlab_mcp.tools.router import ActionDefinition, ActionRouter

logger = logging.getLogger(__name__)

Scope = Literal["namespace", "project", "explicit", "none"]
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

_formatter = string.Formatter()


def _template_fields(template: str) -> FrozenSet[str]:
    return frozenset(name for _, name, _, _ in _formatter.parse(template) if name)


@dataclass(frozen=True)
class Route:
    """How one action maps onto a single GitLab call.

    Attributes:
        method: HTTP verb
        path: Path template; ``{base}`` is the resolved scope, other fields
            are filled from the action input and percent-encoded
        content_type: Body encoding for write verbs
        shape: Optional ``(result, call) -> result`` reshaping
        exclude: Input fields never sent upstream
        query_fields: Fields sent as query parameters even on write verbs
        prepare: Optional rewrite of the outgoing fields before sending
    """

    method: HttpMethod
    path: str
    content_type: ContentType = "json"
    shape: Optional[Callable[[Any, "ActionCall"], Any]] = None
    exclude: Tuple[str, ...] = ()
    query_fields: Tuple[str, ...] = ()
    prepare: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None

    @property
    def sends_body(self) -> bool:
        return self.method in ("POST", "PUT", "PATCH")


@dataclass
class ActionCall:
    """Validated input for one action plus its resolved scope."""

    tool: "ResourceTool"
    session: GitLabSession
    action: str
    params: Dict[str, Any]
    base: Optional[str] = None
    namespace: Optional[NamespaceResolution] = None

    @property
    def client(self) -> GitLabClient:
        return self.session.client

    def path(self, template: str, **extra: Any) -> str:
        """Fill a path template from ``base``, the input and ``extra``."""
        values: Dict[str, Any] = {**self.params, **extra}
        filled = {}
        for name in _template_fields(template):
            if name == "base":
                filled[name] = self.base
                continue
            if values.get(name) is None:
                raise ToolValidationError.single(name, "Field required", tool=self.tool.name)
            filled[name] = normalize_identifier(str(values[name]))
        return template.format(**filled)

    def fields(self, exclude: Iterable[str] = ()) -> Dict[str, Any]:
        """Input fields minus scope fields and ``exclude``."""
        skip = set(exclude) | set(self.tool.scope_fields)
        return {k: v for k, v in self.params.items() if k not in skip}


ExtensionHandler = Callable[[ActionCall], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """A tool as published by the registry.

    Attributes:
        name: Tool name
        description: Tool description shown to clients
        input_schema: JSON schema (discriminated form, pre-transform)
        handler: ``async (session, arguments, policy=None) -> result``
        read_only: True when every action is read-only
        read_only_actions: Actions allowed in read-only mode
        actions: Every action the tool accepts
    """

    name: str
    description: str
    input_schema: JSONSchema
    handler: Callable[..., Awaitable[Any]]
    read_only: bool = False
    read_only_actions: FrozenSet[str] = frozenset()
    actions: Tuple[str, ...] = ()

    def is_action_read_only(self, action: str) -> bool:
        return self.read_only or action in self.read_only_actions


class ResourceTool:
    """Declarative action-routed tool over one GitLab resource.

    Args:
        name: Tool name (e.g. ``browse_milestones``)
        description: Tool description
        models: One pydantic model per action, each with ``action: Literal[...]``
        scope: How the URL base is resolved
        routes: ``action -> Route`` for plain actions
        handlers: ``action -> async handler(call)`` for bespoke actions
        read_only: Every action is read-only
        read_only_actions: Actions allowed in read-only mode on a write tool
        gate_action: ``(action, params) -> action name`` used for the
            availability lookup (e.g. group-scoped webhook variants)
    """

    def __init__(
        self,
        name: str,
        description: str,
        models: Sequence[Type[BaseModel]],
        *,
        scope: Scope = "namespace",
        routes: Optional[Mapping[str, Route]] = None,
        handlers: Optional[Mapping[str, ExtensionHandler]] = None,
        read_only: bool = False,
        read_only_actions: Iterable[str] = (),
        gate_action: Optional[Callable[[str, Mapping[str, Any]], str]] = None,
    ):
        self.name = name
        self.description = description
        self.models = list(models)
        self.scope = scope
        self.routes: Dict[str, Route] = dict(routes or {})
        self.handlers: Dict[str, ExtensionHandler] = dict(handlers or {})
        self.read_only = read_only
        self.read_only_actions = frozenset(read_only_actions)
        self._gate_action = gate_action

        if len(self.models) == 1:
            self._adapter: TypeAdapter = TypeAdapter(self.models[0])
        else:
            union = Annotated[Union[tuple(self.models)], Field(discriminator="action")]
            self._adapter = TypeAdapter(union)

        self.actions: Tuple[str, ...] = tuple(
            model.model_fields["action"].annotation.__args__[0] for model in self.models
        )
        missing = [a for a in self.actions if a not in self.routes and a not in self.handlers]
        if missing:
            raise ValueError(f"{name}: no route or handler for actions {missing}")

        definitions = []
        for action in self.actions:
            if action in self.handlers:
                handler = self.handlers[action]
            else:
                handler = functools.partial(self._run_route, self.routes[action])
            definitions.append(ActionDefinition(name=action, handler=handler))
        self.router = ActionRouter(tool_name=name, actions=definitions)

    @property
    def scope_fields(self) -> Tuple[str, ...]:
        if self.scope == "namespace":
            return ("namespace",)
        if self.scope == "project":
            return ("project_id",)
        if self.scope == "explicit":
            return ("scope", "projectId", "groupId")
        return ()

    def input_schema(self) -> JSONSchema:
        return discriminated_schema(self.models)

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema(),
            handler=self.handler,
            read_only=self.read_only,
            read_only_actions=self.read_only_actions,
            actions=self.actions,
        )

    def parse(self, arguments: Optional[Mapping[str, Any]]) -> BaseModel:
        """Validate raw arguments; ``None`` values count as absent."""
        cleaned = {k: v for k, v in (arguments or {}).items() if v is not None}
        try:
            return self._adapter.validate_python(cleaned)
        except ValidationError as exc:
            raise ToolValidationError(
                format_validation_error(exc, self.actions), tool=self.name
            ) from exc

    def check_policy(self, action: str, policy: Optional[PolicySettings]) -> None:
        if policy is None:
            return
        if policy.is_action_denied(self.name, action):
            raise ActionDeniedError(self.name, action)
        if policy.read_only and not (self.read_only or action in self.read_only_actions):
            raise ActionDeniedError(self.name, action, "not allowed in read-only mode")

    def check_availability(self, session: GitLabSession, action: str, params: Mapping[str, Any]) -> None:
        if not session.is_initialized:
            return
        gate = self._gate_action(action, params) if self._gate_action else action
        availability = ToolAvailability(lambda: session.instance_info)
        if not availability.is_available(self.name, gate):
            raise ToolUnavailableError(
                self.name, action, availability.get_unavailable_reason(self.name, gate)
            )

    async def resolve_scope(
        self, session: GitLabSession, params: Mapping[str, Any]
    ) -> Tuple[Optional[str], Optional[NamespaceResolution]]:
        if self.scope == "namespace":
            resolution = await resolve_namespace(session.client, params["namespace"])
            return resolution.base_path, resolution
        if self.scope == "project":
            project_id = str(params["project_id"])
            error = validate_identifier(project_id)
            if error:
                raise ToolValidationError.single("project_id", error, tool=self.name)
            return f"projects/{normalize_identifier(project_id)}", None
        if self.scope == "explicit":
            if params["scope"] == "group":
                return f"groups/{normalize_identifier(str(params['groupId']))}", None
            return f"projects/{normalize_identifier(str(params['projectId']))}", None
        return None, None

    async def handler(
        self,
        session: GitLabSession,
        arguments: Optional[Mapping[str, Any]],
        policy: Optional[PolicySettings] = None,
    ) -> Any:
        """Validate, gate, resolve and execute one tool call."""
        parsed = self.parse(arguments)
        params = parsed.model_dump(exclude_none=True)
        action = params.pop("action")

        self.check_policy(action, policy)
        self.check_availability(session, action, params)

        base, namespace = await self.resolve_scope(session, params)
        call = ActionCall(
            tool=self,
            session=session,
            action=action,
            params=params,
            base=base,
            namespace=namespace,
        )
        logger.debug("%s %s -> %s", self.name, action, base or "-")
        return await self.router.dispatch(action=action, call=call)

    async def _run_route(self, route: Route, *, call: ActionCall) -> Any:
        path = call.path(route.path)
        outgoing = call.fields(exclude=set(route.exclude) | _template_fields(route.path))
        if route.prepare:
            outgoing = route.prepare(outgoing)

        query = {k: v for k, v in outgoing.items() if k in route.query_fields}
        rest = {k: v for k, v in outgoing.items() if k not in route.query_fields}

        if route.sends_body:
            result = await call.client.request(
                route.method,
                path,
                query=query or None,
                body=rest,
                content_type=route.content_type,
            )
        else:
            result = await call.client.request(route.method, path, query={**rest, **query} or None)

        if route.shape:
            return route.shape(result, call)
        return result


def deleted(result: Any, call: ActionCall) -> Dict[str, Any]:
    """Shape an empty DELETE response as ``{"deleted": true}``."""
    return {"deleted": True}


def constant(payload: Dict[str, Any]) -> Callable[[Any, ActionCall], Dict[str, Any]]:
    """Shape any response as a fixed payload."""

    def shape(result: Any, call: ActionCall) -> Dict[str, Any]:
        return dict(payload)

    return shape


def echo(*names: str, **fixed: Any) -> Callable[[Any, ActionCall], Dict[str, Any]]:
    """Shape a response as ``fixed`` plus the named input fields."""

    def shape(result: Any, call: ActionCall) -> Dict[str, Any]:
        payload = dict(fixed)
        for name in names:
            payload[name] = call.params.get(name)
        return payload

    return shape
