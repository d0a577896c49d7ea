"""Action routing for action-keyed tools."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple


class ActionRouterError(ValueError):
    """Raised when an action cannot be routed.

    Attributes:
        allowed_actions: Canonical action names the router accepts
    """

    def __init__(self, message: str, *, allowed_actions: Iterable[str] = ()):
        super().__init__(message)
        self.allowed_actions: Tuple[str, ...] = tuple(allowed_actions)


@dataclass(frozen=True)
class ActionDefinition:
    """One routable action.

    Attributes:
        name: Canonical action name
        handler: Callable invoked with the dispatch keyword arguments
    """

    name: str
    handler: Callable[..., Any]


class ActionRouter:
    """Map action names of one tool to handlers, case-insensitively."""

    def __init__(self, tool_name: str, actions: Iterable[ActionDefinition]):
        self.tool_name = tool_name
        self._actions: Dict[str, ActionDefinition] = {}
        self._lookup: Dict[str, str] = {}
        for definition in actions:
            if definition.name in self._actions:
                raise ValueError(f"Duplicate action '{definition.name}' for {tool_name}")
            self._actions[definition.name] = definition
            self._lookup[definition.name.lower()] = definition.name

    def allowed_actions(self) -> List[str]:
        return list(self._actions)

    def resolve(self, action: Optional[str]) -> ActionDefinition:
        if not action:
            raise ActionRouterError(
                f"{self.tool_name} requires an action",
                allowed_actions=self.allowed_actions(),
            )
        canonical = self._lookup.get(action.lower())
        if canonical is None:
            raise ActionRouterError(
                f"Unsupported {self.tool_name} action '{action}'",
                allowed_actions=self.allowed_actions(),
            )
        return self._actions[canonical]

    def dispatch(self, action: Optional[str] = None, **payload: Any) -> Any:
        """Invoke the handler for ``action``; async handlers return their coroutine."""
        return self.resolve(action).handler(**payload)
