"""CI/CD variable tools: ``browse_variables`` and ``manage_variable``."""

from typing import Annotated, Any, Dict, Literal, Optional

from pydantic import Field, field_validator

from gitlab_mcp.tools.dispatch import ResourceTool, Route, deleted
from gitlab_mcp.tools.entities.common import ActionInput, Namespace, Paginated

VARIABLE_TYPE_ALIASES = {
    "env_var": "env_var",
    "env": "env_var",
    "environment": "env_var",
    "var": "env_var",
    "variable": "env_var",
    "file": "file",
    "file_var": "file",
}

SCOPE_FILTER_PARAM = "filter[environment_scope]"

VariableKey = Annotated[
    str,
    Field(
        min_length=1,
        max_length=255,
        description="The key of the CI/CD variable (alphanumeric and underscore only)",
    ),
]


class VariableFilter(ActionInput):
    environment_scope: Optional[str] = Field(
        None,
        description="Environment scope variant to target when several variables share a key",
    )


class _VariableFields(ActionInput):
    variable_type: Optional[Literal["env_var", "file"]] = Field(
        None, description='"env_var" (default) or "file"'
    )
    environment_scope: Optional[str] = Field(
        None, description='Environment scope; "*" for all environments (default)'
    )
    protected: Optional[bool] = Field(
        None, description="Only expose the variable to protected branches and tags"
    )
    masked: Optional[bool] = Field(None, description="Mask the value in job logs")
    raw: Optional[bool] = Field(None, description="Disable variable expansion in the value")
    description: Optional[str] = Field(None, description="Description of the variable")

    @field_validator("variable_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return VARIABLE_TYPE_ALIASES.get(value.strip().lower(), value)
        return value


def _scope_filter(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Move ``filter.environment_scope`` to the ``filter[environment_scope]`` query key."""
    fields = dict(fields)
    scope_filter = fields.pop("filter", None) or {}
    if scope_filter.get("environment_scope"):
        fields[SCOPE_FILTER_PARAM] = scope_filter["environment_scope"]
    return fields


# ---------------------------------------------------------------------------
# browse_variables
# ---------------------------------------------------------------------------


class ListVariables(Paginated):
    """List CI/CD variables of a project or group."""

    action: Literal["list"]
    namespace: Namespace


class GetVariable(ActionInput):
    """Get a single CI/CD variable by key."""

    action: Literal["get"]
    namespace: Namespace
    key: VariableKey
    filter: Optional[VariableFilter] = None


BROWSE_VARIABLES = ResourceTool(
    name="browse_variables",
    description=(
        "Browse CI/CD variables of a project or group. Actions: list (all variables), "
        "get (one variable by key, optionally filtered by environment scope)."
    ),
    models=[ListVariables, GetVariable],
    scope="namespace",
    read_only=True,
    routes={
        "list": Route("GET", "{base}/variables"),
        "get": Route("GET", "{base}/variables/{key}", prepare=_scope_filter),
    },
)


# ---------------------------------------------------------------------------
# manage_variable
# ---------------------------------------------------------------------------


class CreateVariable(_VariableFields):
    """Create a new CI/CD variable."""

    action: Literal["create"]
    namespace: Namespace
    key: VariableKey
    value: str = Field(description="Variable value; file content for file variables")


class UpdateVariable(_VariableFields):
    """Update an existing CI/CD variable."""

    action: Literal["update"]
    namespace: Namespace
    key: VariableKey
    value: Optional[str] = Field(None, description="Variable value; file content for file variables")
    filter: Optional[VariableFilter] = None


class DeleteVariable(ActionInput):
    """Delete a CI/CD variable."""

    action: Literal["delete"]
    namespace: Namespace
    key: VariableKey
    filter: Optional[VariableFilter] = None


MANAGE_VARIABLE = ResourceTool(
    name="manage_variable",
    description=(
        "Create, update or delete CI/CD variables. Use filter.environment_scope to target "
        "one scope variant when several variables share a key."
    ),
    models=[CreateVariable, UpdateVariable, DeleteVariable],
    scope="namespace",
    routes={
        "create": Route("POST", "{base}/variables"),
        "update": Route(
            "PUT",
            "{base}/variables/{key}",
            prepare=_scope_filter,
            query_fields=(SCOPE_FILTER_PARAM,),
        ),
        "delete": Route(
            "DELETE",
            "{base}/variables/{key}",
            prepare=_scope_filter,
            shape=deleted,
        ),
    },
)

TOOLS = [BROWSE_VARIABLES, MANAGE_VARIABLE]
