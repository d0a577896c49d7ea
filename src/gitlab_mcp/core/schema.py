"""
JSON schema pipeline for action-discriminated tool input.

Tool input is modelled as a pydantic discriminated union keyed by ``action``.
Before a schema is published it goes through:

1. ``filter_denied_actions``: drop branches for denied actions
2. ``apply_description_overrides``: replace tool/param descriptions
3. ``flatten_discriminated_union``: merge branches into one object schema
   (only in ``flat`` schema mode)
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Type

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

JSONSchema = Dict[str, Any]

_NOISE_KEYS = ("title",)


def _branch_action(branch: JSONSchema) -> Optional[str]:
    action = branch.get("properties", {}).get("action", {})
    if "const" in action:
        return action["const"]
    enum = action.get("enum")
    if enum:
        return enum[0]
    return None


def _simplify_property(prop: JSONSchema) -> JSONSchema:
    """Collapse ``anyOf: [X, null]`` into X and drop pydantic titles."""
    result = {k: v for k, v in prop.items() if k not in _NOISE_KEYS}
    any_of = result.get("anyOf")
    if isinstance(any_of, list):
        non_null = [option for option in any_of if option.get("type") != "null"]
        if len(non_null) == 1 and len(non_null) < len(any_of):
            result.pop("anyOf")
            for key, value in non_null[0].items():
                result.setdefault(key, value)
            if result.get("default", ...) is None:
                result.pop("default")
    return result


def discriminated_schema(models: Sequence[Type[BaseModel]]) -> JSONSchema:
    """Build a ``oneOf`` schema from per-action models.

    Each branch is the model's own JSON schema; nested ``$defs`` are hoisted to
    the top level so ``$ref`` pointers keep resolving.
    """
    defs: Dict[str, Any] = {}
    branches: List[JSONSchema] = []
    for model in models:
        schema = model.model_json_schema()
        defs.update(schema.pop("$defs", {}))
        schema.pop("title", None)
        schema["properties"] = {
            name: _simplify_property(prop) for name, prop in schema.get("properties", {}).items()
        }
        if model.__doc__:
            schema["description"] = " ".join(model.__doc__.split())
        branches.append(schema)

    result: JSONSchema = {
        "type": "object",
        "oneOf": branches,
        "discriminator": {"propertyName": "action"},
    }
    if defs:
        result["$defs"] = defs
    return result


def extract_actions(schema: JSONSchema) -> List[str]:
    """List the action names a schema accepts (flat or discriminated)."""
    action_prop = schema.get("properties", {}).get("action", {})
    if action_prop.get("enum"):
        return list(action_prop["enum"])

    actions = []
    for branch in schema.get("oneOf", []):
        action = _branch_action(branch)
        if action:
            actions.append(action)
    return actions


def filter_denied_actions(schema: JSONSchema, tool_name: str, denied: Iterable[str]) -> JSONSchema:
    """Remove denied actions from a discriminated or flat schema."""
    denied_set: Set[str] = {action.lower() for action in denied}
    if not denied_set:
        return schema

    result = copy.deepcopy(schema)
    if "oneOf" in result:
        kept = []
        for branch in result["oneOf"]:
            action = _branch_action(branch)
            if action and action.lower() in denied_set:
                logger.debug("Tool '%s': filtered out action '%s' from schema", tool_name, action)
                continue
            kept.append(branch)
        if not kept:
            logger.warning("Tool '%s': all actions filtered out", tool_name)
            return {"type": "object", "properties": {}}
        result["oneOf"] = kept
        return result

    action_prop = result.get("properties", {}).get("action")
    if action_prop and action_prop.get("enum"):
        allowed = [a for a in action_prop["enum"] if a.lower() not in denied_set]
        if not allowed:
            logger.warning("Tool '%s': all actions filtered out from flat schema", tool_name)
        elif len(allowed) < len(action_prop["enum"]):
            action_prop["enum"] = allowed
            action_prop["description"] = f"Action to perform: {', '.join(allowed)}"
    return result


def _override_properties(
    properties: Dict[str, JSONSchema],
    tool_name: str,
    param_overrides: Dict[str, str],
    action_override: Optional[str],
) -> None:
    lowered = tool_name.lower()
    for name, prop in properties.items():
        override = param_overrides.get(f"{lowered}:{name.lower()}")
        if override:
            prop["description"] = override
        if name == "action" and action_override:
            prop["description"] = action_override


def apply_description_overrides(
    schema: JSONSchema,
    tool_name: str,
    *,
    action_override: Optional[str] = None,
    param_overrides: Optional[Dict[str, str]] = None,
) -> JSONSchema:
    """Apply ``action`` and ``tool:param`` description overrides.

    Works on every branch of a discriminated schema and on flat schemas.
    """
    params = param_overrides or {}
    prefix = f"{tool_name.lower()}:"
    if not action_override and not any(key.startswith(prefix) for key in params):
        return schema

    result = copy.deepcopy(schema)
    targets = result["oneOf"] if "oneOf" in result else [result]
    for branch in targets:
        if "properties" in branch:
            _override_properties(branch["properties"], tool_name, params, action_override)
    return result


def flatten_discriminated_union(schema: JSONSchema) -> JSONSchema:
    """Merge a ``oneOf`` schema into a single object schema.

    ``action`` becomes an enum of every branch's action. Other properties are
    merged (longest description wins); only properties required by every
    branch stay required, and branch-specific ones are annotated with the
    actions that use them.
    """
    branches = schema.get("oneOf")
    if not branches:
        return schema

    properties: Dict[str, JSONSchema] = {}
    usage: Dict[str, List[str]] = {}
    actions: List[str] = []
    action_description: Optional[str] = None
    required_everywhere: Optional[Set[str]] = None

    for branch in branches:
        action = _branch_action(branch)
        if action and action not in actions:
            actions.append(action)
        action_prop = branch.get("properties", {}).get("action", {})
        action_description = action_description or action_prop.get("description")

        branch_required = set(branch.get("required", []))
        branch_props = {k: v for k, v in branch.get("properties", {}).items() if k != "action"}

        for name, prop in branch_props.items():
            simplified = _simplify_property(prop)
            if name not in properties:
                properties[name] = simplified
                usage[name] = []
            else:
                existing = properties[name].get("description", "")
                incoming = simplified.get("description", "")
                if len(incoming) > len(existing):
                    properties[name]["description"] = incoming
            if action:
                usage[name].append(action)

        shared = {name for name in branch_props if name in branch_required}
        required_everywhere = shared if required_everywhere is None else required_everywhere & shared

    # A property absent from any branch cannot be required everywhere
    required_everywhere = {
        name for name in (required_everywhere or set()) if len(usage[name]) == len(branches)
    }

    for name, used_by in usage.items():
        if len(used_by) < len(branches) and used_by:
            description = properties[name].get("description", "")
            if "Required for" not in description:
                action_list = ", ".join(f"'{a}'" for a in used_by)
                suffix = f"Required for {action_list} action(s)."
                properties[name]["description"] = f"{description} {suffix}" if description else suffix

    flat: JSONSchema = {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "enum": actions,
                "description": action_description or f"Action to perform: {', '.join(actions)}",
            },
            **properties,
        },
        "required": ["action", *sorted(required_everywhere)],
    }
    if "$defs" in schema:
        flat["$defs"] = schema["$defs"]
    if "$schema" in schema:
        flat["$schema"] = schema["$schema"]
    return flat


def format_validation_error(
    exc: ValidationError,
    action_tags: Iterable[str] = (),
) -> List[Tuple[str, str]]:
    """Turn a pydantic ``ValidationError`` into ``(field_path, reason)`` pairs.

    For discriminated unions pydantic prefixes locations with the union tag;
    that prefix is removed so paths name the input field. An error with no
    location is reported as ``action`` when it concerns the discriminator and
    as ``input`` for whole-model checks.
    """
    tags = set(action_tags)
    issues: List[Tuple[str, str]] = []
    for error in exc.errors():
        loc = list(error.get("loc", ()))
        if loc and isinstance(loc[0], str) and loc[0] in tags:
            loc = loc[1:]
        if loc:
            path = ".".join(str(part) for part in loc)
        elif error.get("type", "").startswith("union_tag"):
            path = "action"
        else:
            path = "input"
        issues.append((path, error.get("msg", "Invalid value")))
    return issues
