"""
Registry aggregation for the published tool list.

``RegistryManager`` merges the always-on core tools with every enabled
entity group, applies policy filters once at construction, and runs the
schema pipeline (denied-action filtering, description overrides, optional
flattening) each time tools are listed.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from gitlab_mcp.config import ServerConfig
from gitlab_mcp.core.availability import ToolAvailability
from gitlab_mcp.core.errors import ToolNotFoundError
from gitlab_mcp.core.schema import (
    apply_description_overrides,
    filter_denied_actions,
    flatten_discriminated_union,
)
from gitlab_mcp.core.session import GitLabSession
from gitlab_mcp.tools.dispatch import ResourceTool, ToolDefinition
from gitlab_mcp.tools.entities import CORE_GROUP, ENTITY_GROUPS

logger = logging.getLogger(__name__)


class RegistryManager:
    """Aggregate entity tool groups under the active configuration.

    Args:
        config: Server configuration (feature gates, policy, descriptions)
        groups: ``group -> tools`` mapping, defaults to every entity group
    """

    def __init__(
        self,
        config: ServerConfig,
        groups: Optional[Mapping[str, List[ResourceTool]]] = None,
    ):
        self.config = config
        self._groups = dict(groups if groups is not None else ENTITY_GROUPS)
        self._tools: Dict[str, ResourceTool] = {}
        self._build()

    def _build(self) -> None:
        for group, tools in self._groups.items():
            if group != CORE_GROUP and not self.config.is_entity_enabled(group):
                logger.debug("Entity group '%s' disabled", group)
                continue
            for tool in tools:
                if tool.name in self._tools:
                    logger.warning("Duplicate tool '%s' in group '%s' ignored", tool.name, group)
                    continue
                if self._is_filtered(tool):
                    continue
                self._tools[tool.name] = tool
        logger.info("Registry built with %d tools", len(self._tools))

    def _is_filtered(self, tool: ResourceTool) -> bool:
        policy = self.config.policy
        if policy.read_only and not (tool.read_only or tool.read_only_actions):
            logger.debug("Tool '%s' hidden in read-only mode", tool.name)
            return True
        if policy.denied_tools_regex is not None and policy.denied_tools_regex.search(tool.name):
            logger.debug("Tool '%s' denied by regex", tool.name)
            return True
        if all(policy.is_action_denied(tool.name, action) for action in tool.actions):
            logger.debug("Tool '%s' has every action denied", tool.name)
            return True
        return False

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def get_tool(self, name: str) -> Optional[ResourceTool]:
        return self._tools.get(name)

    def _published_definition(self, tool: ResourceTool) -> ToolDefinition:
        definition = tool.definition()
        policy = self.config.policy
        descriptions = self.config.descriptions

        schema = definition.input_schema
        denied = policy.denied_actions.get(tool.name.lower(), frozenset())
        if policy.read_only and not tool.read_only:
            denied = denied | {a for a in tool.actions if a not in tool.read_only_actions}
        schema = filter_denied_actions(schema, tool.name, denied)
        schema = apply_description_overrides(
            schema,
            tool.name,
            action_override=descriptions.actions.get(tool.name.lower()),
            param_overrides=descriptions.params,
        )
        if policy.effective_schema_mode() == "flat":
            schema = flatten_discriminated_union(schema)

        definition.input_schema = schema
        description = descriptions.tools.get(tool.name.lower())
        if description:
            definition.description = description
        return definition

    def list_tools(self, availability: Optional[ToolAvailability] = None) -> List[ToolDefinition]:
        """Definitions of every registered tool the instance supports."""
        definitions = []
        for name, tool in self._tools.items():
            if availability is not None and not availability.is_available(name):
                logger.debug("Tool '%s' unavailable on this instance", name)
                continue
            definitions.append(self._published_definition(tool))
        return definitions

    async def execute_tool(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]],
        session: GitLabSession,
    ) -> Any:
        """Run one tool call under the configured policy.

        Raises:
            ToolNotFoundError: If ``name`` is not registered
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name, self.tool_names)
        return await tool.handler(session, arguments, policy=self.config.policy)
