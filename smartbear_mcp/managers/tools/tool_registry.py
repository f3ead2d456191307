"""Registry for tools owned by a single backend client."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from .exceptions import DuplicateToolError
from .tool_models import RegisteredTool, ToolCallback, ToolDefinition, ToolExecutionContext

logger = logging.getLogger(__name__)


@runtime_checkable
class RegistryTool(Protocol):
    """Shape of a tool managed by a ToolRegistry."""

    name: str
    definition: ToolDefinition

    async def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> Any: ...


@dataclass(eq=False)
class DiscoveryConfig:
    """Inputs that decide which tools a client exposes."""

    include_list_projects: bool = True
    project_id_required: bool = True
    exclude_tools: List[str] = field(default_factory=list)
    custom_tools: List[RegistryTool] = field(default_factory=list)

    def copy(self) -> "DiscoveryConfig":
        return DiscoveryConfig(
            include_list_projects=self.include_list_projects,
            project_id_required=self.project_id_required,
            exclude_tools=list(self.exclude_tools),
            custom_tools=list(self.custom_tools),
        )


def config_equals(first: Optional[DiscoveryConfig], second: Optional[DiscoveryConfig]) -> bool:
    """Heuristic equality used for discovery caching.

    Custom tool lists are compared by length only.
    """
    if first is None and second is None:
        return True
    if first is None or second is None:
        return False
    return (
        first.include_list_projects == second.include_list_projects
        and first.project_id_required == second.project_id_required
        and sorted(first.exclude_tools) == sorted(second.exclude_tools)
        and len(first.custom_tools) == len(second.custom_tools)
    )


DiscoverFunction = Callable[[Optional[DiscoveryConfig]], List[RegistryTool]]
RegisterFunction = Callable[[ToolDefinition, ToolCallback], RegisteredTool]


class ToolRegistry:
    """Discovers, caches and registers the tools of one client.

    Lifecycle: empty -> discovered -> registered; ``clear()`` returns to
    empty and drops the discovery cache.
    """

    def __init__(self, discover: DiscoverFunction):
        self._discover = discover
        self._tools: Dict[str, RegistryTool] = {}
        self._discovered_tools: Optional[List[RegistryTool]] = None
        self._last_discovery_config: Optional[DiscoveryConfig] = None

    def register_tool(self, tool: RegistryTool) -> None:
        """Add a tool; duplicate names are rejected."""
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool
        logger.debug(f"Added tool to registry: {tool.name}")

    def get_tool(self, name: str) -> Optional[RegistryTool]:
        return self._tools.get(name)

    def get_all_tools(self) -> List[RegistryTool]:
        return list(self._tools.values())

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get_tool_count(self) -> int:
        return len(self._tools)

    def discover_tools(self, config: Optional[DiscoveryConfig] = None) -> List[RegistryTool]:
        """Return the discovered tools, reusing the cached list when the config is unchanged."""
        if self._discovered_tools is not None and config_equals(self._last_discovery_config, config):
            return self._discovered_tools

        self._discovered_tools = self._discover(config)
        self._last_discovery_config = config.copy() if config is not None else None
        logger.debug(f"Discovered {len(self._discovered_tools)} tools")
        return self._discovered_tools

    def register_all_tools(
        self,
        register: RegisterFunction,
        context: ToolExecutionContext,
        config: Optional[DiscoveryConfig] = None,
    ) -> List[RegisteredTool]:
        """Re-discover and hand every tool to the facade's register callback."""
        self.clear()
        registered = []
        for tool in self.discover_tools(config):
            self.register_tool(tool)
            registered.append(register(tool.definition, self._bind(tool, context)))
        logger.info(f"Registered {len(registered)} tools")
        return registered

    @staticmethod
    def _bind(tool: RegistryTool, context: ToolExecutionContext) -> ToolCallback:
        async def execute(args: Dict[str, Any], extra: Any = None) -> Any:
            return await tool.execute(args, context)

        return execute

    def clear(self) -> None:
        """Clear all tools and invalidate the discovery cache."""
        self._tools.clear()
        self._discovered_tools = None
        self._last_discovery_config = None
        logger.debug("Cleared tool registry")
