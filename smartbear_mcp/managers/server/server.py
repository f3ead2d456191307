"""
Server facade tying the protocol runtime to independently configured backend clients.

Each client is handed callbacks owned by the facade; the facade derives a
process-unique tool name per (client prefix, tool title), builds the protocol
descriptor and wraps every executor in exactly one ``ErrorBoundary``.
"""

import inspect
import logging
import re
from typing import Any, Dict, List, Optional

from ..cache.cache_service import CacheService
from ..clients.client_types import ResourceCallback
from ..tools.dispatch import ErrorBoundary
from ..tools.exceptions import DuplicateToolError, ResourceReadError, ToolError
from ..tools.responses import to_json_text
from ..tools.schema import build_description, build_input_model, build_output_schema
from ..tools.tool_models import RegisteredTool, ToolCallback, ToolDefinition, ToolDescriptor
from .runtime import ProtocolRuntime

logger = logging.getLogger(__name__)


def slugify(title: str) -> str:
    """Lowercase a title and replace whitespace runs with underscores."""
    return re.sub(r"\s+", "_", title).lower()


def tool_name_for(prefix: str, title: str) -> str:
    return f"{prefix}_{slugify(title)}"


def resource_uri_template(prefix: str, name: str, path: str) -> str:
    return f"{prefix}://{name}/{path}"


def build_annotations(title: str, definition: ToolDefinition) -> Dict[str, Any]:
    """Protocol hints; unspecified flags default to a read-only, closed-world tool."""
    return {
        "title": title,
        "readOnlyHint": definition.read_only if definition.read_only is not None else True,
        "destructiveHint": definition.destructive if definition.destructive is not None else False,
        "idempotentHint": definition.idempotent if definition.idempotent is not None else True,
        "openWorldHint": definition.open_world if definition.open_world is not None else False,
    }


class SmartBearMcpServer:
    """Single entry point for all backend clients of one server process or session."""

    def __init__(
        self,
        runtime: ProtocolRuntime,
        reporter: Optional[Any] = None,
        cache: Optional[CacheService] = None,
    ):
        self.runtime = runtime
        self.reporter = reporter
        self.cache = cache if cache is not None else CacheService()
        self._tools: Dict[str, RegisteredTool] = {}
        self._resources: Dict[str, str] = {}

    def get_cache(self) -> CacheService:
        return self.cache

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools.keys())

    @property
    def resource_templates(self) -> List[str]:
        return list(self._resources.values())

    def get_tool(self, name: str) -> Optional[RegisteredTool]:
        return self._tools.get(name)

    async def add_client(self, client: Any) -> None:
        """Register every tool, resource and prompt a client exposes."""
        logger.info(f"Adding client {client.name} (prefix '{client.prefix}')")

        def register(definition: ToolDefinition, callback: ToolCallback) -> RegisteredTool:
            return self.register_tool(client, definition, callback)

        result = client.register_tools(register, self.elicit_input)
        if inspect.isawaitable(result):
            await result

        register_resources = getattr(client, "register_resources", None)
        if callable(register_resources):

            def register_resource(name: str, path: str, callback: ResourceCallback) -> str:
                return self.register_resource(client, name, path, callback)

            result = register_resources(register_resource)
            if inspect.isawaitable(result):
                await result

        register_prompts = getattr(client, "register_prompts", None)
        if callable(register_prompts):
            result = register_prompts(self.runtime.register_prompt)
            if inspect.isawaitable(result):
                await result

    def register_tool(self, client: Any, definition: ToolDefinition, callback: ToolCallback) -> RegisteredTool:
        """Build the descriptor and error boundary for one tool and hand them to the runtime.

        Raises:
            DuplicateToolError: if the derived name is already registered
        """
        name = tool_name_for(client.prefix, definition.title)
        if name in self._tools:
            raise DuplicateToolError(name)
        title = f"{client.name}: {definition.title}"

        input_model = build_input_model(definition)
        descriptor = ToolDescriptor(
            name=name,
            title=title,
            description=build_description(definition),
            input_schema=input_model.model_json_schema(),
            annotations=build_annotations(title, definition),
            output_schema=build_output_schema(definition),
        )
        boundary = ErrorBoundary(
            tool_name=name,
            tool_title=title,
            executor=callback,
            input_model=input_model,
            reporter=self.reporter,
            structured_output=definition.output_schema is not None,
        )

        self.runtime.register_tool(name, descriptor, boundary)
        registered = RegisteredTool(name=name, title=title, descriptor=descriptor)
        self._tools[name] = registered
        logger.debug(f"Registered tool: {name}")
        return registered

    def register_resource(self, client: Any, name: str, path: str, callback: ResourceCallback) -> str:
        """Register a client-scoped resource template; returns the URI template."""
        uri_template = resource_uri_template(client.prefix, name, path)
        reporter = self.reporter

        async def read(uri: str, variables: Dict[str, Any]) -> str:
            try:
                result = callback(uri, variables)
                if inspect.isawaitable(result):
                    result = await result
            except ToolError as e:
                raise ResourceReadError(e.message, uri) from e
            except Exception as e:
                logger.error(f"Unexpected error reading resource {uri}: {e}", exc_info=True)
                if reporter is not None:
                    try:
                        reporter.notify(e, {"resource": name, "url": uri})
                    except Exception as reporter_error:
                        logger.error(f"Error reporter failed for resource {uri}: {reporter_error}")
                raise ResourceReadError(f"Failed to read resource {uri}: {e}", uri) from e
            return result if isinstance(result, str) else to_json_text(result)

        self.runtime.register_resource(name, uri_template, {"client": client.name}, read)
        self._resources[f"{client.prefix}:{name}"] = uri_template
        logger.debug(f"Registered resource template: {uri_template}")
        return uri_template

    async def elicit_input(self, params: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Ask the calling agent/user for more structured input mid-execution."""
        return await self.runtime.elicit_input(params, options)
