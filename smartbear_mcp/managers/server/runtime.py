"""
Protocol runtime used by the server facade.

``ProtocolRuntime`` is the narrow surface the facade needs from an MCP
implementation. ``FastMCPRuntime`` provides it on top of fastmcp: tools and
resource templates are registered as fastmcp components carrying our
precomputed schema and handler.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError as FastMCPToolError
from fastmcp.prompts import Prompt
from fastmcp.resources import Resource, ResourceTemplate, TextResource
from fastmcp.server.dependencies import get_context
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult as FastMCPToolResult
from mcp.types import TextContent, ToolAnnotations
from pydantic import Field

from ..tools.tool_models import ToolDescriptor, ToolResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any], Any], Awaitable[ToolResult]]
ResourceHandler = Callable[[str, Dict[str, Any]], Awaitable[str]]


class ProtocolRuntime(Protocol):
    """Registration and elicitation primitives of the host protocol runtime."""

    def register_tool(self, name: str, descriptor: ToolDescriptor, handler: ToolHandler) -> Any: ...

    def register_resource(
        self, name: str, uri_template: str, metadata: Dict[str, Any], handler: ResourceHandler
    ) -> Any: ...

    def register_prompt(self, name: str, config: Dict[str, Any], handler: Callable[..., Any]) -> Any: ...

    async def elicit_input(
        self, params: Dict[str, Any], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]: ...


def _current_context() -> Any:
    try:
        return get_context()
    except RuntimeError:
        return None


class HandlerTool(Tool):
    """fastmcp tool whose arguments schema and execution are supplied externally."""

    handler: Callable[..., Any] = Field(exclude=True)

    async def run(self, arguments: Dict[str, Any]) -> FastMCPToolResult:
        result = await self.handler(arguments, _current_context())
        blocks = [
            TextContent(type="text", text=item.get("text", ""))
            for item in result.get("content", [])
            if item.get("type") == "text"
        ]
        if result.get("isError"):
            # fastmcp reports ToolError messages to the client as isError results
            raise FastMCPToolError("\n".join(block.text for block in blocks))
        return FastMCPToolResult(content=blocks, structured_content=result.get("structuredContent"))


class HandlerResourceTemplate(ResourceTemplate):
    """fastmcp resource template that reads through an external handler."""

    handler: Callable[..., Any] = Field(exclude=True)

    async def create_resource(self, uri: str, params: Dict[str, Any], context: Any = None) -> Resource:
        text = await self.handler(uri, params)
        return TextResource(uri=uri, name=self.name, text=text, mime_type=self.mime_type)


class FastMCPRuntime:
    """ProtocolRuntime backed by a fastmcp server."""

    def __init__(self, mcp: FastMCP):
        self.mcp = mcp

    def register_tool(self, name: str, descriptor: ToolDescriptor, handler: ToolHandler) -> Tool:
        tool = HandlerTool(
            name=name,
            title=descriptor.title,
            description=descriptor.description,
            parameters=descriptor.input_schema,
            output_schema=descriptor.output_schema,
            annotations=ToolAnnotations(**descriptor.annotations),
            handler=handler,
        )
        return self.mcp.add_tool(tool)

    def register_resource(
        self, name: str, uri_template: str, metadata: Dict[str, Any], handler: ResourceHandler
    ) -> ResourceTemplate:
        template = HandlerResourceTemplate(
            uri_template=uri_template,
            name=name,
            description=metadata.get("description"),
            mime_type=metadata.get("mime_type", "application/json"),
            parameters={},
            handler=handler,
        )
        return self.mcp.add_template(template)

    def register_prompt(self, name: str, config: Dict[str, Any], handler: Callable[..., Any]) -> Prompt:
        prompt = Prompt.from_function(handler, name=name, description=config.get("description"))
        return self.mcp.add_prompt(prompt)

    async def elicit_input(
        self, params: Dict[str, Any], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Forward an elicitation request through the session of the active request."""
        ctx = get_context()
        result = await ctx.session.elicit(
            message=params.get("message", ""),
            requestedSchema=params.get("requestedSchema", {"type": "object", "properties": {}}),
            related_request_id=ctx.request_id,
        )
        return result.model_dump(exclude_none=True)
