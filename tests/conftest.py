"""Shared fixtures for the test suite."""

from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest

from smartbear_mcp.managers.cache.cache_service import CacheService
from smartbear_mcp.managers.server.server import SmartBearMcpServer
from smartbear_mcp.managers.tools.tool_models import ParameterDefinition, ToolDefinition


class FakeRuntime:
    """In-memory protocol runtime recording every registration."""

    def __init__(self, elicit_response: Optional[Dict[str, Any]] = None):
        self.tools: Dict[str, Any] = {}
        self.resources: Dict[str, Any] = {}
        self.prompts: Dict[str, Any] = {}
        self.elicit_calls: List[Any] = []
        self.elicit_response = elicit_response or {"action": "accept", "content": {}}

    def register_tool(self, name, descriptor, handler):
        self.tools[name] = (descriptor, handler)

    def register_resource(self, name, uri_template, metadata, handler):
        self.resources[uri_template] = (name, metadata, handler)

    def register_prompt(self, name, config, handler):
        self.prompts[name] = (config, handler)

    async def elicit_input(self, params, options=None):
        self.elicit_calls.append((params, options))
        return self.elicit_response

    async def call(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        _, handler = self.tools[name]
        return await handler(arguments or {}, None)


class FakeClient:
    """Backend client registering a fixed set of tools."""

    def __init__(self, name="Acme", prefix="acme", tools=None, resources=None):
        self.name = name
        self.prefix = prefix
        self._tools = tools or []
        self._resources = resources or []
        self.get_input = None
        self.registered = []

    def register_tools(self, register, get_input):
        self.get_input = get_input
        for definition, callback in self._tools:
            self.registered.append(register(definition, callback))


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def reporter():
    return Mock()


@pytest.fixture
def server(runtime, reporter):
    return SmartBearMcpServer(runtime, reporter=reporter, cache=CacheService())


@pytest.fixture
def list_things_definition():
    return ToolDefinition(
        title="List Things",
        summary="List things in a workspace.",
        parameters=[
            ParameterDefinition(
                name="workspaceId",
                type=str,
                required=True,
                description="ID of the workspace",
                examples=["ws-1", "ws-2"],
                constraints=["Must be a valid workspace ID"],
            ),
            ParameterDefinition(name="limit", type=int, description="Maximum number of things"),
        ],
    )
