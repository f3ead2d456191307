"""End-to-end tests of the fastmcp runtime adapter through an in-memory client."""

import json
from unittest.mock import AsyncMock, Mock

import pytest
from fastmcp import Client, FastMCP
from pydantic import BaseModel

from conftest import FakeClient
from smartbear_mcp.managers.server.runtime import FastMCPRuntime
from smartbear_mcp.managers.server.server import SmartBearMcpServer
from smartbear_mcp.managers.tools.exceptions import ToolError
from smartbear_mcp.managers.tools.tool_models import ToolDefinition


class Count(BaseModel):
    count: int


class WidgetClient(FakeClient):
    def register_resources(self, register):
        register("widget", "{id}", lambda uri, variables: {"id": variables["id"], "uri": uri})


@pytest.fixture
def mcp():
    return FastMCP("test-server")


@pytest.fixture
def facade(mcp, reporter):
    return SmartBearMcpServer(FastMCPRuntime(mcp), reporter=reporter)


@pytest.fixture
def callback():
    async def list_things(args, extra):
        if args["workspaceId"] == "missing":
            raise ToolError("Workspace missing not found.")
        if args["workspaceId"] == "broken":
            raise RuntimeError("backend exploded")
        return {"workspace": args["workspaceId"], "limit": args.get("limit")}

    return list_things


class TestTools:
    @pytest.mark.asyncio
    async def test_list_tools(self, mcp, facade, list_things_definition, callback):
        await facade.add_client(FakeClient(tools=[(list_things_definition, callback)]))

        async with Client(mcp) as client:
            tools = await client.list_tools()

        assert [tool.name for tool in tools] == ["acme_list_things"]
        tool = tools[0]
        assert tool.title == "Acme: List Things"
        assert tool.description.startswith("List things in a workspace.")
        assert tool.inputSchema["required"] == ["workspaceId"]
        assert tool.annotations.readOnlyHint is True

    @pytest.mark.asyncio
    async def test_call_tool(self, mcp, facade, list_things_definition, callback):
        await facade.add_client(FakeClient(tools=[(list_things_definition, callback)]))

        async with Client(mcp) as client:
            result = await client.call_tool_mcp("acme_list_things", {"workspaceId": "ws-1", "limit": 5})

        assert result.isError is False
        assert json.loads(result.content[0].text) == {"workspace": "ws-1", "limit": 5}

    @pytest.mark.asyncio
    async def test_errors_become_error_results(self, mcp, facade, list_things_definition, callback, reporter):
        await facade.add_client(FakeClient(tools=[(list_things_definition, callback)]))

        async with Client(mcp) as client:
            domain = await client.call_tool_mcp("acme_list_things", {"workspaceId": "missing"})
            unexpected = await client.call_tool_mcp("acme_list_things", {"workspaceId": "broken"})
            invalid = await client.call_tool_mcp("acme_list_things", {})

        assert domain.isError is True
        assert "Workspace missing not found." in domain.content[0].text
        assert unexpected.isError is True
        assert "backend exploded" in unexpected.content[0].text
        assert invalid.isError is True
        assert "workspaceId" in invalid.content[0].text
        assert reporter.notify.call_count == 1

    @pytest.mark.asyncio
    async def test_output_schema_tool_returns_structured_content(self, mcp, facade):
        definition = ToolDefinition(title="Count Things", summary="Count things.", output_schema=Count)
        await facade.add_client(FakeClient(tools=[(definition, AsyncMock(return_value={"count": 3}))]))

        async with Client(mcp) as client:
            tools = await client.list_tools()
            result = await client.call_tool_mcp("acme_count_things", {})

        assert tools[0].outputSchema["properties"]["count"]["type"] == "integer"
        assert result.isError is False
        assert result.structuredContent == {"count": 3}
        assert json.loads(result.content[0].text) == {"count": 3}


class TestResources:
    @pytest.mark.asyncio
    async def test_read_resource_template(self, mcp, facade):
        await facade.add_client(WidgetClient())

        async with Client(mcp) as client:
            templates = await client.list_resource_templates()
            contents = await client.read_resource("acme://widget/42")

        assert [template.uriTemplate for template in templates] == ["acme://widget/{id}"]
        assert json.loads(contents[0].text) == {"id": "42", "uri": "acme://widget/42"}


class TestPrompts:
    @pytest.mark.asyncio
    async def test_register_prompt(self, mcp):
        runtime = FastMCPRuntime(mcp)

        def triage(error_id: str) -> str:
            return f"Triage error {error_id}"

        runtime.register_prompt("triage", {"description": "Triage an error"}, triage)

        async with Client(mcp) as client:
            prompts = await client.list_prompts()

        assert [prompt.name for prompt in prompts] == ["triage"]
        assert prompts[0].description == "Triage an error"


class TestElicitation:
    @pytest.mark.asyncio
    async def test_elicit_forwards_to_session(self, monkeypatch):
        elicit_result = Mock()
        elicit_result.model_dump.return_value = {"action": "accept", "content": {"severity": "info"}}
        session = Mock(elicit=AsyncMock(return_value=elicit_result))
        ctx = Mock(session=session, request_id="req-1")
        monkeypatch.setattr("smartbear_mcp.managers.server.runtime.get_context", lambda: ctx)

        params = {"message": "Severity?", "requestedSchema": {"type": "object", "properties": {}}}
        response = await FastMCPRuntime(FastMCP("test-server")).elicit_input(params)

        assert response == {"action": "accept", "content": {"severity": "info"}}
        session.elicit.assert_awaited_once_with(
            message="Severity?",
            requestedSchema={"type": "object", "properties": {}},
            related_request_id="req-1",
        )
