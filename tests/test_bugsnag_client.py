"""Tests for the BugSnag client, its tools and its event resource."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import FakeRuntime
from smartbear_mcp.clients.bugsnag.client import BugsnagClient, get_endpoint
from smartbear_mcp.clients.bugsnag.tools import ListProjectsTool, discover_tools, parse_event_link
from smartbear_mcp.managers.cache.cache_service import CacheService
from smartbear_mcp.managers.http.api_client import ApiClient
from smartbear_mcp.managers.server.server import SmartBearMcpServer
from smartbear_mcp.managers.tools.exceptions import ResourceReadError, ToolError
from smartbear_mcp.managers.tools.tool_registry import DiscoveryConfig

ORGS = [{"id": "org1", "slug": "acme-org"}]
PROJECTS = [
    {"id": "p1", "slug": "web", "api_key": "key-web"},
    {"id": "p2", "slug": "ios", "api_key": "key-ios"},
]


class FakeBugsnagApi:
    """Routes requests to canned BugSnag API responses and records them."""

    def __init__(self):
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/user/organizations":
            return httpx.Response(200, json=ORGS)
        if path == "/organizations/org1/projects":
            return httpx.Response(200, json=PROJECTS)
        if path == "/projects/p1/errors/e1" and request.method == "GET":
            return httpx.Response(200, json={"id": "e1", "error_class": "TypeError"})
        if path == "/projects/p1/errors/e1" and request.method == "PATCH":
            return httpx.Response(200, json={})
        if path == "/projects/p1/errors/e1/events":
            return httpx.Response(200, json=[{"id": "ev1"}])
        if path == "/projects/p2/events/ev9":
            return httpx.Response(200, json={"id": "ev9", "project": "ios"})
        return httpx.Response(404, text="Not found")

    def patch_bodies(self):
        return [json.loads(r.content) for r in self.requests if r.method == "PATCH"]


@pytest.fixture
def api():
    return FakeBugsnagApi()


@pytest.fixture
def make_client(api):
    def _make(project_api_key=None):
        return BugsnagClient(
            auth_token="token-1",
            cache=CacheService(),
            project_api_key=project_api_key,
            api=ApiClient("https://api.bugsnag.com", auth_token="token-1", auth_scheme="token",
                          transport=httpx.MockTransport(api)),
        )

    return _make


@pytest.fixture
def runtime():
    return FakeRuntime(elicit_response={"action": "accept", "content": {"severity": "warning"}})


@pytest.fixture
def server(runtime, reporter):
    return SmartBearMcpServer(runtime, reporter=reporter)


async def added(server, client):
    await client.initialize()
    await server.add_client(client)
    return client


def text_of(result):
    return result["content"][0]["text"]


class TestEndpoints:
    def test_default_domain(self):
        assert get_endpoint("api") == "https://api.bugsnag.com"
        assert get_endpoint("app", "abc123") == "https://app.bugsnag.com"

    def test_hub_domain_from_project_key(self):
        assert get_endpoint("api", "00000abc") == "https://api.bugsnag.smartbear.com"

    def test_known_endpoint_is_normalized(self):
        assert get_endpoint("app", None, "http://api.bugsnag.smartbear.com/") == "https://app.bugsnag.smartbear.com"
        assert get_endpoint("app", None, "https://api.bugsnag.com") == "https://app.bugsnag.com"

    def test_custom_endpoint_is_kept(self):
        assert get_endpoint("api", "00000abc", "https://bugsnag.internal.example/") == "https://bugsnag.internal.example"

    def test_client_headers(self):
        client = BugsnagClient(auth_token="t", cache=CacheService(), user_agent="smartbear-mcp/0.1.0")
        headers = client.api.build_headers()

        assert client.api.base_url == "https://api.bugsnag.com"
        assert headers["Authorization"] == "token t"
        assert headers["X-Version"] == "2"
        assert headers["X-Bugsnag-API"] == "true"


class TestFromSettings:
    def test_requires_auth_token(self):
        settings = SimpleNamespace(bugsnag_auth_token="", bugsnag_project_api_key="", bugsnag_endpoint="",
                                   user_agent="ua")
        assert BugsnagClient.from_settings(settings, CacheService()) is None

    def test_builds_client(self):
        settings = SimpleNamespace(bugsnag_auth_token="t", bugsnag_project_api_key="00000abc",
                                   bugsnag_endpoint="", user_agent="ua")
        client = BugsnagClient.from_settings(settings, CacheService())

        assert client.project_api_key == "00000abc"
        assert client.app_endpoint == "https://app.bugsnag.smartbear.com"


class TestDiscovery:
    def test_without_project_key(self):
        tools = discover_tools(DiscoveryConfig())
        assert [tool.name for tool in tools] == ["list_projects", "get_error", "get_event_details", "update_error"]
        project_id = tools[1].definition.parameters[0]
        assert project_id.name == "projectId" and project_id.required

    def test_with_project_key(self):
        tools = discover_tools(DiscoveryConfig(include_list_projects=False, project_id_required=False))
        assert "list_projects" not in [tool.name for tool in tools]
        assert not tools[0].definition.parameters[0].required

    def test_exclusions_and_custom_tools(self):
        custom = SimpleNamespace(name="custom", definition=None)
        tools = discover_tools(DiscoveryConfig(exclude_tools=["update_error"], custom_tools=[custom]))
        names = [tool.name for tool in tools]
        assert "update_error" not in names
        assert names[-1] == "custom"

    @pytest.mark.asyncio
    async def test_registered_names(self, server, runtime, make_client):
        await added(server, make_client())
        assert sorted(runtime.tools) == [
            "bugsnag_get_error",
            "bugsnag_get_event_details",
            "bugsnag_list_projects",
            "bugsnag_update_error",
        ]
        descriptor, _ = runtime.tools["bugsnag_update_error"]
        assert descriptor.annotations["destructiveHint"] is True
        assert descriptor.annotations["readOnlyHint"] is False
        assert "projectId" in descriptor.input_schema["required"]

    @pytest.mark.asyncio
    async def test_project_key_hides_list_projects(self, server, runtime, make_client):
        await added(server, make_client("key-web"))
        assert "bugsnag_list_projects" not in runtime.tools
        descriptor, _ = runtime.tools["bugsnag_get_error"]
        assert "projectId" not in descriptor.input_schema.get("required", [])

    @pytest.mark.asyncio
    async def test_unknown_project_key_is_dropped(self, server, runtime, make_client):
        client = await added(server, make_client("key-unknown"))
        assert client.project_api_key is None
        assert "bugsnag_list_projects" in runtime.tools


class TestTools:
    @pytest.mark.asyncio
    async def test_list_projects_paginates(self, server, runtime, make_client):
        await added(server, make_client())
        result = await runtime.call("bugsnag_list_projects", {"page_size": 1, "page": 2})
        assert json.loads(text_of(result)) == {"data": [PROJECTS[1]], "count": 1}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "arguments, parameter",
        [
            ({"page": 0}, "page"),
            ({"page": -1, "page_size": 10}, "page"),
            ({"page_size": 101}, "page_size"),
            ({"page_size": -5}, "page_size"),
        ],
    )
    async def test_list_projects_rejects_out_of_range_pages(
        self, server, runtime, make_client, monkeypatch, arguments, parameter
    ):
        execute = AsyncMock()
        monkeypatch.setattr(ListProjectsTool, "execute", execute)
        await added(server, make_client())

        result = await runtime.call("bugsnag_list_projects", arguments)

        assert result["isError"] is True
        assert f"parameter '{parameter}'" in text_of(result)
        execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_list_projects_schema_bounds_pages(self, server, runtime, make_client):
        await added(server, make_client())
        descriptor, _ = runtime.tools["bugsnag_list_projects"]

        properties = descriptor.input_schema["properties"]
        page_size = next(s for s in properties["page_size"]["anyOf"] if s.get("type") == "integer")
        page = next(s for s in properties["page"]["anyOf"] if s.get("type") == "integer")
        assert (page_size["minimum"], page_size["maximum"]) == (1, 100)
        assert page["minimum"] == 1

    @pytest.mark.asyncio
    async def test_get_error(self, server, runtime, make_client):
        await added(server, make_client())
        result = await runtime.call("bugsnag_get_error", {"projectId": "p1", "errorId": "e1"})

        data = json.loads(text_of(result))
        assert data["error_details"]["error_class"] == "TypeError"
        assert data["latest_event"] == {"id": "ev1"}
        assert data["url"] == "https://app.bugsnag.com/acme-org/web/errors/e1"

    @pytest.mark.asyncio
    async def test_get_error_uses_configured_project(self, server, runtime, make_client):
        await added(server, make_client("key-web"))
        result = await runtime.call("bugsnag_get_error", {"errorId": "e1"})
        assert "isError" not in result

    @pytest.mark.asyncio
    async def test_unknown_project(self, server, runtime, make_client, reporter):
        await added(server, make_client())
        result = await runtime.call("bugsnag_get_error", {"projectId": "nope", "errorId": "e1"})

        assert result["isError"] is True
        assert text_of(result) == "Project with ID nope not found."
        reporter.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_error_is_user_facing(self, server, runtime, make_client, reporter):
        await added(server, make_client())
        result = await runtime.call("bugsnag_get_error", {"projectId": "p1", "errorId": "missing"})

        assert result["isError"] is True
        assert text_of(result).startswith("Request failed with status 404")
        reporter.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_event_details(self, server, runtime, make_client):
        await added(server, make_client())
        link = "https://app.bugsnag.com/acme-org/ios/errors/e5?event_id=ev9"
        result = await runtime.call("bugsnag_get_event_details", {"link": link})
        assert json.loads(text_of(result)) == {"id": "ev9", "project": "ios"}

    @pytest.mark.asyncio
    async def test_get_event_details_unknown_slug(self, server, runtime, make_client):
        await added(server, make_client())
        link = "https://app.bugsnag.com/acme-org/android/errors/e5?event_id=ev9"
        result = await runtime.call("bugsnag_get_event_details", {"link": link})
        assert text_of(result) == "Project with the specified slug not found."

    @pytest.mark.asyncio
    async def test_update_error(self, server, runtime, make_client, api):
        await added(server, make_client())
        result = await runtime.call("bugsnag_update_error", {"projectId": "p1", "errorId": "e1", "operation": "fix"})

        assert json.loads(text_of(result)) == {"success": True}
        assert api.patch_bodies() == [{"operation": "fix"}]
        assert runtime.elicit_calls == []

    @pytest.mark.asyncio
    async def test_override_severity_elicits(self, server, runtime, make_client, api):
        await added(server, make_client())
        result = await runtime.call(
            "bugsnag_update_error", {"projectId": "p1", "errorId": "e1", "operation": "override_severity"}
        )

        assert json.loads(text_of(result)) == {"success": True}
        assert api.patch_bodies() == [{"operation": "override_severity", "severity": "warning"}]
        params, _ = runtime.elicit_calls[0]
        assert params["requestedSchema"]["properties"]["severity"]["enum"] == ["info", "warning", "error"]
        assert params["requestedSchema"]["required"] == ["severity"]

    @pytest.mark.asyncio
    async def test_override_severity_declined(self, server, runtime, make_client, api):
        runtime.elicit_response = {"action": "decline"}
        await added(server, make_client())
        result = await runtime.call(
            "bugsnag_update_error", {"projectId": "p1", "errorId": "e1", "operation": "override_severity"}
        )

        assert result["isError"] is True
        assert api.patch_bodies() == []

    @pytest.mark.asyncio
    async def test_invalid_operation(self, server, runtime, make_client, api):
        await added(server, make_client())
        result = await runtime.call("bugsnag_update_error", {"projectId": "p1", "errorId": "e1", "operation": "delete"})

        assert result["isError"] is True
        assert "operation" in text_of(result)
        assert api.patch_bodies() == []


class TestEventResource:
    @pytest.mark.asyncio
    async def test_registered_template(self, server, make_client):
        await added(server, make_client())
        assert server.resource_templates == ["bugsnag://event/{id}"]

    @pytest.mark.asyncio
    async def test_searches_every_project(self, server, runtime, make_client):
        await added(server, make_client())
        _, _, read = runtime.resources["bugsnag://event/{id}"]
        assert json.loads(await read("bugsnag://event/ev9", {"id": "ev9"}))["id"] == "ev9"

    @pytest.mark.asyncio
    async def test_missing_event(self, server, runtime, make_client):
        await added(server, make_client())
        _, _, read = runtime.resources["bugsnag://event/{id}"]
        with pytest.raises(ResourceReadError, match="Event with ID ev0 not found."):
            await read("bugsnag://event/ev0", {"id": "ev0"})


class TestCaching:
    @pytest.mark.asyncio
    async def test_projects_are_fetched_once(self, make_client, api):
        client = make_client()
        await client.get_projects()
        await client.get_projects()
        assert [r.url.path for r in api.requests] == ["/user/organizations", "/organizations/org1/projects"]

    @pytest.mark.asyncio
    async def test_no_organizations(self, make_client, api):
        client = BugsnagClient(
            auth_token="t",
            cache=CacheService(),
            api=ApiClient("https://api.bugsnag.com", transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[]))),
        )
        with pytest.raises(ToolError, match="No organizations found for the current user."):
            await client.get_organization()


class TestParseEventLink:
    def test_parse(self):
        assert parse_event_link("https://app.bugsnag.com/org/web/errors/e1?event_id=ev1") == ("web", "ev1")

    def test_missing_event_id(self):
        with pytest.raises(ToolError, match="Both projectSlug and eventId must be present in the link"):
            parse_event_link("https://app.bugsnag.com/org/web/errors/e1")
