"""
BugSnag backend client.

Wraps the BugSnag data access API behind the facade's client contract:
organization/project lookups are cached, a configured project API key
scopes every tool to that project, and the tools themselves live in
``tools.py``.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ...managers.cache.cache_service import CacheService
from ...managers.clients.client_types import RegisterResourceFunction, RegisterToolFunction
from ...managers.http.api_client import ApiClient
from ...managers.tools.exceptions import ToolError
from ...managers.tools.responses import to_json_text
from ...managers.tools.tool_models import GetInputFunction, ToolExecutionContext
from ...managers.tools.tool_registry import DiscoveryConfig, ToolRegistry
from .tools import discover_tools

logger = logging.getLogger(__name__)

HUB_PREFIX = "00000"
DEFAULT_DOMAIN = "bugsnag.com"
HUB_DOMAIN = "bugsnag.smartbear.com"

CACHE_KEY_ORGANIZATION = "bugsnag_org"
CACHE_KEY_PROJECTS = "bugsnag_projects"
CACHE_KEY_CURRENT_PROJECT = "bugsnag_current_project"


def get_endpoint(subdomain: str, api_key: Optional[str] = None, endpoint: Optional[str] = None) -> str:
    """Resolve the base URL of a BugSnag service ("api" or "app").

    Known BugSnag hosts are normalized to ``https://<subdomain>.<domain>``;
    any other explicit endpoint is used as given.
    """
    if not endpoint:
        domain = HUB_DOMAIN if api_key and api_key.startswith(HUB_PREFIX) else DEFAULT_DOMAIN
        return f"https://{subdomain}.{domain}"

    hostname = urlparse(endpoint).hostname or ""
    if hostname.endswith(HUB_DOMAIN):
        return f"https://{subdomain}.{HUB_DOMAIN}"
    if hostname.endswith(DEFAULT_DOMAIN):
        return f"https://{subdomain}.{DEFAULT_DOMAIN}"
    return endpoint.rstrip("/")


class BugsnagClient:
    """Error monitoring client exposing BugSnag projects, errors and events."""

    name = "BugSnag"
    prefix = "bugsnag"

    def __init__(
        self,
        auth_token: str,
        cache: CacheService,
        project_api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        user_agent: Optional[str] = None,
        api: Optional[ApiClient] = None,
    ):
        self.cache = cache
        self.project_api_key = project_api_key or None
        self.app_endpoint = get_endpoint("app", self.project_api_key, endpoint)
        self.api = api or ApiClient(
            base_url=get_endpoint("api", self.project_api_key, endpoint),
            auth_token=auth_token,
            auth_scheme="token",
            headers={"X-Version": "2", "X-Bugsnag-API": "true"},
            user_agent=user_agent,
        )
        self.tool_registry = ToolRegistry(discover_tools)

    @classmethod
    def from_settings(cls, settings: Any, cache: CacheService) -> Optional["BugsnagClient"]:
        """Build the client from settings; None when no auth token is configured."""
        if not settings.bugsnag_auth_token:
            return None
        return cls(
            auth_token=settings.bugsnag_auth_token,
            cache=cache,
            project_api_key=settings.bugsnag_project_api_key,
            endpoint=settings.bugsnag_endpoint,
            user_agent=settings.user_agent,
        )

    async def initialize(self) -> None:
        """Warm the organization and project cache.

        A project API key that matches no project is dropped so the tools
        work across every project instead.
        """
        try:
            await self.get_organization()
            await self.get_projects()
        except Exception as e:
            logger.error(f"Unable to load BugSnag organization and projects: {e}")
            return

        if self.project_api_key:
            try:
                await self.get_current_project()
            except ToolError as e:
                logger.error(f"{e.message} Tools will require a projectId.")
                self.project_api_key = None

    # Organization and projects

    async def get_organization(self) -> Dict[str, Any]:
        org = self.cache.get(CACHE_KEY_ORGANIZATION)
        if org is None:
            orgs = (await self.api.call("/user/organizations")).body
            if not orgs:
                raise ToolError("No organizations found for the current user.")
            org = orgs[0]
            self.cache.set(CACHE_KEY_ORGANIZATION, org)
        return org

    async def get_projects(self) -> List[Dict[str, Any]]:
        projects = self.cache.get(CACHE_KEY_PROJECTS)
        if projects is None:
            org = await self.get_organization()
            response = await self.api.call(f"/organizations/{org['id']}/projects", paginate=True)
            projects = response.body or []
            self.cache.set(CACHE_KEY_PROJECTS, projects)
        return projects

    async def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        for project in await self.get_projects():
            if project.get("id") == project_id:
                return project
        return None

    async def get_current_project(self) -> Optional[Dict[str, Any]]:
        """The project matching the configured API key, if one is configured."""
        project = self.cache.get(CACHE_KEY_CURRENT_PROJECT)
        if project is None and self.project_api_key:
            projects = await self.get_projects()
            project = next((p for p in projects if p.get("api_key") == self.project_api_key), None)
            if project is None:
                raise ToolError("Unable to find project with the configured API key.")
            self.cache.set(CACHE_KEY_CURRENT_PROJECT, project)
        return project

    async def get_input_project(self, project_id: Optional[str] = None) -> Dict[str, Any]:
        """Resolve the project a tool call targets.

        Raises:
            ToolError: if the given project does not exist, or no project was
                given and none is configured
        """
        if project_id:
            project = await self.get_project(project_id)
            if project is None:
                raise ToolError(f"Project with ID {project_id} not found.")
            return project

        project = await self.get_current_project()
        if project is None:
            raise ToolError("No current project found. Please provide a projectId or configure a project API key.")
        return project

    # Errors and events

    async def get_error(self, project_id: str, error_id: str) -> Dict[str, Any]:
        error = (await self.api.call(f"/projects/{project_id}/errors/{error_id}")).body
        if not error:
            raise ToolError(f"Error with ID {error_id} not found in project {project_id}.")
        return error

    async def get_latest_event(self, project_id: str, error_id: str) -> Optional[Dict[str, Any]]:
        """Most recent event of an error, or None when it cannot be fetched."""
        try:
            response = await self.api.call(
                f"/projects/{project_id}/errors/{error_id}/events",
                params={"sort": "timestamp", "direction": "desc", "per_page": 1, "full_reports": "true"},
            )
        except Exception as e:
            logger.warning(f"Failed to fetch latest event for error {error_id}: {e}")
            return None
        events = response.body or []
        return events[0] if events else None

    async def get_event(self, event_id: str, project_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Fetch an event, searching every project when none is given."""
        if project_id:
            project_ids = [project_id]
        else:
            project_ids = [project["id"] for project in await self.get_projects()]

        async def fetch(pid: str) -> Optional[Dict[str, Any]]:
            try:
                return (await self.api.call(f"/projects/{pid}/events/{event_id}")).body
            except Exception as e:
                logger.debug(f"Event {event_id} not found in project {pid}: {e}")
                return None

        for event in await asyncio.gather(*(fetch(pid) for pid in project_ids)):
            if event:
                return event
        return None

    async def update_error(
        self, project_id: str, error_id: str, operation: str, severity: Optional[str] = None
    ) -> bool:
        body: Dict[str, Any] = {"operation": operation}
        if severity:
            body["severity"] = severity
        response = await self.api.call(f"/projects/{project_id}/errors/{error_id}", method="PATCH", body=body)
        return response.status in (200, 204)

    async def get_dashboard_url(self, project: Dict[str, Any]) -> str:
        org = await self.get_organization()
        return f"{self.app_endpoint}/{org['slug']}/{project['slug']}"

    async def get_error_url(self, project: Dict[str, Any], error_id: str) -> str:
        return f"{await self.get_dashboard_url(project)}/errors/{error_id}"

    # Facade hooks

    def discovery_config(self) -> DiscoveryConfig:
        has_project = bool(self.project_api_key)
        return DiscoveryConfig(include_list_projects=not has_project, project_id_required=not has_project)

    def register_tools(self, register: RegisterToolFunction, get_input: GetInputFunction) -> None:
        context = ToolExecutionContext(services=self, get_input=get_input)
        self.tool_registry.register_all_tools(register, context, self.discovery_config())

    def register_resources(self, register: RegisterResourceFunction) -> None:
        register("event", "{id}", self.read_event)

    async def read_event(self, uri: str, variables: Dict[str, Any]) -> str:
        event_id = variables.get("id")
        event = await self.get_event(event_id)
        if not event:
            raise ToolError(f"Event with ID {event_id} not found.")
        return to_json_text(event)
