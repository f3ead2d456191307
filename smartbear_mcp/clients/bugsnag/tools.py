"""BugSnag tools and the discovery function handed to the client's ToolRegistry."""

import logging
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from pydantic import Field

from ...managers.tools.exceptions import ToolError
from ...managers.tools.tool_models import (
    ParameterDefinition,
    ToolDefinition,
    ToolExample,
    ToolExecutionContext,
)
from ...managers.tools.tool_registry import DiscoveryConfig, RegistryTool

logger = logging.getLogger(__name__)

SEVERITIES = ["info", "warning", "error"]

PageSize = Annotated[int, Field(ge=1, le=100)]
PageNumber = Annotated[int, Field(ge=1)]


class ErrorOperation(str, Enum):
    """Workflow operations accepted by the error update endpoint."""

    OVERRIDE_SEVERITY = "override_severity"
    OPEN = "open"
    FIX = "fix"
    IGNORE = "ignore"
    DISCARD = "discard"
    UNDISCARD = "undiscard"


def project_id_parameter(required: bool) -> ParameterDefinition:
    return ParameterDefinition(
        name="projectId",
        type=str,
        required=required,
        description="ID of the project to query",
        examples=["515fb9337c1074f6fd000003"],
    )


def error_id_parameter() -> ParameterDefinition:
    return ParameterDefinition(
        name="errorId",
        type=str,
        required=True,
        description="Unique identifier of the error",
        examples=["6863e2af8c857c0a5023b411"],
    )


def parse_event_link(link: str) -> Tuple[str, str]:
    """Extract (project slug, event id) from a dashboard event URL.

    Raises:
        ToolError: if either part is missing
    """
    parsed = urlparse(link)
    parts = parsed.path.split("/")
    event_ids = parse_qs(parsed.query).get("event_id")
    if len(parts) < 3 or not parts[2] or not event_ids:
        raise ToolError("Both projectSlug and eventId must be present in the link")
    return parts[2], event_ids[0]


class ListProjectsTool:
    name = "list_projects"

    def __init__(self):
        self.definition = ToolDefinition(
            title="List Projects",
            summary="List all projects in the organization with optional pagination",
            purpose="Retrieve available projects for browsing and selecting which project to analyze",
            parameters=[
                ParameterDefinition(
                    name="page_size",
                    type=PageSize,
                    description="Number of projects to return per page",
                    examples=["10"],
                    constraints=["Between 1 and 100"],
                ),
                ParameterDefinition(
                    name="page",
                    type=PageNumber,
                    description="Page number to return, starting from 1",
                    examples=["1"],
                    constraints=["At least 1"],
                ),
            ],
            use_cases=[
                "Browse available projects when no project API key is configured",
                "Find project IDs needed for other tools",
            ],
            examples=[
                ToolExample(
                    description="Get first 10 projects",
                    parameters={"page_size": 10, "page": 1},
                    expected_output="JSON array of project objects with IDs, names, and metadata",
                ),
            ],
            hints=["Project IDs from this list can be used with other tools when no project API key is configured"],
            open_world=True,
        )

    async def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> Any:
        projects = await context.services.get_projects()
        if not projects:
            return {"content": [{"type": "text", "text": "No projects found."}]}

        if args.get("page_size") or args.get("page"):
            page_size = args.get("page_size") or 10
            page = args.get("page") or 1
            start = (page - 1) * page_size
            projects = projects[start:start + page_size]

        return {"data": projects, "count": len(projects)}


class GetErrorTool:
    name = "get_error"

    def __init__(self, project_id_required: bool = True):
        self.definition = ToolDefinition(
            title="Get Error",
            summary="Get full details on an error, including its latest event and a link to the dashboard",
            purpose="Investigate a specific error in depth",
            parameters=[project_id_parameter(project_id_required), error_id_parameter()],
            use_cases=[
                "Investigate a specific error found through another tool",
                "Share a dashboard link to an error",
            ],
            examples=[
                ToolExample(
                    description="Get details for a specific error",
                    parameters={"errorId": "6863e2af8c857c0a5023b411"},
                    expected_output="JSON object with error_details, latest_event and url",
                ),
            ],
            open_world=True,
        )

    async def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> Any:
        services = context.services
        project = await services.get_input_project(args.get("projectId"))
        error_id = args["errorId"]
        return {
            "error_details": await services.get_error(project["id"], error_id),
            "latest_event": await services.get_latest_event(project["id"], error_id),
            "url": await services.get_error_url(project, error_id),
        }


class GetEventDetailsTool:
    name = "get_event_details"

    def __init__(self):
        self.definition = ToolDefinition(
            title="Get Event Details",
            summary="Get detailed information about a specific event using its dashboard URL",
            purpose="Retrieve event details directly from a dashboard link",
            parameters=[
                ParameterDefinition(
                    name="link",
                    type=str,
                    required=True,
                    description="Full URL to the event details page in the BugSnag dashboard",
                    examples=[
                        "https://app.bugsnag.com/my-org/my-project/errors/6863e2af8c857c0a5023b411?event_id=6863e2af012caf1d5c320000"
                    ],
                ),
            ],
            use_cases=["Extract event information from shared links or browser URLs"],
            hints=["The URL must contain both the project slug in the path and an event_id query parameter"],
            open_world=True,
        )

    async def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> Any:
        services = context.services
        project_slug, event_id = parse_event_link(args["link"])

        projects = await services.get_projects()
        project = next((p for p in projects if p.get("slug") == project_slug), None)
        if project is None:
            raise ToolError("Project with the specified slug not found.", tool_name=self.name)

        event = await services.get_event(event_id, project["id"])
        if not event:
            raise ToolError(f"Event with ID {event_id} not found in project {project['id']}.", tool_name=self.name)
        return event


class UpdateErrorTool:
    name = "update_error"

    def __init__(self, project_id_required: bool = True):
        self.definition = ToolDefinition(
            title="Update Error",
            summary="Update the status of an error",
            purpose="Change an error's workflow state, such as marking it as resolved or ignored",
            parameters=[
                project_id_parameter(project_id_required),
                error_id_parameter(),
                ParameterDefinition(
                    name="operation",
                    type=ErrorOperation,
                    required=True,
                    description="The operation to apply to the error",
                    examples=[op.value for op in ErrorOperation],
                ),
            ],
            use_cases=[
                "Mark an error as open, fixed or ignored",
                "Discard or un-discard an error",
                "Update the severity of an error",
            ],
            examples=[
                ToolExample(
                    description="Mark an error as fixed",
                    parameters={"errorId": "6863e2af8c857c0a5023b411", "operation": "fix"},
                    expected_output="Success response indicating the error was marked as fixed",
                ),
                ToolExample(
                    description="Change error severity",
                    parameters={"errorId": "6863e2af8c857c0a5023b411", "operation": "override_severity"},
                    expected_output="Success response after prompting for new severity level",
                ),
            ],
            hints=["When using 'override_severity', you will be prompted to provide the new severity level"],
            read_only=False,
            destructive=True,
            idempotent=False,
            open_world=True,
        )

    async def ask_severity(self, context: ToolExecutionContext) -> Optional[str]:
        if context.get_input is None:
            raise ToolError("A severity is required but this session cannot prompt for input.", tool_name=self.name)
        result = await context.get_input({
            "message": "Please provide the new severity for the error (e.g. 'info', 'warning', 'error')",
            "requestedSchema": {
                "type": "object",
                "properties": {
                    "severity": {
                        "type": "string",
                        "enum": SEVERITIES,
                        "description": "The new severity level for the error",
                    }
                },
                "required": ["severity"],
            },
        })
        if result.get("action") == "accept":
            return (result.get("content") or {}).get("severity")
        return None

    async def execute(self, args: Dict[str, Any], context: ToolExecutionContext) -> Any:
        services = context.services
        operation = ErrorOperation(args["operation"])
        project = await services.get_input_project(args.get("projectId"))

        severity = None
        if operation is ErrorOperation.OVERRIDE_SEVERITY:
            severity = await self.ask_severity(context)
            if severity is None:
                raise ToolError("Severity update cancelled: no severity was provided.", tool_name=self.name)

        success = await services.update_error(project["id"], args["errorId"], operation.value, severity=severity)
        return {"success": success}


def discover_tools(config: Optional[DiscoveryConfig] = None) -> List[RegistryTool]:
    """Build the BugSnag tool set for a discovery configuration."""
    config = config or DiscoveryConfig()
    tools: List[RegistryTool] = []
    if config.include_list_projects:
        tools.append(ListProjectsTool())
    tools.extend([
        GetErrorTool(config.project_id_required),
        GetEventDetailsTool(),
        UpdateErrorTool(config.project_id_required),
    ])
    tools.extend(config.custom_tools)

    excluded = set(config.exclude_tools)
    discovered = [tool for tool in tools if tool.name not in excluded]
    logger.debug(f"BugSnag discovery produced {len(discovered)} tools")
    return discovered
