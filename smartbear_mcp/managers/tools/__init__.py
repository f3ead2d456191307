"""Tool definitions, schema translation, dispatch and per-client registries."""

from .dispatch import ErrorBoundary
from .exceptions import DuplicateToolError, ResourceReadError, ToolError, ToolRegistrationError
from .tool_models import (
    ParameterDefinition,
    RegisteredTool,
    ToolDefinition,
    ToolDescriptor,
    ToolExample,
    ToolExecutionContext,
    ToolResult,
)
from .tool_registry import DiscoveryConfig, ToolRegistry

__all__ = [
    "ErrorBoundary",
    "DuplicateToolError",
    "ResourceReadError",
    "ToolError",
    "ToolRegistrationError",
    "ParameterDefinition",
    "RegisteredTool",
    "ToolDefinition",
    "ToolDescriptor",
    "ToolExample",
    "ToolExecutionContext",
    "ToolResult",
    "DiscoveryConfig",
    "ToolRegistry",
]
