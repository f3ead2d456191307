"""Tool-related models and data structures."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel

# {"content": [{"type": "text", "text": "..."}], "isError": bool}, plus
# "structuredContent" for tools that declare an output schema
ToolResult = Dict[str, Any]

# Executors receive validated arguments plus whatever the runtime passes along
ToolCallback = Callable[[Dict[str, Any], Any], Union[Any, Awaitable[Any]]]

# Elicitation forwarder handed to clients by the server facade
GetInputFunction = Callable[..., Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ParameterDefinition:
    """A single named tool argument."""

    name: str
    type: Any
    required: bool = False
    description: str = ""
    examples: Optional[List[str]] = None
    constraints: Optional[List[str]] = None
    default: Any = None


@dataclass(frozen=True)
class ToolExample:
    """Documented example invocation. Never executed."""

    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    expected_output: Optional[str] = None


@dataclass(frozen=True)
class ToolDefinition:
    """Declarative description of a tool as exposed to the calling agent.

    Either ``parameters`` or ``input_schema`` (a pydantic model) describes the
    arguments; when both are given the model's fields are merged after the
    flat list.
    """

    title: str
    summary: str
    parameters: List[ParameterDefinition] = field(default_factory=list)
    input_schema: Optional[Type[BaseModel]] = None
    output_schema: Optional[Type[BaseModel]] = None
    purpose: Optional[str] = None
    use_cases: List[str] = field(default_factory=list)
    examples: List[ToolExample] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)
    output_format: Optional[str] = None
    read_only: Optional[bool] = None
    destructive: Optional[bool] = None
    idempotent: Optional[bool] = None
    open_world: Optional[bool] = None


@dataclass
class ToolExecutionContext:
    """Context handed to registry-managed tools at execution time."""

    services: Any
    get_input: Optional[GetInputFunction] = None


@dataclass(frozen=True)
class ToolDescriptor:
    """Protocol-level description of a registered tool."""

    name: str
    title: str
    description: str
    input_schema: Dict[str, Any]
    annotations: Dict[str, Any]
    output_schema: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class RegisteredTool:
    """Handle returned by the server facade for each registered tool."""

    name: str
    title: str
    descriptor: ToolDescriptor
