"""Contract between the server facade and backend clients.

A backend client needs ``name``, ``prefix`` and ``register_tools``.
``register_resources`` and ``register_prompts`` are optional and detected at
runtime; clients do not inherit from a common base class.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union

from ..tools.tool_models import GetInputFunction, RegisteredTool, ToolCallback, ToolDefinition

RegisterToolFunction = Callable[[ToolDefinition, ToolCallback], RegisteredTool]

# (uri, variables) -> text or JSON-serializable value
ResourceCallback = Callable[[str, Dict[str, Any]], Union[Any, Awaitable[Any]]]
RegisterResourceFunction = Callable[[str, str, ResourceCallback], str]


class Client(Protocol):
    """Minimal capability set of a backend client."""

    name: str
    prefix: str

    def register_tools(
        self, register: RegisterToolFunction, get_input: GetInputFunction
    ) -> Optional[Awaitable[None]]: ...


class ClientClass(Protocol):
    """A client class that can build itself from application settings."""

    @classmethod
    def from_settings(cls, settings: Any, cache: Any = None) -> Optional[Client]: ...
