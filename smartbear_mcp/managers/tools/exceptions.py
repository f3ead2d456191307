"""
Exception classes for tool registration and execution
"""

from typing import Any, Dict, Optional


class ToolError(Exception):
    """Expected, user-facing tool failure.

    The message is returned verbatim to the calling agent and the error is
    not reported to error telemetry.
    """

    def __init__(
        self,
        message: str,
        tool_name: Optional[str] = None,
        cause: Optional[BaseException] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.tool_name = tool_name
        self.cause = cause
        self.metadata = metadata or {}
        if cause is not None:
            self.__cause__ = cause


class ToolRegistrationError(Exception):
    """Raised when a tool definition cannot be registered"""

    def __init__(self, message: str, tool_name: Optional[str] = None):
        super().__init__(message)
        self.tool_name = tool_name


class DuplicateToolError(ToolRegistrationError):
    """Raised when a tool name is already registered"""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool with name '{tool_name}' is already registered", tool_name)


class ResourceReadError(Exception):
    """Raised back to the protocol runtime when a resource read fails"""

    def __init__(self, message: str, uri: Optional[str] = None):
        super().__init__(message)
        self.uri = uri
