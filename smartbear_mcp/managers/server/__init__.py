"""Server facade and protocol runtime adapter."""

from .runtime import FastMCPRuntime, ProtocolRuntime
from .server import SmartBearMcpServer, slugify, tool_name_for

__all__ = ["FastMCPRuntime", "ProtocolRuntime", "SmartBearMcpServer", "slugify", "tool_name_for"]
