"""BugSnag error monitoring client."""

from .client import BugsnagClient, get_endpoint
from .tools import ErrorOperation, discover_tools

__all__ = ["BugsnagClient", "ErrorOperation", "discover_tools", "get_endpoint"]
