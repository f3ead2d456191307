"""Backend clients shipped with the server."""

from ..managers.clients.client_registry import ClientRegistry
from .bugsnag import BugsnagClient


def default_client_registry() -> ClientRegistry:
    """Registry populated with every built-in client."""
    registry = ClientRegistry()
    registry.register("BugSnag", BugsnagClient, async_init=True)
    return registry


__all__ = ["BugsnagClient", "default_client_registry"]
