"""Registry of the backend client classes this server can expose."""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Set

from .client_types import ClientClass

logger = logging.getLogger(__name__)


@dataclass
class ClientRegistryEntry:
    """A registered client class."""

    name: str
    client_class: ClientClass
    async_init: bool = False


class ClientRegistry:
    """Central registry for all backend client classes."""

    def __init__(self, enabled_clients: Optional[Set[str]] = None):
        self._entries: List[ClientRegistryEntry] = []
        self._enabled_clients = enabled_clients

    def configure_enabled_clients(self, enabled_clients: Optional[Set[str]]) -> None:
        """Limit the registry to the given names (case-insensitive); None enables all."""
        if enabled_clients is None:
            self._enabled_clients = None
            return
        self._enabled_clients = {name.strip().lower() for name in enabled_clients if name.strip()}

    def is_client_enabled(self, name: str) -> bool:
        if self._enabled_clients is None:
            return True
        return name.lower() in self._enabled_clients

    def register(self, name: str, client_class: ClientClass, async_init: bool = False) -> None:
        """Register a client class."""
        self._entries.append(ClientRegistryEntry(name=name, client_class=client_class, async_init=async_init))
        logger.debug(f"Registered client class: {name}")

    def get_all(self) -> List[ClientRegistryEntry]:
        """All registered entries that are enabled."""
        return [entry for entry in self._entries if self.is_client_enabled(entry.name)]

    def get_names(self) -> List[str]:
        return [entry.name for entry in self._entries]

    def clear(self) -> None:
        self._entries = []


async def setup_clients_from_env(server: Any, settings: Any, registry: ClientRegistry) -> bool:
    """Build every enabled client from settings and add it to the server.

    A client that fails to initialize is logged and skipped.

    Returns:
        True if at least one client was added
    """
    registry.configure_enabled_clients(settings.enabled_clients())
    client_defined = False

    for entry in registry.get_all():
        try:
            client = entry.client_class.from_settings(settings, server.get_cache())
            if client is None:
                logger.debug(f"{entry.name} client not configured, skipping")
                continue

            initialize = getattr(client, "initialize", None)
            if entry.async_init and callable(initialize):
                result = initialize()
                if inspect.isawaitable(result):
                    await result

            await server.add_client(client)
            client_defined = True
            logger.info(f"Added {entry.name} client")
        except Exception as e:
            logger.error(f"Error initializing {entry.name} client: {e}", exc_info=True)

    return client_defined
