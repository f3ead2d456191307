"""Backend client contract and registry."""

from .client_registry import ClientRegistry, ClientRegistryEntry, setup_clients_from_env
from .client_types import Client, RegisterResourceFunction, RegisterToolFunction

__all__ = [
    "ClientRegistry",
    "ClientRegistryEntry",
    "setup_clients_from_env",
    "Client",
    "RegisterResourceFunction",
    "RegisterToolFunction",
]
