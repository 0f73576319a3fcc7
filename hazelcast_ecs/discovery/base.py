"""Base classes for member discovery strategies."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from hazelcast_ecs.exceptions import DiscoveryException


@dataclass
class DiscoveryNode:
    """A discovered Hazelcast cluster member, as handed to the member.

    Attributes:
        private_address: Private IP address of the member.
        port: Port the member is reachable on (the host port on ECS).
        public_address: Public IP address (if available).
        properties: Additional node properties/metadata.
    """

    private_address: str
    port: int = 5701
    public_address: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.properties is None:
            self.properties = {}

    @property
    def address(self) -> str:
        """Get the address string in host:port format."""
        return f"{self.private_address}:{self.port}"


class DiscoveryStrategy(ABC):
    """Lifecycle contract between a discovery plugin and its cluster member.

    The member calls :meth:`start` once, :meth:`discover_nodes` whenever it
    needs candidate peers, and :meth:`stop` when it shuts down.
    """

    def __init__(self, properties: Optional[Dict[str, Any]] = None):
        self._properties = properties or {}

    @property
    def properties(self) -> Dict[str, Any]:
        """Get the raw properties the strategy was created with."""
        return self._properties

    @property
    @abstractmethod
    def is_started(self) -> bool:
        """Check if the discovery strategy has been started."""

    @abstractmethod
    def start(self) -> None:
        """Start the discovery strategy.

        Raises:
            DiscoveryException: If the strategy cannot start.
        """

    @abstractmethod
    def stop(self) -> None:
        """Stop the discovery strategy and release its resources."""

    @abstractmethod
    def discover_nodes(self) -> List[DiscoveryNode]:
        """Discover cluster member nodes.

        Returns:
            List of discovered nodes.
        """

    def get_known_addresses(self) -> List[str]:
        """Get addresses of discovered nodes.

        Returns:
            List of address strings in host:port format.
        """
        return [node.address for node in self.discover_nodes()]


__all__ = ["DiscoveryNode", "DiscoveryStrategy", "DiscoveryException"]
