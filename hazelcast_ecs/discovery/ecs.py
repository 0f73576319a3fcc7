"""ECS discovery strategy for Hazelcast members running as ECS tasks."""

import threading
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Type

from hazelcast_ecs.config import EcsDiscoveryConfig
from hazelcast_ecs.discovery.base import DiscoveryNode, DiscoveryStrategy
from hazelcast_ecs.exceptions import (
    DiscoveryException,
    HazelcastEcsException,
    IllegalStateException,
)
from hazelcast_ecs.gateway import EcsGateway
from hazelcast_ecs.identity import IdentityResolver
from hazelcast_ecs.introspection import AgentIntrospectionClient, InstanceMetadataClient
from hazelcast_ecs.logging import get_logger
from hazelcast_ecs.model import DiscoveredEndpoint
from hazelcast_ecs.resolver import NodeResolver

_logger = get_logger("strategy")


class StrategyState(Enum):
    """Lifecycle state of an ECS discovery strategy."""
    UNINITIALIZED = "UNINITIALIZED"
    STARTED = "STARTED"
    FAILED = "FAILED"
    STOPPED = "STOPPED"


class EcsDiscoveryStrategy(DiscoveryStrategy):
    """Discovers the other members of the ECS service this member runs in.

    :meth:`start` resolves the cluster and service of the local task once;
    the identity is kept for the lifetime of the strategy. Each
    :meth:`discover_nodes` call is an independent resolution of the tasks
    of that service. Members are reached through the host port bound to
    ``config.container_port`` on the private IP of their EC2 instance.

    Example:
        Discovery with an explicit service::

            config = EcsDiscoveryConfig(
                container_port=5701,
                region="us-west-2",
                service_name="hazelcast-service",
            )
            strategy = EcsDiscoveryStrategy(config)
            strategy.start()
            nodes = strategy.discover_nodes()
            strategy.stop()
    """

    def __init__(
        self,
        config: EcsDiscoveryConfig,
        gateway: Optional[EcsGateway] = None,
        introspection: Optional[AgentIntrospectionClient] = None,
        instance_metadata: Optional[InstanceMetadataClient] = None,
        properties: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the ECS discovery strategy.

        Args:
            config: ECS discovery configuration.
            gateway: Control-plane gateway; built from ``config`` on start
                when omitted.
            introspection: ECS agent client; built from ``config`` when omitted.
            instance_metadata: EC2 metadata client; built from ``config``
                when omitted.
            properties: Raw properties the strategy was created from.
        """
        super().__init__(properties)
        self._config = config
        self._gateway = gateway
        self._introspection = introspection or AgentIntrospectionClient.from_config(config)
        self._instance_metadata = instance_metadata or InstanceMetadataClient.from_config(config)
        self._resolver: Optional[NodeResolver] = None
        self._cluster_name: Optional[str] = None
        self._service_name: Optional[str] = None
        self._state = StrategyState.UNINITIALIZED
        self._lock = threading.Lock()

    @property
    def config(self) -> EcsDiscoveryConfig:
        """Get the ECS discovery configuration."""
        return self._config

    @property
    def state(self) -> StrategyState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._state is StrategyState.STARTED

    @property
    def cluster_name(self) -> Optional[str]:
        """Get the ECS cluster resolved on start."""
        return self._cluster_name

    @property
    def service_name(self) -> Optional[str]:
        """Get the ECS service resolved on start, None for standalone tasks."""
        return self._service_name

    def start(self) -> None:
        """Resolve the identity of the local task.

        Configured cluster and service names take precedence over discovery.
        Starting an already started strategy does nothing.

        Raises:
            DiscoveryException: If the cluster name cannot be determined.
                The strategy is then permanently failed.
            IllegalStateException: If the strategy failed or was stopped.
        """
        with self._lock:
            if self._state is StrategyState.STARTED:
                return
            if self._state is not StrategyState.UNINITIALIZED:
                raise IllegalStateException(
                    f"Cannot start ECS discovery strategy in state {self._state.value}"
                )

            try:
                cluster_name, service_name = self._resolve_identity()
            except HazelcastEcsException as e:
                self._state = StrategyState.FAILED
                _logger.error("Failed to start ECS discovery strategy: %s", e)
                raise DiscoveryException(
                    f"Failed to start ECS discovery strategy: {e}", cause=e
                ) from e

            self._cluster_name = cluster_name
            self._service_name = service_name
            self._resolver = NodeResolver(self._gateway, self._config.container_port)
            self._state = StrategyState.STARTED

        _logger.info(
            "ECS discovery started for cluster %s, service %s, container port %d",
            cluster_name, service_name, self._config.container_port,
        )

    def _resolve_identity(self) -> Tuple[str, Optional[str]]:
        if self._gateway is None:
            self._gateway = EcsGateway.from_config(self._config)

        identity = IdentityResolver(self._gateway, self._introspection, self._instance_metadata)

        cluster_name = self._config.cluster_name or identity.discover_cluster_name()
        service_name = self._config.service_name
        if service_name is None:
            service_name = identity.discover_service_name(cluster_name)
        return cluster_name, service_name

    def discover_endpoints(self) -> Set[DiscoveredEndpoint]:
        """Resolve the current endpoints of the members of the service.

        Raises:
            IllegalStateException: If the strategy is not started.
        """
        resolver = self._resolver
        if self._state is not StrategyState.STARTED or resolver is None:
            raise IllegalStateException(
                f"ECS discovery strategy is not started (state: {self._state.value})"
            )
        return resolver.discover_nodes(self._cluster_name, self._service_name)

    def discover_nodes(self) -> List[DiscoveryNode]:
        """Discover the members of the service.

        Partial failures never raise; the result holds whatever could be
        resolved and may be empty.

        Raises:
            IllegalStateException: If the strategy is not started.
        """
        properties = {"cluster": self._cluster_name, "service": self._service_name}
        return [
            DiscoveryNode(
                private_address=endpoint.address,
                port=endpoint.port,
                properties=dict(properties),
            )
            for endpoint in sorted(self.discover_endpoints())
        ]

    def discover_public_address(self) -> str:
        """Get the ``<ip>:<port>`` other members reach this member at."""
        gateway = self._gateway or EcsGateway.from_config(self._config)
        identity = IdentityResolver(gateway, self._introspection, self._instance_metadata)
        return identity.discover_public_address(self._config.container_port)

    def stop(self) -> None:
        """Stop the strategy and release the control-plane clients."""
        with self._lock:
            self._state = StrategyState.STOPPED
            self._resolver = None
            self._gateway = None
        _logger.info("ECS discovery stopped")


class EcsDiscoveryStrategyFactory:
    """Creates ECS discovery strategies from member properties.

    Collaborators passed to the factory are shared by every strategy it
    creates; those omitted are built from each strategy's configuration.

    Example:
        >>> factory = EcsDiscoveryStrategyFactory(container_port=5701)
        >>> strategy = factory.new_discovery_strategy({"region": "us-east-1"})
    """

    CONFIGURATION_PROPERTIES: Tuple[str, ...] = (
        "container_port",
        "introspection_url",
        "instance_metadata_url",
        "cluster_name",
        "service_name",
        "region",
        "access_key",
        "secret_key",
        "iam_role",
        "max_attempts",
        "min_retry_wait_ms",
        "http_timeout_seconds",
    )

    def __init__(
        self,
        container_port: Optional[int] = None,
        gateway: Optional[EcsGateway] = None,
        introspection: Optional[AgentIntrospectionClient] = None,
        instance_metadata: Optional[InstanceMetadataClient] = None,
    ):
        self._container_port = container_port
        self._gateway = gateway
        self._introspection = introspection
        self._instance_metadata = instance_metadata

    @property
    def strategy_type(self) -> Type[EcsDiscoveryStrategy]:
        return EcsDiscoveryStrategy

    def get_configuration_properties(self) -> Tuple[str, ...]:
        """Get the property names recognized by created strategies."""
        return self.CONFIGURATION_PROPERTIES

    def new_discovery_strategy(
        self, properties: Optional[Dict[str, Any]] = None
    ) -> EcsDiscoveryStrategy:
        """Create a strategy from member properties.

        The factory's container port applies unless the properties set one.

        Raises:
            ConfigurationException: If the properties are invalid.
        """
        data = dict(properties or {})
        if self._container_port is not None:
            data.setdefault("container_port", self._container_port)

        unknown = sorted(set(data) - set(self.CONFIGURATION_PROPERTIES))
        if unknown:
            _logger.warning("Ignoring unknown ECS discovery properties: %s", unknown)

        config = EcsDiscoveryConfig.from_dict(data)
        return EcsDiscoveryStrategy(
            config,
            gateway=self._gateway,
            introspection=self._introspection,
            instance_metadata=self._instance_metadata,
            properties=data,
        )
