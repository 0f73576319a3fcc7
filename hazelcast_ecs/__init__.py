"""Hazelcast member discovery for Amazon ECS.

Resolves the ``(private IP, host port)`` endpoints of the other members of
a Hazelcast cluster whose members run as ECS tasks, using the ECS agent
introspection API and the ECS and EC2 control-plane APIs.
"""

from hazelcast_ecs.config import EcsDiscoveryConfig
from hazelcast_ecs.discovery import (
    DiscoveryNode,
    DiscoveryStrategy,
    EcsDiscoveryStrategy,
    EcsDiscoveryStrategyFactory,
    StrategyState,
)
from hazelcast_ecs.exceptions import (
    HazelcastEcsException,
    IllegalStateException,
    ConfigurationException,
    DiscoveryException,
    ClusterNameDiscoveryException,
    ServiceNameDiscoveryException,
    PublicAddressDiscoveryException,
    IntrospectionUnavailableException,
)
from hazelcast_ecs.gateway import EcsGateway
from hazelcast_ecs.identity import IdentityResolver
from hazelcast_ecs.introspection import AgentIntrospectionClient, InstanceMetadataClient
from hazelcast_ecs.logging import configure_logging, get_logger
from hazelcast_ecs.lookup import Lookup, LookupStatus
from hazelcast_ecs.model import DiscoveredEndpoint
from hazelcast_ecs.resolver import NodeResolver

__version__ = "0.1.0"

__all__ = [
    "EcsDiscoveryConfig",
    "DiscoveryNode",
    "DiscoveryStrategy",
    "EcsDiscoveryStrategy",
    "EcsDiscoveryStrategyFactory",
    "StrategyState",
    "HazelcastEcsException",
    "IllegalStateException",
    "ConfigurationException",
    "DiscoveryException",
    "ClusterNameDiscoveryException",
    "ServiceNameDiscoveryException",
    "PublicAddressDiscoveryException",
    "IntrospectionUnavailableException",
    "EcsGateway",
    "IdentityResolver",
    "AgentIntrospectionClient",
    "InstanceMetadataClient",
    "configure_logging",
    "get_logger",
    "Lookup",
    "LookupStatus",
    "DiscoveredEndpoint",
    "NodeResolver",
]
