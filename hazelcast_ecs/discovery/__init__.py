"""Discovery strategies for Hazelcast members running on Amazon ECS."""

from hazelcast_ecs.discovery.base import DiscoveryStrategy, DiscoveryNode
from hazelcast_ecs.discovery.ecs import (
    EcsDiscoveryStrategy,
    EcsDiscoveryStrategyFactory,
    StrategyState,
)

__all__ = [
    "DiscoveryStrategy",
    "DiscoveryNode",
    "EcsDiscoveryStrategy",
    "EcsDiscoveryStrategyFactory",
    "StrategyState",
]
