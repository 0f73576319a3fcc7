"""ECS discovery example.

This example demonstrates how to:
- Configure discovery for a member listening on container port 5701
- Discover the cluster and service of the local task
- List the reachable addresses of the other members
- Find the address other members reach this member at

Run it from inside a container of an ECS task (EC2 launch type, bridge
networking) whose task role allows ecs:ListTasks, ecs:DescribeTasks,
ecs:DescribeContainerInstances and ec2:DescribeInstances.
"""

import logging

from hazelcast_ecs import (
    DiscoveryException,
    EcsDiscoveryConfig,
    EcsDiscoveryStrategyFactory,
    configure_logging,
)


def main():
    configure_logging(level=logging.INFO)

    # Properties as a member would pass them to the plugin
    factory = EcsDiscoveryStrategyFactory(container_port=5701)
    strategy = factory.new_discovery_strategy({"region": "us-east-1"})

    try:
        strategy.start()
        print(f"Cluster: {strategy.cluster_name}")
        print(f"Service: {strategy.service_name or '(none)'}")

        print("\nDiscovered members:")
        for node in strategy.discover_nodes():
            print(f"  {node.address}")

        print(f"\nThis member: {strategy.discover_public_address()}")

    except DiscoveryException as e:
        print(f"Discovery failed: {e}")

    finally:
        strategy.stop()


def explicit_service():
    """Skip identity discovery when the service is known."""
    config = EcsDiscoveryConfig(
        container_port=5701,
        cluster_name="my-cluster",
        service_name="hazelcast-service",
    )
    factory = EcsDiscoveryStrategyFactory()
    strategy = factory.strategy_type(config)
    strategy.start()
    try:
        print(strategy.get_known_addresses())
    finally:
        strategy.stop()


if __name__ == "__main__":
    main()
