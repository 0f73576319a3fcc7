"""Command line entry point printing the discovered members.

Usage:
    hazelcast-ecs-discover [OPTIONS]

Options:
    --config PATH            YAML configuration file
    --container-port PORT    Container port Hazelcast listens on
    --cluster NAME           ECS cluster (discovered when omitted)
    --service NAME           ECS service (discovered when omitted)
    --region REGION          AWS region
    --introspection-url URL  ECS agent introspection base URL
    --public-address         Print the address of this member instead
    --log-level LEVEL        Logging level (default: WARNING)

Exit Codes:
    0 - Success
    1 - Discovery failed
    2 - Configuration error
"""

import argparse
import logging
import sys
from typing import List, Optional

from hazelcast_ecs.config import EcsDiscoveryConfig, load_yaml
from hazelcast_ecs.discovery.ecs import EcsDiscoveryStrategy
from hazelcast_ecs.exceptions import ConfigurationException, HazelcastEcsException
from hazelcast_ecs.logging import configure_logging

EXIT_OK = 0
EXIT_DISCOVERY_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2

_OVERRIDES = {
    "container_port": "container_port",
    "cluster": "cluster_name",
    "service": "service_name",
    "region": "region",
    "introspection_url": "introspection_url",
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="hazelcast-ecs-discover",
        description="Discover the Hazelcast members of an ECS service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--container-port", type=int, help="Container port Hazelcast listens on"
    )
    parser.add_argument("--cluster", help="ECS cluster name")
    parser.add_argument("--service", help="ECS service name")
    parser.add_argument("--region", help="AWS region")
    parser.add_argument("--introspection-url", help="ECS agent introspection base URL")
    parser.add_argument(
        "--public-address",
        action="store_true",
        help="Print the address other members reach this member at",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> EcsDiscoveryConfig:
    """Merge the configuration file with command line overrides.

    Raises:
        ConfigurationException: If the result is invalid.
    """
    data = {}
    if args.config:
        data = load_yaml(args.config)

    for arg_name, key in _OVERRIDES.items():
        value = getattr(args, arg_name)
        if value is not None:
            data[key] = value

    return EcsDiscoveryConfig.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    """Run discovery and print one ``host:port`` per line."""
    args = parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level))

    try:
        config = build_config(args)
    except ConfigurationException as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    strategy = EcsDiscoveryStrategy(config)
    try:
        if args.public_address:
            print(strategy.discover_public_address())
            return EXIT_OK

        strategy.start()
        for address in strategy.get_known_addresses():
            print(address)
        return EXIT_OK
    except HazelcastEcsException as e:
        print(f"Discovery failed: {e}", file=sys.stderr)
        return EXIT_DISCOVERY_FAILED
    finally:
        strategy.stop()


if __name__ == "__main__":
    sys.exit(main())
