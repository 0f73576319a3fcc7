"""Bootstrap lookups answering "which cluster and service am I part of"."""

import logging
import socket
from typing import Callable, Optional, Tuple

from hazelcast_ecs.exceptions import (
    ClusterNameDiscoveryException,
    IntrospectionUnavailableException,
    PublicAddressDiscoveryException,
    ServiceNameDiscoveryException,
)
from hazelcast_ecs.gateway import EcsGateway
from hazelcast_ecs.introspection import AgentIntrospectionClient, InstanceMetadataClient
from hazelcast_ecs.logging import get_logger
from hazelcast_ecs.model import Container, Task


SERVICE_GROUP_PREFIX = "service:"


class IdentityResolver:
    """Resolves the identity of the local ECS task.

    The local container is identified by its host name, which docker sets
    to the short container id in bridge networking mode. The ECS agent maps
    that id to the local task; the control plane then supplies what the
    agent does not know (task group, network bindings).

    Args:
        gateway: Control-plane gateway.
        introspection: ECS agent introspection client.
        instance_metadata: EC2 instance metadata client, needed only by
            :meth:`discover_public_address`.
        hostname_provider: Returns the local host name; defaults to
            :func:`socket.gethostname`.
        logger: Logger to use instead of ``hazelcast_ecs.identity``.
    """

    def __init__(
        self,
        gateway: EcsGateway,
        introspection: AgentIntrospectionClient,
        instance_metadata: Optional[InstanceMetadataClient] = None,
        hostname_provider: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._gateway = gateway
        self._introspection = introspection
        self._instance_metadata = instance_metadata
        self._hostname_provider = hostname_provider or socket.gethostname
        self._logger = logger or get_logger("identity")

    def discover_cluster_name(self) -> str:
        """Get the name of the ECS cluster of the local container instance.

        Raises:
            ClusterNameDiscoveryException: If the ECS agent is unreachable,
                returns no metadata, or reports no cluster.
        """
        try:
            metadata = self._introspection.fetch_metadata()
        except IntrospectionUnavailableException as e:
            raise ClusterNameDiscoveryException(
                f"Unable to discover ECS cluster name: {e}", cause=e
            ) from e

        if not metadata.is_found:
            raise ClusterNameDiscoveryException(
                f"Unable to discover ECS cluster name: {metadata.reason}",
                cause=metadata.cause,
            )

        cluster = metadata.value.cluster
        if not cluster:
            raise ClusterNameDiscoveryException(
                f"ECS Agent metadata has no cluster: {metadata.value}"
            )

        self._logger.info("Discovered ECS cluster name: %s", cluster)
        return cluster

    def discover_service_name(self, cluster: str) -> Optional[str]:
        """Get the name of the ECS service the local task belongs to.

        Returns:
            The service name, or None for tasks not started by a service
            and whenever the local task cannot be identified.

        Raises:
            ServiceNameDiscoveryException: If the ECS agent is unreachable.
        """
        local_task, _ = self._find_local_task(ServiceNameDiscoveryException)
        if local_task is None:
            return None

        described = self._gateway.describe_tasks(cluster, [local_task.arn])
        if not described:
            self._logger.warning("No ECS task details found for local task %s", local_task.arn)
            return None

        group = described[0].group
        if group and group.startswith(SERVICE_GROUP_PREFIX):
            service_name = group[len(SERVICE_GROUP_PREFIX):]
            self._logger.info("Discovered ECS service name: %s", service_name)
            return service_name

        self._logger.info("Local ECS task is not part of a service (group: %s)", group)
        return None

    def discover_public_address(self, container_port: int) -> str:
        """Get the ``<ip>:<port>`` other members reach this container at.

        Combines the private IP address of the EC2 instance with the host
        port bound to ``container_port`` for the local container.

        Raises:
            PublicAddressDiscoveryException: If any part cannot be resolved.
        """
        if self._instance_metadata is None:
            raise PublicAddressDiscoveryException("No instance metadata client configured")

        try:
            private_ip = self._instance_metadata.fetch_private_ip()
        except IntrospectionUnavailableException as e:
            raise PublicAddressDiscoveryException(
                f"Unable to discover private IP address: {e}", cause=e
            ) from e
        if not private_ip.is_found:
            raise PublicAddressDiscoveryException(
                f"Unable to discover private IP address: {private_ip.reason}"
            )

        try:
            cluster = self.discover_cluster_name()
        except ClusterNameDiscoveryException as e:
            raise PublicAddressDiscoveryException(str(e), cause=e) from e

        local_task, local_container = self._find_local_task(PublicAddressDiscoveryException)
        if local_task is None:
            raise PublicAddressDiscoveryException("Unable to identify the local ECS task")

        described = self._gateway.describe_tasks(cluster, [local_task.arn])
        if not described:
            raise PublicAddressDiscoveryException(
                f"No ECS task details found for local task {local_task.arn}"
            )

        container = described[0].find_container(local_container.name)
        if container is None:
            raise PublicAddressDiscoveryException(
                f"Container {local_container.name} not found in ECS task {local_task.arn}"
            )

        binding = next(
            (b for b in container.network_bindings if b.container_port == container_port),
            None,
        )
        if binding is None or binding.host_port is None:
            raise PublicAddressDiscoveryException(
                f"No host port bound to container port {container_port} "
                f"on container {local_container.name}"
            )

        address = f"{private_ip.value}:{binding.host_port}"
        self._logger.info("Discovered public address: %s", address)
        return address

    def _find_local_task(self, error_type) -> Tuple[Optional[Task], Optional[Container]]:
        """Get the local task and container as seen by the ECS agent."""
        hostname = self._hostname_provider()
        try:
            local_task = self._introspection.fetch_task(hostname)
        except IntrospectionUnavailableException as e:
            raise error_type(
                f"Unable to query ECS Agent for task of {hostname}: {e}", cause=e
            ) from e

        if not local_task.is_found:
            self._logger.warning(
                "ECS Agent has no task for container %s: %s", hostname, local_task.reason
            )
            return None, None

        task = local_task.value
        for container in task.containers:
            if task.arn and container.matches_host(hostname):
                return task, container

        self._logger.warning(
            "ECS Agent task %s has no container matching host name %s", task.arn, hostname
        )
        return None, None
