"""Resolution of the endpoints of all members of an ECS service.

One call to :meth:`NodeResolver.discover_nodes` walks

    cluster/service -> task ARNs -> tasks -> containers -> network binding
                    -> container instance -> EC2 instance -> private IP

and pairs each relevant host port with the private IP of the instance
hosting its task. Every hop tolerates missing data: a task or container
that cannot be resolved contributes no endpoint, and the cycle continues
with the rest.
"""

import logging
from typing import Dict, List, Optional, Set

from hazelcast_ecs.gateway import EcsGateway
from hazelcast_ecs.logging import get_logger
from hazelcast_ecs.model import Container, DiscoveredEndpoint, NetworkBinding, Task


class NodeResolver:
    """Resolves the reachable endpoints of the members of a cluster.

    Args:
        gateway: Control-plane gateway.
        container_port: Container port the members listen on.
        logger: Logger to use instead of ``hazelcast_ecs.resolver``.

    Example:
        >>> resolver = NodeResolver(gateway, container_port=5701)
        >>> resolver.discover_nodes("my-cluster", "hazelcast-service")
        {DiscoveredEndpoint(address='172.25.70.10', port=32863)}
    """

    def __init__(
        self,
        gateway: EcsGateway,
        container_port: int,
        logger: Optional[logging.Logger] = None,
    ):
        self._gateway = gateway
        self._container_port = container_port
        self._logger = logger or get_logger("resolver")

    @property
    def container_port(self) -> int:
        return self._container_port

    def discover_nodes(
        self, cluster: str, service_name: Optional[str] = None
    ) -> Set[DiscoveredEndpoint]:
        """Discover the endpoints of the tasks of a cluster or service.

        Args:
            cluster: ECS cluster name.
            service_name: ECS service name, or None for every task of the
                cluster.

        Returns:
            The endpoints found. Empty when nothing could be resolved.
        """
        task_arns = self._gateway.list_task_arns(cluster, service_name)
        if not task_arns:
            self._logger.warning(
                "No ECS tasks found in cluster %s (service: %s)", cluster, service_name
            )
            return set()

        tasks = [task for task in self._gateway.describe_tasks(cluster, task_arns) if task]
        if not tasks:
            self._logger.warning("No ECS task details found")
            return set()

        # Container instance ARN -> private IP, or None if unresolvable.
        addresses: Dict[str, Optional[str]] = {}
        endpoints: Set[DiscoveredEndpoint] = set()

        for task in tasks:
            bindings = self.select_bindings(task)
            if not bindings:
                continue

            address = self.resolve_address(cluster, task, addresses)
            if address is None:
                continue

            for binding in bindings:
                endpoint = DiscoveredEndpoint(address, binding.host_port)
                self._logger.debug("Discovered node: %s", endpoint)
                endpoints.add(endpoint)

        if not endpoints:
            self._logger.info("No nodes discovered")
        return endpoints

    def select_bindings(self, task: Task) -> List[NetworkBinding]:
        """Get the relevant network binding of each container of a task.

        A container whose relevant binding has no host port contributes nothing.
        """
        bindings = []
        for container in task.containers:
            self._logger.debug(
                "Found ECS container for ECS task [%s]: %s", task.arn, container.container_arn
            )
            binding = self.select_binding(container)
            if binding is None:
                continue
            if binding.host_port is None:
                self._logger.debug(
                    "Network binding for ECS task [%s] has no host port: %s", task.arn, binding
                )
                continue
            self._logger.debug(
                "Found Hazelcast network binding for ECS task [%s]: %s", task.arn, binding
            )
            bindings.append(binding)
        return bindings

    def select_binding(self, container: Container) -> Optional[NetworkBinding]:
        """Get the first binding of ``container`` for the target container port.

        Later bindings for the same port are ignored, even when the first
        has no host port. Containers without such a binding (sidecars) yield
        None.
        """
        for binding in container.network_bindings:
            if binding.container_port == self._container_port:
                return binding
        return None

    def resolve_address(
        self, cluster: str, task: Task, addresses: Dict[str, Optional[str]]
    ) -> Optional[str]:
        """Get the private IP of the EC2 instance hosting ``task``.

        Results, including failures, are memoized in ``addresses`` by
        container instance ARN so that tasks sharing a container instance
        trigger a single lookup.
        """
        arn = task.container_instance_arn
        if not arn:
            self._logger.debug("ECS task [%s] has no container instance", task.arn)
            return None

        if arn not in addresses:
            addresses[arn] = self._lookup_address(cluster, task, arn)
        return addresses[arn]

    def _lookup_address(self, cluster: str, task: Task, arn: str) -> Optional[str]:
        refs = self._gateway.describe_container_instances(cluster, [arn])
        if not refs:
            self._logger.warning(
                "No ECS container instances found for ECS task [%s]", task.arn
            )
            return None

        # A single ARN was requested, so a single container instance is expected.
        ref = refs[0]
        if not ref.compute_instance_id:
            self._logger.warning("ECS container instance %s has no EC2 instance", arn)
            return None

        instances = self._gateway.describe_compute_instances([ref.compute_instance_id])
        if not instances or not instances[0].private_ip_address:
            self._logger.warning("EC2 instance not found for ECS container instance: %s", arn)
            return None

        address = instances[0].private_ip_address
        self._logger.debug("Private IP address of ECS container instance [%s]: %s", arn, address)
        return address
