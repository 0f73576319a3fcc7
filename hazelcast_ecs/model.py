"""Data model shared by the introspection client, gateway and resolvers.

Tasks and containers arrive from two sources with different schemas: the
ECS agent introspection API (PascalCase JSON) and the ECS control plane via
boto3 (camelCase dicts). Both are normalized into the same dataclasses.
Unknown fields are ignored and missing fields become ``None``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class AgentMetadata:
    """Identity of the local container instance as reported by the ECS agent.

    Attributes:
        cluster: Name of the ECS cluster the container instance belongs to.
        container_instance_arn: ARN of the local container instance.
        version: ECS agent version string.
    """

    cluster: Optional[str] = None
    container_instance_arn: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def from_agent_dict(cls, data: Dict[str, Any]) -> "AgentMetadata":
        """Create AgentMetadata from a ``/v1/metadata`` response body."""
        return cls(
            cluster=data.get("Cluster"),
            container_instance_arn=data.get("ContainerInstanceArn"),
            version=data.get("Version"),
        )


@dataclass(frozen=True)
class NetworkBinding:
    """Mapping of a container port to a port exposed on the host."""

    container_port: Optional[int] = None
    host_port: Optional[int] = None
    bind_ip: Optional[str] = None
    protocol: Optional[str] = None

    @classmethod
    def from_ecs_dict(cls, data: Dict[str, Any]) -> "NetworkBinding":
        return cls(
            container_port=data.get("containerPort"),
            host_port=data.get("hostPort"),
            bind_ip=data.get("bindIP"),
            protocol=data.get("protocol"),
        )


@dataclass
class Container:
    """A container of an ECS task.

    Only containers reported by the ECS agent carry docker identity
    (``docker_id``, ``docker_name``); only containers reported by the
    control plane carry network bindings. The container ``name`` is the
    key that correlates the two views.
    """

    name: Optional[str] = None
    docker_id: Optional[str] = None
    docker_name: Optional[str] = None
    container_arn: Optional[str] = None
    network_bindings: List[NetworkBinding] = field(default_factory=list)

    @classmethod
    def from_agent_dict(cls, data: Dict[str, Any]) -> "Container":
        return cls(
            name=data.get("Name"),
            docker_id=data.get("DockerId"),
            docker_name=data.get("DockerName"),
        )

    @classmethod
    def from_ecs_dict(cls, data: Dict[str, Any]) -> "Container":
        return cls(
            name=data.get("name"),
            docker_id=data.get("runtimeId"),
            container_arn=data.get("containerArn"),
            network_bindings=[
                NetworkBinding.from_ecs_dict(binding)
                for binding in data.get("networkBindings") or []
            ],
        )

    def matches_host(self, hostname: str) -> bool:
        """Check whether this container is the one running under ``hostname``.

        Inside a bridge-mode container the host name is the short docker id,
        unless the task definition overrides it with the docker name.
        """
        if not hostname:
            return False
        if self.docker_id and self.docker_id.startswith(hostname):
            return True
        return self.docker_name == hostname


@dataclass
class Task:
    """An ECS task and its containers.

    Attributes:
        arn: Task ARN.
        desired_status: Status the scheduler is driving the task towards.
        known_status: Last status reported for the task.
        family: Task definition family.
        version: Task definition revision.
        containers: Containers of the task, in reported order.
        group: Task group, ``service:<name>`` for tasks started by a service.
        container_instance_arn: Container instance hosting the task.
    """

    arn: Optional[str] = None
    desired_status: Optional[str] = None
    known_status: Optional[str] = None
    family: Optional[str] = None
    version: Optional[str] = None
    containers: List[Container] = field(default_factory=list)
    group: Optional[str] = None
    container_instance_arn: Optional[str] = None

    @classmethod
    def from_agent_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a Task from a ``/v1/tasks?dockerid=`` response body."""
        return cls(
            arn=data.get("Arn"),
            desired_status=data.get("DesiredStatus"),
            known_status=data.get("KnownStatus"),
            family=data.get("Family"),
            version=data.get("Version"),
            containers=[
                Container.from_agent_dict(container)
                for container in data.get("Containers") or []
            ],
        )

    @classmethod
    def from_ecs_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create a Task from an entry of a ``describe_tasks`` response."""
        family = None
        version = None
        definition_arn = data.get("taskDefinitionArn")
        if definition_arn:
            # arn:aws:ecs:<region>:<account>:task-definition/<family>:<revision>
            family_revision = definition_arn.rsplit("/", 1)[-1]
            if ":" in family_revision:
                family, _, version = family_revision.rpartition(":")

        return cls(
            arn=data.get("taskArn"),
            desired_status=data.get("desiredStatus"),
            known_status=data.get("lastStatus"),
            family=family,
            version=version,
            containers=[
                Container.from_ecs_dict(container)
                for container in data.get("containers") or []
            ],
            group=data.get("group"),
            container_instance_arn=data.get("containerInstanceArn"),
        )

    def find_container(self, name: str) -> Optional[Container]:
        """Get the first container with the given name, if any."""
        for container in self.containers:
            if container.name == name:
                return container
        return None


@dataclass(frozen=True)
class ContainerInstanceRef:
    """Join key between a container instance and its EC2 instance."""

    container_instance_arn: str
    compute_instance_id: Optional[str] = None

    @classmethod
    def from_ecs_dict(cls, data: Dict[str, Any]) -> "ContainerInstanceRef":
        return cls(
            container_instance_arn=data.get("containerInstanceArn"),
            compute_instance_id=data.get("ec2InstanceId"),
        )


@dataclass(frozen=True)
class ComputeInstanceAddress:
    """Private address of an EC2 instance."""

    compute_instance_id: str
    private_ip_address: Optional[str] = None

    @classmethod
    def from_ec2_dict(cls, data: Dict[str, Any]) -> "ComputeInstanceAddress":
        return cls(
            compute_instance_id=data.get("InstanceId"),
            private_ip_address=data.get("PrivateIpAddress"),
        )


@dataclass(frozen=True, order=True)
class DiscoveredEndpoint:
    """A reachable ``(private IP, host port)`` pair of one cluster member."""

    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"
