"""Shared pytest fixtures for ECS discovery tests."""

import pytest
from unittest.mock import MagicMock

from hazelcast_ecs.config import (
    INSTANCE_METADATA_URL_ENV,
    INTROSPECTION_URL_ENV,
    EcsDiscoveryConfig,
)
from hazelcast_ecs.gateway import EcsGateway
from hazelcast_ecs.model import (
    ComputeInstanceAddress,
    Container,
    ContainerInstanceRef,
    NetworkBinding,
    Task,
)


CONTAINER_PORT = 5701


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep endpoint overrides of the host environment out of tests."""
    monkeypatch.delenv(INTROSPECTION_URL_ENV, raising=False)
    monkeypatch.delenv(INSTANCE_METADATA_URL_ENV, raising=False)


@pytest.fixture
def config():
    """Create an EcsDiscoveryConfig for the Hazelcast default port."""
    return EcsDiscoveryConfig(container_port=CONTAINER_PORT, region="us-east-1")


@pytest.fixture
def gateway():
    """Create a mock EcsGateway with no data."""
    mock = MagicMock(spec=EcsGateway)
    mock.list_task_arns.return_value = []
    mock.describe_tasks.return_value = []
    mock.describe_container_instances.return_value = []
    mock.describe_compute_instances.return_value = []
    return mock


@pytest.fixture
def backend(gateway):
    """Mock gateway answering from an in-memory cluster layout.

    Tests register tasks with ``backend.add_task`` and container instances
    with ``backend.add_instance``.
    """

    class Backend:
        def __init__(self):
            self.tasks = []
            self.instances = {}
            self.addresses = {}
            self.gateway = gateway
            gateway.list_task_arns.side_effect = lambda cluster, service=None: [
                task.arn for task in self.tasks
            ]
            gateway.describe_tasks.side_effect = lambda cluster, arns: [
                task for task in self.tasks if task.arn in arns
            ]
            gateway.describe_container_instances.side_effect = lambda cluster, arns: [
                ContainerInstanceRef(arn, self.instances[arn])
                for arn in arns
                if arn in self.instances
            ]
            gateway.describe_compute_instances.side_effect = lambda ids: [
                ComputeInstanceAddress(instance_id, self.addresses[instance_id])
                for instance_id in ids
                if instance_id in self.addresses
            ]

        def add_task(self, arn, container_instance_arn, *containers, group=None):
            task = Task(
                arn=arn,
                containers=list(containers),
                group=group,
                container_instance_arn=container_instance_arn,
            )
            self.tasks.append(task)
            return task

        @staticmethod
        def container(name, *bindings):
            """Build a container from (container_port, host_port) pairs."""
            return Container(
                name=name,
                network_bindings=[
                    NetworkBinding(container_port=c, host_port=h) for c, h in bindings
                ],
            )

        def add_instance(self, container_instance_arn, instance_id, private_ip):
            self.instances[container_instance_arn] = instance_id
            self.addresses[instance_id] = private_ip

    return Backend()
