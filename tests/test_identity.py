"""Tests for local task identity resolution."""

import pytest
from unittest.mock import MagicMock

from hazelcast_ecs.exceptions import (
    ClusterNameDiscoveryException,
    IntrospectionUnavailableException,
    PublicAddressDiscoveryException,
    ServiceNameDiscoveryException,
)
from hazelcast_ecs.identity import IdentityResolver
from hazelcast_ecs.introspection import AgentIntrospectionClient, InstanceMetadataClient
from hazelcast_ecs.lookup import Lookup
from hazelcast_ecs.model import AgentMetadata, Container, Task


CLUSTER = "default-ecs-cluster-Cluster-1XC1HAMRI9XVK"
TASK_ARN = "arn:aws:ecs:us-east-1:10000000000:task/5c26ebf5-56ae-4121-9f90-28a5f1295851"
CONTAINER_INSTANCE_ARN = "arn:aws:ecs:us-east-1:10000000000:container-instance/f973c8d6"
DOCKER_SHORT_ID = "c63e3a0c7b25"
DOCKER_ID = DOCKER_SHORT_ID + "393c743d6b1552806e36066bbe656f80130a315286fa48e6b003"
DOCKER_NAME = "ecs-service-TaskDefinition-KLW9WAUEMIX1-1-foo-8a979cfbd4c3fdb28301"
PRIVATE_IP = "172.25.70.10"
HOST_PORT = 32863


def _agent_task(*containers):
    return Task(
        arn=TASK_ARN,
        desired_status="RUNNING",
        known_status="RUNNING",
        containers=list(containers) or [
            Container(name="foo", docker_id=DOCKER_ID, docker_name=DOCKER_NAME)
        ],
    )


@pytest.fixture
def introspection():
    mock = MagicMock(spec=AgentIntrospectionClient)
    mock.fetch_metadata.return_value = Lookup.found(
        AgentMetadata(cluster=CLUSTER, container_instance_arn=CONTAINER_INSTANCE_ARN)
    )
    mock.fetch_task.return_value = Lookup.found(_agent_task())
    return mock


@pytest.fixture
def instance_metadata():
    mock = MagicMock(spec=InstanceMetadataClient)
    mock.fetch_private_ip.return_value = Lookup.found(PRIVATE_IP)
    return mock


@pytest.fixture
def identity(backend, introspection, instance_metadata):
    return IdentityResolver(
        backend.gateway,
        introspection,
        instance_metadata,
        hostname_provider=lambda: DOCKER_SHORT_ID,
    )


class TestDiscoverClusterName:
    """Tests for IdentityResolver.discover_cluster_name."""

    def test_cluster_from_agent_metadata(self, identity):
        assert identity.discover_cluster_name() == CLUSTER

    def test_agent_unreachable(self, identity, introspection):
        error = IntrospectionUnavailableException("unreachable", attempts=3)
        introspection.fetch_metadata.side_effect = error

        with pytest.raises(ClusterNameDiscoveryException) as exc_info:
            identity.discover_cluster_name()

        assert exc_info.value.cause is error

    def test_metadata_not_found(self, identity, introspection):
        introspection.fetch_metadata.return_value = Lookup.not_found("HTTP 404")

        with pytest.raises(ClusterNameDiscoveryException, match="HTTP 404"):
            identity.discover_cluster_name()

    def test_metadata_malformed(self, identity, introspection):
        cause = ValueError("Expecting value")
        introspection.fetch_metadata.return_value = Lookup.failed("bad body", cause)

        with pytest.raises(ClusterNameDiscoveryException) as exc_info:
            identity.discover_cluster_name()

        assert exc_info.value.cause is cause

    def test_metadata_without_cluster(self, identity, introspection):
        introspection.fetch_metadata.return_value = Lookup.found(AgentMetadata())

        with pytest.raises(ClusterNameDiscoveryException):
            identity.discover_cluster_name()


class TestDiscoverServiceName:
    """Tests for IdentityResolver.discover_service_name."""

    def test_service_from_task_group(self, identity, backend, introspection):
        backend.add_task(TASK_ARN, CONTAINER_INSTANCE_ARN, group="service:foo-service")

        assert identity.discover_service_name(CLUSTER) == "foo-service"
        introspection.fetch_task.assert_called_once_with(DOCKER_SHORT_ID)
        backend.gateway.describe_tasks.assert_called_once_with(CLUSTER, [TASK_ARN])

    def test_task_not_in_a_service(self, identity, backend):
        backend.add_task(TASK_ARN, CONTAINER_INSTANCE_ARN, group="family:foo")

        assert identity.discover_service_name(CLUSTER) is None

    def test_task_without_group(self, identity, backend):
        backend.add_task(TASK_ARN, CONTAINER_INSTANCE_ARN)

        assert identity.discover_service_name(CLUSTER) is None

    def test_task_unknown_to_control_plane(self, identity):
        assert identity.discover_service_name(CLUSTER) is None

    def test_task_unknown_to_agent(self, identity, backend, introspection):
        introspection.fetch_task.return_value = Lookup.not_found("HTTP 404")

        assert identity.discover_service_name(CLUSTER) is None
        backend.gateway.describe_tasks.assert_not_called()

    def test_no_container_matches_host_name(self, identity, backend, introspection):
        introspection.fetch_task.return_value = Lookup.found(
            _agent_task(Container(name="bar", docker_id="0123456789ab", docker_name="other"))
        )
        backend.add_task(TASK_ARN, CONTAINER_INSTANCE_ARN, group="service:foo-service")

        assert identity.discover_service_name(CLUSTER) is None
        backend.gateway.describe_tasks.assert_not_called()

    def test_container_matched_by_docker_name(self, backend, introspection):
        backend.add_task(TASK_ARN, CONTAINER_INSTANCE_ARN, group="service:foo-service")
        identity = IdentityResolver(
            backend.gateway, introspection, hostname_provider=lambda: DOCKER_NAME
        )

        assert identity.discover_service_name(CLUSTER) == "foo-service"

    def test_agent_unreachable(self, identity, introspection):
        introspection.fetch_task.side_effect = IntrospectionUnavailableException("down")

        with pytest.raises(ServiceNameDiscoveryException):
            identity.discover_service_name(CLUSTER)


class TestDiscoverPublicAddress:
    """Tests for IdentityResolver.discover_public_address."""

    def test_private_ip_and_host_port(self, identity, backend):
        backend.add_task(
            TASK_ARN,
            CONTAINER_INSTANCE_ARN,
            backend.container("foo", (5701, HOST_PORT)),
            group="service:foo-service",
        )

        assert identity.discover_public_address(5701) == f"{PRIVATE_IP}:{HOST_PORT}"
        backend.gateway.describe_tasks.assert_called_once_with(CLUSTER, [TASK_ARN])

    def test_binding_of_local_container_only(self, identity, backend):
        backend.add_task(
            TASK_ARN,
            CONTAINER_INSTANCE_ARN,
            backend.container("sidecar", (5701, 40000)),
            backend.container("foo", (8080, 40001), (5701, HOST_PORT)),
        )

        assert identity.discover_public_address(5701) == f"{PRIVATE_IP}:{HOST_PORT}"

    def test_no_binding_for_port(self, identity, backend):
        backend.add_task(
            TASK_ARN, CONTAINER_INSTANCE_ARN, backend.container("foo", (8080, 40001))
        )

        with pytest.raises(PublicAddressDiscoveryException, match="5701"):
            identity.discover_public_address(5701)

    def test_first_binding_without_host_port(self, identity, backend):
        backend.add_task(
            TASK_ARN,
            CONTAINER_INSTANCE_ARN,
            backend.container("foo", (5701, None), (5701, HOST_PORT)),
        )

        with pytest.raises(PublicAddressDiscoveryException):
            identity.discover_public_address(5701)

    def test_local_container_missing_from_control_plane(self, identity, backend):
        backend.add_task(
            TASK_ARN, CONTAINER_INSTANCE_ARN, backend.container("bar", (5701, HOST_PORT))
        )

        with pytest.raises(PublicAddressDiscoveryException):
            identity.discover_public_address(5701)

    def test_task_missing_from_control_plane(self, identity):
        with pytest.raises(PublicAddressDiscoveryException):
            identity.discover_public_address(5701)

    def test_private_ip_not_found(self, identity, instance_metadata):
        instance_metadata.fetch_private_ip.return_value = Lookup.not_found("HTTP 404")

        with pytest.raises(PublicAddressDiscoveryException):
            identity.discover_public_address(5701)

    def test_instance_metadata_unreachable(self, identity, instance_metadata):
        instance_metadata.fetch_private_ip.side_effect = IntrospectionUnavailableException(
            "down"
        )

        with pytest.raises(PublicAddressDiscoveryException):
            identity.discover_public_address(5701)

    def test_cluster_unknown(self, identity, introspection):
        introspection.fetch_metadata.return_value = Lookup.not_found("HTTP 404")

        with pytest.raises(PublicAddressDiscoveryException) as exc_info:
            identity.discover_public_address(5701)

        assert isinstance(exc_info.value.cause, ClusterNameDiscoveryException)

    def test_local_task_unknown(self, identity, introspection):
        introspection.fetch_task.return_value = Lookup.not_found("HTTP 404")

        with pytest.raises(PublicAddressDiscoveryException):
            identity.discover_public_address(5701)

    def test_without_instance_metadata_client(self, backend, introspection):
        identity = IdentityResolver(backend.gateway, introspection)

        with pytest.raises(PublicAddressDiscoveryException):
            identity.discover_public_address(5701)
