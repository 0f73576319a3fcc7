"""Typed access to the ECS and EC2 control-plane APIs.

:class:`EcsGateway` is the only component that performs remote,
authenticated control-plane calls. Every call tolerates failure: errors
are logged and reported as "no data" (an empty list) so that discovery can
continue with whatever the other calls returned.
"""

import logging
from typing import Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from hazelcast_ecs.config import EcsDiscoveryConfig
from hazelcast_ecs.exceptions import DiscoveryException
from hazelcast_ecs.logging import get_logger
from hazelcast_ecs.model import ComputeInstanceAddress, ContainerInstanceRef, Task


# DescribeTasks and DescribeContainerInstances accept at most 100 ARNs.
DESCRIBE_BATCH_SIZE = 100

_ROLE_SESSION_NAME = "HazelcastEcsDiscovery"


def _batches(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class EcsGateway:
    """Wrapper around boto3 ECS and EC2 clients.

    The clients are injected so tests can substitute fakes; use
    :meth:`from_config` to build real ones.

    Example:
        >>> gateway = EcsGateway.from_config(EcsDiscoveryConfig(container_port=5701))
        >>> gateway.list_task_arns("my-cluster", "hazelcast-service")
        ['arn:aws:ecs:us-east-1:123456789012:task/my-cluster/5c26ebf5...']
    """

    def __init__(self, ecs_client, ec2_client, logger: Optional[logging.Logger] = None):
        self._ecs = ecs_client
        self._ec2 = ec2_client
        self._logger = logger or get_logger("gateway")

    @classmethod
    def from_config(cls, config: EcsDiscoveryConfig, **kwargs) -> "EcsGateway":
        """Create boto3 clients for the configured region and credentials.

        Raises:
            DiscoveryException: If the session or clients cannot be created.
        """
        session_kwargs = {}
        if config.region:
            session_kwargs["region_name"] = config.region
        if config.access_key and config.secret_key:
            session_kwargs["aws_access_key_id"] = config.access_key
            session_kwargs["aws_secret_access_key"] = config.secret_key

        try:
            session = boto3.Session(**session_kwargs)

            if config.iam_role:
                sts = session.client("sts")
                assumed_role = sts.assume_role(
                    RoleArn=config.iam_role,
                    RoleSessionName=_ROLE_SESSION_NAME,
                )
                credentials = assumed_role["Credentials"]
                session = boto3.Session(
                    aws_access_key_id=credentials["AccessKeyId"],
                    aws_secret_access_key=credentials["SecretAccessKey"],
                    aws_session_token=credentials["SessionToken"],
                    region_name=session.region_name,
                )

            return cls(session.client("ecs"), session.client("ec2"), **kwargs)

        except (BotoCoreError, ClientError) as e:
            raise DiscoveryException(f"Failed to initialize AWS clients: {e}", cause=e) from e

    def list_task_arns(self, cluster: str, service_name: Optional[str] = None) -> List[str]:
        """List the ARNs of the running tasks of a cluster, optionally of one service."""
        list_kwargs = {"cluster": cluster}
        if service_name:
            list_kwargs["serviceName"] = service_name

        task_arns = []
        try:
            paginator = self._ecs.get_paginator("list_tasks")
            for page in paginator.paginate(**list_kwargs):
                task_arns.extend(page.get("taskArns", []))
        except Exception:
            self._logger.error("Failed to get list of ECS tasks", exc_info=True)
            return []

        for task_arn in task_arns:
            self._logger.debug("Found ECS task: %s", task_arn)
        return task_arns

    def describe_tasks(self, cluster: str, task_arns: List[str]) -> List[Task]:
        """Describe tasks. Batches that fail contribute no tasks."""
        tasks = []
        for batch in _batches(list(task_arns), DESCRIBE_BATCH_SIZE):
            try:
                response = self._ecs.describe_tasks(cluster=cluster, tasks=batch)
            except Exception:
                self._logger.error("Failed to retrieve ECS task details", exc_info=True)
                continue

            self._log_failures(response, "task")
            for task in response.get("tasks") or []:
                if task:
                    self._logger.debug("ECS task details: %s", task)
                    tasks.append(Task.from_ecs_dict(task))
        return tasks

    def describe_container_instances(
        self, cluster: str, container_instance_arns: List[str]
    ) -> List[ContainerInstanceRef]:
        """Describe container instances, yielding their EC2 instance ids."""
        refs = []
        for batch in _batches(list(container_instance_arns), DESCRIBE_BATCH_SIZE):
            try:
                response = self._ecs.describe_container_instances(
                    cluster=cluster, containerInstances=batch
                )
            except Exception:
                self._logger.error(
                    "Failed to get ECS container instances %s", batch, exc_info=True
                )
                continue

            self._log_failures(response, "container instance")
            for instance in response.get("containerInstances") or []:
                if instance:
                    self._logger.debug("Found ECS container instance: %s", instance)
                    refs.append(ContainerInstanceRef.from_ecs_dict(instance))
        return refs

    def describe_compute_instances(self, instance_ids: List[str]) -> List[ComputeInstanceAddress]:
        """Describe EC2 instances, yielding their private IP addresses."""
        if not instance_ids:
            return []

        try:
            response = self._ec2.describe_instances(InstanceIds=list(instance_ids))
        except Exception:
            self._logger.error(
                "Failed to get EC2 instances %s", list(instance_ids), exc_info=True
            )
            return []

        addresses = []
        for reservation in response.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                addresses.append(ComputeInstanceAddress.from_ec2_dict(instance))
        return addresses

    def _log_failures(self, response: dict, kind: str) -> None:
        for failure in response.get("failures") or []:
            self._logger.warning(
                "ECS could not describe %s %s: %s",
                kind, failure.get("arn"), failure.get("reason"),
            )
