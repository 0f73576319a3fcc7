"""Configuration for Hazelcast ECS discovery."""

import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import yaml

from hazelcast_ecs.exceptions import ConfigurationException


INTROSPECTION_URL_ENV = "HAZELCAST_ECS_INTROSPECTION_URL"
INSTANCE_METADATA_URL_ENV = "HAZELCAST_ECS_INSTANCE_METADATA_URL"

DEFAULT_INTROSPECTION_URL = "http://172.17.0.1:51678"
DEFAULT_INSTANCE_METADATA_URL = "http://169.254.169.254"

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_RETRY_WAIT_MS = 250
DEFAULT_HTTP_TIMEOUT_SECONDS = 2.0

_YAML_ROOT_KEY = "hazelcast_ecs"


def resolve_introspection_url(override: Optional[str] = None) -> str:
    """Get the ECS agent introspection base URL in effect.

    Precedence: ``override``, then ``HAZELCAST_ECS_INTROSPECTION_URL``,
    then the docker bridge address of the agent.
    """
    return override or os.environ.get(INTROSPECTION_URL_ENV) or DEFAULT_INTROSPECTION_URL


def resolve_instance_metadata_url(override: Optional[str] = None) -> str:
    """Get the EC2 instance metadata base URL in effect."""
    return (
        override
        or os.environ.get(INSTANCE_METADATA_URL_ENV)
        or DEFAULT_INSTANCE_METADATA_URL
    )


def _coerce(data: dict, key: str, kind: Callable[[Any], Any], default: Any = None) -> Any:
    """Convert ``data[key]`` with ``kind``; properties often arrive as strings."""
    if key not in data:
        return default
    value = data[key]
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigurationException(
            f"{key} must be {'an integer' if kind is int else 'a number'}, got {value!r}"
        )


@dataclass
class EcsDiscoveryConfig:
    """Configuration for ECS discovery.

    Attributes:
        container_port: Container port Hazelcast listens on. Network bindings
            for this port identify the host port of each member.
        introspection_url: Override of the ECS agent introspection base URL.
            Falls back to ``HAZELCAST_ECS_INTROSPECTION_URL`` and then to
            the docker bridge address of the agent.
        instance_metadata_url: Override of the EC2 instance metadata base URL.
        cluster_name: Explicit ECS cluster name, bypasses discovery.
        service_name: Explicit ECS service name, bypasses discovery.
        region: AWS region name (boto3 default chain when unset).
        access_key: AWS access key ID (optional if using an IAM role).
        secret_key: AWS secret access key (optional if using an IAM role).
        iam_role: IAM role to assume (optional).
        max_attempts: Introspection query attempts before giving up.
        min_retry_wait_ms: Lower bound of the introspection retry backoff.
        http_timeout_seconds: Timeout of each introspection HTTP request.

    Example:
        >>> config = EcsDiscoveryConfig(container_port=5701, region="us-east-1")
        >>> config.resolved_introspection_url()
        'http://172.17.0.1:51678'
    """

    container_port: int
    introspection_url: Optional[str] = None
    instance_metadata_url: Optional[str] = None
    cluster_name: Optional[str] = None
    service_name: Optional[str] = None
    region: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    iam_role: Optional[str] = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    min_retry_wait_ms: int = DEFAULT_MIN_RETRY_WAIT_MS
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        if isinstance(self.container_port, bool) or not isinstance(self.container_port, int):
            raise ConfigurationException(
                f"container_port must be an integer, got {self.container_port!r}"
            )
        if not 0 < self.container_port <= 65535:
            raise ConfigurationException(
                f"container_port must be between 1 and 65535, got {self.container_port}"
            )
        if self.max_attempts < 1:
            raise ConfigurationException("max_attempts must be at least 1")
        if self.min_retry_wait_ms < 0:
            raise ConfigurationException("min_retry_wait_ms must not be negative")
        if self.http_timeout_seconds <= 0:
            raise ConfigurationException("http_timeout_seconds must be positive")
        if bool(self.access_key) != bool(self.secret_key):
            raise ConfigurationException(
                "access_key and secret_key must be configured together"
            )

    def resolved_introspection_url(self) -> str:
        """Get the ECS agent introspection base URL in effect."""
        return resolve_introspection_url(self.introspection_url)

    def resolved_instance_metadata_url(self) -> str:
        """Get the EC2 instance metadata base URL in effect."""
        return resolve_instance_metadata_url(self.instance_metadata_url)

    @classmethod
    def from_dict(cls, data: dict) -> "EcsDiscoveryConfig":
        """Create EcsDiscoveryConfig from a dictionary."""
        if "container_port" not in data:
            raise ConfigurationException("container_port is required")

        return cls(
            container_port=_coerce(data, "container_port", int),
            introspection_url=data.get("introspection_url"),
            instance_metadata_url=data.get("instance_metadata_url"),
            cluster_name=data.get("cluster_name"),
            service_name=data.get("service_name"),
            region=data.get("region"),
            access_key=data.get("access_key"),
            secret_key=data.get("secret_key"),
            iam_role=data.get("iam_role"),
            max_attempts=_coerce(data, "max_attempts", int, DEFAULT_MAX_ATTEMPTS),
            min_retry_wait_ms=_coerce(
                data, "min_retry_wait_ms", int, DEFAULT_MIN_RETRY_WAIT_MS
            ),
            http_timeout_seconds=_coerce(
                data, "http_timeout_seconds", float, DEFAULT_HTTP_TIMEOUT_SECONDS
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "EcsDiscoveryConfig":
        """Load configuration from a YAML file.

        The settings may sit at the document root or under a
        ``hazelcast_ecs`` key.

        Args:
            yaml_path: Path to the YAML configuration file.

        Returns:
            EcsDiscoveryConfig instance.

        Raises:
            ConfigurationException: If the file cannot be read or parsed.
        """
        return cls.from_dict(load_yaml(yaml_path))

    @classmethod
    def from_yaml_string(cls, yaml_content: str) -> "EcsDiscoveryConfig":
        """Load configuration from a YAML string.

        Raises:
            ConfigurationException: If the YAML cannot be parsed.
        """
        return cls.from_dict(parse_yaml(yaml_content))


def load_yaml(yaml_path: str) -> dict:
    """Read the discovery settings mapping of a YAML file.

    Raises:
        ConfigurationException: If the file cannot be read or parsed.
    """
    if not os.path.exists(yaml_path):
        raise ConfigurationException(f"Configuration file not found: {yaml_path}")

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigurationException(f"Failed to read configuration file: {e}")

    return parse_yaml(content)


def parse_yaml(yaml_content: str) -> dict:
    """Parse the discovery settings mapping of a YAML document.

    Raises:
        ConfigurationException: If the YAML cannot be parsed.
    """
    try:
        data = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ConfigurationException(f"Failed to parse YAML: {e}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigurationException("YAML configuration must be a mapping")

    if _YAML_ROOT_KEY in data:
        data = data[_YAML_ROOT_KEY] or {}

    return data
