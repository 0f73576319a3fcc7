"""Clients for node-local metadata endpoints.

:class:`AgentIntrospectionClient` queries the ECS container agent
introspection API, which reveals the cluster of the local container
instance and the task a given docker container belongs to.
:class:`InstanceMetadataClient` queries the EC2 instance metadata service
for the private IP address of the host.

Both endpoints are link-local HTTP services that may be briefly unavailable
while a container starts, so every query is retried with exponential
backoff. An endpoint that answers with an HTTP error is not retried: the
query simply has no data. An endpoint that cannot be reached at all within
the attempt budget raises :class:`IntrospectionUnavailableException`.

See:
    http://docs.aws.amazon.com/AmazonECS/latest/developerguide/ecs-agent-introspection.html
"""

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Callable, Optional

from hazelcast_ecs.config import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_RETRY_WAIT_MS,
    EcsDiscoveryConfig,
    resolve_instance_metadata_url,
    resolve_introspection_url,
)
from hazelcast_ecs.exceptions import IntrospectionUnavailableException
from hazelcast_ecs.logging import get_logger
from hazelcast_ecs.lookup import Lookup
from hazelcast_ecs.model import AgentMetadata, Task


METADATA_PATH = "/v1/metadata"
TASKS_PATH = "/v1/tasks"
LOCAL_IPV4_PATH = "/latest/meta-data/local-ipv4"


class _RetryingHttpClient:
    """GET requests against a node-local endpoint with bounded retries."""

    def __init__(
        self,
        base_url: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_retry_wait_ms: int = DEFAULT_MIN_RETRY_WAIT_MS,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._base_url = base_url.rstrip("/")
        self._max_attempts = max_attempts
        self._min_retry_wait_ms = min_retry_wait_ms
        self._timeout = timeout
        self._logger = logger
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_ms(self, attempt: int) -> int:
        """Get the wait after the failed attempt with 0-based index ``attempt``."""
        pause = (2 ** attempt) * self._min_retry_wait_ms
        return max(self._min_retry_wait_ms, pause)

    def get_data(self, path: str) -> Lookup[bytes]:
        """GET ``path`` relative to the base URL and return the raw body.

        Every failed attempt is followed by its backoff, so with the defaults
        the fatal error is raised after 250 + 500 + 1000 ms of waiting.

        Returns:
            The undecoded response body, or ``NOT_FOUND`` if the endpoint
            answered with an HTTP error.

        Raises:
            IntrospectionUnavailableException: If every attempt failed.
        """
        url = f"{self._base_url}{path}"
        last_error = None

        for attempt in range(self._max_attempts):
            try:
                return Lookup.found(self._read(url))
            except urllib.error.HTTPError as e:
                self._logger.warning(
                    "Unable to retrieve the requested metadata from %s: HTTP %s",
                    url, e.code,
                )
                return Lookup.not_found(f"HTTP {e.code} from {url}")
            except Exception as e:
                last_error = e
                self._logger.debug(
                    "Attempt %d/%d to query %s failed: %s",
                    attempt + 1, self._max_attempts, url, e,
                )

            self._sleep(self.backoff_ms(attempt) / 1000.0)

        raise IntrospectionUnavailableException(
            f"Unable to contact {url} after {self._max_attempts} attempts",
            attempts=self._max_attempts,
            cause=last_error,
        ) from last_error

    def _read(self, url: str) -> bytes:
        request = urllib.request.Request(
            url, headers={"Accept": "application/json"}, method="GET"
        )
        with urllib.request.urlopen(request, timeout=self._timeout) as response:
            return response.read()


class AgentIntrospectionClient(_RetryingHttpClient):
    """Client for the ECS container agent introspection API.

    Example:
        >>> client = AgentIntrospectionClient()
        >>> metadata = client.fetch_metadata()
        >>> if metadata.is_found:
        ...     print(metadata.value.cluster)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_retry_wait_ms: int = DEFAULT_MIN_RETRY_WAIT_MS,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the introspection client.

        Args:
            base_url: Agent base URL. Defaults to the URL in effect for an
                empty configuration (environment override, else the docker
                bridge address of the agent).
            max_attempts: Attempts per query before giving up.
            min_retry_wait_ms: Lower bound of the backoff between attempts.
            timeout: Timeout of each HTTP request in seconds.
            logger: Logger to use instead of ``hazelcast_ecs.introspection``.
            sleep: Function used to wait between attempts.
        """
        super().__init__(
            base_url or resolve_introspection_url(),
            max_attempts=max_attempts,
            min_retry_wait_ms=min_retry_wait_ms,
            timeout=timeout,
            logger=logger or get_logger("introspection"),
            sleep=sleep,
        )

    @classmethod
    def from_config(cls, config: EcsDiscoveryConfig, **kwargs) -> "AgentIntrospectionClient":
        return cls(
            base_url=config.resolved_introspection_url(),
            max_attempts=config.max_attempts,
            min_retry_wait_ms=config.min_retry_wait_ms,
            timeout=config.http_timeout_seconds,
            **kwargs,
        )

    def fetch_metadata(self) -> Lookup[AgentMetadata]:
        """Get the metadata of the local container instance."""
        return self._fetch_json(METADATA_PATH, AgentMetadata.from_agent_dict, "Metadata")

    def fetch_task(self, docker_id: str) -> Lookup[Task]:
        """Get the task running the docker container ``docker_id``.

        Both long- and short-form docker container ids are supported.
        """
        query = urllib.parse.urlencode({"dockerid": docker_id})
        return self._fetch_json(f"{TASKS_PATH}?{query}", Task.from_agent_dict, "Task")

    def _fetch_json(self, path: str, decode, kind: str) -> Lookup:
        data = self.get_data(path)
        if not data.is_found:
            return data

        body = data.value
        try:
            parsed = json.loads(body.decode("utf-8"))
            if not isinstance(parsed, dict):
                raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
            return Lookup.found(decode(parsed))
        except (ValueError, TypeError, AttributeError) as e:
            self._logger.warning(
                "Unable to parse ECS Agent %s (%s): %s",
                kind, body.decode("utf-8", "replace"), e, exc_info=True,
            )
            return Lookup.failed(f"Malformed ECS Agent {kind}", cause=e)


class InstanceMetadataClient(_RetryingHttpClient):
    """Client for the EC2 instance metadata service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_retry_wait_ms: int = DEFAULT_MIN_RETRY_WAIT_MS,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(
            base_url or resolve_instance_metadata_url(),
            max_attempts=max_attempts,
            min_retry_wait_ms=min_retry_wait_ms,
            timeout=timeout,
            logger=logger or get_logger("introspection"),
            sleep=sleep,
        )

    @classmethod
    def from_config(cls, config: EcsDiscoveryConfig, **kwargs) -> "InstanceMetadataClient":
        return cls(
            base_url=config.resolved_instance_metadata_url(),
            max_attempts=config.max_attempts,
            min_retry_wait_ms=config.min_retry_wait_ms,
            timeout=config.http_timeout_seconds,
            **kwargs,
        )

    def fetch_private_ip(self) -> Lookup[str]:
        """Get the private IPv4 address of the local EC2 instance."""
        result = self.get_data(LOCAL_IPV4_PATH)
        if not result.is_found:
            return result

        try:
            private_ip = result.value.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            self._logger.warning("Unable to decode local-ipv4 %r: %s", result.value, e)
            return Lookup.failed("Malformed local-ipv4 in instance metadata", cause=e)

        if not private_ip:
            return Lookup.not_found("Empty local-ipv4 in instance metadata")
        return Lookup.found(private_ip)

