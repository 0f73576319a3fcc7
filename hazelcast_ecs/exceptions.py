"""Hazelcast ECS discovery exceptions.

This module defines the exception hierarchy for the ECS discovery plugin.
All exceptions inherit from :class:`HazelcastEcsException`.

Only two conditions are fatal to a cluster member: the cluster name cannot
be determined while starting the strategy, and the ECS agent introspection
endpoint cannot be reached at all. Every other lookup failure is logged and
degrades to "no data".

Example:
    Handling startup failures::

        from hazelcast_ecs.exceptions import (
            DiscoveryException,
            IntrospectionUnavailableException,
        )

        try:
            strategy.start()
        except DiscoveryException as e:
            print(f"Cannot join cluster: {e} (caused by {e.cause!r})")
"""


class HazelcastEcsException(Exception):
    """Base class for all ECS discovery exceptions.

    Args:
        message: The error message describing the exception.
        cause: The underlying exception that caused this error, if any.

    Attributes:
        cause: The underlying cause of this exception, if any.
    """

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class IllegalStateException(HazelcastEcsException):
    """Raised when an operation is invoked in an illegal state.

    Example:
        - Calling ``discover_nodes`` before ``start``
        - Restarting a strategy that failed to start or was stopped
    """
    pass


class ConfigurationException(HazelcastEcsException):
    """Raised when the discovery configuration is invalid.

    Example:
        - Missing or out-of-range container port
        - Unreadable or malformed YAML configuration file
    """
    pass


class DiscoveryException(HazelcastEcsException):
    """Raised when discovery cannot proceed."""
    pass


class ClusterNameDiscoveryException(DiscoveryException):
    """Raised when the ECS cluster name of the local task cannot be determined.

    This is fatal to starting the discovery strategy: a member must not
    proceed without a cluster identity.
    """
    pass


class ServiceNameDiscoveryException(DiscoveryException):
    """Raised when service name discovery cannot query the ECS agent."""
    pass


class PublicAddressDiscoveryException(DiscoveryException):
    """Raised when the externally reachable address of this member cannot be built."""
    pass


class IntrospectionUnavailableException(HazelcastEcsException):
    """Raised when the ECS agent introspection endpoint cannot be reached.

    Distinguishes an endpoint that is categorically unreachable (every
    attempt failed) from a query that simply had no matching data.

    Args:
        message: The error message.
        attempts: Number of attempts made before giving up.
        cause: The error raised by the final attempt.
    """

    def __init__(self, message: str, attempts: int = 0, cause: Exception = None):
        super().__init__(message, cause)
        self._attempts = attempts

    @property
    def attempts(self) -> int:
        """Get the number of attempts made before giving up."""
        return self._attempts
