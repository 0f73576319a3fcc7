"""Logging infrastructure for Hazelcast ECS discovery.

All components log through hierarchical loggers under the
``hazelcast_ecs`` namespace (``hazelcast_ecs.resolver``,
``hazelcast_ecs.gateway``, ...). No handlers are installed unless
:func:`configure_logging` is called, so the host application's logging
setup applies by default.

Example:
    >>> from hazelcast_ecs.logging import configure_logging, get_logger
    >>> configure_logging(level=logging.DEBUG)
    >>> logger = get_logger("resolver")
    >>> logger.debug("Found ECS task: %s", task_arn)
"""

import logging
from typing import Optional


HAZELCAST_ECS_ROOT_LOGGER = "hazelcast_ecs"


class EcsLoggerFactory:
    """Factory for creating and managing discovery component loggers."""

    @classmethod
    def get_logger(cls, name: str = "") -> logging.Logger:
        """Get a logger for a discovery component.

        Args:
            name: Component name (e.g., 'gateway', 'introspection').
                  If empty, returns the root hazelcast_ecs logger.

        Returns:
            A logger instance for the specified component.
        """
        if name:
            logger_name = f"{HAZELCAST_ECS_ROOT_LOGGER}.{name}"
        else:
            logger_name = HAZELCAST_ECS_ROOT_LOGGER
        return logging.getLogger(logger_name)

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handler: Optional[logging.Handler] = None,
    ) -> logging.Logger:
        """Configure the discovery logging system.

        Args:
            level: Logging level (e.g., logging.DEBUG, logging.INFO).
            format_string: Format string for log messages.
            handler: Optional custom handler. If None, a StreamHandler is used.

        Returns:
            The configured root logger.
        """
        logger = logging.getLogger(HAZELCAST_ECS_ROOT_LOGGER)
        logger.setLevel(level)

        if not logger.handlers:
            if handler is None:
                handler = logging.StreamHandler()
            handler.setLevel(level)
            handler.setFormatter(logging.Formatter(format_string))
            logger.addHandler(handler)

        return logger

    @classmethod
    def set_level(cls, level: int, component: str = "") -> None:
        """Set logging level for a specific component or the root logger."""
        cls.get_logger(component).setLevel(level)


def get_logger(name: str = "") -> logging.Logger:
    """Get a discovery logger for a component.

    Args:
        name: Component name (e.g., 'resolver', 'strategy').

    Returns:
        Logger instance for the component.
    """
    return EcsLoggerFactory.get_logger(name)


def configure_logging(
    level: int = logging.INFO,
    format_string: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    """Configure the discovery logging system.

    This is the primary entry point for setting up logging.
    """
    return EcsLoggerFactory.configure(level, format_string, handler)


def set_level(level: int, component: str = "") -> None:
    """Set logging level for a component, or the root logger if empty."""
    EcsLoggerFactory.set_level(level, component)
