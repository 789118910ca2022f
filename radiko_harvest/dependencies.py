"""
Dependency Injection Configuration

Keeps the artifact store and the upstream client out of module globals so the
harvest pipeline and the read server can run against in-memory fakes.
"""
import logging
from typing import Callable, Any, TypeVar

from radiko_harvest.config import settings
from radiko_harvest.services.artifact_store import ArtifactStore
from radiko_harvest.services.radiko_source_service import RadikoSourceClient, RetryPolicy
from radiko_harvest.services.read_service import ArtifactReader


logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceLocator:
    """
    Simple service locator for managing application services.

    Supports both singletons (same instance reused) and factories
    (new instance created on each lookup).
    """

    def __init__(self):
        """Initialize the service locator."""
        self._singletons: dict[type, Any] = {}
        self._factories: dict[type, Callable[[], Any]] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        """Register a singleton service instance."""
        self._singletons[service_type] = instance
        logger.debug(f"Registered singleton: {service_type.__name__}")

    def register_factory(self, service_type: type[T], factory: Callable[[], T]) -> None:
        """Register a factory function for creating service instances."""
        self._factories[service_type] = factory
        logger.debug(f"Registered factory: {service_type.__name__}")

    def get(self, service_type: type[T]) -> T:
        """
        Get a service instance.

        Returns singleton if registered, otherwise creates new instance via factory.

        Raises:
            KeyError: If service type is not registered
        """
        if service_type in self._singletons:
            return self._singletons[service_type]

        if service_type in self._factories:
            return self._factories[service_type]()

        raise KeyError(f"Service {service_type.__name__} not registered")


# Global service locator instance
_service_locator: ServiceLocator | None = None


def get_service_locator() -> ServiceLocator:
    """Get the global service locator instance."""
    global _service_locator
    if _service_locator is None:
        _service_locator = ServiceLocator()
        _service_locator.register_factory(RadikoSourceClient, create_source_client)
    return _service_locator


def reset_service_locator() -> None:
    """
    Reset the service locator (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _service_locator
    _service_locator = None


def create_source_client() -> RadikoSourceClient:
    """Build an upstream client from configuration"""
    return RadikoSourceClient(
        settings.station_list_url,
        settings.weekly_schedule_url_template,
        timeout=settings.http_timeout_sec,
        retry_policy=RetryPolicy(
            max_attempts=settings.fetch_max_attempts,
            backoff_initial_sec=settings.fetch_backoff_initial_sec,
            backoff_multiplier=settings.fetch_backoff_multiplier,
            backoff_max_sec=settings.fetch_backoff_max_sec,
        ),
    )


def get_artifact_store() -> ArtifactStore:
    """Store registered at startup"""
    return get_service_locator().get(ArtifactStore)


def get_artifact_reader() -> ArtifactReader:
    """FastAPI dependency for the read route"""
    return ArtifactReader(get_artifact_store(), publish_mode=settings.publish_mode)
