"""
Service Container - Lightweight dependency injection for the QC Image API.
Provides centralized service registration and lazy instantiation.
"""
from typing import Dict, Any, Callable, TypeVar
from loguru import logger

T = TypeVar('T')


class ServiceContainer:
    """
    Lightweight dependency injection container.

    Features:
    - Lazy instantiation (services created on first access)
    - Singleton lifecycle (one instance per service)
    - Override support for testing

    Usage:
        container.register("qc_images", QCImageService)
        svc = container.get("qc_images")  # Creates instance on first call
    """

    def __init__(self):
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._instances: Dict[str, Any] = {}

    def register(self, name: str, factory: Callable[[], T]) -> None:
        """
        Register a service factory function.

        Args:
            name: Service identifier (e.g., "upstream_client")
            factory: Callable that creates the service instance
        """
        self._factories[name] = factory
        logger.debug(f"[Container] Registered service: {name}")

    def get(self, name: str) -> Any:
        """
        Get or create a service instance (singleton pattern).

        Raises:
            KeyError: If service not registered
        """
        if name not in self._instances:
            if name not in self._factories:
                raise KeyError(f"Service '{name}' not registered. "
                             f"Available: {list(self._factories.keys())}")
            self._instances[name] = self._factories[name]()
            logger.debug(f"[Container] Instantiated service: {name}")
        return self._instances[name]

    def has(self, name: str) -> bool:
        """Check if a service is registered."""
        return name in self._factories

    def is_instantiated(self, name: str) -> bool:
        return name in self._instances

    def reset(self) -> None:
        """
        Reset all instances (for testing or shutdown).
        Factories remain registered.
        """
        self._instances.clear()
        logger.debug("[Container] All service instances cleared")

    def override(self, name: str, instance: Any) -> None:
        """
        Override a service with a custom instance (for testing/mocking).
        """
        self._instances[name] = instance
        logger.debug(f"[Container] Overrode service: {name}")


# Global container instance
container = ServiceContainer()


# Service name constants (prevents typos)
class Services:
    UPSTREAM_CLIENT = "upstream_client"
    METADATA_FETCHER = "metadata_fetcher"
    IMAGE_FETCHER = "image_fetcher"
    WATERMARK_RESOLVER = "watermark_resolver"
    COMPOSITOR = "compositor"
    QC_IMAGES = "qc_images"


# ─── Typed Accessors ─────────────────────────────────────────────
# The TYPE_CHECKING imports are erased at runtime → no circular imports.

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qc_api.services.qc_images import QCImageService


def get_qc_images() -> "QCImageService":
    return container.get(Services.QC_IMAGES)
