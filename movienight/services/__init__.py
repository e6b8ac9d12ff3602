"""External metadata services, each guarded by its own circuit breaker."""

import httpx

from movienight.config import Settings

from .base import ExternalService

# Service registry - import services here to register them
_services: list[type[ExternalService]] = []


def register_service(service_class: type[ExternalService]) -> type[ExternalService]:
    """Decorator to register a service class."""
    _services.append(service_class)
    return service_class


def get_all_services() -> list[type[ExternalService]]:
    """Return all registered service classes."""
    return _services.copy()


def build_services(settings: Settings, client: httpx.AsyncClient) -> list[ExternalService]:
    """Instantiate every registered service against one shared client."""
    return [service_class(settings, client) for service_class in _services]


from . import ratings, watch_history  # noqa: E402,F401
