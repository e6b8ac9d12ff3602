"""User-facing warnings about degraded external services."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from movienight.services.circuit_breaker import BreakerStatus


@dataclass
class ServiceWarning:
    service: str
    message: str
    type: str = "warning"
    circuit_open: bool = False
    remaining_minutes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "message": self.message,
            "type": self.type,
            "circuitOpen": self.circuit_open,
            "remainingMinutes": self.remaining_minutes,
        }


class _HasWarning(Protocol):
    def warning(self) -> ServiceWarning | None: ...


def warning_for(display_name: str, service: str, status: BreakerStatus) -> ServiceWarning | None:
    """Turn a breaker status into a warning, or None if there is nothing to say."""
    if not status.configured or not status.failed:
        return None
    if status.circuit_open:
        message = f"{display_name} disabled for {status.remaining_minutes} min ({status.error})"
    else:
        message = f"{display_name} unavailable: {status.error}"
    return ServiceWarning(
        service=service,
        message=message,
        circuit_open=status.circuit_open,
        remaining_minutes=status.remaining_minutes,
    )


def collect_service_warnings(services: Iterable[_HasWarning]) -> list[ServiceWarning]:
    warnings = []
    for service in services:
        warning = service.warning()
        if warning is not None:
            warnings.append(warning)
    return warnings
