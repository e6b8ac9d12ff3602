"""Abstract base class for circuit-breaker guarded external services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from movienight.config import Settings
from movienight.log import get_logger
from movienight.services.circuit_breaker import BreakerStatus, CircuitBreaker
from movienight.services.warnings import ServiceWarning, warning_for

log = get_logger(__name__)


class ExternalServiceError(Exception):
    """Base class for failures of an external metadata service."""
    pass


class ServiceNotConfigured(ExternalServiceError):
    """The service has no URL or credentials set up."""
    pass


class ServiceUnavailable(ExternalServiceError):
    """A call failed; the circuit has been opened."""

    def __init__(self, service: str, reason: str):
        super().__init__(f"{service} unavailable: {reason}")
        self.service = service
        self.reason = reason


class CircuitOpen(ExternalServiceError):
    """The service failed recently and is cooling down.

    Calls are refused without being attempted until the window passes or
    someone retries the service manually.
    """

    def __init__(self, service: str, remaining_minutes: int | None, reason: str | None):
        super().__init__(
            f"{service} disabled for {remaining_minutes} min ({reason})"
        )
        self.service = service
        self.remaining_minutes = remaining_minutes
        self.reason = reason


@dataclass
class RetryResult:
    success: bool
    error: str | None = None


class ExternalService(ABC):
    """Base class for an outbound metadata provider.

    Every request goes through the service's circuit breaker: refused while
    open, and any failure (HTTP error status, timeout, transport error,
    provider-level error) opens it. Services are registered via the
    @register_service decorator in movienight/services/__init__.py.

    Args:
        settings: Credentials, timeouts and breaker durations
        client: Shared ``httpx.AsyncClient``; not owned by the service
        breaker: Circuit breaker to use; one is created if omitted
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        breaker: CircuitBreaker | None = None,
    ):
        self.settings = settings
        self._client = client
        self.breaker = breaker or CircuitBreaker(
            self.name,
            open_seconds=settings.breaker_open_seconds,
            recent_seconds=settings.breaker_recent_seconds,
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. "tautulli"."""
        pass

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    async def _check_reachable(self) -> None:
        """Make one cheap request to check the service is reachable.

        Raises:
            ExternalServiceError: If the service is not healthy
        """
        pass

    def _unwrap(self, data: Any) -> Any:
        """Extract the payload from a response body.

        Subclasses override this to detect provider-level errors and raise
        ServiceUnavailable for them.
        """
        return data

    def status(self) -> BreakerStatus:
        return self.breaker.get_status(self.is_configured)

    def warning(self) -> ServiceWarning | None:
        return warning_for(self.display_name, self.name, self.status())

    async def retry(self) -> RetryResult:
        """Reset the circuit and try the service once."""
        self.breaker.reset()
        if not self.is_configured:
            return RetryResult(success=False, error="Not configured")
        try:
            await self._check_reachable()
        except ExternalServiceError as e:
            reason = getattr(e, "reason", None) or str(e)
            return RetryResult(success=False, error=reason)
        return RetryResult(success=True)

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON resource through the circuit breaker.

        Raises:
            ServiceNotConfigured: If the service is not set up
            CircuitOpen: If the circuit is open (no request is made)
            ServiceUnavailable: If the request fails
        """
        if not self.is_configured:
            raise ServiceNotConfigured(f"{self.display_name} is not configured")
        if self.breaker.is_open():
            status = self.breaker.get_status(True)
            raise CircuitOpen(self.display_name, status.remaining_minutes, status.error)

        try:
            response = await self._client.get(
                url, params=params, timeout=self.settings.request_timeout_seconds
            )
        except httpx.TimeoutException as e:
            raise self._failure("Connection timed out") from e
        except httpx.RequestError as e:
            raise self._failure(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            raise self._failure(f"HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise self._failure("Invalid JSON response") from e

        try:
            payload = self._unwrap(data)
        except ServiceUnavailable as e:
            self.breaker.record_failure(e.reason)
            raise

        self.breaker.record_success()
        return payload

    def _failure(self, reason: str) -> ServiceUnavailable:
        self.breaker.record_failure(reason)
        return ServiceUnavailable(self.display_name, reason)
