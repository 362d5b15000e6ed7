"""
Error taxonomy shared by the resource client, the aggregation engine and
the request facade.

The HTTP layer maps each class to a status code in ``app.main``; nothing
below this module knows about HTTP responses.
"""
from typing import Any


class ServiceError(Exception):
    """Base class for every error the service raises on purpose."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(ServiceError):
    """Raised when an input (e.g. a post id) is rejected before any work."""


class NotFoundError(ServiceError):
    """Raised when the requested base resource does not exist upstream."""


class UpstreamError(ServiceError):
    """Raised when the remote data source could not serve a request."""


class RemoteError(UpstreamError):
    """The upstream answered with a 4xx/5xx status."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or f"Upstream responded with {status_code}", context=context)
        self.status_code = status_code


class TransportError(UpstreamError):
    """The upstream could not be reached (connect failure, timeout)."""


__all__ = [
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "UpstreamError",
    "RemoteError",
    "TransportError",
]
