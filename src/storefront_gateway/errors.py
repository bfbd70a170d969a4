"""Error kinds shared by the gateway services and the HTTP surface."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class; ``status_code`` is the HTTP status the web layer answers with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotConfigured(GatewayError):
    """No store (or AI credential) has been configured yet."""

    status_code = 503


class NotFound(GatewayError):
    status_code = 404


class UpstreamFailure(GatewayError):
    """Network or HTTP error while talking to a store or AI provider."""

    status_code = 502


class ValidationFailure(GatewayError):
    status_code = 400


__all__ = [
    "GatewayError",
    "NotConfigured",
    "NotFound",
    "UpstreamFailure",
    "ValidationFailure",
]
