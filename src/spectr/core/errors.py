"""Domain error taxonomy shared by services, endpoints and the realtime gateway."""

from __future__ import annotations


class SpectrError(Exception):
    """Base exception for domain failures surfaced to clients.

    Each subclass carries the HTTP status and the short machine-readable code
    used in realtime ``error`` events.
    """

    status_code: int = 500
    code: str = "server_error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class NotFoundError(SpectrError):
    """Referenced chat, user or contact does not exist."""

    status_code = 404
    code = "not_found"


class ForbiddenError(SpectrError):
    """Caller is not allowed to act on the resource."""

    status_code = 403
    code = "forbidden"


class UnauthenticatedError(SpectrError):
    """No valid identity is bound to the connection or request."""

    status_code = 401
    code = "unauthenticated"


class ConflictError(SpectrError):
    """Resource already exists."""

    status_code = 409
    code = "conflict"


class ValidationFailure(SpectrError):
    """Submitted payload is malformed."""

    status_code = 422
    code = "invalid"


class PersistenceFailure(SpectrError):
    """Durable read or write failed; fatal to the triggering operation only."""

    status_code = 500
    code = "persistence_failure"


class DeliveryFailure(SpectrError):
    """Push to a single session failed. Logged, never surfaced to the sender."""

    status_code = 500
    code = "delivery_failure"
