from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class AuthenticationError(AppError):
    """No active identity for an operation that requires one."""


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class TransientStoreError(AppError):
    """The backing store failed (network or server side); safe to retry manually."""


class PartialFailureError(AppError):
    """A multi-step write did not complete."""


class TransportError(AppError):
    """Realtime publish/subscribe failure. Never leaves the realtime layer."""
