from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class UnauthenticatedError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class StoreError(AppError):
    """A fetch, insert or update against the persistent store failed."""


class SendInProgressError(ConflictError):
    """Another send is still awaiting the store for this view."""
