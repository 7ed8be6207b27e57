from __future__ import annotations

from typing import List


class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class DownstreamServiceError(ServiceError):
    """Raised when an external service returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Raised when a stored record does not exist."""


class DocumentValidationError(ServiceError):
    """Raised when a draft cannot be finalized. Nothing is written."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors) or "Invalid document")
        self.errors = list(errors)


class PersistenceError(ServiceError):
    """Raised when the key-value store cannot be read or written."""


class DocumentExportError(ServiceError):
    """Raised when both the raster and the text-layout export paths fail."""


class OperationInProgressError(ServiceError):
    """Raised when the same export or send is requested while one is pending."""
