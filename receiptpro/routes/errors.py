from __future__ import annotations

import logging

from fastapi import HTTPException

from receiptpro.services.exceptions import (
    DocumentExportError,
    DocumentValidationError,
    NotFoundError,
    OperationInProgressError,
    PersistenceError,
    ServiceError,
)

logger = logging.getLogger(__name__)


def to_http_exception(exc: ServiceError) -> HTTPException:
    """Translate a service failure into the response the client sees."""

    if isinstance(exc, DocumentValidationError):
        return HTTPException(status_code=422, detail=exc.errors)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, OperationInProgressError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, DocumentExportError):
        return HTTPException(status_code=500, detail="Error generating PDF. Please try again.")
    if isinstance(exc, PersistenceError):
        logger.error("Storage failure: %s", exc)
        return HTTPException(status_code=500, detail="Unable to access stored data")
    return HTTPException(status_code=502, detail=str(exc))
