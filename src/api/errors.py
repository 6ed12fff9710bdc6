"""Translation of domain errors into HTTP responses."""

import logging

from fastapi import HTTPException, status

from core.exceptions import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ThesisHubError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (CapacityError, status.HTTP_409_CONFLICT),
)


def to_http_exception(exc: ThesisHubError) -> HTTPException:
    """Map a ThesisHubError onto the matching HTTPException."""
    if isinstance(exc, StorageError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=code, detail=str(exc))
    logger.error("Unmapped domain error: %r", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )
