from __future__ import annotations

from fastapi import HTTPException, status

from app.core.errors import (
    AccessDenied,
    DuplicateProfile,
    NotFound,
    ThingsError,
    UpstreamUnavailable,
    ValidationError,
)
from app.utils.logging import get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR: list[tuple[type[ThingsError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AccessDenied, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (DuplicateProfile, status.HTTP_409_CONFLICT),
    (UpstreamUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_exception(err: ThingsError) -> HTTPException:
    """Translate a domain error into the HTTP error returned to clients."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(err, error_type):
            return HTTPException(status_code=status_code, detail=str(err))
    logger.error("Unexpected domain error", extra={"error": str(err)})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
