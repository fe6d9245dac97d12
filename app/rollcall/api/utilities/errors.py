# app/rollcall/api/utilities/errors.py
import logging
from fastapi import HTTPException, status

from ...db.db_client import StoreError, StoreUnavailableError
from ...services.errors import (
    AuthorizationError,
    CascadeDeletionError,
    CodeExpiredError,
    CodeSpaceExhaustedError,
    InvalidCodeError,
    InvalidInputError,
    NotEnrolledError,
    NotFoundError,
    RedemptionError,
    SessionConflictError,
)

logger = logging.getLogger(__name__)

_REDEMPTION_STATUS = {
    InvalidCodeError: status.HTTP_400_BAD_REQUEST,
    CodeExpiredError: status.HTTP_409_CONFLICT,
    NotEnrolledError: status.HTTP_403_FORBIDDEN,
}

_SERVICE_STATUS = {
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    CodeSpaceExhaustedError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    SessionConflictError: status.HTTP_409_CONFLICT,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(error: Exception) -> HTTPException:
    """Maps a service or store exception onto the HTTP error the client sees."""
    if isinstance(error, RedemptionError):
        code = _REDEMPTION_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
        return HTTPException(status_code=code, detail={"error": error.error_code, "message": str(error)})

    if isinstance(error, CascadeDeletionError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "CascadeDeletionFailed", "stage": error.stage, "message": str(error)},
        )

    for error_type, code in _SERVICE_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=code, detail=str(error))

    if isinstance(error, StoreError):
        logger.error(f"Unhandled store error: {error}", exc_info=error)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="A database error occurred.")

    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
