"""
Common API utilities shared by the tracker routers.
"""
import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from .. import schemas
from ..errors import TrackerError, StoreWriteError

logger = logging.getLogger(__name__)


def validate_filter_value(value: Optional[str], allowed, field_name: str) -> str:
    """
    Normalise a list-view filter: empty means "all", anything else must be one
    of ``allowed`` (an Enum class).

    Raises:
        HTTPException: 422 when the value is not recognised
    """
    if value is None or value == "" or value == schemas.ALL_FILTER:
        return schemas.ALL_FILTER
    valid = {member.value for member in allowed}
    if value not in valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"{field_name} must be 'all' or one of: {', '.join(sorted(valid))}"
        )
    return value


def handle_service_error(error: Exception, service_name: str) -> HTTPException:
    """
    Standardized mapping of service-layer exceptions that routers catch
    themselves (editing helpers raise plain ValueError / IndexError).
    """
    error_msg = str(error)
    logger.error("%s service error: %s", service_name, error_msg)

    if isinstance(error, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)
    elif isinstance(error, (IndexError, LookupError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error_msg)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"An unexpected error occurred in {service_name}"
    )


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """App-wide handler turning the error taxonomy into JSON responses."""
    if isinstance(exc, StoreWriteError):
        logger.error("Store write failed on %s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)
