"""
Shared FastAPI dependencies and error translation for the routers.
"""

from fastapi import HTTPException, status

from ..config import settings
from ..services.errors import (
    EngineError,
    InvalidInputError,
    MissingConfigurationError,
    PricingError,
    RepositoryError,
    ReservationConflictError,
    ResourceNotFoundError,
)
from ..services.records import EngineConfig


def get_engine_config() -> EngineConfig:
    return EngineConfig.from_settings(settings)


def http_error(exc: EngineError) -> HTTPException:
    """Map an engine error onto the HTTP status callers expect"""
    if isinstance(exc, InvalidInputError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, ResourceNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ReservationConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "reasons": exc.reasons}
        )
    if isinstance(exc, RepositoryError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    if isinstance(exc, (MissingConfigurationError, PricingError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
