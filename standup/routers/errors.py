"""Translation of domain errors into HTTP errors."""
from fastapi import HTTPException, status

from standup.exceptions import (
    ConflictError,
    GateBlockedError,
    ImmutablePlanError,
    NotFoundError,
    StandupError,
    ValidationError,
)


def to_http_exception(error: StandupError) -> HTTPException:
    """
    Map a domain error to the HTTPException a router should raise.

    - ValidationError -> 422 with the offending field
    - GateBlockedError -> 409 with the date that must be reviewed
    - NotFoundError -> 404
    - ImmutablePlanError -> 423
    - ConflictError -> 409
    """
    if isinstance(error, GateBlockedError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(error),
                "blocking_date": error.blocking_date.isoformat(),
            },
        )
    if isinstance(error, ValidationError):
        return HTTPException(
            status_code=422,
            detail={"message": error.message, "field": error.field},
        )
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ImmutablePlanError):
        return HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(error))
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
