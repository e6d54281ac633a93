"""Helper utilities shared across API route handlers."""

from fastapi import HTTPException, status

from notification_engine.domain.exceptions import NotFoundError


def to_http_exception(exc: ValueError) -> HTTPException:
    """Map a service error to the HTTP error the client should see."""

    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


__all__ = ["to_http_exception"]
