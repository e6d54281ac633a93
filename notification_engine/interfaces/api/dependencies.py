"""FastAPI dependency utilities."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from notification_engine.application import NotificationEngine, NotificationService
from notification_engine.infrastructure.repositories import UserRepository

bearer_scheme = HTTPBearer(auto_error=False)


def get_engine(request: Request) -> NotificationEngine:
    """Return the engine created by the application lifespan."""

    return request.app.state.engine


def get_session(engine: NotificationEngine = Depends(get_engine)) -> Generator[Session, None, None]:
    """Yield a database session and close it afterwards."""

    session = engine.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_service(
    session: Session = Depends(get_session),
    engine: NotificationEngine = Depends(get_engine),
) -> NotificationService:
    return engine.build_service(session)


def resolve_current_user_id(token: str | None, engine: NotificationEngine) -> int:
    """Resolve the authenticated user id for the provided bearer token."""

    user_id = engine.identity.resolve_token(token) if token else None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    engine: NotificationEngine = Depends(get_engine),
) -> int:
    token = credentials.credentials if credentials else None
    return resolve_current_user_id(token, engine)


def require_admin(
    user_id: int = Depends(get_current_user_id),
    session: Session = Depends(get_session),
) -> int:
    """Ensure the authenticated user has administrator privileges."""

    user = UserRepository(session).get(user_id)
    if user is None or not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return user_id


__all__ = [
    "bearer_scheme",
    "get_current_user_id",
    "get_engine",
    "get_service",
    "get_session",
    "require_admin",
    "resolve_current_user_id",
]
