"""Persistence helpers for notification recipients."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from notification_engine.domain.entities import User
from notification_engine.infrastructure.models import UserModel
from notification_engine.utils import ensure_utc, now_naive_utc


class UserRepository:
    """Provide lookups and creation for :class:`User` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        normalized = email.strip().lower()
        model = (
            self.session.query(UserModel)
            .filter(func.lower(UserModel.email) == normalized)
            .first()
        )
        return self._to_entity(model) if model else None

    def exists(self, user_id: int) -> bool:
        return (
            self.session.query(UserModel.id)
            .filter(UserModel.id == user_id, UserModel.is_active.is_(True))
            .first()
            is not None
        )

    def create(self, user: User) -> User:
        model = UserModel(
            name=user.name,
            email=user.email,
            is_active=user.is_active,
            is_admin=user.is_admin,
            created_at=now_naive_utc(),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            is_active=model.is_active,
            is_admin=model.is_admin,
            created_at=ensure_utc(model.created_at),
        )


__all__ = ["UserRepository"]
