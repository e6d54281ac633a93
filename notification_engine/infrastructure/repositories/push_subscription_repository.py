"""Persistence helpers for web-push subscriptions."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from notification_engine.domain.entities import PushSubscription
from notification_engine.infrastructure.models import PushSubscriptionModel
from notification_engine.utils import ensure_utc, now_naive_utc


class PushSubscriptionRepository:
    """Provide upsert and deactivation helpers for push subscriptions."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert(self, subscription: PushSubscription) -> PushSubscription:
        """Create the subscription or refresh and reactivate an existing one."""

        model = self._find(subscription.user_id, subscription.endpoint)
        if model is None:
            model = PushSubscriptionModel(
                user_id=subscription.user_id, endpoint=subscription.endpoint
            )
        model.p256dh = subscription.p256dh
        model.auth = subscription.auth
        model.user_agent = subscription.user_agent
        model.is_active = True
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_for_user(
        self, user_id: int, *, active_only: bool = True
    ) -> Sequence[PushSubscription]:
        query = self.session.query(PushSubscriptionModel).filter(
            PushSubscriptionModel.user_id == user_id
        )
        if active_only:
            query = query.filter(PushSubscriptionModel.is_active.is_(True))
        query = query.order_by(PushSubscriptionModel.id.asc())
        return [self._to_entity(model) for model in query.all()]

    def deactivate(self, user_id: int, endpoint: str | None = None) -> int:
        """Deactivate one endpoint, or every subscription when none is given."""

        query = (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.user_id == user_id)
            .filter(PushSubscriptionModel.is_active.is_(True))
        )
        if endpoint is not None:
            query = query.filter(PushSubscriptionModel.endpoint == endpoint)
        updated = query.update(
            {
                PushSubscriptionModel.is_active: False,
                PushSubscriptionModel.updated_at: now_naive_utc(),
            },
            synchronize_session=False,
        )
        self.session.commit()
        return int(updated or 0)

    def deactivate_by_id(self, subscription_id: int) -> None:
        model = self.session.get(PushSubscriptionModel, subscription_id)
        if model is None or not model.is_active:
            return
        model.is_active = False
        self.session.add(model)
        self.session.commit()

    def _find(self, user_id: int, endpoint: str) -> PushSubscriptionModel | None:
        return (
            self.session.query(PushSubscriptionModel)
            .filter(PushSubscriptionModel.user_id == user_id)
            .filter(PushSubscriptionModel.endpoint == endpoint)
            .first()
        )

    @staticmethod
    def _to_entity(model: PushSubscriptionModel) -> PushSubscription:
        return PushSubscription(
            id=model.id,
            user_id=model.user_id,
            endpoint=model.endpoint,
            p256dh=model.p256dh,
            auth=model.auth,
            user_agent=model.user_agent,
            is_active=bool(model.is_active),
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


__all__ = ["PushSubscriptionRepository"]
