"""Repository for PushSubscription rows."""

from uuid import UUID

from sqlalchemy.orm import Session

from volunteerhub.models.push_subscription import PushSubscription


class PushSubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def upsert(
        self,
        *,
        user_id: UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None = None,
    ) -> PushSubscription:
        """Create the (user, endpoint) subscription or refresh its keys."""
        subscription = self.get_by_endpoint(user_id, endpoint)
        if subscription is None:
            subscription = PushSubscription(user_id=user_id, endpoint=endpoint)
            self.db.add(subscription)
        subscription.p256dh = p256dh  # type: ignore[assignment]
        subscription.auth = auth  # type: ignore[assignment]
        subscription.user_agent = user_agent  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def get_by_endpoint(self, user_id: UUID, endpoint: str) -> PushSubscription | None:
        return (
            self.db.query(PushSubscription)
            .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
            .first()
        )

    def list_for_user(self, user_id: UUID) -> list[PushSubscription]:
        return (
            self.db.query(PushSubscription)
            .filter(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.created_at.asc())
            .all()
        )

    def count_for_user(self, user_id: UUID) -> int:
        return self.db.query(PushSubscription).filter(PushSubscription.user_id == user_id).count()

    def delete_by_endpoint(self, user_id: UUID, endpoint: str) -> int:
        count = (
            self.db.query(PushSubscription)
            .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count

    def delete_by_id(self, subscription_id: UUID) -> int:
        count = (
            self.db.query(PushSubscription)
            .filter(PushSubscription.id == subscription_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count
