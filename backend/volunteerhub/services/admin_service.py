"""Admin dashboard, approval history and user management."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.event import Event, EventStatus
from volunteerhub.models.participation import ParticipationStatus
from volunteerhub.models.user import User, UserRole
from volunteerhub.repositories.event_repository import EventRepository
from volunteerhub.repositories.participation_repository import ParticipationRepository
from volunteerhub.repositories.refresh_token_repository import RefreshTokenRepository
from volunteerhub.repositories.user_repository import UserRepository
from volunteerhub.schemas.admin import DashboardStats

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.event_repo = EventRepository(db)
        self.participation_repo = ParticipationRepository(db)
        self.token_repo = RefreshTokenRepository(db)

    def get_stats(self) -> DashboardStats:
        users_by_role = {role.value: 0 for role in UserRole}
        users_by_role.update(self.user_repo.count_by_role())
        events_by_status = {status.value: 0 for status in EventStatus}
        events_by_status.update(self.event_repo.count_by_status())
        participations_by_status = {status.value: 0 for status in ParticipationStatus}
        participations_by_status.update(self.participation_repo.count_by_status())
        return DashboardStats(
            users_by_role=users_by_role,
            total_users=sum(users_by_role.values()),
            events_by_status=events_by_status,
            pending_events=events_by_status[EventStatus.PENDING.value],
            participations_by_status=participations_by_status,
        )

    def list_pending_events(self) -> list[Event]:
        return self.event_repo.list_pending()

    def get_approval_history(
        self, page: int = 1, limit: int = 20, status: str | None = None
    ) -> tuple[list[Event], int]:
        events = self.event_repo.list_decided(skip=(page - 1) * limit, limit=limit, status=status)
        return events, self.event_repo.count_decided(status=status)

    def list_users(
        self,
        page: int = 1,
        limit: int = 20,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        order_by: str | None = None,
    ) -> tuple[list[User], int]:
        users = self.user_repo.get_all(
            skip=(page - 1) * limit,
            limit=limit,
            role=role,
            is_active=is_active,
            search=search,
            order_by=order_by,
        )
        return users, self.user_repo.count(role=role, is_active=is_active, search=search)

    def toggle_user_status(self, user_id: UUID, admin: User) -> User:
        """Flip ``is_active``. Deactivating a user also ends their sessions."""
        if user_id == admin.id:
            raise DomainError(ErrorKind.CANNOT_MODIFY_SELF)
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise DomainError(ErrorKind.USER_NOT_FOUND)
        if user.role == UserRole.ADMIN.value and user.is_active:
            raise DomainError(ErrorKind.INSUFFICIENT_ROLE)

        activate = not user.is_active
        try:
            self.user_repo.set_active(user, activate, commit=False)
            if not activate:
                self.token_repo.revoke_all_for_user(user.id, commit=False)  # type: ignore[arg-type]
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        logger.info(
            "Admin %s %s user %s", admin.id, "activated" if activate else "deactivated", user.id
        )
        return user
