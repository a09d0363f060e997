"""Repository for User CRUD operations."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from volunteerhub.core.sorting import apply_order_by
from volunteerhub.models.user import User, UserRole

USER_SORT_FIELDS = frozenset({"created_at", "email", "first_name", "last_name", "role"})


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
        location: str | None = None,
        role: UserRole = UserRole.VOLUNTEER,
    ) -> User:
        user = User(
            email=email.lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            location=location,
            role=role.value,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def get_by_id(self, user_id: UUID) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_ids(self, user_ids: list[UUID]) -> dict[UUID, User]:
        if not user_ids:
            return {}
        users = self.db.query(User).filter(User.id.in_(set(user_ids))).all()
        return {u.id: u for u in users}  # type: ignore[misc]

    def get_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def list_active_by_role(self, role: UserRole) -> list[User]:
        return (
            self.db.query(User)
            .filter(User.role == role.value, User.is_active == True)  # noqa: E712
            .all()
        )

    def _filtered(
        self,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> Query:  # type: ignore[type-arg]
        query = self.db.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(User.email).like(pattern),
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                )
            )
        return query

    def get_all(
        self,
        skip: int = 0,
        limit: int = 20,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        order_by: str | None = None,
    ) -> list[User]:
        query = self._filtered(role=role, is_active=is_active, search=search)
        query = apply_order_by(query, User, order_by, allowed_fields=USER_SORT_FIELDS)
        return query.offset(skip).limit(limit).all()

    def count(
        self,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> int:
        return self._filtered(role=role, is_active=is_active, search=search).count()

    def count_by_role(self) -> dict[str, int]:
        rows = self.db.query(User.role, func.count(User.id)).group_by(User.role).all()
        return {role: count for role, count in rows}

    def update(self, user: User, data: dict[str, Any]) -> User:
        for key, value in data.items():
            setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        return user

    def set_active(self, user: User, is_active: bool, commit: bool = True) -> User:
        user.is_active = is_active  # type: ignore[assignment]
        if commit:
            self.db.commit()
            self.db.refresh(user)
        return user
