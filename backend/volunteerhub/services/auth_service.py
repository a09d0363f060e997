"""Identity gate: registration, sign-in, credential refresh and resolution."""

import logging
from datetime import timedelta
from uuid import UUID

import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from volunteerhub.core.config import settings
from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from volunteerhub.models.shared import utc_now
from volunteerhub.models.user import User, UserRole
from volunteerhub.repositories.refresh_token_repository import RefreshTokenRepository
from volunteerhub.repositories.user_repository import UserRepository
from volunteerhub.schemas.auth import RegisterRequest, TokenPair
from volunteerhub.schemas.user import UserUpdate
from volunteerhub.services.blob_store import (
    BlobStore,
    check_media_reference,
    delete_quietly,
    is_owned_by,
)

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.token_repo = RefreshTokenRepository(db)

    def issue_tokens(self, user: User) -> TokenPair:
        expires_at = utc_now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        _, raw_refresh = self.token_repo.create(user.id, expires_at)  # type: ignore[arg-type]
        return TokenPair(
            access_token=create_access_token(user.id, str(user.role)),  # type: ignore[arg-type]
            refresh_token=raw_refresh,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    def register(self, data: RegisterRequest) -> tuple[User, TokenPair]:
        """Public sign-up; always creates a volunteer account."""
        if self.user_repo.get_by_email(data.email) is not None:
            raise DomainError(ErrorKind.EMAIL_ALREADY_EXISTS)
        try:
            user = self.user_repo.create(
                email=data.email,
                password_hash=hash_password(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
                location=data.location,
                role=UserRole.VOLUNTEER,
            )
        except IntegrityError:
            self.db.rollback()
            raise DomainError(ErrorKind.EMAIL_ALREADY_EXISTS) from None
        logger.info("Registered volunteer %s", user.id)
        return user, self.issue_tokens(user)

    def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        user = self.user_repo.get_by_email(email)
        if user is None or not verify_password(password, str(user.password_hash)):
            raise DomainError(ErrorKind.INVALID_CREDENTIALS)
        if not user.is_active:
            raise DomainError(ErrorKind.ACCOUNT_LOCKED)
        return user, self.issue_tokens(user)

    def refresh(self, raw_refresh_token: str) -> tuple[User, TokenPair]:
        """Rotate a refresh credential: revoke the presented one, issue a new pair."""
        token = self.token_repo.get_by_raw_token(raw_refresh_token)
        if token is None or token.revoked_at is not None or token.expires_at <= utc_now():
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)
        user = self.user_repo.get_by_id(token.user_id)  # type: ignore[arg-type]
        if user is None:
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)
        if not user.is_active:
            raise DomainError(ErrorKind.ACCOUNT_LOCKED)
        if not self.token_repo.revoke(token):
            raise DomainError(ErrorKind.INVALID_REFRESH_TOKEN)
        return user, self.issue_tokens(user)

    def logout(self, user: User, raw_refresh_token: str | None = None) -> int:
        if raw_refresh_token:
            token = self.token_repo.get_by_raw_token(raw_refresh_token)
            if token is None or token.user_id != user.id or token.revoked_at is not None:
                return 0
            return 1 if self.token_repo.revoke(token) else 0
        return self.token_repo.revoke_all_for_user(user.id)  # type: ignore[arg-type]

    def resolve_current_user(self, token: str | None) -> User:
        """Map a raw access credential to an active user.

        No credential, an expired credential and an inactive account are
        reported as distinct error kinds.
        """
        if not token:
            raise DomainError(ErrorKind.NOT_AUTHENTICATED)
        try:
            payload = decode_access_token(token)
            user_id = UUID(payload["sub"])
        except jwt.ExpiredSignatureError:
            raise DomainError(ErrorKind.TOKEN_EXPIRED) from None
        except (jwt.InvalidTokenError, KeyError, ValueError):
            raise DomainError(ErrorKind.INVALID_TOKEN) from None

        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise DomainError(ErrorKind.INVALID_TOKEN)
        if not user.is_active:
            raise DomainError(ErrorKind.ACCOUNT_LOCKED)
        return user

    def update_profile(self, user: User, data: UserUpdate, blob_store: BlobStore) -> User:
        changes = data.model_dump(exclude_unset=True)
        if "avatar_url" in changes:
            check_media_reference(changes["avatar_url"], user.id)  # type: ignore[arg-type]
        previous_avatar = user.avatar_url
        updated = self.user_repo.update(user, changes)
        if (
            "avatar_url" in changes
            and previous_avatar
            and previous_avatar != updated.avatar_url
            and is_owned_by(str(previous_avatar), user.id)  # type: ignore[arg-type]
        ):
            delete_quietly(blob_store, str(previous_avatar))
        return updated
