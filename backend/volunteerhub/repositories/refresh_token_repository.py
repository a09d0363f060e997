import hashlib
import secrets
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from volunteerhub.models.refresh_token import RefreshToken
from volunteerhub.models.shared import utc_now


def generate_refresh_token() -> str:
    """Generate a random opaque refresh credential."""
    return secrets.token_urlsafe(48)


def hash_refresh_token(raw_token: str) -> str:
    """SHA-256 hash of the raw refresh credential."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


class RefreshTokenRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: UUID, expires_at: datetime) -> tuple[RefreshToken, str]:
        """Persist a new refresh credential. Returns (record, raw_token)."""
        raw_token = generate_refresh_token()
        token = RefreshToken(
            user_id=user_id,
            token_hash=hash_refresh_token(raw_token),
            expires_at=expires_at,
        )
        self.db.add(token)
        self.db.commit()
        self.db.refresh(token)
        return token, raw_token

    def get_by_raw_token(self, raw_token: str) -> RefreshToken | None:
        return (
            self.db.query(RefreshToken)
            .filter(RefreshToken.token_hash == hash_refresh_token(raw_token))
            .first()
        )

    def revoke(self, token: RefreshToken, commit: bool = True) -> bool:
        """Revoke the token unless someone else already did.

        Returns False when the row was already revoked, so two requests
        presenting the same credential cannot both rotate it.
        """
        count = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.id == token.id, RefreshToken.revoked_at.is_(None))
            .update({"revoked_at": utc_now()}, synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return count > 0

    def revoke_all_for_user(self, user_id: UUID, commit: bool = True) -> int:
        count = (
            self.db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .update({"revoked_at": utc_now()}, synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return count
