from collections.abc import Callable

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from volunteerhub.core.database import get_db
from volunteerhub.core.errors import DomainError, ErrorKind
from volunteerhub.models.user import User, UserRole
from volunteerhub.services.auth_service import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer access credential to an active user."""
    token = credentials.credentials if credentials else None
    return AuthService(db).resolve_current_user(token)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    """Like get_current_user, but anonymous callers resolve to None."""
    if credentials is None:
        return None
    return AuthService(db).resolve_current_user(credentials.credentials)


def get_stream_user(
    token: str | None = Query(default=None),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Identity for the live stream; EventSource clients cannot set headers."""
    raw = credentials.credentials if credentials else token
    return AuthService(db).resolve_current_user(raw)


def require_roles(*roles: UserRole) -> Callable[..., User]:
    allowed = {role.value for role in roles}

    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise DomainError(ErrorKind.INSUFFICIENT_ROLE)
        return user

    return dependency


require_volunteer = require_roles(UserRole.VOLUNTEER)
require_organizer = require_roles(UserRole.ORGANIZER, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)
