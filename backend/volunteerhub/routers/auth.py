"""Identity endpoints: sign-up, sign-in, credential refresh and profile."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from volunteerhub.core.auth import get_current_user
from volunteerhub.core.database import get_db
from volunteerhub.models.user import User
from volunteerhub.schemas.auth import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
)
from volunteerhub.schemas.common import CountResponse
from volunteerhub.schemas.user import UserResponse, UserUpdate
from volunteerhub.services.auth_service import AuthService
from volunteerhub.services.blob_store import BlobStore, get_blob_store

router = APIRouter()


def _auth_response(user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(user=UserResponse.model_validate(user), tokens=tokens)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    summary="Register a volunteer account",
    responses={400: {"description": "Email already registered"}},
)
async def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    user, tokens = AuthService(db).register(data)
    return _auth_response(user, tokens)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Sign in",
    responses={
        401: {"description": "Invalid email or password"},
        403: {"description": "Account deactivated"},
    },
)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    user, tokens = AuthService(db).login(data.email, data.password)
    return _auth_response(user, tokens)


@router.post(
    "/refresh",
    response_model=AuthResponse,
    summary="Exchange a refresh token for a new credential pair",
    responses={401: {"description": "Invalid or expired refresh token"}},
)
async def refresh(
    data: RefreshRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    user, tokens = AuthService(db).refresh(data.refresh_token)
    return _auth_response(user, tokens)


@router.post(
    "/logout",
    response_model=CountResponse,
    summary="Revoke refresh tokens",
    responses={401: {"description": "Not authenticated"}},
)
async def logout(
    data: LogoutRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> CountResponse:
    """Revoke the given refresh token, or every token of the caller."""
    raw = data.refresh_token if data else None
    return CountResponse(count=AuthService(db).logout(user, raw))


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the current user",
    responses={401: {"description": "Not authenticated"}},
)
async def get_me(user: User = Depends(get_current_user)) -> User:
    return user


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update the current user's profile",
    responses={401: {"description": "Not authenticated"}},
)
async def update_me(
    data: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    blob_store: BlobStore = Depends(get_blob_store),
) -> User:
    return AuthService(db).update_profile(user, data, blob_store)
