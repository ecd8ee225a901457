"""JWT login, account self-service and auth dependencies (get_current_user, require_admin)."""

from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from membership.api.v1.deps import get_account_service
from membership.core.config import Settings, get_settings
from membership.core.database import get_db
from membership.core.security import (
    create_access_token,
    decode_access_token,
    normalize_email,
    verify_password,
)
from membership.models.user import ROLE_ADMIN, User
from membership.schemas.auth import (
    CurrentUser,
    LoginRequest,
    PasswordChangeRequest,
    PasswordResetRequest,
    ProfileUpdate,
    TokenResponse,
    UserOut,
)
from membership.schemas.common import MessageResponse
from membership.services.accounts import AccountService

router = APIRouter()
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """
    Authenticate with email and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    user = db.query(User).filter(User.email == normalize_email(body.email)).first()
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    token = create_access_token(sub=user.id, role=user.role, settings=settings)
    return TokenResponse(
        access_token=token,
        token_type="bearer",
        user=UserOut.model_validate(user),
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the current user. Raises 401 if missing or invalid."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials, settings)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")
    sub = payload.get("sub")
    if not sub:
        raise _unauthorized("Invalid token payload")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token payload")
    user = db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    return CurrentUser(id=user.id, email=user.email, role=user.role)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != ROLE_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


Accounts = Annotated[AccountService, Depends(get_account_service)]


@router.get("/me", response_model=UserOut)
def read_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Accounts,
) -> UserOut:
    """Profile of the authenticated caller."""
    return UserOut.model_validate(accounts.get(current_user.id))


@router.put("/me", response_model=UserOut)
def update_me(
    body: ProfileUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Accounts,
) -> UserOut:
    """Edit the caller's own profile. Email and role cannot be changed here."""
    return UserOut.model_validate(accounts.update_profile(current_user.id, body))


@router.put("/me/password", response_model=MessageResponse)
def change_password(
    body: PasswordChangeRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Accounts,
) -> MessageResponse:
    """Replace the caller's password; 400 when the current password does not match."""
    accounts.change_password(current_user.id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(body: PasswordResetRequest, accounts: Accounts) -> MessageResponse:
    """Set a temporary password and email it to the account owner; 404 for an unknown email."""
    accounts.reset_password(body.email)
    return MessageResponse(message="Password reset. Check your email.")
