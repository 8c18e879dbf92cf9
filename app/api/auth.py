"""Authentication API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.deps import AUTH_COOKIE, get_db, require_auth
from app.config import get_settings
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    PasswordResetRequestResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from app.services.auth import (
    EmailTakenError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    authenticate_user,
    confirm_password_reset,
    create_user,
    create_user_token,
    issue_refresh_token,
    request_password_reset,
    revoke_refresh_token,
    rotate_refresh_token,
)

router = APIRouter()


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=get_settings().access_token_expire_minutes * 60,
        path="/",
    )


def _token_response(response: Response, user: User, refresh_token: str) -> TokenResponse:
    token = create_user_token(user)
    _set_auth_cookie(response, token)
    return TokenResponse(
        access_token=token,
        refresh_token=refresh_token,
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(
    body: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Create an account and return a token pair for it."""
    try:
        user = create_user(db, body.email, body.password, body.name)
    except EmailTakenError:
        raise HTTPException(status_code=409, detail="Email is already registered")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return _token_response(response, user, issue_refresh_token(db, user.id))


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Authenticate user and return an access and refresh token.

    Also sets an httponly cookie for browser sessions.
    """
    user = authenticate_user(db, body.email, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return _token_response(response, user, issue_refresh_token(db, user.id))


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    body: RefreshRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Exchange a refresh token for a new token pair. The old one is spent."""
    try:
        user, new_refresh = rotate_refresh_token(db, body.refresh_token)
    except InvalidRefreshTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )
    return _token_response(response, user, new_refresh)


@router.post("/logout")
def logout(
    response: Response,
    body: LogoutRequest | None = None,
    db: Session = Depends(get_db),
) -> dict:
    """Revoke the given refresh token and clear the authentication cookie."""
    if body is not None and body.refresh_token:
        revoke_refresh_token(db, body.refresh_token)
    response.delete_cookie(key=AUTH_COOKIE, path="/")
    return {"detail": "Logged out"}


@router.post("/password-reset/request", response_model=PasswordResetRequestResponse)
def password_reset_request(
    body: PasswordResetRequest,
    db: Session = Depends(get_db),
) -> PasswordResetRequestResponse:
    """Start a password reset. The answer does not reveal whether the email exists."""
    try:
        token = request_password_reset(db, body.email)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PasswordResetRequestResponse(
        detail="If the email exists, a reset link has been sent",
        reset_token=token,
    )


@router.post("/password-reset/confirm", status_code=204)
def password_reset_confirm(
    body: PasswordResetConfirm,
    db: Session = Depends(get_db),
) -> Response:
    """Set a new password with a reset token."""
    try:
        confirm_password_reset(db, body.token, body.new_password)
    except InvalidResetTokenError:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return Response(status_code=204)


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(require_auth)) -> UserRead:
    """Return the currently authenticated user's information."""
    return UserRead.model_validate(current_user)
