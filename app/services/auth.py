"""Authentication service: users, JWT access tokens, refresh and reset tokens."""

from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.session import transaction
from app.models.auth_token import PasswordResetToken, RefreshToken
from app.models.user import User

logger = logging.getLogger(__name__)

# JWT configuration
ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8


class EmailTakenError(ValueError):
    """Raised when registering an email that already has an account."""


class InvalidRefreshTokenError(Exception):
    """Raised when a refresh token is unknown, expired or already used."""


class InvalidResetTokenError(Exception):
    """Raised when a password-reset token is unknown, expired or already used."""


def normalize_email(email: str | None) -> str:
    """Trim and lower-case an email for lookups and storage."""
    return (email or "").strip().lower()


def create_user(db: Session, email: str, password: str, name: str | None = None) -> User:
    """Create a new user with hashed password.

    Email is trimmed and lower-cased. Raises ValueError for a blank email or
    a short password, EmailTakenError if the email is registered.
    """
    email = normalize_email(email)
    if not email:
        raise ValueError("email is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise EmailTakenError("email is already registered")

    user = User(id=uuid.uuid4(), email=email, name=(name or "").strip() or None)
    user.set_password(password)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise EmailTakenError("email is already registered") from e
    db.refresh(user)
    logger.info("User registered user_id=%s", user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Validate credentials and return user, or None if invalid."""
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None:
        return None
    if not user.verify_password(password):
        return None
    return user


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def create_user_token(user: User) -> str:
    """Access token whose subject is the user's id."""
    return create_access_token(data={"sub": str(user.id)})


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token. Returns payload or None."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        return None


def get_user_from_token(db: Session, token: str) -> Optional[User]:
    """Extract user from a JWT token. Returns None if token invalid or user not found."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    subject: Optional[str] = payload.get("sub")
    if subject is None:
        return None
    try:
        user_id = UUID(subject)
    except (ValueError, TypeError):
        return None
    return db.query(User).filter(User.id == user_id).first()


# ---------------------------------------------------------------------------
# Refresh and password-reset tokens (opaque, stored as SHA-256 digests)
# ---------------------------------------------------------------------------


def generate_opaque_token() -> str:
    """Random URL-safe token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """SHA-256 hex digest under which a token is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_refresh_token(db: Session, user_id: UUID, now: datetime) -> str:
    plain = generate_opaque_token()
    db.add(
        RefreshToken(
            id=uuid.uuid4(),
            user_id=user_id,
            token_hash=hash_token(plain),
            expires_at=now + timedelta(days=get_settings().refresh_token_expire_days),
        )
    )
    return plain


def _consume_refresh_token(db: Session, plain: str, now: datetime) -> Optional[RefreshToken]:
    """Lock and revoke a live refresh token; None if unknown, expired or revoked."""
    row = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.token_hash == hash_token(plain),
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > now,
        )
        .with_for_update()
        .first()
    )
    if row is not None:
        row.revoked_at = now
    return row


def issue_refresh_token(db: Session, user_id: UUID) -> str:
    """Store a new refresh token for the user and return its plain value.

    Expired tokens of the user still marked live are revoked first.
    """
    now = _utcnow()
    with transaction(db):
        db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at <= now,
        ).update({RefreshToken.revoked_at: now}, synchronize_session=False)
        plain = _new_refresh_token(db, user_id, now)
    return plain


def rotate_refresh_token(db: Session, refresh_token: str) -> tuple[User, str]:
    """Exchange a live refresh token for a new one.

    The presented token is revoked in the same transaction that stores its
    replacement, so each token can be used once. Raises
    InvalidRefreshTokenError otherwise.
    """
    plain = (refresh_token or "").strip()
    if not plain:
        raise InvalidRefreshTokenError("refresh token is required")

    now = _utcnow()
    with transaction(db):
        row = _consume_refresh_token(db, plain, now)
        if row is None:
            raise InvalidRefreshTokenError("invalid refresh token")
        user = db.query(User).filter(User.id == row.user_id).first()
        if user is None:
            raise InvalidRefreshTokenError("invalid refresh token")
        new_plain = _new_refresh_token(db, user.id, now)

    logger.info("Refresh token rotated user_id=%s", user.id)
    return user, new_plain


def revoke_refresh_token(db: Session, refresh_token: str) -> bool:
    """Revoke a refresh token. Returns False if it was not live."""
    plain = (refresh_token or "").strip()
    if not plain:
        return False
    with transaction(db):
        row = _consume_refresh_token(db, plain, _utcnow())
    if row is not None:
        logger.info("Refresh token revoked user_id=%s", row.user_id)
    return row is not None


def request_password_reset(db: Session, email: str) -> Optional[str]:
    """Create a password-reset token for the account with this email.

    Returns the plain token when settings allow returning it (outside prod),
    else None. Unknown emails also yield None, so callers cannot tell whether
    an account exists.
    """
    email = normalize_email(email)
    if not email:
        raise ValueError("email is required")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None

    settings = get_settings()
    plain = generate_opaque_token()
    with transaction(db):
        db.add(
            PasswordResetToken(
                id=uuid.uuid4(),
                user_id=user.id,
                token_hash=hash_token(plain),
                expires_at=_utcnow() + timedelta(minutes=settings.password_reset_expire_minutes),
            )
        )
    logger.info("Password reset requested user_id=%s", user.id)
    return plain if settings.return_reset_token else None


def confirm_password_reset(db: Session, token: str, new_password: str) -> None:
    """Set a new password using a live reset token; the token is spent.

    All live refresh tokens of the user are revoked with it. Raises
    ValueError for blank input or a short password, InvalidResetTokenError
    for an unknown, expired or used token.
    """
    token = (token or "").strip()
    new_password = (new_password or "").strip()
    if not token:
        raise ValueError("token is required")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")

    now = _utcnow()
    with transaction(db):
        row = (
            db.query(PasswordResetToken)
            .filter(
                PasswordResetToken.token_hash == hash_token(token),
                PasswordResetToken.used_at.is_(None),
                PasswordResetToken.expires_at > now,
            )
            .with_for_update()
            .first()
        )
        if row is None:
            raise InvalidResetTokenError("invalid reset token")
        row.used_at = now

        user = db.query(User).filter(User.id == row.user_id).first()
        if user is None:
            raise InvalidResetTokenError("invalid reset token")
        user.set_password(new_password)

        db.query(RefreshToken).filter(
            RefreshToken.user_id == user.id,
            RefreshToken.revoked_at.is_(None),
        ).update({RefreshToken.revoked_at: now}, synchronize_session=False)

    logger.info("Password reset completed user_id=%s", user.id)
