# counselor_api/services/auth_services.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.core.config import settings
from counselor_api.data.database import get_db
from counselor_api.models.auth_models import PasswordValidationError
from counselor_api.models.database_models.user import User
from counselor_api.services.database.user_database_services import get_user_by_username, mark_email_verified

logger = logging.getLogger(__name__)


def verify_password(plain_password, hashed_password):
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8") if isinstance(hashed_password, str) else hashed_password,
    )


def hash_password(password):
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())


async def authenticate_user(db: AsyncSession, username: str, password: str):
    user = await get_user_by_username(db, username)
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def _create_token(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta, "type": token_type})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    return _create_token(data, "access", expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None):
    return _create_token(data, "refresh", expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def create_email_verification_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    # Bound to the address so a later e-mail change invalidates outstanding links.
    return _create_token(
        {"sub": user.username, "email": user.email},
        "verify_email",
        expires_delta or timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
    )


def build_verification_url(token: str) -> str:
    return f"{settings.WEB_APP_URL.rstrip('/')}/verify-email?token={token}"


def validate_password(password: str):
    errors = []
    if len(password) < 8:
        errors.append("8_characters_long")
    if not any(char.isdigit() for char in password):
        errors.append("one_digit")
    if not any(char.isupper() for char in password):
        errors.append("one_uppercase")
    if not any(char.islower() for char in password):
        errors.append("one_lowercase")
    if not any(char in "!@#$%^&*()" for char in password):
        errors.append("one_special")

    if errors:
        raise PasswordValidationError(errors)

    return True


def set_auth_cookies(response: Response, username: str) -> None:
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    refresh_token_expires = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    response.set_cookie(
        key="access_token",
        value=create_access_token(data={"sub": username}, expires_delta=access_token_expires),
        httponly=True,
        secure=True,
        samesite="lax",
        expires=int(access_token_expires.total_seconds()),
        path="/",
    )
    response.set_cookie(
        key="refresh_token",
        value=create_refresh_token(data={"sub": username}, expires_delta=refresh_token_expires),
        httponly=True,
        secure=True,
        samesite="lax",
        expires=int(refresh_token_expires.total_seconds()),
        path="/",
    )


async def _user_from_token(db: AsyncSession, token: str, expected_type: str) -> User:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != expected_type:
        raise JWTError("Invalid token type")
    username: str = payload.get("sub")
    if not username:
        raise JWTError("Invalid token payload")
    user = await get_user_by_username(db, username)
    if not user or not user.is_active:
        raise JWTError("User not found")
    return user


async def resolve_user_from_cookies(request: Request, response: Response, db: AsyncSession) -> Optional[User]:
    """
    Returns the user behind the access_token cookie. Falls back to the refresh_token cookie
    and rotates both cookies when it is used. None when neither token is valid.
    """
    access_token = request.cookies.get("access_token")
    refresh_token = request.cookies.get("refresh_token")

    if access_token:
        try:
            return await _user_from_token(db, access_token, "access")
        except JWTError as e:
            logger.debug(f"Access token error: {e}")

    if refresh_token:
        try:
            user = await _user_from_token(db, refresh_token, "refresh")
        except JWTError as e:
            logger.debug(f"Refresh token error: {e}")
            return None
        set_auth_cookies(response, user.username)
        return user

    return None


async def get_current_user_from_cookie(
    request: Request, response: Response, db: AsyncSession = Depends(get_db)
) -> User:
    user = await resolve_user_from_cookies(request, response, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return user


async def get_optional_user_from_cookie(
    request: Request, response: Response, db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Anonymous callers are allowed; an invalid cookie is treated as no cookie."""
    return await resolve_user_from_cookies(request, response, db)


async def get_current_admin(user: User = Depends(get_current_user_from_cookie)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator access required")
    return user


async def verify_email_token(db: AsyncSession, token: str) -> User:
    """Marks the account behind a verify_email token as verified. Raises JWTError for bad tokens."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != "verify_email":
        raise JWTError("Invalid token type")
    user = await get_user_by_username(db, payload.get("sub") or "")
    if not user or not user.is_active:
        raise JWTError("User not found")
    if (payload.get("email") or "").lower() != (user.email or "").lower():
        raise JWTError("Token was issued for a different e-mail address")
    if user.email_verified:
        return user
    user = await mark_email_verified(db, user)
    logger.info(f"User {user.id} verified their e-mail address")
    return user
