"""Password hashing, access tokens and credential checks."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.config import get_settings
from workhub.exceptions import AuthenticationError
from workhub.models.user import User

logger = structlog.get_logger()
settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: UUID, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.jwt_access_token_expire_minutes
        )

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> UUID:
    """Return the principal id carried by a valid access token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise AuthenticationError("Invalid or expired token") from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    try:
        return UUID(payload["sub"])
    except ValueError:
        raise AuthenticationError("Invalid token") from None


async def authenticate(db: AsyncSession, login: str, password: str) -> User:
    """Check a username-or-email and password pair.

    Only active ``account`` principals with credentials can log in.
    """
    needle = login.strip().lower()
    result = await db.execute(
        select(User)
        .where(
            User.kind == "account",
            or_(func.lower(User.username) == needle, func.lower(User.email) == needle),
        )
        .limit(1)
    )
    user = result.scalar_one_or_none()

    if user is None or not user.can_login or not verify_password(password, user.hashed_password):
        logger.info("login_failed", login=login)
        raise AuthenticationError("Invalid username or password")
    if not user.is_active:
        logger.info("login_inactive_user", user_id=str(user.id))
        raise AuthenticationError("This account is disabled")

    user.last_login_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("login_succeeded", user_id=str(user.id))
    return user
