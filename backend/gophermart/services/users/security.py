"""Password hashing and session tokens."""

from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

from gophermart.config import settings
from gophermart.services.exceptions import AuthenticationError

SESSION_TOKEN_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash the given password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify that the plain password matches the hashed password."""
    return pwd_context.verify(plain, hashed)


def create_session_token(user_id: int, ttl: timedelta | None = None) -> str:
    """Issue a signed session token for the user."""
    expires_at = datetime.now(UTC) + (ttl or timedelta(hours=settings.session_ttl_hours))
    payload = {"sub": str(user_id), "exp": expires_at}
    return jwt.encode(payload, settings.secret_key, algorithm=SESSION_TOKEN_ALGORITHM)


def decode_session_token(token: str) -> int:
    """Return the user id carried by a session token.

    Raises:
        AuthenticationError: If the token is malformed, forged or expired
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[SESSION_TOKEN_ALGORITHM])
        return int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise AuthenticationError("Invalid session token") from e
