"""Password hashing and bearer token issuance."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from passlib.hash import bcrypt

from deaftube.config import settings
from deaftube.logging import get_logger
from deaftube.services.errors import UnauthorizedError

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a bearer token."""

    user_id: str
    username: str


def hash_password(password: str) -> str:
    """Hash a password with the configured bcrypt cost."""
    return bcrypt.using(rounds=settings.bcrypt_rounds).hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored hash; malformed hashes never match."""
    try:
        return bcrypt.verify(password, hashed)
    except ValueError:
        logger.warning("password_hash_malformed")
        return False


def issue_token(user_id: str, username: str) -> str:
    """Issue a signed bearer token for a user."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": user_id,
        "username": username,
        "iat": now,
        "exp": now + timedelta(seconds=settings.token_lifetime_seconds),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenClaims:
    """Validate a bearer token and return its claims.

    Raises:
        UnauthorizedError: If the token is malformed, tampered with or expired.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.info("token_rejected", reason=type(e).__name__)
        raise UnauthorizedError("Invalid token") from e

    user_id = payload.get("id")
    username = payload.get("username")
    if not user_id or not username:
        raise UnauthorizedError("Invalid token")

    return TokenClaims(user_id=user_id, username=username)
