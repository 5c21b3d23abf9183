"""Password hashing and access tokens."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from mytodos.config import Settings, settings as default_settings
from mytodos.core.errors import UnauthorizedError

BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of `password`."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of `password` against a stored hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def create_access_token(user_id: int, config: Optional[Settings] = None) -> str:
    config = config or default_settings
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=config.JWT_EXPIRES_MINUTES)
    payload = {"sub": str(user_id), "exp": expires_at}
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str, config: Optional[Settings] = None) -> int:
    """
    Recover the user id claim from a token.

    Raises:
        UnauthorizedError: If the token is expired, tampered with or malformed
    """
    config = config or default_settings
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.PyJWTError:
        raise UnauthorizedError("Token verification failed")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Token verification failed")
