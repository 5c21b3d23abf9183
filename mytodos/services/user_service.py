"""User registration, authentication and account maintenance."""
import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from mytodos.core.errors import BadRequestError, UnauthorizedError
from mytodos.core.security import hash_password, verify_password
from mytodos.models.user import User
from mytodos.schemas.auth import UserUpdate

logger = logging.getLogger(__name__)


def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def get_user_by_username(session: Session, username: str) -> Optional[User]:
    statement = select(User).where(User.username == username)
    return session.exec(statement).first()


def _require_credentials(username: Optional[str], password: Optional[str]) -> tuple[str, str]:
    username = (username or "").strip()
    if not username or not password:
        raise BadRequestError("Username and password are required")
    return username, password


def register_user(session: Session, username: Optional[str], password: Optional[str]) -> User:
    """
    Create a new account.

    Raises:
        BadRequestError: If a field is missing or the username is taken
    """
    username, password = _require_credentials(username, password)

    if get_user_by_username(session, username):
        raise BadRequestError("Username already exists")

    user = User(username=username, password_hash=hash_password(password))
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"User registered: id={user.id}")
    return user


def authenticate(session: Session, username: Optional[str], password: Optional[str]) -> User:
    """
    Check a username/password pair.

    Raises:
        BadRequestError: If a field is missing
        UnauthorizedError: If the pair does not match an account
    """
    username, password = _require_credentials(username, password)

    user = get_user_by_username(session, username)
    if not user or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Invalid username or password")
    return user


def update_user(session: Session, user: User, user_update: UserUpdate) -> User:
    """Apply a username and/or password change."""
    changes = user_update.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise BadRequestError("No update fields provided")

    if "username" in changes:
        username = changes["username"].strip()
        if not username:
            raise BadRequestError("Username cannot be empty")
        existing = get_user_by_username(session, username)
        if existing and existing.id != user.id:
            raise BadRequestError("Username already exists")
        user.username = username

    if "password" in changes:
        if not changes["password"]:
            raise BadRequestError("Password cannot be empty")
        user.password_hash = hash_password(changes["password"])

    user.updated_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def delete_user(session: Session, user: User) -> None:
    """Delete an account together with its todos and conversation turns."""
    user_id = user.id
    session.delete(user)
    session.commit()
    logger.info(f"User deleted: id={user_id}")
