"""Authentication routes.

Provides:
- POST /api/auth/register - Create account, returns token
- POST /api/auth/login - Exchange credentials for a token
- GET /api/auth/me - Current user
- PATCH /api/auth/me - Change username and/or password
- DELETE /api/auth/me - Delete account with its todos and conversations
"""
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from mytodos.config import Settings
from mytodos.core.deps import get_current_user, get_db, get_settings
from mytodos.core.security import create_access_token
from mytodos.models.user import User
from mytodos.schemas.auth import (
    AuthResponse,
    Credentials,
    CurrentUserResponse,
    UserRead,
    UserUpdate,
)
from mytodos.schemas.todo import DeleteResponse
from mytodos.services import user_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    credentials: Credentials,
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    user = user_service.register_user(session, credentials.username, credentials.password)
    return AuthResponse(
        message="User registered successfully",
        user=UserRead.model_validate(user),
        token=create_access_token(user.id, settings),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    credentials: Credentials,
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    user = user_service.authenticate(session, credentials.username, credentials.password)
    return AuthResponse(
        message="Login successful",
        user=UserRead.model_validate(user),
        token=create_access_token(user.id, settings),
    )


@router.get("/me", response_model=CurrentUserResponse)
def read_current_user(current_user: User = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserRead.model_validate(current_user))


@router.patch("/me", response_model=CurrentUserResponse)
def update_current_user(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> CurrentUserResponse:
    user = user_service.update_user(session, current_user, user_update)
    return CurrentUserResponse(user=UserRead.model_validate(user))


@router.delete("/me", response_model=DeleteResponse)
def delete_current_user(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> DeleteResponse:
    user_service.delete_user(session, current_user)
    return DeleteResponse(success=True, message="Account deleted successfully")
