"""Request/response models for registration and login."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Credentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserUpdate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    created_at: datetime


class AuthResponse(BaseModel):
    message: str
    user: UserRead
    token: str


class CurrentUserResponse(BaseModel):
    user: UserRead
