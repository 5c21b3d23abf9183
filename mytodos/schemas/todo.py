"""Request/response models for todos."""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TodoCreate(BaseModel):
    title: Optional[str] = None
    completed: bool = False
    priority: Optional[int] = None
    due_date: Optional[date] = None


class TodoUpdate(BaseModel):
    """Partial update: only fields present in the request are applied."""
    title: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[int] = None
    due_date: Optional[date] = None


class TodoRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    completed: bool = False
    priority: Optional[int] = None
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class DeleteResponse(BaseModel):
    success: bool
    message: Optional[str] = None
