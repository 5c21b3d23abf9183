"""Request/response models for AI assistance and conversation history."""
from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TodoSnapshot(BaseModel):
    """Todo as sent by the client at the time of the query."""
    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    title: str
    completed: bool = False
    priority: Optional[int] = None
    due_date: Optional[date] = None


class AssistanceRequest(BaseModel):
    """New conversation turn. `user_input` is accepted for `query`."""

    query: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("query", "user_input")
    )
    todos: Optional[list[TodoSnapshot]] = None
    parent_id: Optional[int] = None
    conversation_count: int = 1


class AssistanceResponse(BaseModel):
    id: int
    timestamp: datetime
    response: str
    model: str
    parent_id: Optional[int] = None
    conversation_count: int


class TurnRead(BaseModel):
    """Stored turn as returned by history and thread endpoints."""

    id: int
    timestamp: datetime
    query: str
    # Raw stored text when the snapshot cannot be decoded
    todos: Union[list[dict[str, Any]], str]
    response: str
    model: str
    parent_id: Optional[int] = None
    conversation_count: int
    is_root: bool
    child_count: Optional[int] = None


class ProviderRead(BaseModel):
    name: str
    model: str
    configured: bool
    active: bool
