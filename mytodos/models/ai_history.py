"""AI conversation turn SQLModel definition.

A turn is one request/response exchange with a language model. Turns link to
the previous turn of the same conversation through `parent_id`; a turn without
a parent is the root of its conversation.
"""
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from mytodos.models.user import User


class AiHistory(SQLModel, table=True):
    """
    Conversation turn.

    `todos` holds the JSON-encoded todo snapshot sent with the query.
    `parent_id` is indexed but not a foreign key: deleting a turn leaves
    the parent reference of its grandchildren dangling.
    """
    __tablename__ = "ai_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        foreign_key="users.id", index=True, nullable=False, ondelete="CASCADE"
    )
    query: str = Field(sa_column=Column(Text, nullable=False))
    todos: str = Field(sa_column=Column(Text, nullable=False))
    response: str = Field(sa_column=Column(Text, nullable=False))
    model: str = Field(default="deepseek-chat", max_length=100)
    parent_id: Optional[int] = Field(default=None, index=True)
    conversation_count: int = Field(default=1)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    user: Optional["User"] = Relationship(back_populates="ai_history")

    @property
    def is_root(self) -> bool:
        return self.parent_id is None
