"""User SQLModel definition."""
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from mytodos.models.ai_history import AiHistory
    from mytodos.models.todo import Todo


class User(SQLModel, table=True):
    """
    Account that owns todos and AI conversation turns.

    Deleting a user removes everything the user owns, both through the ORM
    cascade below and the `ON DELETE CASCADE` foreign keys.
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=50, unique=True, index=True, nullable=False)
    password_hash: str = Field(max_length=100, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    todos: List["Todo"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    ai_history: List["AiHistory"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
