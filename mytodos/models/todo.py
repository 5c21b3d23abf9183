"""Todo SQLModel definition."""
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from mytodos.models.user import User


class Todo(SQLModel, table=True):
    """
    Todo item owned by exactly one user.

    Priority is 1 (high) to 3 (low) by convention; storage does not enforce
    the range. All queries MUST filter by user_id.
    """
    __tablename__ = "todos"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        foreign_key="users.id", index=True, nullable=False, ondelete="CASCADE"
    )
    title: str = Field(nullable=False)
    completed: bool = Field(default=False)
    priority: Optional[int] = Field(default=None)
    due_date: Optional[date] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    user: Optional["User"] = Relationship(back_populates="todos")
