"""Todo CRUD, always scoped to the owning user."""
from datetime import datetime
from typing import Optional

from sqlmodel import Session, col, select

from mytodos.core.errors import BadRequestError
from mytodos.models.todo import Todo
from mytodos.schemas.todo import TodoCreate, TodoUpdate


def list_todos(session: Session, user_id: int) -> list[Todo]:
    statement = (
        select(Todo)
        .where(Todo.user_id == user_id)
        .order_by(col(Todo.created_at).desc(), col(Todo.id).desc())
    )
    return list(session.exec(statement).all())


def get_todo(session: Session, user_id: int, todo_id: int) -> Optional[Todo]:
    """Return the todo, or None if it does not exist or is not owned."""
    statement = select(Todo).where(Todo.id == todo_id, Todo.user_id == user_id)
    return session.exec(statement).first()


def create_todo(session: Session, user_id: int, todo_create: TodoCreate) -> Todo:
    title = (todo_create.title or "").strip()
    if not title:
        raise BadRequestError("Title is required")

    todo = Todo(
        user_id=user_id,
        title=title,
        completed=todo_create.completed,
        priority=todo_create.priority,
        due_date=todo_create.due_date,
    )
    session.add(todo)
    session.commit()
    session.refresh(todo)
    return todo


def update_todo(
    session: Session, user_id: int, todo_id: int, todo_update: TodoUpdate
) -> Optional[Todo]:
    """
    Merge the fields present in `todo_update` into the stored todo.

    Fields absent from the request are left untouched; an explicit null
    clears `priority` or `due_date`.

    Returns:
        Updated todo, or None if not found/not owned

    Raises:
        BadRequestError: If no field is provided or the title is blank
    """
    changes = todo_update.model_dump(exclude_unset=True)
    if not changes:
        raise BadRequestError("No update fields provided")

    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise BadRequestError("Title cannot be empty")
        changes["title"] = title

    if "completed" in changes and changes["completed"] is None:
        raise BadRequestError("Completed must be true or false")

    todo = get_todo(session, user_id, todo_id)
    if not todo:
        return None

    for field, value in changes.items():
        setattr(todo, field, value)
    todo.updated_at = datetime.utcnow()

    session.add(todo)
    session.commit()
    session.refresh(todo)
    return todo


def toggle_complete(session: Session, user_id: int, todo_id: int) -> Optional[Todo]:
    todo = get_todo(session, user_id, todo_id)
    if not todo:
        return None

    todo.completed = not todo.completed
    todo.updated_at = datetime.utcnow()
    session.add(todo)
    session.commit()
    session.refresh(todo)
    return todo


def delete_todo(session: Session, user_id: int, todo_id: int) -> bool:
    """Returns True if deleted, False if not found/not owned."""
    todo = get_todo(session, user_id, todo_id)
    if not todo:
        return False

    session.delete(todo)
    session.commit()
    return True
