"""Todo routes.

Provides:
- GET /api/todos - List the user's todos, newest first
- GET /api/todos/{id} - Get one todo
- POST /api/todos - Create todo
- PUT /api/todos/{id} - Partial update
- PATCH /api/todos/{id}/toggle - Toggle completion
- DELETE /api/todos/{id} - Delete todo
"""
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from mytodos.core.deps import get_current_user, get_db
from mytodos.core.errors import NotFoundError
from mytodos.models.user import User
from mytodos.schemas.todo import DeleteResponse, TodoCreate, TodoRead, TodoUpdate
from mytodos.services import todo_service

router = APIRouter(prefix="/api/todos", tags=["todos"])


@router.get("", response_model=list[TodoRead])
def list_todos(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    return todo_service.list_todos(session, current_user.id)


@router.get("/{todo_id}", response_model=TodoRead)
def get_todo(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    todo = todo_service.get_todo(session, current_user.id, todo_id)
    if not todo:
        raise NotFoundError("Todo", todo_id)
    return todo


@router.post("", response_model=TodoRead, status_code=status.HTTP_201_CREATED)
def create_todo(
    todo_create: TodoCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    return todo_service.create_todo(session, current_user.id, todo_create)


@router.put("/{todo_id}", response_model=TodoRead)
def update_todo(
    todo_id: int,
    todo_update: TodoUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    todo = todo_service.update_todo(session, current_user.id, todo_id, todo_update)
    if not todo:
        raise NotFoundError("Todo", todo_id)
    return todo


@router.patch("/{todo_id}/toggle", response_model=TodoRead)
def toggle_todo(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    todo = todo_service.toggle_complete(session, current_user.id, todo_id)
    if not todo:
        raise NotFoundError("Todo", todo_id)
    return todo


@router.delete("/{todo_id}", response_model=DeleteResponse)
def delete_todo(
    todo_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> DeleteResponse:
    if not todo_service.delete_todo(session, current_user.id, todo_id):
        raise NotFoundError("Todo", todo_id)
    return DeleteResponse(success=True, message="Todo deleted successfully")
