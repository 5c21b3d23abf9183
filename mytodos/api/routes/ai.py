"""AI assistance and conversation history routes.

Provides:
- POST /api/ai/assistance - Ask about todos, optionally continuing a conversation
- GET /api/ai/history - Recent turns, newest first
- GET /api/ai/thread/{id} - Whole conversation containing a turn, oldest first
- DELETE /api/ai/history/{id} - Delete a turn and its direct replies
- DELETE /api/ai/history - Delete all of the user's turns
- GET /api/ai/providers - Configured language-model providers
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from mytodos.config import Settings
from mytodos.core.deps import (
    get_assistance_service,
    get_current_user,
    get_db,
    get_settings,
)
from mytodos.core.errors import NotFoundError, TodoAppError
from mytodos.models.ai_history import AiHistory
from mytodos.models.user import User
from mytodos.schemas.ai import (
    AssistanceRequest,
    AssistanceResponse,
    ProviderRead,
    TurnRead,
)
from mytodos.schemas.todo import DeleteResponse
from mytodos.services import thread_service
from mytodos.services.ai_service import AssistanceService
from mytodos.services.llm_client import PROVIDERS, ChatModelClient

router = APIRouter(prefix="/api/ai", tags=["ai"])


def to_turn_read(turn: AiHistory, child_count: Optional[int] = None) -> TurnRead:
    return TurnRead(
        id=turn.id,
        timestamp=turn.created_at,
        query=turn.query,
        todos=thread_service.decode_todos(turn.todos),
        response=turn.response,
        model=turn.model,
        parent_id=turn.parent_id,
        conversation_count=turn.conversation_count,
        is_root=turn.is_root,
        child_count=child_count,
    )


@router.post("/assistance", response_model=AssistanceResponse)
def create_assistance(
    request: AssistanceRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
    service: AssistanceService = Depends(get_assistance_service),
) -> AssistanceResponse:
    """
    Ask the assistant about a set of todos.

    A failing provider does not fail the request: the stored turn then
    carries a locally generated answer.
    """
    turn = service.create_turn(session, current_user.id, request)
    return AssistanceResponse(
        id=turn.id,
        timestamp=turn.created_at,
        response=turn.response,
        model=turn.model,
        parent_id=turn.parent_id,
        conversation_count=turn.conversation_count,
    )


@router.get("/history", response_model=list[TurnRead])
def list_history(
    roots_only: bool = Query(False, description="Only conversation starters"),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> list[TurnRead]:
    items = thread_service.list_history(
        session, current_user.id, limit=settings.HISTORY_LIMIT, roots_only=roots_only
    )
    return [to_turn_read(turn, child_count) for turn, child_count in items]


@router.get("/thread/{turn_id}", response_model=list[TurnRead])
def get_thread(
    turn_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> list[TurnRead]:
    thread = thread_service.get_thread(session, turn_id, current_user.id)
    if not thread:
        raise NotFoundError("Conversation", turn_id)
    return [to_turn_read(turn) for turn in thread]


@router.delete("/history/{turn_id}", response_model=DeleteResponse)
def delete_turn(
    turn_id: int,
    subtree: bool = Query(False, description="Also delete replies to replies"),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> DeleteResponse:
    if not thread_service.delete_turn(session, turn_id, current_user.id, subtree=subtree):
        raise NotFoundError("Conversation", turn_id)
    return DeleteResponse(success=True, message="Conversation deleted successfully")


@router.delete("/history", response_model=DeleteResponse)
def delete_all_turns(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> DeleteResponse:
    if not thread_service.delete_all_turns(session, current_user.id):
        raise TodoAppError("Failed to delete conversations")
    return DeleteResponse(success=True, message="All conversations deleted successfully")


@router.get("/providers", response_model=list[ProviderRead])
def list_providers(
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> list[ProviderRead]:
    providers = []
    for name in PROVIDERS:
        client = ChatModelClient.from_settings(settings, provider=name)
        providers.append(
            ProviderRead(
                name=name,
                model=client.model,
                configured=client.configured,
                active=name == settings.AI_PROVIDER,
            )
        )
    return providers
