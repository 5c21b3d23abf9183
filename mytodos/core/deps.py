"""FastAPI dependencies shared by the routers."""
from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from mytodos.config import Settings
from mytodos.core.errors import UnauthorizedError
from mytodos.core.security import decode_access_token
from mytodos.models.user import User
from mytodos.services.ai_service import AssistanceService
from mytodos.services.llm_client import ChatModelClient

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a Session from the application's engine for one request."""
    with Session(request.app.state.engine) as session:
        yield session


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolve the user from the `Authorization: Bearer <token>` header.

    Raises:
        UnauthorizedError: If the header is missing or malformed, the token
            is invalid or expired, or the user no longer exists
    """
    if credentials is None:
        raise UnauthorizedError("No authorization token provided")
    if not credentials.credentials:
        raise UnauthorizedError("Invalid token format")

    user_id = decode_access_token(credentials.credentials, settings)
    user = session.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


def get_model_client(settings: Settings = Depends(get_settings)) -> ChatModelClient:
    return ChatModelClient.from_settings(settings)


def get_assistance_service(
    client: ChatModelClient = Depends(get_model_client),
    settings: Settings = Depends(get_settings),
) -> AssistanceService:
    return AssistanceService(
        client,
        max_conversation_count=settings.MAX_CONVERSATION_COUNT,
        max_tokens=settings.AI_MAX_TOKENS,
        temperature=settings.AI_TEMPERATURE,
    )
