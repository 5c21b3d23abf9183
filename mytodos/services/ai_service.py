"""AI assistance service: conversation turns about a user's todos.

Handles:
- Request validation (query, todos, conversation length)
- Prompt assembly, including the prior thread when continuing
- Model dispatch with a local fallback when the provider fails
- Turn storage
"""
import json
import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional

from sqlmodel import Session

from mytodos.core.errors import BadRequestError, NotFoundError, UpstreamError
from mytodos.models.ai_history import AiHistory
from mytodos.schemas.ai import AssistanceRequest, TodoSnapshot
from mytodos.services import thread_service
from mytodos.services.llm_client import ChatModelClient

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "local-fallback"

PRIORITY_LABELS = {1: "High", 2: "Medium", 3: "Low"}

FALLBACK_TIPS = [
    "Break \"{title}\" into smaller steps and finish the first one today.",
    "Block a fixed time slot in your calendar for \"{title}\".",
    "Ask yourself what \"done\" looks like for \"{title}\" before you start.",
    "Tackle \"{title}\" first thing, while your energy is highest.",
    "Set a 25-minute timer and work on \"{title}\" without interruptions.",
    "If \"{title}\" keeps slipping, consider delegating or dropping it.",
    "Pair \"{title}\" with a small reward once it is finished.",
]


@dataclass(frozen=True)
class Completion:
    """Resolved model answer: either from the provider or the local fallback."""
    text: str
    model: str
    source: Literal["provider", "fallback"]


def priority_label(priority: Optional[int]) -> str:
    return PRIORITY_LABELS.get(priority, "None")


def format_due_date(due_date: Optional[date]) -> str:
    return due_date.isoformat() if due_date else "no due date"


class AssistanceService:
    """Service layer for AI conversation turns."""

    def __init__(
        self,
        client: ChatModelClient,
        max_conversation_count: int = 10,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        rng: Optional[random.Random] = None,
    ):
        """Initialize assistance service."""
        self.client = client
        self.max_conversation_count = max_conversation_count
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.rng = rng or random.Random()

    def validate_request(self, request: AssistanceRequest) -> None:
        """
        Check a turn request before anything is read or sent.

        Raises:
            BadRequestError: If query/todos are missing or the
                conversation count is out of range
        """
        if not request.query or not request.query.strip() or not request.todos:
            raise BadRequestError("Query and todos are required")

        if request.conversation_count > self.max_conversation_count:
            raise BadRequestError("Maximum conversation count exceeded")
        if request.conversation_count < 1:
            raise BadRequestError("Conversation count must be at least 1")

    def create_turn(
        self,
        session: Session,
        user_id: int,
        request: AssistanceRequest,
    ) -> AiHistory:
        """
        Answer a query about the user's todos and store the exchange.

        Flow:
        1. Validate the request
        2. Resolve the parent turn and the chain of turns leading to it
        3. Build system and user prompts
        4. Call the model, falling back to local tips on failure
        5. Store the turn linked to its parent

        Args:
            session: Database session
            user_id: Authenticated user ID from JWT
            request: Query, todo snapshots, parent id and conversation count

        Returns:
            Stored AiHistory turn

        Raises:
            BadRequestError: If validation fails
            NotFoundError: If the parent turn is not found or not owned
        """
        self.validate_request(request)

        history: list[AiHistory] = []
        position = 1
        if request.parent_id is not None:
            parent = thread_service.find_turn(session, request.parent_id, user_id)
            if parent is None:
                raise NotFoundError("Conversation", request.parent_id)

            position = parent.conversation_count + 1
            if position > self.max_conversation_count:
                raise BadRequestError("Maximum conversation count exceeded")
            if position != request.conversation_count:
                logger.debug(
                    f"Conversation count {request.conversation_count} from client "
                    f"differs from stored chain position {position}"
                )
            history = thread_service.ancestor_chain(session, parent)

        system_prompt = self._build_system_prompt(history, position)
        user_prompt = self._build_user_prompt(request.query, request.todos)

        completion = self.complete(system_prompt, user_prompt, request.todos, user_id)

        turn = AiHistory(
            user_id=user_id,
            query=request.query,
            todos=json.dumps([t.model_dump(mode="json") for t in request.todos]),
            response=completion.text,
            model=completion.model,
            parent_id=request.parent_id,
            conversation_count=position,
        )
        session.add(turn)
        session.commit()
        session.refresh(turn)

        logger.info(
            f"AI turn stored: user={user_id}, turn={turn.id}, parent={turn.parent_id}, "
            f"position={turn.conversation_count}, source={completion.source}"
        )
        return turn

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        todos: list[TodoSnapshot],
        user_id: Optional[int] = None,
    ) -> Completion:
        """Call the provider; any provider failure resolves to the fallback."""
        try:
            text = self.client.complete(
                system_prompt,
                user_prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            return Completion(text=text, model=self.client.model, source="provider")
        except UpstreamError as e:
            logger.warning(f"AI provider failed for user {user_id}, using fallback: {e.message}")
            return Completion(
                text=self.build_fallback_response(todos),
                model=FALLBACK_MODEL,
                source="fallback",
            )

    def build_fallback_response(self, todos: list[TodoSnapshot]) -> str:
        """One pseudorandomly chosen tip per todo."""
        lines = ["Here are a few suggestions for your todos:", ""]
        for index, todo in enumerate(todos, start=1):
            tip = self.rng.choice(FALLBACK_TIPS).format(title=todo.title)
            lines.append(f"{index}. {tip}")
        return "\n".join(lines)

    def _build_system_prompt(self, history: list[AiHistory], position: int) -> str:
        """
        Build the system prompt.

        When continuing, the turns from the root down to the parent are
        appended oldest first, followed by the round number.
        """
        prompt = """You are a helpful personal productivity assistant. The user will share their todo list and ask for help with it.

Give practical, specific advice:
- Suggest an order to work in, taking priority and due dates into account
- Point out todos that are overdue or due soon
- Propose ways to break large todos into smaller steps

Be concise and friendly. Answer in the language the user writes in."""

        if not history:
            return prompt

        parts = [prompt, "", "Previous conversation:"]
        for index, turn in enumerate(history, start=1):
            parts.append(f"[Round {index}] User: {turn.query}")
            parts.append(f"[Round {index}] Assistant: {turn.response}")
        parts.append("")
        parts.append(
            f"This is round {position} of the conversation. "
            "Build on your previous answers instead of repeating them."
        )
        return "\n".join(parts)

    def _build_user_prompt(self, query: str, todos: list[TodoSnapshot]) -> str:
        lines = [query.strip(), "", "My todos:"]
        for index, todo in enumerate(todos, start=1):
            status = "completed" if todo.completed else "not completed"
            lines.append(
                f"{index}. {todo.title} (status: {status}, "
                f"priority: {priority_label(todo.priority)}, "
                f"due: {format_due_date(todo.due_date)})"
            )
        return "\n".join(lines)
