"""Conversation threads: root resolution, history listing and deletion.

Turns form parent-linked chains. Every lookup here is scoped by user id, so a
turn id belonging to another user behaves exactly like a missing one.
"""
import json
import logging
from typing import Any, Optional, Union

from sqlalchemy import delete, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased
from sqlmodel import Session, col, select

from mytodos.models.ai_history import AiHistory

logger = logging.getLogger(__name__)


def decode_todos(raw: Optional[str]) -> Union[list[dict[str, Any]], str]:
    """
    Decode a stored todo snapshot.

    Malformed JSON is returned as the raw stored text instead of failing.
    """
    if raw is None:
        return []
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Error parsing todos JSON: {e}")
        return raw


def find_turn(session: Session, turn_id: int, user_id: int) -> Optional[AiHistory]:
    statement = select(AiHistory).where(
        AiHistory.id == turn_id,
        AiHistory.user_id == user_id,
    )
    return session.exec(statement).first()


def ancestor_chain(session: Session, turn: AiHistory) -> list[AiHistory]:
    """
    Walk parent links from `turn` up to the root of its conversation.

    The walk stops at the last resolvable turn when a parent reference
    dangles (parent deleted), and on a repeated id.

    Returns:
        Root first, `turn` last
    """
    chain = [turn]
    seen = {turn.id}
    current = turn
    while current.parent_id is not None:
        if current.parent_id in seen:
            logger.warning(f"Cycle in conversation chain at turn {current.id}")
            break
        parent = find_turn(session, current.parent_id, current.user_id)
        if parent is None:
            logger.debug(
                f"Turn {current.id} references missing parent {current.parent_id}"
            )
            break
        seen.add(parent.id)
        chain.append(parent)
        current = parent
    chain.reverse()
    return chain


def find_root(session: Session, turn: AiHistory) -> AiHistory:
    return ancestor_chain(session, turn)[0]


def collect_descendants(session: Session, root: AiHistory) -> list[AiHistory]:
    """Return `root` and every turn below it, in no particular order."""
    collected = {root.id: root}
    frontier = [root.id]
    while frontier:
        statement = select(AiHistory).where(
            AiHistory.user_id == root.user_id,
            col(AiHistory.parent_id).in_(frontier),
        )
        children = [t for t in session.exec(statement).all() if t.id not in collected]
        for child in children:
            collected[child.id] = child
        frontier = [child.id for child in children]
    return list(collected.values())


def get_thread(session: Session, turn_id: int, user_id: int) -> list[AiHistory]:
    """
    Reconstruct the conversation that `turn_id` belongs to.

    Args:
        session: Database session
        turn_id: Any turn of the conversation
        user_id: Owner of the conversation

    Returns:
        All turns of the conversation, oldest first; empty if the turn
        does not exist or is not owned by the user
    """
    turn = find_turn(session, turn_id, user_id)
    if turn is None:
        return []

    root = find_root(session, turn)
    thread = collect_descendants(session, root)
    return sorted(thread, key=lambda t: (t.created_at, t.id))


def count_children(session: Session, user_id: int, turn_ids: list[int]) -> dict[int, int]:
    """Number of direct children per turn id."""
    if not turn_ids:
        return {}
    statement = (
        select(AiHistory.parent_id, func.count())
        .where(
            AiHistory.user_id == user_id,
            col(AiHistory.parent_id).in_(turn_ids),
        )
        .group_by(AiHistory.parent_id)
    )
    return {parent_id: count for parent_id, count in session.exec(statement).all()}


def list_history(
    session: Session,
    user_id: int,
    limit: int = 20,
    roots_only: bool = False,
) -> list[tuple[AiHistory, int]]:
    """
    Most recent turns of a user, newest first.

    With `roots_only`, a turn whose parent no longer exists counts as a
    root, matching how `get_thread` resolves it.

    Returns:
        (turn, direct child count) pairs, at most `limit` of them
    """
    statement = select(AiHistory).where(AiHistory.user_id == user_id)
    if roots_only:
        parent = aliased(AiHistory)
        has_parent = (
            select(parent.id)
            .where(parent.id == AiHistory.parent_id, parent.user_id == user_id)
            .exists()
        )
        statement = statement.where(
            or_(col(AiHistory.parent_id).is_(None), ~has_parent)
        )
    statement = statement.order_by(
        col(AiHistory.created_at).desc(), col(AiHistory.id).desc()
    ).limit(limit)

    turns = list(session.exec(statement).all())
    children = count_children(session, user_id, [t.id for t in turns])
    return [(turn, children.get(turn.id, 0)) for turn in turns]


def delete_turn(
    session: Session,
    turn_id: int,
    user_id: int,
    subtree: bool = False,
) -> bool:
    """
    Delete a turn and its direct children.

    Grandchildren are not removed and keep a dangling `parent_id`; pass
    `subtree=True` to remove every descendant instead.

    Returns:
        True if deleted, False if not found/not owned
    """
    turn = find_turn(session, turn_id, user_id)
    if turn is None:
        return False

    statement = delete(AiHistory).where(AiHistory.user_id == user_id)
    if subtree:
        ids = [t.id for t in collect_descendants(session, turn)]
        statement = statement.where(col(AiHistory.id).in_(ids))
    else:
        statement = statement.where(
            or_(AiHistory.id == turn_id, AiHistory.parent_id == turn_id)
        )

    result = session.exec(statement)
    session.commit()
    logger.info(f"Deleted {result.rowcount} turn(s) from conversation {turn_id}")
    return True


def delete_all_turns(session: Session, user_id: int) -> bool:
    """
    Delete every turn owned by a user.

    Returns:
        False only when the storage layer fails
    """
    try:
        session.exec(delete(AiHistory).where(AiHistory.user_id == user_id))
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error deleting all conversations for user {user_id}: {e}")
        return False
    return True
