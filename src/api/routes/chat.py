"""Chat routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.routes.auth import get_current_user
from config import CHAT_MAX_PAGE_SIZE, CHAT_PAGE_SIZE
from core.dependencies import ChatManagerDep
from core.exceptions import InvalidOperationError, RelationNotFoundError
from schemas.chat import (
    ChatMessage,
    MarkReadRequest,
    MessagePage,
    SendMessageRequest,
    UnreadCounts,
)
from schemas.user import User

router = APIRouter(prefix="/api/chat", tags=["Chat"])


def _relation_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Relation not found",
    )


@router.get("", response_model=MessagePage, summary="List messages")
def list_messages(
    chat_manager: ChatManagerDep,
    relation_id: str = Query(..., min_length=1, max_length=100),
    cursor: Optional[str] = Query(None, max_length=100),
    limit: int = Query(CHAT_PAGE_SIZE, ge=1, le=CHAT_MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
) -> MessagePage:
    """Return a page of messages of a live relation, newest first."""
    try:
        return chat_manager.list_messages(
            relation_id, current_user.user_id, cursor=cursor, limit=limit
        )
    except RelationNotFoundError:
        raise _relation_not_found()
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "",
    response_model=ChatMessage,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
)
def send_message(
    req: SendMessageRequest,
    chat_manager: ChatManagerDep,
    current_user: User = Depends(get_current_user),
) -> ChatMessage:
    try:
        return chat_manager.send_message(req.relation_id, current_user.user_id, req.text)
    except RelationNotFoundError:
        raise _relation_not_found()


@router.post("/read", summary="Mark messages read")
def mark_read(
    req: MarkReadRequest,
    chat_manager: ChatManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    try:
        chat_manager.mark_read(req.relation_id, current_user.user_id, req.message_ids)
    except RelationNotFoundError:
        raise _relation_not_found()
    return {"success": True}


@router.get("/unread", response_model=UnreadCounts, summary="Unread counters")
def unread_counts(
    chat_manager: ChatManagerDep,
    current_user: User = Depends(get_current_user),
) -> UnreadCounts:
    """Count unread messages on each live relation of the caller."""
    return chat_manager.unread_counts(current_user.user_id)
