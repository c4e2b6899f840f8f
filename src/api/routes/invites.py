"""Invite routes."""

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import get_current_user
from core.dependencies import InviteManagerDep, RelationManagerDep
from core.exceptions import InvalidOperationError, InviteNotFoundError
from schemas.invite import AcceptInviteRequest, InviteInfo
from schemas.relation import Relation
from schemas.user import User

router = APIRouter(prefix="/api/invites", tags=["Invite"])


@router.post("/accept", response_model=Relation, summary="Accept an invite")
def accept_invite(
    req: AcceptInviteRequest,
    relation_manager: RelationManagerDep,
    current_user: User = Depends(get_current_user),
) -> Relation:
    """Redeem an invite code.

    Args:
        req: Request with the invite code.
        relation_manager: Injected RelationManager instance.
        current_user: Current authenticated user.

    Returns:
        The created or reactivated relation.

    Raises:
        HTTPException: 404 if the invite is unknown, expired or used; 400 if
            the caller created the invite.
    """
    try:
        model = relation_manager.accept_invite(req.code.strip(), current_user.user_id)
    except InviteNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return Relation.model_validate(model)


@router.get("/{code}", response_model=InviteInfo, summary="Look up an invite")
def get_invite(code: str, invite_manager: InviteManagerDep) -> InviteInfo:
    """Return an active invite together with its creator.

    No authentication is required so the invite page can show who sent it
    before the visitor signs in.

    Raises:
        HTTPException: 404 if the invite is unknown, expired or used.
    """
    try:
        model = invite_manager.get_active_invite(code)
    except InviteNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return InviteInfo.model_validate(model)
