"""Relation routes.

Issuing invites lives here as well because an invite is the way a relation
is requested.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import get_current_user
from core.dependencies import InviteManagerDep, RelationManagerDep
from core.exceptions import RelationNotFoundError
from schemas.invite import CreateInviteRequest, CreateInviteResponse
from schemas.relation import (
    Relation,
    RelationAsStudent,
    RelationAsTeacher,
    RelationListResponse,
    UpdateRelationRequest,
)
from schemas.user import User

router = APIRouter(prefix="/api/relations", tags=["Relation"])


@router.get("", response_model=RelationListResponse, summary="List live relations")
def list_relations(
    relation_manager: RelationManagerDep,
    current_user: User = Depends(get_current_user),
) -> RelationListResponse:
    """List the caller's live relations, split by the caller's role.

    Args:
        relation_manager: Injected RelationManager instance.
        current_user: Current authenticated user.

    Returns:
        RelationListResponse with ``as_teacher`` and ``as_student``, newest
        first.
    """
    as_teacher, as_student = relation_manager.list_for_user(current_user.user_id)
    return RelationListResponse(
        as_teacher=[RelationAsTeacher.model_validate(m) for m in as_teacher],
        as_student=[RelationAsStudent.model_validate(m) for m in as_student],
    )


@router.post("", response_model=CreateInviteResponse, summary="Issue an invite")
def create_invite(
    req: CreateInviteRequest,
    invite_manager: InviteManagerDep,
    current_user: User = Depends(get_current_user),
) -> CreateInviteResponse:
    """Issue a single-use invite.

    Args:
        req: Invite type, optional message and lifetime.
        invite_manager: Injected InviteManager instance.
        current_user: Current authenticated user, becomes the creator.

    Returns:
        CreateInviteResponse holding only the code.
    """
    code = invite_manager.create_invite(
        created_by_id=current_user.user_id,
        invite_type=req.type,
        message=req.message,
        expires_in_hours=req.expires_in_hours,
    )
    return CreateInviteResponse(code=code)


@router.patch("/{relation_id}", response_model=Relation, summary="Update a relation")
def update_relation(
    relation_id: str,
    req: UpdateRelationRequest,
    relation_manager: RelationManagerDep,
    current_user: User = Depends(get_current_user),
) -> Relation:
    """Apply a merge-patch of names and notes to a live relation.

    Raises:
        HTTPException: 404 if the relation is not live or the caller is not
            a participant.
    """
    try:
        model = relation_manager.update_relation(
            relation_id,
            current_user.user_id,
            req.model_dump(exclude_unset=True),
        )
    except RelationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Active relation not found",
        )
    return Relation.model_validate(model)


@router.delete("/{relation_id}", response_model=Relation, summary="Block a relation")
def delete_relation(
    relation_id: str,
    relation_manager: RelationManagerDep,
    current_user: User = Depends(get_current_user),
) -> Relation:
    """Soft-delete a relation.

    Any participant may do this, even on a relation that is already blocked.

    Raises:
        HTTPException: 404 if the caller is not a participant.
    """
    try:
        model = relation_manager.soft_delete_relation(relation_id, current_user.user_id)
    except RelationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Relation not found",
        )
    return Relation.model_validate(model)
