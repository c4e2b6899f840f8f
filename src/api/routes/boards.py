"""Whiteboard routes."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.routes.auth import get_current_teacher, get_current_user
from core.dependencies import BoardManagerDep
from core.exceptions import (
    BoardNotFoundError,
    InvalidOperationError,
    PermissionDeniedError,
    RelationNotFoundError,
)
from schemas.board import (
    AddElementsRequest,
    Board,
    BoardDetail,
    BoardElement,
    BoardListResponse,
    CreateBoardRequest,
    ElementIn,
    UpdateBoardRequest,
)
from schemas.user import User

router = APIRouter(prefix="/api/boards", tags=["Board"])


def _board_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")


def _relation_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Relation not found")


def _no_access(exc: PermissionDeniedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


@router.get("", response_model=BoardListResponse, summary="List boards")
def list_boards(
    board_manager: BoardManagerDep,
    current_user: User = Depends(get_current_user),
) -> BoardListResponse:
    boards = board_manager.list_boards(current_user.user_id, current_user.role)
    return BoardListResponse(boards=[Board.model_validate(m) for m in boards])


@router.post(
    "",
    response_model=Board,
    status_code=status.HTTP_201_CREATED,
    summary="Create a board",
)
def create_board(
    req: CreateBoardRequest,
    board_manager: BoardManagerDep,
    current_user: User = Depends(get_current_teacher),
) -> Board:
    """Create a board, optionally attached to one of the teacher's relations."""
    try:
        model = board_manager.create_board(
            current_user.user_id,
            title=req.title,
            relation_id=req.relation_id,
            settings=req.settings,
        )
    except RelationNotFoundError:
        raise _relation_not_found()
    return Board.model_validate(model)


@router.get("/{board_id}", response_model=BoardDetail, summary="Open a board")
def get_board(
    board_id: str,
    board_manager: BoardManagerDep,
    current_user: User = Depends(get_current_user),
) -> BoardDetail:
    """Return a board with its elements and the caller's role on it.

    Raises:
        HTTPException: 404 if the board does not exist; 403 if the caller is
            neither its teacher nor the student of its relation.
    """
    try:
        model, role = board_manager.get_board(board_id, current_user.user_id)
    except BoardNotFoundError:
        raise _board_not_found()
    except PermissionDeniedError as exc:
        raise _no_access(exc)
    board = Board.model_validate(model)
    return BoardDetail(
        **board.model_dump(),
        elements=[BoardElement.model_validate(e) for e in model.elements],
        role=role,
    )


@router.patch("/{board_id}", response_model=Board, summary="Update a board")
def update_board(
    board_id: str,
    req: UpdateBoardRequest,
    board_manager: BoardManagerDep,
    current_user: User = Depends(get_current_user),
) -> Board:
    """Change title, settings, thumbnail or relation. Owner only."""
    try:
        model = board_manager.update_board(
            board_id, current_user.user_id, req.model_dump(exclude_unset=True)
        )
    except BoardNotFoundError:
        raise _board_not_found()
    except RelationNotFoundError:
        raise _relation_not_found()
    return Board.model_validate(model)


@router.delete("/{board_id}", summary="Delete a board")
def delete_board(
    board_id: str,
    board_manager: BoardManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    try:
        board_manager.delete_board(board_id, current_user.user_id)
    except BoardNotFoundError:
        raise _board_not_found()
    return {"success": True}


@router.post(
    "/{board_id}/elements",
    response_model=BoardElement,
    status_code=status.HTTP_201_CREATED,
    summary="Add an element",
)
def add_element(
    board_id: str,
    req: ElementIn,
    board_manager: BoardManagerDep,
    current_user: User = Depends(get_current_user),
) -> BoardElement:
    try:
        model = board_manager.add_element(
            board_id,
            current_user.user_id,
            req.type,
            req.data,
            z_index=req.z_index or 0,
        )
    except BoardNotFoundError:
        raise _board_not_found()
    except PermissionDeniedError as exc:
        raise _no_access(exc)
    return BoardElement.model_validate(model)


@router.post(
    "/{board_id}/elements/batch",
    status_code=status.HTTP_201_CREATED,
    summary="Add elements in bulk",
)
def add_elements(
    board_id: str,
    req: AddElementsRequest,
    board_manager: BoardManagerDep,
    current_user: User = Depends(get_current_user),
) -> dict:
    """Add many elements at once, e.g. when restoring a saved board."""
    try:
        count = board_manager.add_elements(
            board_id,
            current_user.user_id,
            [element.model_dump() for element in req.elements],
        )
    except BoardNotFoundError:
        raise _board_not_found()
    except PermissionDeniedError as exc:
        raise _no_access(exc)
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return {"count": count}


@router.delete("/{board_id}/elements", summary="Remove elements")
def delete_elements(
    board_id: str,
    board_manager: BoardManagerDep,
    ids: str = Query(..., min_length=1, description="Comma-separated element IDs"),
    current_user: User = Depends(get_current_user),
) -> dict:
    element_ids = [element_id.strip() for element_id in ids.split(",") if element_id.strip()]
    if not element_ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ids is required")
    try:
        deleted = board_manager.delete_elements(board_id, current_user.user_id, element_ids)
    except BoardNotFoundError:
        raise _board_not_found()
    except PermissionDeniedError as exc:
        raise _no_access(exc)
    return {"deleted": deleted}
