"""Lesson planner routes."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.routes.auth import get_current_teacher, get_current_user
from core.dependencies import LessonManagerDep
from core.exceptions import (
    BoardNotFoundError,
    InvalidOperationError,
    LessonNotFoundError,
    RelationNotFoundError,
)
from schemas.lesson import (
    CreateLessonRequest,
    Lesson,
    LessonDeleteResponse,
    LessonDeleteScope,
    LessonDetail,
    UpdateLessonRequest,
)
from schemas.user import User

router = APIRouter(prefix="/api/lessons", tags=["Lesson"])


def _lesson_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")


@router.get("", response_model=List[LessonDetail], summary="List lessons")
def list_lessons(
    lesson_manager: LessonManagerDep,
    start_date: Optional[datetime] = Query(None, description="Earliest start time"),
    end_date: Optional[datetime] = Query(None, description="Latest start time"),
    current_user: User = Depends(get_current_user),
) -> List[LessonDetail]:
    """List the caller's lessons, earliest first.

    Teachers get the lessons they scheduled, students the lessons of their
    live relations.
    """
    lessons = lesson_manager.list_lessons(
        current_user.user_id,
        current_user.role,
        start_date=start_date,
        end_date=end_date,
    )
    return [LessonDetail.model_validate(m) for m in lessons]


@router.post("", response_model=Lesson, summary="Schedule a lesson")
def create_lesson(
    req: CreateLessonRequest,
    lesson_manager: LessonManagerDep,
    current_user: User = Depends(get_current_teacher),
) -> Lesson:
    """Schedule a lesson. Teachers only.

    Raises:
        HTTPException: 400 if the lesson ends before it starts; 404 if the
            relation or board does not belong to the teacher.
    """
    try:
        model = lesson_manager.create_lesson(
            current_user.user_id,
            title=req.title,
            start_time=req.start_time,
            end_time=req.end_time,
            description=req.description,
            relation_id=req.relation_id,
            board_id=req.board_id,
            is_recurring=req.is_recurring,
            recurrence=req.recurrence,
            label_color=req.label_color,
        )
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except RelationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Relation not found")
    except BoardNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
    return Lesson.model_validate(model)


@router.get("/{lesson_id}", response_model=LessonDetail, summary="Get a lesson")
def get_lesson(
    lesson_id: str,
    lesson_manager: LessonManagerDep,
    current_user: User = Depends(get_current_user),
) -> LessonDetail:
    try:
        model = lesson_manager.get_lesson(lesson_id, current_user.user_id, current_user.role)
    except LessonNotFoundError:
        raise _lesson_not_found()
    return LessonDetail.model_validate(model)


@router.patch("/{lesson_id}", response_model=Lesson, summary="Update a lesson")
def update_lesson(
    lesson_id: str,
    req: UpdateLessonRequest,
    lesson_manager: LessonManagerDep,
    current_user: User = Depends(get_current_teacher),
) -> Lesson:
    """Apply a merge-patch to one of the teacher's lessons."""
    try:
        model = lesson_manager.update_lesson(
            lesson_id, current_user.user_id, req.model_dump(exclude_unset=True)
        )
    except LessonNotFoundError:
        raise _lesson_not_found()
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except RelationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Relation not found")
    except BoardNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
    return Lesson.model_validate(model)


@router.delete("/{lesson_id}", response_model=LessonDeleteResponse, summary="Delete lessons")
def delete_lesson(
    lesson_id: str,
    lesson_manager: LessonManagerDep,
    scope: LessonDeleteScope = Query(LessonDeleteScope.SINGLE),
    current_user: User = Depends(get_current_teacher),
) -> LessonDeleteResponse:
    """Delete a lesson, or it and the later lessons selected by ``scope``."""
    try:
        deleted = lesson_manager.delete_lesson(lesson_id, current_user.user_id, scope)
    except LessonNotFoundError:
        raise _lesson_not_found()
    return LessonDeleteResponse(deleted=deleted, scope=scope)
