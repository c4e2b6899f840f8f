"""Lesson schema definitions.

This module defines request and response models for the lesson planner.
"""

import enum
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

import config
from schemas.board import BoardSummary
from schemas.relation import RelationWithParticipants

LABEL_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class LessonDeleteScope(str, enum.Enum):
    """Which lessons a delete request removes."""

    SINGLE = "single"
    # This lesson and later ones of the same relation on the same weekday
    WEEKDAY = "weekday"
    # This lesson and every later one of the same relation
    ALL_FUTURE_STUDENT = "all_future_student"


class Lesson(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    relation_id: Optional[str] = None
    board_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    previous_start_time: Optional[datetime] = None
    previous_end_time: Optional[datetime] = None
    is_recurring: bool = False
    recurrence: Optional[Dict[str, Any]] = None
    label_color: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class LessonDetail(Lesson):
    relation: Optional[RelationWithParticipants] = None
    board: Optional[BoardSummary] = None


class CreateLessonRequest(BaseModel):
    title: str = Field(min_length=1, max_length=config.LESSON_TITLE_MAX_LENGTH)
    description: Optional[str] = Field(
        default=None, max_length=config.LESSON_DESCRIPTION_MAX_LENGTH
    )
    start_time: datetime
    end_time: datetime
    relation_id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    board_id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_recurring: bool = False
    recurrence: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Free-form recurrence rule stored as given, e.g. "
        '{"frequency": "weekly", "count": 10}.',
    )
    label_color: Optional[str] = Field(default=None, pattern=LABEL_COLOR_PATTERN)


class UpdateLessonRequest(BaseModel):
    """Merge-patch for a lesson.

    Moving ``start_time`` or ``end_time`` records the previous values and
    marks the lesson as rescheduled.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(
        default=None, min_length=1, max_length=config.LESSON_TITLE_MAX_LENGTH
    )
    description: Optional[str] = Field(
        default=None, max_length=config.LESSON_DESCRIPTION_MAX_LENGTH
    )
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    relation_id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    board_id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_recurring: Optional[bool] = None
    recurrence: Optional[Dict[str, Any]] = None
    label_color: Optional[str] = Field(default=None, pattern=LABEL_COLOR_PATTERN)
    status: Optional[Literal["scheduled", "completed", "cancelled"]] = None

    @field_validator("title", "start_time", "end_time", "is_recurring", "status")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class LessonDeleteResponse(BaseModel):
    success: bool = True
    deleted: int
    scope: LessonDeleteScope
