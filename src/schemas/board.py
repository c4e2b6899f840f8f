"""Whiteboard schema definitions."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

import config
from schemas.relation import RelationWithParticipants
from schemas.user import User


class BoardSummary(BaseModel):
    """Short form of a board, embedded in lessons."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    thumbnail: Optional[str] = None


class Board(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    teacher_id: str
    relation_id: Optional[str] = None
    settings: Dict[str, Any] = Field(default_factory=dict)
    thumbnail: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    element_count: int = 0
    teacher: Optional[User] = None
    relation: Optional[RelationWithParticipants] = None


class BoardElement(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    board_id: str
    type: str
    data: Dict[str, Any]
    z_index: int
    created_by: str
    created_at: Optional[datetime] = None


class BoardDetail(Board):
    """A board with all of its elements, bottom layer first."""

    elements: List[BoardElement] = Field(default_factory=list)
    role: str = Field(description="'teacher' or 'student', seen from the caller.")


class BoardListResponse(BaseModel):
    boards: List[Board]


class CreateBoardRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=config.BOARD_TITLE_MAX_LENGTH)
    relation_id: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Live relation of the teacher the board is prepared for.",
    )
    settings: Optional[Dict[str, Any]] = None


class UpdateBoardRequest(BaseModel):
    """Merge-patch for a board. An explicit null relation_id detaches it."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(
        default=None, min_length=1, max_length=config.BOARD_TITLE_MAX_LENGTH
    )
    settings: Optional[Dict[str, Any]] = None
    thumbnail: Optional[str] = None
    relation_id: Optional[str] = Field(default=None, max_length=100)

    @field_validator("title", "settings")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class ElementIn(BaseModel):
    id: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: str = Field(min_length=1, max_length=50)
    data: Dict[str, Any]
    z_index: Optional[int] = None


class AddElementsRequest(BaseModel):
    elements: List[ElementIn] = Field(
        min_length=1, max_length=config.BOARD_MAX_ELEMENT_BATCH
    )
