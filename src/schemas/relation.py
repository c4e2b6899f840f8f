"""Relation schema definitions."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

import config
from models.relation import RelationStatus
from schemas.user import User


class Relation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    teacher_id: str
    student_id: str
    status: RelationStatus
    deleted_at: Optional[datetime] = None
    teacher_name: Optional[str] = None
    student_name: Optional[str] = None
    teacher_notes: Optional[str] = None
    student_notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class RelationAsTeacher(Relation):
    """Relation seen by its teacher, with the student embedded."""

    student: User


class RelationAsStudent(Relation):
    """Relation seen by its student, with the teacher embedded."""

    teacher: User


class RelationListResponse(BaseModel):
    as_teacher: List[RelationAsTeacher]
    as_student: List[RelationAsStudent]


class UpdateRelationRequest(BaseModel):
    """Merge-patch for a relation.

    Only the fields below may be changed; any other key is rejected. Fields
    left out of the request body are not touched, while an explicit null
    clears the field.
    """

    model_config = ConfigDict(extra="forbid")

    teacher_name: Optional[str] = Field(
        default=None, max_length=config.RELATION_NAME_MAX_LENGTH
    )
    student_name: Optional[str] = Field(
        default=None, max_length=config.RELATION_NAME_MAX_LENGTH
    )
    teacher_notes: Optional[str] = Field(
        default=None, max_length=config.RELATION_NOTES_MAX_LENGTH
    )
    student_notes: Optional[str] = Field(
        default=None, max_length=config.RELATION_NOTES_MAX_LENGTH
    )


class RelationWithParticipants(Relation):
    """Relation with both sides embedded, as attached to lessons and boards."""

    teacher: User
    student: User
