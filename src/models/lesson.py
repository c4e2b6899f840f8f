"""Lesson database model.

A lesson is scheduled by a teacher, optionally for one of their relations.
The student of that relation sees it while the relation is live.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class LessonStatus:
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class LessonModel(Base):
    __tablename__ = "lessons"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    relation_id = Column(
        String,
        ForeignKey("teacher_student_relations.id", ondelete="CASCADE"),
        index=True,
        nullable=True,
    )
    board_id = Column(
        String,
        ForeignKey("boards.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), index=True, nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=LessonStatus.SCHEDULED)
    # Set when the lesson is moved, so the old slot can still be shown
    previous_start_time = Column(DateTime(timezone=True), nullable=True)
    previous_end_time = Column(DateTime(timezone=True), nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence = Column(JSON, nullable=True)
    label_color = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    relation = relationship("TeacherStudentRelationModel")
    board = relationship("BoardModel")
