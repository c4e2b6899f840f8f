"""Teacher-student relation database model."""

import enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class RelationStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"


class TeacherStudentRelationModel(Base):
    __tablename__ = "teacher_student_relations"

    id = Column(String, primary_key=True, index=True)
    # One logical relation per (teacher_id, student_id); enforced on activation
    teacher_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    student_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    status = Column(SQLEnum(RelationStatus), nullable=False, default=RelationStatus.ACTIVE)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Per-side annotations, cleared on reactivation
    teacher_name = Column(String, nullable=True)
    student_name = Column(String, nullable=True)
    teacher_notes = Column(Text, nullable=True)
    student_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    teacher = relationship("UserModel", foreign_keys=[teacher_id])
    student = relationship("UserModel", foreign_keys=[student_id])
    messages = relationship(
        "ChatMessageModel",
        back_populates="relation",
        cascade="all, delete-orphan",
    )
