"""Invite link database models.

An invite is a time-limited, single-use code. Every successful acceptance
appends an ``InviteUseModel`` row.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class InviteType(str, enum.Enum):
    """Direction of an invite: who is inviting whom into which role."""

    STUDENT_TO_TEACHER = "STUDENT_TO_TEACHER"
    TEACHER_TO_STUDENT = "TEACHER_TO_STUDENT"


class InviteLinkModel(Base):
    __tablename__ = "invite_links"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String, unique=True, index=True, nullable=False)
    type = Column(SQLEnum(InviteType), nullable=False, default=InviteType.STUDENT_TO_TEACHER)
    message = Column(String, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    created_by = relationship("UserModel")
    uses = relationship("InviteUseModel", back_populates="invite")


class InviteUseModel(Base):
    __tablename__ = "invite_uses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invite_id = Column(Integer, ForeignKey("invite_links.id"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False)

    invite = relationship("InviteLinkModel", back_populates="uses")
