"""Uploaded file database models.

The bytes live on disk under ``config.UPLOAD_DIR``; these rows hold the
metadata and the relations a file has been shared with.
"""

import enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base


class FileType(str, enum.Enum):
    DOCUMENT = "DOCUMENT"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    ARCHIVE = "ARCHIVE"
    OTHER = "OTHER"


class StoredFileModel(Base):
    __tablename__ = "files"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    mime_type = Column(String, nullable=False)
    file_type = Column(SQLEnum(FileType), nullable=False, default=FileType.OTHER)
    # Relative to UPLOAD_DIR
    path = Column(String, nullable=False)
    user_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    relation_id = Column(
        String,
        ForeignKey("teacher_student_relations.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), index=True, nullable=False)

    user = relationship("UserModel")
    shares = relationship(
        "FileShareModel",
        back_populates="file",
        cascade="all, delete-orphan",
    )


class FileShareModel(Base):
    __tablename__ = "file_shares"
    __table_args__ = (
        UniqueConstraint("file_id", "relation_id", name="uq_file_shares_file_relation"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    file_id = Column(
        String,
        ForeignKey("files.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    relation_id = Column(
        String,
        ForeignKey("teacher_student_relations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), nullable=False)

    file = relationship("StoredFileModel", back_populates="shares")
    relation = relationship("TeacherStudentRelationModel")
