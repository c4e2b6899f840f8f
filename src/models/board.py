"""Whiteboard database models."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, func, select
from sqlalchemy.orm import column_property, relationship

from .base import Base


class BoardModel(Base):
    __tablename__ = "boards"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    teacher_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    relation_id = Column(
        String,
        ForeignKey("teacher_student_relations.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    settings = Column(JSON, default=dict)
    thumbnail = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), index=True, nullable=False)

    teacher = relationship("UserModel")
    relation = relationship("TeacherStudentRelationModel")
    elements = relationship(
        "BoardElementModel",
        back_populates="board",
        cascade="all, delete-orphan",
        order_by="BoardElementModel.z_index",
    )


class BoardElementModel(Base):
    __tablename__ = "board_elements"

    id = Column(String, primary_key=True, index=True)
    board_id = Column(
        String,
        ForeignKey("boards.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    type = Column(String, nullable=False)  # e.g. 'line', 'rect', 'text', 'image'
    data = Column(JSON, nullable=False)
    z_index = Column(Integer, nullable=False, default=0)
    created_by = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    board = relationship("BoardModel", back_populates="elements")
    creator = relationship("UserModel")


BoardModel.element_count = column_property(
    select(func.count(BoardElementModel.id))
    .where(BoardElementModel.board_id == BoardModel.id)
    .correlate_except(BoardElementModel)
    .scalar_subquery()
)
