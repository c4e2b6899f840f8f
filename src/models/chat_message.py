from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base


class ChatMessageModel(Base):
    __tablename__ = "chat_messages"

    id = Column(String, primary_key=True, index=True)
    relation_id = Column(
        String,
        ForeignKey("teacher_student_relations.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    sender_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), index=True, nullable=False)

    relation = relationship("TeacherStudentRelationModel", back_populates="messages")
    sender = relationship("UserModel")
    reads = relationship(
        "ChatMessageReadModel",
        back_populates="message",
        cascade="all, delete-orphan",
    )


class ChatMessageReadModel(Base):
    __tablename__ = "chat_message_reads"
    __table_args__ = (
        UniqueConstraint(
            "message_id",
            "user_id",
            name="uq_chat_message_reads_message_user",
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    message_id = Column(
        String,
        ForeignKey("chat_messages.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_id = Column(String, ForeignKey("users.user_id"), index=True, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=False)

    message = relationship("ChatMessageModel", back_populates="reads")
