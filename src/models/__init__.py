"""Database models."""

from .base import Base
from .user import UserModel
from .invite_link import InviteLinkModel, InviteType, InviteUseModel
from .relation import RelationStatus, TeacherStudentRelationModel
from .chat_message import ChatMessageModel, ChatMessageReadModel
from .lesson import LessonModel, LessonStatus
from .board import BoardElementModel, BoardModel
from .stored_file import FileShareModel, FileType, StoredFileModel

__all__ = [
    "Base",
    "UserModel",
    "InviteLinkModel",
    "InviteType",
    "InviteUseModel",
    "RelationStatus",
    "TeacherStudentRelationModel",
    "ChatMessageModel",
    "ChatMessageReadModel",
    "LessonModel",
    "LessonStatus",
    "BoardModel",
    "BoardElementModel",
    "FileShareModel",
    "FileType",
    "StoredFileModel",
]
