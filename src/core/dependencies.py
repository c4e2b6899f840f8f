"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes,
following Google Python Style Guide and FastAPI best practices. Every
manager is built around the request-scoped DB session, so tests can swap
the store by overriding ``get_db``.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import board_manager
from utils import chat_manager
from utils import file_manager
from utils import invite_manager
from utils import lesson_manager
from utils import relation_manager
from utils import user_manager


def get_user_manager(db: Session = Depends(get_db)) -> user_manager.UserManager:
    """Get UserManager instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        UserManager instance.
    """
    return user_manager.UserManager(db)


def get_invite_manager(db: Session = Depends(get_db)) -> invite_manager.InviteManager:
    """Get InviteManager instance with request-scoped DB session."""
    return invite_manager.InviteManager(db)


def get_relation_manager(
    db: Session = Depends(get_db),
) -> relation_manager.RelationManager:
    """Get RelationManager instance with request-scoped DB session."""
    return relation_manager.RelationManager(db)


def get_chat_manager(db: Session = Depends(get_db)) -> chat_manager.ChatManager:
    """Get ChatManager instance with request-scoped DB session."""
    return chat_manager.ChatManager(db)


def get_lesson_manager(db: Session = Depends(get_db)) -> lesson_manager.LessonManager:
    """Get LessonManager instance with request-scoped DB session."""
    return lesson_manager.LessonManager(db)


def get_board_manager(db: Session = Depends(get_db)) -> board_manager.BoardManager:
    """Get BoardManager instance with request-scoped DB session."""
    return board_manager.BoardManager(db)


def get_file_manager(db: Session = Depends(get_db)) -> file_manager.FileManager:
    """Get FileManager instance storing bytes under the configured UPLOAD_DIR."""
    return file_manager.FileManager(db)


# Type aliases for dependency injection
UserManagerDep = Annotated[
    user_manager.UserManager, Depends(get_user_manager)
]
InviteManagerDep = Annotated[
    invite_manager.InviteManager, Depends(get_invite_manager)
]
RelationManagerDep = Annotated[
    relation_manager.RelationManager, Depends(get_relation_manager)
]
ChatManagerDep = Annotated[
    chat_manager.ChatManager, Depends(get_chat_manager)
]
LessonManagerDep = Annotated[
    lesson_manager.LessonManager, Depends(get_lesson_manager)
]
BoardManagerDep = Annotated[
    board_manager.BoardManager, Depends(get_board_manager)
]
FileManagerDep = Annotated[
    file_manager.FileManager, Depends(get_file_manager)
]
