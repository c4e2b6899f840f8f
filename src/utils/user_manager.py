"""User management utilities.

Accounts are created by the external auth service. This module only looks
users up, plus a ``create_user`` helper used by the command-line tool and
tests to provision local users.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.user import UserModel
from schemas.user import User
from utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class UserNotFoundError(Exception):
    """Exception raised when a user is not found."""

    pass


class UserAlreadyExistsError(Exception):
    """Exception raised when trying to create a user that already exists."""

    pass


class UserManager:
    """Reads user records using SQLAlchemy."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
            clock: Callable returning the current UTC time.
        """
        self.db = db
        self.clock = clock

    def create_user(
        self,
        email: str,
        name: Optional[str] = None,
        role: str = "student",
        user_id: Optional[str] = None,
    ) -> User:
        """Create a new user.

        Args:
            email: Email address, unique across users.
            name: Optional display name.
            role: 'teacher' or 'student'.
            user_id: Optional explicit ID; a UUID is generated otherwise.

        Returns:
            Created User object.

        Raises:
            UserAlreadyExistsError: If the email is already registered.
            ValueError: If role is invalid.
        """
        if role not in ["teacher", "student"]:
            raise ValueError(f"Invalid role: {role}. Must be 'teacher' or 'student'.")

        existing = self.db.query(UserModel).filter(UserModel.email == email).first()
        if existing:
            raise UserAlreadyExistsError(f"User '{email}' already exists")

        model = UserModel(
            user_id=user_id or str(uuid.uuid4()),
            name=name,
            email=email,
            role=role,
            create_at=self.clock(),
        )
        # The unique constraint catches a concurrent insert of the same email
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError(f"User '{email}' already exists") from e

        logger.info("Created user: %s (%s)", email, model.user_id)
        return User.model_validate(model)

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by user ID.

        Args:
            user_id: User ID to look up.

        Returns:
            User object if found, None otherwise.
        """
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model:
            return User.model_validate(model)
        return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        model = self.db.query(UserModel).filter(UserModel.email == email).first()
        if model:
            return User.model_validate(model)
        return None
