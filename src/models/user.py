"""User database model.

This module defines the User database model using SQLAlchemy. Users are
provisioned by the external auth service; this service only reads them.
"""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from .base import Base


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    user_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False, default="student")  # 'teacher' or 'student'
    image = Column(String, nullable=True)
    create_at = Column(DateTime(timezone=True), server_default=func.now())
