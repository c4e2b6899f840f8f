"""Invite schema definitions.

This module defines request and response models for issuing, resolving and
accepting invites.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

import config
from models.invite_link import InviteType
from schemas.user import User


class CreateInviteRequest(BaseModel):
    type: InviteType = Field(
        default=InviteType.STUDENT_TO_TEACHER,
        description="Direction of the invite. STUDENT_TO_TEACHER means the "
        "creator is the student and whoever accepts becomes the teacher.",
    )
    message: Optional[str] = Field(
        default=None,
        max_length=config.INVITE_MESSAGE_MAX_LENGTH,
        description="Optional note shown to the person accepting the invite.",
    )
    expires_in_hours: int = Field(
        default=config.DEFAULT_INVITE_EXPIRES_IN_HOURS,
        ge=1,
        le=config.MAX_INVITE_EXPIRES_IN_HOURS,
        description="Lifetime of the invite in hours.",
    )


class CreateInviteResponse(BaseModel):
    code: str


class AcceptInviteRequest(BaseModel):
    code: str = Field(
        min_length=config.INVITE_CODE_MIN_LENGTH,
        max_length=config.INVITE_CODE_MAX_LENGTH,
    )


class InviteInfo(BaseModel):
    """An active invite with its creator embedded."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    type: InviteType
    message: Optional[str] = None
    expires_at: datetime
    is_active: bool
    created_by_id: str
    created_at: Optional[datetime] = None
    created_by: User
