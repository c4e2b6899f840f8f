"""User schema definitions."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    """Public view of a user, embedded wherever a counterpart is shown."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: Optional[str] = None
    email: str
    role: str
    image: Optional[str] = None
    create_at: Optional[datetime] = None
