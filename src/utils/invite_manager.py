"""Invite management utilities.

Issues time-limited, single-use invite codes and resolves them back to the
invite record. Redeeming an invite lives in ``RelationManager``.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from config import DEFAULT_INVITE_EXPIRES_IN_HOURS
from core.exceptions import InviteNotFoundError
from models.invite_link import InviteLinkModel, InviteType
from utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class InviteManager:
    """Manages invite issuance and lookup."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        self.db = db
        self.clock = clock

    def create_invite(
        self,
        created_by_id: str,
        invite_type: InviteType = InviteType.STUDENT_TO_TEACHER,
        message: Optional[str] = None,
        expires_in_hours: int = DEFAULT_INVITE_EXPIRES_IN_HOURS,
    ) -> str:
        """Issue a new invite.

        Args:
            created_by_id: User ID of the creator.
            invite_type: Direction of the invite.
            message: Optional note for the recipient.
            expires_in_hours: Lifetime of the invite in hours.

        Returns:
            The invite code. The full record is never handed back to the
            creator.
        """
        # 16 random bytes; collisions are negligible so there is no retry
        code = secrets.token_urlsafe(16)
        now = self.clock()
        model = InviteLinkModel(
            code=code,
            type=invite_type,
            message=message,
            expires_at=now + timedelta(hours=expires_in_hours),
            is_active=True,
            created_by_id=created_by_id,
            created_at=now,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "Issued %s invite by %s, expires in %dh",
            invite_type.value,
            created_by_id,
            expires_in_hours,
        )
        return code

    def find_active_invite(self, code: str) -> Optional[InviteLinkModel]:
        """Return the invite if it is active and not expired, else None."""
        return (
            self.db.query(InviteLinkModel)
            .options(joinedload(InviteLinkModel.created_by))
            .filter(
                InviteLinkModel.code == code,
                InviteLinkModel.is_active.is_(True),
                InviteLinkModel.expires_at > self.clock(),
            )
            .first()
        )

    def get_active_invite(self, code: str) -> InviteLinkModel:
        """Resolve an invite code.

        Args:
            code: Invite code to look up.

        Returns:
            The InviteLinkModel with its creator loaded.

        Raises:
            InviteNotFoundError: If the code is unknown, expired or already
                used. The caller cannot tell these apart.
        """
        model = self.find_active_invite(code)
        if model is None:
            logger.debug("Invite lookup rejected for code %s", code)
            raise InviteNotFoundError(code)
        return model
