"""Teacher-student relation management.

Covers redeeming invites into relations and the read, patch and soft-delete
operations on existing relations. A relation is live when its status is
ACTIVE and it carries no ``deleted_at`` marker.
"""

import logging
import uuid
from typing import Any, Dict, List, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from core.exceptions import (
    InvalidOperationError,
    InviteNotFoundError,
    RelationNotFoundError,
)
from models.invite_link import InviteLinkModel, InviteType, InviteUseModel
from models.relation import RelationStatus, TeacherStudentRelationModel
from utils.clock import Clock, utc_now
from utils.invite_manager import InviteManager

logger = logging.getLogger(__name__)

# Fields a participant may change through update_relation
EDITABLE_FIELDS = ("teacher_name", "student_name", "teacher_notes", "student_notes")


def derive_roles(invite_type: InviteType, creator_id: str, acting_user_id: str) -> Tuple[str, str]:
    """Work out who is the teacher and who is the student.

    Args:
        invite_type: Direction of the invite.
        creator_id: User who issued the invite.
        acting_user_id: User accepting the invite.

    Returns:
        A (teacher_id, student_id) tuple.
    """
    if invite_type == InviteType.STUDENT_TO_TEACHER:
        return acting_user_id, creator_id
    return creator_id, acting_user_id


class RelationManager:
    """Manages relation lifecycle using SQLAlchemy."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """Initialize RelationManager.

        Args:
            db: SQLAlchemy Session.
            clock: Callable returning the current UTC time.
        """
        self.db = db
        self.clock = clock
        self.invites = InviteManager(db, clock)

    def _live_filter(self):
        return (
            TeacherStudentRelationModel.status == RelationStatus.ACTIVE,
            TeacherStudentRelationModel.deleted_at.is_(None),
        )

    def _participant_filter(self, user_id: str):
        return or_(
            TeacherStudentRelationModel.teacher_id == user_id,
            TeacherStudentRelationModel.student_id == user_id,
        )

    def accept_invite(self, code: str, user_id: str) -> TeacherStudentRelationModel:
        """Redeem an invite and create or reactivate the relation.

        The invite is claimed with a conditional update, so of two concurrent
        acceptances only one can win. Claiming the invite, writing the
        relation and recording the use are committed together.

        Args:
            code: Invite code.
            user_id: User accepting the invite.

        Returns:
            The live relation.

        Raises:
            InviteNotFoundError: If the invite is unknown, expired, already
                used, or was claimed by a concurrent request.
            InvalidOperationError: If the user tries to accept their own
                invite.
        """
        invite = self.invites.get_active_invite(code)

        if invite.created_by_id == user_id:
            raise InvalidOperationError("Cannot accept your own invite")

        invite_id = invite.id
        teacher_id, student_id = derive_roles(invite.type, invite.created_by_id, user_id)
        now = self.clock()

        try:
            claimed = (
                self.db.query(InviteLinkModel)
                .filter(
                    InviteLinkModel.id == invite_id,
                    InviteLinkModel.is_active.is_(True),
                    InviteLinkModel.expires_at > now,
                )
                .update({InviteLinkModel.is_active: False}, synchronize_session=False)
            )
            if claimed == 0:
                logger.info("Invite %s was claimed by a concurrent request", invite_id)
                raise InviteNotFoundError(code)

            relation = (
                self.db.query(TeacherStudentRelationModel)
                .filter(
                    TeacherStudentRelationModel.teacher_id == teacher_id,
                    TeacherStudentRelationModel.student_id == student_id,
                )
                .order_by(TeacherStudentRelationModel.created_at.desc())
                .first()
            )

            if relation is not None:
                relation.status = RelationStatus.ACTIVE
                relation.deleted_at = None
                for field in EDITABLE_FIELDS:
                    setattr(relation, field, None)
                relation.updated_at = now
                logger.info("Reactivated relation %s", relation.id)
            else:
                relation = TeacherStudentRelationModel(
                    id=str(uuid.uuid4()),
                    teacher_id=teacher_id,
                    student_id=student_id,
                    status=RelationStatus.ACTIVE,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(relation)
                logger.info("Created relation %s", relation.id)

            self.db.add(InviteUseModel(invite_id=invite_id, user_id=user_id, used_at=now))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(relation)
        logger.info(
            "Invite %s accepted by %s (teacher=%s, student=%s)",
            invite_id,
            user_id,
            teacher_id,
            student_id,
        )
        return relation

    def list_for_user(
        self, user_id: str
    ) -> Tuple[List[TeacherStudentRelationModel], List[TeacherStudentRelationModel]]:
        """List live relations of a user, newest first.

        Returns:
            A tuple (as_teacher, as_student). Relations in ``as_teacher`` have
            the student loaded, those in ``as_student`` the teacher.
        """
        as_teacher = (
            self.db.query(TeacherStudentRelationModel)
            .options(joinedload(TeacherStudentRelationModel.student))
            .filter(TeacherStudentRelationModel.teacher_id == user_id, *self._live_filter())
            .order_by(TeacherStudentRelationModel.created_at.desc())
            .all()
        )
        as_student = (
            self.db.query(TeacherStudentRelationModel)
            .options(joinedload(TeacherStudentRelationModel.teacher))
            .filter(TeacherStudentRelationModel.student_id == user_id, *self._live_filter())
            .order_by(TeacherStudentRelationModel.created_at.desc())
            .all()
        )
        return as_teacher, as_student

    def get_live_relation(self, relation_id: str, user_id: str) -> TeacherStudentRelationModel:
        """Get a live relation the user takes part in.

        Raises:
            RelationNotFoundError: If there is no such live relation.
        """
        model = (
            self.db.query(TeacherStudentRelationModel)
            .filter(
                TeacherStudentRelationModel.id == relation_id,
                self._participant_filter(user_id),
                *self._live_filter(),
            )
            .first()
        )
        if not model:
            raise RelationNotFoundError(relation_id)
        return model

    def get_teacher_relation(self, relation_id: str, teacher_id: str) -> TeacherStudentRelationModel:
        """Get a live relation in which the user is the teacher.

        Raises:
            RelationNotFoundError: If there is no such live relation.
        """
        model = (
            self.db.query(TeacherStudentRelationModel)
            .filter(
                TeacherStudentRelationModel.id == relation_id,
                TeacherStudentRelationModel.teacher_id == teacher_id,
                *self._live_filter(),
            )
            .first()
        )
        if not model:
            raise RelationNotFoundError(relation_id)
        return model

    def list_live_relation_ids(self, user_id: str) -> List[str]:
        rows = (
            self.db.query(TeacherStudentRelationModel.id)
            .filter(self._participant_filter(user_id), *self._live_filter())
            .all()
        )
        return [row[0] for row in rows]

    def update_relation(
        self, relation_id: str, user_id: str, changes: Dict[str, Any]
    ) -> TeacherStudentRelationModel:
        """Apply a merge-patch to a live relation.

        Either participant may change any of the editable fields, including
        the other side's notes.

        Args:
            relation_id: Relation to update.
            user_id: Acting user, must be a participant.
            changes: Field name to new value. Only EDITABLE_FIELDS are
                accepted.

        Returns:
            The updated relation.

        Raises:
            RelationNotFoundError: If the relation is not live or the user is
                not part of it.
            ValueError: If ``changes`` names a field that cannot be edited.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        relation = self.get_live_relation(relation_id, user_id)
        try:
            for field, value in changes.items():
                setattr(relation, field, value)
            relation.updated_at = self.clock()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(relation)
        logger.info("Relation %s updated by %s: %s", relation_id, user_id, sorted(changes))
        return relation

    def soft_delete_relation(self, relation_id: str, user_id: str) -> TeacherStudentRelationModel:
        """Block a relation and stamp its deletion time.

        Works on relations that are already blocked too; the deletion time is
        then overwritten.

        Raises:
            RelationNotFoundError: If the user is not a participant.
        """
        relation = (
            self.db.query(TeacherStudentRelationModel)
            .filter(
                TeacherStudentRelationModel.id == relation_id,
                self._participant_filter(user_id),
            )
            .first()
        )
        if not relation:
            raise RelationNotFoundError(relation_id)

        now = self.clock()
        try:
            relation.status = RelationStatus.BLOCKED
            relation.deleted_at = now
            relation.updated_at = now
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(relation)
        logger.info("Relation %s blocked by %s", relation_id, user_id)
        return relation
