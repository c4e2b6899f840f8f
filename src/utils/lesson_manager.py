"""Lesson planner management.

Teachers schedule lessons, optionally for one of their relations and with a
prepared board. Students see the lessons of their live relations.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from core.exceptions import BoardNotFoundError, InvalidOperationError, LessonNotFoundError
from models.board import BoardModel
from models.lesson import LessonModel, LessonStatus
from models.relation import RelationStatus, TeacherStudentRelationModel
from schemas.lesson import LessonDeleteScope
from utils.clock import Clock, to_utc, utc_now
from utils.relation_manager import RelationManager

logger = logging.getLogger(__name__)

# Fields a teacher may change through update_lesson
EDITABLE_FIELDS = (
    "title",
    "description",
    "start_time",
    "end_time",
    "relation_id",
    "board_id",
    "is_recurring",
    "recurrence",
    "label_color",
    "status",
)


class LessonManager:
    """Manages lessons using SQLAlchemy."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """Initialize LessonManager.

        Args:
            db: SQLAlchemy Session.
            clock: Callable returning the current UTC time.
        """
        self.db = db
        self.clock = clock
        self.relations = RelationManager(db, clock)

    def _query(self):
        return self.db.query(LessonModel).options(
            joinedload(LessonModel.relation).joinedload(TeacherStudentRelationModel.teacher),
            joinedload(LessonModel.relation).joinedload(TeacherStudentRelationModel.student),
            joinedload(LessonModel.board),
        )

    def _visible_query(self, user_id: str, role: str):
        query = self._query()
        if role == "teacher":
            return query.filter(LessonModel.user_id == user_id)
        return query.join(LessonModel.relation).filter(
            TeacherStudentRelationModel.student_id == user_id,
            TeacherStudentRelationModel.status == RelationStatus.ACTIVE,
            TeacherStudentRelationModel.deleted_at.is_(None),
        )

    def _owned_lesson(self, lesson_id: str, teacher_id: str) -> LessonModel:
        model = (
            self.db.query(LessonModel)
            .filter(LessonModel.id == lesson_id, LessonModel.user_id == teacher_id)
            .first()
        )
        if not model:
            raise LessonNotFoundError(lesson_id)
        return model

    def _check_links(
        self, teacher_id: str, relation_id: Optional[str], board_id: Optional[str]
    ) -> None:
        if relation_id is not None:
            self.relations.get_teacher_relation(relation_id, teacher_id)
        if board_id is not None:
            board = (
                self.db.query(BoardModel)
                .filter(BoardModel.id == board_id, BoardModel.teacher_id == teacher_id)
                .first()
            )
            if not board:
                raise BoardNotFoundError(board_id)

    @staticmethod
    def _check_times(start_time: datetime, end_time: datetime) -> None:
        if to_utc(end_time) <= to_utc(start_time):
            raise InvalidOperationError("Lesson must end after it starts")

    def list_lessons(
        self,
        user_id: str,
        role: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[LessonModel]:
        """List the lessons visible to a user, earliest first.

        Args:
            user_id: Caller.
            role: Caller's role. Teachers see the lessons they created,
                anyone else the lessons of their live relations as student.
            start_date: Only lessons starting at or after this instant.
            end_date: Only lessons starting at or before this instant.

        Returns:
            LessonModel list with relation participants and board loaded.
        """
        query = self._visible_query(user_id, role)
        if start_date is not None:
            query = query.filter(LessonModel.start_time >= to_utc(start_date))
        if end_date is not None:
            query = query.filter(LessonModel.start_time <= to_utc(end_date))
        return query.order_by(LessonModel.start_time.asc(), LessonModel.id.asc()).all()

    def get_lesson(self, lesson_id: str, user_id: str, role: str) -> LessonModel:
        """Get one lesson visible to the user.

        Raises:
            LessonNotFoundError: If the lesson does not exist or is not
                visible to the user.
        """
        model = self._visible_query(user_id, role).filter(LessonModel.id == lesson_id).first()
        if not model:
            raise LessonNotFoundError(lesson_id)
        return model

    def create_lesson(
        self,
        teacher_id: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: Optional[str] = None,
        relation_id: Optional[str] = None,
        board_id: Optional[str] = None,
        is_recurring: bool = False,
        recurrence: Optional[Dict[str, Any]] = None,
        label_color: Optional[str] = None,
    ) -> LessonModel:
        """Schedule a lesson.

        Args:
            teacher_id: Creator, must hold the teacher role.
            title: Lesson title.
            start_time: Start, converted to UTC.
            end_time: End, converted to UTC. Must be after ``start_time``.
            description: Optional description.
            relation_id: Optional live relation of the teacher.
            board_id: Optional board owned by the teacher.
            is_recurring: Whether the lesson repeats.
            recurrence: Free-form recurrence rule.
            label_color: Optional ``#rrggbb`` colour for the planner.

        Returns:
            The created lesson.

        Raises:
            InvalidOperationError: If the lesson would end before it starts.
            RelationNotFoundError: If ``relation_id`` is not a live relation
                of the teacher.
            BoardNotFoundError: If ``board_id`` is not a board of the teacher.
        """
        self._check_times(start_time, end_time)
        self._check_links(teacher_id, relation_id, board_id)

        now = self.clock()
        model = LessonModel(
            id=str(uuid.uuid4()),
            user_id=teacher_id,
            relation_id=relation_id,
            board_id=board_id,
            title=title,
            description=description,
            start_time=to_utc(start_time),
            end_time=to_utc(end_time),
            status=LessonStatus.SCHEDULED,
            is_recurring=is_recurring,
            recurrence=recurrence,
            label_color=label_color,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(model)
        logger.info("Lesson %s scheduled by %s", model.id, teacher_id)
        return model

    def update_lesson(
        self, lesson_id: str, teacher_id: str, changes: Dict[str, Any]
    ) -> LessonModel:
        """Apply a merge-patch to a lesson of the teacher.

        Moving the start or the end stores the old value in
        ``previous_start_time`` / ``previous_end_time`` and sets the status to
        rescheduled, whatever status the patch asked for.

        Raises:
            LessonNotFoundError: If the teacher has no such lesson.
            RelationNotFoundError: If a new ``relation_id`` is not a live
                relation of the teacher.
            BoardNotFoundError: If a new ``board_id`` is not a board of the
                teacher.
            InvalidOperationError: If the lesson would end before it starts.
            ValueError: If ``changes`` names a field that cannot be edited.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        model = self._owned_lesson(lesson_id, teacher_id)
        changes = dict(changes)
        for field in ("start_time", "end_time"):
            if changes.get(field) is not None:
                changes[field] = to_utc(changes[field])

        self._check_links(teacher_id, changes.get("relation_id"), changes.get("board_id"))
        self._check_times(
            changes.get("start_time", model.start_time),
            changes.get("end_time", model.end_time),
        )

        moved = False
        if "start_time" in changes and changes["start_time"] != to_utc(model.start_time):
            changes["previous_start_time"] = model.start_time
            moved = True
        if "end_time" in changes and changes["end_time"] != to_utc(model.end_time):
            changes["previous_end_time"] = model.end_time
            moved = True
        if moved:
            changes["status"] = LessonStatus.RESCHEDULED

        try:
            for field, value in changes.items():
                setattr(model, field, value)
            model.updated_at = self.clock()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(model)
        logger.info("Lesson %s updated by %s: %s", lesson_id, teacher_id, sorted(changes))
        return model

    def delete_lesson(
        self,
        lesson_id: str,
        teacher_id: str,
        scope: LessonDeleteScope = LessonDeleteScope.SINGLE,
    ) -> int:
        """Delete a lesson, optionally with later lessons of the same relation.

        Lessons before the selected one are never touched. A lesson without a
        relation is always deleted alone.

        Returns:
            Number of lessons deleted.

        Raises:
            LessonNotFoundError: If the teacher has no such lesson.
        """
        model = self._owned_lesson(lesson_id, teacher_id)

        if scope == LessonDeleteScope.SINGLE or model.relation_id is None:
            targets = [model]
        else:
            candidates = (
                self.db.query(LessonModel)
                .filter(
                    LessonModel.user_id == teacher_id,
                    LessonModel.relation_id == model.relation_id,
                    LessonModel.start_time >= model.start_time,
                )
                .all()
            )
            if scope == LessonDeleteScope.WEEKDAY:
                weekday = to_utc(model.start_time).weekday()
                candidates = [
                    lesson for lesson in candidates
                    if to_utc(lesson.start_time).weekday() == weekday
                ]
            targets = candidates

        try:
            for lesson in targets:
                self.db.delete(lesson)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "Deleted %d lesson(s) from %s by %s (scope=%s)",
            len(targets),
            lesson_id,
            teacher_id,
            scope.value,
        )
        return len(targets)
