"""Whiteboard management.

A board belongs to the teacher who created it and may be attached to one of
the teacher's relations; the student of that relation can then open it and
draw on it while the relation is live. Only the teacher changes the board
itself.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from config import DEFAULT_BOARD_SETTINGS, DEFAULT_BOARD_TITLE
from core.exceptions import BoardNotFoundError, InvalidOperationError, PermissionDeniedError
from models.board import BoardElementModel, BoardModel
from models.lesson import LessonModel
from models.relation import RelationStatus, TeacherStudentRelationModel
from utils.clock import Clock, utc_now
from utils.relation_manager import RelationManager

logger = logging.getLogger(__name__)

# Fields the owning teacher may change through update_board
EDITABLE_FIELDS = ("title", "settings", "thumbnail", "relation_id")


class BoardManager:
    """Manages boards and their elements using SQLAlchemy."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        self.db = db
        self.clock = clock
        self.relations = RelationManager(db, clock)

    def _with_relation(self):
        return self.db.query(BoardModel).options(
            joinedload(BoardModel.teacher),
            joinedload(BoardModel.relation).joinedload(TeacherStudentRelationModel.teacher),
            joinedload(BoardModel.relation).joinedload(TeacherStudentRelationModel.student),
        )

    def _owned_board(self, board_id: str, teacher_id: str) -> BoardModel:
        model = (
            self._with_relation()
            .filter(BoardModel.id == board_id, BoardModel.teacher_id == teacher_id)
            .first()
        )
        if not model:
            raise BoardNotFoundError(board_id)
        return model

    def _access_role(self, board: BoardModel, user_id: str) -> Optional[str]:
        if board.teacher_id == user_id:
            return "teacher"
        relation = board.relation
        if (
            relation is not None
            and relation.student_id == user_id
            and relation.status == RelationStatus.ACTIVE
            and relation.deleted_at is None
        ):
            return "student"
        return None

    def _accessible_board(self, board_id: str, user_id: str) -> Tuple[BoardModel, str]:
        board = self._with_relation().filter(BoardModel.id == board_id).first()
        if not board:
            raise BoardNotFoundError(board_id)
        role = self._access_role(board, user_id)
        if role is None:
            raise PermissionDeniedError("No access to this board")
        return board, role

    def list_boards(self, user_id: str, role: str) -> List[BoardModel]:
        """List boards, most recently changed first.

        Teachers get the boards they own. Anyone else gets the boards attached
        to their live relations as student.
        """
        query = self._with_relation()
        if role == "teacher":
            query = query.filter(BoardModel.teacher_id == user_id)
        else:
            query = query.join(BoardModel.relation).filter(
                TeacherStudentRelationModel.student_id == user_id,
                TeacherStudentRelationModel.status == RelationStatus.ACTIVE,
                TeacherStudentRelationModel.deleted_at.is_(None),
            )
        return query.order_by(BoardModel.updated_at.desc()).all()

    def create_board(
        self,
        teacher_id: str,
        title: Optional[str] = None,
        relation_id: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
    ) -> BoardModel:
        """Create a board owned by the teacher.

        Raises:
            RelationNotFoundError: If ``relation_id`` is not a live relation
                of the teacher.
        """
        if relation_id:
            self.relations.get_teacher_relation(relation_id, teacher_id)

        now = self.clock()
        model = BoardModel(
            id=str(uuid.uuid4()),
            title=title or DEFAULT_BOARD_TITLE,
            teacher_id=teacher_id,
            relation_id=relation_id or None,
            settings=settings or dict(DEFAULT_BOARD_SETTINGS),
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Board %s created by %s", model.id, teacher_id)
        return self._owned_board(model.id, teacher_id)

    def get_board(self, board_id: str, user_id: str) -> Tuple[BoardModel, str]:
        """Open a board.

        Returns:
            A (board, role) tuple where role is 'teacher' or 'student'.

        Raises:
            BoardNotFoundError: If the board does not exist.
            PermissionDeniedError: If the user is neither its teacher nor the
                student of its live relation.
        """
        return self._accessible_board(board_id, user_id)

    def update_board(
        self, board_id: str, teacher_id: str, changes: Dict[str, Any]
    ) -> BoardModel:
        """Apply a merge-patch to a board of the teacher.

        Raises:
            BoardNotFoundError: If the teacher has no such board.
            RelationNotFoundError: If a new ``relation_id`` is not a live
                relation of the teacher.
            ValueError: If ``changes`` names a field that cannot be edited.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        model = self._owned_board(board_id, teacher_id)
        if changes.get("relation_id") is not None:
            self.relations.get_teacher_relation(changes["relation_id"], teacher_id)

        try:
            for field, value in changes.items():
                setattr(model, field, value)
            model.updated_at = self.clock()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Board %s updated by %s: %s", board_id, teacher_id, sorted(changes))
        return self._owned_board(board_id, teacher_id)

    def delete_board(self, board_id: str, teacher_id: str) -> None:
        """Delete a board with its elements and unlink it from lessons.

        Raises:
            BoardNotFoundError: If the teacher has no such board.
        """
        model = self._owned_board(board_id, teacher_id)
        try:
            self.db.query(LessonModel).filter(LessonModel.board_id == board_id).update(
                {LessonModel.board_id: None}, synchronize_session=False
            )
            self.db.delete(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Board %s deleted by %s", board_id, teacher_id)

    def add_element(
        self,
        board_id: str,
        user_id: str,
        element_type: str,
        data: Dict[str, Any],
        z_index: int = 0,
    ) -> BoardElementModel:
        """Add one element to a board the user can access."""
        board, _ = self._accessible_board(board_id, user_id)
        element = BoardElementModel(
            id=str(uuid.uuid4()),
            board_id=board_id,
            type=element_type,
            data=data,
            z_index=z_index,
            created_by=user_id,
            created_at=self.clock(),
        )
        try:
            self.db.add(element)
            board.updated_at = self.clock()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(element)
        return element

    def add_elements(self, board_id: str, user_id: str, elements: List[Dict[str, Any]]) -> int:
        """Add a batch of elements, e.g. when restoring a saved board.

        Elements without a ``z_index`` are stacked on top of the existing
        ones in the given order. Elements may bring their own ``id``.

        Returns:
            Number of elements added.

        Raises:
            BoardNotFoundError: If the board does not exist.
            PermissionDeniedError: If the user cannot access the board.
            InvalidOperationError: If a given element id is already taken.
        """
        board, _ = self._accessible_board(board_id, user_id)
        given_ids = [element["id"] for element in elements if element.get("id")]
        if len(given_ids) != len(set(given_ids)) or (
            given_ids
            and self.db.query(BoardElementModel.id)
            .filter(BoardElementModel.id.in_(given_ids))
            .first()
        ):
            raise InvalidOperationError("Element id already exists")

        top = (
            self.db.query(func.max(BoardElementModel.z_index))
            .filter(BoardElementModel.board_id == board_id)
            .scalar()
        ) or 0
        now = self.clock()
        try:
            for i, element in enumerate(elements):
                z_index = element.get("z_index")
                self.db.add(
                    BoardElementModel(
                        id=element.get("id") or str(uuid.uuid4()),
                        board_id=board_id,
                        type=element["type"],
                        data=element["data"],
                        z_index=z_index if z_index is not None else top + i + 1,
                        created_by=user_id,
                        created_at=now,
                    )
                )
            board.updated_at = now
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise InvalidOperationError("Element id already exists")
        except Exception:
            self.db.rollback()
            raise
        logger.debug("Added %d elements to board %s", len(elements), board_id)
        return len(elements)

    def delete_elements(self, board_id: str, user_id: str, element_ids: List[str]) -> int:
        """Remove elements of a board. Unknown ids are ignored.

        Returns:
            Number of elements removed.
        """
        board, _ = self._accessible_board(board_id, user_id)
        try:
            deleted = (
                self.db.query(BoardElementModel)
                .filter(
                    BoardElementModel.board_id == board_id,
                    BoardElementModel.id.in_(element_ids),
                )
                .delete(synchronize_session=False)
            )
            board.updated_at = self.clock()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return deleted
