"""Uploaded file management.

Files are written to ``UPLOAD_DIR/<user_id>/<file_id><ext>`` and described
by a ``StoredFileModel`` row. A teacher can share a file with the students
of their live relations.
"""

import logging
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from config import ALLOWED_UPLOAD_MIME_TYPES, MAX_UPLOAD_SIZE, UPLOAD_DIR
from core.exceptions import InvalidOperationError, StoredFileNotFoundError
from models.relation import RelationStatus, TeacherStudentRelationModel
from models.stored_file import FileShareModel, FileType, StoredFileModel
from utils.clock import Clock, utc_now
from utils.relation_manager import RelationManager

logger = logging.getLogger(__name__)


def detect_file_type(mime_type: str) -> FileType:
    """Map a MIME type to the coarse category shown in the file manager."""
    if mime_type.startswith("image/"):
        return FileType.IMAGE
    if mime_type.startswith("video/"):
        return FileType.VIDEO
    if mime_type.startswith("audio/"):
        return FileType.AUDIO
    if any(marker in mime_type for marker in ("zip", "rar", "archive")):
        return FileType.ARCHIVE
    return FileType.DOCUMENT


class FileManager:
    """Manages uploaded files and their shares."""

    def __init__(self, db: Session, clock: Clock = utc_now, upload_dir: Optional[Path] = None):
        """Initialize FileManager.

        Args:
            db: SQLAlchemy Session.
            clock: Callable returning the current UTC time.
            upload_dir: Root directory for stored bytes. Defaults to
                ``config.UPLOAD_DIR``.
        """
        self.db = db
        self.clock = clock
        self.upload_dir = Path(upload_dir) if upload_dir is not None else UPLOAD_DIR
        self.relations = RelationManager(db, clock)

    def _owned_file(self, file_id: str, user_id: str) -> StoredFileModel:
        model = (
            self.db.query(StoredFileModel)
            .options(joinedload(StoredFileModel.user))
            .filter(StoredFileModel.id == file_id, StoredFileModel.user_id == user_id)
            .first()
        )
        if not model:
            raise StoredFileNotFoundError(file_id)
        return model

    def _live_student_filter(self, user_id: str):
        return (
            TeacherStudentRelationModel.student_id == user_id,
            TeacherStudentRelationModel.status == RelationStatus.ACTIVE,
            TeacherStudentRelationModel.deleted_at.is_(None),
        )

    def file_path(self, model: StoredFileModel) -> Path:
        """Absolute location of the stored bytes."""
        return self.upload_dir / model.path

    def save_file(
        self,
        user_id: str,
        original_name: str,
        mime_type: str,
        content: bytes,
        relation_id: Optional[str] = None,
    ) -> StoredFileModel:
        """Store an uploaded file.

        Args:
            user_id: Uploader and owner.
            original_name: File name as sent by the client.
            mime_type: Declared content type.
            content: File bytes.
            relation_id: Optional live relation the upload belongs to.

        Returns:
            The stored file record.

        Raises:
            InvalidOperationError: If the file is empty, too large or of a
                type that is not accepted.
            RelationNotFoundError: If ``relation_id`` is not a live relation
                of the user.
        """
        if not content:
            raise InvalidOperationError("No file provided")
        if len(content) > MAX_UPLOAD_SIZE:
            raise InvalidOperationError("File too large")
        if mime_type not in ALLOWED_UPLOAD_MIME_TYPES:
            raise InvalidOperationError("File type not allowed")
        if relation_id:
            self.relations.get_live_relation(relation_id, user_id)

        file_id = uuid.uuid4().hex
        # Only the extension of the client name is reused on disk
        name = f"{file_id}{Path(original_name).suffix.lower()}"
        relative_path = f"{user_id}/{name}"
        target = self.upload_dir / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

        model = StoredFileModel(
            id=file_id,
            name=name,
            original_name=original_name,
            size=len(content),
            mime_type=mime_type,
            file_type=detect_file_type(mime_type),
            path=relative_path,
            user_id=user_id,
            relation_id=relation_id or None,
            created_at=self.clock(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            target.unlink(missing_ok=True)
            raise
        logger.info("Stored file %s (%d bytes) for %s", file_id, len(content), user_id)
        return self._owned_file(file_id, user_id)

    def list_files(
        self,
        user_id: str,
        relation_id: Optional[str] = None,
        file_type: Optional[FileType] = None,
    ) -> List[StoredFileModel]:
        """List the user's own files, newest first."""
        query = (
            self.db.query(StoredFileModel)
            .options(joinedload(StoredFileModel.user))
            .filter(StoredFileModel.user_id == user_id)
        )
        if relation_id:
            query = query.filter(StoredFileModel.relation_id == relation_id)
        if file_type:
            query = query.filter(StoredFileModel.file_type == file_type)
        return query.order_by(StoredFileModel.created_at.desc()).all()

    def get_downloadable_file(self, file_id: str, user_id: str) -> StoredFileModel:
        """Get a file the user owns or that was shared with them.

        Raises:
            StoredFileNotFoundError: If the user may not download the file.
        """
        model = (
            self.db.query(StoredFileModel)
            .filter(StoredFileModel.id == file_id, StoredFileModel.user_id == user_id)
            .first()
        )
        if model:
            return model
        shared = (
            self.db.query(StoredFileModel)
            .join(StoredFileModel.shares)
            .join(FileShareModel.relation)
            .filter(StoredFileModel.id == file_id, *self._live_student_filter(user_id))
            .first()
        )
        if not shared:
            raise StoredFileNotFoundError(file_id)
        return shared

    def delete_file(self, file_id: str, user_id: str) -> None:
        """Delete a file of the user, its shares and its bytes.

        Raises:
            StoredFileNotFoundError: If the user has no such file.
        """
        model = self._owned_file(file_id, user_id)
        path = self.file_path(model)
        try:
            self.db.delete(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Failed to delete %s from disk: %s", path, exc)
        logger.info("Deleted file %s of %s", file_id, user_id)

    def share_file(
        self, file_id: str, teacher_id: str, relation_ids: List[str]
    ) -> List[FileShareModel]:
        """Share a file with the students of some of the teacher's relations.

        Sharing twice with the same relation keeps the existing share.

        Returns:
            The share of every requested relation.

        Raises:
            StoredFileNotFoundError: If the teacher has no such file.
            InvalidOperationError: If any relation is not a live relation in
                which the caller is the teacher.
        """
        self._owned_file(file_id, teacher_id)
        wanted = sorted(set(relation_ids))
        found = (
            self.db.query(TeacherStudentRelationModel.id)
            .filter(
                TeacherStudentRelationModel.id.in_(wanted),
                TeacherStudentRelationModel.teacher_id == teacher_id,
                TeacherStudentRelationModel.status == RelationStatus.ACTIVE,
                TeacherStudentRelationModel.deleted_at.is_(None),
            )
            .count()
        )
        if found != len(wanted):
            raise InvalidOperationError("Invalid relations")

        existing = {
            share.relation_id: share
            for share in self.db.query(FileShareModel).filter(
                FileShareModel.file_id == file_id,
                FileShareModel.relation_id.in_(wanted),
            )
        }
        now = self.clock()
        try:
            for relation_id in wanted:
                if relation_id not in existing:
                    share = FileShareModel(file_id=file_id, relation_id=relation_id, created_at=now)
                    self.db.add(share)
                    existing[relation_id] = share
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("File %s shared with %s", file_id, wanted)
        return [existing[relation_id] for relation_id in wanted]

    def list_shares(self, file_id: str, user_id: str) -> List[FileShareModel]:
        """List the shares of a file of the user."""
        self._owned_file(file_id, user_id)
        return (
            self.db.query(FileShareModel)
            .filter(FileShareModel.file_id == file_id)
            .order_by(FileShareModel.created_at.asc(), FileShareModel.id.asc())
            .all()
        )

    def unshare_file(self, file_id: str, user_id: str, relation_id: str) -> bool:
        """Withdraw a share.

        Returns:
            False if the file was not shared with that relation.

        Raises:
            StoredFileNotFoundError: If the user has no such file.
        """
        self._owned_file(file_id, user_id)
        try:
            deleted = (
                self.db.query(FileShareModel)
                .filter(
                    FileShareModel.file_id == file_id,
                    FileShareModel.relation_id == relation_id,
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return deleted > 0

    def list_shared_with(
        self, user_id: str
    ) -> List[Tuple[StoredFileModel, FileShareModel, TeacherStudentRelationModel]]:
        """List files shared with the user through their live relations.

        Returns:
            (file, share, relation) tuples, most recently shared first. The
            relation has its teacher loaded.
        """
        return (
            self.db.query(StoredFileModel, FileShareModel, TeacherStudentRelationModel)
            .join(FileShareModel, FileShareModel.file_id == StoredFileModel.id)
            .join(
                TeacherStudentRelationModel,
                TeacherStudentRelationModel.id == FileShareModel.relation_id,
            )
            .options(joinedload(TeacherStudentRelationModel.teacher))
            .filter(*self._live_student_filter(user_id))
            .order_by(FileShareModel.created_at.desc(), FileShareModel.id.desc())
            .all()
        )
