"""Chat management utilities.

Messages belong to a teacher-student relation and can only be read or
written while that relation is live. Read receipts are stored per message
and per reader.
"""

import logging
import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from config import CHAT_PAGE_SIZE
from core.exceptions import InvalidOperationError
from models.chat_message import ChatMessageModel, ChatMessageReadModel
from schemas.chat import ChatMessage, MessagePage, MessageRead, UnreadCounts
from schemas.user import User
from utils.clock import Clock, utc_now
from utils.relation_manager import RelationManager

logger = logging.getLogger(__name__)


class ChatManager:
    """Manages chat messages and read receipts using SQLAlchemy."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """Initialize ChatManager.

        Args:
            db: SQLAlchemy Session.
            clock: Callable returning the current UTC time.
        """
        self.db = db
        self.clock = clock
        self.relations = RelationManager(db, clock)

    def _to_message(self, model: ChatMessageModel, viewer_id: str) -> ChatMessage:
        # Only receipts from the other participant are interesting to the viewer
        return ChatMessage(
            id=model.id,
            relation_id=model.relation_id,
            sender_id=model.sender_id,
            text=model.text,
            created_at=model.created_at,
            sender=User.model_validate(model.sender),
            reads=[
                MessageRead.model_validate(read)
                for read in model.reads
                if read.user_id != viewer_id
            ],
        )

    def send_message(self, relation_id: str, sender_id: str, text: str) -> ChatMessage:
        """Post a message to a live relation.

        Args:
            relation_id: Relation the message belongs to.
            sender_id: Author, must be a participant.
            text: Message body; surrounding whitespace is stripped.

        Returns:
            The stored message with its sender.

        Raises:
            RelationNotFoundError: If the relation is not live or the sender
                is not part of it.
        """
        self.relations.get_live_relation(relation_id, sender_id)

        model = ChatMessageModel(
            id=str(uuid.uuid4()),
            relation_id=relation_id,
            sender_id=sender_id,
            text=text.strip(),
            created_at=self.clock(),
        )
        try:
            self.db.add(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(model)
        logger.debug("Message %s posted to relation %s", model.id, relation_id)
        return self._to_message(model, sender_id)

    def list_messages(
        self,
        relation_id: str,
        user_id: str,
        cursor: Optional[str] = None,
        limit: int = CHAT_PAGE_SIZE,
    ) -> MessagePage:
        """Return one page of messages, newest first.

        Args:
            relation_id: Relation to read.
            user_id: Reader, must be a participant.
            cursor: ID of the last message of the previous page.
            limit: Page size.

        Returns:
            MessagePage whose ``next_cursor`` is set only when older messages
            remain.

        Raises:
            RelationNotFoundError: If the relation is not live or the user is
                not part of it.
            InvalidOperationError: If the cursor does not name a message of
                this relation.
        """
        self.relations.get_live_relation(relation_id, user_id)

        query = (
            self.db.query(ChatMessageModel)
            .options(
                joinedload(ChatMessageModel.sender),
                selectinload(ChatMessageModel.reads),
            )
            .filter(ChatMessageModel.relation_id == relation_id)
        )

        if cursor:
            anchor = (
                self.db.query(ChatMessageModel)
                .filter(
                    ChatMessageModel.id == cursor,
                    ChatMessageModel.relation_id == relation_id,
                )
                .first()
            )
            if anchor is None:
                raise InvalidOperationError("Unknown cursor")
            query = query.filter(
                or_(
                    ChatMessageModel.created_at < anchor.created_at,
                    and_(
                        ChatMessageModel.created_at == anchor.created_at,
                        ChatMessageModel.id < anchor.id,
                    ),
                )
            )

        # One extra row tells whether another page exists
        rows = (
            query.order_by(ChatMessageModel.created_at.desc(), ChatMessageModel.id.desc())
            .limit(limit + 1)
            .all()
        )
        has_more = len(rows) > limit
        items = rows[:limit]
        return MessagePage(
            messages=[self._to_message(m, user_id) for m in items],
            next_cursor=items[-1].id if has_more and items else None,
        )

    def _insert_reads(self, relation_id: str, user_id: str, message_ids: Iterable[str]) -> int:
        ids = set(message_ids)
        valid_ids = {
            row[0]
            for row in self.db.query(ChatMessageModel.id).filter(
                ChatMessageModel.relation_id == relation_id,
                ChatMessageModel.id.in_(sorted(ids)),
            )
        }
        already_read = {
            row[0]
            for row in self.db.query(ChatMessageReadModel.message_id).filter(
                ChatMessageReadModel.user_id == user_id,
                ChatMessageReadModel.message_id.in_(sorted(valid_ids)),
            )
        }
        new_ids = valid_ids - already_read
        now = self.clock()
        for message_id in sorted(new_ids):
            self.db.add(ChatMessageReadModel(message_id=message_id, user_id=user_id, read_at=now))
        self.db.commit()
        return len(new_ids)

    def mark_read(self, relation_id: str, user_id: str, message_ids: List[str]) -> int:
        """Record that the user has read the given messages.

        IDs already marked, or not belonging to the relation, are skipped.

        Returns:
            Number of receipts created.

        Raises:
            RelationNotFoundError: If the relation is not live or the user is
                not part of it.
        """
        self.relations.get_live_relation(relation_id, user_id)
        try:
            try:
                created = self._insert_reads(relation_id, user_id, message_ids)
            except IntegrityError:
                # A concurrent request stored some of the same receipts; the
                # second pass sees them and skips them.
                self.db.rollback()
                logger.debug("Read receipt conflict on relation %s, retrying", relation_id)
                created = self._insert_reads(relation_id, user_id, message_ids)
        except Exception:
            self.db.rollback()
            raise
        logger.debug("Marked %d messages read in relation %s", created, relation_id)
        return created

    def unread_counts(self, user_id: str) -> UnreadCounts:
        """Count unread messages per live relation of the user.

        A message is unread when someone else sent it and the user has no
        read receipt for it. Relations with nothing unread are left out.
        """
        relation_ids = self.relations.list_live_relation_ids(user_id)
        if not relation_ids:
            return UnreadCounts(unread={}, total=0)

        rows = (
            self.db.query(ChatMessageModel.relation_id, func.count(ChatMessageModel.id))
            .filter(
                ChatMessageModel.relation_id.in_(relation_ids),
                ChatMessageModel.sender_id != user_id,
                ~ChatMessageModel.reads.any(ChatMessageReadModel.user_id == user_id),
            )
            .group_by(ChatMessageModel.relation_id)
            .all()
        )
        unread: Dict[str, int] = {relation_id: count for relation_id, count in rows}
        return UnreadCounts(unread=unread, total=sum(unread.values()))
