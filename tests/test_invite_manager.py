from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from core.exceptions import InviteNotFoundError
from models.invite_link import InviteLinkModel, InviteType
from utils.invite_manager import InviteManager


def test_create_invite_uses_defaults(db_session: Session, alice, clock):
    manager = InviteManager(db_session, clock)
    code = manager.create_invite(alice.user_id)

    invite = db_session.query(InviteLinkModel).filter(InviteLinkModel.code == code).one()
    assert invite.type == InviteType.STUDENT_TO_TEACHER
    assert invite.is_active is True
    assert invite.created_by_id == alice.user_id
    assert invite.message is None
    assert invite.expires_at.replace(tzinfo=None) == (
        clock() + timedelta(hours=24)
    ).replace(tzinfo=None)


def test_create_invite_returns_distinct_codes(db_session: Session, alice, clock):
    manager = InviteManager(db_session, clock)
    codes = {manager.create_invite(alice.user_id) for _ in range(5)}
    assert len(codes) == 5
    assert all(len(code) >= 6 for code in codes)


def test_get_active_invite_embeds_creator(db_session: Session, bob, clock):
    manager = InviteManager(db_session, clock)
    code = manager.create_invite(
        bob.user_id,
        invite_type=InviteType.TEACHER_TO_STUDENT,
        message="Join my algebra group",
    )

    invite = manager.get_active_invite(code)
    assert invite.type == InviteType.TEACHER_TO_STUDENT
    assert invite.message == "Join my algebra group"
    assert invite.created_by.email == "bob@example.com"


def test_invite_expires_after_its_lifetime(db_session: Session, alice, clock):
    manager = InviteManager(db_session, clock)
    code = manager.create_invite(alice.user_id, expires_in_hours=1)

    assert manager.get_active_invite(code).code == code

    clock.advance(hours=2)
    with pytest.raises(InviteNotFoundError):
        manager.get_active_invite(code)


def test_inactive_invite_is_not_found(db_session: Session, alice, clock):
    manager = InviteManager(db_session, clock)
    code = manager.create_invite(alice.user_id)
    invite = db_session.query(InviteLinkModel).filter(InviteLinkModel.code == code).one()
    invite.is_active = False
    db_session.commit()

    with pytest.raises(InviteNotFoundError) as exc:
        manager.get_active_invite(code)
    assert str(exc.value) == "Invite not found or expired"


def test_unknown_code_reports_same_error(db_session: Session, clock):
    manager = InviteManager(db_session, clock)
    with pytest.raises(InviteNotFoundError) as exc:
        manager.get_active_invite("does-not-exist")
    assert str(exc.value) == "Invite not found or expired"


def test_failed_issue_leaves_nothing_behind(db_session: Session, alice, clock, monkeypatch):
    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(OperationalError):
        InviteManager(db_session, clock).create_invite(alice.user_id)
    monkeypatch.undo()

    db_session.commit()
    assert db_session.query(InviteLinkModel).count() == 0
