from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from core.exceptions import (
    InvalidOperationError,
    InviteNotFoundError,
    RelationNotFoundError,
)
from models.invite_link import InviteLinkModel, InviteType, InviteUseModel
from models.relation import RelationStatus, TeacherStudentRelationModel
from utils.invite_manager import InviteManager
from utils.relation_manager import RelationManager, derive_roles


def _invite(session: Session, clock, creator, invite_type=InviteType.STUDENT_TO_TEACHER, **kwargs) -> str:
    return InviteManager(session, clock).create_invite(
        creator.user_id, invite_type=invite_type, **kwargs
    )


def _load_invite(session: Session, code: str) -> InviteLinkModel:
    session.expire_all()
    return session.query(InviteLinkModel).filter(InviteLinkModel.code == code).one()


def test_derive_roles():
    assert derive_roles(InviteType.STUDENT_TO_TEACHER, "creator", "actor") == ("actor", "creator")
    assert derive_roles(InviteType.TEACHER_TO_STUDENT, "creator", "actor") == ("creator", "actor")


def test_student_to_teacher_makes_acceptor_the_teacher(db_session: Session, alice, bob, clock):
    code = _invite(db_session, clock, alice, InviteType.STUDENT_TO_TEACHER)

    relation = RelationManager(db_session, clock).accept_invite(code, bob.user_id)

    assert relation.teacher_id == bob.user_id
    assert relation.student_id == alice.user_id
    assert relation.status == RelationStatus.ACTIVE
    assert relation.deleted_at is None


def test_teacher_to_student_makes_creator_the_teacher(db_session: Session, alice, bob, clock):
    code = _invite(db_session, clock, alice, InviteType.TEACHER_TO_STUDENT)

    relation = RelationManager(db_session, clock).accept_invite(code, bob.user_id)

    assert relation.teacher_id == alice.user_id
    assert relation.student_id == bob.user_id


def test_accept_consumes_invite_and_records_use(db_session: Session, alice, bob, clock):
    code = _invite(db_session, clock, alice)
    RelationManager(db_session, clock).accept_invite(code, bob.user_id)

    invite = _load_invite(db_session, code)
    assert invite.is_active is False
    uses = db_session.query(InviteUseModel).filter(InviteUseModel.invite_id == invite.id).all()
    assert [use.user_id for use in uses] == [bob.user_id]


def test_second_acceptance_is_not_found(db_session: Session, alice, bob, carol, clock):
    code = _invite(db_session, clock, alice)
    manager = RelationManager(db_session, clock)
    manager.accept_invite(code, bob.user_id)

    with pytest.raises(InviteNotFoundError):
        manager.accept_invite(code, carol.user_id)
    with pytest.raises(InviteNotFoundError):
        manager.accept_invite(code, bob.user_id)

    assert db_session.query(TeacherStudentRelationModel).count() == 1
    assert db_session.query(InviteUseModel).count() == 1


def test_self_acceptance_changes_nothing(db_session: Session, alice, clock):
    code = _invite(db_session, clock, alice)

    with pytest.raises(InvalidOperationError):
        RelationManager(db_session, clock).accept_invite(code, alice.user_id)

    assert db_session.query(TeacherStudentRelationModel).count() == 0
    assert db_session.query(InviteUseModel).count() == 0
    assert _load_invite(db_session, code).is_active is True


def test_expired_invite_cannot_be_accepted(db_session: Session, alice, bob, clock):
    code = _invite(db_session, clock, alice, expires_in_hours=1)
    clock.advance(hours=1, seconds=1)

    with pytest.raises(InviteNotFoundError):
        RelationManager(db_session, clock).accept_invite(code, bob.user_id)

    assert db_session.query(TeacherStudentRelationModel).count() == 0
    assert _load_invite(db_session, code).is_active is True


def test_lost_claim_is_not_found(db_session: Session, alice, bob, carol, clock):
    code = _invite(db_session, clock, alice)
    manager = RelationManager(db_session, clock)
    invite = manager.invites.get_active_invite(code)
    stale = SimpleNamespace(
        id=invite.id, type=invite.type, created_by_id=invite.created_by_id
    )
    manager.accept_invite(code, bob.user_id)

    # Carol passed the lookup before Bob's acceptance was committed
    manager.invites.get_active_invite = lambda _code: stale
    with pytest.raises(InviteNotFoundError):
        manager.accept_invite(code, carol.user_id)

    assert db_session.query(TeacherStudentRelationModel).count() == 1
    assert db_session.query(InviteUseModel).count() == 1


def test_failed_commit_leaves_invite_usable(db_session: Session, alice, bob, clock, monkeypatch):
    code = _invite(db_session, clock, alice)
    manager = RelationManager(db_session, clock)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(OperationalError):
        manager.accept_invite(code, bob.user_id)
    monkeypatch.undo()

    assert _load_invite(db_session, code).is_active is True
    assert db_session.query(TeacherStudentRelationModel).count() == 0
    assert db_session.query(InviteUseModel).count() == 0

    relation = manager.accept_invite(code, bob.user_id)
    assert relation.teacher_id == bob.user_id


def test_reactivation_wipes_annotations(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    first = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)
    manager.update_relation(
        first.id,
        bob.user_id,
        {"teacher_notes": "Weak on fractions", "student_name": "Ali"},
    )
    manager.soft_delete_relation(first.id, alice.user_id)

    clock.advance(days=3)
    again = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    assert again.id == first.id
    assert again.status == RelationStatus.ACTIVE
    assert again.deleted_at is None
    assert again.teacher_notes is None
    assert again.student_name is None
    assert db_session.query(TeacherStudentRelationModel).count() == 1


def test_opposite_direction_is_a_separate_relation(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    first = manager.accept_invite(
        _invite(db_session, clock, alice, InviteType.STUDENT_TO_TEACHER), bob.user_id
    )
    second = manager.accept_invite(
        _invite(db_session, clock, alice, InviteType.TEACHER_TO_STUDENT), bob.user_id
    )
    assert first.id != second.id
    assert (second.teacher_id, second.student_id) == (alice.user_id, bob.user_id)


def test_list_for_user_splits_roles_newest_first(db_session: Session, alice, bob, carol, clock):
    manager = RelationManager(db_session, clock)
    manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)
    clock.advance(minutes=5)
    manager.accept_invite(_invite(db_session, clock, alice), carol.user_id)

    as_teacher, as_student = manager.list_for_user(alice.user_id)
    assert as_teacher == []
    assert [r.teacher_id for r in as_student] == [carol.user_id, bob.user_id]
    assert as_student[0].teacher.email == "carol@example.com"

    as_teacher, as_student = manager.list_for_user(bob.user_id)
    assert [r.student_id for r in as_teacher] == [alice.user_id]
    assert as_teacher[0].student.name == "Alice"
    assert as_student == []


def test_list_excludes_deleted_relations(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)
    manager.soft_delete_relation(relation.id, bob.user_id)

    for user in (alice, bob):
        as_teacher, as_student = manager.list_for_user(user.user_id)
        assert as_teacher == []
        assert as_student == []


def test_list_excludes_soft_deleted_even_if_status_active(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)
    relation.deleted_at = clock()
    db_session.commit()

    assert manager.list_for_user(alice.user_id) == ([], [])
    assert manager.list_for_user(bob.user_id) == ([], [])


def test_either_participant_can_update_any_field(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    manager.update_relation(relation.id, bob.user_id, {"teacher_notes": "Homework on Fridays"})
    updated = manager.update_relation(relation.id, alice.user_id, {"teacher_notes": "Overwritten"})

    assert updated.teacher_notes == "Overwritten"


def test_update_leaves_unmentioned_fields_alone(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)
    manager.update_relation(relation.id, bob.user_id, {"student_name": "Ali", "teacher_notes": "x"})

    updated = manager.update_relation(relation.id, bob.user_id, {"teacher_notes": None})

    assert updated.student_name == "Ali"
    assert updated.teacher_notes is None


def test_update_rejects_unknown_fields(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    with pytest.raises(ValueError):
        manager.update_relation(relation.id, bob.user_id, {"status": "ACTIVE"})


def test_update_requires_live_participation(db_session: Session, alice, bob, carol, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    with pytest.raises(RelationNotFoundError):
        manager.update_relation(relation.id, carol.user_id, {"teacher_notes": "hi"})

    manager.soft_delete_relation(relation.id, bob.user_id)
    with pytest.raises(RelationNotFoundError):
        manager.update_relation(relation.id, bob.user_id, {"teacher_notes": "hi"})


def test_soft_delete_again_overwrites_deletion_time(db_session: Session, alice, bob, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    first = manager.soft_delete_relation(relation.id, alice.user_id)
    first_deleted_at = first.deleted_at
    clock.advance(hours=1)
    second = manager.soft_delete_relation(relation.id, bob.user_id)

    assert second.status == RelationStatus.BLOCKED
    assert second.deleted_at > first_deleted_at


def test_soft_delete_by_outsider_is_not_found(db_session: Session, alice, bob, carol, clock):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    with pytest.raises(RelationNotFoundError):
        manager.soft_delete_relation(relation.id, carol.user_id)
    with pytest.raises(RelationNotFoundError):
        manager.soft_delete_relation("missing", alice.user_id)


def test_invite_keeps_an_audit_trail_of_its_use(db_session: Session, alice, bob, clock):
    code = _invite(db_session, clock, alice)
    clock.advance(minutes=3)
    RelationManager(db_session, clock).accept_invite(code, bob.user_id)

    invite = _load_invite(db_session, code)
    assert [use.user_id for use in invite.uses] == [bob.user_id]
    use = invite.uses[0]
    assert use.invite.code == code
    assert use.used_at.replace(tzinfo=None) == clock().replace(tzinfo=None)


def _failing_commit():
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


def test_failed_update_is_discarded(db_session: Session, alice, bob, clock, monkeypatch):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    monkeypatch.setattr(db_session, "commit", _failing_commit)
    with pytest.raises(OperationalError):
        manager.update_relation(relation.id, bob.user_id, {"teacher_notes": "lost"})
    monkeypatch.undo()

    # A later commit on the same session must not carry the failed change
    db_session.commit()
    db_session.expire_all()
    assert manager.get_live_relation(relation.id, bob.user_id).teacher_notes is None


def test_failed_soft_delete_is_discarded(db_session: Session, alice, bob, clock, monkeypatch):
    manager = RelationManager(db_session, clock)
    relation = manager.accept_invite(_invite(db_session, clock, alice), bob.user_id)

    monkeypatch.setattr(db_session, "commit", _failing_commit)
    with pytest.raises(OperationalError):
        manager.soft_delete_relation(relation.id, alice.user_id)
    monkeypatch.undo()

    db_session.commit()
    db_session.expire_all()
    live = manager.get_live_relation(relation.id, alice.user_id)
    assert live.status == RelationStatus.ACTIVE
    assert live.deleted_at is None
