from datetime import datetime, timedelta

import pytest
import pytz
from sqlalchemy.orm import Session

from core.exceptions import (
    BoardNotFoundError,
    InvalidOperationError,
    LessonNotFoundError,
    RelationNotFoundError,
)
from models.lesson import LessonModel, LessonStatus
from schemas.lesson import LessonDeleteScope
from utils.board_manager import BoardManager
from utils.clock import to_utc
from utils.lesson_manager import LessonManager
from utils.relation_manager import RelationManager

# Monday
MONDAY = datetime(2026, 3, 2, 15, 0, tzinfo=pytz.utc)


@pytest.fixture
def lessons(db_session: Session, clock) -> LessonManager:
    return LessonManager(db_session, clock)


def _schedule(lessons: LessonManager, teacher, start: datetime, relation=None, **kwargs):
    return lessons.create_lesson(
        teacher.user_id,
        title=kwargs.pop("title", "Algebra"),
        start_time=start,
        end_time=start + timedelta(hours=1),
        relation_id=relation.id if relation is not None else None,
        **kwargs,
    )


def test_create_lesson_defaults(lessons, bob, alice, connect):
    relation = connect(bob, alice)
    lesson = _schedule(lessons, bob, MONDAY, relation, label_color="#aabbcc")

    assert lesson.user_id == bob.user_id
    assert lesson.relation_id == relation.id
    assert lesson.status == LessonStatus.SCHEDULED
    assert lesson.is_recurring is False
    assert lesson.label_color == "#aabbcc"
    assert to_utc(lesson.start_time) == MONDAY


def test_start_time_is_stored_in_utc(lessons, bob):
    local = pytz.timezone("Europe/Moscow").localize(datetime(2026, 3, 2, 18, 0))
    lesson = _schedule(lessons, bob, local)
    assert to_utc(lesson.start_time) == MONDAY


def test_lesson_must_end_after_start(lessons, bob):
    with pytest.raises(InvalidOperationError):
        lessons.create_lesson(bob.user_id, "Broken", MONDAY, MONDAY)


def test_lesson_needs_own_live_relation(db_session: Session, lessons, bob, carol, alice, connect, clock):
    relation = connect(carol, alice)
    with pytest.raises(RelationNotFoundError):
        _schedule(lessons, bob, MONDAY, relation)

    own = connect(bob, alice)
    RelationManager(db_session, clock).soft_delete_relation(own.id, alice.user_id)
    with pytest.raises(RelationNotFoundError):
        _schedule(lessons, bob, MONDAY, own)


def test_lesson_board_must_belong_to_teacher(db_session: Session, lessons, bob, carol, clock):
    board = BoardManager(db_session, clock).create_board(carol.user_id, title="Carol's")
    with pytest.raises(BoardNotFoundError):
        _schedule(lessons, bob, MONDAY, board_id=board.id)

    mine = BoardManager(db_session, clock).create_board(bob.user_id, title="Mine")
    lesson = _schedule(lessons, bob, MONDAY, board_id=mine.id)
    assert lesson.board.title == "Mine"


def test_teacher_sees_own_lessons_in_start_order(lessons, bob, carol, alice, connect):
    relation = connect(bob, alice)
    later = _schedule(lessons, bob, MONDAY + timedelta(days=1), relation)
    earlier = _schedule(lessons, bob, MONDAY, relation)
    _schedule(lessons, carol, MONDAY)

    listed = lessons.list_lessons(bob.user_id, "teacher")
    assert [lesson.id for lesson in listed] == [earlier.id, later.id]
    assert listed[0].relation.student.email == "alice@example.com"


def test_student_sees_lessons_of_live_relations_only(db_session: Session, lessons, bob, alice, dave, connect, clock):
    relation = connect(bob, alice)
    lesson = _schedule(lessons, bob, MONDAY, relation)
    _schedule(lessons, bob, MONDAY)
    _schedule(lessons, bob, MONDAY, connect(bob, dave))

    assert [l.id for l in lessons.list_lessons(alice.user_id, "student")] == [lesson.id]
    assert lessons.get_lesson(lesson.id, alice.user_id, "student").id == lesson.id

    RelationManager(db_session, clock).soft_delete_relation(relation.id, bob.user_id)
    assert lessons.list_lessons(alice.user_id, "student") == []
    with pytest.raises(LessonNotFoundError):
        lessons.get_lesson(lesson.id, alice.user_id, "student")


def test_list_lessons_date_range(lessons, bob):
    for day in range(4):
        _schedule(lessons, bob, MONDAY + timedelta(days=day), title=f"day {day}")

    listed = lessons.list_lessons(
        bob.user_id,
        "teacher",
        start_date=MONDAY + timedelta(days=1),
        end_date=MONDAY + timedelta(days=2),
    )
    assert [lesson.title for lesson in listed] == ["day 1", "day 2"]


def test_other_teacher_cannot_see_lesson(lessons, bob, carol):
    lesson = _schedule(lessons, bob, MONDAY)
    with pytest.raises(LessonNotFoundError):
        lessons.get_lesson(lesson.id, carol.user_id, "teacher")


def test_moving_lesson_records_previous_slot(lessons, bob):
    lesson = _schedule(lessons, bob, MONDAY)

    moved = lessons.update_lesson(
        lesson.id,
        bob.user_id,
        {"start_time": MONDAY + timedelta(hours=2), "end_time": MONDAY + timedelta(hours=3)},
    )

    assert moved.status == LessonStatus.RESCHEDULED
    assert to_utc(moved.previous_start_time) == MONDAY
    assert to_utc(moved.previous_end_time) == MONDAY + timedelta(hours=1)
    assert to_utc(moved.start_time) == MONDAY + timedelta(hours=2)


def test_update_without_moving_keeps_status(lessons, bob):
    lesson = _schedule(lessons, bob, MONDAY)

    updated = lessons.update_lesson(
        lesson.id,
        bob.user_id,
        {"title": "Geometry", "start_time": MONDAY, "status": "completed"},
    )

    assert updated.title == "Geometry"
    assert updated.status == "completed"
    assert updated.previous_start_time is None


def test_update_rejects_inverted_times_and_unknown_fields(lessons, bob):
    lesson = _schedule(lessons, bob, MONDAY)

    with pytest.raises(InvalidOperationError):
        lessons.update_lesson(lesson.id, bob.user_id, {"end_time": MONDAY - timedelta(hours=1)})
    with pytest.raises(ValueError):
        lessons.update_lesson(lesson.id, bob.user_id, {"user_id": "someone-else"})


def test_update_by_other_teacher_is_not_found(lessons, bob, carol):
    lesson = _schedule(lessons, bob, MONDAY)
    with pytest.raises(LessonNotFoundError):
        lessons.update_lesson(lesson.id, carol.user_id, {"title": "Mine now"})


def test_delete_single(db_session: Session, lessons, bob, alice, connect):
    relation = connect(bob, alice)
    first = _schedule(lessons, bob, MONDAY, relation)
    _schedule(lessons, bob, MONDAY + timedelta(days=7), relation)

    assert lessons.delete_lesson(first.id, bob.user_id) == 1
    assert db_session.query(LessonModel).count() == 1


def test_delete_weekday_removes_later_lessons_on_same_day(db_session: Session, lessons, bob, alice, dave, connect):
    relation = connect(bob, alice)
    past_monday = _schedule(lessons, bob, MONDAY - timedelta(days=7), relation)
    this_monday = _schedule(lessons, bob, MONDAY, relation)
    _schedule(lessons, bob, MONDAY + timedelta(days=7), relation)
    wednesday = _schedule(lessons, bob, MONDAY + timedelta(days=2), relation)
    other_student = _schedule(lessons, bob, MONDAY + timedelta(days=14), connect(bob, dave))

    deleted = lessons.delete_lesson(this_monday.id, bob.user_id, LessonDeleteScope.WEEKDAY)

    assert deleted == 2
    remaining = {lesson.id for lesson in db_session.query(LessonModel).all()}
    assert remaining == {past_monday.id, wednesday.id, other_student.id}


def test_delete_all_future_for_student(db_session: Session, lessons, bob, alice, connect):
    relation = connect(bob, alice)
    past = _schedule(lessons, bob, MONDAY - timedelta(days=1), relation)
    selected = _schedule(lessons, bob, MONDAY, relation)
    _schedule(lessons, bob, MONDAY + timedelta(days=2), relation)
    _schedule(lessons, bob, MONDAY + timedelta(days=9), relation)

    deleted = lessons.delete_lesson(selected.id, bob.user_id, LessonDeleteScope.ALL_FUTURE_STUDENT)

    assert deleted == 3
    assert [lesson.id for lesson in db_session.query(LessonModel).all()] == [past.id]


def test_delete_scope_without_relation_removes_one(db_session: Session, lessons, bob):
    lesson = _schedule(lessons, bob, MONDAY)
    _schedule(lessons, bob, MONDAY + timedelta(days=7))

    assert lessons.delete_lesson(lesson.id, bob.user_id, LessonDeleteScope.ALL_FUTURE_STUDENT) == 1
    assert db_session.query(LessonModel).count() == 1


def test_delete_by_other_teacher_is_not_found(lessons, bob, carol):
    lesson = _schedule(lessons, bob, MONDAY)
    with pytest.raises(LessonNotFoundError):
        lessons.delete_lesson(lesson.id, carol.user_id)
