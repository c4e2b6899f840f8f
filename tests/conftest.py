import os
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from models.base import Base
from models.invite_link import InviteType
from schemas.user import User
from utils.invite_manager import InviteManager
from utils.relation_manager import RelationManager
from utils.user_manager import UserManager

TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def db_session() -> Session:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=pytz.utc))


def _create_user(session: Session, email: str, name: str, role: str) -> User:
    return UserManager(session).create_user(email, name=name, role=role)


@pytest.fixture
def alice(db_session: Session) -> User:
    return _create_user(db_session, "alice@example.com", "Alice", "student")


@pytest.fixture
def bob(db_session: Session) -> User:
    return _create_user(db_session, "bob@example.com", "Bob", "teacher")


@pytest.fixture
def carol(db_session: Session) -> User:
    return _create_user(db_session, "carol@example.com", "Carol", "teacher")


@pytest.fixture
def dave(db_session: Session) -> User:
    return _create_user(db_session, "dave@example.com", "Dave", "student")


@pytest.fixture
def connect(db_session: Session, clock):
    """Return a helper that links a teacher and a student through an invite."""
    def _connect(teacher: User, student: User):
        code = InviteManager(db_session, clock).create_invite(
            teacher.user_id, invite_type=InviteType.TEACHER_TO_STUDENT
        )
        return RelationManager(db_session, clock).accept_invite(code, student.user_id)

    return _connect
