"""Pytest configuration and fixtures for the time tracking tests."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tasktrack.db import Base, get_db
from tasktrack.core.deps import get_clock
from tasktrack.core.security import create_access_token
from tasktrack.models import Project, Task, TimeLog, User, UserRole
from tasktrack.services.notifications import get_notification_sink

TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Friday of ISO week 2024-W11 (Mon 2024-03-11 .. Sun 2024-03-17)
NOW = datetime(2024, 3, 15, 9, 0, 0)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def set(self, now):
        self.now = now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingSink:
    def __init__(self):
        self.sent = []

    def notify(self, notification):
        self.sent.append(notification)

    def recipients(self):
        return {n.recipient_id for n in self.sent}


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(role=UserRole.team_member, username=None):
        counter["n"] += 1
        name = username or f"{role.value}{counter['n']}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash="not-a-real-hash",
            full_name=name.title(),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def member(make_user):
    return make_user(UserRole.team_member, "alice")


@pytest.fixture
def manager(make_user):
    return make_user(UserRole.project_manager, "mona")


@pytest.fixture
def lead(make_user):
    return make_user(UserRole.team_leader, "leo")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.super_admin, "root")


@pytest.fixture
def project(db_session, manager, lead, member):
    project = Project(name="Apollo", description="Launch", owner_id=manager.id, team_lead_id=lead.id)
    project.members.append(member)
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture
def make_task(db_session, project, manager, member):
    def _make(title="Build API", on_project=None):
        task = Task(
            title=title,
            project_id=(on_project or project).id,
            assigned_to=member.id,
            created_by=manager.id,
        )
        db_session.add(task)
        db_session.commit()
        db_session.refresh(task)
        return task

    return _make


@pytest.fixture
def task(make_task):
    return make_task()


@pytest.fixture
def add_log(db_session):
    """Insert a log directly, bypassing every service rule."""

    def _add(user, task, day, hours, start_hour=9):
        start = datetime.combine(day, datetime.min.time()) + timedelta(hours=start_hour)
        log = TimeLog(
            user_id=user.id,
            task_id=task.id,
            project_id=task.project_id,
            date=day,
            start_time=start,
            end_time=start + timedelta(hours=hours),
            duration=hours,
            description="seeded",
            is_manual=True,
        )
        db_session.add(log)
        db_session.commit()
        db_session.refresh(log)
        return log

    return _add


@pytest.fixture
def client(db_session, clock, sink):
    from fastapi.testclient import TestClient
    from tasktrack.main import app

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notification_sink] = lambda: sink
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}
