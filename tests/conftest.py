from __future__ import annotations

import uuid
from collections.abc import Collection, Generator
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import worklens.models.entities  # noqa: F401
from worklens.analytics.records import (
    ActivityEvent,
    ActivityFilter,
    ProjectMemberRecord,
    ProjectRecord,
    TaskFilter,
    TaskRecord,
    TimeLogFilter,
    TimeLogRecord,
    UserRecord,
)
from worklens.core.config import get_settings
from worklens.db.base import Base
from worklens.db.dependencies import get_db_session, get_session_factory
from worklens.main import create_app
from worklens.models.entities import ProjectRole, ProjectStatus, TaskPriority, TaskStatus

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def at(day: date, hour: int = 10, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def analytics_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    # SQLite's shared in-memory connection is not safe for concurrent fetches.
    monkeypatch.setenv("ANALYTICS_FETCH_WORKERS", "1")
    monkeypatch.setenv("ANALYTICS_TIMEZONE", "UTC")
    monkeypatch.setenv("AUTH_ALLOW_DEV_PRINCIPAL", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def session_factory() -> Generator[sessionmaker, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session, session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: uuid.UUID | str) -> dict[str, str]:
    return {"X-USER-ID": str(user_id)}


@dataclass
class InMemoryRecordStore:
    """Record fetcher over plain lists, applying the same predicates as the SQL repository."""

    tasks: list[TaskRecord] = field(default_factory=list)
    time_logs: list[TimeLogRecord] = field(default_factory=list)
    users: list[UserRecord] = field(default_factory=list)
    projects: list[ProjectRecord] = field(default_factory=list)
    members: list[ProjectMemberRecord] = field(default_factory=list)
    activity: list[ActivityEvent] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    # ---------- Builders ----------
    def user(self, full_name: str, *, email: str | None = None) -> UserRecord:
        record = UserRecord(
            id=uuid.uuid4(),
            full_name=full_name,
            email=email or f"{full_name.lower().replace(' ', '.')}@test.local",
        )
        self.users.append(record)
        return record

    def project(
        self,
        name: str,
        *,
        status: ProjectStatus = ProjectStatus.ACTIVE,
        owner: UserRecord | None = None,
        end_date: date | None = None,
    ) -> ProjectRecord:
        record = ProjectRecord(
            id=uuid.uuid4(),
            name=name,
            status=status,
            owner_id=owner.id if owner else None,
            end_date=end_date,
        )
        self.projects.append(record)
        return record

    def member(
        self,
        project: ProjectRecord,
        user: UserRecord,
        role: ProjectRole = ProjectRole.MEMBER,
    ) -> ProjectMemberRecord:
        record = ProjectMemberRecord(project_id=project.id, user_id=user.id, role=role)
        self.members.append(record)
        return record

    def task(
        self,
        project: ProjectRecord,
        *,
        created_at: datetime,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        assignee: UserRecord | None = None,
        creator: UserRecord | None = None,
        completed_at: datetime | None = None,
        estimated_hours: Decimal | None = None,
        title: str = "Task",
    ) -> TaskRecord:
        creator_id = creator.id if creator else (assignee.id if assignee else uuid.uuid4())
        record = TaskRecord(
            id=uuid.uuid4(),
            title=title,
            status=status,
            priority=priority,
            project_id=project.id,
            assignee_id=assignee.id if assignee else None,
            created_by=creator_id,
            created_at=created_at,
            completed_at=completed_at,
            estimated_hours=estimated_hours,
        )
        self.tasks.append(record)
        return record

    def log(
        self,
        user: UserRecord,
        task: TaskRecord,
        *,
        started_at: datetime,
        ended_at: datetime | None = None,
        duration_minutes: int | None = None,
    ) -> TimeLogRecord:
        record = TimeLogRecord(
            id=uuid.uuid4(),
            user_id=user.id,
            task_id=task.id,
            started_at=started_at,
            ended_at=ended_at,
            duration_minutes=duration_minutes,
        )
        self.time_logs.append(record)
        return record

    def event(
        self,
        project: ProjectRecord,
        action: str,
        *,
        created_at: datetime,
        user: UserRecord | None = None,
        title: str | None = None,
    ) -> ActivityEvent:
        record = ActivityEvent(
            id=uuid.uuid4(),
            action=action,
            created_at=created_at,
            project_id=project.id,
            user_id=user.id if user else None,
            changes={"title": title} if title else {},
        )
        self.activity.append(record)
        return record

    # ---------- Fetchers ----------
    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def fetch_tasks(self, task_filter: TaskFilter) -> list[TaskRecord]:
        self._enter("fetch_tasks")
        f = task_filter
        return [
            task
            for task in self.tasks
            if (f.project_id is None or task.project_id == f.project_id)
            and (f.assignee_id is None or task.assignee_id == f.assignee_id)
            and (f.involving_user_id is None or f.involving_user_id in (task.assignee_id, task.created_by))
            and (f.task_ids is None or task.id in f.task_ids)
            and (f.created_from is None or task.created_at >= f.created_from)
            and (f.created_to is None or task.created_at <= f.created_to)
        ]

    def fetch_time_logs(self, log_filter: TimeLogFilter) -> list[TimeLogRecord]:
        self._enter("fetch_time_logs")
        f = log_filter
        project_of = {task.id: task.project_id for task in self.tasks}
        return [
            log
            for log in self.time_logs
            if (f.user_id is None or log.user_id == f.user_id)
            and (f.project_id is None or project_of.get(log.task_id) == f.project_id)
            and (f.task_ids is None or log.task_id in f.task_ids)
            and (f.started_from is None or log.started_at >= f.started_from)
            and (f.started_to is None or log.started_at <= f.started_to)
            and (not f.closed_only or log.ended_at is not None)
        ]

    def fetch_users(self, user_ids: Collection[uuid.UUID] | None = None) -> list[UserRecord]:
        self._enter("fetch_users")
        return [user for user in self.users if user_ids is None or user.id in user_ids]

    def fetch_projects(self, project_ids: Collection[uuid.UUID] | None = None) -> list[ProjectRecord]:
        self._enter("fetch_projects")
        return [project for project in self.projects if project_ids is None or project.id in project_ids]

    def fetch_project_members(
        self,
        project_id: uuid.UUID | None = None,
        user_id: uuid.UUID | None = None,
    ) -> list[ProjectMemberRecord]:
        self._enter("fetch_project_members")
        return [
            member
            for member in self.members
            if (project_id is None or member.project_id == project_id)
            and (user_id is None or member.user_id == user_id)
        ]

    def fetch_activity(self, activity_filter: ActivityFilter) -> list[ActivityEvent]:
        self._enter("fetch_activity")
        f = activity_filter
        matched = sorted(
            (
                event
                for event in self.activity
                if (f.project_id is None or event.project_id == f.project_id)
                and (f.entity_type is None or event.entity_type == f.entity_type)
                and (f.created_from is None or event.created_at >= f.created_from)
                and (f.created_to is None or event.created_at <= f.created_to)
            ),
            key=lambda event: event.created_at,
            reverse=True,
        )
        return matched if f.limit is None else matched[: f.limit]


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()
