"""Flat, read-only records consumed by the analytics engine.

Records are produced by a :class:`RecordFetcher` (the SQL repository in
production, an in-memory store in tests) and never mutated by the engine.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from worklens.models.entities import ProjectRole, ProjectStatus, TaskPriority, TaskStatus


@dataclass(frozen=True, slots=True)
class TaskRecord:
    id: UUID
    title: str
    status: TaskStatus
    priority: TaskPriority
    project_id: UUID
    assignee_id: UUID | None
    created_by: UUID
    created_at: datetime
    completed_at: datetime | None = None
    estimated_hours: Decimal | None = None

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class TimeLogRecord:
    id: UUID
    user_id: UUID
    task_id: UUID
    started_at: datetime
    ended_at: datetime | None = None
    duration_minutes: int | None = None


@dataclass(frozen=True, slots=True)
class UserRecord:
    id: UUID
    full_name: str
    email: str = ""
    avatar_url: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectRecord:
    id: UUID
    name: str
    status: ProjectStatus
    owner_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None


@dataclass(frozen=True, slots=True)
class ProjectMemberRecord:
    project_id: UUID
    user_id: UUID
    role: ProjectRole = ProjectRole.MEMBER


@dataclass(frozen=True, slots=True)
class ActivityEvent:
    id: UUID
    action: str
    created_at: datetime
    entity_type: str = "task"
    project_id: UUID | None = None
    user_id: UUID | None = None
    changes: dict[str, object] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True, slots=True)
class TaskFilter:
    """Equality/range predicate for task fetches; unset fields do not filter."""

    project_id: UUID | None = None
    assignee_id: UUID | None = None
    # Matches tasks where the user is assignee OR creator.
    involving_user_id: UUID | None = None
    task_ids: frozenset[UUID] | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


@dataclass(frozen=True, slots=True)
class TimeLogFilter:
    user_id: UUID | None = None
    # Matches logs whose task belongs to the project.
    project_id: UUID | None = None
    task_ids: frozenset[UUID] | None = None
    started_from: datetime | None = None
    started_to: datetime | None = None
    closed_only: bool = False


@dataclass(frozen=True, slots=True)
class ActivityFilter:
    """Activity predicate; results are returned newest first."""

    project_id: UUID | None = None
    entity_type: str | None = "task"
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int | None = None


class RecordFetcher(Protocol):
    """Read interface supplied by the surrounding CRUD subsystem."""

    def fetch_tasks(self, task_filter: TaskFilter) -> list[TaskRecord]: ...

    def fetch_time_logs(self, log_filter: TimeLogFilter) -> list[TimeLogRecord]: ...

    def fetch_users(self, user_ids: Collection[UUID] | None = None) -> list[UserRecord]: ...

    def fetch_projects(self, project_ids: Collection[UUID] | None = None) -> list[ProjectRecord]: ...

    def fetch_project_members(
        self,
        project_id: UUID | None = None,
        user_id: UUID | None = None,
    ) -> list[ProjectMemberRecord]: ...

    def fetch_activity(self, activity_filter: ActivityFilter) -> list[ActivityEvent]: ...
