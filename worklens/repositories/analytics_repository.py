"""Read-only record fetchers backed by the relational store."""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import sessionmaker

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
from worklens.models.entities import ActivityLog, Project, ProjectMember, Task, TimeLog, User


def _as_utc(value: datetime | None) -> datetime | None:
    """Timestamps read back without an offset are stored UTC."""

    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _bound(value: datetime) -> datetime:
    return value.astimezone(timezone.utc) if value.tzinfo is not None else value


class AnalyticsRepository:
    """Record fetcher used by the analytics engine.

    Every fetch opens its own short-lived session from ``session_factory`` so
    independent fetches of one report build can run on separate threads.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    # ---------- Tasks ----------
    def fetch_tasks(self, task_filter: TaskFilter) -> list[TaskRecord]:
        stmt = select(Task).where(Task.deleted_at.is_(None))
        if task_filter.project_id is not None:
            stmt = stmt.where(Task.project_id == task_filter.project_id)
        if task_filter.assignee_id is not None:
            stmt = stmt.where(Task.assignee_id == task_filter.assignee_id)
        if task_filter.involving_user_id is not None:
            stmt = stmt.where(
                or_(
                    Task.assignee_id == task_filter.involving_user_id,
                    Task.created_by == task_filter.involving_user_id,
                )
            )
        if task_filter.task_ids is not None:
            stmt = stmt.where(Task.id.in_(list(task_filter.task_ids)))
        if task_filter.created_from is not None:
            stmt = stmt.where(Task.created_at >= _bound(task_filter.created_from))
        if task_filter.created_to is not None:
            stmt = stmt.where(Task.created_at <= _bound(task_filter.created_to))

        with self.session_factory() as session:
            rows = session.scalars(stmt.order_by(Task.created_at.asc(), Task.id.asc())).all()
            return [self._task_record(row) for row in rows]

    @staticmethod
    def _task_record(row: Task) -> TaskRecord:
        return TaskRecord(
            id=row.id,
            title=row.title,
            status=row.status,
            priority=row.priority,
            project_id=row.project_id,
            assignee_id=row.assignee_id,
            created_by=row.created_by,
            created_at=_as_utc(row.created_at),
            completed_at=_as_utc(row.completed_at),
            estimated_hours=row.estimated_hours,
        )

    # ---------- Time logs ----------
    def fetch_time_logs(self, log_filter: TimeLogFilter) -> list[TimeLogRecord]:
        stmt = select(TimeLog)
        if log_filter.project_id is not None:
            stmt = stmt.join(Task, Task.id == TimeLog.task_id).where(
                Task.project_id == log_filter.project_id,
                Task.deleted_at.is_(None),
            )
        if log_filter.user_id is not None:
            stmt = stmt.where(TimeLog.user_id == log_filter.user_id)
        if log_filter.task_ids is not None:
            stmt = stmt.where(TimeLog.task_id.in_(list(log_filter.task_ids)))
        if log_filter.started_from is not None:
            stmt = stmt.where(TimeLog.started_at >= _bound(log_filter.started_from))
        if log_filter.started_to is not None:
            stmt = stmt.where(TimeLog.started_at <= _bound(log_filter.started_to))
        if log_filter.closed_only:
            stmt = stmt.where(TimeLog.ended_at.is_not(None))

        with self.session_factory() as session:
            rows = session.scalars(stmt.order_by(TimeLog.started_at.asc(), TimeLog.id.asc())).all()
            return [
                TimeLogRecord(
                    id=row.id,
                    user_id=row.user_id,
                    task_id=row.task_id,
                    started_at=_as_utc(row.started_at),
                    ended_at=_as_utc(row.ended_at),
                    duration_minutes=row.duration_minutes,
                )
                for row in rows
            ]

    # ---------- Users and projects ----------
    def fetch_users(self, user_ids: Collection[UUID] | None = None) -> list[UserRecord]:
        stmt = select(User).where(User.deleted_at.is_(None))
        if user_ids is not None:
            stmt = stmt.where(User.id.in_(list(user_ids)))

        with self.session_factory() as session:
            rows = session.scalars(stmt.order_by(User.full_name.asc(), User.email.asc())).all()
            return [
                UserRecord(id=row.id, full_name=row.full_name, email=row.email, avatar_url=row.avatar_url)
                for row in rows
            ]

    def fetch_projects(self, project_ids: Collection[UUID] | None = None) -> list[ProjectRecord]:
        stmt = select(Project).where(Project.deleted_at.is_(None))
        if project_ids is not None:
            stmt = stmt.where(Project.id.in_(list(project_ids)))

        with self.session_factory() as session:
            rows = session.scalars(stmt.order_by(Project.name.asc(), Project.id.asc())).all()
            return [
                ProjectRecord(
                    id=row.id,
                    name=row.name,
                    status=row.status,
                    owner_id=row.owner_id,
                    start_date=row.start_date,
                    end_date=row.end_date,
                )
                for row in rows
            ]

    def fetch_project_members(
        self,
        project_id: UUID | None = None,
        user_id: UUID | None = None,
    ) -> list[ProjectMemberRecord]:
        stmt = select(ProjectMember)
        if project_id is not None:
            stmt = stmt.where(ProjectMember.project_id == project_id)
        if user_id is not None:
            stmt = stmt.where(ProjectMember.user_id == user_id)

        with self.session_factory() as session:
            rows = session.scalars(stmt.order_by(ProjectMember.joined_at.asc(), ProjectMember.id.asc())).all()
            return [ProjectMemberRecord(project_id=row.project_id, user_id=row.user_id, role=row.role) for row in rows]

    # ---------- Activity ----------
    def fetch_activity(self, activity_filter: ActivityFilter) -> list[ActivityEvent]:
        stmt = select(ActivityLog)
        if activity_filter.project_id is not None:
            stmt = stmt.where(ActivityLog.project_id == activity_filter.project_id)
        if activity_filter.entity_type is not None:
            stmt = stmt.where(ActivityLog.entity_type == activity_filter.entity_type)
        if activity_filter.created_from is not None:
            stmt = stmt.where(ActivityLog.created_at >= _bound(activity_filter.created_from))
        if activity_filter.created_to is not None:
            stmt = stmt.where(ActivityLog.created_at <= _bound(activity_filter.created_to))
        stmt = stmt.order_by(ActivityLog.created_at.desc())
        if activity_filter.limit is not None:
            stmt = stmt.limit(activity_filter.limit)

        with self.session_factory() as session:
            rows = session.scalars(stmt).all()
            return [
                ActivityEvent(
                    id=row.id,
                    action=row.action,
                    created_at=_as_utc(row.created_at),
                    entity_type=row.entity_type,
                    project_id=row.project_id,
                    user_id=row.user_id,
                    changes=dict(row.changes or {}),
                )
                for row in rows
            ]
