"""Role-scoped "current state" dashboard metrics."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from functools import partial
from uuid import UUID

from worklens.analytics.fetching import FetchRunner
from worklens.analytics.records import (
    ProjectMemberRecord,
    ProjectRecord,
    RecordFetcher,
    TaskFilter,
    TaskRecord,
    TimeLogFilter,
    TimeLogRecord,
    UserRecord,
)
from worklens.analytics.reducers import bucket_by_day, group_sum, histogram, log_minutes, rank, zero_buckets
from worklens.analytics.reports import (
    DailyProductivity,
    DashboardMetrics,
    DashboardScope,
    DayMinutes,
    ReportPeriod,
    StatusCount,
    StatusTotals,
    TeamMemberStats,
    TimeStats,
)
from worklens.analytics.windows import DateWindow, day_of, day_sequence, trailing_window
from worklens.models.entities import ProjectStatus, TaskStatus

logger = logging.getLogger(__name__)

WEEK_DAYS = 7
MONTH_DAYS = 30


def effective_scope(scope: DashboardScope, *, is_privileged: bool) -> DashboardScope:
    """Non-privileged viewers only ever see their own records."""

    if is_privileged:
        return scope
    return replace(scope, user_id=scope.viewer_id)


def _no_records() -> list:
    return []


def build_dashboard_metrics(
    fetcher: RecordFetcher,
    scope: DashboardScope,
    window: DateWindow,
    *,
    is_privileged: bool,
    now: datetime,
    runner: FetchRunner | None = None,
) -> DashboardMetrics:
    runner = runner or FetchRunner()
    scope = effective_scope(scope, is_privileged=is_privileged)
    recent = trailing_window(MONTH_DAYS, now=now, tz=window.tz)

    (
        scoped_tasks,
        projects,
        memberships,
        recent_logs,
        window_tasks,
        window_logs,
        users,
        team_tasks,
        team_logs,
    ) = runner.gather(
        partial(fetcher.fetch_tasks, TaskFilter(project_id=scope.project_id, assignee_id=scope.user_id)),
        fetcher.fetch_projects,
        _no_records if is_privileged else partial(fetcher.fetch_project_members, user_id=scope.viewer_id),
        partial(
            fetcher.fetch_time_logs,
            TimeLogFilter(
                user_id=scope.user_id,
                project_id=scope.project_id,
                started_from=recent.start_at,
                started_to=recent.end_at,
                closed_only=True,
            ),
        ),
        partial(
            fetcher.fetch_tasks,
            TaskFilter(
                project_id=scope.project_id,
                assignee_id=scope.user_id,
                created_from=window.start_at,
                created_to=window.end_at,
            ),
        ),
        partial(
            fetcher.fetch_time_logs,
            TimeLogFilter(
                user_id=scope.user_id,
                project_id=scope.project_id,
                started_from=window.start_at,
                started_to=window.end_at,
                closed_only=True,
            ),
        ),
        fetcher.fetch_users if is_privileged else _no_records,
        partial(fetcher.fetch_tasks, TaskFilter(project_id=scope.project_id)) if is_privileged else _no_records,
        partial(
            fetcher.fetch_time_logs,
            TimeLogFilter(
                project_id=scope.project_id,
                started_from=window.start_at,
                started_to=window.end_at,
                closed_only=True,
            ),
        )
        if is_privileged
        else _no_records,
    )

    visible_projects = projects if is_privileged else _viewer_projects(projects, memberships, scope.viewer_id)

    logger.debug(
        "Built dashboard metrics viewer=%s user=%s project=%s privileged=%s window=%s..%s",
        scope.viewer_id,
        scope.user_id,
        scope.project_id,
        is_privileged,
        window.start,
        window.end,
    )
    return DashboardMetrics(
        scope=scope,
        period=ReportPeriod(start=window.start, end=window.end),
        task_stats=_status_totals(histogram(scoped_tasks, lambda task: task.status, TaskStatus)),
        project_stats=_status_totals(histogram(visible_projects, lambda project: project.status, ProjectStatus)),
        time_stats=_time_stats(recent_logs, recent, now=now),
        productivity_trends=_daily_productivity(window_tasks, window_logs, window),
        team_stats=_team_stats(users, team_tasks, team_logs) if is_privileged else (),
    )


def _viewer_projects(
    projects: list[ProjectRecord],
    memberships: list[ProjectMemberRecord],
    viewer_id: UUID,
) -> list[ProjectRecord]:
    member_of = {membership.project_id for membership in memberships}
    return [project for project in projects if project.id in member_of or project.owner_id == viewer_id]


def _status_totals(counts: dict) -> StatusTotals:
    return StatusTotals(
        counts=tuple(StatusCount(status=status.value, count=count) for status, count in counts.items()),
        total=sum(counts.values()),
    )


def _time_stats(logs: list[TimeLogRecord], recent: DateWindow, *, now: datetime) -> TimeStats:
    """Today / last 7 days / last 30 days totals and a daily series from one set of logs."""

    tz = recent.tz
    today = day_of(now, tz)
    week_start = today - timedelta(days=WEEK_DAYS)

    today_minutes = week_minutes = month_minutes = 0
    for log in logs:
        day = day_of(log.started_at, tz)
        if not recent.contains(day):
            continue
        minutes = log_minutes(log)
        month_minutes += minutes
        if day >= week_start:
            week_minutes += minutes
        if day == today:
            today_minutes += minutes

    by_day = bucket_by_day(zero_buckets(day_sequence(recent)), logs, lambda log: log.started_at, tz, log_minutes)
    return TimeStats(
        today=today_minutes,
        week=week_minutes,
        month=month_minutes,
        by_day=tuple(DayMinutes(date=day, minutes=minutes) for day, minutes in by_day.items()),
    )


def _daily_productivity(
    tasks: list[TaskRecord],
    logs: list[TimeLogRecord],
    window: DateWindow,
) -> tuple[DailyProductivity, ...]:
    tz = window.tz
    days = day_sequence(window)
    created = bucket_by_day(zero_buckets(days), tasks, lambda task: task.created_at, tz)
    completed = bucket_by_day(zero_buckets(days), tasks, lambda task: task.completed_at, tz)
    minutes = bucket_by_day(zero_buckets(days), logs, lambda log: log.started_at, tz, log_minutes)
    return tuple(
        DailyProductivity(
            date=day,
            tasks_completed=completed[day],
            tasks_created=created[day],
            time_logged=minutes[day],
        )
        for day in days
    )


def _team_stats(
    users: list[UserRecord],
    tasks: list[TaskRecord],
    logs: list[TimeLogRecord],
) -> tuple[TeamMemberStats, ...]:
    assigned = Counter(task.assignee_id for task in tasks if task.assignee_id is not None)
    completed = Counter(task.assignee_id for task in tasks if task.assignee_id is not None and task.is_completed)
    minutes_by_user = group_sum(logs, lambda log: log.user_id, log_minutes)

    active = [
        TeamMemberStats(
            user_id=user.id,
            name=user.full_name,
            email=user.email,
            avatar_url=user.avatar_url,
            tasks_completed=completed[user.id],
            tasks_assigned=assigned[user.id],
            time_logged=minutes_by_user.get(user.id, 0),
        )
        for user in users
        if assigned[user.id] or minutes_by_user.get(user.id, 0)
    ]
    return tuple(rank(active, lambda row: row.tasks_completed))
