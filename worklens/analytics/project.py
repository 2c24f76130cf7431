"""Per-project progress, variance and member report."""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, time
from decimal import Decimal
from functools import partial
from uuid import UUID

from worklens.analytics.fetching import FetchRunner
from worklens.analytics.records import (
    ActivityEvent,
    ActivityFilter,
    ProjectMemberRecord,
    ProjectRecord,
    RecordFetcher,
    TaskFilter,
    TaskRecord,
    TimeLogFilter,
    TimeLogRecord,
    UserRecord,
)
from worklens.analytics.reducers import (
    HUNDRED,
    ZERO,
    completion_mismatches,
    group_sum,
    histogram,
    index_by,
    log_minutes,
    percentage,
    round_half_up,
    rounded_int,
    safe_div,
    total_minutes,
)
from worklens.analytics.reports import (
    ActivityEntry,
    MemberStats,
    PriorityBreakdown,
    ProgressPoint,
    ProjectReport,
    ProjectSummary,
    ReportPeriod,
    StatusBreakdown,
)
from worklens.analytics.windows import DateWindow, day_of, day_sequence
from worklens.models.entities import TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10
SECONDS_PER_DAY = 86400
UNKNOWN_TASK = "Unknown task"
UNKNOWN_USER = "Unknown user"


def build_project_report(
    fetcher: RecordFetcher,
    project_id: UUID,
    window: DateWindow,
    *,
    now: datetime,
    runner: FetchRunner | None = None,
) -> ProjectReport | None:
    """Build the report for one project, or return ``None`` when the project does not exist.

    Task counts cover every live task of the project; logged time and activity
    are limited to the window.
    """

    runner = runner or FetchRunner()
    projects = fetcher.fetch_projects([project_id])
    if not projects:
        return None
    project = projects[0]

    tasks, logs, members, activity = runner.gather(
        partial(fetcher.fetch_tasks, TaskFilter(project_id=project_id)),
        partial(
            fetcher.fetch_time_logs,
            TimeLogFilter(project_id=project_id, started_from=window.start_at, started_to=window.end_at),
        ),
        partial(fetcher.fetch_project_members, project_id),
        partial(
            fetcher.fetch_activity,
            ActivityFilter(
                project_id=project_id,
                created_from=window.start_at,
                created_to=window.end_at,
                limit=RECENT_ACTIVITY_LIMIT,
            ),
        ),
    )

    user_ids = {member.user_id for member in members}
    user_ids.update(event.user_id for event in activity if event.user_id is not None)
    users_by_id: dict[UUID, UserRecord] = {}
    if user_ids:
        users_by_id = index_by(fetcher.fetch_users(sorted(user_ids, key=str)), lambda user: user.id)

    mismatches = completion_mismatches(tasks)
    if mismatches:
        logger.warning("Project %s has %d tasks with inconsistent completion state", project_id, mismatches)

    status_counts = histogram(tasks, lambda task: task.status, TaskStatus)
    logged_minutes = total_minutes(logs)

    logger.debug(
        "Built project report project=%s window=%s..%s tasks=%d logs=%d members=%d",
        project_id,
        window.start,
        window.end,
        len(tasks),
        len(logs),
        len(members),
    )
    return ProjectReport(
        project_id=project.id,
        project_name=project.name,
        project_status=project.status.value,
        period=ReportPeriod(start=window.start, end=window.end),
        summary=_summary(project, tasks, status_counts, logged_minutes, now=now, window=window),
        task_breakdown=tuple(
            StatusBreakdown(status=status.value, count=count, percentage=percentage(count, len(tasks)))
            for status, count in status_counts.items()
        ),
        tasks_by_priority=_priority_breakdown(tasks),
        progress_over_time=_progress_over_time(tasks, window),
        member_stats=_member_stats(members, tasks, logs, users_by_id),
        recent_activity=_recent_activity(activity, users_by_id),
    )


def _summary(
    project: ProjectRecord,
    tasks: list[TaskRecord],
    status_counts: dict[TaskStatus, int],
    logged_minutes: int,
    *,
    now: datetime,
    window: DateWindow,
) -> ProjectSummary:
    completed = status_counts[TaskStatus.COMPLETED]
    estimated_hours = sum((task.estimated_hours or ZERO for task in tasks), ZERO)
    estimated_minutes = Decimal(estimated_hours) * 60

    return ProjectSummary(
        total_tasks=len(tasks),
        completed_tasks=completed,
        in_progress_tasks=status_counts[TaskStatus.IN_PROGRESS],
        blocked_tasks=status_counts[TaskStatus.BLOCKED],
        completion_percentage=percentage(completed, len(tasks)),
        total_time_logged=logged_minutes,
        estimated_hours=round_half_up(estimated_hours, 2),
        time_variance=rounded_int(safe_div((logged_minutes - estimated_minutes) * HUNDRED, estimated_minutes)),
        avg_task_completion_time=rounded_int(safe_div(logged_minutes, completed)),
        days_remaining=_days_remaining(project.end_date, now=now, window=window),
    )


def _days_remaining(end_date: date | None, *, now: datetime, window: DateWindow) -> int | None:
    if end_date is None:
        return None
    deadline = datetime.combine(end_date, time.min, tzinfo=window.tz)
    return math.ceil((deadline - now).total_seconds() / SECONDS_PER_DAY)


def _priority_breakdown(tasks: list[TaskRecord]) -> tuple[PriorityBreakdown, ...]:
    counts = histogram(tasks, lambda task: task.priority, TaskPriority)
    completed = histogram((task for task in tasks if task.is_completed), lambda task: task.priority, TaskPriority)
    return tuple(
        PriorityBreakdown(priority=priority.value, count=count, completed=completed[priority])
        for priority, count in counts.items()
    )


def _cumulative_counts(days: list[date], event_days: Iterable[date]) -> list[int]:
    """For each day, how many events happened on or before it."""

    ordered = sorted(event_days)
    index = 0
    counts: list[int] = []
    for day in days:
        while index < len(ordered) and ordered[index] <= day:
            index += 1
        counts.append(index)
    return counts


def _progress_over_time(tasks: list[TaskRecord], window: DateWindow) -> tuple[ProgressPoint, ...]:
    """Replay, for every window day, how many tasks existed and how many were done by its end."""

    tz = window.tz
    days = day_sequence(window)
    created_days = {task.id: day_of(task.created_at, tz) for task in tasks}
    # A task counts as completed no earlier than it counts as existing.
    completion_days = [
        max(created_days[task.id], day_of(task.completed_at, tz))
        for task in tasks
        if task.is_completed and task.completed_at is not None
    ]
    totals = _cumulative_counts(days, created_days.values())
    completed = _cumulative_counts(days, completion_days)
    return tuple(
        ProgressPoint(date=day, completed=done, total=total)
        for day, done, total in zip(days, completed, totals)
    )


def _member_stats(
    members: list[ProjectMemberRecord],
    tasks: list[TaskRecord],
    logs: list[TimeLogRecord],
    users_by_id: dict[UUID, UserRecord],
) -> tuple[MemberStats, ...]:
    assigned = Counter(task.assignee_id for task in tasks if task.assignee_id is not None)
    completed = Counter(task.assignee_id for task in tasks if task.assignee_id is not None and task.is_completed)
    minutes_by_user = group_sum(logs, lambda log: log.user_id, log_minutes)

    stats: list[MemberStats] = []
    for member in members:
        user = users_by_id.get(member.user_id)
        stats.append(
            MemberStats(
                user_id=member.user_id,
                user_name=user.full_name if user else UNKNOWN_USER,
                user_avatar=user.avatar_url if user else None,
                role=member.role.value,
                tasks_assigned=assigned[member.user_id],
                tasks_completed=completed[member.user_id],
                time_logged=minutes_by_user.get(member.user_id, 0),
                completion_rate=percentage(completed[member.user_id], assigned[member.user_id]),
            )
        )
    return tuple(stats)


def _recent_activity(activity: list[ActivityEvent], users_by_id: dict[UUID, UserRecord]) -> tuple[ActivityEntry, ...]:
    newest_first = sorted(activity, key=lambda event: event.created_at, reverse=True)[:RECENT_ACTIVITY_LIMIT]
    entries: list[ActivityEntry] = []
    for event in newest_first:
        user = users_by_id.get(event.user_id) if event.user_id is not None else None
        entries.append(
            ActivityEntry(
                date=event.created_at,
                action=event.action,
                task_title=str(event.changes.get("title") or UNKNOWN_TASK),
                user_name=user.full_name if user else UNKNOWN_USER,
            )
        )
    return tuple(entries)
