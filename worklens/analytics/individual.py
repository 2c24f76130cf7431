"""Per-user productivity report."""

from __future__ import annotations

import logging
from functools import partial
from uuid import UUID

from worklens.analytics.fetching import FetchRunner
from worklens.analytics.records import RecordFetcher, TaskFilter, TaskRecord, TimeLogFilter, TimeLogRecord
from worklens.analytics.reducers import (
    bucket_by_day,
    bucket_by_week,
    completion_mismatches,
    histogram,
    index_by,
    log_minutes,
    percentage,
    rank,
    round_half_up,
    rounded_int,
    safe_div,
    total_minutes,
    zero_buckets,
)
from worklens.analytics.reports import (
    DayCount,
    DayMinutes,
    IndividualReport,
    IndividualSummary,
    PriorityCount,
    ProjectContribution,
    ReportPeriod,
    StatusCount,
    WeeklyProductivity,
)
from worklens.analytics.windows import DateWindow, day_sequence
from worklens.models.entities import TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

TOP_PROJECTS_LIMIT = 5
UNKNOWN_PROJECT = "Unknown"


def build_individual_report(
    fetcher: RecordFetcher,
    user_id: UUID,
    window: DateWindow,
    *,
    runner: FetchRunner | None = None,
) -> IndividualReport | None:
    """Build the report for one user, or return ``None`` when the user does not exist."""

    runner = runner or FetchRunner()
    users = fetcher.fetch_users([user_id])
    if not users:
        return None
    user = users[0]

    window_tasks, logs, all_tasks, projects = runner.gather(
        partial(
            fetcher.fetch_tasks,
            TaskFilter(involving_user_id=user_id, created_from=window.start_at, created_to=window.end_at),
        ),
        partial(
            fetcher.fetch_time_logs,
            TimeLogFilter(user_id=user_id, started_from=window.start_at, started_to=window.end_at),
        ),
        partial(fetcher.fetch_tasks, TaskFilter(involving_user_id=user_id)),
        fetcher.fetch_projects,
    )

    tasks_by_id = index_by([*all_tasks, *window_tasks], lambda task: task.id)
    missing_task_ids = frozenset(log.task_id for log in logs) - tasks_by_id.keys()
    if missing_task_ids:
        # Time may be logged against tasks the user neither owns nor created.
        tasks_by_id.update(index_by(fetcher.fetch_tasks(TaskFilter(task_ids=missing_task_ids)), lambda task: task.id))
    project_names = {project.id: project.name for project in projects}

    mismatches = completion_mismatches(window_tasks)
    if mismatches:
        logger.warning("User %s has %d tasks with inconsistent completion state", user_id, mismatches)

    completed = [task for task in window_tasks if task.is_completed]
    logged_minutes = total_minutes(logs)
    tz = window.tz
    days = day_sequence(window)

    completions_by_day = bucket_by_day(zero_buckets(days), completed, lambda task: task.completed_at, tz)
    minutes_by_day = bucket_by_day(zero_buckets(days), logs, lambda log: log.started_at, tz, log_minutes)

    summary = IndividualSummary(
        total_tasks_completed=len(completed),
        total_time_logged=logged_minutes,
        avg_tasks_per_day=round_half_up(safe_div(len(completed), max(1, window.span_days)), 1),
        avg_time_per_task=rounded_int(safe_div(logged_minutes, len(completed))),
        completion_rate=percentage(sum(1 for task in all_tasks if task.is_completed), len(all_tasks)),
    )

    logger.debug(
        "Built individual report user=%s window=%s..%s tasks=%d logs=%d",
        user_id,
        window.start,
        window.end,
        len(window_tasks),
        len(logs),
    )
    return IndividualReport(
        user_id=user.id,
        user_name=user.full_name,
        user_email=user.email,
        user_avatar=user.avatar_url,
        period=ReportPeriod(start=window.start, end=window.end),
        summary=summary,
        tasks_by_status=tuple(
            StatusCount(status=status.value, count=count)
            for status, count in histogram(window_tasks, lambda task: task.status, TaskStatus).items()
        ),
        tasks_by_priority=tuple(
            PriorityCount(priority=priority.value, count=count)
            for priority, count in histogram(window_tasks, lambda task: task.priority, TaskPriority).items()
        ),
        task_completion_by_day=tuple(DayCount(date=day, count=count) for day, count in completions_by_day.items()),
        time_logs_by_day=tuple(DayMinutes(date=day, minutes=minutes) for day, minutes in minutes_by_day.items()),
        productivity_trends=_weekly_trend(completed, logs, window),
        top_projects=_top_projects(completed, logs, tasks_by_id, project_names),
    )


def _weekly_trend(
    completed: list[TaskRecord],
    logs: list[TimeLogRecord],
    window: DateWindow,
) -> tuple[WeeklyProductivity, ...]:
    tasks_per_week = bucket_by_week({}, completed, lambda task: task.completed_at, window.tz)
    minutes_per_week = bucket_by_week({}, logs, lambda log: log.started_at, window.tz, log_minutes)

    trend: list[WeeklyProductivity] = []
    for week in sorted(tasks_per_week.keys() | minutes_per_week.keys()):
        tasks = tasks_per_week.get(week, 0)
        minutes = minutes_per_week.get(week, 0)
        if not tasks and not minutes:
            continue
        trend.append(
            WeeklyProductivity(
                week=week,
                tasks_completed=tasks,
                time_logged=minutes,
                avg_time_per_task=rounded_int(safe_div(minutes, tasks)),
            )
        )
    return tuple(trend)


def _top_projects(
    completed: list[TaskRecord],
    logs: list[TimeLogRecord],
    tasks_by_id: dict[UUID, TaskRecord],
    project_names: dict[UUID, str],
) -> tuple[ProjectContribution, ...]:
    stats: dict[UUID, list[int]] = {}
    for task in completed:
        stats.setdefault(task.project_id, [0, 0])[0] += 1
    for log in logs:
        task = tasks_by_id.get(log.task_id)
        if task is not None:
            stats.setdefault(task.project_id, [0, 0])[1] += log_minutes(log)

    contributions = [
        ProjectContribution(
            project_id=project_id,
            project_name=project_names.get(project_id, UNKNOWN_PROJECT),
            tasks_completed=tasks,
            time_logged=minutes,
        )
        for project_id, (tasks, minutes) in stats.items()
        if tasks or minutes
    ]
    return tuple(rank(contributions, lambda row: row.tasks_completed, limit=TOP_PROJECTS_LIMIT))
