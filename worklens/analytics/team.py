"""Organization-wide rollup across every project and user."""

from __future__ import annotations

import logging
from functools import partial
from uuid import UUID

from worklens.analytics.fetching import FetchRunner
from worklens.analytics.records import RecordFetcher, TaskFilter, TimeLogFilter
from worklens.analytics.reducers import histogram, log_minutes, percentage, rank, rounded_int, safe_div
from worklens.analytics.reports import (
    PerformerStats,
    ProjectOverview,
    ReportPeriod,
    StatusCount,
    TeamOverviewReport,
    TeamSummary,
)
from worklens.analytics.windows import DateWindow
from worklens.models.entities import ProjectStatus, TaskStatus

logger = logging.getLogger(__name__)

TOP_PERFORMERS_LIMIT = 10


class _Tally:
    """Mutable per-entity accumulator used during the single rollup pass."""

    __slots__ = ("tasks", "completed", "minutes")

    def __init__(self) -> None:
        self.tasks = 0
        self.completed = 0
        self.minutes = 0


def build_team_overview(
    fetcher: RecordFetcher,
    window: DateWindow,
    *,
    runner: FetchRunner | None = None,
) -> TeamOverviewReport:
    """Roll up all live projects, tasks and users; only logged time is window-scoped."""

    runner = runner or FetchRunner()
    projects, tasks, logs, users = runner.gather(
        fetcher.fetch_projects,
        partial(fetcher.fetch_tasks, TaskFilter()),
        partial(fetcher.fetch_time_logs, TimeLogFilter(started_from=window.start_at, started_to=window.end_at)),
        fetcher.fetch_users,
    )

    by_project = {project.id: _Tally() for project in projects}
    by_user = {user.id: _Tally() for user in users}
    task_project: dict[UUID, UUID] = {}

    for task in tasks:
        task_project[task.id] = task.project_id
        project_tally = by_project.get(task.project_id)
        if project_tally is not None:
            project_tally.tasks += 1
            project_tally.completed += task.is_completed
        user_tally = by_user.get(task.assignee_id) if task.assignee_id is not None else None
        if user_tally is not None:
            user_tally.tasks += 1
            user_tally.completed += task.is_completed

    logged_minutes = 0
    for log in logs:
        minutes = log_minutes(log)
        logged_minutes += minutes
        project_tally = by_project.get(task_project.get(log.task_id))
        if project_tally is not None:
            project_tally.minutes += minutes
        user_tally = by_user.get(log.user_id)
        if user_tally is not None:
            user_tally.minutes += minutes

    overview = [
        ProjectOverview(
            project_id=project.id,
            project_name=project.name,
            status=project.status.value,
            completion_percentage=percentage(by_project[project.id].completed, by_project[project.id].tasks),
            tasks_completed=by_project[project.id].completed,
            total_tasks=by_project[project.id].tasks,
            time_logged=by_project[project.id].minutes,
        )
        for project in projects
    ]
    performers = [
        PerformerStats(
            user_id=user.id,
            user_name=user.full_name,
            user_avatar=user.avatar_url,
            tasks_completed=by_user[user.id].completed,
            time_logged=by_user[user.id].minutes,
            completion_rate=percentage(by_user[user.id].completed, by_user[user.id].tasks),
        )
        for user in users
    ]

    # Each project weighs the same regardless of its task count.
    avg_completion = rounded_int(safe_div(sum(row.completion_percentage for row in overview), len(overview)))
    distribution = histogram(tasks, lambda task: task.status, TaskStatus)

    logger.debug(
        "Built team overview window=%s..%s projects=%d tasks=%d logs=%d users=%d",
        window.start,
        window.end,
        len(projects),
        len(tasks),
        len(logs),
        len(users),
    )
    return TeamOverviewReport(
        period=ReportPeriod(start=window.start, end=window.end),
        summary=TeamSummary(
            total_projects=len(projects),
            active_projects=sum(1 for project in projects if project.status is ProjectStatus.ACTIVE),
            total_tasks=len(tasks),
            completed_tasks=distribution[TaskStatus.COMPLETED],
            total_time_logged=logged_minutes,
            avg_completion_rate=avg_completion,
        ),
        projects_overview=tuple(rank(overview, lambda row: row.completion_percentage)),
        top_performers=tuple(rank(performers, lambda row: row.tasks_completed, limit=TOP_PERFORMERS_LIMIT)),
        task_distribution=tuple(StatusCount(status=status.value, count=count) for status, count in distribution.items()),
    )
