"""Immutable report values produced by the builders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ReportPeriod:
    start: date
    end: date


@dataclass(frozen=True, slots=True)
class StatusCount:
    status: str
    count: int


@dataclass(frozen=True, slots=True)
class PriorityCount:
    priority: str
    count: int


@dataclass(frozen=True, slots=True)
class DayCount:
    date: date
    count: int


@dataclass(frozen=True, slots=True)
class DayMinutes:
    date: date
    minutes: int


# ---------- Individual ----------
@dataclass(frozen=True, slots=True)
class WeeklyProductivity:
    week: str
    tasks_completed: int
    time_logged: int
    avg_time_per_task: int


@dataclass(frozen=True, slots=True)
class ProjectContribution:
    project_id: UUID
    project_name: str
    tasks_completed: int
    time_logged: int


@dataclass(frozen=True, slots=True)
class IndividualSummary:
    total_tasks_completed: int
    total_time_logged: int
    avg_tasks_per_day: Decimal
    avg_time_per_task: int
    completion_rate: int


@dataclass(frozen=True, slots=True)
class IndividualReport:
    user_id: UUID
    user_name: str
    user_email: str
    user_avatar: str | None
    period: ReportPeriod
    summary: IndividualSummary
    tasks_by_status: tuple[StatusCount, ...]
    tasks_by_priority: tuple[PriorityCount, ...]
    task_completion_by_day: tuple[DayCount, ...]
    time_logs_by_day: tuple[DayMinutes, ...]
    productivity_trends: tuple[WeeklyProductivity, ...]
    top_projects: tuple[ProjectContribution, ...]


# ---------- Project ----------
@dataclass(frozen=True, slots=True)
class ProjectSummary:
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    blocked_tasks: int
    completion_percentage: int
    total_time_logged: int
    estimated_hours: Decimal
    time_variance: int
    avg_task_completion_time: int
    days_remaining: int | None


@dataclass(frozen=True, slots=True)
class StatusBreakdown:
    status: str
    count: int
    percentage: int


@dataclass(frozen=True, slots=True)
class PriorityBreakdown:
    priority: str
    count: int
    completed: int


@dataclass(frozen=True, slots=True)
class ProgressPoint:
    date: date
    completed: int
    total: int


@dataclass(frozen=True, slots=True)
class MemberStats:
    user_id: UUID
    user_name: str
    user_avatar: str | None
    role: str
    tasks_assigned: int
    tasks_completed: int
    time_logged: int
    completion_rate: int


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    date: datetime
    action: str
    task_title: str
    user_name: str


@dataclass(frozen=True, slots=True)
class ProjectReport:
    project_id: UUID
    project_name: str
    project_status: str
    period: ReportPeriod
    summary: ProjectSummary
    task_breakdown: tuple[StatusBreakdown, ...]
    tasks_by_priority: tuple[PriorityBreakdown, ...]
    progress_over_time: tuple[ProgressPoint, ...]
    member_stats: tuple[MemberStats, ...]
    recent_activity: tuple[ActivityEntry, ...]


# ---------- Team ----------
@dataclass(frozen=True, slots=True)
class TeamSummary:
    total_projects: int
    active_projects: int
    total_tasks: int
    completed_tasks: int
    total_time_logged: int
    avg_completion_rate: int


@dataclass(frozen=True, slots=True)
class ProjectOverview:
    project_id: UUID
    project_name: str
    status: str
    completion_percentage: int
    tasks_completed: int
    total_tasks: int
    time_logged: int


@dataclass(frozen=True, slots=True)
class PerformerStats:
    user_id: UUID
    user_name: str
    user_avatar: str | None
    tasks_completed: int
    time_logged: int
    completion_rate: int


@dataclass(frozen=True, slots=True)
class TeamOverviewReport:
    period: ReportPeriod
    summary: TeamSummary
    projects_overview: tuple[ProjectOverview, ...]
    top_performers: tuple[PerformerStats, ...]
    task_distribution: tuple[StatusCount, ...]


# ---------- Dashboard ----------
@dataclass(frozen=True, slots=True)
class DashboardScope:
    """Requested data scope; ``None`` fields mean "not narrowed"."""

    viewer_id: UUID
    user_id: UUID | None = None
    project_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class StatusTotals:
    counts: tuple[StatusCount, ...]
    total: int


@dataclass(frozen=True, slots=True)
class TimeStats:
    today: int
    week: int
    month: int
    by_day: tuple[DayMinutes, ...]


@dataclass(frozen=True, slots=True)
class DailyProductivity:
    date: date
    tasks_completed: int
    tasks_created: int
    time_logged: int


@dataclass(frozen=True, slots=True)
class TeamMemberStats:
    user_id: UUID
    name: str
    email: str
    avatar_url: str | None
    tasks_completed: int
    tasks_assigned: int
    time_logged: int


@dataclass(frozen=True, slots=True)
class DashboardMetrics:
    scope: DashboardScope
    period: ReportPeriod
    task_stats: StatusTotals
    project_stats: StatusTotals
    time_stats: TimeStats
    productivity_trends: tuple[DailyProductivity, ...]
    team_stats: tuple[TeamMemberStats, ...]
