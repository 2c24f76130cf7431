from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from conftest import InMemoryRecordStore, at

from worklens.analytics.individual import build_individual_report
from worklens.analytics.windows import custom_window
from worklens.models.entities import TaskPriority, TaskStatus

WINDOW = custom_window(date(2026, 3, 1), date(2026, 3, 7))
D1 = date(2026, 3, 2)
D2 = date(2026, 3, 5)


def _two_completed_tasks(store: InMemoryRecordStore):
    user = store.user("Ada Lovelace")
    project = store.project("Apollo")
    first = store.task(
        project,
        assignee=user,
        status=TaskStatus.COMPLETED,
        priority=TaskPriority.HIGH,
        created_at=at(D1, 8),
        completed_at=at(D1, 16),
    )
    second = store.task(
        project,
        assignee=user,
        status=TaskStatus.COMPLETED,
        created_at=at(D2, 8),
        completed_at=at(D2, 17),
    )
    store.log(user, first, started_at=at(D1, 9), ended_at=at(D1, 9, 30))
    store.log(user, second, started_at=at(D2, 9), duration_minutes=90, ended_at=at(D2, 10, 30))
    return user, project


def test_two_completed_tasks_in_seven_day_window(store: InMemoryRecordStore) -> None:
    user, project = _two_completed_tasks(store)

    report = build_individual_report(store, user.id, WINDOW)

    assert report is not None
    assert report.user_name == "Ada Lovelace"
    assert report.summary.total_tasks_completed == 2
    assert report.summary.total_time_logged == 120
    assert report.summary.avg_time_per_task == 60
    assert report.summary.avg_tasks_per_day == Decimal("0.3")
    assert report.summary.completion_rate == 100

    days = report.task_completion_by_day
    assert len(days) == 7
    assert [entry.date for entry in days if entry.count] == [D1, D2]
    assert all(entry.count in (0, 1) for entry in days)
    minutes = {entry.date: entry.minutes for entry in report.time_logs_by_day}
    assert minutes[D1] == 30
    assert minutes[D2] == 90
    assert sum(minutes.values()) == 120

    assert report.top_projects[0].project_id == project.id
    assert report.top_projects[0].project_name == "Apollo"
    assert report.top_projects[0].tasks_completed == 2
    assert report.top_projects[0].time_logged == 120


def test_weekly_trend_omits_idle_weeks(store: InMemoryRecordStore) -> None:
    user, _ = _two_completed_tasks(store)
    window = custom_window(date(2026, 2, 1), date(2026, 3, 7))

    report = build_individual_report(store, user.id, window)

    assert report is not None
    assert [week.week for week in report.productivity_trends] == ["2026-W10"]
    trend = report.productivity_trends[0]
    assert (trend.tasks_completed, trend.time_logged, trend.avg_time_per_task) == (2, 120, 60)
    # Day buckets are never omitted.
    assert len(report.task_completion_by_day) == 35


def test_user_without_tasks_gets_zero_filled_histograms(store: InMemoryRecordStore) -> None:
    user = store.user("Idle User")

    report = build_individual_report(store, user.id, WINDOW)

    assert report is not None
    assert {entry.status: entry.count for entry in report.tasks_by_status} == {
        "todo": 0,
        "in_progress": 0,
        "review": 0,
        "completed": 0,
        "blocked": 0,
    }
    assert [entry.priority for entry in report.tasks_by_priority] == ["low", "medium", "high", "urgent"]
    assert report.summary.completion_rate == 0
    assert report.summary.avg_time_per_task == 0
    assert report.summary.avg_tasks_per_day == Decimal("0.0")
    assert report.productivity_trends == ()
    assert report.top_projects == ()


def test_missing_user_returns_none(store: InMemoryRecordStore) -> None:
    assert build_individual_report(store, uuid.uuid4(), WINDOW) is None
    assert store.calls == ["fetch_users"]


def test_completion_rate_uses_all_time_tasks(store: InMemoryRecordStore) -> None:
    user = store.user("Grace Hopper")
    project = store.project("Mercury")
    old = at(WINDOW.start - timedelta(days=60))
    store.task(project, assignee=user, status=TaskStatus.COMPLETED, created_at=old, completed_at=old)
    store.task(project, assignee=user, created_at=old)
    store.task(project, creator=user, created_at=old)
    store.task(project, assignee=user, created_at=at(D1))

    report = build_individual_report(store, user.id, WINDOW)

    assert report is not None
    assert report.summary.completion_rate == 25
    assert report.summary.total_tasks_completed == 0
    assert sum(entry.count for entry in report.tasks_by_status) == 1


def test_time_on_foreign_task_is_attributed_to_its_project(store: InMemoryRecordStore) -> None:
    user = store.user("Helper")
    owner = store.user("Owner")
    project = store.project("Gemini")
    foreign = store.task(project, assignee=owner, created_at=at(D1))
    store.log(user, foreign, started_at=at(D2), duration_minutes=45, ended_at=at(D2, 11))

    report = build_individual_report(store, user.id, WINDOW)

    assert report is not None
    assert report.summary.total_time_logged == 45
    assert [(row.project_name, row.tasks_completed, row.time_logged) for row in report.top_projects] == [
        ("Gemini", 0, 45)
    ]


def test_top_projects_capped_at_five(store: InMemoryRecordStore) -> None:
    user = store.user("Busy")
    for index in range(7):
        project = store.project(f"P{index}")
        for _ in range(index + 1):
            store.task(
                project,
                assignee=user,
                status=TaskStatus.COMPLETED,
                created_at=at(D1),
                completed_at=at(D1, 12),
            )

    report = build_individual_report(store, user.id, WINDOW)

    assert report is not None
    assert [row.project_name for row in report.top_projects] == ["P6", "P5", "P4", "P3", "P2"]


def test_inconsistent_completion_state_is_logged(
    store: InMemoryRecordStore,
    caplog: pytest.LogCaptureFixture,
) -> None:
    user = store.user("Sloppy")
    project = store.project("Vostok")
    store.task(project, assignee=user, status=TaskStatus.COMPLETED, created_at=at(D1))

    with caplog.at_level(logging.WARNING, logger="worklens.analytics.individual"):
        report = build_individual_report(store, user.id, WINDOW)

    assert report is not None
    assert report.summary.total_tasks_completed == 1
    assert "inconsistent completion state" in caplog.text


def test_same_inputs_give_identical_reports(store: InMemoryRecordStore) -> None:
    user, _ = _two_completed_tasks(store)

    assert build_individual_report(store, user.id, WINDOW) == build_individual_report(store, user.id, WINDOW)
