from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from conftest import auth_headers
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from worklens.models.entities import (
    ActivityLog,
    Project,
    ProjectMember,
    ProjectRole,
    ProjectStatus,
    Role,
    Task,
    TaskStatus,
    TimeLog,
    User,
)

RANGE = {"start_date": "2026-03-01", "end_date": "2026-03-07"}


def _utc(day: date, hour: int = 10, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def _user(db: Session, name: str, role: Role | None) -> User:
    row = User(
        email=f"{name.lower()}@test.local",
        full_name=name,
        role_id=role.id if role else None,
        created_at=_utc(date(2026, 1, 1)),
    )
    db.add(row)
    db.flush()
    return row


@pytest.fixture()
def seeded(db_session: Session) -> dict[str, object]:
    db = db_session
    admin_role = Role(name="admin", description="Administrator")
    member_role = Role(name="member", description="Member")
    db.add_all([admin_role, member_role])
    db.flush()

    admin = _user(db, "Admin", admin_role)
    ada = _user(db, "Ada", member_role)
    bob = _user(db, "Bob", member_role)
    nobody = _user(db, "Nobody", None)
    gone = _user(db, "Gone", member_role)
    gone.deleted_at = _utc(date(2026, 2, 1))

    apollo = Project(name="Apollo", status=ProjectStatus.ACTIVE, owner_id=admin.id, end_date=date(2099, 1, 1))
    zeus = Project(name="Zeus", status=ProjectStatus.ON_HOLD, owner_id=bob.id)
    archived = Project(
        name="Archived",
        status=ProjectStatus.ARCHIVED,
        owner_id=admin.id,
        deleted_at=_utc(date(2026, 2, 1)),
    )
    db.add_all([apollo, zeus, archived])
    db.flush()
    db.add_all(
        [
            ProjectMember(project_id=apollo.id, user_id=ada.id, role=ProjectRole.MEMBER),
            ProjectMember(project_id=apollo.id, user_id=admin.id, role=ProjectRole.OWNER),
        ]
    )

    first = Task(
        title="Design review",
        status=TaskStatus.COMPLETED,
        project_id=apollo.id,
        assignee_id=ada.id,
        created_by=admin.id,
        estimated_hours=Decimal("2.00"),
        created_at=_utc(date(2026, 3, 2), 8),
        completed_at=_utc(date(2026, 3, 2), 16),
    )
    second = Task(
        title="Launch checklist",
        status=TaskStatus.COMPLETED,
        project_id=apollo.id,
        assignee_id=ada.id,
        created_by=ada.id,
        created_at=_utc(date(2026, 3, 5), 8),
        completed_at=_utc(date(2026, 3, 5), 17),
    )
    blocked = Task(
        title="Telemetry",
        status=TaskStatus.BLOCKED,
        project_id=zeus.id,
        assignee_id=bob.id,
        created_by=bob.id,
        created_at=_utc(date(2026, 3, 3), 8),
    )
    removed = Task(
        title="Removed",
        status=TaskStatus.TODO,
        project_id=apollo.id,
        assignee_id=ada.id,
        created_by=ada.id,
        created_at=_utc(date(2026, 3, 3), 8),
        deleted_at=_utc(date(2026, 3, 4)),
    )
    db.add_all([first, second, blocked, removed])
    db.flush()

    db.add_all(
        [
            TimeLog(
                user_id=ada.id,
                task_id=first.id,
                started_at=_utc(date(2026, 3, 2), 9),
                ended_at=_utc(date(2026, 3, 2), 9, 30),
            ),
            TimeLog(
                user_id=ada.id,
                task_id=second.id,
                started_at=_utc(date(2026, 3, 5), 9),
                ended_at=_utc(date(2026, 3, 5), 10, 30),
                duration_minutes=90,
            ),
            TimeLog(user_id=bob.id, task_id=blocked.id, started_at=_utc(date(2026, 3, 3), 9)),
            ActivityLog(
                entity_type="task",
                entity_id=first.id,
                project_id=apollo.id,
                action="completed",
                changes={"title": "Design review"},
                user_id=ada.id,
                created_at=_utc(date(2026, 3, 2), 16),
            ),
        ]
    )
    db.commit()
    return {
        "admin": admin,
        "ada": ada,
        "bob": bob,
        "nobody": nobody,
        "gone": gone,
        "apollo": apollo,
        "zeus": zeus,
        "archived": archived,
        "member_role": member_role,
    }


def test_me_returns_role_and_permissions(client: TestClient, seeded: dict) -> None:
    response = client.get("/api/v1/me", headers=auth_headers(seeded["admin"].id))

    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "admin"
    assert body["permissions"] == ["admin.access", "reports.read"]
    assert body["is_privileged"] is True


def test_missing_or_unknown_identity_is_unauthorized(client: TestClient, seeded: dict) -> None:
    assert client.get("/api/v1/me").status_code == 401
    assert client.get("/api/v1/me", headers={"X-USER-ID": "not-a-uuid"}).status_code == 401
    assert client.get("/api/v1/me", headers=auth_headers(uuid.uuid4())).status_code == 401
    assert client.get("/api/v1/me", headers=auth_headers(seeded["gone"].id)).status_code == 401


def test_user_without_role_cannot_read_reports(client: TestClient, seeded: dict) -> None:
    response = client.get("/api/v1/reports/team", headers=auth_headers(seeded["nobody"].id), params=RANGE)

    assert response.status_code == 403


def test_individual_report_endpoint(client: TestClient, seeded: dict) -> None:
    response = client.get(
        f"/api/v1/reports/individual/{seeded['ada'].id}",
        headers=auth_headers(seeded["bob"].id),
        params=RANGE,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user_name"] == "Ada"
    assert body["period"] == {"start": "2026-03-01", "end": "2026-03-07"}
    assert body["summary"] == {
        "total_tasks_completed": 2,
        "total_time_logged": 120,
        "avg_tasks_per_day": "0.3",
        "avg_time_per_task": 60,
        "completion_rate": 100,
    }
    assert len(body["task_completion_by_day"]) == 7
    assert body["top_projects"][0]["project_name"] == "Apollo"


def test_individual_report_for_unknown_user_is_not_found(client: TestClient, seeded: dict) -> None:
    response = client.get(
        f"/api/v1/reports/individual/{uuid.uuid4()}",
        headers=auth_headers(seeded["ada"].id),
        params=RANGE,
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found."


def test_project_report_endpoint(client: TestClient, seeded: dict) -> None:
    response = client.get(
        f"/api/v1/reports/projects/{seeded['apollo'].id}",
        headers=auth_headers(seeded["ada"].id),
        params=RANGE,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["project_status"] == "active"
    assert body["summary"]["total_tasks"] == 2
    assert body["summary"]["completion_percentage"] == 100
    assert body["summary"]["total_time_logged"] == 120
    assert body["summary"]["estimated_hours"] == "2.00"
    assert body["summary"]["time_variance"] == 0
    assert body["summary"]["days_remaining"] > 0
    assert {row["user_name"] for row in body["member_stats"]} == {"Ada", "Admin"}
    assert body["recent_activity"] == [
        {
            "date": "2026-03-02T16:00:00+00:00",
            "action": "completed",
            "task_title": "Design review",
            "user_name": "Ada",
        }
    ]


def test_deleted_project_is_not_found(client: TestClient, seeded: dict) -> None:
    response = client.get(
        f"/api/v1/reports/projects/{seeded['archived'].id}",
        headers=auth_headers(seeded["admin"].id),
        params=RANGE,
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Project not found."


def test_team_report_endpoint(client: TestClient, seeded: dict) -> None:
    response = client.get("/api/v1/reports/team", headers=auth_headers(seeded["admin"].id), params=RANGE)

    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["total_projects"] == 2
    assert body["summary"]["total_tasks"] == 3
    assert body["summary"]["avg_completion_rate"] == 50
    assert [row["project_name"] for row in body["projects_overview"]] == ["Apollo", "Zeus"]
    assert body["top_performers"][0]["user_name"] == "Ada"


def test_invalid_window_parameters_are_rejected(client: TestClient, seeded: dict) -> None:
    headers = auth_headers(seeded["admin"].id)

    inverted = client.get(
        "/api/v1/reports/team",
        headers=headers,
        params={"start_date": "2026-03-07", "end_date": "2026-03-01"},
    )
    bad_period = client.get("/api/v1/reports/team", headers=headers, params={"period": "fortnight"})

    assert inverted.status_code == 422
    assert bad_period.status_code == 422


def test_default_window_is_trailing_thirty_days(client: TestClient, seeded: dict) -> None:
    response = client.get("/api/v1/reports/team", headers=auth_headers(seeded["admin"].id))

    assert response.status_code == 200
    period = response.json()["period"]
    start, end = date.fromisoformat(period["start"]), date.fromisoformat(period["end"])
    assert (end - start).days == 30


def test_lookup_options_skip_deleted_rows(client: TestClient, seeded: dict) -> None:
    headers = auth_headers(seeded["ada"].id)

    users = client.get("/api/v1/reports/options/users", headers=headers).json()
    projects = client.get("/api/v1/reports/options/projects", headers=headers).json()

    assert [row["full_name"] for row in users] == ["Ada", "Admin", "Bob", "Nobody"]
    assert [(row["name"], row["status"]) for row in projects] == [("Apollo", "active"), ("Zeus", "on_hold")]


def test_dashboard_scopes_non_admin_to_own_data(client: TestClient, seeded: dict) -> None:
    params = {"period": "custom", "user_id": str(seeded["bob"].id), **RANGE}

    as_member = client.get("/api/v1/dashboards/metrics", headers=auth_headers(seeded["ada"].id), params=params)
    as_admin = client.get("/api/v1/dashboards/metrics", headers=auth_headers(seeded["admin"].id), params=params)

    assert as_member.status_code == 200
    member_body = as_member.json()
    assert member_body["scope"]["user_id"] == str(seeded["ada"].id)
    assert member_body["task_stats"]["total"] == 2
    assert member_body["project_stats"]["total"] == 1
    assert member_body["team_stats"] == []
    assert len(member_body["productivity_trends"]) == 7
    assert sum(row["time_logged"] for row in member_body["productivity_trends"]) == 120

    admin_body = as_admin.json()
    assert admin_body["scope"]["user_id"] == str(seeded["bob"].id)
    assert admin_body["task_stats"]["total"] == 1
    assert admin_body["project_stats"]["total"] == 2
    assert [row["name"] for row in admin_body["team_stats"]] == ["Ada", "Bob"]


def test_dashboard_time_stats_cover_recent_closed_logs(
    client: TestClient,
    seeded: dict,
    db_session: Session,
) -> None:
    now = datetime.now(timezone.utc)
    cleo = _user(db_session, "Cleo", seeded["member_role"])
    apollo_task = Task(
        title="Today",
        status=TaskStatus.IN_PROGRESS,
        project_id=seeded["apollo"].id,
        assignee_id=cleo.id,
        created_by=cleo.id,
        created_at=now - timedelta(days=2),
    )
    db_session.add(apollo_task)
    db_session.flush()
    db_session.add_all(
        [
            TimeLog(
                user_id=cleo.id,
                task_id=apollo_task.id,
                started_at=now - timedelta(days=3),
                ended_at=now - timedelta(days=3) + timedelta(minutes=40),
            ),
            TimeLog(user_id=cleo.id, task_id=apollo_task.id, started_at=now - timedelta(minutes=5)),
        ]
    )
    db_session.commit()

    response = client.get("/api/v1/dashboards/metrics", headers=auth_headers(cleo.id))

    assert response.status_code == 200
    time_stats = response.json()["time_stats"]
    assert time_stats["week"] == 40
    assert time_stats["month"] == 40
    assert len(time_stats["by_day"]) == 31


def test_csv_export_download(client: TestClient, seeded: dict) -> None:
    response = client.get(
        "/api/v1/exports/project",
        headers=auth_headers(seeded["admin"].id),
        params={"format": "csv", "project_id": str(seeded["apollo"].id), **RANGE},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="project-apollo-' in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "Team Member,Tasks Assigned,Tasks Completed,Completion Rate,Time Logged"
    assert "Ada,2,2,100%,2h" in lines


def test_export_validation(client: TestClient, seeded: dict) -> None:
    headers = auth_headers(seeded["admin"].id)

    unknown = client.get("/api/v1/exports/payroll", headers=headers, params=RANGE)
    bad_format = client.get("/api/v1/exports/team", headers=headers, params={"format": "pdf", **RANGE})
    missing_user = client.get("/api/v1/exports/individual", headers=headers, params=RANGE)

    assert unknown.status_code == 404
    assert bad_format.status_code == 422
    assert missing_user.status_code == 422
