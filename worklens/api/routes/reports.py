"""Reporting endpoints for individual, project and team analytics."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends

from worklens.analytics.windows import RollingPeriod
from worklens.core.auth import Permission, RequestUserContext, require_permissions
from worklens.services.analytics_service import AnalyticsService, get_analytics_service

router = APIRouter(prefix="/reports", tags=["reports"])

can_read_reports = require_permissions(Permission.REPORTS_READ)


@router.get("/individual/{user_id}")
def report_individual(
    user_id: UUID,
    period: RollingPeriod | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(can_read_reports),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    window = service.resolve_window(period=period, start_date=start_date, end_date=end_date)
    return service.individual_report(user_id=user_id, window=window)


@router.get("/projects/{project_id}")
def report_project(
    project_id: UUID,
    period: RollingPeriod | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(can_read_reports),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    window = service.resolve_window(period=period, start_date=start_date, end_date=end_date)
    return service.project_report(project_id=project_id, window=window)


@router.get("/team")
def report_team(
    period: RollingPeriod | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(can_read_reports),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    window = service.resolve_window(period=period, start_date=start_date, end_date=end_date)
    return service.team_overview(window=window)


@router.get("/options/users")
def report_user_options(
    context: RequestUserContext = Depends(can_read_reports),
    service: AnalyticsService = Depends(get_analytics_service),
) -> list[dict[str, object]]:
    """Users selectable in the report picker, ordered by name."""

    return service.user_options()


@router.get("/options/projects")
def report_project_options(
    context: RequestUserContext = Depends(can_read_reports),
    service: AnalyticsService = Depends(get_analytics_service),
) -> list[dict[str, object]]:
    """Projects selectable in the report picker, ordered by name."""

    return service.project_options()
