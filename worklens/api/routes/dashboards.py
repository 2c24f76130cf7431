"""Dashboard endpoint for role-scoped current-state metrics."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends

from worklens.analytics.windows import RollingPeriod
from worklens.core.auth import Permission, RequestUserContext, require_permissions
from worklens.services.analytics_service import AnalyticsService, get_analytics_service

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


@router.get("/metrics")
def get_dashboard_metrics(
    period: RollingPeriod = RollingPeriod.MONTH,
    start_date: date | None = None,
    end_date: date | None = None,
    user_id: UUID | None = None,
    project_id: UUID | None = None,
    context: RequestUserContext = Depends(require_permissions(Permission.REPORTS_READ)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    """Non-admin callers always see their own data regardless of ``user_id``."""

    window = service.resolve_window(period=period, start_date=start_date, end_date=end_date)
    return service.dashboard_metrics(context=context, window=window, user_id=user_id, project_id=project_id)
