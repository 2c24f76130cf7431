"""Export endpoint for report datasets."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from worklens.analytics.windows import RollingPeriod
from worklens.core.auth import Permission, RequestUserContext, require_permissions
from worklens.services.analytics_service import AnalyticsService, get_analytics_service

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/{report_key}")
def export_report(
    report_key: str,
    format: str = Query(default="csv"),
    user_id: UUID | None = None,
    project_id: UUID | None = None,
    period: RollingPeriod | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(require_permissions(Permission.REPORTS_READ)),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Response:
    window = service.resolve_window(period=period, start_date=start_date, end_date=end_date)
    exported = service.export_report(
        report_key=report_key,
        format_name=format,
        window=window,
        user_id=user_id,
        project_id=project_id,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
