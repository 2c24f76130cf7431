"""Report, dashboard, lookup and export service layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import sessionmaker

from worklens.analytics.engine import AnalyticsEngine, utc_now
from worklens.analytics.export import EXPORT_FORMATS, REPORT_KEYS, ExportFilePayload, export_report
from worklens.analytics.records import RecordFetcher
from worklens.analytics.reports import DashboardScope
from worklens.analytics.serialization import to_payload
from worklens.analytics.windows import DateWindow, RollingPeriod, day_of, resolve_timezone, rolling_window
from worklens.core.auth import RequestUserContext
from worklens.core.config import get_settings
from worklens.db.dependencies import get_session_factory
from worklens.repositories.analytics_repository import AnalyticsRepository

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Service exposing the analytics engine through request-level contracts."""

    def __init__(self, fetcher: RecordFetcher, clock: Callable[[], datetime] | None = None) -> None:
        self.settings = get_settings()
        self.fetcher = fetcher
        self.tz = resolve_timezone(self.settings.analytics_timezone)
        self.engine = AnalyticsEngine(
            fetcher,
            max_workers=self.settings.analytics_fetch_workers,
            clock=clock or utc_now,
        )

    # ---------- Windows ----------
    def resolve_window(
        self,
        *,
        period: RollingPeriod | None,
        start_date: date | None,
        end_date: date | None,
    ) -> DateWindow:
        """Rolling period wins; explicit dates next; otherwise the trailing default window."""

        now = self.engine.clock()
        if period is not None:
            window = rolling_window(period, now=now, tz=self.tz, start=start_date, end=end_date)
        else:
            end = end_date or day_of(now, self.tz)
            start = start_date or end - timedelta(days=self.settings.report_default_window_days)
            window = DateWindow(start=start, end=end, tz=self.tz)

        if window.end < window.start:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="start_date must be on or before end_date.",
            )
        return window

    # ---------- Reports ----------
    def individual_report(self, *, user_id: UUID, window: DateWindow) -> dict[str, object]:
        report = self.engine.build_individual_report(user_id, window)
        if report is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return to_payload(report)

    def project_report(self, *, project_id: UUID, window: DateWindow) -> dict[str, object]:
        report = self.engine.build_project_report(project_id, window)
        if report is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return to_payload(report)

    def team_overview(self, *, window: DateWindow) -> dict[str, object]:
        return to_payload(self.engine.build_team_overview(window))

    # ---------- Dashboards ----------
    def dashboard_metrics(
        self,
        *,
        context: RequestUserContext,
        window: DateWindow,
        user_id: UUID | None,
        project_id: UUID | None,
    ) -> dict[str, object]:
        scope = DashboardScope(viewer_id=context.user_id, user_id=user_id, project_id=project_id)
        metrics = self.engine.build_dashboard_metrics(scope, window, is_privileged=context.is_privileged)
        return to_payload(metrics)

    # ---------- Lookups ----------
    def user_options(self) -> list[dict[str, object]]:
        return [
            {"id": str(user.id), "full_name": user.full_name, "email": user.email, "avatar_url": user.avatar_url}
            for user in self.fetcher.fetch_users()
        ]

    def project_options(self) -> list[dict[str, object]]:
        return [
            {"id": str(project.id), "name": project.name, "status": project.status.value}
            for project in self.fetcher.fetch_projects()
        ]

    # ---------- Exports ----------
    def export_report(
        self,
        *,
        report_key: str,
        format_name: str,
        window: DateWindow,
        user_id: UUID | None,
        project_id: UUID | None,
    ) -> ExportFilePayload:
        normalized_key = report_key.strip().lower()
        normalized_format = format_name.strip().lower()
        if normalized_key not in REPORT_KEYS:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Unknown report_key for export.",
            )
        if normalized_format not in EXPORT_FORMATS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"format must be one of: {', '.join(EXPORT_FORMATS)}.",
            )

        if normalized_key == "individual":
            if user_id is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="user_id is required for individual export.",
                )
            report = self.engine.build_individual_report(user_id, window)
            if report is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        elif normalized_key == "project":
            if project_id is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="project_id is required for project export.",
                )
            report = self.engine.build_project_report(project_id, window)
            if report is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        else:
            report = self.engine.build_team_overview(window)

        exported = export_report(
            normalized_key,
            report,
            normalized_format,
            on=day_of(self.engine.clock(), self.tz),
        )
        logger.info("Exported %s report as %s (%d bytes)", normalized_key, normalized_format, len(exported.content))
        return exported


def get_analytics_service(session_factory: sessionmaker = Depends(get_session_factory)) -> AnalyticsService:
    return AnalyticsService(AnalyticsRepository(session_factory))
