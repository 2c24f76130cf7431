"""Stateless facade over the four report builders."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from worklens.analytics.dashboard import build_dashboard_metrics
from worklens.analytics.fetching import FetchRunner
from worklens.analytics.individual import build_individual_report
from worklens.analytics.project import build_project_report
from worklens.analytics.records import RecordFetcher
from worklens.analytics.reports import (
    DashboardMetrics,
    DashboardScope,
    IndividualReport,
    ProjectReport,
    TeamOverviewReport,
)
from worklens.analytics.team import build_team_overview
from worklens.analytics.windows import DateWindow


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsEngine:
    """Bind a record fetcher, a fetch runner and a clock; every call is an independent build."""

    def __init__(
        self,
        fetcher: RecordFetcher,
        max_workers: int = 1,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.runner = FetchRunner(max_workers)
        self.clock = clock or utc_now

    def build_individual_report(self, user_id: UUID, window: DateWindow) -> IndividualReport | None:
        return build_individual_report(self.fetcher, user_id, window, runner=self.runner)

    def build_project_report(self, project_id: UUID, window: DateWindow) -> ProjectReport | None:
        return build_project_report(self.fetcher, project_id, window, now=self.clock(), runner=self.runner)

    def build_team_overview(self, window: DateWindow) -> TeamOverviewReport:
        return build_team_overview(self.fetcher, window, runner=self.runner)

    def build_dashboard_metrics(
        self,
        scope: DashboardScope,
        window: DateWindow,
        *,
        is_privileged: bool,
    ) -> DashboardMetrics:
        return build_dashboard_metrics(
            self.fetcher,
            scope,
            window,
            is_privileged=is_privileged,
            now=self.clock(),
            runner=self.runner,
        )
