"""CSV, XLSX and printable HTML renditions of the three reports."""

from __future__ import annotations

import csv
import html
import io
import re
from dataclasses import dataclass
from datetime import date
from io import BytesIO

from openpyxl import Workbook

from worklens.analytics.reports import IndividualReport, ProjectReport, TeamOverviewReport

Report = IndividualReport | ProjectReport | TeamOverviewReport
Row = dict[str, object]

REPORT_KEYS = ("individual", "project", "team")
EXPORT_FORMATS = ("csv", "xlsx", "html")

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
HTML_MEDIA_TYPE = "text/html; charset=utf-8"

PRINT_STYLES = """
body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; padding: 40px; color: #111; }
h1 { font-size: 24px; margin-bottom: 8px; }
h2 { font-size: 18px; margin-top: 32px; margin-bottom: 16px; color: #374151; }
.subtitle { color: #6b7280; margin-bottom: 32px; }
table { width: 100%; border-collapse: collapse; margin: 16px 0; }
th, td { padding: 12px; text-align: left; border-bottom: 1px solid #e5e7eb; }
th { background: #f9fafb; font-weight: 600; }
.stat-grid { display: grid; grid-template-columns: repeat(4, 1fr); gap: 16px; margin: 24px 0; }
.stat-card { padding: 16px; background: #f9fafb; border-radius: 8px; }
.stat-label { font-size: 12px; color: #6b7280; }
.stat-value { font-size: 24px; font-weight: 700; margin-top: 4px; }
@media print { body { padding: 20px; } }
"""


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def format_minutes(minutes: int) -> str:
    """Render a minute count as ``45m``, ``2h`` or ``2h 5m``."""

    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


# ---------- Rows ----------
def individual_rows(report: IndividualReport) -> list[Row]:
    minutes_by_day = {entry.date: entry.minutes for entry in report.time_logs_by_day}
    return [
        {
            "Date": entry.date.isoformat(),
            "Tasks Completed": entry.count,
            "Time Logged (mins)": minutes_by_day.get(entry.date, 0),
        }
        for entry in report.task_completion_by_day
    ]


def project_rows(report: ProjectReport) -> list[Row]:
    return [
        {
            "Team Member": member.user_name,
            "Tasks Assigned": member.tasks_assigned,
            "Tasks Completed": member.tasks_completed,
            "Completion Rate": f"{member.completion_rate}%",
            "Time Logged": format_minutes(member.time_logged),
        }
        for member in report.member_stats
    ]


def team_rows(report: TeamOverviewReport) -> list[Row]:
    return [
        {
            "Project": project.project_name,
            "Status": project.status,
            "Tasks Completed": project.tasks_completed,
            "Total Tasks": project.total_tasks,
            "Completion %": f"{project.completion_percentage}%",
            "Time Logged": format_minutes(project.time_logged),
        }
        for project in report.projects_overview
    ]


def flatten_rows(report: Report) -> list[Row]:
    if isinstance(report, IndividualReport):
        return individual_rows(report)
    if isinstance(report, ProjectReport):
        return project_rows(report)
    return team_rows(report)


def render_csv(rows: list[Row]) -> bytes:
    """Header from the first row's keys; an empty row list yields an empty document."""

    if not rows:
        return b""
    sio = io.StringIO()
    writer = csv.DictWriter(sio, fieldnames=list(rows[0].keys()), quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return sio.getvalue().encode("utf-8")


def render_xlsx(rows: list[Row]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "report"

    if rows:
        fieldnames = list(rows[0].keys())
        sheet.append(fieldnames)
        for row in rows:
            sheet.append([row.get(column, "") for column in fieldnames])

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


# ---------- Printable HTML ----------
def render_printable_document(title: str, content_html: str) -> str:
    """Wrap an already-built markup block in a print-styled page."""

    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{html.escape(title)}</title>\n"
        f"<style>{PRINT_STYLES}</style>\n"
        "</head>\n<body>\n"
        f"{content_html}\n"
        "</body>\n</html>\n"
    )


def _stat_grid(cards: list[tuple[str, object]]) -> str:
    items = "".join(
        '<div class="stat-card">'
        f'<div class="stat-label">{html.escape(label)}</div>'
        f'<div class="stat-value">{html.escape(str(value))}</div>'
        "</div>"
        for label, value in cards
    )
    return f'<div class="stat-grid">{items}</div>'


def _table(heading: str, columns: list[str], rows: list[list[object]]) -> str:
    head = "".join(f"<th>{html.escape(column)}</th>" for column in columns)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(str(cell))}</td>" for cell in row) + "</tr>"
        for row in rows
    )
    return f"<h2>{html.escape(heading)}</h2><table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def _header(title: str, report: Report) -> str:
    period = f"Period: {report.period.start.isoformat()} - {report.period.end.isoformat()}"
    return f"<h1>{html.escape(title)}</h1><p class=\"subtitle\">{html.escape(period)}</p>"


def report_title(report: Report) -> str:
    if isinstance(report, IndividualReport):
        return f"Individual Report - {report.user_name}"
    if isinstance(report, ProjectReport):
        return f"Project Report - {report.project_name}"
    return "Team Overview Report"


def printable_content(report: Report) -> str:
    """Summary cards and tables for one report, all text escaped."""

    if isinstance(report, IndividualReport):
        summary = report.summary
        return "\n".join(
            [
                _header(f"{report.user_name} - Productivity Report", report),
                _stat_grid(
                    [
                        ("Tasks Completed", summary.total_tasks_completed),
                        ("Time Logged", format_minutes(summary.total_time_logged)),
                        ("Avg Tasks/Day", summary.avg_tasks_per_day),
                        ("Completion Rate", f"{summary.completion_rate}%"),
                    ]
                ),
                _table("Tasks by Status", ["Status", "Count"], [[row.status, row.count] for row in report.tasks_by_status]),
                _table(
                    "Top Projects",
                    ["Project", "Tasks Completed", "Time Logged"],
                    [
                        [row.project_name, row.tasks_completed, format_minutes(row.time_logged)]
                        for row in report.top_projects
                    ],
                ),
            ]
        )

    if isinstance(report, ProjectReport):
        summary = report.summary
        return "\n".join(
            [
                _header(f"{report.project_name} - Project Report", report),
                _stat_grid(
                    [
                        ("Completion", f"{summary.completion_percentage}%"),
                        ("Total Tasks", summary.total_tasks),
                        ("Time Logged", format_minutes(summary.total_time_logged)),
                        ("Blocked", summary.blocked_tasks),
                    ]
                ),
                _table(
                    "Task Breakdown",
                    ["Status", "Count", "Percentage"],
                    [[row.status, row.count, f"{row.percentage}%"] for row in report.task_breakdown],
                ),
                _table(
                    "Team Performance",
                    ["Member", "Assigned", "Completed", "Rate", "Time"],
                    [
                        [
                            row.user_name,
                            row.tasks_assigned,
                            row.tasks_completed,
                            f"{row.completion_rate}%",
                            format_minutes(row.time_logged),
                        ]
                        for row in report.member_stats
                    ],
                ),
            ]
        )

    summary = report.summary
    return "\n".join(
        [
            _header("Team Overview Report", report),
            _stat_grid(
                [
                    ("Projects", summary.total_projects),
                    ("Tasks Done", summary.completed_tasks),
                    ("Time Logged", format_minutes(summary.total_time_logged)),
                    ("Avg. Completion", f"{summary.avg_completion_rate}%"),
                ]
            ),
            _table(
                "Projects Overview",
                ["Project", "Status", "Tasks", "Progress", "Time"],
                [
                    [
                        row.project_name,
                        row.status,
                        f"{row.tasks_completed}/{row.total_tasks}",
                        f"{row.completion_percentage}%",
                        format_minutes(row.time_logged),
                    ]
                    for row in report.projects_overview
                ],
            ),
            _table(
                "Top Performers",
                ["Member", "Tasks Done", "Time Logged", "Rate"],
                [
                    [row.user_name, row.tasks_completed, format_minutes(row.time_logged), f"{row.completion_rate}%"]
                    for row in report.top_performers
                ],
            ),
        ]
    )


# ---------- Files ----------
def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "report"


def export_subject(report: Report) -> str:
    if isinstance(report, IndividualReport):
        return _slug(report.user_name)
    if isinstance(report, ProjectReport):
        return _slug(report.project_name)
    return "overview"


def export_filename(report_key: str, subject: str, on: date, extension: str) -> str:
    return f"{report_key}-{subject}-{on.isoformat()}.{extension}"


def export_report(report_key: str, report: Report, format_name: str, *, on: date) -> ExportFilePayload:
    """Render ``report`` as a downloadable file; ``format_name`` must be one of :data:`EXPORT_FORMATS`."""

    subject = export_subject(report)
    if format_name == "csv":
        return ExportFilePayload(
            media_type=CSV_MEDIA_TYPE,
            filename=export_filename(report_key, subject, on, "csv"),
            content=render_csv(flatten_rows(report)),
        )
    if format_name == "xlsx":
        return ExportFilePayload(
            media_type=XLSX_MEDIA_TYPE,
            filename=export_filename(report_key, subject, on, "xlsx"),
            content=render_xlsx(flatten_rows(report)),
        )
    if format_name == "html":
        document = render_printable_document(report_title(report), printable_content(report))
        return ExportFilePayload(
            media_type=HTML_MEDIA_TYPE,
            filename=export_filename(report_key, subject, on, "html"),
            content=document.encode("utf-8"),
        )
    raise ValueError(f"Unsupported export format: {format_name}")
