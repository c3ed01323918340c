"""
Report projections and markdown output.

Hour fields are rounded to 2 decimals for display only; millisecond totals
are passed through unrounded.
"""

import re
import unicodedata
from enum import Enum
from datetime import tzinfo
from typing import Dict, List, Optional

from time_reports.dates import format_timestamp
from time_reports.durations import format_duration, format_total, hours_decimal
from time_reports.errors import ValidationError
from time_reports.models import MemberReport, TaskAggregate, TeamReport, TimeEntry

TITLE_MAX_LEN = 140

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9 \-_.:/|&+]")


class DetailLevel(str, Enum):
    DETAILED = "detailed"
    SUMMARY = "summary"
    TOTALS_ONLY = "totals_only"

    @classmethod
    def parse(cls, value: Optional[str]) -> "DetailLevel":
        if value is None or value == "":
            return cls.SUMMARY
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(level.value for level in cls)
            raise ValidationError(
                f"Invalid detailLevel '{value}'. Use one of: {allowed}"
            ) from None


def sanitize_title(text, max_len: int = TITLE_MAX_LEN) -> str:
    """
    Make a task title safe to embed in a markdown link.

    Strips diacritics, turns tabs/newlines into spaces, drops anything
    outside [A-Za-z0-9 -_.:/|&+], collapses spaces and caps the length.
    """
    if not isinstance(text, str):
        return ""
    s = unicodedata.normalize("NFKD", text)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[\r\n\t]+", " ", s)
    s = _UNSAFE_CHARS.sub("", s)
    s = re.sub(r"\s{2,}", " ", s).strip()
    return s[:max_len]


# ============================================================================
# MEMBER REPORT
# ============================================================================


def render_task_line(task: TaskAggregate) -> str:
    hrs = f"{hours_decimal(task.time_ms):.2f}"
    return (
        f"- [{task.code}: {sanitize_title(task.name)}]({task.url})"
        f" — {task.status} — ⏱ {hrs} hrs"
    )


def render_member_summary(tasks: List[TaskAggregate], total_ms: int) -> Dict:
    lines = [render_task_line(t) for t in tasks]
    if lines:
        markdown = f"**Total: {format_total(total_ms)}**\n\n" + "\n".join(lines)
    else:
        markdown = "No tasks logged in the given range."
    return {"summary_lines": lines, "summary_markdown": markdown}


def render_task(task: TaskAggregate) -> Dict:
    return {
        "id": task.id,
        "code": task.code,
        "name": task.name,
        "status": task.status,
        "url": task.url,
        "time_ms": task.time_ms,
        "time_hours": hours_decimal(task.time_ms),
    }


# ============================================================================
# TEAM REPORT
# ============================================================================


def _render_member(member: MemberReport, level: DetailLevel) -> Dict:
    base = {"name": member.name}
    if level is not DetailLevel.TOTALS_ONLY:
        base["email"] = member.email
    if level is DetailLevel.DETAILED:
        base["clickup_id"] = member.clickup_id

    base["total_ms"] = member.total_ms
    base["total_hours"] = hours_decimal(member.total_ms)
    base["total_formatted"] = format_total(member.total_ms)

    if level is DetailLevel.SUMMARY:
        base["tasks_worked_on"] = member.task_names
        base["task_count"] = len(member.tasks)
    elif level is DetailLevel.DETAILED:
        base["tasks"] = [
            {
                "id": t.id,
                "name": t.name,
                "status": t.status,
                "hours": hours_decimal(t.time_ms),
            }
            for t in member.tasks
        ]

    base["error"] = member.error
    return base


def render_teams(team_reports: List[TeamReport], detail_level) -> List[Dict]:
    """Project team reports into the requested detail level."""
    level = (
        detail_level
        if isinstance(detail_level, DetailLevel)
        else DetailLevel.parse(detail_level)
    )
    return [
        {
            "team_lead": {"name": team.team_lead.name, "email": team.team_lead.email},
            "team_total_ms": team.total_ms,
            "team_total_hours": hours_decimal(team.total_ms),
            "team_total_formatted": format_total(team.total_ms),
            "members": [_render_member(m, level) for m in team.members],
        }
        for team in team_reports
    ]


def render_team_markdown(team_reports: List[TeamReport], detail_level) -> str:
    level = (
        detail_level
        if isinstance(detail_level, DetailLevel)
        else DetailLevel.parse(detail_level)
    )
    if not team_reports:
        return "No teams found in the Allocation list."

    org_total = sum(t.total_ms for t in team_reports)
    out = [f"**Organization Total: {format_total(org_total)}**"]

    for team in team_reports:
        out.append("")
        lead_name = sanitize_title(team.team_lead.name) or "Unnamed"
        out.append(f"### {lead_name} — {format_total(team.total_ms)}")
        if not team.members:
            out.append("- _No members_")
        for m in team.members:
            name = sanitize_title(m.name) or "Unnamed"
            line = f"- **{name}**: {format_total(m.total_ms)}"
            if m.error:
                line += f" ⚠️ {m.error}"
            elif level is DetailLevel.SUMMARY and m.tasks:
                names = ", ".join(sanitize_title(n) for n in m.task_names)
                line += f" ({len(m.tasks)} tasks: {names})"
            out.append(line)
            if level is DetailLevel.DETAILED and not m.error:
                for t in m.tasks:
                    out.append(
                        f"  - [{t.code}: {sanitize_title(t.name)}]({t.url})"
                        f" — {t.status} — {hours_decimal(t.time_ms):.2f} hrs"
                    )

    return "\n".join(out)


# ============================================================================
# SINGLE TIME ENTRIES
# ============================================================================


def render_time_entry(entry: TimeEntry, tz: Optional[tzinfo] = None) -> Dict:
    out = {
        "id": entry.id,
        "description": entry.description,
        "start": entry.start,
        "end": entry.end,
        "duration": format_duration(entry.duration_ms),
        "duration_ms": entry.duration_ms,
        "billable": entry.billable,
        "tags": sorted(entry.tags),
        "user": (
            {"id": entry.user.id, "username": entry.user.username}
            if entry.user
            else None
        ),
        "task": (
            {"id": entry.task.id, "name": entry.task.name, "status": entry.task.status}
            if entry.task
            else None
        ),
    }
    if tz is not None:
        out["start_formatted"] = format_timestamp(entry.start, tz) if entry.start else None
        out["end_formatted"] = (
            "Ongoing" if entry.is_running else format_timestamp(entry.end, tz)
        )
    return out
