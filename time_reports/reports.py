"""
Time Report Engine
==================
Report and time-entry operations behind the MCP tools:

1. get_member_time_report  — one member's time, grouped by task
2. get_team_time_report    — whole organization, grouped by team lead
3. get_task_time_entries   — raw entries on one task
4. get_current_time_entry / start_time_tracking / stop_time_tracking
5. add_time_entry / delete_time_entry

Collaborators return (data, error) pairs. Single-entity operations turn an
error into CollaboratorError; the team report isolates failures per member
and always completes. Employees are fetched one at a time.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from time_reports import config
from time_reports.aggregation import aggregate_time_entries
from time_reports.dates import parse_date_expression, parse_date_range, resolve_timezone
from time_reports.durations import (
    elapsed_ms,
    format_duration,
    format_total,
    hours_decimal,
    parse_duration,
)
from time_reports.errors import (
    CollaboratorError,
    InvalidDateRange,
    InvalidDuration,
    MemberNotFound,
    TimerConflict,
    ValidationError,
)
from time_reports.hierarchy import build_team_hierarchy
from time_reports.members import resolve_member
from time_reports.models import DateRange, Employee, MemberReport, TeamReport
from time_reports.rendering import (
    DetailLevel,
    render_member_summary,
    render_task,
    render_team_markdown,
    render_teams,
    render_time_entry,
)
from time_reports.sources import (
    MemberDirectory,
    NewTimeEntryRequest,
    StartTimerRequest,
    StopTimerRequest,
    TaskSource,
    TimeTrackingSource,
)

logger = logging.getLogger("time-reports")


def _unwrap(result, failure: str):
    data, err = result
    if err:
        raise CollaboratorError(f"{failure}: {err}")
    return data


# ---------------------------------------------------------------------------
# Member report
# ---------------------------------------------------------------------------


async def get_member_time_report(
    time_source: TimeTrackingSource,
    directory: MemberDirectory,
    *,
    start_date: Optional[str],
    end_date: Optional[str],
    member_name: Optional[str] = None,
    member_email: Optional[str] = None,
    assignee_id: Optional[str] = None,
    timezone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Aggregated time for one member across all tasks in the date range.

    The member is given either directly (assignee_id) or as a name/email
    that is resolved against the workspace directory.

    Returns:
        {
          member, assignee_id, date_range,
          total_time_ms, total_time_hours, total_time_formatted,
          task_count, summary_lines, summary_markdown,
          tasks: [{id, code, name, status, url, time_ms, time_hours}]
        }
    """
    if not start_date or not end_date:
        raise InvalidDateRange("Both startDate and endDate are required.")
    if not assignee_id and not (member_name or member_email):
        raise ValidationError(
            "Please provide either memberName, memberEmail, or assigneeId "
            "to identify the user."
        )

    date_range = parse_date_range(start_date, end_date, timezone, now)
    logger.info(
        f"📅 Member report range: {date_range.start_formatted} → {date_range.end_formatted}"
    )

    member = None
    resolved_id = str(assignee_id) if assignee_id else None
    if not resolved_id:
        term = member_name or member_email
        members, err = await directory.get_members()
        if err:
            raise CollaboratorError(f"Failed to lookup member: {err}")
        member = resolve_member(term, members or [])
        if member is None:
            raise MemberNotFound(
                f"Member not found: {term}. Check the name or email against "
                "the workspace member list."
            )
        resolved_id = member.id
        logger.info(f"👤 Resolved member '{term}' to ID {resolved_id}")

    entries = _unwrap(
        await time_source.get_team_time_entries(
            resolved_id, date_range.start_ms, date_range.end_ms
        ),
        "Failed to get team time entries",
    )
    entries = entries or []
    logger.info(f"⏱ Retrieved {len(entries)} time entries for {resolved_id}")

    agg = aggregate_time_entries(entries)
    return {
        "member": (
            {"id": member.id, "username": member.username, "email": member.email}
            if member
            else None
        ),
        "assignee_id": resolved_id,
        "date_range": date_range.as_dict(),
        "total_time_ms": agg.total_ms,
        "total_time_hours": hours_decimal(agg.total_ms),
        "total_time_formatted": format_total(agg.total_ms),
        "task_count": len(agg.per_task),
        **render_member_summary(agg.tasks, agg.total_ms),
        "tasks": [render_task(t) for t in agg.tasks],
    }


# ---------------------------------------------------------------------------
# Team report
# ---------------------------------------------------------------------------


async def build_member_report(
    time_source: TimeTrackingSource, employee: Employee, date_range: DateRange
) -> MemberReport:
    """One employee's totals, or a MemberReport carrying the failure."""
    if not employee.clickup_id:
        return MemberReport.failed(employee, "No ClickUp ID configured")

    try:
        entries, err = await time_source.get_team_time_entries(
            employee.clickup_id, date_range.start_ms, date_range.end_ms
        )
    except Exception as e:
        logger.error(f"❌ Failed to fetch time for {employee.name}", exc_info=True)
        return MemberReport.failed(employee, str(e) or type(e).__name__)

    if err:
        return MemberReport.failed(employee, err)

    agg = aggregate_time_entries(entries or [])
    return MemberReport(
        name=employee.name,
        email=employee.email,
        clickup_id=employee.clickup_id,
        total_ms=agg.total_ms,
        tasks=agg.tasks,
    )


async def get_team_time_report(
    time_source: TimeTrackingSource,
    task_source: TaskSource,
    *,
    start_date: Optional[str],
    end_date: Optional[str],
    detail_level: Optional[str] = "summary",
    timezone: Optional[str] = None,
    allocation_list_id: Optional[str] = None,
    team_lead_tier_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Time for every member of the organization, grouped by team lead.

    Team structure comes from the Allocation list (see hierarchy.py). The
    date range is parsed once and reused for every member fetch.

    Returns:
        {
          date_range, detail_level,
          organization_total_ms, organization_total_hours,
          organization_total_formatted, team_count, total_members,
          teams: [...], summary_markdown
        }
    """
    if not start_date or not end_date:
        raise InvalidDateRange("Both startDate and endDate are required.")
    level = DetailLevel.parse(detail_level)
    date_range = parse_date_range(start_date, end_date, timezone, now)
    logger.info(
        f"📅 Team report range: {date_range.start_formatted} → {date_range.end_formatted}"
    )

    list_id = allocation_list_id or config.CLICKUP_ALLOCATION_LIST_ID
    tier_id = team_lead_tier_id or config.CLICKUP_TEAM_LEAD_TIER_ID
    if not list_id:
        raise ValidationError(
            "No allocation list configured. Set CLICKUP_ALLOCATION_LIST_ID "
            "or pass allocationListId."
        )
    if not tier_id:
        raise ValidationError(
            "No team lead tier configured. Set CLICKUP_TEAM_LEAD_TIER_ID."
        )

    logger.info(f"📋 Fetching allocation from list {list_id}")
    records, err = await task_source.get_tasks(
        list_id, include_closed=True, subtasks=False
    )
    if err:
        raise CollaboratorError(
            f"Failed to fetch allocation list: {err}. "
            f"Check if the list ID {list_id} is correct."
        )
    records = records or []
    logger.info(f"📋 Retrieved {len(records)} allocation records")

    leads = build_team_hierarchy(records, tier_id)

    team_reports: List[TeamReport] = []
    for lead in leads.values():
        team = TeamReport(team_lead=lead)
        for employee in lead.employees:
            team.members.append(
                await build_member_report(time_source, employee, date_range)
            )
        team_reports.append(team)

    org_total_ms = sum(t.total_ms for t in team_reports)
    return {
        "date_range": date_range.as_dict(),
        "detail_level": level.value,
        "organization_total_ms": org_total_ms,
        "organization_total_hours": hours_decimal(org_total_ms),
        "organization_total_formatted": format_total(org_total_ms),
        "team_count": len(team_reports),
        "total_members": sum(len(t.members) for t in team_reports),
        "teams": render_teams(team_reports, level),
        "summary_markdown": render_team_markdown(team_reports, level),
    }


# ---------------------------------------------------------------------------
# Time entries
# ---------------------------------------------------------------------------


async def get_task_time_entries(
    time_source: TimeTrackingSource,
    task_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    timezone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict:
    tz = resolve_timezone(timezone)
    start_ms = parse_date_expression(start_date, tz, "start", now) if start_date else None
    end_ms = parse_date_expression(end_date, tz, "end", now) if end_date else None
    if start_ms is not None and end_ms is not None and start_ms > end_ms:
        raise InvalidDateRange("startDate must be before or equal to endDate.")

    entries = _unwrap(
        await time_source.get_time_entries(task_id, start_ms, end_ms),
        "Failed to get time entries",
    )
    entries = entries or []
    return {
        "count": len(entries),
        "total_time_ms": sum(e.duration_ms for e in entries),
        "total_time_formatted": format_duration(sum(e.duration_ms for e in entries)),
        "time_entries": [render_time_entry(e, tz) for e in entries],
    }


async def get_current_time_entry(
    time_source: TimeTrackingSource, now_ms: Optional[int] = None
) -> Dict:
    entry = _unwrap(
        await time_source.get_current_time_entry(),
        "Failed to get current time entry",
    )
    if entry is None:
        return {"timer_running": False, "message": "No timer is currently running."}

    elapsed = elapsed_ms(entry.start, now_ms)
    return {
        "timer_running": True,
        "time_entry": {
            **render_time_entry(entry),
            "elapsed": format_duration(elapsed),
            "elapsed_ms": elapsed,
        },
    }


async def start_time_tracking(
    time_source: TimeTrackingSource,
    task_id: str,
    description: Optional[str] = None,
    billable: Optional[bool] = None,
    tags: Optional[List[str]] = None,
) -> Dict:
    # The running timer lives in ClickUp; always read it fresh
    current, err = await time_source.get_current_time_entry()
    if not err and current is not None:
        raise TimerConflict(
            "A timer is already running. Please stop the current timer "
            "before starting a new one.",
            timer=render_time_entry(current),
        )

    entry = _unwrap(
        await time_source.start_time_tracking(
            StartTimerRequest(
                task_id=task_id,
                description=description,
                billable=billable,
                tags=list(tags or []),
            )
        ),
        "Failed to start time tracking",
    )
    if entry is None:
        raise CollaboratorError("No time entry data returned from API")

    logger.info(f"▶️ Timer started on task {task_id}")
    return {
        "message": "Time tracking started successfully",
        "time_entry": render_time_entry(entry),
    }


async def stop_time_tracking(
    time_source: TimeTrackingSource,
    description: Optional[str] = None,
    tags: Optional[List[str]] = None,
) -> Dict:
    current, err = await time_source.get_current_time_entry()
    if not err and current is None:
        raise TimerConflict(
            "No timer is currently running. Start a timer before trying to stop it."
        )

    entry = _unwrap(
        await time_source.stop_time_tracking(
            StopTimerRequest(description=description, tags=list(tags or []))
        ),
        "Failed to stop time tracking",
    )
    if entry is None:
        raise CollaboratorError("No time entry data returned from API")

    logger.info(f"⏹ Timer stopped after {format_duration(entry.duration_ms)}")
    return {
        "message": "Time tracking stopped successfully",
        "time_entry": render_time_entry(entry),
    }


async def add_time_entry(
    time_source: TimeTrackingSource,
    task_id: str,
    start: Optional[str],
    duration: Optional[str],
    description: Optional[str] = None,
    billable: Optional[bool] = None,
    tags: Optional[List[str]] = None,
    timezone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict:
    tz = resolve_timezone(timezone)
    try:
        start_ms = parse_date_expression(start, tz, "start", now)
    except InvalidDateRange:
        raise InvalidDateRange(
            "Invalid start time format. Use a Unix timestamp (in milliseconds) "
            "or a natural language date string."
        ) from None

    duration_ms = parse_duration(duration)
    if duration_ms == 0:
        raise InvalidDuration(
            "Invalid duration format. Use 'Xh Ym' format (e.g., '1h 30m') "
            "or just minutes (e.g., '90m')."
        )

    entry = _unwrap(
        await time_source.add_time_entry(
            NewTimeEntryRequest(
                task_id=task_id,
                start_ms=start_ms,
                duration_ms=duration_ms,
                description=description,
                billable=billable,
                tags=list(tags or []),
            )
        ),
        "Failed to add time entry",
    )
    if entry is None:
        raise CollaboratorError("No time entry data returned from API")

    return {
        "message": "Time entry added successfully",
        "time_entry": render_time_entry(entry, tz),
    }


async def delete_time_entry(time_source: TimeTrackingSource, time_entry_id: str) -> Dict:
    if not time_entry_id:
        raise ValidationError("Time entry ID is required.")
    _unwrap(
        await time_source.delete_time_entry(str(time_entry_id)),
        "Failed to delete time entry",
    )
    return {"message": "Time entry deleted successfully."}
