"""
Time Tracking Tools for ClickUp MCP Server
==========================================

1. get_task_time_entries   — all time entries on one task
2. get_member_time_report  — one member's time grouped by task
3. get_team_time_report    — all members grouped by team lead (Allocation list)
4. start_time_tracking     — start a timer (only one can run at a time)
5. stop_time_tracking      — stop the running timer
6. add_time_entry          — manual entry with start + duration
7. delete_time_entry       — delete by ID
8. get_current_time_entry  — the running timer, if any

Report tools accept dates as keywords (today, yesterday, this week, ...),
ISO dates or Unix-ms timestamps, resolved in `timezone` (default Asia/Karachi).
Every tool returns {"success": True, ...} or {"success": False, "error": ...}.
"""

from __future__ import annotations

import logging
from typing import Awaitable, List, Optional

from fastmcp import FastMCP

from clickup_mcp.clickup_services import (
    ClickUpTaskService,
    ClickUpTimeTrackingService,
    ClickUpWorkspaceService,
)
from time_reports import reports
from time_reports.errors import TaskNotFound, TimeReportError, TimerConflict

logger = logging.getLogger("mcp-tools")


async def run_tool(name: str, work: Awaitable[dict]) -> dict:
    """Await a tool body and convert every failure into an error payload."""
    try:
        result = await work
    except TimerConflict as e:
        out = {"success": False, "error": str(e)}
        if e.timer:
            out["timer"] = e.timer
        return out
    except TimeReportError as e:
        logger.info(f"⚠️ {name}: {e}")
        return {"success": False, "error": str(e)}
    except Exception as e:
        logger.error(f"❌ {name} failed", exc_info=True)
        return {"success": False, "error": str(e) or "An unknown error occurred"}
    return {"success": True, **result}


def register_time_tracking_tools(
    mcp: FastMCP,
    time_service=None,
    workspace_service=None,
    task_service=None,
):
    """Register all time tracking tools on the provided FastMCP instance."""
    time_service = time_service or ClickUpTimeTrackingService()
    workspace_service = workspace_service or ClickUpWorkspaceService()
    task_service = task_service or ClickUpTaskService()

    async def _task_id(
        task_id: Optional[str], task_name: Optional[str], list_name: Optional[str]
    ) -> str:
        resolved, err = await task_service.find_task_id(task_id, task_name, list_name)
        if err or not resolved:
            raise TaskNotFound(
                f"Task not found: {err or 'unknown task'}. Please provide a valid "
                "task_id or task_name + list_name combination."
            )
        return resolved

    # =========================================================================
    # 1. TASK TIME ENTRIES
    # =========================================================================

    @mcp.tool()
    async def get_task_time_entries(
        task_id: Optional[str] = None,
        task_name: Optional[str] = None,
        list_name: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> dict:
        """
        Get all time entries for a task.

        Use task_id (preferred, regular or custom ID like "DEV-42") or
        task_name + list_name. Optional start_date / end_date filter the
        entries (Unix ms or expressions like 'yesterday', 'last week').

        Returns:
            { count, total_time_ms, total_time_formatted,
              time_entries: [{id, description, start, end, duration,
                              duration_ms, billable, tags, user, task}] }
        """

        async def _work():
            tid = await _task_id(task_id, task_name, list_name)
            return await reports.get_task_time_entries(
                time_service, tid, start_date, end_date, timezone
            )

        return await run_tool("get_task_time_entries", _work())

    # =========================================================================
    # 2. MEMBER TIME REPORT
    # =========================================================================

    @mcp.tool()
    async def get_member_time_report(
        start_date: str,
        end_date: str,
        member_name: Optional[str] = None,
        member_email: Optional[str] = None,
        assignee_id: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> dict:
        """
        Aggregated time report for one ClickUp user across all tasks.

        Identify the user by member_name or member_email (auto-resolved,
        partial names work) or by assignee_id directly.

        Args:
            start_date: 'today', 'yesterday', 'this week', '2026-10-01', Unix ms...
            end_date:   same formats; 'now' is allowed
            timezone:   e.g. 'Asia/Karachi', 'PKT', 'GMT+5' (default Asia/Karachi)

        Returns:
            { member, assignee_id, date_range, total_time_ms,
              total_time_hours, total_time_formatted, task_count,
              summary_lines, summary_markdown, tasks: [...] }
        """
        return await run_tool(
            "get_member_time_report",
            reports.get_member_time_report(
                time_service,
                workspace_service,
                start_date=start_date,
                end_date=end_date,
                member_name=member_name,
                member_email=member_email,
                assignee_id=assignee_id,
                timezone=timezone,
            ),
        )

    # =========================================================================
    # 3. TEAM TIME REPORT
    # =========================================================================

    @mcp.tool()
    async def get_team_time_report(
        start_date: str,
        end_date: str,
        detail_level: str = "summary",
        timezone: Optional[str] = None,
        allocation_list_id: Optional[str] = None,
    ) -> dict:
        """
        Time report for all team members, grouped by their Team Lead.

        Team structure is read from the ClickUp Allocation list.

        Args:
            start_date:   'today', 'yesterday', 'this week', ISO date, Unix ms...
            end_date:     same formats
            detail_level: 'detailed'    = per-task hours per member
                          'summary'     = task names + totals (default)
                          'totals_only' = hours per member only
            timezone:     default Asia/Karachi (GMT+5)
            allocation_list_id: override the configured Allocation list

        Returns:
            { date_range, detail_level, organization_total_ms,
              organization_total_hours, organization_total_formatted,
              team_count, total_members, teams: [...], summary_markdown }
        """
        return await run_tool(
            "get_team_time_report",
            reports.get_team_time_report(
                time_service,
                task_service,
                start_date=start_date,
                end_date=end_date,
                detail_level=detail_level,
                timezone=timezone,
                allocation_list_id=allocation_list_id,
            ),
        )

    # =========================================================================
    # 4-5. TIMER
    # =========================================================================

    @mcp.tool()
    async def start_time_tracking(
        task_id: Optional[str] = None,
        task_name: Optional[str] = None,
        list_name: Optional[str] = None,
        description: Optional[str] = None,
        billable: Optional[bool] = None,
        tags: Optional[List[str]] = None,
    ) -> dict:
        """
        Start time tracking on a task. Only one timer can run at a time;
        stop the current one first.
        """

        async def _work():
            tid = await _task_id(task_id, task_name, list_name)
            return await reports.start_time_tracking(
                time_service, tid, description, billable, tags
            )

        return await run_tool("start_time_tracking", _work())

    @mcp.tool()
    async def stop_time_tracking(
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> dict:
        """Stop the running timer and return the completed time entry."""
        return await run_tool(
            "stop_time_tracking",
            reports.stop_time_tracking(time_service, description, tags),
        )

    # =========================================================================
    # 6-7. MANUAL ENTRIES
    # =========================================================================

    @mcp.tool()
    async def add_time_entry(
        start: str,
        duration: str,
        task_id: Optional[str] = None,
        task_name: Optional[str] = None,
        list_name: Optional[str] = None,
        description: Optional[str] = None,
        billable: Optional[bool] = None,
        tags: Optional[List[str]] = None,
        timezone: Optional[str] = None,
    ) -> dict:
        """
        Add a manual time entry to a task.

        Args:
            start:    Unix ms or expressions like '2 hours ago', 'yesterday 9am'
            duration: '1h 30m', '2h', '90m' or plain minutes ('45')
        """

        async def _work():
            tid = await _task_id(task_id, task_name, list_name)
            return await reports.add_time_entry(
                time_service,
                tid,
                start,
                duration,
                description=description,
                billable=billable,
                tags=tags,
                timezone=timezone,
            )

        return await run_tool("add_time_entry", _work())

    @mcp.tool()
    async def delete_time_entry(time_entry_id: str) -> dict:
        """Delete a time entry by its ID."""
        return await run_tool(
            "delete_time_entry",
            reports.delete_time_entry(time_service, time_entry_id),
        )

    # =========================================================================
    # 8. CURRENT TIMER
    # =========================================================================

    @mcp.tool()
    async def get_current_time_entry() -> dict:
        """Get the currently running time entry, if any."""
        return await run_tool(
            "get_current_time_entry",
            reports.get_current_time_entry(time_service),
        )
