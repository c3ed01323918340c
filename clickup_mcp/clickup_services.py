"""
ClickUp-backed collaborators for the time report engine.

Each service wraps the blocking ClickUpClient; the async methods hand the
HTTP work to a worker thread with asyncio.to_thread so the engine can await
one fetch at a time. Results keep the client's (data, error) convention.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional, Tuple

from clickup_mcp.api_client import ClickUpClient, get_client
from time_reports.models import MemberInfo, TimeEntry
from time_reports.sources import (
    NewTimeEntryRequest,
    StartTimerRequest,
    StopTimerRequest,
)

logger = logging.getLogger("clickup-services")

MEMBERS_CACHE_TTL = 600
LISTS_CACHE_TTL = 300
PAGE_SIZE = 100

_CUSTOM_TASK_ID = re.compile(r"^[A-Za-z][A-Za-z0-9]*-\d+$")


def _unwrap_data(payload):
    """Time entry endpoints wrap results as {"data": ...}."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _parse_entries(payload) -> List[TimeEntry]:
    return [TimeEntry.from_api(e) for e in (_unwrap_data(payload) or []) if isinstance(e, dict)]


def _parse_entry(payload) -> Optional[TimeEntry]:
    data = _unwrap_data(payload)
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict) or not data:
        return None
    return TimeEntry.from_api(data)


def _tags_payload(tags: List[str]) -> List[Dict]:
    return [{"name": t} for t in tags if t]


def is_custom_task_id(task_id: str) -> bool:
    """Custom task IDs look like 'DEV-123'; native IDs are bare alphanumerics."""
    return bool(_CUSTOM_TASK_ID.match(task_id or ""))


class _ClickUpService:
    def __init__(self, client: Optional[ClickUpClient] = None):
        self._client = client

    @property
    def client(self) -> ClickUpClient:
        if self._client is None:
            self._client = get_client()
        return self._client


# ============================================================================
# TIME TRACKING
# ============================================================================


class ClickUpTimeTrackingService(_ClickUpService):
    # --- blocking helpers ---------------------------------------------------

    def _entries(self, params: Dict) -> Tuple[Optional[List[TimeEntry]], Optional[str]]:
        team_id, err = self.client.get_team_id()
        if err:
            return None, err
        clean = {k: v for k, v in params.items() if v is not None}
        data, err = self.client.get(f"/team/{team_id}/time_entries", params=clean)
        if err:
            return None, err
        return _parse_entries(data), None

    def _current(self) -> Tuple[Optional[TimeEntry], Optional[str]]:
        team_id, err = self.client.get_team_id()
        if err:
            return None, err
        data, err = self.client.get(f"/team/{team_id}/time_entries/current")
        if err:
            return None, err
        return _parse_entry(data), None

    def _post_entry(
        self, suffix: str, payload: Dict
    ) -> Tuple[Optional[TimeEntry], Optional[str]]:
        team_id, err = self.client.get_team_id()
        if err:
            return None, err
        data, err = self.client.post(f"/team/{team_id}/time_entries{suffix}", payload)
        if err:
            return None, err
        return _parse_entry(data), None

    def _delete(self, time_entry_id: str) -> Tuple[Optional[Dict], Optional[str]]:
        team_id, err = self.client.get_team_id()
        if err:
            return None, err
        return self.client.delete(f"/team/{team_id}/time_entries/{time_entry_id}")

    # --- collaborator interface --------------------------------------------

    async def get_time_entries(
        self,
        task_id: str,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ):
        return await asyncio.to_thread(
            self._entries,
            {"task_id": task_id, "start_date": start_ms, "end_date": end_ms},
        )

    async def get_team_time_entries(self, user_id: str, start_ms: int, end_ms: int):
        return await asyncio.to_thread(
            self._entries,
            {"assignee": user_id, "start_date": start_ms, "end_date": end_ms},
        )

    async def get_current_time_entry(self):
        return await asyncio.to_thread(self._current)

    async def start_time_tracking(self, request: StartTimerRequest):
        payload: Dict = {"tid": request.task_id}
        if request.description:
            payload["description"] = request.description
        if request.billable is not None:
            payload["billable"] = request.billable
        if request.tags:
            payload["tags"] = _tags_payload(request.tags)
        return await asyncio.to_thread(self._post_entry, "/start", payload)

    async def stop_time_tracking(self, request: StopTimerRequest):
        payload: Dict = {}
        if request.description:
            payload["description"] = request.description
        if request.tags:
            payload["tags"] = _tags_payload(request.tags)
        return await asyncio.to_thread(self._post_entry, "/stop", payload)

    async def add_time_entry(self, request: NewTimeEntryRequest):
        payload: Dict = {
            "tid": request.task_id,
            "start": request.start_ms,
            "duration": request.duration_ms,
        }
        if request.description:
            payload["description"] = request.description
        if request.billable is not None:
            payload["billable"] = request.billable
        if request.tags:
            payload["tags"] = _tags_payload(request.tags)
        return await asyncio.to_thread(self._post_entry, "", payload)

    async def delete_time_entry(self, time_entry_id: str):
        return await asyncio.to_thread(self._delete, time_entry_id)


# ============================================================================
# WORKSPACE DIRECTORY
# ============================================================================


class ClickUpWorkspaceService(_ClickUpService):
    def _members(self) -> Tuple[Optional[List[MemberInfo]], Optional[str]]:
        team_id, err = self.client.get_team_id()
        if err:
            return None, err
        data, err = self.client.get(f"/team/{team_id}", cache_ttl=MEMBERS_CACHE_TTL)
        if err or not data:
            return None, err or "Failed to fetch team"
        team = data.get("team", data)
        members = [
            MemberInfo.from_api(m)
            for m in team.get("members", [])
            if isinstance(m, dict) and (m.get("user") or m).get("id") is not None
        ]
        return members, None

    async def get_members(self):
        return await asyncio.to_thread(self._members)


# ============================================================================
# TASKS / LISTS
# ============================================================================


class ClickUpTaskService(_ClickUpService):
    def _tasks(
        self, list_id: str, include_closed: bool, subtasks: bool
    ) -> Tuple[Optional[List[Dict]], Optional[str]]:
        all_tasks: List[Dict] = []
        seen = set()
        page = 0
        while True:
            params = {
                "page": page,
                "include_closed": str(include_closed).lower(),
                "subtasks": str(subtasks).lower(),
            }
            d, err = self.client.get(f"/list/{list_id}/task", params=params)
            if err:
                # A failure after the first page still loses data; report it
                return None, err
            tasks = [t for t in (d or {}).get("tasks", []) if isinstance(t, dict)]
            for t in tasks:
                if t.get("id") not in seen:
                    seen.add(t.get("id"))
                    all_tasks.append(t)
            if not tasks or d.get("last_page") or len(tasks) < PAGE_SIZE:
                break
            page += 1
        return all_tasks, None

    async def get_tasks(
        self, list_id: str, include_closed: bool = True, subtasks: bool = False
    ):
        return await asyncio.to_thread(self._tasks, list_id, include_closed, subtasks)

    # --- task lookup for tools that accept names -------------------------

    def _find_list_id(self, list_name: str) -> Tuple[Optional[str], Optional[str]]:
        """Resolve list name → ID across every space (folders included)."""
        team_id, err = self.client.get_team_id()
        if err:
            return None, err
        spaces, err = self.client.get(f"/team/{team_id}/space", cache_ttl=LISTS_CACHE_TTL)
        if err:
            return None, err

        target = list_name.strip().lower()
        for space in (spaces or {}).get("spaces", []):
            lists: List[Dict] = []
            r, _ = self.client.get(f"/space/{space['id']}/list", cache_ttl=LISTS_CACHE_TTL)
            if r:
                lists.extend(r.get("lists", []))
            r2, _ = self.client.get(
                f"/space/{space['id']}/folder", cache_ttl=LISTS_CACHE_TTL
            )
            if r2:
                for f in r2.get("folders", []):
                    lists.extend(f.get("lists", []))
            for lst in lists:
                if (lst.get("name") or "").strip().lower() == target:
                    return str(lst["id"]), None
        return None, f"List '{list_name}' not found"

    def _find_task_id(
        self,
        task_id: Optional[str],
        task_name: Optional[str],
        list_name: Optional[str],
    ) -> Tuple[Optional[str], Optional[str]]:
        if task_id:
            task_id = str(task_id).strip()
            if not is_custom_task_id(task_id):
                return task_id, None
            team_id, err = self.client.get_team_id()
            if err:
                return None, err
            data, err = self.client.get(
                f"/task/{task_id}",
                params={"custom_task_ids": "true", "team_id": team_id},
            )
            if err or not data:
                return None, f"Task '{task_id}' not found"
            return str(data["id"]), None

        if not task_name:
            return None, "Provide a taskId or a taskName"
        if not list_name:
            return None, "listName is required when looking a task up by name"

        list_id, err = self._find_list_id(list_name)
        if err:
            return None, err
        tasks, err = self._tasks(list_id, include_closed=True, subtasks=True)
        if err:
            return None, err

        wanted = task_name.strip().lower()
        exact = [t for t in tasks if (t.get("name") or "").strip().lower() == wanted]
        partial = [t for t in tasks if wanted in (t.get("name") or "").lower()]
        match = (exact or partial or [None])[0]
        if match is None:
            return None, f"Task '{task_name}' not found in list '{list_name}'"
        return str(match["id"]), None

    async def find_task_id(
        self,
        task_id: Optional[str] = None,
        task_name: Optional[str] = None,
        list_name: Optional[str] = None,
    ):
        return await asyncio.to_thread(self._find_task_id, task_id, task_name, list_name)
