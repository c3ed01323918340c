"""
Pytest configuration and shared fixtures.
"""

from dataclasses import replace
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from time_reports.models import MemberInfo, TaskRef, TimeEntry, UserRef

PKT = ZoneInfo("Asia/Karachi")


@pytest.fixture
def now():
    """Wednesday 2026-10-14 15:30 in Asia/Karachi."""
    return datetime(2026, 10, 14, 15, 30, tzinfo=PKT)


@pytest.fixture
def make_entry():
    """Factory for TimeEntry records."""
    counter = {"n": 0}

    def _make(
        task_id="T1",
        duration_ms=1_800_000,
        task_name=None,
        status="in progress",
        custom_id=None,
        user_id="100",
        start=1_760_000_000_000,
        with_task=True,
    ):
        counter["n"] += 1
        task = (
            TaskRef(
                id=task_id,
                name=task_name or f"Task {task_id}",
                status=status,
                custom_id=custom_id,
            )
            if with_task
            else None
        )
        return TimeEntry(
            id=f"E{counter['n']}",
            start=start,
            end=start + duration_ms,
            duration_ms=duration_ms,
            user=UserRef(id=user_id, username="someone"),
            task=task,
        )

    return _make


@pytest.fixture
def directory_members():
    return [
        MemberInfo(id="1", username="Muhammad Kashif", email="kashif@example.com"),
        MemberInfo(id="2", username="Ali Khan", email="ali.khan@example.com"),
        MemberInfo(id="3", username="alikhan", email="ak@example.com"),
        MemberInfo(id="4", username="Sara", email=None),
    ]


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeTimeSource:
    def __init__(
        self,
        entries_by_user=None,
        task_entries=None,
        failures=None,
        raises=None,
        current=None,
    ):
        self.entries_by_user = entries_by_user or {}
        self.task_entries = task_entries or {}
        self.failures = failures or {}
        self.raises = raises or {}
        self.current = current
        self.calls = []
        self.started = []
        self.stopped = []
        self.added = []
        self.deleted = []

    async def get_team_time_entries(self, user_id, start_ms, end_ms):
        self.calls.append((user_id, start_ms, end_ms))
        if user_id in self.raises:
            raise self.raises[user_id]
        if user_id in self.failures:
            return None, self.failures[user_id]
        return list(self.entries_by_user.get(user_id, [])), None

    async def get_time_entries(self, task_id, start_ms=None, end_ms=None):
        self.calls.append((task_id, start_ms, end_ms))
        if task_id in self.failures:
            return None, self.failures[task_id]
        return list(self.task_entries.get(task_id, [])), None

    async def get_current_time_entry(self):
        return self.current, None

    async def start_time_tracking(self, request):
        self.started.append(request)
        self.current = TimeEntry(
            id="running",
            start=1_760_000_000_000,
            end=None,
            duration_ms=0,
            description=request.description or "",
            task=TaskRef(id=request.task_id, name="Running task", status="open"),
        )
        return self.current, None

    async def stop_time_tracking(self, request):
        self.stopped.append(request)
        done = replace(
            self.current,
            end=self.current.start + 5_400_000,
            duration_ms=5_400_000,
        )
        self.current = None
        return done, None

    async def add_time_entry(self, request):
        self.added.append(request)
        entry = TimeEntry(
            id="added",
            start=request.start_ms,
            end=request.start_ms + request.duration_ms,
            duration_ms=request.duration_ms,
            description=request.description or "",
            task=TaskRef(id=request.task_id, name="Manual task", status="open"),
        )
        return entry, None

    async def delete_time_entry(self, time_entry_id):
        self.deleted.append(time_entry_id)
        return {}, None


class FakeDirectory:
    def __init__(self, members=None, error=None):
        self.members = members or []
        self.error = error
        self.calls = 0

    async def get_members(self):
        self.calls += 1
        if self.error:
            return None, self.error
        return list(self.members), None


class FakeTaskSource:
    def __init__(self, records=None, error=None, task_ids=None):
        self.records = records or []
        self.error = error
        self.task_ids = task_ids or {}
        self.calls = []

    async def get_tasks(self, list_id, include_closed=True, subtasks=False):
        self.calls.append(list_id)
        if self.error:
            return None, self.error
        return list(self.records), None

    async def find_task_id(self, task_id=None, task_name=None, list_name=None):
        if task_id:
            return task_id, None
        if task_name in self.task_ids:
            return self.task_ids[task_name], None
        return None, f"Task '{task_name}' not found"


@pytest.fixture
def fake_time_source():
    return FakeTimeSource


@pytest.fixture
def fake_directory():
    return FakeDirectory


@pytest.fixture
def fake_task_source():
    return FakeTaskSource


# ---------------------------------------------------------------------------
# Allocation list records
# ---------------------------------------------------------------------------

TL_TIER = "tier-team-lead"
IC_TIER = "tier-engineer"


@pytest.fixture
def allocation_record():
    """Factory for Allocation list tasks with custom fields."""

    def _make(name, email=None, tier=None, clickup_id=None, lead_email=None):
        fields = [
            {"name": "Tier", "type": "labels", "value": tier},
            {"name": "Phaedra Email", "type": "email", "value": email},
            {"name": "Clickup ID", "type": "short_text", "value": clickup_id},
            {
                "name": "Team Lead",
                "type": "users",
                "value": [{"id": 9, "email": lead_email}] if lead_email else None,
            },
        ]
        return {"id": f"rec-{name}", "name": name, "custom_fields": fields}

    return _make
