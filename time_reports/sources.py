"""
Collaborator interfaces consumed by the report engine.

Every method returns the (data, error_or_None) pair used throughout the
ClickUp client and never raises across this boundary. A (None, None)
result from get_current_time_entry means no timer is running.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

from time_reports.models import MemberInfo, TimeEntry

EntriesResult = Tuple[Optional[List[TimeEntry]], Optional[str]]
EntryResult = Tuple[Optional[TimeEntry], Optional[str]]


@dataclass
class StartTimerRequest:
    task_id: str
    description: Optional[str] = None
    billable: Optional[bool] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class StopTimerRequest:
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class NewTimeEntryRequest:
    task_id: str
    start_ms: int
    duration_ms: int
    description: Optional[str] = None
    billable: Optional[bool] = None
    tags: List[str] = field(default_factory=list)


class TimeTrackingSource(Protocol):
    async def get_time_entries(
        self,
        task_id: str,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> EntriesResult: ...

    async def get_team_time_entries(
        self, user_id: str, start_ms: int, end_ms: int
    ) -> EntriesResult: ...

    async def get_current_time_entry(self) -> EntryResult: ...

    async def start_time_tracking(self, request: StartTimerRequest) -> EntryResult: ...

    async def stop_time_tracking(self, request: StopTimerRequest) -> EntryResult: ...

    async def add_time_entry(self, request: NewTimeEntryRequest) -> EntryResult: ...

    async def delete_time_entry(
        self, time_entry_id: str
    ) -> Tuple[Optional[Dict], Optional[str]]: ...


class MemberDirectory(Protocol):
    async def get_members(
        self,
    ) -> Tuple[Optional[List[MemberInfo]], Optional[str]]: ...


class TaskSource(Protocol):
    async def get_tasks(
        self, list_id: str, include_closed: bool = True, subtasks: bool = False
    ) -> Tuple[Optional[List[Dict]], Optional[str]]: ...
