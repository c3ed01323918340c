"""
Data model for the time report engine.

ClickUp payloads are parsed once at the collaborator boundary into these
records; everything downstream works on typed fields instead of raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from time_reports.config import TASK_URL_BASE
from time_reports.errors import InvalidDateRange


def _to_int(value, default: Optional[int] = 0) -> Optional[int]:
    """ClickUp sends timestamps and durations as strings or ints."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def extract_status_name(task: Dict) -> str:
    """Safely extract status name from task object."""
    status = task.get("status")
    if isinstance(status, dict):
        return status.get("status") or "Unknown"
    return str(status) if status else "Unknown"


def _extract_tags(raw_tags) -> FrozenSet[str]:
    names = set()
    for tag in raw_tags or []:
        if isinstance(tag, dict):
            name = tag.get("name")
        else:
            name = tag
        if name:
            names.add(str(name))
    return frozenset(names)


# ============================================================================
# RAW RECORDS (read-only, owned by ClickUp)
# ============================================================================


@dataclass(frozen=True)
class TaskRef:
    id: str
    name: str
    status: str
    custom_id: Optional[str] = None

    @property
    def code(self) -> str:
        return self.custom_id or self.id

    @property
    def url(self) -> str:
        return f"{TASK_URL_BASE}/{self.code}"

    @classmethod
    def from_api(cls, task: Optional[Dict]) -> Optional["TaskRef"]:
        if not isinstance(task, dict) or not task.get("id"):
            return None
        return cls(
            id=str(task["id"]),
            name=task.get("name") or "Unnamed Task",
            status=extract_status_name(task),
            custom_id=task.get("custom_id") or None,
        )


@dataclass(frozen=True)
class UserRef:
    id: str
    username: str

    @classmethod
    def from_api(cls, user: Optional[Dict]) -> Optional["UserRef"]:
        if not isinstance(user, dict) or user.get("id") is None:
            return None
        return cls(id=str(user["id"]), username=user.get("username") or "")


@dataclass(frozen=True)
class TimeEntry:
    id: str
    start: Optional[int]
    end: Optional[int]
    duration_ms: int
    billable: bool = False
    tags: FrozenSet[str] = frozenset()
    description: str = ""
    user: Optional[UserRef] = None
    task: Optional[TaskRef] = None

    @property
    def is_running(self) -> bool:
        return self.end is None

    @classmethod
    def from_api(cls, data: Dict) -> "TimeEntry":
        """
        Parse a ClickUp time entry payload.

        Running timers come back with a negative duration (-start); the
        record keeps duration_ms at 0 until the timer is stopped.
        """
        return cls(
            id=str(data.get("id", "")),
            start=_to_int(data.get("start"), None),
            end=_to_int(data.get("end"), None),
            duration_ms=max(0, _to_int(data.get("duration"), 0)),
            billable=bool(data.get("billable") or False),
            tags=_extract_tags(data.get("tags")),
            description=data.get("description") or "",
            user=UserRef.from_api(data.get("user")),
            task=TaskRef.from_api(data.get("task")),
        )


@dataclass(frozen=True)
class MemberInfo:
    id: str
    username: str
    email: Optional[str] = None

    @classmethod
    def from_api(cls, member: Dict) -> "MemberInfo":
        # /team/{id} wraps each member as {"user": {...}, "role": ...}
        user = member.get("user", member)
        return cls(
            id=str(user.get("id")),
            username=user.get("username") or "",
            email=user.get("email"),
        )


# ============================================================================
# DERIVED (request-scoped)
# ============================================================================


@dataclass
class TaskAggregate:
    id: str
    code: str
    name: str
    status: str
    url: str
    time_ms: int = 0

    @classmethod
    def for_task(cls, task: TaskRef) -> "TaskAggregate":
        return cls(
            id=task.id,
            code=task.code,
            name=task.name,
            status=task.status,
            url=task.url,
        )


@dataclass(frozen=True)
class Employee:
    name: str
    email: Optional[str] = None
    clickup_id: Optional[str] = None


@dataclass
class TeamLead:
    name: str
    email: str
    employees: List[Employee] = field(default_factory=list)


@dataclass
class MemberReport:
    name: str
    email: Optional[str]
    clickup_id: str
    total_ms: int = 0
    tasks: List[TaskAggregate] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def task_names(self) -> List[str]:
        return [t.name for t in self.tasks]

    @classmethod
    def failed(cls, employee: Employee, error: str) -> "MemberReport":
        return cls(
            name=employee.name,
            email=employee.email,
            clickup_id=employee.clickup_id or "",
            error=error,
        )


@dataclass
class TeamReport:
    team_lead: TeamLead
    members: List[MemberReport] = field(default_factory=list)

    @property
    def total_ms(self) -> int:
        return sum(m.total_ms for m in self.members)


@dataclass(frozen=True)
class DateRange:
    start_ms: int
    end_ms: int
    start_formatted: str
    end_formatted: str
    timezone: str

    def __post_init__(self):
        if self.start_ms > self.end_ms:
            raise InvalidDateRange("startDate must be before or equal to endDate.")

    def as_dict(self) -> Dict[str, str]:
        return {
            "start": self.start_formatted,
            "end": self.end_formatted,
            "timezone": self.timezone,
        }
