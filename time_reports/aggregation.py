from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from time_reports.models import TaskAggregate, TimeEntry


@dataclass
class TimeAggregate:
    total_ms: int = 0
    per_task: Dict[str, TaskAggregate] = field(default_factory=dict)

    @property
    def tasks(self) -> List[TaskAggregate]:
        return list(self.per_task.values())


def aggregate_time_entries(time_entries: Iterable[TimeEntry]) -> TimeAggregate:
    """
    Group time entries by task and sum their durations.

    - entries without a task are skipped and do not count toward the total
    - per_task keeps first-seen task order; totals do not depend on order
    """
    result = TimeAggregate()

    for entry in time_entries:
        task = entry.task
        if task is None or not task.id:
            continue

        agg = result.per_task.get(task.id)
        if agg is None:
            agg = result.per_task[task.id] = TaskAggregate.for_task(task)

        agg.time_ms += entry.duration_ms
        result.total_ms += entry.duration_ms

    return result
