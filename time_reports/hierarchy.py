"""
Team hierarchy reconstruction from the Allocation list.

The Allocation list stores the org chart as flat tasks. Each task carries
custom fields; a team lead is marked by the team-lead option in "Tier",
and an employee points at its lead through the "Team Lead" user field.
Records arrive in no particular order, so leads are registered first and
employees are attached afterwards, with a buffer for leads that only
become known later in the scan.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from time_reports.models import Employee, TeamLead

logger = logging.getLogger("team-hierarchy")

UNASSIGNED_KEY = "unassigned"
UNASSIGNED_NAME = "Unassigned"


class AllocationField(str, Enum):
    TIER = "Tier"
    EMAIL = "Phaedra Email"
    CLICKUP_ID = "Clickup ID"
    TEAM_LEAD = "Team Lead"


class CustomFields:
    """Typed lookup over a ClickUp task's custom_fields list."""

    def __init__(self, raw_fields: Optional[List[Dict]]):
        self._values: Dict[str, Any] = {}
        for f in raw_fields or []:
            if not isinstance(f, dict) or not f.get("name"):
                continue
            # First occurrence wins if a name is duplicated
            self._values.setdefault(f["name"], f.get("value"))

    @classmethod
    def of(cls, record: Dict) -> "CustomFields":
        return cls(record.get("custom_fields"))

    def raw(self, field: AllocationField) -> Any:
        return self._values.get(field.value)

    def text(self, field: AllocationField) -> Optional[str]:
        """Scalar value as a stripped string, or None when missing/empty."""
        value = self.raw(field)
        if value is None or isinstance(value, (list, dict)):
            return None
        text = str(value).strip()
        return text or None

    def values(self, field: AllocationField) -> List[Any]:
        """List-shaped value (labels, users); scalars are wrapped."""
        value = self.raw(field)
        if value is None:
            return []
        if isinstance(value, list):
            return value
        return [value]

    def first_relation_email(self, field: AllocationField) -> Optional[str]:
        """Lowercased email of the first related user, or None."""
        related = self.values(field)
        if not related:
            return None
        first = related[0]
        email = first.get("email") if isinstance(first, dict) else first
        if not isinstance(email, str) or not email.strip():
            return None
        return email.strip().lower()


def _record_name(record: Dict) -> str:
    return record.get("name") or "Unnamed"


def _is_team_lead(fields: CustomFields, team_lead_tier_id: str) -> bool:
    return bool(team_lead_tier_id) and team_lead_tier_id in [
        str(v) for v in fields.values(AllocationField.TIER)
    ]


def build_team_hierarchy(
    records: List[Dict], team_lead_tier_id: str
) -> Dict[str, TeamLead]:
    """
    Build {lead_email: TeamLead} from Allocation list records.

    Pass 1 registers leads (tier contains team_lead_tier_id, email present).
    Pass 2 attaches every record with a ClickUp ID: to its lead when known,
    to a buffer when the lead email is not registered yet, or to the
    "Unassigned" bucket when there is no lead email at all.
    Pass 3 drains the buffer; pairings whose lead never appeared are dropped.
    """
    leads: Dict[str, TeamLead] = {}
    pending: List[Tuple[Employee, str]] = []

    # Pass 1: team leads
    for record in records:
        fields = CustomFields.of(record)
        email = fields.text(AllocationField.EMAIL)
        if email and _is_team_lead(fields, team_lead_tier_id):
            email = email.lower()
            leads[email] = TeamLead(name=_record_name(record), email=email)

    # Pass 2: employees
    for record in records:
        fields = CustomFields.of(record)
        clickup_id = fields.text(AllocationField.CLICKUP_ID)
        if not clickup_id:
            continue

        email = fields.text(AllocationField.EMAIL)
        employee = Employee(
            name=_record_name(record),
            email=email.lower() if email else None,
            clickup_id=clickup_id,
        )
        lead_email = fields.first_relation_email(AllocationField.TEAM_LEAD)

        if lead_email and lead_email in leads:
            leads[lead_email].employees.append(employee)
        elif lead_email:
            pending.append((employee, lead_email))
        else:
            if UNASSIGNED_KEY not in leads:
                leads[UNASSIGNED_KEY] = TeamLead(
                    name=UNASSIGNED_NAME, email=UNASSIGNED_KEY
                )
            leads[UNASSIGNED_KEY].employees.append(employee)

    # Pass 3: late-resolved leads
    for employee, lead_email in pending:
        if lead_email in leads:
            leads[lead_email].employees.append(employee)
        else:
            logger.warning(
                f"⚠️ Dropping {employee.name}: team lead {lead_email} "
                "is not a team lead in the Allocation list"
            )

    logger.info(f"👥 Parsed {len(leads)} teams")
    return leads
