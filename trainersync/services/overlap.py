from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from trainersync.models.leave_request import INACTIVE_LEAVE_STATUSES, LeaveStatus
from trainersync.services.dates import parse_date


@dataclass(frozen=True)
class LeaveRecord:
    """Existing leave as seen by the overlap check (ORM row or API payload)."""
    from_date: date
    to_date: date
    status: LeaveStatus
    leave_type: str
    id: Optional[int] = None
    reason: Optional[str] = None

    @classmethod
    def of(cls, record: Any) -> "LeaveRecord":
        if isinstance(record, cls):
            return record
        if isinstance(record, dict):
            return cls(
                id=record.get("id"),
                from_date=parse_date(record.get("fromDate") or record.get("from_date")),
                to_date=parse_date(record.get("toDate") or record.get("to_date")),
                status=LeaveStatus(record["status"]),
                leave_type=record.get("leaveType") or record.get("leave_type"),
                reason=record.get("reason"),
            )
        return cls(
            id=record.id,
            from_date=parse_date(record.from_date),
            to_date=parse_date(record.to_date),
            status=LeaveStatus(record.status),
            leave_type=record.leave_type,
            reason=record.reason,
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fromDate": self.from_date.isoformat(),
            "toDate": self.to_date.isoformat(),
            "status": self.status.value,
            "leaveType": _value(self.leave_type),
            "reason": self.reason,
        }


def _value(raw: Any) -> str:
    return raw.value if isinstance(raw, Enum) else str(raw)


def ranges_overlap(a_from: date, a_to: date, b_from: date, b_to: date) -> bool:
    # Inclusive: sharing a single boundary day is an overlap
    return a_from <= b_to and a_to >= b_from


def find_overlapping(new_from: date, new_to: date, existing: Iterable[Any]) -> List[LeaveRecord]:
    """Records (in input order) whose dates intersect [new_from, new_to], ignoring rejected/cancelled ones."""
    conflicts = []
    for raw in existing:
        record = LeaveRecord.of(raw)
        if record.status in INACTIVE_LEAVE_STATUSES:
            continue
        if ranges_overlap(new_from, new_to, record.from_date, record.to_date):
            conflicts.append(record)
    return conflicts


def describe_overlap(record: LeaveRecord) -> str:
    return (
        f"You already have a {record.status.value.lower()} {_value(record.leave_type).lower()} leave "
        f"from {record.from_date.isoformat()} to {record.to_date.isoformat()}. "
        f"Please select different dates."
    )
