"""
Leave application validation.

Every rule runs on every pass and contributes at most one message keyed by
field name, so a form can show all problems at once. The same function
backs the API (against fresh database snapshots) and the client workflow
(against cached snapshots).
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from trainersync.core.config import settings
from trainersync.models.employee import EmployeeRole
from trainersync.models.leave_request import LeaveType
from trainersync.services.balance import (
    BalanceSnapshot,
    EmployeeProfile,
    allowed_leave_types,
    available_days,
    format_days,
    has_sufficient_balance,
)
from trainersync.services.dates import days_between_inclusive, parse_date, today as current_day
from trainersync.services.overlap import LeaveRecord, describe_overlap, find_overlapping

FIELD_LEAVE_TYPE = "leaveType"
FIELD_FROM_DATE = "fromDate"
FIELD_TO_DATE = "toDate"
FIELD_DATE_RANGE = "dateRange"
FIELD_REASON = "reason"
FIELD_BALANCE = "balance"
FIELD_OVERLAPPING = "overlapping"


@dataclass(frozen=True)
class LeavePolicy:
    min_advance_notice_days: int = 1
    max_leave_days: int = 30
    reason_min_words: int = 7
    reason_min_characters: int = 30
    reason_max_characters: int = 500

    @classmethod
    def from_settings(cls) -> "LeavePolicy":
        leave = settings.leave
        return cls(
            min_advance_notice_days=leave.min_advance_notice_days,
            max_leave_days=leave.max_leave_days,
            reason_min_words=leave.reason_min_words,
            reason_min_characters=leave.reason_min_characters,
            reason_max_characters=leave.reason_max_characters,
        )


@dataclass
class LeaveApplication:
    """Current form state; values may be missing or still unparsed strings."""
    leave_type: Optional[Any] = None
    from_date: Optional[Any] = None
    to_date: Optional[Any] = None
    reason: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LeaveApplication":
        def pick(camel: str, snake: str):
            value = payload.get(camel)
            return payload.get(snake) if value is None else value

        return cls(
            leave_type=pick("leaveType", "leave_type"),
            from_date=pick("fromDate", "from_date"),
            to_date=pick("toDate", "to_date"),
            reason=payload.get("reason"),
        )

    def to_payload(self) -> Dict[str, Any]:
        def iso(value):
            return value.isoformat() if isinstance(value, date) else value

        leave_type = self.leave_type.value if isinstance(self.leave_type, LeaveType) else self.leave_type
        return {
            "leaveType": leave_type,
            "fromDate": iso(self.from_date),
            "toDate": iso(self.to_date),
            "reason": self.reason,
        }


@dataclass
class ValidationResult:
    errors: Dict[str, str] = field(default_factory=dict)
    number_of_days: Optional[int] = None
    overlaps: List[LeaveRecord] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_overlap(self) -> bool:
        return FIELD_OVERLAPPING in self.errors

    @property
    def first_overlap(self) -> Optional[LeaveRecord]:
        return self.overlaps[0] if self.overlaps else None


def _parse_leave_type(raw: Any, errors: Dict[str, str]) -> Optional[LeaveType]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        errors[FIELD_LEAVE_TYPE] = "Leave type is required"
        return None
    try:
        return LeaveType(raw.strip().upper() if isinstance(raw, str) else raw)
    except ValueError:
        errors[FIELD_LEAVE_TYPE] = "Invalid leave type. Must be one of: SICK, CASUAL, PAID"
        return None


def _parse_field_date(raw: Any, field_name: str, label: str, errors: Dict[str, str]) -> Optional[date]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        errors[field_name] = f"{label} is required"
        return None
    try:
        return parse_date(raw)
    except (TypeError, ValueError):
        errors[field_name] = f"Invalid {label.lower()}"
        return None


def check_reason(reason: Optional[str], policy: LeavePolicy) -> Optional[str]:
    text = (reason or "").strip()
    if not text:
        return "Reason is required"
    if len(text) > policy.reason_max_characters:
        return f"Reason cannot exceed {policy.reason_max_characters} characters"
    if len(text.split()) < policy.reason_min_words or len(text) < policy.reason_min_characters:
        return (
            f"Reason must be at least {policy.reason_min_words} words "
            f"and {policy.reason_min_characters} characters long"
        )
    return None


def validate_leave_application(
    application: LeaveApplication,
    employee: Any,
    balance: BalanceSnapshot,
    existing_leaves: Iterable[Any] = (),
    policy: Optional[LeavePolicy] = None,
    today: Optional[date] = None,
) -> ValidationResult:
    policy = policy or LeavePolicy.from_settings()
    today = today or current_day()
    profile = EmployeeProfile.of(employee)
    result = ValidationResult()
    errors = result.errors

    # Leave type must exist and be offered to this employee
    leave_type = _parse_leave_type(application.leave_type, errors)
    if leave_type is not None and leave_type not in allowed_leave_types(profile):
        if profile.role == EmployeeRole.ADMIN:
            errors[FIELD_LEAVE_TYPE] = "Admin cannot apply for leave"
        else:
            category = profile.trainer_category.value if profile.trainer_category else "this"
            errors[FIELD_LEAVE_TYPE] = f"{leave_type.value} leaves are not available for {category} trainers"
        leave_type = None

    from_date = _parse_field_date(application.from_date, FIELD_FROM_DATE, "From date", errors)
    to_date = _parse_field_date(application.to_date, FIELD_TO_DATE, "To date", errors)

    # 1. Advance notice
    if from_date is not None:
        if from_date < today:
            errors[FIELD_FROM_DATE] = "Cannot apply for leave in the past"
        elif (from_date - today).days < policy.min_advance_notice_days:
            errors[FIELD_FROM_DATE] = (
                f"Leave must be applied at least {policy.min_advance_notice_days} day(s) in advance"
            )

    # 2. Range validity
    range_ok = from_date is not None and to_date is not None
    if range_ok and to_date < from_date:
        errors[FIELD_TO_DATE] = "To date cannot be earlier than from date"
        range_ok = False
    if range_ok:
        result.number_of_days = days_between_inclusive(from_date, to_date)
        if result.number_of_days > policy.max_leave_days:
            errors[FIELD_DATE_RANGE] = (
                f"Leave cannot exceed {policy.max_leave_days} days "
                f"(requested {result.number_of_days} days)"
            )

    # 3. Overlap with pending/approved leave
    if range_ok:
        result.overlaps = find_overlapping(from_date, to_date, existing_leaves)
        if result.overlaps:
            errors[FIELD_OVERLAPPING] = describe_overlap(result.overlaps[0])

    # 4. Balance sufficiency; HR balances are unlimited
    if range_ok and leave_type is not None and profile.role != EmployeeRole.HR:
        if not has_sufficient_balance(profile, leave_type, result.number_of_days, balance):
            available = available_days(profile, leave_type, balance)
            errors[FIELD_BALANCE] = (
                f"Insufficient {leave_type.value} leave balance. "
                f"Available: {available} days, Required: {format_days(result.number_of_days)} days"
            )

    # 5. Reason quality
    reason_error = check_reason(application.reason, policy)
    if reason_error:
        errors[FIELD_REASON] = reason_error

    return result


def is_submit_eligible(result: ValidationResult, application: LeaveApplication) -> bool:
    # An empty map already rules out overlap; it is one of the keys
    return result.is_valid and bool(application.leave_type)
