"""Leave balance ledger: balance values, per-employee snapshots and accrual policy.

A balance is either a finite number of days or unlimited. Unlimited is its
own variant rather than a magic number, so "Infinity", "Unlimited" and the
legacy 9999 marker all collapse into `UNLIMITED` at the edges.
"""
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from trainersync.core.config import settings
from trainersync.core.exceptions import InsufficientBalanceError
from trainersync.models.employee import EmployeeRole, TrainerCategory
from trainersync.models.leave_request import LeaveType

LEGACY_UNLIMITED_SENTINEL = 9999
UNLIMITED_LABEL = "Unlimited"
_UNLIMITED_STRINGS = {"infinity", "unlimited", "inf"}


@dataclass(frozen=True)
class Finite:
    days: float

    def __post_init__(self):
        if math.isnan(self.days):
            raise ValueError("Leave balance must be a number")
        if self.days < 0:
            raise ValueError(f"Leave balance cannot be negative: {self.days}")

    def __str__(self):
        return format_days(self.days)


class Unlimited:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNLIMITED"

    def __str__(self):
        return UNLIMITED_LABEL


UNLIMITED = Unlimited()
Balance = Union[Finite, Unlimited]


def format_days(days: float) -> str:
    return str(int(days)) if float(days).is_integer() else f"{days:g}"


def is_unlimited(balance: Balance) -> bool:
    return balance is UNLIMITED


def normalize_available(raw: Any) -> Balance:
    """Map a stored or wire `available` value onto the Balance variant."""
    if isinstance(raw, (Finite, Unlimited)):
        return raw
    if raw is None:
        return Finite(0)
    if isinstance(raw, str):
        text = raw.strip()
        if text.lower() in _UNLIMITED_STRINGS:
            return UNLIMITED
        raw = float(text)
    if isinstance(raw, bool):
        raise ValueError("Boolean is not a valid leave balance")
    value = float(raw)
    if value == float("inf") or value == LEGACY_UNLIMITED_SENTINEL:
        return UNLIMITED
    return Finite(value)


def balance_to_wire(balance: Balance) -> Union[float, str]:
    return UNLIMITED_LABEL if is_unlimited(balance) else balance.days


def balance_to_column(balance: Balance) -> Tuple[Optional[float], bool]:
    """(available, is_unlimited) column values for a LeaveBalance row."""
    if is_unlimited(balance):
        return None, True
    return balance.days, False


@dataclass
class LeaveTypeBalance:
    available: Balance = field(default_factory=lambda: Finite(0))
    used: float = 0.0
    carry_forward: float = 0.0

    def to_wire(self) -> Dict[str, Any]:
        return {
            "available": balance_to_wire(self.available),
            "used": self.used,
            "carryForward": self.carry_forward,
        }


@dataclass
class BalanceSnapshot:
    """Balances for one employee, keyed by leave type."""
    entries: Dict[LeaveType, LeaveTypeBalance] = field(default_factory=dict)

    def get(self, leave_type: Union[LeaveType, str]) -> LeaveTypeBalance:
        return self.entries.get(LeaveType(leave_type), LeaveTypeBalance())

    @classmethod
    def from_rows(cls, rows: Iterable[Any]) -> "BalanceSnapshot":
        entries = {}
        for row in rows:
            available = UNLIMITED if row.is_unlimited else normalize_available(row.available)
            entries[LeaveType(row.leave_type)] = LeaveTypeBalance(
                available=available,
                used=row.used or 0.0,
                carry_forward=row.carry_forward or 0.0,
            )
        return cls(entries)

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "BalanceSnapshot":
        """
        Accepts `{sick: {available, used, carryForward}, ...}`; a bare
        value per type is read as `available` only.
        """
        entries = {}
        for leave_type in LeaveType:
            raw = payload.get(leave_type.value.lower())
            if raw is None:
                continue
            if isinstance(raw, Mapping):
                entries[leave_type] = LeaveTypeBalance(
                    available=normalize_available(raw.get("available")),
                    used=float(raw.get("used") or 0),
                    carry_forward=float(raw.get("carryForward") or 0),
                )
            else:
                entries[leave_type] = LeaveTypeBalance(available=normalize_available(raw))
        return cls(entries)

    def to_wire(self) -> Dict[str, Dict[str, Any]]:
        return {lt.value.lower(): self.get(lt).to_wire() for lt in LeaveType}


@dataclass(frozen=True)
class EmployeeProfile:
    """The parts of an employee the ledger and validator look at."""
    role: EmployeeRole
    trainer_category: Optional[TrainerCategory] = None

    @classmethod
    def of(cls, employee: Any) -> "EmployeeProfile":
        if isinstance(employee, cls):
            return employee
        return cls(role=EmployeeRole(employee.role), trainer_category=_category(employee))


def _category(employee: Any) -> Optional[TrainerCategory]:
    raw = getattr(employee, "trainer_category", None)
    return TrainerCategory(raw) if raw is not None else None


def allowed_leave_types(employee: Any) -> Tuple[LeaveType, ...]:
    profile = EmployeeProfile.of(employee)
    if profile.role == EmployeeRole.HR:
        return tuple(LeaveType)
    if profile.role == EmployeeRole.TRAINER:
        if profile.trainer_category == TrainerCategory.PERMANENT:
            return tuple(LeaveType)
        if profile.trainer_category == TrainerCategory.CONTRACTED:
            return (LeaveType.PAID,)
    return ()


def available_days(employee: Any, leave_type: Union[LeaveType, str], snapshot: BalanceSnapshot) -> Balance:
    profile = EmployeeProfile.of(employee)
    if profile.role == EmployeeRole.HR:
        return UNLIMITED
    leave_type = LeaveType(leave_type)
    if leave_type not in allowed_leave_types(profile):
        return Finite(0)
    return snapshot.get(leave_type).available


def has_sufficient_balance(
    employee: Any,
    leave_type: Union[LeaveType, str],
    requested_days: float,
    snapshot: BalanceSnapshot,
) -> bool:
    available = available_days(employee, leave_type, snapshot)
    if is_unlimited(available):
        return True
    return requested_days <= available.days


def apply_deduction(balance: LeaveTypeBalance, days: float, leave_type: Union[LeaveType, str]) -> LeaveTypeBalance:
    """Balance after `days` of approved leave: available down (finite only), used up."""
    if is_unlimited(balance.available):
        return replace(balance, used=balance.used + days)
    if balance.available.days < days:
        raise InsufficientBalanceError(
            f"Insufficient {LeaveType(leave_type).value} leave balance. "
            f"Available: {format_days(balance.available.days)} days, Required: {format_days(days)} days"
        )
    return replace(balance, available=Finite(balance.available.days - days), used=balance.used + days)


class AccrualPolicy:
    """
    Initial balances, monthly increments and year-end rollover.

    PERMANENT trainers accrue SICK/CASUAL monthly and roll unused days into
    carry-forward; CONTRACTED trainers keep a fixed balance. PAID is
    unlimited for every trainer and everything is unlimited for HR.
    """

    def __init__(
        self,
        monthly_increment: Optional[Mapping[str, float]] = None,
        increment_interval_days: Optional[int] = None,
        rollover_max_days: Optional[float] = None,
    ):
        self.monthly_increments = {
            LeaveType(k): float(v)
            for k, v in (monthly_increment if monthly_increment is not None else settings.leave.monthly_increment).items()
        }
        self.increment_interval_days = (
            increment_interval_days if increment_interval_days is not None else settings.leave.increment_interval_days
        )
        self.rollover_max_days = rollover_max_days

    @classmethod
    def from_settings(cls) -> "AccrualPolicy":
        return cls(
            monthly_increment=settings.leave.monthly_increment,
            increment_interval_days=settings.leave.increment_interval_days,
            rollover_max_days=settings.leave.rollover_max_days,
        )

    def initial_balance(self, employee: Any, leave_type: Union[LeaveType, str]) -> Balance:
        profile = EmployeeProfile.of(employee)
        leave_type = LeaveType(leave_type)
        if profile.role == EmployeeRole.HR:
            return UNLIMITED
        if profile.role == EmployeeRole.TRAINER and leave_type == LeaveType.PAID:
            return UNLIMITED
        return Finite(0)

    def accrues(self, employee: Any) -> bool:
        profile = EmployeeProfile.of(employee)
        return profile.role == EmployeeRole.TRAINER and profile.trainer_category == TrainerCategory.PERMANENT

    def monthly_increment(self, employee: Any, leave_type: Union[LeaveType, str]) -> float:
        if not self.accrues(employee):
            return 0.0
        return self.monthly_increments.get(LeaveType(leave_type), 0.0)

    def increment(self, balance: LeaveTypeBalance, days: float) -> LeaveTypeBalance:
        if is_unlimited(balance.available) or days <= 0:
            return balance
        return replace(balance, available=Finite(balance.available.days + days))

    def rollover(self, balance: LeaveTypeBalance) -> LeaveTypeBalance:
        """Year-end: unused finite days move to carry-forward (capped), available and used reset."""
        if is_unlimited(balance.available):
            return balance
        carried = balance.available.days
        if self.rollover_max_days is not None:
            carried = min(carried, self.rollover_max_days)
        return LeaveTypeBalance(
            available=Finite(0),
            used=0.0,
            carry_forward=balance.carry_forward + carried,
        )
