import pytest

from trainersync.core.exceptions import InsufficientBalanceError
from trainersync.models.employee import EmployeeRole, TrainerCategory
from trainersync.models.leave_request import LeaveType
from trainersync.services.balance import (
    UNLIMITED,
    AccrualPolicy,
    BalanceSnapshot,
    EmployeeProfile,
    Finite,
    LeaveTypeBalance,
    allowed_leave_types,
    apply_deduction,
    available_days,
    has_sufficient_balance,
    normalize_available,
)

HR = EmployeeProfile(EmployeeRole.HR)
ADMIN = EmployeeProfile(EmployeeRole.ADMIN)
PERMANENT = EmployeeProfile(EmployeeRole.TRAINER, TrainerCategory.PERMANENT)
CONTRACTED = EmployeeProfile(EmployeeRole.TRAINER, TrainerCategory.CONTRACTED)


@pytest.mark.parametrize("raw", ["Infinity", "Unlimited", "unlimited", float("inf"), 9999, "9999"])
def test_unlimited_spellings_normalize_to_one_variant(raw):
    assert normalize_available(raw) is UNLIMITED


def test_numbers_normalize_to_finite():
    assert normalize_available(4) == Finite(4)
    assert normalize_available("2.5") == Finite(2.5)
    assert normalize_available(None) == Finite(0)


def test_negative_balance_rejected():
    with pytest.raises(ValueError):
        normalize_available(-1)


@pytest.mark.parametrize("raw", ["nan", "NaN", float("nan"), "-inf"])
def test_non_numeric_balances_rejected(raw):
    with pytest.raises(ValueError):
        normalize_available(raw)


@pytest.mark.parametrize("raw", [10000, 9998.5, "12000"])
def test_large_finite_balances_stay_finite(raw):
    assert normalize_available(raw) == Finite(float(raw))


def test_snapshot_from_wire_reads_nested_and_bare_values():
    snapshot = BalanceSnapshot.from_wire({
        "sick": {"available": 3, "used": 1, "carryForward": 2},
        "casual": 1,
        "paid": {"available": "Infinity"},
    })
    assert snapshot.get(LeaveType.SICK) == LeaveTypeBalance(Finite(3), 1.0, 2.0)
    assert snapshot.get(LeaveType.CASUAL).available == Finite(1)
    assert snapshot.get(LeaveType.PAID).available is UNLIMITED
    assert snapshot.to_wire()["paid"]["available"] == "Unlimited"


def test_allowed_leave_types_by_role_and_category():
    assert allowed_leave_types(HR) == tuple(LeaveType)
    assert allowed_leave_types(PERMANENT) == tuple(LeaveType)
    assert allowed_leave_types(CONTRACTED) == (LeaveType.PAID,)
    assert allowed_leave_types(ADMIN) == ()


@pytest.mark.parametrize("leave_type", list(LeaveType))
@pytest.mark.parametrize("days", [0, 1, 30, 10_000])
def test_hr_always_has_sufficient_balance(leave_type, days):
    empty = BalanceSnapshot.from_wire({"sick": 0, "casual": 0, "paid": 0})
    assert has_sufficient_balance(HR, leave_type, days, empty)
    assert available_days(HR, leave_type, empty) is UNLIMITED


@pytest.mark.parametrize("leave_type", [LeaveType.SICK, LeaveType.CASUAL])
def test_contracted_trainer_gets_nothing_for_unoffered_types(leave_type):
    generous = BalanceSnapshot.from_wire({"sick": 50, "casual": 50, "paid": "Unlimited"})
    assert available_days(CONTRACTED, leave_type, generous) == Finite(0)
    assert not has_sufficient_balance(CONTRACTED, leave_type, 1, generous)


def test_finite_sufficiency_is_inclusive():
    snapshot = BalanceSnapshot.from_wire({"sick": 3})
    assert has_sufficient_balance(PERMANENT, LeaveType.SICK, 3, snapshot)
    assert not has_sufficient_balance(PERMANENT, LeaveType.SICK, 4, snapshot)


def test_deduction_moves_days_from_available_to_used():
    after = apply_deduction(LeaveTypeBalance(Finite(5), used=1), 2, LeaveType.SICK)
    assert after == LeaveTypeBalance(Finite(3), used=3)


def test_deduction_on_unlimited_only_tracks_usage():
    after = apply_deduction(LeaveTypeBalance(UNLIMITED), 4, LeaveType.PAID)
    assert after.available is UNLIMITED
    assert after.used == 4


def test_overdraft_rejected():
    with pytest.raises(InsufficientBalanceError) as exc:
        apply_deduction(LeaveTypeBalance(Finite(1)), 2, LeaveType.CASUAL)
    assert "Available: 1 days, Required: 2 days" in exc.value.message


def test_accrual_policy_initial_balances():
    policy = AccrualPolicy(monthly_increment={"SICK": 1, "CASUAL": 1, "PAID": 0})
    assert policy.initial_balance(PERMANENT, LeaveType.SICK) == Finite(0)
    assert policy.initial_balance(PERMANENT, LeaveType.PAID) is UNLIMITED
    assert policy.initial_balance(CONTRACTED, LeaveType.PAID) is UNLIMITED
    assert policy.initial_balance(HR, LeaveType.CASUAL) is UNLIMITED


def test_only_permanent_trainers_accrue():
    policy = AccrualPolicy(monthly_increment={"SICK": 1, "CASUAL": 2, "PAID": 0})
    assert policy.monthly_increment(PERMANENT, LeaveType.CASUAL) == 2
    assert policy.monthly_increment(CONTRACTED, LeaveType.CASUAL) == 0
    assert policy.monthly_increment(HR, LeaveType.SICK) == 0


def test_rollover_caps_carry_forward():
    policy = AccrualPolicy(monthly_increment={}, rollover_max_days=5)
    after = policy.rollover(LeaveTypeBalance(Finite(8), used=4, carry_forward=1))
    assert after == LeaveTypeBalance(Finite(0), used=0.0, carry_forward=6)


def test_rollover_without_cap_carries_everything():
    policy = AccrualPolicy(monthly_increment={}, rollover_max_days=None)
    after = policy.rollover(LeaveTypeBalance(Finite(8)))
    assert after.carry_forward == 8
