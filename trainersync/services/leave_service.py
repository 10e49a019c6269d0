"""
Leave workflow on the server side: apply, approve, reject, cancel, plus
balance reads and adjustments.

Applications are re-validated here against fresh database snapshots; this
verdict is authoritative over whatever the client decided earlier.
"""
import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from trainersync.core.config import settings
from trainersync.core.exceptions import (
    AccessDeniedError,
    InvalidTransitionError,
    LeaveConflictError,
    LeaveValidationError,
    NotFoundError,
)
from trainersync.models.employee import Employee, EmployeeRole
from trainersync.models.leave_balance import LeaveBalance
from trainersync.models.leave_ledger import LeaveLedgerEntry, LedgerEntryType
from trainersync.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from trainersync.models.notification import NotificationType
from trainersync.services.balance import (
    UNLIMITED,
    AccrualPolicy,
    BalanceSnapshot,
    LeaveTypeBalance,
    allowed_leave_types,
    apply_deduction,
    balance_to_column,
    format_days,
    is_unlimited,
    normalize_available,
)
from trainersync.services.dates import parse_date, today as current_day
from trainersync.services.leave_validator import (
    FIELD_BALANCE,
    FIELD_LEAVE_TYPE,
    LeaveApplication,
    LeavePolicy,
    ValidationResult,
    validate_leave_application,
)
from trainersync.services.notification import NotificationService

logger = logging.getLogger(__name__)

ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_employee_or_404(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if not employee:
        raise NotFoundError("Employee not found")
    return employee


def get_leave_or_404(db: Session, leave_id: int) -> LeaveRequest:
    leave = db.get(LeaveRequest, leave_id)
    if not leave:
        raise NotFoundError("Leave request not found")
    return leave


def load_balance_rows(db: Session, employee_id: int) -> Dict[LeaveType, LeaveBalance]:
    rows = db.query(LeaveBalance).filter(LeaveBalance.employee_id == employee_id).all()
    return {LeaveType(row.leave_type): row for row in rows}


def get_balance_snapshot(db: Session, employee: Employee) -> BalanceSnapshot:
    snapshot = BalanceSnapshot.from_rows(load_balance_rows(db, employee.id).values())
    if employee.role == EmployeeRole.HR:
        # HR is unlimited by role whatever the stored rows say
        for leave_type in LeaveType:
            snapshot.entries[leave_type] = LeaveTypeBalance(
                available=UNLIMITED,
                used=snapshot.get(leave_type).used,
                carry_forward=snapshot.get(leave_type).carry_forward,
            )
    return snapshot


def active_leaves(db: Session, employee_id: int) -> List[LeaveRequest]:
    return db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES)
    ).order_by(LeaveRequest.from_date.asc(), LeaveRequest.id.asc()).all()


# ---------------------------------------------------------------------------
# Balance writes
# ---------------------------------------------------------------------------

def row_balance(row: LeaveBalance) -> LeaveTypeBalance:
    return BalanceSnapshot.from_rows([row]).get(row.leave_type)


def write_balance(row: LeaveBalance, balance: LeaveTypeBalance) -> None:
    row.available, row.is_unlimited = balance_to_column(balance.available)
    row.used = balance.used
    row.carry_forward = balance.carry_forward


def record_ledger(
    db: Session,
    employee_id: int,
    entry_type: LedgerEntryType,
    leave_type: str,
    previous: Optional[LeaveTypeBalance],
    new: Optional[LeaveTypeBalance],
    days_affected: float = 0.0,
    performed_by_id: Optional[int] = None,
    reason: Optional[str] = None,
) -> LeaveLedgerEntry:
    def column(balance):
        if balance is None:
            return None
        return balance_to_column(balance.available)[0]

    entry = LeaveLedgerEntry(
        employee_id=employee_id,
        entry_type=entry_type.value,
        leave_type=leave_type,
        previous_balance=column(previous),
        new_balance=column(new),
        days_affected=days_affected,
        performed_by_id=performed_by_id,
        reason=reason,
    )
    db.add(entry)
    return entry


def initialize_balances(
    db: Session,
    employee: Employee,
    policy: Optional[AccrualPolicy] = None,
    performed_by_id: Optional[int] = None,
) -> Dict[LeaveType, LeaveBalance]:
    """Create the starting balance rows for a newly provisioned employee. Caller commits."""
    policy = policy or AccrualPolicy.from_settings()
    now = datetime.now(timezone.utc)
    rows = load_balance_rows(db, employee.id)
    for leave_type in LeaveType:
        if leave_type in rows:
            continue
        balance = LeaveTypeBalance(available=policy.initial_balance(employee, leave_type))
        row = LeaveBalance(employee_id=employee.id, leave_type=leave_type.value, last_increment_date=now)
        write_balance(row, balance)
        db.add(row)
        rows[leave_type] = row
    category = employee.trainer_category.value if employee.trainer_category else employee.role.value
    record_ledger(
        db, employee.id, LedgerEntryType.SYSTEM_INIT, "ALL", None, None,
        performed_by_id=performed_by_id,
        reason=f"Leave balance initialized for {category}",
    )
    return rows


def _ensure_balance_row(db: Session, employee: Employee, leave_type: LeaveType) -> LeaveBalance:
    rows = load_balance_rows(db, employee.id)
    if leave_type not in rows:
        rows = initialize_balances(db, employee)
        db.flush()
    return rows[leave_type]


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------

def validate_for_employee(
    db: Session,
    employee: Employee,
    application: LeaveApplication,
    today: Optional[date] = None,
    policy: Optional[LeavePolicy] = None,
) -> ValidationResult:
    return validate_leave_application(
        application,
        employee,
        get_balance_snapshot(db, employee),
        active_leaves(db, employee.id),
        policy=policy,
        today=today,
    )


def apply_leave(
    db: Session,
    employee: Employee,
    application: LeaveApplication,
    today: Optional[date] = None,
    policy: Optional[LeavePolicy] = None,
) -> LeaveRequest:
    if employee.role == EmployeeRole.ADMIN:
        raise AccessDeniedError("Admin cannot apply for leave")

    result = validate_for_employee(db, employee, application, today=today, policy=policy)
    if result.has_overlap:
        logger.info(f"Leave application by employee {employee.id} rejected: overlapping dates")
        raise LeaveConflictError(
            result.errors["overlapping"],
            overlapping_leave=result.first_overlap.to_wire(),
            field_errors={k: v for k, v in result.errors.items() if k != "overlapping"},
        )
    if not result.is_valid:
        logger.info(f"Leave application by employee {employee.id} rejected: {sorted(result.errors)}")
        raise LeaveValidationError(result.errors)

    raw_type = application.leave_type
    leave_type = LeaveType(raw_type.strip().upper() if isinstance(raw_type, str) else raw_type)
    from_date = parse_date(application.from_date)
    to_date = parse_date(application.to_date)

    leave = LeaveRequest(
        employee_id=employee.id,
        applicant_role=employee.role.value,
        leave_type=leave_type.value,
        from_date=from_date,
        to_date=to_date,
        number_of_days=result.number_of_days,
        reason=application.reason.strip(),
        status=LeaveStatus.PENDING.value,
    )
    try:
        db.add(leave)
        db.flush()
        _notify_safely(
            db,
            NotificationService.approvers_for(db, employee),
            "New Leave Request",
            f"{employee.display_name} applied for {format_days(leave.number_of_days)} day(s) of "
            f"{leave_type.value.lower()} leave from {from_date.isoformat()} to {to_date.isoformat()}.",
            NotificationType.LEAVE_REQUEST,
            leave.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave)
    logger.info(
        f"Leave {leave.id} created for employee {employee.id}: {leave.leave_type} "
        f"{from_date.isoformat()}..{to_date.isoformat()} ({format_days(leave.number_of_days)} days)"
    )
    return leave


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

def check_can_decide(leave: LeaveRequest, actor: Employee) -> None:
    """HR requests need the ADMIN; trainer requests need HR or ADMIN; nobody decides their own."""
    if not actor.can_approve:
        raise AccessDeniedError("Trainers cannot approve leave requests")
    if leave.employee_id == actor.id:
        raise AccessDeniedError("You cannot approve or reject your own leave request")
    if leave.applicant_role == EmployeeRole.HR.value and actor.role != EmployeeRole.ADMIN:
        raise AccessDeniedError("HR cannot approve leave requests from other HR members")


def _require_pending(leave: LeaveRequest, action: str) -> None:
    if not leave.is_actionable:
        raise InvalidTransitionError(
            f"Can only {action} pending leave requests. Current status: {leave.status}"
        )


def approve_leave(db: Session, leave_id: int, approver: Employee, remarks: str = "") -> LeaveRequest:
    leave = get_leave_or_404(db, leave_id)
    _require_pending(leave, "approve")
    check_can_decide(leave, approver)

    applicant = leave.employee
    leave_type = LeaveType(leave.leave_type)
    try:
        row = _ensure_balance_row(db, applicant, leave_type)
        before = row_balance(row)
        if applicant.role == EmployeeRole.HR:
            before = LeaveTypeBalance(available=UNLIMITED, used=before.used, carry_forward=before.carry_forward)
        after = apply_deduction(before, leave.number_of_days, leave_type)
        write_balance(row, after)
        record_ledger(
            db, applicant.id, LedgerEntryType.APPROVED, leave_type.value, before, after,
            days_affected=leave.number_of_days,
            performed_by_id=approver.id,
            reason=f"Leave approved (ID: {leave.id})",
        )

        leave.status = LeaveStatus.APPROVED.value
        leave.approved_by_id = approver.id
        leave.approved_at = datetime.now(timezone.utc)
        leave.admin_remarks = remarks or ""

        _notify_safely(
            db, [applicant], "Leave Approved",
            f"Your {leave_type.value.lower()} leave request for {format_days(leave.number_of_days)} day(s) has been APPROVED.",
            NotificationType.LEAVE_APPROVED, leave.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave)
    logger.info(
        f"Leave {leave.id} approved by {approver.id}; deducted {format_days(leave.number_of_days)} "
        f"{leave_type.value} day(s)"
    )
    return leave


def reject_leave(db: Session, leave_id: int, approver: Employee, remarks: str = "") -> LeaveRequest:
    leave = get_leave_or_404(db, leave_id)
    _require_pending(leave, "reject")
    check_can_decide(leave, approver)

    leave.status = LeaveStatus.REJECTED.value
    leave.rejected_by_id = approver.id
    leave.rejected_at = datetime.now(timezone.utc)
    leave.admin_remarks = remarks or ""
    try:
        reason_suffix = f" Reason: {remarks}" if remarks else ""
        _notify_safely(
            db, [leave.employee], "Leave Rejected",
            f"Your {leave.leave_type.lower()} leave request has been REJECTED.{reason_suffix}",
            NotificationType.LEAVE_REJECTED, leave.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave)
    logger.info(f"Leave {leave.id} rejected by {approver.id}")
    return leave


def cancel_leave(db: Session, leave_id: int, actor: Employee, remarks: str = "") -> LeaveRequest:
    """The applicant withdraws a pending request (approvers may too). Terminal states are final."""
    leave = get_leave_or_404(db, leave_id)
    is_applicant = leave.employee_id == actor.id
    if not is_applicant:
        if not actor.can_approve:
            raise AccessDeniedError("You can only cancel your own leave requests")
        check_can_decide(leave, actor)
    if not leave.is_actionable:
        raise InvalidTransitionError(
            f"Only pending leave requests can be cancelled. Current status: {leave.status}"
        )

    leave.status = LeaveStatus.CANCELLED.value
    leave.cancelled_by_id = actor.id
    leave.cancelled_at = datetime.now(timezone.utc)
    leave.admin_remarks = remarks or ""
    try:
        recipients = NotificationService.approvers_for(db, leave.employee) if is_applicant else [leave.employee]
        _notify_safely(
            db, recipients, "Leave Cancelled",
            f"The {leave.leave_type.lower()} leave from {leave.from_date.isoformat()} to "
            f"{leave.to_date.isoformat()} has been cancelled by {actor.display_name}.",
            NotificationType.LEAVE_CANCELLED, leave.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(leave)
    logger.info(f"Leave {leave.id} cancelled by {actor.id}")
    return leave


def _notify_safely(db, recipients, title, message, type, leave_id):
    try:
        NotificationService.notify_employees(db, recipients, title, message, type, leave_id)
    except Exception as e:
        # Don't fail the request if notification fails
        logger.warning(f"Notification failed: {e}", exc_info=True)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_pending(db: Session, approver: Employee) -> List[LeaveRequest]:
    query = db.query(LeaveRequest).filter(
        LeaveRequest.status == LeaveStatus.PENDING.value,
        LeaveRequest.employee_id != approver.id,
    )
    if approver.role == EmployeeRole.HR:
        # HR leave is routed to the ADMIN only
        query = query.filter(LeaveRequest.applicant_role != EmployeeRole.HR.value)
    return query.order_by(LeaveRequest.applied_on.desc(), LeaveRequest.id.desc()).all()


def get_history(
    db: Session,
    employee_id: int,
    status: Optional[str] = None,
    leave_type: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> Tuple[List[LeaveRequest], Dict[str, int]]:
    limit = min(limit or settings.leave.history_page_size, settings.leave.history_max_page_size)
    page = max(page, 1)

    query = db.query(LeaveRequest).filter(LeaveRequest.employee_id == employee_id)
    if status:
        query = query.filter(LeaveRequest.status == status.upper())
    if leave_type:
        query = query.filter(LeaveRequest.leave_type == leave_type.upper())
    if from_date and to_date:
        query = query.filter(LeaveRequest.from_date >= from_date, LeaveRequest.from_date <= to_date)

    total = query.count()
    items = query.order_by(LeaveRequest.applied_on.desc(), LeaveRequest.id.desc()).offset(
        (page - 1) * limit
    ).limit(limit).all()
    return items, {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
    }


def get_statistics(db: Session, employee: Employee, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or current_day()
    base = db.query(LeaveRequest).filter(LeaveRequest.employee_id == employee.id)
    approved_this_year = base.filter(
        LeaveRequest.status == LeaveStatus.APPROVED.value,
        LeaveRequest.from_date >= date(today.year, 1, 1),
        LeaveRequest.from_date <= date(today.year, 12, 31),
    ).count()
    return {
        "category": employee.trainer_category.value if employee.trainer_category else None,
        "role": employee.role.value,
        "balance": get_balance_snapshot(db, employee).to_wire(),
        "statistics": {
            "approvedThisYear": approved_this_year,
            "pendingRequests": base.filter(LeaveRequest.status == LeaveStatus.PENDING.value).count(),
            "rejectedRequests": base.filter(LeaveRequest.status == LeaveStatus.REJECTED.value).count(),
        },
        "allowedLeaveTypes": [lt.value for lt in allowed_leave_types(employee)],
    }


def get_ledger(db: Session, employee_id: int, limit: int = 50) -> List[LeaveLedgerEntry]:
    entries = db.query(LeaveLedgerEntry).filter(
        LeaveLedgerEntry.employee_id == employee_id
    ).order_by(LeaveLedgerEntry.id.desc()).limit(limit).all()
    return list(reversed(entries))


# ---------------------------------------------------------------------------
# Adjustments
# ---------------------------------------------------------------------------

def edit_balance(
    db: Session,
    employee_id: int,
    leave_type: str,
    new_available: Any,
    editor: Employee,
    reason: Optional[str] = None,
) -> LeaveBalance:
    employee = get_employee_or_404(db, employee_id)
    try:
        leave_type = LeaveType(str(leave_type).upper())
    except ValueError:
        raise LeaveValidationError({FIELD_LEAVE_TYPE: "Invalid leave type. Must be one of: SICK, CASUAL, PAID"})
    if leave_type not in allowed_leave_types(employee):
        raise LeaveValidationError(
            {FIELD_LEAVE_TYPE: f"{leave_type.value} leaves are not available for this employee"}
        )
    try:
        available = normalize_available(new_available)
    except ValueError as e:
        raise LeaveValidationError({FIELD_BALANCE: str(e)})

    try:
        row = _ensure_balance_row(db, employee, leave_type)
        before = row_balance(row)
        after = LeaveTypeBalance(available=available, used=before.used, carry_forward=before.carry_forward)
        write_balance(row, after)
        delta = 0.0
        if not is_unlimited(before.available) and not is_unlimited(available):
            delta = available.days - before.available.days
        record_ledger(
            db, employee.id, LedgerEntryType.ADMIN_EDIT, leave_type.value, before, after,
            days_affected=delta,
            performed_by_id=editor.id,
            reason=reason or "Admin adjustment",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    logger.info(f"Employee {editor.id} set {leave_type.value} balance of employee {employee.id} to {available}")
    return row
