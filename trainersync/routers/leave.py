"""
Leave endpoints: apply, validate, decide, and read balances and history.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from trainersync.core.config import settings
from trainersync.core.limiter import limiter
from trainersync.core.schemas import ApiResponse
from trainersync.database import get_db
from trainersync.models.employee import Employee, EmployeeRole
from trainersync.routers.auth_deps import (
    check_self_or_approver,
    get_current_employee,
    require_approver,
    require_role,
)
from trainersync.schemas.leave import (
    LeaveApplyRequest,
    LeaveBalanceResponse,
    LeaveDecisionRequest,
    LeaveRequestResponse,
    LeaveValidationResponse,
    LedgerEntryResponse,
)
from trainersync.services import leave_service
from trainersync.services.balance import allowed_leave_types

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leaves", tags=["Leave"])


def _balance_payload(db: Session, employee: Employee) -> LeaveBalanceResponse:
    snapshot = leave_service.get_balance_snapshot(db, employee)
    return LeaveBalanceResponse(
        employee_id=employee.id,
        role=employee.role.value,
        trainer_category=employee.trainer_category.value if employee.trainer_category else None,
        balance=snapshot.to_wire(),
        allowed_leave_types=[lt.value for lt in allowed_leave_types(employee)],
    )


def _history_response(
    db: Session,
    employee_id: int,
    status_filter: Optional[str],
    leave_type: Optional[str],
    from_date: Optional[date],
    to_date: Optional[date],
    page: int,
    limit: Optional[int],
) -> ApiResponse[List[LeaveRequestResponse]]:
    items, pagination = leave_service.get_history(
        db, employee_id,
        status=status_filter,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
        page=page,
        limit=limit,
    )
    return ApiResponse.ok(
        [LeaveRequestResponse.model_validate(item) for item in items],
        metadata={"pagination": pagination},
    )


# --- Apply ---

@router.post("", response_model=ApiResponse[LeaveRequestResponse], status_code=status.HTTP_201_CREATED)
@router.post("/apply", response_model=ApiResponse[LeaveRequestResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.leave_apply_rate_limit)
def apply_leave(
    request: Request,
    payload: LeaveApplyRequest,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_role([EmployeeRole.TRAINER, EmployeeRole.HR])),
):
    leave = leave_service.apply_leave(db, current_employee, payload.to_application())
    return ApiResponse.ok(
        LeaveRequestResponse.model_validate(leave),
        message="Leave application submitted successfully",
    )


@router.post("/validate", response_model=ApiResponse[LeaveValidationResponse])
def validate_leave(
    payload: LeaveApplyRequest,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_role([EmployeeRole.TRAINER, EmployeeRole.HR])),
):
    """Dry run: the same checks as apply, returned as a field -> message map."""
    result = leave_service.validate_for_employee(db, current_employee, payload.to_application())
    return ApiResponse.ok(LeaveValidationResponse(
        valid=result.is_valid,
        number_of_days=result.number_of_days,
        errors=result.errors,
        overlapping_leave=result.first_overlap.to_wire() if result.first_overlap else None,
    ))


# --- Balances ---

@router.get("/balance", response_model=ApiResponse[LeaveBalanceResponse])
def get_my_balance(
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    return ApiResponse.ok(_balance_payload(db, current_employee))


@router.get("/hr/balance", response_model=ApiResponse[LeaveBalanceResponse])
def get_hr_balance(
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_role([EmployeeRole.HR])),
):
    return ApiResponse.ok(_balance_payload(db, current_employee))


@router.get("/balance/{employee_id}", response_model=ApiResponse[LeaveBalanceResponse])
def get_employee_balance(
    employee_id: int,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    employee = leave_service.get_employee_or_404(db, employee_id)
    return ApiResponse.ok(_balance_payload(db, employee))


# --- History ---

@router.get("/history", response_model=ApiResponse[List[LeaveRequestResponse]])
def get_my_history(
    status_filter: Optional[str] = Query(None, alias="status"),
    leave_type: Optional[str] = Query(None, alias="leaveType"),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    return _history_response(db, current_employee.id, status_filter, leave_type, from_date, to_date, page, limit)


@router.get("/hr/history", response_model=ApiResponse[List[LeaveRequestResponse]])
def get_hr_history(
    status_filter: Optional[str] = Query(None, alias="status"),
    leave_type: Optional[str] = Query(None, alias="leaveType"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_role([EmployeeRole.HR])),
):
    return _history_response(db, current_employee.id, status_filter, leave_type, None, None, page, limit)


@router.get("/history/{employee_id}", response_model=ApiResponse[List[LeaveRequestResponse]])
def get_employee_history(
    employee_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    leave_type: Optional[str] = Query(None, alias="leaveType"),
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    leave_service.get_employee_or_404(db, employee_id)
    return _history_response(db, employee_id, status_filter, leave_type, from_date, to_date, page, limit)


@router.get("/pending", response_model=ApiResponse[List[LeaveRequestResponse]])
def get_pending_leaves(
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    leaves = leave_service.get_pending(db, current_employee)
    return ApiResponse.ok([LeaveRequestResponse.model_validate(leave) for leave in leaves])


@router.get("/statistics")
def get_statistics(
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    return ApiResponse.ok(leave_service.get_statistics(db, current_employee)).to_dict()


@router.get("/ledger", response_model=ApiResponse[List[LedgerEntryResponse]])
def get_ledger(
    employee_id: Optional[int] = Query(None, alias="employeeId"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    target_id = employee_id or current_employee.id
    check_self_or_approver(current_employee, target_id)
    entries = leave_service.get_ledger(db, target_id, limit=limit)
    return ApiResponse.ok([LedgerEntryResponse.model_validate(e) for e in entries])


# --- Decisions ---

@router.api_route("/{leave_id}/approve", methods=["PUT", "POST"], response_model=ApiResponse[LeaveRequestResponse])
def approve_leave(
    leave_id: int,
    payload: Optional[LeaveDecisionRequest] = None,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    remarks = payload.remarks if payload else ""
    leave = leave_service.approve_leave(db, leave_id, current_employee, remarks or "")
    return ApiResponse.ok(LeaveRequestResponse.model_validate(leave), message="Leave approved successfully")


@router.api_route("/{leave_id}/reject", methods=["PUT", "POST"], response_model=ApiResponse[LeaveRequestResponse])
def reject_leave(
    leave_id: int,
    payload: Optional[LeaveDecisionRequest] = None,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    remarks = payload.remarks if payload else ""
    leave = leave_service.reject_leave(db, leave_id, current_employee, remarks or "")
    return ApiResponse.ok(LeaveRequestResponse.model_validate(leave), message="Leave rejected")


@router.api_route("/{leave_id}/cancel", methods=["PUT", "POST"], response_model=ApiResponse[LeaveRequestResponse])
def cancel_leave(
    leave_id: int,
    payload: Optional[LeaveDecisionRequest] = None,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    remarks = payload.remarks if payload else ""
    leave = leave_service.cancel_leave(db, leave_id, current_employee, remarks or "")
    return ApiResponse.ok(LeaveRequestResponse.model_validate(leave), message="Leave cancelled")
