from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from trainersync.core.exceptions import AccessDeniedError
from trainersync.core.schemas import ApiResponse
from trainersync.database import get_db
from trainersync.models.employee import Employee, EmployeeRole
from trainersync.routers.auth_deps import require_admin, require_approver
from trainersync.schemas.employee import EmployeeCreate, EmployeeResponse
from trainersync.schemas.leave import BalanceEditRequest, BalanceEntry
from trainersync.services import accrual, employee_service, leave_service

router = APIRouter(
    prefix="/admin",
    tags=["Administration"],
    dependencies=[Depends(require_approver())]
)


@router.post("/employees", response_model=ApiResponse[EmployeeResponse], status_code=status.HTTP_201_CREATED)
def create_employee(
    payload: EmployeeCreate,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    """
    Provision an employee and seed their leave balances.
    Only the ADMIN may create HR members.
    """
    if payload.role != EmployeeRole.TRAINER and current_employee.role != EmployeeRole.ADMIN:
        raise AccessDeniedError("Only the ADMIN can create HR or ADMIN accounts")
    employee = employee_service.create_employee(
        db,
        email=payload.email,
        username=payload.username,
        role=payload.role,
        trainer_category=payload.trainer_category,
        full_name=payload.full_name,
        employee_code=payload.employee_code,
        reporting_manager_id=payload.reporting_manager_id,
        joining_date=payload.joining_date,
        created_by=current_employee,
    )
    return ApiResponse.ok(EmployeeResponse.model_validate(employee), message="Employee created")


@router.put("/leave-balances/{employee_id}", response_model=ApiResponse[BalanceEntry])
def edit_leave_balance(
    employee_id: int,
    payload: BalanceEditRequest,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    row = leave_service.edit_balance(
        db, employee_id, payload.leave_type, payload.available, current_employee, payload.reason
    )
    return ApiResponse.ok(leave_service.row_balance(row).to_wire(), message="Leave balance updated")


@router.post("/accrual/monthly")
def trigger_monthly_increment(
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_admin()),
):
    return ApiResponse.ok(accrual.run_monthly_increment(db)).to_dict()


@router.post("/accrual/rollover")
def trigger_year_end_rollover(
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_admin()),
):
    return ApiResponse.ok(accrual.run_year_end_rollover(db)).to_dict()


@router.get("/reports/weekly")
def weekly_leave_report(db: Session = Depends(get_db)):
    """Current balances of every active trainer."""
    return ApiResponse.ok(accrual.generate_weekly_report(db)).to_dict()
