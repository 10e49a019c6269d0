"""
Employee provisioning. Creating an employee also seeds their leave
balances from the accrual policy.
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from trainersync.core.exceptions import AppException, LeaveValidationError
from trainersync.models.employee import Employee, EmployeeRole, EmployeeStatus, TrainerCategory
from trainersync.services.balance import AccrualPolicy
from trainersync.services.leave_service import get_employee_or_404, initialize_balances

logger = logging.getLogger(__name__)


def create_employee(
    db: Session,
    email: str,
    username: str,
    role: EmployeeRole,
    trainer_category: Optional[TrainerCategory] = None,
    full_name: Optional[str] = None,
    employee_code: Optional[str] = None,
    reporting_manager_id: Optional[int] = None,
    joining_date: Optional[date] = None,
    created_by: Optional[Employee] = None,
    policy: Optional[AccrualPolicy] = None,
) -> Employee:
    role = EmployeeRole(role)
    if role == EmployeeRole.TRAINER and trainer_category is None:
        raise LeaveValidationError(
            {"trainerCategory": "Trainer category is required for trainers"},
            message="Employee details failed validation",
        )
    if role != EmployeeRole.TRAINER:
        trainer_category = None

    if role == EmployeeRole.ADMIN:
        if db.query(Employee).filter(Employee.role == EmployeeRole.ADMIN).first():
            raise AppException("Only one ADMIN may exist", status_code=409, error_code="ADMIN_EXISTS")

    email = email.strip().lower()
    existing = db.query(Employee).filter(
        or_(Employee.email == email, Employee.username == username)
    ).first()
    if existing:
        field = "email" if existing.email == email else "username"
        raise AppException(f"An employee with this {field} already exists", status_code=409, error_code="DUPLICATE_EMPLOYEE")

    if reporting_manager_id is not None:
        get_employee_or_404(db, reporting_manager_id)

    employee = Employee(
        email=email,
        username=username,
        full_name=full_name,
        employee_code=employee_code,
        role=role,
        trainer_category=TrainerCategory(trainer_category) if trainer_category else None,
        status=EmployeeStatus.ACTIVE,
        reporting_manager_id=reporting_manager_id,
        joining_date=joining_date,
    )
    try:
        db.add(employee)
        db.flush()
        initialize_balances(db, employee, policy, performed_by_id=created_by.id if created_by else None)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(employee)
    logger.info(f"Employee {employee.id} created ({role.value}, {trainer_category or '-'})")
    return employee
