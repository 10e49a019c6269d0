"""
RBAC Dependencies.
Resolves the calling employee from the bearer token and guards routes by role.
"""
import logging
from typing import Callable, List

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from trainersync.database import get_db
from trainersync.models.employee import Employee, EmployeeRole, EmployeeStatus
from trainersync.services import auth as auth_service

logger = logging.getLogger(__name__)

# Tokens are issued upstream; the URL only feeds the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_employee(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Employee:
    """
    Extracts and validates the current employee from the JWT token.
    """
    payload = auth_service.decode_access_token(token)

    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="TOKEN_EXPIRED",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email = payload.get("sub")
    if email is None:
        logger.warning("Authentication failed: Missing subject (email) in token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing subject in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    employee = db.query(Employee).filter(Employee.email == email.lower()).first()
    if employee is None:
        logger.warning(f"Authentication failed: Employee {email} not found in database")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Employee not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if employee.status == EmployeeStatus.INACTIVE:
        logger.warning(f"Authentication failed: Employee {email} is inactive")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Employee is inactive"
        )
    return employee


def require_role(allowed_roles: List[EmployeeRole]) -> Callable:
    """
    Dependency factory that checks if the employee has one of the allowed roles.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(employee: Employee = Depends(require_role([EmployeeRole.ADMIN]))):
            ...
    """
    def role_checker(current_employee: Employee = Depends(get_current_employee)):
        if current_employee.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_employee
    return role_checker


def require_approver():
    """Shorthand for HR or ADMIN."""
    return require_role([EmployeeRole.HR, EmployeeRole.ADMIN])


def require_admin():
    return require_role([EmployeeRole.ADMIN])


def check_self_or_approver(current_employee: Employee, employee_id: int) -> None:
    """Trainers may only read their own records; HR and ADMIN may read anyone's."""
    if current_employee.id != employee_id and not current_employee.can_approve:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only access your own records."
        )
