from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from trainersync.core.schemas import ApiResponse
from trainersync.database import get_db
from trainersync.models.employee import Employee
from trainersync.routers.auth_deps import check_self_or_approver, get_current_employee, require_approver
from trainersync.schemas.employee import EmployeeResponse, HierarchyNode, ReportingManagerUpdate
from trainersync.services import hierarchy

router = APIRouter(prefix="/hierarchy", tags=["Hierarchy"])


@router.put("/{employee_id}/manager", response_model=ApiResponse[EmployeeResponse])
def set_reporting_manager(
    employee_id: int,
    payload: ReportingManagerUpdate,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(require_approver()),
):
    employee = hierarchy.set_reporting_manager(db, employee_id, payload.manager_id)
    return ApiResponse.ok(EmployeeResponse.model_validate(employee), message="Reporting manager updated")


@router.get("/{manager_id}/subordinates", response_model=ApiResponse[List[EmployeeResponse]])
def get_subordinates(
    manager_id: int,
    recursive: bool = Query(False),
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    check_self_or_approver(current_employee, manager_id)
    subordinates = hierarchy.get_subordinates(db, manager_id, recursive=recursive)
    return ApiResponse.ok([EmployeeResponse.model_validate(s) for s in subordinates])


@router.get("/{manager_id}/tree", response_model=ApiResponse[HierarchyNode])
def get_hierarchy_tree(
    manager_id: int,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee),
):
    check_self_or_approver(current_employee, manager_id)
    return ApiResponse.ok(hierarchy.get_hierarchy_tree(db, manager_id))
