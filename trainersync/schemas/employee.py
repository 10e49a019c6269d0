from pydantic import EmailStr, Field
from typing import List, Optional
from datetime import date, datetime

from trainersync.models.employee import EmployeeRole, EmployeeStatus, TrainerCategory
from trainersync.schemas.leave import CamelModel


class EmployeeCreate(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    role: EmployeeRole = EmployeeRole.TRAINER
    trainer_category: Optional[TrainerCategory] = None
    full_name: Optional[str] = None
    employee_code: Optional[str] = None
    reporting_manager_id: Optional[int] = None
    joining_date: Optional[date] = None


class EmployeeResponse(CamelModel):
    id: int
    email: str
    username: str
    full_name: Optional[str] = None
    employee_code: Optional[str] = None
    role: EmployeeRole
    trainer_category: Optional[TrainerCategory] = None
    status: EmployeeStatus
    reporting_manager_id: Optional[int] = None
    joining_date: Optional[date] = None
    created_at: Optional[datetime] = None


class ReportingManagerUpdate(CamelModel):
    # None detaches the employee from their manager
    manager_id: Optional[int] = None


class HierarchyNode(CamelModel):
    id: int
    name: str
    username: str
    role: str
    children: List["HierarchyNode"] = Field(default_factory=list)


HierarchyNode.model_rebuild()
