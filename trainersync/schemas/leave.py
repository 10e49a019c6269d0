from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from trainersync.services.leave_validator import LeaveApplication


class CamelModel(BaseModel):
    """Wire models use camelCase; snake_case is accepted on input too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class LeaveApplyRequest(CamelModel):
    # Raw strings; missing or malformed values surface in the field error map, not as a 422
    leave_type: Optional[str] = None
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    reason: Optional[str] = None

    def to_application(self) -> LeaveApplication:
        return LeaveApplication(
            leave_type=self.leave_type,
            from_date=self.from_date,
            to_date=self.to_date,
            reason=self.reason,
        )


class LeaveDecisionRequest(CamelModel):
    remarks: Optional[str] = Field(None, max_length=500)


class LeaveRequestResponse(CamelModel):
    id: int
    employee_id: int
    applicant_role: str
    leave_type: str
    from_date: date
    to_date: date
    number_of_days: float
    reason: str
    status: str
    admin_remarks: Optional[str] = None
    applied_on: Optional[datetime] = None
    approved_by_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by_id: Optional[int] = None
    rejected_at: Optional[datetime] = None
    cancelled_by_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None


class LeaveValidationResponse(CamelModel):
    valid: bool
    number_of_days: Optional[int] = None
    errors: Dict[str, str] = Field(default_factory=dict)
    overlapping_leave: Optional[Dict[str, Any]] = None


class BalanceEntry(CamelModel):
    available: Union[float, str]
    used: float = 0.0
    carry_forward: float = 0.0


class LeaveBalanceResponse(CamelModel):
    employee_id: int
    role: str
    trainer_category: Optional[str] = None
    balance: Dict[str, BalanceEntry]
    allowed_leave_types: List[str]


class BalanceEditRequest(CamelModel):
    leave_type: str
    # A number of days or "Unlimited"
    available: Union[float, str]
    reason: Optional[str] = Field(None, max_length=255)


class LedgerEntryResponse(CamelModel):
    id: int
    entry_type: str
    leave_type: str
    previous_balance: Optional[float] = None
    new_balance: Optional[float] = None
    days_affected: float
    performed_by_id: Optional[int] = None
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
