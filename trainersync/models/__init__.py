# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, leave_request, leave_balance, leave_ledger, notification
)

# Explicit class exports for cleaner imports
from .employee import Employee, EmployeeRole, TrainerCategory, EmployeeStatus
from .leave_request import LeaveRequest, LeaveStatus, LeaveType
from .leave_balance import LeaveBalance
from .leave_ledger import LeaveLedgerEntry, LedgerEntryType
from .notification import Notification, NotificationType

__all__ = [
    "Employee",
    "EmployeeRole",
    "TrainerCategory",
    "EmployeeStatus",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "LeaveBalance",
    "LeaveLedgerEntry",
    "LedgerEntryType",
    "Notification",
    "NotificationType",
]
