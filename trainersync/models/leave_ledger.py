from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.sql import func
from trainersync.database import Base
import enum


class LedgerEntryType(str, enum.Enum):
    SYSTEM_INIT = "SYSTEM_INIT"
    APPROVED = "APPROVED"
    AUTO_INCREMENT = "AUTO_INCREMENT"
    ROLLOVER = "ROLLOVER"
    ADMIN_EDIT = "ADMIN_EDIT"


class LeaveLedgerEntry(Base):
    """Append-only record of every change to an employee's leave balance."""
    __tablename__ = "leave_ledger"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_type = Column(String, nullable=False, index=True)
    leave_type = Column(String, nullable=False)  # a leave type, or ALL
    # NULL means unlimited (or not applicable for ALL entries)
    previous_balance = Column(Float, nullable=True)
    new_balance = Column(Float, nullable=True)
    days_affected = Column(Float, nullable=False, default=0.0)
    performed_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)  # NULL for system jobs
    reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
