from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from trainersync.database import Base
import enum


class LeaveType(str, enum.Enum):
    SICK = "SICK"
    CASUAL = "CASUAL"
    PAID = "PAID"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Records in these states no longer claim their dates
INACTIVE_LEAVE_STATUSES = frozenset({LeaveStatus.REJECTED, LeaveStatus.CANCELLED})


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    applicant_role = Column(String, nullable=False, index=True)  # role at the time of applying
    leave_type = Column(String, nullable=False, index=True)
    from_date = Column(Date, nullable=False, index=True)
    to_date = Column(Date, nullable=False, index=True)
    number_of_days = Column(Float, nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String, default=LeaveStatus.PENDING.value, nullable=False, index=True)

    approved_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    admin_remarks = Column(String(500), default="")

    applied_on = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="leave_requests")
    approved_by = relationship("Employee", foreign_keys=[approved_by_id])
    rejected_by = relationship("Employee", foreign_keys=[rejected_by_id])
    cancelled_by = relationship("Employee", foreign_keys=[cancelled_by_id])

    @property
    def is_actionable(self) -> bool:
        return self.status == LeaveStatus.PENDING.value
