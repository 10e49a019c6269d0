from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from trainersync.database import Base


class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", name="uq_leave_balance_employee_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type = Column(String, nullable=False, index=True)  # SICK, CASUAL, PAID
    # available is NULL when is_unlimited is set
    available = Column(Float, nullable=True, default=0.0)
    is_unlimited = Column(Boolean, nullable=False, default=False)
    used = Column(Float, nullable=False, default=0.0)
    carry_forward = Column(Float, nullable=False, default=0.0)

    last_increment_date = Column(DateTime(timezone=True), nullable=True)
    last_rollover_date = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    employee = relationship("Employee", back_populates="leave_balances")
