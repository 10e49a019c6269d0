"""
Employee Model.
Role and trainer category jointly decide which leave types an employee
may request and whether their balance is finite.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Date, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from trainersync.database import Base


class EmployeeRole(str, enum.Enum):
    """
    - ADMIN: Single system administrator; approves HR leave requests
    - HR: Approves trainer leave requests; has unlimited leave
    - TRAINER: Applies for leave against an accrued balance
    """
    ADMIN = "ADMIN"
    HR = "HR"
    TRAINER = "TRAINER"


class TrainerCategory(str, enum.Enum):
    PERMANENT = "PERMANENT"
    CONTRACTED = "CONTRACTED"


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    employee_code = Column(String, unique=True, nullable=True)

    role = Column(Enum(EmployeeRole), default=EmployeeRole.TRAINER, nullable=False, index=True)
    # Required for trainers, null for HR/ADMIN; not editable after creation
    trainer_category = Column(Enum(TrainerCategory), nullable=True)
    status = Column(Enum(EmployeeStatus), default=EmployeeStatus.ACTIVE, nullable=False, index=True)

    reporting_manager_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    joining_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    reporting_manager = relationship("Employee", remote_side=[id], back_populates="subordinates")
    subordinates = relationship("Employee", back_populates="reporting_manager")
    leave_requests = relationship(
        "LeaveRequest",
        foreign_keys="[LeaveRequest.employee_id]",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    leave_balances = relationship("LeaveBalance", back_populates="employee", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="employee", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Employee {self.email} ({self.role.value})>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or self.email.split("@")[0]

    @property
    def can_approve(self) -> bool:
        """Check if employee can act on other people's leave requests."""
        return self.role in (EmployeeRole.HR, EmployeeRole.ADMIN)
