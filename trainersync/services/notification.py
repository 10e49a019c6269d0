import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from trainersync.models.employee import Employee, EmployeeRole, EmployeeStatus
from trainersync.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationService:
    @staticmethod
    def create_notification(
        db: Session,
        employee_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.LEAVE_REQUEST,
        leave_request_id: Optional[int] = None
    ) -> Notification:
        """
        Internal utility for creating notifications.
        Adds to the caller's session; the caller owns the commit.
        """
        notification = Notification(
            employee_id=employee_id,
            title=title,
            message=message,
            type=type.value,
            leave_request_id=leave_request_id
        )
        db.add(notification)
        return notification

    @staticmethod
    def notify_employees(
        db: Session,
        recipients: Iterable[Employee],
        title: str,
        message: str,
        type: NotificationType,
        leave_request_id: Optional[int] = None
    ) -> List[Notification]:
        created = [
            NotificationService.create_notification(db, r.id, title, message, type, leave_request_id)
            for r in recipients
        ]
        logger.info(f"Queued {len(created)} '{type.value}' notification(s)")
        return created

    @staticmethod
    def approvers_for(db: Session, applicant: Employee) -> List[Employee]:
        """HR leave goes to the ADMIN only; trainer leave goes to every active HR and ADMIN."""
        roles = [EmployeeRole.ADMIN] if applicant.role == EmployeeRole.HR else [EmployeeRole.HR, EmployeeRole.ADMIN]
        return db.query(Employee).filter(
            Employee.role.in_(roles),
            Employee.status == EmployeeStatus.ACTIVE,
            Employee.id != applicant.id
        ).all()
