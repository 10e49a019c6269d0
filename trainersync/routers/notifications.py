from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from trainersync.core.exceptions import NotFoundError
from trainersync.database import get_db
from trainersync.models.employee import Employee
from trainersync.models.notification import Notification
from trainersync.routers.auth_deps import get_current_employee
from trainersync.schemas.notification import NotificationResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def get_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee)
):
    query = db.query(Notification).filter(Notification.employee_id == current_employee.id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(50).all()


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.employee_id == current_employee.id
    ).first()

    if not notification:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


@router.post("/mark-all-read")
def mark_all_notifications_as_read(
    db: Session = Depends(get_db),
    current_employee: Employee = Depends(get_current_employee)
):
    db.query(Notification).filter(
        Notification.employee_id == current_employee.id,
        Notification.is_read.is_(False)
    ).update({Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return {"message": "All notifications marked as read"}
