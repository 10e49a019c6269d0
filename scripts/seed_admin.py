import os

from trainersync.database import SessionLocal, init_db
from trainersync.models.employee import Employee, EmployeeRole
from trainersync.services import auth as auth_service
from trainersync.services.employee_service import create_employee


def seed():
    init_db()
    db = SessionLocal()
    try:
        admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
        admin = db.query(Employee).filter(Employee.role == EmployeeRole.ADMIN).first()

        if not admin:
            admin = create_employee(
                db,
                email=admin_email,
                username=os.getenv("ADMIN_USERNAME", "admin"),
                role=EmployeeRole.ADMIN,
                full_name="System Administrator",
            )
            print(f"Admin {admin.email} created")
        else:
            print(f"Admin {admin.email} already exists")

        # Tokens are normally issued upstream; this one is for local testing only
        token = auth_service.create_access_token({"sub": admin.email, "role": admin.role.value})
        print(f"Access token: {token}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
