import pytest
import os
from datetime import date, timedelta
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from trainersync.database import Base, get_db
from trainersync.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite defers BEGIN on its own; take over so SAVEPOINTs nest inside the outer transaction
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


# Service-layer commits and rollbacks land on savepoints inside the per-test transaction
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, join_transaction_mode="create_savepoint"
)

VALID_REASON = "Attending my sister's wedding ceremony in my home town"


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


def _make_employee(db_session, email, username, role, category=None, **balances):
    from trainersync.models.employee import EmployeeRole
    from trainersync.models.leave_request import LeaveType
    from trainersync.services.employee_service import create_employee
    from trainersync.services.leave_service import load_balance_rows

    employee = create_employee(
        db_session,
        email=email,
        username=username,
        role=EmployeeRole(role),
        trainer_category=category,
        full_name=username.replace("_", " ").title(),
    )
    rows = load_balance_rows(db_session, employee.id)
    for leave_type, days in balances.items():
        row = rows[LeaveType(leave_type.upper())]
        row.available = days
        row.is_unlimited = False
    db_session.commit()
    return employee


@pytest.fixture(scope="function")
def admin(db_session):
    """The single system ADMIN."""
    return _make_employee(db_session, "admin@trainersync.io", "system_admin", "ADMIN")


@pytest.fixture(scope="function")
def hr(db_session):
    return _make_employee(db_session, "hr@trainersync.io", "hr_manager", "HR")


@pytest.fixture(scope="function")
def second_hr(db_session):
    return _make_employee(db_session, "hr2@trainersync.io", "hr_partner", "HR")


@pytest.fixture(scope="function")
def permanent_trainer(db_session):
    """PERMANENT trainer with 5 sick and 3 casual days available."""
    from trainersync.models.employee import TrainerCategory
    return _make_employee(
        db_session, "perm@trainersync.io", "perm_trainer", "TRAINER", TrainerCategory.PERMANENT,
        sick=5, casual=3,
    )


@pytest.fixture(scope="function")
def contracted_trainer(db_session):
    from trainersync.models.employee import TrainerCategory
    return _make_employee(
        db_session, "contract@trainersync.io", "contract_trainer", "TRAINER", TrainerCategory.CONTRACTED,
    )


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens for an employee."""
    from trainersync.services.auth import create_access_token

    def _get_token(employee):
        return create_access_token(data={
            "sub": employee.email,
            "role": employee.role.value,
            "type": "access"
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _headers(employee):
        return {"Authorization": f"Bearer {get_token(employee)}"}
    return _headers


@pytest.fixture(scope="function")
def future_day():
    """Date `n` days from today."""
    def _future(n):
        return date.today() + timedelta(days=n)
    return _future


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
