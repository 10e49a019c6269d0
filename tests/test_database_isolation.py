from trainersync.models.employee import Employee, EmployeeRole, TrainerCategory
from trainersync.services.employee_service import create_employee

ISOLATED_EMAIL = "isolated@trainersync.io"


def test_committed_rows_are_visible_within_the_test(db_session):
    create_employee(
        db_session,
        email=ISOLATED_EMAIL,
        username="isolated_trainer",
        role=EmployeeRole.TRAINER,
        trainer_category=TrainerCategory.PERMANENT,
    )
    assert db_session.query(Employee).filter(Employee.email == ISOLATED_EMAIL).count() == 1


def test_committed_rows_do_not_leak_into_the_next_test(db_session):
    """create_employee commits; the per-test rollback must still discard it."""
    leaked = [e.email for e in db_session.query(Employee).all()]
    assert leaked == []


def test_same_fixture_email_can_be_created_again(db_session):
    create_employee(
        db_session,
        email=ISOLATED_EMAIL,
        username="isolated_trainer",
        role=EmployeeRole.TRAINER,
        trainer_category=TrainerCategory.PERMANENT,
    )
    assert db_session.query(Employee).count() == 1
