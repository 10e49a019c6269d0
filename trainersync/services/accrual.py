"""
Periodic balance jobs: monthly increment, year-end rollover and the weekly
balance report.

The two balance-changing jobs run per employee and commit per employee, so one bad record is
reported as FAILED in the summary without undoing the others.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from trainersync.models.employee import Employee, EmployeeRole, EmployeeStatus, TrainerCategory
from trainersync.models.leave_ledger import LedgerEntryType
from trainersync.models.leave_request import LeaveType
from trainersync.services.balance import AccrualPolicy, format_days, is_unlimited
from trainersync.services.leave_service import (
    get_balance_snapshot,
    initialize_balances,
    load_balance_rows,
    record_ledger,
    row_balance,
    write_balance,
)

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _permanent_trainers(db: Session) -> List[Employee]:
    return db.query(Employee).filter(
        Employee.role == EmployeeRole.TRAINER,
        Employee.trainer_category == TrainerCategory.PERMANENT,
        Employee.status == EmployeeStatus.ACTIVE,
    ).order_by(Employee.id).all()


def _summary(results: List[Dict[str, Any]], total: int) -> Dict[str, Any]:
    return {
        "updated": sum(1 for r in results if r["status"] == "UPDATED"),
        "skipped": sum(1 for r in results if r["status"] == "SKIPPED"),
        "failed": sum(1 for r in results if r["status"] == "FAILED"),
        "total": total,
        "results": results,
    }


def run_monthly_increment(
    db: Session,
    now: Optional[datetime] = None,
    policy: Optional[AccrualPolicy] = None,
) -> Dict[str, Any]:
    """Add the monthly increment to every eligible PERMANENT trainer."""
    now = _as_utc(now) or datetime.now(timezone.utc)
    policy = policy or AccrualPolicy.from_settings()
    trainers = _permanent_trainers(db)
    logger.info(f"Monthly increment started for {len(trainers)} permanent trainer(s)")

    results = []
    for trainer in trainers:
        try:
            rows = load_balance_rows(db, trainer.id)
            if not rows:
                rows = initialize_balances(db, trainer, policy)
                db.flush()

            reference = min(
                (_as_utc(r.last_increment_date) or now for r in rows.values()),
                default=now,
            )
            days_since = (now - reference).days
            if days_since < policy.increment_interval_days:
                results.append({
                    "employeeId": trainer.id,
                    "username": trainer.username,
                    "status": "SKIPPED",
                    "daysSinceLastIncrement": days_since,
                    "message": f"Next increment in {policy.increment_interval_days - days_since} days",
                })
                db.commit()
                continue

            new_balances = {}
            for leave_type, row in rows.items():
                before = row_balance(row)
                days = policy.monthly_increment(trainer, leave_type)
                after = policy.increment(before, days)
                row.last_increment_date = now
                if after is before:
                    continue
                write_balance(row, after)
                record_ledger(
                    db, trainer.id, LedgerEntryType.AUTO_INCREMENT, leave_type.value, before, after,
                    days_affected=days,
                    reason="Monthly auto-increment",
                )
                new_balances[leave_type.value.lower()] = after.available.days
            db.commit()
            results.append({
                "employeeId": trainer.id,
                "username": trainer.username,
                "status": "UPDATED",
                "daysSinceLastIncrement": days_since,
                "newBalance": new_balances,
            })
        except Exception as e:
            db.rollback()
            logger.exception(f"Monthly increment failed for employee {trainer.id}")
            results.append({
                "employeeId": trainer.id,
                "username": trainer.username,
                "status": "FAILED",
                "error": str(e),
            })

    summary = _summary(results, len(trainers))
    logger.info(
        f"Monthly increment completed: {summary['updated']} updated, "
        f"{summary['skipped']} skipped, {summary['failed']} failed"
    )
    return summary


def run_year_end_rollover(
    db: Session,
    now: Optional[datetime] = None,
    policy: Optional[AccrualPolicy] = None,
) -> Dict[str, Any]:
    """December only: move unused SICK/CASUAL days into carry-forward."""
    now = _as_utc(now) or datetime.now(timezone.utc)
    policy = policy or AccrualPolicy.from_settings()
    if now.month != 12:
        logger.info("Year-end rollover skipped: not December")
        return {**_summary([], 0), "message": "Rollover only runs in December"}

    trainers = _permanent_trainers(db)
    results = []
    for trainer in trainers:
        try:
            rows = load_balance_rows(db, trainer.id)
            already = any(
                r.last_rollover_date is not None and r.last_rollover_date.year == now.year
                for r in rows.values()
            )
            if not rows or already:
                results.append({
                    "employeeId": trainer.id,
                    "username": trainer.username,
                    "status": "SKIPPED",
                    "message": "Already rolled over this year" if already else "No balances",
                })
                continue

            carried = {}
            for leave_type in (LeaveType.SICK, LeaveType.CASUAL):
                row = rows.get(leave_type)
                if row is None:
                    continue
                before = row_balance(row)
                if is_unlimited(before.available):
                    continue
                after = policy.rollover(before)
                write_balance(row, after)
                row.last_rollover_date = now
                record_ledger(
                    db, trainer.id, LedgerEntryType.ROLLOVER, leave_type.value, before, after,
                    days_affected=after.carry_forward - before.carry_forward,
                    reason=f"Year-end rollover {now.year}",
                )
                carried[leave_type.value.lower()] = after.carry_forward
            db.commit()
            results.append({
                "employeeId": trainer.id,
                "username": trainer.username,
                "status": "UPDATED",
                "carryForward": carried,
            })
            logger.info(
                f"Rolled over employee {trainer.id}: "
                + ", ".join(f"{k}={format_days(v)}" for k, v in carried.items())
            )
        except Exception as e:
            db.rollback()
            logger.exception(f"Year-end rollover failed for employee {trainer.id}")
            results.append({
                "employeeId": trainer.id,
                "username": trainer.username,
                "status": "FAILED",
                "error": str(e),
            })

    summary = _summary(results, len(trainers))
    logger.info(f"Year-end rollover completed: {summary['updated']} updated, {summary['skipped']} skipped")
    return summary


def generate_weekly_report(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Read-only balance summary for every ACTIVE trainer."""
    now = _as_utc(now) or datetime.now(timezone.utc)
    trainers = db.query(Employee).filter(
        Employee.role == EmployeeRole.TRAINER,
        Employee.status == EmployeeStatus.ACTIVE,
    ).order_by(Employee.id).all()

    entries = []
    for trainer in trainers:
        balance = get_balance_snapshot(db, trainer).to_wire()
        category = trainer.trainer_category.value if trainer.trainer_category else None
        entries.append({
            "employeeId": trainer.id,
            "username": trainer.username,
            "name": trainer.display_name,
            "trainerCategory": category,
            "balance": balance,
        })
        logger.info(
            f"Weekly report {trainer.display_name} ({category}): "
            + ", ".join(
                f"{lt}={v['available']} available/{format_days(v['used'])} used" for lt, v in balance.items()
            )
        )

    logger.info(f"Weekly leave report generated for {len(trainers)} active trainer(s)")
    return {
        "generatedAt": now.isoformat(),
        "totalActiveTrainers": len(trainers),
        "trainers": entries,
    }
