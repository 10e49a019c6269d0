"""
Run the leave accrual jobs from cron or by hand.

    python -m scripts.run_accrual monthly
    python -m scripts.run_accrual rollover
    python -m scripts.run_accrual weekly-report
"""
import argparse
import json
import logging

from trainersync.core.logging import setup_logging
from trainersync.database import SessionLocal, init_db
from trainersync.services import accrual

logger = logging.getLogger(__name__)

JOBS = {
    "monthly": accrual.run_monthly_increment,
    "rollover": accrual.run_year_end_rollover,
    "weekly-report": accrual.generate_weekly_report,
}


def main(argv=None):
    parser = argparse.ArgumentParser(description="TrainerSync leave accrual and reporting jobs")
    parser.add_argument("job", choices=sorted(JOBS))
    args = parser.parse_args(argv)

    setup_logging()
    init_db()
    db = SessionLocal()
    try:
        summary = JOBS[args.job](db)
    finally:
        db.close()
    if args.job == "weekly-report":
        print(json.dumps(summary, indent=2))
    else:
        print(json.dumps({k: v for k, v in summary.items() if k != "results"}, indent=2))
    return 1 if summary.get("failed") else 0


if __name__ == "__main__":
    raise SystemExit(main())
