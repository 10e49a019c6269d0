"""
Client side of leave application: validate against cached snapshots,
submit, and fold the server's answer back into one field error map.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from trainersync.client.api_client import ApiError, NetworkError, TrainerSyncClient
from trainersync.services.balance import BalanceSnapshot, EmployeeProfile
from trainersync.services.dates import today as current_day
from trainersync.services.leave_validator import (
    FIELD_OVERLAPPING,
    LeaveApplication,
    LeavePolicy,
    ValidationResult,
    is_submit_eligible,
    validate_leave_application,
)

logger = logging.getLogger(__name__)

NETWORK_ALERT = "Unable to reach the server. Please check your connection and try again."


@dataclass
class SubmissionResult:
    submitted: bool
    errors: Dict[str, str] = field(default_factory=dict)
    data: Optional[Dict[str, Any]] = None
    # Blocking message for the user, separate from per-field errors
    alert: Optional[str] = None


class LeaveApplicationWorkflow:
    def __init__(
        self,
        client: TrainerSyncClient,
        employee: Any,
        balance: Optional[BalanceSnapshot] = None,
        history: Optional[List[Dict[str, Any]]] = None,
        policy: Optional[LeavePolicy] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.client = client
        self.profile = EmployeeProfile.of(employee)
        self.balance = balance
        self.history = list(history) if history is not None else None
        self.policy = policy
        self._today = today or current_day

    def refresh(self) -> None:
        """Reload the balance and active-leave snapshots from the server."""
        self.balance = self.client.fetch_balance(self.profile.role)
        self.history = self.client.fetch_active_leaves(self.profile.role)

    def _ensure_snapshots(self) -> None:
        if self.balance is None or self.history is None:
            self.refresh()

    def validate(self, application: LeaveApplication) -> ValidationResult:
        self._ensure_snapshots()
        return validate_leave_application(
            application,
            self.profile,
            self.balance,
            self.history,
            policy=self.policy,
            today=self._today(),
        )

    def submit(self, application: LeaveApplication) -> SubmissionResult:
        try:
            result = self.validate(application)
        except NetworkError:
            return SubmissionResult(submitted=False, alert=NETWORK_ALERT)

        if not is_submit_eligible(result, application):
            return SubmissionResult(submitted=False, errors=dict(result.errors))

        try:
            data = self.client.apply_leave(application.to_payload())
        except NetworkError:
            # Snapshots stay as they were; the user may retry
            logger.warning("Leave submission failed: server unreachable")
            return SubmissionResult(submitted=False, alert=NETWORK_ALERT)
        except ApiError as e:
            return self._from_api_error(e)

        self.history.append(data)
        logger.info(f"Leave {data.get('id')} submitted ({data.get('numberOfDays')} days)")
        return SubmissionResult(submitted=True, data=data)

    def _from_api_error(self, error: ApiError) -> SubmissionResult:
        errors = error.field_errors()
        if error.status_code == 409:
            message = errors.get(FIELD_OVERLAPPING) or error.message
            errors[FIELD_OVERLAPPING] = message
            return SubmissionResult(submitted=False, errors=errors, alert=message)
        if error.status_code == 400 and errors:
            return SubmissionResult(submitted=False, errors=errors)
        return SubmissionResult(submitted=False, errors=errors, alert=error.message)
