"""
HTTP client for the TrainerSync API.

Transport failures and unexpected (5xx) statuses raise `NetworkError`;
4xx answers raise `ApiError` carrying the parsed error list so callers can
map field errors back onto a form.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from trainersync.models.employee import EmployeeRole
from trainersync.models.leave_request import LeaveStatus
from trainersync.services.balance import BalanceSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class NetworkError(Exception):
    """The server could not be reached or answered with an unexpected status."""


class ApiError(Exception):
    def __init__(self, status_code: int, errors: List[Dict[str, Any]], details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.errors = errors
        self.details = details or {}
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.errors:
            return self.errors[0].get("msg") or "Request failed"
        return f"Request failed with status {self.status_code}"

    def field_errors(self) -> Dict[str, str]:
        fields = self.details.get("fields")
        if fields:
            return dict(fields)
        return {e["field"]: e["msg"] for e in self.errors if e.get("field")}


class TrainerSyncClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(str(e)) from e

        if response.status_code >= 500:
            logger.error(f"{method} {path} -> {response.status_code}")
            raise NetworkError(f"Server error ({response.status_code})")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            raise ApiError(response.status_code, body.get("errors") or [], body.get("details"))
        return body

    @staticmethod
    def _prefix(role: EmployeeRole) -> str:
        return "/api/leaves/hr" if EmployeeRole(role) == EmployeeRole.HR else "/api/leaves"

    def fetch_balance(self, role: EmployeeRole) -> BalanceSnapshot:
        body = self._request("GET", f"{self._prefix(role)}/balance")
        return BalanceSnapshot.from_wire(body["data"]["balance"])

    def fetch_history(
        self,
        role: EmployeeRole,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        params = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        body = self._request("GET", f"{self._prefix(role)}/history", params=params)
        return body.get("data") or [], body.get("metadata", {}).get("pagination", {})

    def fetch_active_leaves(self, role: EmployeeRole, page_size: int = 100) -> List[Dict[str, Any]]:
        """Every PENDING and APPROVED leave, walking all history pages."""
        records = []
        for status in (LeaveStatus.PENDING, LeaveStatus.APPROVED):
            page = 1
            while True:
                items, pagination = self.fetch_history(role, page=page, limit=page_size, status=status.value)
                records.extend(items)
                if page >= (pagination.get("pages") or 1):
                    break
                page += 1
        return records

    def apply_leave(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/leaves", json=payload)["data"]

    def approve(self, leave_id: int, remarks: str = "") -> Dict[str, Any]:
        return self._request("PUT", f"/api/leaves/{leave_id}/approve", json={"remarks": remarks})["data"]

    def reject(self, leave_id: int, remarks: str = "") -> Dict[str, Any]:
        return self._request("PUT", f"/api/leaves/{leave_id}/reject", json={"remarks": remarks})["data"]

    def cancel(self, leave_id: int, remarks: str = "") -> Dict[str, Any]:
        return self._request("PUT", f"/api/leaves/{leave_id}/cancel", json={"remarks": remarks})["data"]
