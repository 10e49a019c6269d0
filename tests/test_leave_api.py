import pytest
from fastapi import status

from trainersync.models.leave_ledger import LeaveLedgerEntry
from trainersync.models.leave_request import LeaveRequest, LeaveStatus
from trainersync.models.notification import Notification
from trainersync.services.dates import days_between_inclusive

REASON = "Attending my sister's wedding ceremony in my home town"


def _apply(client, headers, leave_type, start, end, reason=REASON, path="/api/leaves"):
    return client.post(
        path,
        headers=headers,
        json={"leaveType": leave_type, "fromDate": start.isoformat(), "toDate": end.isoformat(), "reason": reason},
    )


def _fields(response):
    return {e["field"]: e["msg"] for e in response.json()["errors"] if "field" in e}


def test_trainer_applies_for_leave(client, db_session, permanent_trainer, hr, admin, auth_headers, future_day):
    """A valid application is stored as PENDING and approvers are notified."""
    start, end = future_day(5), future_day(7)
    response = _apply(client, auth_headers(permanent_trainer), "SICK", start, end)
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["status"] == "PENDING"
    assert data["leaveType"] == "SICK"
    assert data["numberOfDays"] == days_between_inclusive(start, end) == 3

    recipients = {n.employee_id for n in db_session.query(Notification).filter(Notification.leave_request_id == data["id"])}
    assert recipients == {hr.id, admin.id}


def test_apply_alias_path(client, permanent_trainer, auth_headers, future_day):
    response = _apply(client, auth_headers(permanent_trainer), "PAID", future_day(3), future_day(3), path="/api/leaves/apply")
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["data"]["numberOfDays"] == 1


def test_validation_errors_come_back_as_field_map(client, permanent_trainer, auth_headers, future_day):
    response = _apply(client, auth_headers(permanent_trainer), "PAID", future_day(2), future_day(40), reason="Family emergency")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    fields = _fields(response)
    assert fields["dateRange"] == "Leave cannot exceed 30 days (requested 39 days)"
    assert fields["reason"] == "Reason must be at least 7 words and 30 characters long"
    assert response.json()["details"]["fields"] == fields


def test_missing_fields_reported_not_422(client, permanent_trainer, auth_headers):
    response = client.post("/api/leaves", headers=auth_headers(permanent_trainer), json={})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert set(_fields(response)) == {"leaveType", "fromDate", "toDate", "reason"}


def test_overlap_returns_conflict(client, permanent_trainer, auth_headers, future_day):
    headers = auth_headers(permanent_trainer)
    first = _apply(client, headers, "PAID", future_day(10), future_day(15)).json()["data"]

    response = _apply(client, headers, "PAID", future_day(15), future_day(20))
    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["details"]["overlappingLeave"]["id"] == first["id"]
    assert _fields(response)["overlapping"].startswith("You already have a pending paid leave")

    # The day after is free
    assert _apply(client, headers, "PAID", future_day(16), future_day(20)).status_code == status.HTTP_201_CREATED


def test_admin_cannot_apply(client, admin, auth_headers, future_day):
    response = _apply(client, auth_headers(admin), "PAID", future_day(3), future_day(4))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_contracted_trainer_cannot_take_sick_leave(client, contracted_trainer, auth_headers, future_day):
    response = _apply(client, auth_headers(contracted_trainer), "SICK", future_day(3), future_day(4))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert _fields(response)["leaveType"] == "SICK leaves are not available for CONTRACTED trainers"


def test_validate_is_a_dry_run(client, db_session, permanent_trainer, auth_headers, future_day):
    response = client.post(
        "/api/leaves/validate",
        headers=auth_headers(permanent_trainer),
        json={"leaveType": "CASUAL", "fromDate": future_day(3).isoformat(), "toDate": future_day(6).isoformat(), "reason": REASON},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["valid"] is False
    assert data["numberOfDays"] == 4
    assert "Available: 3 days, Required: 4 days" in data["errors"]["balance"]
    assert db_session.query(LeaveRequest).count() == 0


def test_hr_approval_deducts_balance(client, db_session, permanent_trainer, hr, auth_headers, future_day):
    leave = _apply(client, auth_headers(permanent_trainer), "SICK", future_day(5), future_day(7)).json()["data"]

    response = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(hr), json={"remarks": "Get well"})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["status"] == "APPROVED"
    assert data["approvedById"] == hr.id
    assert data["adminRemarks"] == "Get well"

    balance = client.get("/api/leaves/balance", headers=auth_headers(permanent_trainer)).json()["data"]["balance"]
    assert balance["sick"] == {"available": 2.0, "used": 3.0, "carryForward": 0.0}

    entry = db_session.query(LeaveLedgerEntry).filter(LeaveLedgerEntry.entry_type == "APPROVED").one()
    assert (entry.previous_balance, entry.new_balance, entry.days_affected) == (5.0, 2.0, 3.0)


def test_approve_accepts_post_without_body(client, permanent_trainer, admin, auth_headers, future_day):
    leave = _apply(client, auth_headers(permanent_trainer), "PAID", future_day(5), future_day(5)).json()["data"]
    response = client.post(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(admin))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["status"] == "APPROVED"


def test_approval_rechecks_balance(client, db_session, permanent_trainer, hr, auth_headers, future_day):
    """Two pending requests can each fit the balance while their sum does not."""
    headers = auth_headers(permanent_trainer)
    first = _apply(client, headers, "SICK", future_day(5), future_day(7)).json()["data"]
    second = _apply(client, headers, "SICK", future_day(10), future_day(12)).json()["data"]

    assert client.put(f"/api/leaves/{first['id']}/approve", headers=auth_headers(hr)).status_code == 200
    response = client.put(f"/api/leaves/{second['id']}/approve", headers=auth_headers(hr))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "INSUFFICIENT_BALANCE"
    assert db_session.get(LeaveRequest, second["id"]).status == LeaveStatus.PENDING.value


def test_trainer_cannot_approve(client, permanent_trainer, contracted_trainer, auth_headers, future_day):
    leave = _apply(client, auth_headers(contracted_trainer), "PAID", future_day(5), future_day(6)).json()["data"]
    response = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(permanent_trainer))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_hr_leave_needs_admin(client, hr, second_hr, admin, auth_headers, future_day):
    leave = _apply(client, auth_headers(hr), "CASUAL", future_day(5), future_day(25)).json()["data"]

    own = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(hr))
    assert own.status_code == status.HTTP_403_FORBIDDEN
    peer = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(second_hr))
    assert peer.status_code == status.HTTP_403_FORBIDDEN

    response = client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(admin))
    assert response.status_code == status.HTTP_200_OK

    balance = client.get("/api/leaves/hr/balance", headers=auth_headers(hr)).json()["data"]["balance"]
    assert balance["casual"]["available"] == "Unlimited"
    assert balance["casual"]["used"] == 21.0


def test_reject_frees_the_dates(client, permanent_trainer, hr, auth_headers, future_day):
    headers = auth_headers(permanent_trainer)
    leave = _apply(client, headers, "CASUAL", future_day(5), future_day(6)).json()["data"]

    response = client.put(f"/api/leaves/{leave['id']}/reject", headers=auth_headers(hr), json={"remarks": "Training week"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["status"] == "REJECTED"

    balance = client.get("/api/leaves/balance", headers=headers).json()["data"]["balance"]
    assert balance["casual"]["available"] == 3.0
    assert _apply(client, headers, "CASUAL", future_day(5), future_day(6)).status_code == status.HTTP_201_CREATED


def test_decided_leave_cannot_be_decided_again(client, permanent_trainer, hr, auth_headers, future_day):
    leave = _apply(client, auth_headers(permanent_trainer), "PAID", future_day(5), future_day(6)).json()["data"]
    client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(hr))

    response = client.put(f"/api/leaves/{leave['id']}/reject", headers=auth_headers(hr))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["code"] == "INVALID_STATUS_TRANSITION"


def test_applicant_cancels_pending_leave(client, permanent_trainer, auth_headers, future_day):
    headers = auth_headers(permanent_trainer)
    leave = _apply(client, headers, "PAID", future_day(5), future_day(6)).json()["data"]

    response = client.put(f"/api/leaves/{leave['id']}/cancel", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["status"] == "CANCELLED"

    again = client.put(f"/api/leaves/{leave['id']}/cancel", headers=headers)
    assert again.status_code == status.HTTP_400_BAD_REQUEST


def test_approved_leave_cannot_be_cancelled(client, permanent_trainer, hr, auth_headers, future_day):
    headers = auth_headers(permanent_trainer)
    leave = _apply(client, headers, "PAID", future_day(5), future_day(6)).json()["data"]
    client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(hr))

    response = client.put(f"/api/leaves/{leave['id']}/cancel", headers=headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_other_trainer_cannot_cancel(client, permanent_trainer, contracted_trainer, auth_headers, future_day):
    leave = _apply(client, auth_headers(permanent_trainer), "PAID", future_day(5), future_day(6)).json()["data"]
    response = client.put(f"/api/leaves/{leave['id']}/cancel", headers=auth_headers(contracted_trainer))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_unknown_leave_is_404(client, hr, auth_headers):
    response = client.put("/api/leaves/9999/approve", headers=auth_headers(hr))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_history_is_paginated(client, permanent_trainer, auth_headers, future_day):
    headers = auth_headers(permanent_trainer)
    for offset in (3, 6, 9):
        _apply(client, headers, "PAID", future_day(offset), future_day(offset + 1))

    response = client.get("/api/leaves/history?limit=2", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert len(body["data"]) == 2
    assert body["metadata"]["pagination"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}

    page_two = client.get("/api/leaves/history?limit=2&page=2", headers=headers).json()
    assert len(page_two["data"]) == 1


def test_history_status_filter(client, permanent_trainer, hr, auth_headers, future_day):
    headers = auth_headers(permanent_trainer)
    leave = _apply(client, headers, "PAID", future_day(3), future_day(4)).json()["data"]
    _apply(client, headers, "PAID", future_day(8), future_day(9))
    client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(hr))

    data = client.get("/api/leaves/history?status=approved", headers=headers).json()["data"]
    assert [item["id"] for item in data] == [leave["id"]]


def test_trainer_cannot_read_someone_elses_history(client, permanent_trainer, contracted_trainer, auth_headers):
    response = client.get(f"/api/leaves/history/{contracted_trainer.id}", headers=auth_headers(permanent_trainer))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_pending_queue_routes_hr_leave_to_admin(client, permanent_trainer, hr, admin, auth_headers, future_day):
    trainer_leave = _apply(client, auth_headers(permanent_trainer), "PAID", future_day(3), future_day(4)).json()["data"]
    hr_leave = _apply(client, auth_headers(hr), "PAID", future_day(3), future_day(4)).json()["data"]

    hr_queue = client.get("/api/leaves/pending", headers=auth_headers(hr)).json()["data"]
    assert [item["id"] for item in hr_queue] == [trainer_leave["id"]]

    admin_queue = client.get("/api/leaves/pending", headers=auth_headers(admin)).json()["data"]
    assert {item["id"] for item in admin_queue} == {trainer_leave["id"], hr_leave["id"]}


def test_statistics(client, contracted_trainer, auth_headers, future_day):
    headers = auth_headers(contracted_trainer)
    _apply(client, headers, "PAID", future_day(3), future_day(4))
    data = client.get("/api/leaves/statistics", headers=headers).json()["data"]
    assert data["category"] == "CONTRACTED"
    assert data["allowedLeaveTypes"] == ["PAID"]
    assert data["statistics"]["pendingRequests"] == 1
    assert data["balance"]["paid"]["available"] == "Unlimited"


def test_notifications_for_applicant(client, permanent_trainer, hr, auth_headers, future_day):
    leave = _apply(client, auth_headers(permanent_trainer), "PAID", future_day(3), future_day(4)).json()["data"]
    client.put(f"/api/leaves/{leave['id']}/approve", headers=auth_headers(hr))

    notifications = client.get("/api/notifications", headers=auth_headers(permanent_trainer)).json()
    assert [n["type"] for n in notifications] == ["LEAVE_APPROVED"]
    assert notifications[0]["isRead"] is False

    marked = client.patch(f"/api/notifications/{notifications[0]['id']}/read", headers=auth_headers(permanent_trainer))
    assert marked.json()["isRead"] is True


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-token"}])
def test_requests_without_valid_token_are_rejected(client, headers):
    response = client.get("/api/leaves/balance", headers=headers)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["success"] is False
