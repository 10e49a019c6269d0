from datetime import date

from trainersync.models.leave_request import LeaveStatus
from trainersync.services.overlap import LeaveRecord, describe_overlap, find_overlapping


def _existing(status="APPROVED", from_date="2025-03-10", to_date="2025-03-15", leave_type="CASUAL", id=1):
    return {"id": id, "fromDate": from_date, "toDate": to_date, "status": status, "leaveType": leave_type}


def test_shared_boundary_day_overlaps():
    conflicts = find_overlapping(date(2025, 3, 15), date(2025, 3, 20), [_existing()])
    assert [c.id for c in conflicts] == [1]


def test_day_after_does_not_overlap():
    assert find_overlapping(date(2025, 3, 16), date(2025, 3, 20), [_existing()]) == []


def test_enclosing_range_overlaps():
    assert find_overlapping(date(2025, 3, 1), date(2025, 3, 31), [_existing()])


def test_rejected_and_cancelled_leaves_are_ignored():
    existing = [_existing(status="REJECTED", id=1), _existing(status="CANCELLED", id=2)]
    assert find_overlapping(date(2025, 3, 12), date(2025, 3, 12), existing) == []


def test_pending_leave_blocks():
    conflicts = find_overlapping(date(2025, 3, 12), date(2025, 3, 12), [_existing(status="PENDING")])
    assert conflicts[0].status == LeaveStatus.PENDING


def test_conflicts_keep_input_order():
    existing = [
        _existing(id=7, from_date="2025-03-18", to_date="2025-03-19"),
        _existing(id=3, from_date="2025-03-10", to_date="2025-03-11"),
    ]
    conflicts = find_overlapping(date(2025, 3, 1), date(2025, 3, 31), existing)
    assert [c.id for c in conflicts] == [7, 3]


def test_message_names_status_type_and_dates():
    record = LeaveRecord.of(_existing(status="PENDING"))
    assert describe_overlap(record) == (
        "You already have a pending casual leave from 2025-03-10 to 2025-03-15. "
        "Please select different dates."
    )
