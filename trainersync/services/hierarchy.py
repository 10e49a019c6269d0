"""
Reporting hierarchy: who reports to whom.

Traversals walk the manager -> subordinates relation breadth-first with a
visited set, so deep or corrupted (cyclic) data cannot blow the stack or
loop forever.
"""
import logging
from collections import deque
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from trainersync.core.exceptions import AppException, NotFoundError
from trainersync.models.employee import Employee

logger = logging.getLogger(__name__)


def _get_or_404(db: Session, employee_id: int, label: str) -> Employee:
    employee = db.get(Employee, employee_id)
    if not employee:
        raise NotFoundError(f"{label} not found")
    return employee


def _direct_reports(db: Session, manager_ids: List[int]) -> Dict[int, List[Employee]]:
    children: Dict[int, List[Employee]] = {mid: [] for mid in manager_ids}
    if not manager_ids:
        return children
    rows = db.query(Employee).filter(
        Employee.reporting_manager_id.in_(manager_ids)
    ).order_by(Employee.id).all()
    for row in rows:
        children[row.reporting_manager_id].append(row)
    return children


def _is_in_chain_above(db: Session, employee_id: int, manager_id: int) -> bool:
    """True if `employee_id` appears in `manager_id`'s chain of managers (or is the manager)."""
    seen = set()
    current: Optional[int] = manager_id
    while current is not None and current not in seen:
        if current == employee_id:
            return True
        seen.add(current)
        row = db.get(Employee, current)
        current = row.reporting_manager_id if row else None
    return False


def set_reporting_manager(db: Session, employee_id: int, manager_id: Optional[int]) -> Employee:
    employee = _get_or_404(db, employee_id, "Employee")
    if manager_id is not None:
        _get_or_404(db, manager_id, "Manager")
        if manager_id == employee_id:
            raise AppException("An employee cannot report to themselves", error_code="INVALID_HIERARCHY")
        if _is_in_chain_above(db, employee_id, manager_id):
            raise AppException(
                "This assignment would create a reporting cycle",
                error_code="INVALID_HIERARCHY"
            )

    previous = employee.reporting_manager_id
    employee.reporting_manager_id = manager_id
    db.commit()
    db.refresh(employee)
    logger.info(f"Employee {employee_id} reporting manager changed {previous} -> {manager_id}")
    return employee


def get_subordinates(db: Session, manager_id: int, recursive: bool = False) -> List[Employee]:
    """Direct reports, or every employee below the manager in BFS order when recursive."""
    _get_or_404(db, manager_id, "Manager")
    result: List[Employee] = []
    visited = {manager_id}
    frontier = [manager_id]
    while frontier:
        children = _direct_reports(db, frontier)
        next_frontier = []
        for mid in frontier:
            for child in children[mid]:
                if child.id in visited:
                    continue
                visited.add(child.id)
                result.append(child)
                next_frontier.append(child.id)
        if not recursive:
            break
        frontier = next_frontier
    return result


def _node(employee: Employee) -> Dict[str, Any]:
    return {
        "id": employee.id,
        "name": employee.display_name,
        "username": employee.username,
        "role": employee.role.value,
        "children": [],
    }


def get_hierarchy_tree(db: Session, manager_id: int) -> Dict[str, Any]:
    root_employee = _get_or_404(db, manager_id, "Manager")
    root = _node(root_employee)
    nodes = {root_employee.id: root}
    queue = deque([root_employee.id])
    while queue:
        current = queue.popleft()
        for child in _direct_reports(db, [current])[current]:
            if child.id in nodes:
                logger.warning(f"Hierarchy cycle detected at employee {child.id}; branch skipped")
                continue
            node = _node(child)
            nodes[child.id] = node
            nodes[current]["children"].append(node)
            queue.append(child.id)
    return root
