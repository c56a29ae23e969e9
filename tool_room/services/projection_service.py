from __future__ import annotations

import json
from typing import Iterator

from tool_room.db.store import InventoryStore
from tool_room.models.inventory_models import Assignment, AssignmentTool, Project, Tool, Worker
from tool_room.services.quantity_ledger import current_quantity


def parse_json_map(raw: str | None) -> dict:
    if not raw:
        return {}
    value = raw.strip()
    if not value.startswith("{"):
        return {}
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return {}
    if not isinstance(parsed, dict):
        return {}
    return {str(key): "" if item is None else str(item) for key, item in parsed.items()}


def dump_json_map(values: dict | None) -> str:
    return json.dumps({str(key): str(item) for key, item in (values or {}).items()})


def serialize_tool(tool: Tool) -> dict:
    return {
        "id": tool.ToolID,
        "name": tool.ToolName,
        "category": tool.Category,
        "status": tool.Status,
        "isCalibrable": bool(tool.IsCalibrable),
        "calibrationDue": tool.CalibrationDue,
        "certificateNumber": tool.CertificateNumber or None,
        "quantity": current_quantity(tool),
        "image": tool.ImagePath,
        "customAttributes": parse_json_map(tool.CustomAttributes),
        "createdDate": tool.CreatedDate,
        "updatedDate": tool.UpdatedDate,
    }


def serialize_worker(worker: Worker | None) -> dict | None:
    if worker is None:
        return None
    return {
        "id": worker.WorkerID,
        "name": worker.WorkerName,
        "employeeId": worker.EmployeeID,
    }


def serialize_project(project: Project | None) -> dict | None:
    if project is None:
        return None
    return {
        "id": project.ProjectID,
        "name": project.ProjectName,
    }


def _serialize_assignment_tool(item: AssignmentTool) -> dict:
    tool = item.Tool
    assigned_quantity = 1 if item.Quantity is None else int(item.Quantity)
    return {
        "id": item.ToolID,
        "name": tool.ToolName if tool else None,
        "category": tool.Category if tool else None,
        "status": tool.Status if tool else None,
        "isCalibrable": bool(tool.IsCalibrable) if tool else False,
        "calibrationDue": tool.CalibrationDue if tool else None,
        "certificateNumber": (tool.CertificateNumber or None) if tool else None,
        "image": tool.ImagePath if tool else None,
        "customAttributes": parse_json_map(tool.CustomAttributes) if tool else {},
        "availableQuantity": current_quantity(tool) if tool else 0,
        "assignedQuantity": assigned_quantity,
        "quantity": assigned_quantity,
    }


def serialize_assignment(assignment: Assignment) -> dict:
    return {
        "id": assignment.AssignmentID,
        "checkoutDate": assignment.CheckoutDate,
        "checkinDate": assignment.CheckinDate,
        "status": assignment.Status,
        "checkinNotes": assignment.CheckinNotes,
        "toolConditions": parse_json_map(assignment.ToolConditions),
        "worker": serialize_worker(assignment.Worker),
        "project": serialize_project(assignment.Project),
        "tools": [_serialize_assignment_tool(item) for item in assignment.AssignmentTools],
    }


class AssignmentFeed:
    """Iterable view over assignments; every pass re-reads the store."""

    def __init__(self, store: InventoryStore, status: str | None = None, newest_first: bool = True):
        self.store = store
        self.status = status
        self.newest_first = newest_first

    def __iter__(self) -> Iterator[dict]:
        for assignment in self.store.select_assignments(self.status, newest_first=self.newest_first):
            yield serialize_assignment(assignment)


def list_assignments(store: InventoryStore, status: str | None = None, newest_first: bool = True) -> AssignmentFeed:
    return AssignmentFeed(store, status=status, newest_first=newest_first)


def get_assignment(store: InventoryStore, assignment_id: int) -> dict:
    return serialize_assignment(store.require_assignment(assignment_id))


def list_tools(store: InventoryStore, category: str | None = None, status: str | None = None) -> list[dict]:
    return [serialize_tool(tool) for tool in store.select_tools(category=category, status=status)]


def get_tool(store: InventoryStore, tool_id: int) -> dict:
    return serialize_tool(store.require_tool(tool_id))


def list_workers(store: InventoryStore) -> list[dict]:
    return [serialize_worker(worker) for worker in store.select_workers()]


def get_worker(store: InventoryStore, worker_id: int) -> dict:
    return serialize_worker(store.require_worker(worker_id))


def list_projects(store: InventoryStore) -> list[dict]:
    return [serialize_project(project) for project in store.select_projects()]


def get_project(store: InventoryStore, project_id: int) -> dict:
    return serialize_project(store.require_project(project_id))
