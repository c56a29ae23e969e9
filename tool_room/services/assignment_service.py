from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

from tool_room.db.store import InventoryStore
from tool_room.models.inventory_models import ASSIGNMENT_ACTIVE, ASSIGNMENT_COMPLETED, Assignment, AssignmentTool
from tool_room.services import quantity_ledger
from tool_room.services.errors import AlreadyCompleted, ValidationError
from tool_room.services.projection_service import dump_json_map, get_assignment


ASSIGNMENT_LOGGER = logging.getLogger("tool_room.assignments")


@dataclass(frozen=True)
class ToolRequest:
    tool_id: int
    quantity: int


def _coerce_requests(tool_requests: Iterable | None) -> list[ToolRequest]:
    if tool_requests is None:
        raise ValidationError("Missing required fields")
    requests: list[ToolRequest] = []
    for raw in tool_requests:
        if isinstance(raw, ToolRequest):
            request = raw
        elif isinstance(raw, Mapping):
            request = ToolRequest(tool_id=raw.get("toolId"), quantity=raw.get("quantity"))
        else:
            tool_id = getattr(raw, "toolId", None)
            request = ToolRequest(tool_id=tool_id, quantity=getattr(raw, "quantity", None))
        if not request.tool_id or isinstance(request.quantity, bool) or not isinstance(request.quantity, int):
            raise ValidationError("Invalid tools payload")
        if request.quantity < 1:
            raise ValidationError("Invalid tools payload")
        requests.append(request)
    if not requests:
        raise ValidationError("At least one tool is required")
    return requests


def checkout(
    store: InventoryStore,
    checkout_date: datetime | None,
    worker_id: int | None,
    project_id: int | None,
    tool_requests: Iterable | None,
) -> dict:
    if not checkout_date or not worker_id or not project_id:
        raise ValidationError("Missing required fields")
    requests = _coerce_requests(tool_requests)

    def _open_assignment() -> int:
        worker = store.require_worker(worker_id)
        project = store.require_project(project_id)
        assignment = Assignment(
            CheckoutDate=checkout_date,
            Worker=worker,
            Project=project,
            Status=ASSIGNMENT_ACTIVE,
            CreatedDate=datetime.now(),
            UpdatedDate=datetime.now(),
        )
        store.add(assignment)
        for request in requests:
            tool = quantity_ledger.reserve(store, request.tool_id, request.quantity)
            assignment.AssignmentTools.append(
                AssignmentTool(ToolID=tool.ToolID, Tool=tool, Quantity=request.quantity)
            )
        store.flush()
        return assignment.AssignmentID

    assignment_id = store.write(_open_assignment)
    ASSIGNMENT_LOGGER.info(
        "Checked out assignment %s for worker %s on project %s (%s tool lines)",
        assignment_id,
        worker_id,
        project_id,
        len(requests),
    )
    return get_assignment(store, assignment_id)


def checkin(
    store: InventoryStore,
    assignment_id: int,
    checkin_notes: str | None = None,
    tool_conditions: Mapping | None = None,
) -> dict:
    given = {str(key): "" if value is None else value for key, value in (tool_conditions or {}).items()}
    conditions = {key: quantity_ledger.normalize_condition(value) for key, value in given.items()}

    def _close_assignment() -> None:
        assignment = store.require_assignment(assignment_id)
        if assignment.Status == ASSIGNMENT_COMPLETED:
            raise AlreadyCompleted(f"Assignment {assignment_id} is already checked in")

        assignment.CheckinDate = datetime.now()
        assignment.Status = ASSIGNMENT_COMPLETED
        assignment.CheckinNotes = checkin_notes or None
        # Stored as given, including keys for tools outside this assignment.
        assignment.ToolConditions = dump_json_map(given)
        assignment.UpdatedDate = datetime.now()

        for item in assignment.AssignmentTools:
            quantity_ledger.release(
                store,
                item.ToolID,
                1 if item.Quantity is None else int(item.Quantity),
                conditions.get(str(item.ToolID), "good"),
                excluding_assignment_id=assignment.AssignmentID,
            )

    store.write(_close_assignment)
    ASSIGNMENT_LOGGER.info("Checked in assignment %s", assignment_id)
    return get_assignment(store, assignment_id)
