from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError

from tool_room.db.store import InventoryStore
from tool_room.models.inventory_models import Project, Tool, Worker
from tool_room.services import quantity_ledger
from tool_room.services.errors import ConflictError, StoreError, ValidationError
from tool_room.services.projection_service import dump_json_map, serialize_project, serialize_tool, serialize_worker


CATALOG_LOGGER = logging.getLogger("tool_room.catalog")

_TOOL_FIELD_MAP = {
    "name": "ToolName",
    "category": "Category",
    "isCalibrable": "IsCalibrable",
    "calibrationDue": "CalibrationDue",
    "certificateNumber": "CertificateNumber",
    "image": "ImagePath",
}


def _required_text(value: Any, message: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError(message)
    return text


def _apply_tool_fields(tool: Tool, fields: dict) -> None:
    for field, value in fields.items():
        if field == "customAttributes":
            tool.CustomAttributes = dump_json_map(value)
        elif field == "certificateNumber":
            tool.CertificateNumber = value or None
        elif field == "isCalibrable":
            tool.IsCalibrable = bool(value)
        elif field in ("name", "category"):
            setattr(tool, _TOOL_FIELD_MAP[field], _required_text(value, f"Tool {field} is required"))
        elif field in _TOOL_FIELD_MAP:
            setattr(tool, _TOOL_FIELD_MAP[field], value)
    quantity_ledger.apply_manual_adjustment(
        tool,
        quantity=fields.get("quantity"),
        status=fields.get("status"),
    )


def create_tool(store: InventoryStore, fields: dict) -> dict:
    values = dict(fields)
    if values.get("quantity") is None:
        values["quantity"] = 1
    if not values.get("status"):
        values["status"] = quantity_ledger.STATUS_AVAILABLE
    values.setdefault("customAttributes", {})
    for required in ("name", "category"):
        if required not in values:
            raise ValidationError(f"Tool {required} is required")

    def _create() -> Tool:
        tool = Tool(CreatedDate=datetime.now())
        _apply_tool_fields(tool, values)
        store.add(tool)
        store.flush()
        return tool

    tool = store.write(_create)
    CATALOG_LOGGER.info("Created tool %s (%s)", tool.ToolID, tool.ToolName)
    return serialize_tool(tool)


def update_tool(store: InventoryStore, tool_id: int, fields: dict) -> dict:
    def _update() -> Tool:
        tool = store.require_tool(tool_id)
        _apply_tool_fields(tool, {key: value for key, value in fields.items() if key != "id"})
        return tool

    return serialize_tool(store.write(_update))


def delete_tool(store: InventoryStore, tool_id: int) -> None:
    def _delete() -> None:
        tool = store.require_tool(tool_id)
        if store.count_active_holds(tool_id) > 0:
            raise ConflictError("Cannot delete tool with active assignments")
        store.delete(tool)

    store.write(_delete)
    CATALOG_LOGGER.info("Deleted tool %s", tool_id)


def _write_worker(store: InventoryStore, operation):
    try:
        return store.write(operation)
    except StoreError as exc:
        # Unique index on EmployeeID catches a concurrent duplicate the pre-check missed.
        if isinstance(exc.__cause__, IntegrityError):
            raise ConflictError("Employee ID already exists") from exc
        raise


def create_worker(store: InventoryStore, name: Any, employee_id: Any) -> dict:
    name = _required_text(name, "Name and employee ID are required")
    employee_id = _required_text(employee_id, "Name and employee ID are required")

    def _create() -> Worker:
        if store.find_worker_by_employee_id(employee_id):
            raise ConflictError("Employee ID already exists")
        worker = Worker(
            WorkerName=name,
            EmployeeID=employee_id,
            CreatedDate=datetime.now(),
            UpdatedDate=datetime.now(),
        )
        store.add(worker)
        store.flush()
        return worker

    worker = _write_worker(store, _create)
    CATALOG_LOGGER.info("Created worker %s (%s)", worker.WorkerID, worker.EmployeeID)
    return serialize_worker(worker)


def update_worker(store: InventoryStore, worker_id: int, name: Any, employee_id: Any) -> dict:
    name = _required_text(name, "Name and employee ID are required")
    employee_id = _required_text(employee_id, "Name and employee ID are required")

    def _update() -> Worker:
        worker = store.require_worker(worker_id)
        if store.find_worker_by_employee_id(employee_id, excluding_worker_id=worker_id):
            raise ConflictError("Employee ID already exists")
        worker.WorkerName = name
        worker.EmployeeID = employee_id
        worker.UpdatedDate = datetime.now()
        return worker

    return serialize_worker(_write_worker(store, _update))


def delete_worker(store: InventoryStore, worker_id: int) -> None:
    def _delete() -> None:
        worker = store.require_worker(worker_id)
        if store.count_active_assignments(worker_id=worker_id) > 0:
            raise ConflictError("Cannot delete worker with active assignments")
        store.delete(worker)

    store.write(_delete)
    CATALOG_LOGGER.info("Deleted worker %s", worker_id)


def create_project(store: InventoryStore, name: Any) -> dict:
    name = _required_text(name, "Project name is required")

    def _create() -> Project:
        project = Project(ProjectName=name, CreatedDate=datetime.now(), UpdatedDate=datetime.now())
        store.add(project)
        store.flush()
        return project

    project = store.write(_create)
    CATALOG_LOGGER.info("Created project %s", project.ProjectID)
    return serialize_project(project)


def update_project(store: InventoryStore, project_id: int, name: Any) -> dict:
    name = _required_text(name, "Project name is required")

    def _update() -> Project:
        project = store.require_project(project_id)
        project.ProjectName = name
        project.UpdatedDate = datetime.now()
        return project

    return serialize_project(store.write(_update))


def delete_project(store: InventoryStore, project_id: int) -> None:
    def _delete() -> None:
        project = store.require_project(project_id)
        if store.count_active_assignments(project_id=project_id) > 0:
            raise ConflictError("Cannot delete project with active assignments")
        store.delete(project)

    store.write(_delete)
    CATALOG_LOGGER.info("Deleted project %s", project_id)
