from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from tool_room.models.inventory_models import (
    ASSIGNMENT_ACTIVE,
    Assignment,
    AssignmentTool,
    Project,
    Tool,
    Worker,
)
from tool_room.services.errors import InventoryError, NotFound, StoreError


STORE_LOGGER = logging.getLogger("tool_room.store")

# Every mutating operation in the process goes through this lock.
_WRITE_LOCK = threading.RLock()
_BUSY_MARKERS = ("database is locked", "database table is locked", "database is busy")

T = TypeVar("T")


def _env_number(name: str, default, cast):
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        STORE_LOGGER.warning("Ignoring invalid %s=%r", name, raw)
        return default


def _is_busy(exc: OperationalError) -> bool:
    text = str(getattr(exc, "orig", None) or exc).lower()
    return any(marker in text for marker in _BUSY_MARKERS)


class InventoryStore:
    """Transactional repository over a SQLAlchemy session.

    Mutations run through :meth:`write`, which serializes writers, commits on
    success and rolls back on any failure. Lookups and listings read straight
    from the session.
    """

    def __init__(
        self,
        session: Session,
        busy_retries: int | None = None,
        busy_backoff_seconds: float | None = None,
    ):
        self.session = session
        if busy_retries is None:
            busy_retries = _env_number("TOOL_ROOM_DB_BUSY_RETRIES", 3, int)
        if busy_backoff_seconds is None:
            busy_backoff_seconds = _env_number("TOOL_ROOM_DB_BUSY_BACKOFF_SECONDS", 0.05, float)
        self.busy_retries = max(0, int(busy_retries))
        self.busy_backoff_seconds = max(0.0, float(busy_backoff_seconds))

    # transaction control

    def begin(self) -> None:
        if not self.session.in_transaction():
            self.session.begin()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def flush(self) -> None:
        self.session.flush()

    @contextmanager
    def transaction(self) -> Iterator["InventoryStore"]:
        with _WRITE_LOCK:
            self.begin()
            try:
                yield self
                self.session.flush()
                self.commit()
            except InventoryError as exc:
                self.rollback()
                STORE_LOGGER.warning("Rolled back inventory transaction: %s", exc)
                raise
            except OperationalError as exc:
                self.rollback()
                if _is_busy(exc):
                    raise
                STORE_LOGGER.exception("Inventory transaction failed")
                raise StoreError() from exc
            except SQLAlchemyError as exc:
                self.rollback()
                STORE_LOGGER.exception("Inventory transaction failed")
                raise StoreError() from exc
            except Exception:
                self.rollback()
                raise

    def write(self, operation: Callable[[], T]) -> T:
        attempt = 0
        while True:
            try:
                with self.transaction():
                    return operation()
            except OperationalError as exc:
                if attempt >= self.busy_retries:
                    STORE_LOGGER.error("Inventory store still busy after %s retries", attempt)
                    raise StoreError() from exc
                attempt += 1
                STORE_LOGGER.warning("Inventory store busy, retrying (%s/%s)", attempt, self.busy_retries)
                time.sleep(self.busy_backoff_seconds * attempt)

    # typed access

    def add(self, instance) -> None:
        self.session.add(instance)

    def delete(self, instance) -> None:
        self.session.delete(instance)

    def get_tool(self, tool_id: int) -> Tool | None:
        return self.session.get(Tool, tool_id)

    def get_worker(self, worker_id: int) -> Worker | None:
        return self.session.get(Worker, worker_id)

    def get_project(self, project_id: int) -> Project | None:
        return self.session.get(Project, project_id)

    def get_assignment(self, assignment_id: int) -> Assignment | None:
        stmt = (
            select(Assignment)
            .options(selectinload(Assignment.Worker))
            .options(selectinload(Assignment.Project))
            .options(selectinload(Assignment.AssignmentTools).selectinload(AssignmentTool.Tool))
            .where(Assignment.AssignmentID == assignment_id)
        )
        return self.session.execute(stmt.execution_options(populate_existing=True)).scalars().first()

    def require_tool(self, tool_id: int) -> Tool:
        tool = self.get_tool(tool_id)
        if not tool:
            raise NotFound(f"Tool {tool_id} not found")
        return tool

    def require_worker(self, worker_id: int) -> Worker:
        worker = self.get_worker(worker_id)
        if not worker:
            raise NotFound(f"Worker {worker_id} not found")
        return worker

    def require_project(self, project_id: int) -> Project:
        project = self.get_project(project_id)
        if not project:
            raise NotFound(f"Project {project_id} not found")
        return project

    def require_assignment(self, assignment_id: int) -> Assignment:
        assignment = self.get_assignment(assignment_id)
        if not assignment:
            raise NotFound(f"Assignment {assignment_id} not found")
        return assignment

    def count_active_holds(self, tool_id: int, excluding_assignment_id: int | None = None) -> int:
        self.session.flush()
        stmt = (
            select(func.count(AssignmentTool.AssignmentToolID))
            .join(Assignment, Assignment.AssignmentID == AssignmentTool.AssignmentID)
            .where(AssignmentTool.ToolID == tool_id)
            .where(Assignment.Status == ASSIGNMENT_ACTIVE)
        )
        if excluding_assignment_id is not None:
            stmt = stmt.where(Assignment.AssignmentID != excluding_assignment_id)
        return int(self.session.execute(stmt).scalar() or 0)

    def count_active_assignments(self, worker_id: int | None = None, project_id: int | None = None) -> int:
        self.session.flush()
        stmt = select(func.count(Assignment.AssignmentID)).where(Assignment.Status == ASSIGNMENT_ACTIVE)
        if worker_id is not None:
            stmt = stmt.where(Assignment.WorkerID == worker_id)
        if project_id is not None:
            stmt = stmt.where(Assignment.ProjectID == project_id)
        return int(self.session.execute(stmt).scalar() or 0)

    def find_worker_by_employee_id(self, employee_id: str, excluding_worker_id: int | None = None) -> Worker | None:
        self.session.flush()
        stmt = select(Worker).where(Worker.EmployeeID == employee_id)
        if excluding_worker_id is not None:
            stmt = stmt.where(Worker.WorkerID != excluding_worker_id)
        return self.session.execute(stmt).scalars().first()

    def select_tools(self, category: str | None = None, status: str | None = None) -> list[Tool]:
        stmt = select(Tool).order_by(Tool.ToolName, Tool.ToolID)
        if category:
            stmt = stmt.where(Tool.Category == category)
        if status:
            stmt = stmt.where(Tool.Status == status)
        return list(self.session.execute(stmt.execution_options(populate_existing=True)).scalars().all())

    def select_workers(self) -> list[Worker]:
        stmt = select(Worker).order_by(Worker.WorkerName, Worker.WorkerID)
        return list(self.session.execute(stmt.execution_options(populate_existing=True)).scalars().all())

    def select_projects(self) -> list[Project]:
        stmt = select(Project).order_by(Project.ProjectName, Project.ProjectID)
        return list(self.session.execute(stmt.execution_options(populate_existing=True)).scalars().all())

    def select_assignments(self, status: str | None = None, newest_first: bool = True) -> list[Assignment]:
        if newest_first:
            ordering = (Assignment.CheckoutDate.desc(), Assignment.AssignmentID.desc())
        else:
            ordering = (Assignment.CheckoutDate.asc(), Assignment.AssignmentID.asc())
        stmt = (
            select(Assignment)
            .options(selectinload(Assignment.Worker))
            .options(selectinload(Assignment.Project))
            .options(selectinload(Assignment.AssignmentTools).selectinload(AssignmentTool.Tool))
            .order_by(*ordering)
        )
        if status:
            stmt = stmt.where(Assignment.Status == status)
        return list(self.session.execute(stmt.execution_options(populate_existing=True)).scalars().all())
