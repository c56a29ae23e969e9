"""
Startup schema maintenance.

Creates missing tables and adds columns that older databases were created
without, so the ORM can select every mapped attribute. No Alembic.
"""

import json
from datetime import date
import logging

from sqlalchemy import func, inspect, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from tool_room.db.base import Base
from tool_room.models.inventory_models import Project, Tool, Worker


logger = logging.getLogger("tool_room.migrations")

LEGACY_COLUMNS = {
    "Tools": {
        "CertificateNumber": "VARCHAR(100)",
        "Quantity": "INTEGER DEFAULT 1",
    },
    "Assignments": {
        "ToolConditions": "TEXT",
    },
    "AssignmentTools": {
        "Quantity": "INTEGER DEFAULT 1",
    },
}

SAMPLE_TOOLS = [
    {
        "ToolName": "Digital Multimeter",
        "Category": "Electrical",
        "IsCalibrable": True,
        "CalibrationDue": "2025-12-31",
        "CustomAttributes": {"brand": "Fluke", "model": "87V"},
    },
    {
        "ToolName": "Torque Wrench",
        "Category": "Mechanical",
        "IsCalibrable": True,
        "CalibrationDue": "2025-11-15",
        "CustomAttributes": {"range": "10-150 Nm"},
    },
    {
        "ToolName": "Safety Harness",
        "Category": "Safety",
        "IsCalibrable": False,
        "CustomAttributes": {"size": "Large", "certified": "Yes"},
    },
    {
        "ToolName": "Oscilloscope",
        "Category": "Electrical",
        "IsCalibrable": True,
        "CalibrationDue": "2025-10-20",
        "CustomAttributes": {"bandwidth": "100MHz"},
    },
    {
        "ToolName": "Impact Driver",
        "Category": "Mechanical",
        "Status": "Damaged",
        "IsCalibrable": False,
        "CustomAttributes": {"voltage": "18V"},
    },
]

SAMPLE_WORKERS = [
    ("John Smith", "EMP001"),
    ("Sarah Johnson", "EMP002"),
    ("Michael Brown", "EMP003"),
    ("Emily Davis", "EMP004"),
]

SAMPLE_PROJECTS = [
    "Building A Renovation",
    "Lab Equipment Installation",
    "Power Grid Maintenance",
    "Safety Audit 2025",
]


def _exec_best_effort(engine: Engine, sql: str) -> None:
    try:
        with engine.begin() as conn:
            conn.execute(text(sql))
    except Exception as exc:
        logger.warning("startup migration skipped (%s): %s", sql, exc)


def add_missing_columns(engine: Engine) -> list[str]:
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    added = []
    for table, columns in LEGACY_COLUMNS.items():
        if table not in existing_tables:
            continue
        present = {column["name"] for column in inspector.get_columns(table)}
        for column, ddl in columns.items():
            if column in present:
                continue
            logger.info("Adding %s.%s", table, column)
            _exec_best_effort(engine, f'ALTER TABLE "{table}" ADD COLUMN "{column}" {ddl}')
            added.append(f"{table}.{column}")
    return added


def seed_sample_data(session: Session) -> bool:
    if session.execute(select(func.count(Tool.ToolID))).scalar():
        return False

    for row in SAMPLE_TOOLS:
        due = row.get("CalibrationDue")
        session.add(
            Tool(
                ToolName=row["ToolName"],
                Category=row["Category"],
                Status=row.get("Status", "Available"),
                IsCalibrable=row["IsCalibrable"],
                CalibrationDue=date.fromisoformat(due) if due else None,
                Quantity=1,
                CustomAttributes=json.dumps(row["CustomAttributes"]),
            )
        )
    for name, employee_id in SAMPLE_WORKERS:
        session.add(Worker(WorkerName=name, EmployeeID=employee_id))
    for name in SAMPLE_PROJECTS:
        session.add(Project(ProjectName=name))
    session.commit()
    logger.info("Inserted sample tools, workers and projects")
    return True


def ensure_schema(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
    add_missing_columns(engine)
