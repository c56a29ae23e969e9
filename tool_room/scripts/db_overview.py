#!/usr/bin/env python3
"""Database overview and ledger integrity checks for the tool room inventory."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from tool_room.db.engine import build_engine


EXPECTED_TABLES = [
    "Tools",
    "Workers",
    "Projects",
    "Assignments",
    "AssignmentTools",
]

EXPECTED_COLUMNS: dict[str, list[str]] = {
    "Tools": ["ToolID", "ToolName", "Category", "Status", "Quantity", "CertificateNumber", "CustomAttributes"],
    "Workers": ["WorkerID", "WorkerName", "EmployeeID"],
    "Projects": ["ProjectID", "ProjectName"],
    "Assignments": ["AssignmentID", "CheckoutDate", "CheckinDate", "WorkerID", "ProjectID", "Status", "ToolConditions"],
    "AssignmentTools": ["AssignmentToolID", "AssignmentID", "ToolID", "Quantity"],
}

INTEGRITY_QUERIES = [
    (
        "tools:negative_quantity",
        ["Tools"],
        """SELECT COUNT(*) FROM "Tools" WHERE Quantity < 0""",
    ),
    (
        "assignmenttools:non_positive_quantity",
        ["AssignmentTools"],
        """SELECT COUNT(*) FROM "AssignmentTools" WHERE Quantity IS NOT NULL AND Quantity < 1""",
    ),
    (
        "assignmenttools:active_hold_on_missing_tool",
        ["AssignmentTools", "Assignments", "Tools"],
        """
        SELECT COUNT(*)
        FROM "AssignmentTools" held
        JOIN "Assignments" a ON a.AssignmentID = held.AssignmentID
        LEFT JOIN "Tools" t ON t.ToolID = held.ToolID
        WHERE t.ToolID IS NULL AND a.Status = 'active'
        """,
    ),
    (
        "assignments:completed_without_checkin_date",
        ["Assignments"],
        """SELECT COUNT(*) FROM "Assignments" WHERE Status = 'completed' AND CheckinDate IS NULL""",
    ),
    (
        "tools:in_use_without_active_hold",
        ["Tools", "Assignments", "AssignmentTools"],
        """
        SELECT COUNT(*)
        FROM "Tools" t
        WHERE t.Status = 'In Use'
          AND NOT EXISTS (
            SELECT 1
            FROM "AssignmentTools" held
            JOIN "Assignments" a ON a.AssignmentID = held.AssignmentID
            WHERE held.ToolID = t.ToolID AND a.Status = 'active'
          )
        """,
    ),
    (
        "tools:available_with_active_hold",
        ["Tools", "Assignments", "AssignmentTools"],
        """
        SELECT COUNT(*)
        FROM "Tools" t
        WHERE t.Status = 'Available'
          AND EXISTS (
            SELECT 1
            FROM "AssignmentTools" held
            JOIN "Assignments" a ON a.AssignmentID = held.AssignmentID
            WHERE held.ToolID = t.ToolID AND a.Status = 'active'
          )
        """,
    ),
]


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


def _print_section(title: str) -> None:
    print(f"\n=== {title} ===")


def _scalar(engine: Engine, sql: str, params: dict | None = None):
    with engine.connect() as conn:
        return conn.execute(text(sql), params or {}).scalar()


def _table_names(engine: Engine) -> set[str]:
    return set(inspect(engine).get_table_names())


def _column_names(engine: Engine, table_name: str) -> set[str]:
    return {column["name"] for column in inspect(engine).get_columns(table_name)}


def run_existence_checks(engine: Engine) -> list[CheckResult]:
    tables = _table_names(engine)
    return [
        CheckResult(f"table:{table}", table in tables, "present" if table in tables else "missing")
        for table in EXPECTED_TABLES
    ]


def run_column_checks(engine: Engine) -> list[CheckResult]:
    tables = _table_names(engine)
    results: list[CheckResult] = []
    for table, expected in EXPECTED_COLUMNS.items():
        if table not in tables:
            results.append(CheckResult(f"columns:{table}", False, "table missing"))
            continue
        actual = _column_names(engine, table)
        missing = [name for name in expected if name not in actual]
        results.append(
            CheckResult(
                f"columns:{table}",
                not missing,
                "ok" if not missing else f"missing={','.join(missing)}",
            )
        )
    return results


def run_integrity_checks(engine: Engine) -> list[CheckResult]:
    tables = _table_names(engine)
    checks: list[CheckResult] = []
    for name, required_tables, sql in INTEGRITY_QUERIES:
        if not all(table in tables for table in required_tables):
            continue
        count = int(_scalar(engine, sql) or 0)
        checks.append(CheckResult(name, count == 0, f"count={count}"))
    return checks


def _print_results(title: str, rows: Iterable[CheckResult]) -> None:
    _print_section(title)
    for row in rows:
        status = "OK" if row.ok else "FAIL"
        print(f"[{status}] {row.name} :: {row.detail}")


def _print_row_counts(engine: Engine) -> None:
    _print_section("Row Counts")
    tables = _table_names(engine)
    for table in EXPECTED_TABLES:
        if table not in tables:
            print(f"{table}: missing")
            continue
        count = _scalar(engine, f'SELECT COUNT(*) FROM "{table}"')
        print(f"{table}: {int(count or 0)}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Tool room DB overview")
    parser.add_argument("--db-url", default=os.environ.get("TOOL_ROOM_DB_URL", ""))
    args = parser.parse_args(argv)

    db_url = (args.db_url or "").strip()
    if not db_url:
        print("TOOL_ROOM_DB_URL is not set. Provide --db-url or export env first.")
        return 2

    try:
        engine = build_engine(db_url)
        # Force a quick connectivity check first.
        _scalar(engine, "SELECT 1")
    except Exception as exc:
        print(f"Could not connect to DB: {exc}")
        return 3

    integrity = run_integrity_checks(engine)
    _print_results("Table Existence", run_existence_checks(engine))
    _print_results("Column Checks", run_column_checks(engine))
    _print_results("Integrity Checks", integrity)
    _print_row_counts(engine)
    return 0 if all(row.ok for row in integrity) else 1


if __name__ == "__main__":
    sys.exit(main())
