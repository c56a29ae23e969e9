from datetime import datetime, timedelta

from tool_room.db.engine import build_engine, build_session_factory
from tool_room.db.migrations import ensure_schema
from tool_room.db.store import InventoryStore
from tool_room.services import catalog_service


BASE_CHECKOUT = datetime(2026, 10, 19, 8, 0, 0)


def memory_store():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    ensure_schema(engine)
    session = build_session_factory(engine)()
    return engine, session, InventoryStore(session, busy_retries=0, busy_backoff_seconds=0)


def add_tool(store, name="Torque Wrench", quantity=1, category="Mechanical", **extra):
    fields = {"name": name, "category": category, "quantity": quantity}
    fields.update(extra)
    return catalog_service.create_tool(store, fields)


def add_worker(store, name="John Smith", employee_id="EMP001"):
    return catalog_service.create_worker(store, name, employee_id)


def add_project(store, name="Building A Renovation"):
    return catalog_service.create_project(store, name)


def checkout_at(offset_minutes=0):
    return BASE_CHECKOUT + timedelta(minutes=offset_minutes)
