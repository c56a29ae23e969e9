import os

from tool_room.db.engine import build_engine, build_session_factory


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


TOOL_ROOM_DB_URL = _require_env("TOOL_ROOM_DB_URL")

engine_inventory = build_engine(TOOL_ROOM_DB_URL)

SessionLocalInventory = build_session_factory(engine_inventory)
