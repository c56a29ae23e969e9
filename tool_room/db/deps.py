from collections.abc import Generator

from tool_room.db.session import SessionLocalInventory
from tool_room.db.store import InventoryStore


def get_inventory_store() -> Generator:
    db = SessionLocalInventory()
    try:
        yield InventoryStore(db)
    finally:
        db.close()
