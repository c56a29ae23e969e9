import unittest
from unittest import mock

from inventory_fixtures import add_tool, memory_store
from sqlalchemy.exc import IntegrityError, OperationalError

from tool_room.db.store import InventoryStore
from tool_room.services.errors import NotFound, StoreError, ValidationError


def _busy_error():
    return OperationalError("UPDATE Tools", {}, Exception("database is locked"))


class InventoryStoreTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.session, self.store = memory_store()
        self.tool_id = add_tool(self.store, quantity=3)["id"]

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def _retrying_store(self, retries):
        return InventoryStore(self.session, busy_retries=retries, busy_backoff_seconds=0)

    def test_busy_database_is_retried(self):
        store = self._retrying_store(2)
        calls = []

        def operation():
            calls.append(1)
            tool = store.require_tool(self.tool_id)
            tool.Quantity = 7
            if len(calls) < 3:
                raise _busy_error()
            return tool.Quantity

        with mock.patch("tool_room.db.store.time.sleep") as sleep:
            self.assertEqual(store.write(operation), 7)

        self.assertEqual(len(calls), 3)
        self.assertEqual(sleep.call_count, 2)
        self.assertEqual(store.get_tool(self.tool_id).Quantity, 7)

    def test_busy_database_gives_up_after_retries(self):
        store = self._retrying_store(1)
        calls = []

        def operation():
            calls.append(1)
            store.require_tool(self.tool_id).Quantity = 0
            raise _busy_error()

        with mock.patch("tool_room.db.store.time.sleep"):
            with self.assertRaises(StoreError) as ctx:
                store.write(operation)

        self.assertEqual(len(calls), 2)
        self.assertIsInstance(ctx.exception.__cause__, OperationalError)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertNotIn("locked", str(ctx.exception))
        self.assertEqual(store.get_tool(self.tool_id).Quantity, 3)

    def test_other_database_errors_roll_back_without_retry(self):
        store = self._retrying_store(3)
        calls = []

        def operation():
            calls.append(1)
            store.require_tool(self.tool_id).Quantity = 0
            raise IntegrityError("INSERT INTO Workers", {}, Exception("UNIQUE constraint failed"))

        with self.assertRaises(StoreError):
            store.write(operation)

        self.assertEqual(len(calls), 1)
        self.assertEqual(store.get_tool(self.tool_id).Quantity, 3)

    def test_business_errors_are_not_retried(self):
        store = self._retrying_store(3)
        calls = []

        def operation():
            calls.append(1)
            store.require_tool(self.tool_id).Quantity = 1
            raise ValidationError("Invalid tools payload")

        with self.assertRaises(ValidationError):
            store.write(operation)

        self.assertEqual(len(calls), 1)
        self.assertEqual(store.get_tool(self.tool_id).Quantity, 3)

    def test_require_helpers_raise_not_found(self):
        with self.assertRaises(NotFound) as ctx:
            self.store.require_tool(404)
        self.assertEqual(str(ctx.exception), "Tool 404 not found")
        with self.assertRaises(NotFound):
            self.store.require_worker(404)
        with self.assertRaises(NotFound):
            self.store.require_project(404)
        with self.assertRaises(NotFound):
            self.store.require_assignment(404)

    def test_retry_settings_read_from_environment(self):
        env = {"TOOL_ROOM_DB_BUSY_RETRIES": "5", "TOOL_ROOM_DB_BUSY_BACKOFF_SECONDS": "oops"}
        with mock.patch.dict("os.environ", env):
            store = InventoryStore(self.session)

        self.assertEqual(store.busy_retries, 5)
        self.assertEqual(store.busy_backoff_seconds, 0.05)


if __name__ == "__main__":
    unittest.main()
