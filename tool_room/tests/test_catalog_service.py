import unittest

from inventory_fixtures import add_project, add_tool, add_worker, checkout_at, memory_store

from tool_room.services import assignment_service, catalog_service, projection_service
from tool_room.services.errors import ConflictError, NotFound, ValidationError


class ToolCatalogTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.session, self.store = memory_store()

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def test_create_tool_applies_defaults(self):
        created = catalog_service.create_tool(self.store, {"name": "Laser Level", "category": "Surveying"})

        self.assertEqual(created["quantity"], 1)
        self.assertEqual(created["status"], "Available")
        self.assertEqual(created["customAttributes"], {})
        self.assertFalse(created["isCalibrable"])
        self.assertIsNone(created["certificateNumber"])

    def test_create_tool_requires_name_and_category(self):
        with self.assertRaises(ValidationError):
            catalog_service.create_tool(self.store, {"category": "Surveying"})
        with self.assertRaises(ValidationError):
            catalog_service.create_tool(self.store, {"name": "  ", "category": "Surveying"})
        self.assertEqual(projection_service.list_tools(self.store), [])

    def test_update_tool_only_touches_given_fields(self):
        created = add_tool(
            self.store,
            name="Torque Wrench",
            quantity=3,
            certificateNumber="CAL-2291",
            customAttributes={"range": "10-150 Nm"},
        )

        updated = catalog_service.update_tool(self.store, created["id"], {"category": "Calibrated"})

        self.assertEqual(updated["name"], "Torque Wrench")
        self.assertEqual(updated["category"], "Calibrated")
        self.assertEqual(updated["quantity"], 3)
        self.assertEqual(updated["certificateNumber"], "CAL-2291")
        self.assertEqual(updated["customAttributes"], {"range": "10-150 Nm"})

    def test_update_missing_tool(self):
        with self.assertRaises(NotFound):
            catalog_service.update_tool(self.store, 77, {"name": "Ghost"})

    def test_delete_tool_blocked_while_held(self):
        tool_id = add_tool(self.store, quantity=2)["id"]
        worker_id = add_worker(self.store)["id"]
        project_id = add_project(self.store)["id"]
        opened = assignment_service.checkout(
            self.store, checkout_at(), worker_id, project_id, [{"toolId": tool_id, "quantity": 1}]
        )

        with self.assertRaises(ConflictError):
            catalog_service.delete_tool(self.store, tool_id)
        self.assertIsNotNone(self.store.get_tool(tool_id))

        assignment_service.checkin(self.store, opened["id"])
        catalog_service.delete_tool(self.store, tool_id)
        with self.assertRaises(NotFound):
            projection_service.get_tool(self.store, tool_id)

        history = projection_service.get_assignment(self.store, opened["id"])
        self.assertEqual(history["tools"][0]["id"], tool_id)
        self.assertIsNone(history["tools"][0]["name"])
        self.assertEqual(history["tools"][0]["assignedQuantity"], 1)

    def test_delete_missing_tool(self):
        with self.assertRaises(NotFound):
            catalog_service.delete_tool(self.store, 5)

    def test_list_tools_sorted_and_filtered(self):
        add_tool(self.store, name="Torque Wrench", category="Mechanical")
        add_tool(self.store, name="Digital Multimeter", category="Electrical")
        add_tool(self.store, name="Impact Driver", category="Mechanical", status="Damaged")

        names = [tool["name"] for tool in projection_service.list_tools(self.store)]
        self.assertEqual(names, ["Digital Multimeter", "Impact Driver", "Torque Wrench"])

        mechanical = projection_service.list_tools(self.store, category="Mechanical")
        self.assertEqual([tool["name"] for tool in mechanical], ["Impact Driver", "Torque Wrench"])

        damaged = projection_service.list_tools(self.store, status="Damaged")
        self.assertEqual([tool["name"] for tool in damaged], ["Impact Driver"])


class DirectoryCatalogTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.session, self.store = memory_store()

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def test_worker_requires_name_and_employee_id(self):
        with self.assertRaises(ValidationError):
            catalog_service.create_worker(self.store, "John Smith", "")
        with self.assertRaises(ValidationError):
            catalog_service.create_worker(self.store, None, "EMP001")

        worker_id = add_worker(self.store)["id"]
        with self.assertRaises(ValidationError):
            catalog_service.update_worker(self.store, worker_id, "John Smith", None)
        with self.assertRaises(ValidationError):
            catalog_service.update_worker(self.store, worker_id, "   ", "EMP001")

    def test_duplicate_employee_id_conflicts(self):
        add_worker(self.store, name="John Smith", employee_id="EMP001")

        with self.assertRaises(ConflictError) as ctx:
            add_worker(self.store, name="Johnny Smith", employee_id="EMP001")
        self.assertEqual(str(ctx.exception), "Employee ID already exists")
        self.assertEqual(len(projection_service.list_workers(self.store)), 1)

    def test_update_worker_to_taken_employee_id_conflicts(self):
        add_worker(self.store, name="John Smith", employee_id="EMP001")
        sarah = add_worker(self.store, name="Sarah Johnson", employee_id="EMP002")

        with self.assertRaises(ConflictError):
            catalog_service.update_worker(self.store, sarah["id"], "Sarah Johnson", "EMP001")

        renamed = catalog_service.update_worker(self.store, sarah["id"], "Sarah J. Johnson", "EMP002")
        self.assertEqual(renamed["name"], "Sarah J. Johnson")
        self.assertEqual(projection_service.get_worker(self.store, sarah["id"])["employeeId"], "EMP002")

    def test_workers_listed_by_name(self):
        add_worker(self.store, name="Sarah Johnson", employee_id="EMP002")
        add_worker(self.store, name="Emily Davis", employee_id="EMP004")

        names = [worker["name"] for worker in projection_service.list_workers(self.store)]
        self.assertEqual(names, ["Emily Davis", "Sarah Johnson"])

    def test_project_delete_blocked_until_checkin(self):
        tool_id = add_tool(self.store)["id"]
        worker_id = add_worker(self.store)["id"]
        project_id = add_project(self.store, name="Lab Equipment Installation")["id"]
        opened = assignment_service.checkout(
            self.store, checkout_at(), worker_id, project_id, [{"toolId": tool_id, "quantity": 1}]
        )

        with self.assertRaises(ConflictError) as ctx:
            catalog_service.delete_project(self.store, project_id)
        self.assertEqual(str(ctx.exception), "Cannot delete project with active assignments")

        assignment_service.checkin(self.store, opened["id"])
        catalog_service.delete_project(self.store, project_id)
        self.assertEqual(projection_service.list_projects(self.store), [])

    def test_worker_delete_blocked_while_active(self):
        tool_id = add_tool(self.store)["id"]
        worker_id = add_worker(self.store)["id"]
        project_id = add_project(self.store)["id"]
        assignment_service.checkout(
            self.store, checkout_at(), worker_id, project_id, [{"toolId": tool_id, "quantity": 1}]
        )

        with self.assertRaises(ConflictError):
            catalog_service.delete_worker(self.store, worker_id)
        self.assertIsNotNone(self.store.get_worker(worker_id))

    def test_completed_history_survives_worker_delete(self):
        tool_id = add_tool(self.store)["id"]
        worker_id = add_worker(self.store)["id"]
        project_id = add_project(self.store)["id"]
        opened = assignment_service.checkout(
            self.store, checkout_at(), worker_id, project_id, [{"toolId": tool_id, "quantity": 1}]
        )
        assignment_service.checkin(self.store, opened["id"])

        catalog_service.delete_worker(self.store, worker_id)

        rows = list(projection_service.list_assignments(self.store))
        self.assertEqual(len(rows), 1)
        self.assertIsNone(rows[0]["worker"])
        self.assertEqual(rows[0]["project"]["id"], project_id)
        self.assertEqual(rows[0]["status"], "completed")

    def test_project_requires_name(self):
        with self.assertRaises(ValidationError):
            catalog_service.create_project(self.store, "   ")
        with self.assertRaises(NotFound):
            catalog_service.update_project(self.store, 12, "Safety Audit 2025")


if __name__ == "__main__":
    unittest.main()
