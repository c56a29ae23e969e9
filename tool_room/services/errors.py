from __future__ import annotations


class InventoryError(RuntimeError):
    status_code = 500
    default_message = "Inventory operation failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(InventoryError):
    status_code = 400
    default_message = "Invalid request payload."


class NotFound(InventoryError):
    status_code = 404
    default_message = "Not found."


class InsufficientQuantity(InventoryError):
    status_code = 400

    def __init__(self, tool_id: int, requested: int | None = None, available: int | None = None):
        super().__init__(f"Not enough quantity for tool {tool_id}")
        self.tool_id = tool_id
        self.requested = requested
        self.available = available


class ConflictError(InventoryError):
    status_code = 400
    default_message = "Operation conflicts with existing records."


class AlreadyCompleted(ConflictError):
    default_message = "Assignment is already checked in."


class StoreError(InventoryError):
    """Persistence failure; the message never carries driver detail."""

    status_code = 500
    default_message = "Inventory store unavailable."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
