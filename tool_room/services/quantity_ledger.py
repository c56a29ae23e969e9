"""Quantity ledger: the single writer of ``Tool.Quantity`` and ``Tool.Status``.

A tool's ``Quantity`` counts the units that are not attached to an active
assignment. Units only move between that pool and the assignment join rows
through :func:`reserve` and :func:`release`, which keeps the sum of reserved
and available units constant for every tool.
"""

from __future__ import annotations

import logging
from datetime import datetime

from tool_room.db.store import InventoryStore
from tool_room.models.inventory_models import OVERRIDE_STATUSES, TOOL_CONDITIONS, TOOL_STATUSES, Tool
from tool_room.services.errors import InsufficientQuantity, ValidationError


LEDGER_LOGGER = logging.getLogger("tool_room.ledger")

STATUS_AVAILABLE = "Available"
STATUS_IN_USE = "In Use"
STATUS_BY_CONDITION = {
    "damaged": "Damaged",
    "lost": "Lost",
}


def current_quantity(tool: Tool) -> int:
    # Rows created before the quantity column existed count as a single unit.
    if tool.Quantity is None:
        return 1
    return int(tool.Quantity)


def normalize_condition(raw: str | None) -> str:
    condition = (raw or "good").strip().lower()
    if condition not in TOOL_CONDITIONS:
        raise ValidationError(f"Unknown tool condition: {raw}")
    return condition


def _require_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
        raise ValidationError("Quantity must be a whole number of at least 1.")
    return amount


def reserve(store: InventoryStore, tool_id: int, amount: int) -> Tool:
    amount = _require_amount(amount)
    tool = store.require_tool(tool_id)
    available = current_quantity(tool)
    if available < amount:
        raise InsufficientQuantity(tool_id, requested=amount, available=available)

    tool.Quantity = available - amount
    if tool.Status not in OVERRIDE_STATUSES:
        tool.Status = STATUS_IN_USE
    tool.UpdatedDate = datetime.now()
    LEDGER_LOGGER.debug("Reserved %s of tool %s (%s left)", amount, tool_id, tool.Quantity)
    return tool


def has_other_active_holds(store: InventoryStore, tool_id: int, excluding_assignment_id: int | None) -> bool:
    return store.count_active_holds(tool_id, excluding_assignment_id=excluding_assignment_id) > 0


def release(
    store: InventoryStore,
    tool_id: int,
    amount: int,
    condition: str | None = None,
    excluding_assignment_id: int | None = None,
) -> Tool:
    amount = _require_amount(amount)
    condition = normalize_condition(condition)
    tool = store.require_tool(tool_id)

    # Damaged and lost units still go back on the books; the status override
    # keeps them from being handed out until someone resets it.
    tool.Quantity = current_quantity(tool) + amount
    tool.UpdatedDate = datetime.now()

    if condition in STATUS_BY_CONDITION:
        tool.Status = STATUS_BY_CONDITION[condition]
        LEDGER_LOGGER.info("Tool %s returned %s", tool_id, condition)
        return tool

    if tool.Status in OVERRIDE_STATUSES:
        return tool
    if not has_other_active_holds(store, tool_id, excluding_assignment_id):
        tool.Status = STATUS_AVAILABLE
    else:
        tool.Status = STATUS_IN_USE
    LEDGER_LOGGER.debug("Released %s of tool %s (%s available)", amount, tool_id, tool.Quantity)
    return tool


def apply_manual_adjustment(tool: Tool, quantity: int | None = None, status: str | None = None) -> Tool:
    """Direct edits from tool maintenance, including clearing Damaged/Lost."""
    if quantity is not None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValidationError("Quantity must be a whole number of at least 0.")
        tool.Quantity = quantity
    if status is not None:
        if status not in TOOL_STATUSES:
            raise ValidationError(f"Unknown tool status: {status}")
        tool.Status = status
    elif not tool.Status:
        tool.Status = STATUS_AVAILABLE
    tool.UpdatedDate = datetime.now()
    return tool
