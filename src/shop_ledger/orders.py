"""Purchase orders placed with providers and their receipt into stock.

Placing an order records a manual debt on the provider's account for the
order total. Receiving it fans each order line out into one ``Disponible``
inventory unit per ordered quantity. Receipt is all-or-nothing: when any
write fails, the units already inserted are deleted again and the order stays
``pending``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from . import data_manager, date_helpers, log
from .accounts import ProviderDebtCommand, record_provider_debt
from .catalog import (
    category_fields,
    get_product_category_by_name,
    get_provider,
    resolve_product_category,
    shown_or_placeholder,
)
from .constants import NOT_AVAILABLE, InventoryStatus, OrderStatus, SheetName
from .core_logic import (
    BusinessRuleViolation,
    PersistenceError,
    RuntimeContext,
    find_record,
    generate_id,
    get_record,
    invalidate_cache,
    list_records,
    require_nonnegative_money,
    require_positive_money,
    require_positive_quantity,
    resolve_date,
    resolve_timestamp,
    store_write,
)

ORDER_DEBT_DESCRIPTION = "Pedido realizado - Pago adelantado"


@dataclass(frozen=True)
class PlaceOrderCommand:
    """User intent for ordering stock from a registered provider."""

    provider_id: str
    lines: Sequence[data_manager.OrderLine]
    expected_date: Optional[date] = None
    notes: Optional[str] = None
    order_date: Optional[date] = None


def get_pending_order(context: RuntimeContext, order_id: str) -> data_manager.PendingOrderRow:
    """Resolve an order by id.

    Raises:
        MissingReferenceError: If ``order_id`` is unknown.
    """
    return get_record(context, SheetName.PENDING_ORDERS, order_id)


def list_pending_orders(
    context: RuntimeContext,
    *,
    status: Optional[OrderStatus] = None,
) -> List[data_manager.PendingOrderRow]:
    """Return orders newest first, optionally restricted to one status."""
    orders = list_records(context, SheetName.PENDING_ORDERS)
    if status is not None:
        orders = [order for order in orders if order.status == status.value]
    return sorted(reversed(orders), key=lambda order: order.order_date_iso, reverse=True)


def place_pending_order(context: RuntimeContext, command: PlaceOrderCommand) -> data_manager.PendingOrderRow:
    """Validate and store a purchase order, then charge it to the provider.

    The order total is the sum of ``quantity * unit_cost`` over its lines.
    The provider account receives a ``manual_debt`` for that total, due on
    the expected delivery date.

    Once categories are registered every line must name one (a blank
    category means the configured default product type). If the debt cannot
    be recorded, the order row is deleted again before the error propagates.

    Args:
        context (RuntimeContext): Runtime context providing workbook access and
            caches.
        command (PlaceOrderCommand): Structured intent describing the order.

    Returns:
        data_manager.PendingOrderRow: Newly appended order in ``pending``
            status.

    Raises:
        MissingReferenceError: If the provider is unknown or a line names an
            unregistered product category.
        BusinessRuleViolation: If the order has no lines.
        ValueError: When a quantity is not positive, a price is negative or
            the order total is zero.
        PersistenceError: If the row store rejects a write.
    """
    provider = get_provider(context, command.provider_id)
    lines = tuple(command.lines)
    if not lines:
        raise BusinessRuleViolation("An order needs at least one product line")
    for line in lines:
        require_positive_quantity(line.quantity)
        require_nonnegative_money(line.unit_cost)
        require_nonnegative_money(line.sale_price)
        resolve_product_category(context, line.product_category or context.settings.default_product_type)

    total_cost = sum((line.total_cost for line in lines), Decimal("0"))
    require_positive_money(total_cost)
    order = data_manager.PendingOrderRow(
        order_id=generate_id("order"),
        provider_id=provider.provider_id,
        provider_name=provider.name,
        lines=lines,
        total_cost=total_cost,
        order_date_iso=date_helpers.to_iso_date(resolve_date(command.order_date)),
        expected_date_iso=date_helpers.to_iso_date(command.expected_date) if command.expected_date else None,
        status=OrderStatus.PENDING.value,
        received_date_iso=None,
        notes=command.notes,
    )
    with store_write(context, "place order", SheetName.PENDING_ORDERS):
        data_manager.append_record(context.workbook, order)
    log.info(
        "Placed order '%s' with provider '%s' (%d line(s), total=%s)",
        order.order_id,
        provider.provider_id,
        len(lines),
        total_cost,
    )

    try:
        record_provider_debt(
            context,
            ProviderDebtCommand(
                account_id=provider.provider_id,
                account_name=provider.name,
                amount=total_cost,
                description=ORDER_DEBT_DESCRIPTION,
                due_date=command.expected_date,
                entry_date=command.order_date,
            ),
        )
    except Exception:
        log.error("Charging order '%s' to provider '%s' failed; removing order", order.order_id, provider.provider_id)
        delete_pending_order(context, order.order_id)
        raise
    return order


def _build_unit(
    context: RuntimeContext,
    order: data_manager.PendingOrderRow,
    line: data_manager.OrderLine,
) -> data_manager.InventoryRow:
    product_type = line.product_category or context.settings.default_product_type
    category = get_product_category_by_name(context, product_type)
    shown = category_fields(category)
    model = line.model
    if not model:
        model = category.name if category is not None and not shown.model else NOT_AVAILABLE
    return data_manager.InventoryRow(
        item_id=generate_id("inv"),
        model=model,
        storage=shown_or_placeholder(shown.storage, line.storage) or NOT_AVAILABLE,
        color=shown_or_placeholder(shown.color, line.color) or NOT_AVAILABLE,
        battery=shown_or_placeholder(shown.battery, line.battery) or NOT_AVAILABLE,
        imei=shown_or_placeholder(shown.imei, line.imei) or NOT_AVAILABLE,
        cost_price=line.unit_cost,
        sale_price=line.sale_price,
        condition=shown_or_placeholder(shown.condition, line.condition) or NOT_AVAILABLE,
        status=InventoryStatus.AVAILABLE.value,
        provider=order.provider_name,
        product_type=category.name if category is not None else product_type,
        created_at=resolve_timestamp(None).isoformat(),
    )


def receive_pending_order(
    context: RuntimeContext,
    order_id: str,
    *,
    received_date: Optional[date] = None,
) -> List[data_manager.InventoryRow]:
    """Turn a pending order into inventory units and mark it received.

    Every line yields ``quantity`` units carrying the line's attributes;
    blank descriptive fields, and fields the line's category switches off,
    become ``N/A``; a missing category becomes the configured default product
    type. Units cost the line's unit cost.

    If any insert or the final status update fails, the units inserted so far
    are deleted, the order keeps its ``pending`` status and the caches are
    left as they were.

    Args:
        context (RuntimeContext): Runtime context providing workbook access and
            caches.
        order_id (str): Order to receive.
        received_date (date | None): Receipt date, today when omitted.

    Returns:
        list[data_manager.InventoryRow]: Units created, in line order.

    Raises:
        MissingReferenceError: If ``order_id`` is unknown.
        BusinessRuleViolation: If the order was already received.
        PersistenceError: If the row store rejects a write; nothing remains
            written in that case.
    """
    order = get_pending_order(context, order_id)
    if order.status == OrderStatus.RECEIVED.value:
        log.warning("Order '%s' was already received", order_id)
        raise BusinessRuleViolation(f"Order '{order_id}' was already received")

    receipt_iso = date_helpers.to_iso_date(resolve_date(received_date))
    inserted: List[data_manager.InventoryRow] = []
    try:
        for line in order.lines:
            for _ in range(line.quantity):
                unit = _build_unit(context, order, line)
                data_manager.append_record(context.workbook, unit)
                inserted.append(unit)
        data_manager.update_record(
            context.workbook,
            SheetName.PENDING_ORDERS,
            order_id,
            field_values={"status": OrderStatus.RECEIVED.value, "received_date": receipt_iso},
        )
    except Exception as exc:
        log.error(
            "Receiving order '%s' failed after %d unit(s); rolling back: %s",
            order_id,
            len(inserted),
            exc,
        )
        for unit in reversed(inserted):
            data_manager.delete_record(context.workbook, SheetName.INVENTORY, unit.item_id)
        raise PersistenceError(f"Unable to receive order '{order_id}': {exc}") from exc

    invalidate_cache(context, SheetName.INVENTORY, SheetName.PENDING_ORDERS)
    log.info("Received order '%s': %d unit(s) added to inventory", order_id, len(inserted))
    return inserted


def delete_pending_order(context: RuntimeContext, order_id: str) -> bool:
    """Delete an order row; the provider debt it created is kept.

    Returns:
        bool: ``False`` when the id is unknown.
    """
    if find_record(context, SheetName.PENDING_ORDERS, order_id) is None:
        log.info("Order '%s' not found; nothing to delete", order_id)
        return False
    with store_write(context, "delete order", SheetName.PENDING_ORDERS):
        data_manager.delete_record(context.workbook, SheetName.PENDING_ORDERS, order_id)
    log.info("Deleted order '%s'", order_id)
    return True


__all__ = [
    "ORDER_DEBT_DESCRIPTION",
    "PlaceOrderCommand",
    "get_pending_order",
    "list_pending_orders",
    "place_pending_order",
    "receive_pending_order",
    "delete_pending_order",
]
