"""Sale list and the counter sale flow.

A sale consumes one or more ``Disponible`` inventory units. Cash sales are
credited immediately and book the money in the cash ledger; credit sales stay
``Pendiente`` and are charged to the client's account until the account is
settled, at which point the account ledger announces them as credited on the
sale status channel (see :func:`bind_sale_status_updates`).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from . import data_manager, date_helpers, log
from .accounts import ClientSaleCommand, record_client_sale, remove_account_transaction
from .cash import CashCommand, record_cash_transaction, remove_cash_transaction
from .catalog import (
    NewInventoryItem,
    add_inventory_item,
    get_client,
    get_inventory_item,
    mark_items_sold,
    update_inventory_item,
)
from .constants import (
    TRADE_IN_PROVIDER,
    CashCategory,
    CashTransactionType,
    InventoryStatus,
    ItemCondition,
    PaymentMethod,
    PaymentType,
    RelatedTo,
    SaleStatus,
    SheetName,
)
from .core_logic import (
    BusinessRuleViolation,
    MissingReferenceError,
    RuntimeContext,
    find_record,
    generate_id,
    get_record,
    list_records,
    require_nonnegative_money,
    resolve_date,
    store_write,
)


@dataclass(frozen=True)
class TradeIn:
    """Used device the customer hands over as part of the payment.

    ``taken_value`` is what the shop credits the customer and becomes the
    unit's cost; ``resale_value`` becomes its sale price.
    """

    model: str
    taken_value: Decimal
    resale_value: Decimal
    storage: str = ""
    color: str = ""
    battery: str = ""
    imei: str = ""


@dataclass(frozen=True)
class NewSaleCommand:
    """User intent for selling inventory units at the counter.

    Credit sales must reference a registered client through ``client_id``;
    cash sales may name a walk-in customer with ``client_name`` only.
    """

    item_ids: Sequence[str]
    payment_type: PaymentType
    client_name: str = ""
    client_id: Optional[str] = None
    salesperson: Optional[str] = None
    trade_in: Optional[TradeIn] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    entry_date: Optional[date] = None


def _describe_order(items: Sequence[data_manager.InventoryRow]) -> str:
    return "\n".join(
        f"{item.model} (Precio: ${item.sale_price}, Costo: ${item.cost_price})" for item in items
    )


def _describe_trade_in(trade_in: TradeIn) -> str:
    return (
        f"{trade_in.model} {trade_in.storage} {trade_in.color}\n"
        f"BTR: {trade_in.battery}% IMEI: {trade_in.imei}\n"
        f"Tomado: ${trade_in.taken_value} Reventa: ${trade_in.resale_value}"
    )


def _describe_cash_income(client: str, items: Sequence[data_manager.InventoryRow], trade_in: Optional[TradeIn]) -> str:
    description = f"Venta - {client}: {items[0].model}"
    if len(items) > 1:
        description += f" y {len(items) - 1} más"
    if trade_in is not None:
        description += f" (con canje -${trade_in.taken_value})"
    return description


def get_sale(context: RuntimeContext, sale_id: str) -> data_manager.SaleRow:
    """Resolve a sale by id.

    Raises:
        MissingReferenceError: If ``sale_id`` is unknown.
    """
    return get_record(context, SheetName.SALES, sale_id)


def list_sales(
    context: RuntimeContext,
    *,
    status: Optional[SaleStatus] = None,
    client_search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[data_manager.SaleRow]:
    """Return sales newest first, optionally filtered.

    Args:
        context (RuntimeContext): Runtime context providing cached data.
        status (SaleStatus | None): Keep only sales in this status.
        client_search (str | None): Case-insensitive substring of the client
            name.
        date_from (date | None): Inclusive lower bound on the sale date.
        date_to (date | None): Inclusive upper bound on the sale date.

    Returns:
        list[data_manager.SaleRow]: Matching sales ordered by date then time,
            descending.
    """
    needle = (client_search or "").strip().lower()
    bounded = date_from is not None or date_to is not None
    selected = []
    for sale in list_records(context, SheetName.SALES):
        if status is not None and sale.status != status.value:
            continue
        if needle and needle not in sale.client.lower():
            continue
        if bounded and not date_helpers.within_range(
            date_helpers.parse_local_date(sale.date_iso), date_from, date_to
        ):
            continue
        selected.append(sale)
    return sorted(reversed(selected), key=lambda sale: (sale.date_iso, sale.time), reverse=True)


def calculate_sales_summary(
    context: RuntimeContext,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Dict[str, Any]:
    """Aggregate sales totals within an optional inclusive date range.

    Returns:
        dict[str, Any]: ``count`` of sales plus Decimal ``total``,
            ``total_cost`` and ``gross_profit``.
    """
    sales = list_sales(context, date_from=date_from, date_to=date_to)
    total = sum((sale.total for sale in sales), Decimal("0"))
    total_cost = sum((sale.total_cost for sale in sales), Decimal("0"))
    gross_profit = sum((sale.gross_profit for sale in sales), Decimal("0"))
    return {
        "count": len(sales),
        "total": total,
        "total_cost": total_cost,
        "gross_profit": gross_profit,
    }


def register_sale(context: RuntimeContext, command: NewSaleCommand) -> data_manager.SaleRow:
    """Validate and record a counter sale.

    The workflow checks every unit is ``Disponible`` and computes
    ``total = sum(sale_price)``, ``total_cost = sum(cost_price)`` and
    ``gross_profit = total - total_cost``. The amount the customer owes is the
    total minus the trade-in value; the trade-in itself is never booked as
    cash but enters inventory as a used unit from ``Plan Canje``.

    Cash sales are stored ``Acreditado`` and add a ``Cobranzas`` cash income.
    Credit sales are stored ``Pendiente`` and charge the client account with
    the same sale id, which later drives automatic crediting.

    If a step after the sale row is written fails, the steps already done
    are reversed (ledger row removed, units back to ``Disponible``, sale row
    deleted) and the error propagates.

    Args:
        context (RuntimeContext): Runtime context providing workbook access and
            caches.
        command (NewSaleCommand): Structured intent describing the sale.

    Returns:
        data_manager.SaleRow: Newly appended sale.

    Raises:
        BusinessRuleViolation: If no units are given, a unit is not available,
            the trade-in exceeds the total, or a credit sale leaves nothing
            owed.
        MissingReferenceError: If a unit or the credit client is unknown.
        ValueError: When trade-in values are negative.
        PersistenceError: If the row store rejects one of the writes.
    """
    item_ids = list(command.item_ids)
    if not item_ids:
        raise BusinessRuleViolation("A sale needs at least one inventory item")
    if len(set(item_ids)) != len(item_ids):
        raise BusinessRuleViolation("The same inventory item was listed more than once")

    items = [get_inventory_item(context, item_id) for item_id in item_ids]
    for item in items:
        if item.status != InventoryStatus.AVAILABLE.value:
            log.warning("Attempted sale of unavailable item '%s' (status=%s)", item.item_id, item.status)
            raise BusinessRuleViolation(f"Inventory item '{item.item_id}' is not available")

    trade_in_value = Decimal("0")
    if command.trade_in is not None:
        require_nonnegative_money(command.trade_in.taken_value)
        require_nonnegative_money(command.trade_in.resale_value)
        trade_in_value = command.trade_in.taken_value

    total = sum((item.sale_price for item in items), Decimal("0"))
    total_cost = sum((item.cost_price for item in items), Decimal("0"))
    amount_due = total - trade_in_value
    if amount_due < 0:
        raise BusinessRuleViolation("Trade-in value exceeds the sale total")

    is_credit = command.payment_type is PaymentType.CREDIT
    client_name = command.client_name.strip()
    if is_credit:
        if not command.client_id:
            raise BusinessRuleViolation("Credit sales require a registered client")
        client_name = get_client(context, command.client_id).name
        if amount_due == 0:
            raise BusinessRuleViolation("Credit sale leaves nothing to charge")
    elif command.client_id:
        client_name = get_client(context, command.client_id).name
    if not client_name:
        raise BusinessRuleViolation("A sale needs a client name")

    sale_date = resolve_date(command.entry_date)
    sale = data_manager.SaleRow(
        sale_id=generate_id("sale"),
        status=(SaleStatus.PENDING if is_credit else SaleStatus.CREDITED).value,
        date_iso=date_helpers.to_iso_date(sale_date),
        time=date_helpers.current_time_hhmm(),
        client=client_name,
        salesperson=command.salesperson or context.settings.default_salesperson,
        trade_in=_describe_trade_in(command.trade_in) if command.trade_in else None,
        order=_describe_order(items),
        gross_profit=total - total_cost,
        total=total,
        discount=Decimal("0"),
        total_cost=total_cost,
    )
    with store_write(context, "record sale", SheetName.SALES):
        data_manager.append_record(context.workbook, sale)
    log.info(
        "Recorded %s sale '%s' for '%s' (total=%s, due=%s)",
        command.payment_type.value,
        sale.sale_id,
        client_name,
        total,
        amount_due,
    )

    account_row = None
    cash_row = None
    try:
        mark_items_sold(context, item_ids)

        if is_credit:
            account_row = record_client_sale(
                context,
                ClientSaleCommand(
                    account_id=command.client_id,
                    account_name=client_name,
                    amount=amount_due,
                    description=f"Venta: {sale.order.splitlines()[0]}",
                    sale_id=sale.sale_id,
                    entry_date=sale_date,
                ),
            )
        elif amount_due > 0:
            cash_row = record_cash_transaction(
                context,
                CashCommand(
                    transaction_type=CashTransactionType.INCOME,
                    amount=amount_due,
                    category=CashCategory.COLLECTIONS,
                    payment_method=command.payment_method,
                    description=_describe_cash_income(client_name, items, command.trade_in),
                    related_to=RelatedTo.SALE,
                    related_id=sale.sale_id,
                    entry_date=sale_date,
                ),
            )

        if command.trade_in is not None:
            add_inventory_item(
                context,
                NewInventoryItem(
                    model=command.trade_in.model,
                    cost_price=command.trade_in.taken_value,
                    sale_price=command.trade_in.resale_value,
                    storage=command.trade_in.storage,
                    color=command.trade_in.color,
                    battery=command.trade_in.battery,
                    imei=command.trade_in.imei,
                    condition=ItemCondition.USED,
                    provider=TRADE_IN_PROVIDER,
                    status=InventoryStatus.AVAILABLE,
                ),
            )
    except Exception:
        log.error("Sale '%s' could not be completed; rolling back", sale.sale_id)
        _undo_sale(context, sale.sale_id, item_ids, account_row, cash_row)
        raise
    return sale


def _undo_sale(
    context: RuntimeContext,
    sale_id: str,
    item_ids: Sequence[str],
    account_row: Optional[data_manager.AccountTransactionRow],
    cash_row: Optional[data_manager.CashTransactionRow],
) -> None:
    """Reverse the writes of a sale that failed part way.

    Every unit was ``Disponible`` before the sale, so all of them are put back
    regardless of how far marking them sold got.
    """
    if cash_row is not None:
        remove_cash_transaction(context, cash_row.transaction_id)
    if account_row is not None:
        remove_account_transaction(context, account_row.account_id, account_row.transaction_id)
    for item_id in item_ids:
        update_inventory_item(context, item_id, {"status": InventoryStatus.AVAILABLE})
    delete_sale(context, sale_id)


def update_sale_status(context: RuntimeContext, sale_id: str, status: SaleStatus) -> data_manager.SaleRow:
    """Set the status of an existing sale.

    Raises:
        MissingReferenceError: If ``sale_id`` is unknown.
        PersistenceError: If the row store rejects the write.
    """
    sale = get_sale(context, sale_id)
    if sale.status == status.value:
        log.debug("Sale '%s' already has status %s", sale_id, status.value)
        return sale
    with store_write(context, "update sale status", SheetName.SALES):
        data_manager.update_record(context.workbook, SheetName.SALES, sale_id, field_values={"status": status.value})
    log.info("Sale '%s' status %s -> %s", sale_id, sale.status, status.value)
    return get_sale(context, sale_id)


def delete_sale(context: RuntimeContext, sale_id: str) -> bool:
    """Delete a sale row; ledgers and inventory are left untouched.

    Returns:
        bool: ``False`` when the id is unknown.
    """
    if find_record(context, SheetName.SALES, sale_id) is None:
        log.info("Sale '%s' not found; nothing to delete", sale_id)
        return False
    with store_write(context, "delete sale", SheetName.SALES):
        data_manager.delete_record(context.workbook, SheetName.SALES, sale_id)
    log.info("Deleted sale '%s'", sale_id)
    return True


def bind_sale_status_updates(context: RuntimeContext) -> None:
    """Subscribe the sale list to the context's sale status channel.

    Notifications about sales that no longer exist are logged and dropped.
    """

    def _apply(sale_id: str, status: SaleStatus) -> None:
        try:
            update_sale_status(context, sale_id, status)
        except MissingReferenceError:
            log.warning("Dropping status %s for unknown sale '%s'", status.value, sale_id)

    context.sale_status_channel.subscribe(_apply)


__all__ = [
    "TradeIn",
    "NewSaleCommand",
    "get_sale",
    "list_sales",
    "calculate_sales_summary",
    "register_sale",
    "update_sale_status",
    "delete_sale",
    "bind_sale_status_updates",
]
