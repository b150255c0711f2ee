"""Cash ledger: money physically entering or leaving the shop."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from . import data_manager, date_helpers, log
from .constants import (
    CashCategory,
    CashTransactionType,
    ExpenseType,
    PaymentMethod,
    RelatedTo,
    SheetName,
)
from .core_logic import (
    BusinessRuleViolation,
    RuntimeContext,
    find_record,
    generate_id,
    list_records,
    require_nonnegative_money,
    resolve_date,
    store_write,
)


@dataclass(frozen=True)
class CashCommand:
    """User intent for recording one cash movement.

    ``amount`` is a magnitude; the direction comes from ``transaction_type``.
    """

    transaction_type: CashTransactionType
    amount: Decimal
    category: CashCategory
    payment_method: PaymentMethod = PaymentMethod.CASH
    description: str = ""
    expense_type: Optional[ExpenseType] = None
    related_to: Optional[RelatedTo] = None
    related_id: Optional[str] = None
    entry_date: Optional[date] = None


def record_cash_transaction(context: RuntimeContext, command: CashCommand) -> data_manager.CashTransactionRow:
    """Validate and append a cash movement.

    Args:
        context (RuntimeContext): Runtime context providing workbook access and
            caches.
        command (CashCommand): Structured intent describing the movement.

    Returns:
        data_manager.CashTransactionRow: Newly appended row.

    Raises:
        ValueError: If the amount is negative.
        BusinessRuleViolation: If an expense type is attached to an income.
        PersistenceError: If the row store rejects the write.
    """
    require_nonnegative_money(command.amount)
    if command.expense_type is not None and command.transaction_type is not CashTransactionType.EXPENSE:
        log.warning("Expense type '%s' supplied for a non-expense movement", command.expense_type.value)
        raise BusinessRuleViolation("Expense type only applies to expenses")

    row = data_manager.CashTransactionRow(
        transaction_id=generate_id("cash"),
        transaction_type=command.transaction_type.value,
        date_iso=date_helpers.to_iso_date(resolve_date(command.entry_date)),
        amount=command.amount,
        payment_method=command.payment_method.value,
        category=command.category.value,
        description=command.description,
        expense_type=command.expense_type.value if command.expense_type else None,
        related_to=command.related_to.value if command.related_to else None,
        related_id=command.related_id,
    )
    with store_write(context, "record cash transaction", SheetName.CASH_TRANSACTIONS):
        data_manager.append_record(context.workbook, row)
    log.info(
        "Recorded cash %s '%s' (amount=%s, category=%s)",
        row.transaction_type,
        row.transaction_id,
        row.amount,
        row.category,
    )
    return row


def remove_cash_transaction(context: RuntimeContext, transaction_id: str) -> bool:
    """Delete a cash movement.

    Returns:
        bool: ``True`` when the row was deleted, ``False`` when the id is
            unknown (nothing is written).
    """
    if find_record(context, SheetName.CASH_TRANSACTIONS, transaction_id) is None:
        log.info("Cash transaction '%s' not found; nothing to remove", transaction_id)
        return False
    with store_write(context, "remove cash transaction", SheetName.CASH_TRANSACTIONS):
        data_manager.delete_record(context.workbook, SheetName.CASH_TRANSACTIONS, transaction_id)
    log.info("Removed cash transaction '%s'", transaction_id)
    return True


def list_cash_transactions(context: RuntimeContext) -> List[data_manager.CashTransactionRow]:
    """Return every cash movement, newest first.

    Rows are ordered by date descending; rows sharing a date keep reverse
    insertion order, so the latest recorded movement comes first.
    """
    rows = list_records(context, SheetName.CASH_TRANSACTIONS)
    return sorted(reversed(rows), key=lambda row: row.date_iso, reverse=True)


def transactions_by_date_range(
    context: RuntimeContext,
    date_from: date,
    date_to: date,
) -> List[data_manager.CashTransactionRow]:
    """Return movements dated within the inclusive ``[date_from, date_to]``."""
    return [
        row
        for row in list_cash_transactions(context)
        if date_helpers.within_range(date_helpers.parse_local_date(row.date_iso), date_from, date_to)
    ]


def transactions_by_category(context: RuntimeContext, category: CashCategory) -> List[data_manager.CashTransactionRow]:
    return [row for row in list_cash_transactions(context) if row.category == category.value]


def calculate_cash_balance(context: RuntimeContext) -> Decimal:
    """Return ``sum(income) - sum(expense)`` over every movement."""
    summary = calculate_cash_summary(context)
    return summary["balance"]


def calculate_cash_summary(
    context: RuntimeContext,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Dict[str, Decimal]:
    """Aggregate income, expense and balance, optionally within a date range.

    Open bounds are allowed; with no bounds every movement counts.

    Returns:
        dict[str, Decimal]: Mapping with ``income``, ``expense`` and
            ``balance`` keys.
    """
    income = Decimal("0")
    expense = Decimal("0")
    bounded = date_from is not None or date_to is not None
    for row in list_records(context, SheetName.CASH_TRANSACTIONS):
        if bounded and not date_helpers.within_range(
            date_helpers.parse_local_date(row.date_iso), date_from, date_to
        ):
            continue
        if row.transaction_type == CashTransactionType.INCOME.value:
            income += row.amount
        elif row.transaction_type == CashTransactionType.EXPENSE.value:
            expense += row.amount
    return {"income": income, "expense": expense, "balance": income - expense}


def calculate_operational_expenses(
    context: RuntimeContext,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Decimal:
    """Sum expenses tagged ``operational``.

    The date range filter only applies when both bounds are supplied; a single
    bound is ignored.
    """
    total = Decimal("0")
    use_range = date_from is not None and date_to is not None
    for row in list_records(context, SheetName.CASH_TRANSACTIONS):
        if row.transaction_type != CashTransactionType.EXPENSE.value:
            continue
        if row.expense_type != ExpenseType.OPERATIONAL.value:
            continue
        if use_range and not date_helpers.within_range(
            date_helpers.parse_local_date(row.date_iso), date_from, date_to
        ):
            continue
        total += row.amount
    return total


__all__ = [
    "CashCommand",
    "record_cash_transaction",
    "remove_cash_transaction",
    "list_cash_transactions",
    "transactions_by_date_range",
    "transactions_by_category",
    "calculate_cash_balance",
    "calculate_cash_summary",
    "calculate_operational_expenses",
]
