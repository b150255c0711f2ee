"""Account ledger for client receivables and provider payables.

Each account is identified by the id of the client or provider it belongs to
and is nothing more than the signed transactions recorded under that id.
Positive amounts increase the debt (a credit sale, a purchase on account, a
manual debt); negative amounts reduce it (payments). The balance is always
derived from the rows, never stored.

When a client payment takes the balance from positive to zero or below, every
sale recorded on the account is announced as credited through the context's
:class:`~shop_ledger.core_logic.SaleStatusChannel`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from . import data_manager, date_helpers, log
from .cash import CashCommand, record_cash_transaction, remove_cash_transaction
from .constants import (
    AccountTransactionType,
    AccountType,
    CashCategory,
    CashTransactionType,
    ExpenseType,
    PaymentMethod,
    RelatedTo,
    SaleStatus,
    SheetName,
)
from .core_logic import (
    MissingReferenceError,
    RuntimeContext,
    find_record,
    generate_id,
    list_records,
    require_positive_money,
    resolve_date,
    store_write,
)

DEFAULT_CLIENT_PAYMENT_DESCRIPTION = "Pago recibido"
DEFAULT_PROVIDER_PAYMENT_DESCRIPTION = "Pago realizado"


@dataclass(frozen=True)
class ClientSaleCommand:
    """User intent for charging a credit sale to a client account."""

    account_id: str
    account_name: str
    amount: Decimal
    description: str
    sale_id: Optional[str] = None
    due_date: Optional[date] = None
    entry_date: Optional[date] = None


@dataclass(frozen=True)
class ClientPaymentCommand:
    """User intent for logging a payment received from a client."""

    account_id: str
    amount: Decimal
    description: str = DEFAULT_CLIENT_PAYMENT_DESCRIPTION
    entry_date: Optional[date] = None


@dataclass(frozen=True)
class ProviderPurchaseCommand:
    """User intent for recording stock bought on account from a provider."""

    account_id: str
    account_name: str
    amount: Decimal
    description: str
    due_date: Optional[date] = None
    entry_date: Optional[date] = None


@dataclass(frozen=True)
class ProviderPaymentCommand:
    account_id: str
    amount: Decimal
    description: str = DEFAULT_PROVIDER_PAYMENT_DESCRIPTION
    entry_date: Optional[date] = None


@dataclass(frozen=True)
class ProviderDebtCommand:
    """User intent for a manual debt adjustment on a provider account."""

    account_id: str
    account_name: str
    amount: Decimal
    description: str
    due_date: Optional[date] = None
    entry_date: Optional[date] = None


@dataclass(frozen=True)
class LedgerAccount:
    """Signed transaction history of one client or provider."""

    account_type: AccountType
    account_id: str
    account_name: str
    transactions: Tuple[data_manager.AccountTransactionRow, ...]

    @property
    def balance(self) -> Decimal:
        return sum((row.amount for row in self.transactions), Decimal("0"))

    @property
    def last_transaction_date(self) -> Optional[str]:
        if not self.transactions:
            return None
        return max(row.date_iso for row in self.transactions)


def _collect_accounts(context: RuntimeContext, account_type: AccountType) -> Dict[str, LedgerAccount]:
    """Group account transactions of ``account_type`` by account id.

    Accounts keep the order in which they first appear on the sheet. The
    display name is taken from the most recent row so a renamed client shows
    its current name.
    """
    grouped: Dict[str, List[data_manager.AccountTransactionRow]] = {}
    for row in list_records(context, SheetName.ACCOUNT_TRANSACTIONS):
        if row.account_type != account_type.value:
            continue
        grouped.setdefault(row.account_id, []).append(row)

    return {
        account_id: LedgerAccount(
            account_type=account_type,
            account_id=account_id,
            account_name=rows[-1].account_name,
            transactions=tuple(rows),
        )
        for account_id, rows in grouped.items()
    }


def _find_account(context: RuntimeContext, account_type: AccountType, account_id: str) -> Optional[LedgerAccount]:
    return _collect_accounts(context, account_type).get(account_id)


def _get_account(context: RuntimeContext, account_type: AccountType, account_id: str) -> LedgerAccount:
    account = _find_account(context, account_type, account_id)
    if account is None:
        log.warning("Unknown %s account '%s'", account_type.value, account_id)
        raise MissingReferenceError(f"Unknown {account_type.value} account: {account_id}")
    return account


def _list_accounts(context: RuntimeContext, account_type: AccountType, include_settled: bool) -> List[LedgerAccount]:
    accounts = list(_collect_accounts(context, account_type).values())
    if include_settled:
        return accounts
    return [account for account in accounts if account.balance > 0]


def _append_transaction(
    context: RuntimeContext,
    *,
    account_type: AccountType,
    account_id: str,
    account_name: str,
    transaction_type: AccountTransactionType,
    amount: Decimal,
    description: str,
    entry_date: Optional[date],
    sale_id: Optional[str] = None,
    due_date: Optional[date] = None,
) -> data_manager.AccountTransactionRow:
    row = data_manager.AccountTransactionRow(
        transaction_id=generate_id("trans"),
        account_type=account_type.value,
        account_id=account_id,
        account_name=account_name,
        transaction_type=transaction_type.value,
        date_iso=date_helpers.to_iso_date(resolve_date(entry_date)),
        description=description,
        amount=amount,
        sale_id=sale_id,
        due_date_iso=date_helpers.to_iso_date(due_date) if due_date else None,
    )
    with store_write(context, f"record {transaction_type.value} transaction", SheetName.ACCOUNT_TRANSACTIONS):
        data_manager.append_record(context.workbook, row)
    log.info(
        "Recorded %s '%s' on %s account '%s' (amount=%s)",
        row.transaction_type,
        row.transaction_id,
        row.account_type,
        row.account_id,
        row.amount,
    )
    return row


def get_client_account(context: RuntimeContext, account_id: str) -> LedgerAccount:
    """Return the client account keyed by ``account_id``.

    Raises:
        MissingReferenceError: If no transaction was ever recorded for it.
    """
    return _get_account(context, AccountType.CLIENT, account_id)


def get_provider_account(context: RuntimeContext, account_id: str) -> LedgerAccount:
    """Return the provider account keyed by ``account_id``.

    Raises:
        MissingReferenceError: If no transaction was ever recorded for it.
    """
    return _get_account(context, AccountType.PROVIDER, account_id)


def list_client_accounts(context: RuntimeContext, *, include_settled: bool = False) -> List[LedgerAccount]:
    """Return client accounts, by default only those with a positive balance.

    Args:
        context (RuntimeContext): Runtime context providing cached data.
        include_settled (bool): When ``True`` accounts with a zero or negative
            balance are returned as well.

    Returns:
        list[LedgerAccount]: Accounts in order of first appearance.
    """
    return _list_accounts(context, AccountType.CLIENT, include_settled)


def list_provider_accounts(context: RuntimeContext, *, include_settled: bool = False) -> List[LedgerAccount]:
    """Return provider accounts, by default only those the shop still owes."""
    return _list_accounts(context, AccountType.PROVIDER, include_settled)


def record_client_sale(context: RuntimeContext, command: ClientSaleCommand) -> data_manager.AccountTransactionRow:
    """Charge a credit sale to a client account.

    The account is created implicitly by its first transaction.

    Raises:
        ValueError: If the amount is not strictly positive.
        PersistenceError: If the row store rejects the write.
    """
    require_positive_money(command.amount)
    return _append_transaction(
        context,
        account_type=AccountType.CLIENT,
        account_id=command.account_id,
        account_name=command.account_name,
        transaction_type=AccountTransactionType.SALE,
        amount=command.amount,
        description=command.description,
        entry_date=command.entry_date,
        sale_id=command.sale_id,
        due_date=command.due_date,
    )


def record_client_payment(
    context: RuntimeContext,
    command: ClientPaymentCommand,
) -> Optional[data_manager.AccountTransactionRow]:
    """Record a payment received from a client.

    The payment is stored with its amount negated. Paying into an account
    that does not exist writes nothing and returns ``None``.

    When the balance moves from positive to zero or below, the sale status
    channel receives ``(sale_id, SaleStatus.CREDITED)`` once for every sale
    transaction of the account that carries a sale id. Overpayment is allowed
    and leaves a negative balance (credit in favor of the client).

    If the subscriber raises, the payment row is removed again before the
    error propagates, so the balance is left as it was. Sales credited by
    earlier notifications of the same payment keep their new status.

    Args:
        context (RuntimeContext): Runtime context providing workbook access,
            caches and the sale status channel.
        command (ClientPaymentCommand): Structured intent describing the
            payment.

    Returns:
        data_manager.AccountTransactionRow | None: The payment row, or
            ``None`` when the account is unknown.

    Raises:
        ValueError: If the amount is not strictly positive.
        PersistenceError: If the row store rejects the write.
    """
    require_positive_money(command.amount)
    account = _find_account(context, AccountType.CLIENT, command.account_id)
    if account is None:
        log.warning("Ignoring payment for unknown client account '%s'", command.account_id)
        return None

    previous_balance = account.balance
    row = _append_transaction(
        context,
        account_type=AccountType.CLIENT,
        account_id=account.account_id,
        account_name=account.account_name,
        transaction_type=AccountTransactionType.PAYMENT,
        amount=-command.amount,
        description=command.description,
        entry_date=command.entry_date,
    )

    new_balance = previous_balance - command.amount
    if previous_balance > 0 and new_balance <= 0:
        try:
            _announce_settlement(context, account)
        except Exception:
            log.error("Crediting sales of '%s' failed; removing payment '%s'", account.account_id, row.transaction_id)
            remove_account_transaction(context, account.account_id, row.transaction_id)
            raise
    return row


def _announce_settlement(context: RuntimeContext, account: LedgerAccount) -> None:
    log.info("Client account '%s' settled; crediting its sales", account.account_id)
    for transaction in account.transactions:
        if transaction.transaction_type == AccountTransactionType.SALE.value and transaction.sale_id:
            context.sale_status_channel.publish(transaction.sale_id, SaleStatus.CREDITED)


def record_provider_purchase(
    context: RuntimeContext,
    command: ProviderPurchaseCommand,
) -> data_manager.AccountTransactionRow:
    """Record stock bought on account, increasing what the shop owes.

    Raises:
        ValueError: If the amount is not strictly positive.
        PersistenceError: If the row store rejects the write.
    """
    require_positive_money(command.amount)
    return _append_transaction(
        context,
        account_type=AccountType.PROVIDER,
        account_id=command.account_id,
        account_name=command.account_name,
        transaction_type=AccountTransactionType.PURCHASE,
        amount=command.amount,
        description=command.description,
        entry_date=command.entry_date,
        due_date=command.due_date,
    )


def record_provider_payment(
    context: RuntimeContext,
    command: ProviderPaymentCommand,
) -> Optional[data_manager.AccountTransactionRow]:
    """Record a payment made to a provider; unknown accounts are a no-op."""
    require_positive_money(command.amount)
    account = _find_account(context, AccountType.PROVIDER, command.account_id)
    if account is None:
        log.warning("Ignoring payment to unknown provider account '%s'", command.account_id)
        return None
    return _append_transaction(
        context,
        account_type=AccountType.PROVIDER,
        account_id=account.account_id,
        account_name=account.account_name,
        transaction_type=AccountTransactionType.PAYMENT_TO_PROVIDER,
        amount=-command.amount,
        description=command.description,
        entry_date=command.entry_date,
    )


def record_provider_debt(context: RuntimeContext, command: ProviderDebtCommand) -> data_manager.AccountTransactionRow:
    require_positive_money(command.amount)
    return _append_transaction(
        context,
        account_type=AccountType.PROVIDER,
        account_id=command.account_id,
        account_name=command.account_name,
        transaction_type=AccountTransactionType.MANUAL_DEBT,
        amount=command.amount,
        description=command.description,
        entry_date=command.entry_date,
        due_date=command.due_date,
    )


def remove_account_transaction(context: RuntimeContext, account_id: str, transaction_id: str) -> bool:
    """Delete one transaction from the account it belongs to.

    The balance of the account changes by exactly the negated amount of the
    removed row. Removing a transaction that is already gone, or that belongs
    to another account, writes nothing.

    Returns:
        bool: ``True`` when a row was deleted, ``False`` otherwise.

    Raises:
        PersistenceError: If the row store rejects the delete.
    """
    row = find_record(context, SheetName.ACCOUNT_TRANSACTIONS, transaction_id)
    if row is None or row.account_id != account_id:
        log.info("Transaction '%s' not found on account '%s'; nothing to remove", transaction_id, account_id)
        return False
    with store_write(context, "remove account transaction", SheetName.ACCOUNT_TRANSACTIONS):
        data_manager.delete_record(context.workbook, SheetName.ACCOUNT_TRANSACTIONS, transaction_id)
    log.info("Removed transaction '%s' from account '%s' (amount=%s)", transaction_id, account_id, row.amount)
    return True


def collect_client_payment(
    context: RuntimeContext,
    command: ClientPaymentCommand,
    *,
    payment_method: PaymentMethod = PaymentMethod.CASH,
) -> Optional[Tuple[data_manager.AccountTransactionRow, data_manager.CashTransactionRow]]:
    """Apply a client payment to the account and book the money in the till.

    The cash income lands in ``Cobranzas``. Both rows are written or neither
    is: if the account write or the settlement notification fails, the
    cash row is removed again.

    Returns:
        tuple | None: ``(account_row, cash_row)``, or ``None`` when the client
            has no account (nothing is written).
    """
    require_positive_money(command.amount)
    account = _find_account(context, AccountType.CLIENT, command.account_id)
    if account is None:
        log.warning("Ignoring collection for unknown client account '%s'", command.account_id)
        return None

    cash_row = record_cash_transaction(
        context,
        CashCommand(
            transaction_type=CashTransactionType.INCOME,
            amount=command.amount,
            category=CashCategory.COLLECTIONS,
            payment_method=payment_method,
            description=f"{command.description} - {account.account_name}",
            related_to=RelatedTo.SALE,
            related_id=account.account_id,
            entry_date=command.entry_date,
        ),
    )
    try:
        account_row = record_client_payment(context, command)
    except Exception:
        remove_cash_transaction(context, cash_row.transaction_id)
        raise
    return account_row, cash_row


def pay_provider(
    context: RuntimeContext,
    command: ProviderPaymentCommand,
    *,
    payment_method: PaymentMethod = PaymentMethod.CASH,
) -> Optional[Tuple[data_manager.AccountTransactionRow, data_manager.CashTransactionRow]]:
    """Apply a provider payment and book the matching ``Pago stock`` expense.

    The cash row is removed again if the account write fails.

    Returns:
        tuple | None: ``(account_row, cash_row)``, or ``None`` when the
            provider has no account (nothing is written).
    """
    require_positive_money(command.amount)
    account = _find_account(context, AccountType.PROVIDER, command.account_id)
    if account is None:
        log.warning("Ignoring payment to unknown provider account '%s'", command.account_id)
        return None

    cash_row = record_cash_transaction(
        context,
        CashCommand(
            transaction_type=CashTransactionType.EXPENSE,
            amount=command.amount,
            category=CashCategory.STOCK_PAYMENT,
            payment_method=payment_method,
            description=f"{command.description} - {account.account_name}",
            expense_type=ExpenseType.STOCK_PAYMENT,
            related_to=RelatedTo.PURCHASE,
            related_id=account.account_id,
            entry_date=command.entry_date,
        ),
    )
    try:
        account_row = record_provider_payment(context, command)
    except Exception:
        remove_cash_transaction(context, cash_row.transaction_id)
        raise
    return account_row, cash_row


__all__ = [
    "ClientSaleCommand",
    "ClientPaymentCommand",
    "ProviderPurchaseCommand",
    "ProviderPaymentCommand",
    "ProviderDebtCommand",
    "LedgerAccount",
    "get_client_account",
    "get_provider_account",
    "list_client_accounts",
    "list_provider_accounts",
    "record_client_sale",
    "record_client_payment",
    "record_provider_purchase",
    "record_provider_payment",
    "record_provider_debt",
    "remove_account_transaction",
    "collect_client_payment",
    "pay_provider",
]
