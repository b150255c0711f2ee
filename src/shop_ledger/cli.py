"""Command-line entry points for Shop Ledger.

All orchestration in this module is limited to argparse wiring, translating
command-line arguments into the command objects consumed by the business
layer, and printing read-only reports. Keeping the CLI thin ensures the same
parser configuration can be reused by tests, scripts, or any alternative
front-end that wants to expose the package capabilities.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence

from . import accounts, cash, catalog, core_logic, data_manager, date_helpers, log, orders, sales
from .constants import (
    AttributeKind,
    CashCategory,
    CashTransactionType,
    ExpenseType,
    ItemCondition,
    OrderStatus,
    PaymentMethod,
    PaymentType,
    SaleStatus,
)


@dataclass(frozen=True)
class CommandSpec:
    """Describe how a CLI sub-command is configured and executed.

    ``persist`` is ``False`` for read-only commands, which never save the
    workbook.
    """

    name: str
    help_text: str
    register: Callable[[argparse._SubParsersAction[argparse.ArgumentParser]], argparse.ArgumentParser]
    execute: Callable[[core_logic.RuntimeContext, argparse.Namespace], int]
    persist: bool = True


def parse_money(text: str) -> Decimal:
    """argparse ``type`` converting text into a :class:`Decimal` amount."""
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"invalid amount: {text!r}") from exc


def parse_cli_date(text: str) -> date:
    """argparse ``type`` accepting ``YYYY-MM-DD`` dates."""
    parsed = date_helpers.parse_local_date(text)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {text!r}")
    return parsed


_ORDER_LINE_KEYS = {
    "model", "quantity", "unit_cost", "sale_price", "storage", "color",
    "battery", "imei", "condition", "product_category",
}


def parse_order_line(text: str) -> data_manager.OrderLine:
    """argparse ``type`` for ``--line`` values.

    Lines are ``key=value`` pairs separated by commas, for example
    ``model=iPhone 13,quantity=3,unit_cost=450,sale_price=600``. When a value
    itself contains a comma, separate the pairs with semicolons instead
    (``model=Cargador 20W, USB-C;quantity=2;unit_cost=15``); a line holding
    any semicolon is split on semicolons only. ``model``, ``quantity`` and
    ``unit_cost`` are mandatory.
    """
    delimiter = ";" if ";" in text else ","
    values: Dict[str, str] = {}
    for chunk in text.split(delimiter):
        key, separator, value = chunk.partition("=")
        key = key.strip()
        if not separator or key not in _ORDER_LINE_KEYS:
            raise argparse.ArgumentTypeError(f"invalid order line entry: {chunk!r}")
        values[key] = value.strip()

    missing = [key for key in ("model", "quantity", "unit_cost") if not values.get(key)]
    if missing:
        raise argparse.ArgumentTypeError(f"order line is missing: {', '.join(missing)}")
    try:
        quantity = int(values.pop("quantity"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid quantity in order line: {text!r}") from exc

    return data_manager.OrderLine(
        model=values.pop("model"),
        quantity=quantity,
        unit_cost=parse_money(values.pop("unit_cost")),
        sale_price=parse_money(values.pop("sale_price", "0") or "0"),
        **{key: value or None for key, value in values.items()},
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="shop-ledger",
        description="Command-line tools for the Shop Ledger workbook.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (defaults to searching upwards from the working directory).",
    )
    return parser


def configure_subcommands(
    parser: argparse.ArgumentParser,
) -> Mapping[str, CommandSpec]:
    """Wire all CLI sub-commands onto the supplied parser."""
    subparsers = parser.add_subparsers(dest="command", required=True, title="commands")
    write_specs = register_write_commands(subparsers)
    read_specs = register_read_commands(subparsers)
    return build_command_table([*write_specs.values(), *read_specs.values()])


def register_write_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare mutating CLI commands such as sales and payments."""
    specs = {
        "add-client": register_add_client_command(subparsers),
        "add-provider": register_add_provider_command(subparsers),
        "add-item": register_add_item_command(subparsers),
        "sale": register_sale_command(subparsers),
        "client-payment": register_client_payment_command(subparsers),
        "provider-purchase": register_provider_purchase_command(subparsers),
        "provider-payment": register_provider_payment_command(subparsers),
        "provider-debt": register_provider_debt_command(subparsers),
        "remove-account-tx": register_remove_account_tx_command(subparsers),
        "cash": register_cash_command(subparsers),
        "remove-cash": register_remove_cash_command(subparsers),
        "place-order": register_place_order_command(subparsers),
        "receive-order": register_receive_order_command(subparsers),
        "sale-status": register_sale_status_command(subparsers),
        "add-category": register_add_category_command(subparsers),
        "update-category": register_update_category_command(subparsers),
        "remove-category": register_remove_category_command(subparsers),
        "add-attribute": register_add_attribute_command(subparsers),
        "remove-attribute": register_remove_attribute_command(subparsers),
        "reorder-attributes": register_reorder_attributes_command(subparsers),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_read_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare read-only CLI commands such as reports."""
    specs = {
        "accounts": register_accounts_command(subparsers),
        "cash-balance": register_cash_balance_command(subparsers),
        "stock": register_stock_command(subparsers),
        "sales": register_sales_command(subparsers),
        "orders": register_orders_command(subparsers),
        "categories": register_categories_command(subparsers),
        "attributes": register_attributes_command(subparsers),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_add_client_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-client``."""
    name = "add-client"
    help_text = "Register a new client."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--name", required=True)
        parser.add_argument("--phone", default="")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_client)


def register_add_provider_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-provider``."""
    name = "add-provider"
    help_text = "Register a new provider."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--name", required=True)
        parser.add_argument("--phone", default="")
        parser.add_argument("--email", default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_provider)


def register_add_item_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-item``."""
    name = "add-item"
    help_text = "Add one serialized unit to inventory."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--model", required=True)
        parser.add_argument("--cost-price", type=parse_money, required=True)
        parser.add_argument("--sale-price", type=parse_money, required=True)
        parser.add_argument("--storage", default="")
        parser.add_argument("--color", default="")
        parser.add_argument("--battery", default="")
        parser.add_argument("--imei", default="")
        parser.add_argument(
            "--condition",
            choices=[member.value for member in ItemCondition],
            default=ItemCondition.NEW.value,
        )
        parser.add_argument("--provider", default="")
        parser.add_argument("--product-type", default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_item)


def register_sale_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``sale``."""
    name = "sale"
    help_text = "Sell inventory units, optionally with a trade-in."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--item-id", dest="item_ids", action="append", required=True)
        parser.add_argument(
            "--payment-type",
            choices=[member.value for member in PaymentType],
            required=True,
        )
        parser.add_argument("--client-id", default=None)
        parser.add_argument("--client-name", default="")
        parser.add_argument("--salesperson", default=None)
        parser.add_argument(
            "--payment-method",
            choices=[member.value for member in PaymentMethod],
            default=PaymentMethod.CASH.value,
        )
        parser.add_argument("--trade-in-model", default=None)
        parser.add_argument("--trade-in-value", type=parse_money, default=None)
        parser.add_argument("--trade-in-resale", type=parse_money, default=None)
        parser.add_argument("--trade-in-storage", default="")
        parser.add_argument("--trade-in-color", default="")
        parser.add_argument("--trade-in-battery", default="")
        parser.add_argument("--trade-in-imei", default="")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_sale)


def register_client_payment_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``client-payment``."""
    name = "client-payment"
    help_text = "Record a payment received from a client."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--client-id", required=True)
        parser.add_argument("--amount", type=parse_money, required=True)
        parser.add_argument("--description", default=accounts.DEFAULT_CLIENT_PAYMENT_DESCRIPTION)
        parser.add_argument(
            "--payment-method",
            choices=[member.value for member in PaymentMethod],
            default=PaymentMethod.CASH.value,
        )
        parser.add_argument(
            "--account-only",
            action="store_true",
            help="Only update the account; do not book the money in the cash ledger.",
        )
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_client_payment)


def register_provider_purchase_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``provider-purchase``."""
    name = "provider-purchase"
    help_text = "Record stock bought on account from a provider."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--provider-id", required=True)
        parser.add_argument("--amount", type=parse_money, required=True)
        parser.add_argument("--description", required=True)
        parser.add_argument("--due-date", type=parse_cli_date, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_provider_purchase)


def register_provider_payment_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``provider-payment``."""
    name = "provider-payment"
    help_text = "Record a payment made to a provider."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--provider-id", required=True)
        parser.add_argument("--amount", type=parse_money, required=True)
        parser.add_argument("--description", default=accounts.DEFAULT_PROVIDER_PAYMENT_DESCRIPTION)
        parser.add_argument(
            "--payment-method",
            choices=[member.value for member in PaymentMethod],
            default=PaymentMethod.CASH.value,
        )
        parser.add_argument(
            "--account-only",
            action="store_true",
            help="Only update the account; do not book the expense in the cash ledger.",
        )
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_provider_payment)


def register_provider_debt_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``provider-debt``."""
    name = "provider-debt"
    help_text = "Record a manual debt owed to a provider."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--provider-id", required=True)
        parser.add_argument("--amount", type=parse_money, required=True)
        parser.add_argument("--description", required=True)
        parser.add_argument("--due-date", type=parse_cli_date, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_provider_debt)


def register_remove_account_tx_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``remove-account-tx``."""
    name = "remove-account-tx"
    help_text = "Delete one transaction from a client or provider account."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--account-id", required=True)
        parser.add_argument("--transaction-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_remove_account_tx)


def register_cash_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``cash``."""
    name = "cash"
    help_text = "Record a cash income or expense."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument(
            "--type",
            dest="transaction_type",
            choices=[member.value for member in CashTransactionType],
            required=True,
        )
        parser.add_argument("--amount", type=parse_money, required=True)
        parser.add_argument(
            "--category",
            choices=[member.value for member in CashCategory],
            required=True,
        )
        parser.add_argument(
            "--payment-method",
            choices=[member.value for member in PaymentMethod],
            default=PaymentMethod.CASH.value,
        )
        parser.add_argument("--description", default="")
        parser.add_argument(
            "--expense-type",
            choices=[member.value for member in ExpenseType],
            default=None,
        )
        parser.add_argument("--date", dest="entry_date", type=parse_cli_date, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_cash)


def register_remove_cash_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``remove-cash``."""
    name = "remove-cash"
    help_text = "Delete a cash movement."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--transaction-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_remove_cash)


def register_place_order_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``place-order``."""
    name = "place-order"
    help_text = "Place a purchase order with a provider."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--provider-id", required=True)
        parser.add_argument(
            "--line",
            dest="lines",
            type=parse_order_line,
            action="append",
            required=True,
            help=(
                "Order line as key=value pairs, e.g. model=iPhone 13,quantity=2,unit_cost=450. "
                "Use ; between pairs when a value contains a comma."
            ),
        )
        parser.add_argument("--expected-date", type=parse_cli_date, default=None)
        parser.add_argument("--notes", default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_place_order)


def register_receive_order_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``receive-order``."""
    name = "receive-order"
    help_text = "Receive a pending order into inventory."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--order-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_receive_order)


def register_sale_status_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``sale-status``."""
    name = "sale-status"
    help_text = "Change the status of a sale."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--sale-id", required=True)
        parser.add_argument(
            "--status",
            choices=[member.value for member in SaleStatus],
            required=True,
        )
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_sale_status)


def register_accounts_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``accounts``."""
    name = "accounts"
    help_text = "Display client or provider account balances."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--side", choices=["client", "provider"], default="client")
        parser.add_argument("--all", dest="include_settled", action="store_true", help="Include settled accounts.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_accounts_report, persist=False)


def register_cash_balance_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``cash-balance``."""
    name = "cash-balance"
    help_text = "Display cash income, expense and balance."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--from", dest="date_from", type=parse_cli_date, default=None)
        parser.add_argument("--to", dest="date_to", type=parse_cli_date, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_cash_report, persist=False)


def register_stock_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``stock``."""
    name = "stock"
    help_text = "Display inventory units."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--all", dest="include_unavailable", action="store_true", help="Include sold units.")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_stock_report, persist=False)


def register_sales_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``sales``."""
    name = "sales"
    help_text = "Display sales, newest first."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--status", choices=[member.value for member in SaleStatus], default=None)
        parser.add_argument("--client", dest="client_search", default=None)
        parser.add_argument("--from", dest="date_from", type=parse_cli_date, default=None)
        parser.add_argument("--to", dest="date_to", type=parse_cli_date, default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_sales_report, persist=False)


def register_orders_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``orders``."""
    name = "orders"
    help_text = "Display purchase orders."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--status", choices=[member.value for member in OrderStatus], default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_orders_report, persist=False)


_CATEGORY_FIELDS = ("model", "storage", "color", "condition", "battery", "imei")


def _add_category_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--name", required=True)
    parser.add_argument(
        "--hide",
        dest="hidden_fields",
        action="append",
        choices=_CATEGORY_FIELDS,
        help="Field units of this category do not carry (repeatable).",
    )


def register_add_category_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-category``."""
    name = "add-category"
    help_text = "Register a product category."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        _add_category_arguments(parser)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_category)


def register_update_category_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``update-category``."""
    name = "update-category"
    help_text = "Rename a product category and replace its hidden fields."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--category-id", required=True)
        _add_category_arguments(parser)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_update_category)


def register_remove_category_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``remove-category``."""
    name = "remove-category"
    help_text = "Delete a product category."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--category-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_remove_category)


def register_add_attribute_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``add-attribute``."""
    name = "add-attribute"
    help_text = "Append a color, storage or condition choice."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--kind", choices=[member.value for member in AttributeKind], required=True)
        parser.add_argument("--value", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_add_attribute)


def register_remove_attribute_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``remove-attribute``."""
    name = "remove-attribute"
    help_text = "Delete a color, storage or condition choice."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--attribute-id", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_remove_attribute)


def register_reorder_attributes_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``reorder-attributes``."""
    name = "reorder-attributes"
    help_text = "Set the display order of the choices of one kind."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--kind", choices=[member.value for member in AttributeKind], required=True)
        parser.add_argument("--attribute-id", dest="attribute_ids", action="append", required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_reorder_attributes)


def register_categories_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``categories``."""
    name = "categories"
    help_text = "Display product categories and the fields they carry."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_categories_report, persist=False)


def register_attributes_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``attributes``."""
    name = "attributes"
    help_text = "Display the ordered choices of one attribute kind."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--kind", choices=[member.value for member in AttributeKind], required=True)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_attributes_report, persist=False)


def load_runtime_context(config_path: Optional[Path] = None) -> core_logic.RuntimeContext:
    """Resolve the runtime context for CLI operations.

    The schema version is validated and the sale list is subscribed to the
    sale status channel, so settling a client account credits its sales.
    """
    context = core_logic.load_runtime_context(config_path)
    core_logic.ensure_schema_version(context)
    sales.bind_sale_status_updates(context)
    return context


def dispatch_command(
    context: core_logic.RuntimeContext,
    args: argparse.Namespace,
    command_table: Mapping[str, CommandSpec],
) -> int:
    """Dispatch the parsed arguments to the configured executor."""
    if not hasattr(args, "command") or args.command is None:
        raise KeyError("No command specified")
    spec = command_table.get(args.command)
    if spec is None:
        raise KeyError(f"Unknown command: {args.command}")
    return spec.execute(context, args)


def build_command_table(
    specs: Iterable[CommandSpec],
) -> MutableMapping[str, CommandSpec]:
    """Build an index of command specifications keyed by command name."""
    table: Dict[str, CommandSpec] = {}
    for spec in specs:
        if spec.name in table:
            raise ValueError(f"Duplicate command name: {spec.name}")
        table[spec.name] = spec
    return table


def translate_add_item(args: argparse.Namespace) -> catalog.NewInventoryItem:
    """Translate CLI args into a new inventory unit."""
    return catalog.NewInventoryItem(
        model=args.model,
        cost_price=args.cost_price,
        sale_price=args.sale_price,
        storage=args.storage,
        color=args.color,
        battery=args.battery,
        imei=args.imei,
        condition=ItemCondition(args.condition),
        provider=args.provider,
        product_type=args.product_type,
    )


def translate_trade_in(args: argparse.Namespace) -> Optional[sales.TradeIn]:
    """Build the trade-in of a ``sale`` call, if one was described.

    Raises:
        ValueError: If a trade-in model is given without a taken value.
    """
    if not args.trade_in_model:
        return None
    if args.trade_in_value is None:
        raise ValueError("--trade-in-value is required with --trade-in-model")
    return sales.TradeIn(
        model=args.trade_in_model,
        taken_value=args.trade_in_value,
        resale_value=args.trade_in_resale if args.trade_in_resale is not None else args.trade_in_value,
        storage=args.trade_in_storage,
        color=args.trade_in_color,
        battery=args.trade_in_battery,
        imei=args.trade_in_imei,
    )


def translate_sale(args: argparse.Namespace) -> sales.NewSaleCommand:
    """Translate CLI args into a sale command object."""
    return sales.NewSaleCommand(
        item_ids=tuple(args.item_ids),
        payment_type=PaymentType(args.payment_type),
        client_name=args.client_name,
        client_id=args.client_id,
        salesperson=args.salesperson,
        trade_in=translate_trade_in(args),
        payment_method=PaymentMethod(args.payment_method),
    )


def translate_client_payment(args: argparse.Namespace) -> accounts.ClientPaymentCommand:
    return accounts.ClientPaymentCommand(
        account_id=args.client_id,
        amount=args.amount,
        description=args.description,
    )


def translate_provider_payment(args: argparse.Namespace) -> accounts.ProviderPaymentCommand:
    return accounts.ProviderPaymentCommand(
        account_id=args.provider_id,
        amount=args.amount,
        description=args.description,
    )


def translate_cash(args: argparse.Namespace) -> cash.CashCommand:
    """Translate CLI args into a cash command object."""
    return cash.CashCommand(
        transaction_type=CashTransactionType(args.transaction_type),
        amount=args.amount,
        category=CashCategory(args.category),
        payment_method=PaymentMethod(args.payment_method),
        description=args.description,
        expense_type=ExpenseType(args.expense_type) if args.expense_type else None,
        entry_date=args.entry_date,
    )


def translate_place_order(args: argparse.Namespace) -> orders.PlaceOrderCommand:
    return orders.PlaceOrderCommand(
        provider_id=args.provider_id,
        lines=tuple(args.lines),
        expected_date=args.expected_date,
        notes=args.notes,
    )


def translate_category_fields(args: argparse.Namespace) -> catalog.CategoryFields:
    """Translate ``--hide`` flags into the category field toggles."""
    hidden = set(args.hidden_fields or ())
    return catalog.CategoryFields(**{name: name not in hidden for name in _CATEGORY_FIELDS})


def run_add_client(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the add-client workflow in the BLL."""
    client = catalog.add_client(context, args.name, args.phone)
    print(client.client_id)
    return 0


def run_add_provider(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the add-provider workflow in the BLL."""
    provider = catalog.add_provider(context, args.name, args.phone, args.email)
    print(provider.provider_id)
    return 0


def run_add_item(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    item = catalog.add_inventory_item(context, translate_add_item(args))
    print(item.item_id)
    return 0


def run_sale(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the sale workflow via the BLL."""
    sale = sales.register_sale(context, translate_sale(args))
    print(sale.sale_id)
    return 0


def run_client_payment(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the client payment workflow via the BLL.

    Paying into an unknown account writes nothing; the command reports it and
    still exits successfully.
    """
    command = translate_client_payment(args)
    if args.account_only:
        result: Any = accounts.record_client_payment(context, command)
    else:
        result = accounts.collect_client_payment(
            context, command, payment_method=PaymentMethod(args.payment_method)
        )
    if result is None:
        print(f"No account found for client '{args.client_id}'; nothing recorded.")
    return 0


def run_provider_purchase(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    provider = catalog.get_provider(context, args.provider_id)
    accounts.record_provider_purchase(
        context,
        accounts.ProviderPurchaseCommand(
            account_id=provider.provider_id,
            account_name=provider.name,
            amount=args.amount,
            description=args.description,
            due_date=args.due_date,
        ),
    )
    return 0


def run_provider_payment(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the provider payment workflow via the BLL."""
    command = translate_provider_payment(args)
    if args.account_only:
        result: Any = accounts.record_provider_payment(context, command)
    else:
        result = accounts.pay_provider(context, command, payment_method=PaymentMethod(args.payment_method))
    if result is None:
        print(f"No account found for provider '{args.provider_id}'; nothing recorded.")
    return 0


def run_provider_debt(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    provider = catalog.get_provider(context, args.provider_id)
    accounts.record_provider_debt(
        context,
        accounts.ProviderDebtCommand(
            account_id=provider.provider_id,
            account_name=provider.name,
            amount=args.amount,
            description=args.description,
            due_date=args.due_date,
        ),
    )
    return 0


def run_remove_account_tx(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    if not accounts.remove_account_transaction(context, args.account_id, args.transaction_id):
        print(f"Transaction '{args.transaction_id}' not found on account '{args.account_id}'.")
    return 0


def run_cash(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the cash movement workflow via the BLL."""
    row = cash.record_cash_transaction(context, translate_cash(args))
    print(row.transaction_id)
    return 0


def run_remove_cash(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    if not cash.remove_cash_transaction(context, args.transaction_id):
        print(f"Cash transaction '{args.transaction_id}' not found.")
    return 0


def run_place_order(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the order placement workflow via the BLL."""
    order = orders.place_pending_order(context, translate_place_order(args))
    print(order.order_id)
    return 0


def run_receive_order(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Execute the order receipt workflow via the BLL."""
    units = orders.receive_pending_order(context, args.order_id)
    print(f"Received {len(units)} unit(s).")
    return 0


def run_sale_status(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    sales.update_sale_status(context, args.sale_id, SaleStatus(args.status))
    return 0


def run_add_category(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    category = catalog.add_product_category(context, args.name, translate_category_fields(args))
    print(category.category_id)
    return 0


def run_update_category(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    catalog.update_product_category(context, args.category_id, args.name, translate_category_fields(args))
    return 0


def run_remove_category(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    if not catalog.remove_product_category(context, args.category_id):
        print(f"Product category '{args.category_id}' not found.")
    return 0


def run_add_attribute(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    row = catalog.add_attribute_value(context, AttributeKind(args.kind), args.value)
    print(row.attribute_id)
    return 0


def run_remove_attribute(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    if not catalog.remove_attribute_value(context, args.attribute_id):
        print(f"Attribute value '{args.attribute_id}' not found.")
    return 0


def run_reorder_attributes(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    catalog.reorder_attribute_values(context, AttributeKind(args.kind), args.attribute_ids)
    return 0


def run_categories_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print each category with the fields its units carry."""
    for category in catalog.list_product_categories(context):
        fields = catalog.category_fields(category)
        shown = [name for name in _CATEGORY_FIELDS if getattr(fields, name)]
        print(f"{category.category_id}\t{category.name}\t{', '.join(shown) or '-'}")
    return 0


def run_attributes_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    for row in catalog.list_attribute_values(context, AttributeKind(args.kind)):
        print(f"{row.attribute_id}\t{row.position}\t{row.value}")
    return 0


def run_accounts_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print account balances and the date of each account's latest entry."""
    if args.side == "provider":
        rows = accounts.list_provider_accounts(context, include_settled=args.include_settled)
    else:
        rows = accounts.list_client_accounts(context, include_settled=args.include_settled)
    for account in rows:
        last_entry = date_helpers.format_display_date(account.last_transaction_date)
        print(f"{account.account_id}\t{account.account_name}\t{account.balance}\t{last_entry}")
    return 0


def run_cash_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print the cash summary, optionally within a date range."""
    summary = cash.calculate_cash_summary(context, args.date_from, args.date_to)
    operational = cash.calculate_operational_expenses(context, args.date_from, args.date_to)
    print(f"Income:\t{summary['income']}")
    print(f"Expense:\t{summary['expense']}")
    print(f"Operational expenses:\t{operational}")
    print(f"Balance:\t{summary['balance']}")
    return 0


def run_stock_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print inventory units."""
    for item in catalog.list_inventory(context, include_unavailable=args.include_unavailable):
        print(f"{item.item_id}\t{item.model}\t{item.storage}\t{item.color}\t{item.status}\t{item.sale_price}")
    return 0


def run_sales_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print matching sales followed by their totals."""
    selected = sales.list_sales(
        context,
        status=SaleStatus(args.status) if args.status else None,
        client_search=args.client_search,
        date_from=args.date_from,
        date_to=args.date_to,
    )
    for sale in selected:
        print(
            f"{sale.sale_id}\t{date_helpers.format_display_date(sale.date_iso)} {sale.time}\t"
            f"{sale.client}\t{sale.status}\t{sale.total}"
        )
    summary = sales.calculate_sales_summary(context, args.date_from, args.date_to)
    print(f"Total: {summary['total']}  Cost: {summary['total_cost']}  Profit: {summary['gross_profit']}")
    return 0


def run_orders_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print purchase orders."""
    status = OrderStatus(args.status) if args.status else None
    for order in orders.list_pending_orders(context, status=status):
        units = sum(line.quantity for line in order.lines)
        print(
            f"{order.order_id}\t{order.provider_name}\t{date_helpers.format_display_date(order.order_date_iso)}\t"
            f"{order.status}\t{units} unit(s)\t{order.total_cost}"
        )
    return 0


def handle_cli_error(error: Exception) -> int:
    """Convert raised exceptions into user-friendly exit codes."""
    if isinstance(error, core_logic.BusinessRuleViolation):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def persist_workbook(context: core_logic.RuntimeContext) -> None:
    """Persist workbook changes after successful execution."""
    try:
        core_logic.persist_context(context)
    except PermissionError as error:
        raise core_logic.PersistenceError(str(error)) from error


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point that orchestrates parsing and execution."""
    parser = build_parser()
    command_table = configure_subcommands(parser)
    args = parser.parse_args(argv)
    try:
        context = load_runtime_context(getattr(args, "config", None))
        exit_code = dispatch_command(context, args, command_table)
        if exit_code == 0 and command_table[args.command].persist:
            persist_workbook(context)
        return exit_code
    except Exception as error:  # pragma: no cover - centralised error handler tested separately
        return handle_cli_error(error)
