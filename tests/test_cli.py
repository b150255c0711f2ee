"""Unit tests describing the CLI presentation layer contract."""

from __future__ import annotations

import argparse
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

import pytest

from shop_ledger import accounts, cash, catalog, cli, core_logic, data_manager, orders, sales
from shop_ledger.constants import (
    AttributeKind,
    CashCategory,
    CashTransactionType,
    ExpenseType,
    ItemCondition,
    PaymentMethod,
    PaymentType,
)


WRITE_COMMANDS = {
    "add-client",
    "add-provider",
    "add-item",
    "sale",
    "client-payment",
    "provider-purchase",
    "provider-payment",
    "provider-debt",
    "remove-account-tx",
    "cash",
    "remove-cash",
    "place-order",
    "receive-order",
    "sale-status",
    "add-category",
    "update-category",
    "remove-category",
    "add-attribute",
    "remove-attribute",
    "reorder-attributes",
}

READ_COMMANDS = {
    "accounts",
    "cash-balance",
    "stock",
    "sales",
    "orders",
    "categories",
    "attributes",
}

# ---------------------------------------------------------------------------
# Parser construction
# ---------------------------------------------------------------------------


def test_build_parser_sets_program_metadata():
    """build_parser should set user-facing program metadata."""

    parser = cli.build_parser()
    assert isinstance(parser, argparse.ArgumentParser)
    assert parser.prog == "shop-ledger"
    assert "Shop Ledger" in (parser.description or "")


def test_configure_subcommands_registers_every_command(cli_parser):
    """configure_subcommands should wire both mutating and reporting commands."""

    command_table = cli.configure_subcommands(cli_parser)
    assert set(command_table) == WRITE_COMMANDS | READ_COMMANDS
    assert _registered_choices(cli_parser) == WRITE_COMMANDS | READ_COMMANDS


def test_register_write_commands_returns_persisting_specs(subparsers_action):
    specs = cli.register_write_commands(subparsers_action)
    assert set(specs) == WRITE_COMMANDS
    for name, spec in specs.items():
        assert isinstance(spec, cli.CommandSpec)
        assert spec.name == name
        assert spec.help_text
        assert spec.persist is True
        assert name in subparsers_action.choices


def test_register_read_commands_never_persist(subparsers_action):
    """Reports must leave the workbook untouched on disk."""

    specs = cli.register_read_commands(subparsers_action)
    assert set(specs) == READ_COMMANDS
    assert all(spec.persist is False for spec in specs.values())


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def test_sale_command_collects_repeated_item_ids():
    parser = cli.build_parser()
    cli.configure_subcommands(parser)

    namespace = parser.parse_args(
        [
            "sale",
            "--item-id",
            "inv_1",
            "--item-id",
            "inv_2",
            "--payment-type",
            "credit",
            "--client-id",
            "client_1",
            "--trade-in-model",
            "iPhone 8",
            "--trade-in-value",
            "150",
        ]
    )

    assert namespace.command == "sale"
    assert namespace.item_ids == ["inv_1", "inv_2"]
    assert namespace.payment_type == "credit"
    assert namespace.trade_in_value == Decimal("150")
    assert namespace.payment_method == PaymentMethod.CASH.value


def test_cash_command_parses_amount_and_date():
    parser = cli.build_parser()
    cli.configure_subcommands(parser)

    namespace = parser.parse_args(
        [
            "cash",
            "--type",
            "expense",
            "--amount",
            "120.50",
            "--category",
            "Alquiler",
            "--expense-type",
            "operational",
            "--date",
            "2026-03-01",
        ]
    )

    assert namespace.transaction_type == "expense"
    assert namespace.amount == Decimal("120.50")
    assert namespace.entry_date == date(2026, 3, 1)


def test_invalid_category_is_rejected_by_parser():
    parser = cli.build_parser()
    cli.configure_subcommands(parser)
    with pytest.raises(SystemExit):
        parser.parse_args(["cash", "--type", "income", "--amount", "1", "--category", "Viajes"])


def test_parse_money_rejects_garbage():
    assert cli.parse_money("12.30") == Decimal("12.30")
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_money("twelve")


def test_parse_cli_date_requires_iso_format():
    assert cli.parse_cli_date("2026-03-10") == date(2026, 3, 10)
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_cli_date("10/03/2026")


def test_parse_order_line_reads_key_value_pairs():
    line = cli.parse_order_line("model=iPhone 13,quantity=3,unit_cost=450,sale_price=600,color=Negro")

    assert line == data_manager.OrderLine(
        model="iPhone 13",
        quantity=3,
        unit_cost=Decimal("450"),
        sale_price=Decimal("600"),
        color="Negro",
    )


def test_parse_order_line_accepts_semicolons_for_values_with_commas():
    line = cli.parse_order_line("model=Cargador 20W, USB-C;quantity=2;unit_cost=15;product_category=Accesorio")

    assert line.model == "Cargador 20W, USB-C"
    assert line.quantity == 2
    assert line.unit_cost == Decimal("15")
    assert line.product_category == "Accesorio"


@pytest.mark.parametrize(
    "text",
    [
        "model=iPhone 13,quantity=3",
        "model=iPhone 13,quantity=three,unit_cost=450",
        "model=iPhone 13,quantity=3,unit_cost=450,weight=200",
        "iPhone 13",
    ],
)
def test_parse_order_line_rejects_malformed_text(text):
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_order_line(text)


# ---------------------------------------------------------------------------
# Translation helpers
# ---------------------------------------------------------------------------


def test_translate_sale_builds_command_with_trade_in():
    args = argparse.Namespace(
        item_ids=["inv_1"],
        payment_type="cash",
        client_name="Luis",
        client_id=None,
        salesperson=None,
        payment_method="transfer",
        trade_in_model="iPhone 8",
        trade_in_value=Decimal("150"),
        trade_in_resale=None,
        trade_in_storage="64GB",
        trade_in_color="",
        trade_in_battery="85",
        trade_in_imei="",
    )

    command = cli.translate_sale(args)

    assert isinstance(command, sales.NewSaleCommand)
    assert command.item_ids == ("inv_1",)
    assert command.payment_type is PaymentType.CASH
    assert command.payment_method is PaymentMethod.TRANSFER
    assert command.trade_in.taken_value == Decimal("150")
    assert command.trade_in.resale_value == Decimal("150")


def test_translate_trade_in_requires_value():
    args = argparse.Namespace(trade_in_model="iPhone 8", trade_in_value=None)
    with pytest.raises(ValueError):
        cli.translate_trade_in(args)


def test_translate_trade_in_absent_without_model():
    assert cli.translate_trade_in(argparse.Namespace(trade_in_model=None)) is None


def test_translate_cash_maps_enums():
    args = argparse.Namespace(
        transaction_type="expense",
        amount=Decimal("30"),
        category="Comida",
        payment_method="cash",
        description="Almuerzo",
        expense_type="operational",
        entry_date=None,
    )

    command = cli.translate_cash(args)

    assert command.transaction_type is CashTransactionType.EXPENSE
    assert command.category is CashCategory.FOOD
    assert command.expense_type is ExpenseType.OPERATIONAL


def test_translate_add_item_maps_condition():
    args = argparse.Namespace(
        model="iPhone 13",
        cost_price=Decimal("400"),
        sale_price=Decimal("600"),
        storage="128GB",
        color="",
        battery="",
        imei="",
        condition="Usado",
        provider="",
        product_type=None,
    )
    item = cli.translate_add_item(args)
    assert item.condition is ItemCondition.USED
    assert item.product_type is None


def test_translate_place_order_keeps_lines():
    line = data_manager.OrderLine(model="A", quantity=1, unit_cost=Decimal("1"))
    args = argparse.Namespace(provider_id="provider_1", lines=[line], expected_date=None, notes="urgente")

    command = cli.translate_place_order(args)

    assert isinstance(command, orders.PlaceOrderCommand)
    assert command.lines == (line,)
    assert command.notes == "urgente"


# ---------------------------------------------------------------------------
# Command execution helpers
# ---------------------------------------------------------------------------


def test_run_add_client_prints_new_id(context, capsys):
    args = argparse.Namespace(name="Ana", phone="11-5555")

    assert cli.run_add_client(context, args) == 0

    [client] = catalog.list_clients(context)
    assert capsys.readouterr().out.strip() == client.client_id


def test_run_sale_invokes_bll(context, monkeypatch, capsys):
    """run_sale should delegate to the business logic layer."""

    command = sales.NewSaleCommand(item_ids=("inv_1",), payment_type=PaymentType.CASH, client_name="Luis")
    monkeypatch.setattr(cli, "translate_sale", lambda value: command)
    called = {}

    def fake_register(ctx: core_logic.RuntimeContext, cmd: sales.NewSaleCommand) -> data_manager.SaleRow:
        called["context"] = ctx
        called["cmd"] = cmd
        return argparse.Namespace(sale_id="sale_1")

    monkeypatch.setattr(cli.sales, "register_sale", fake_register)

    assert cli.run_sale(context, argparse.Namespace()) == 0
    assert called["context"] is context
    assert called["cmd"] is command
    assert capsys.readouterr().out.strip() == "sale_1"


def test_run_client_payment_books_cash_by_default(context):
    accounts.record_client_sale(
        context,
        accounts.ClientSaleCommand(account_id="client_1", account_name="Ana", amount=Decimal("100"), description="Venta"),
    )
    args = argparse.Namespace(
        client_id="client_1",
        amount=Decimal("40"),
        description="Pago",
        payment_method="cash",
        account_only=False,
    )

    assert cli.run_client_payment(context, args) == 0

    assert accounts.get_client_account(context, "client_1").balance == Decimal("60")
    assert cash.calculate_cash_balance(context) == Decimal("40")


def test_run_client_payment_account_only_skips_cash(context):
    accounts.record_client_sale(
        context,
        accounts.ClientSaleCommand(account_id="client_1", account_name="Ana", amount=Decimal("100"), description="Venta"),
    )
    args = argparse.Namespace(
        client_id="client_1",
        amount=Decimal("40"),
        description="Pago",
        payment_method="cash",
        account_only=True,
    )

    cli.run_client_payment(context, args)

    assert cash.list_cash_transactions(context) == []


def test_run_client_payment_reports_unknown_account(context, capsys):
    args = argparse.Namespace(
        client_id="client_x",
        amount=Decimal("40"),
        description="Pago",
        payment_method="cash",
        account_only=False,
    )

    assert cli.run_client_payment(context, args) == 0
    assert "client_x" in capsys.readouterr().out


def test_run_provider_purchase_requires_known_provider(context):
    args = argparse.Namespace(provider_id="provider_x", amount=Decimal("10"), description="Lote", due_date=None)
    with pytest.raises(core_logic.MissingReferenceError):
        cli.run_provider_purchase(context, args)


def test_run_accounts_report_lists_open_balances(context, capsys, fixed_today):
    provider = catalog.add_provider(context, "Mayorista")
    args = argparse.Namespace(provider_id=provider.provider_id, amount=Decimal("500"), description="Lote", due_date=None)
    cli.run_provider_purchase(context, args)

    exit_code = cli.run_accounts_report(context, argparse.Namespace(side="provider", include_settled=False))

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == f"{provider.provider_id}\tMayorista\t500\t10/03/2026"


def test_add_category_command_collects_hidden_fields():
    parser = cli.build_parser()
    cli.configure_subcommands(parser)

    namespace = parser.parse_args(["add-category", "--name", "Accesorio", "--hide", "imei", "--hide", "battery"])

    assert cli.translate_category_fields(namespace) == catalog.CategoryFields(battery=False, imei=False)
    plain = parser.parse_args(["add-category", "--name", "Celular"])
    assert cli.translate_category_fields(plain) == catalog.CategoryFields()


def test_run_categories_report_lists_shown_fields(context, capsys):
    args = argparse.Namespace(name="Accesorio", hidden_fields=["storage", "battery", "imei"])
    assert cli.run_add_category(context, args) == 0
    category_id = capsys.readouterr().out.strip()

    cli.run_categories_report(context, argparse.Namespace())

    assert capsys.readouterr().out.strip() == f"{category_id}\tAccesorio\tmodel, color, condition"


def test_run_reorder_attributes_changes_report_order(context, capsys):
    first = catalog.add_attribute_value(context, AttributeKind.STORAGE, "64GB")
    second = catalog.add_attribute_value(context, AttributeKind.STORAGE, "128GB")

    cli.run_reorder_attributes(
        context, argparse.Namespace(kind="storage", attribute_ids=[second.attribute_id, first.attribute_id])
    )
    cli.run_attributes_report(context, argparse.Namespace(kind="storage"))

    assert capsys.readouterr().out.splitlines() == [
        f"{second.attribute_id}\t1\t128GB",
        f"{first.attribute_id}\t2\t64GB",
    ]


def test_run_remove_attribute_reports_unknown_id(context, capsys):
    assert cli.run_remove_attribute(context, argparse.Namespace(attribute_id="color_x")) == 0
    assert "color_x" in capsys.readouterr().out


def test_run_cash_report_prints_summary(context, capsys):
    cash.record_cash_transaction(
        context,
        cash.CashCommand(
            transaction_type=CashTransactionType.EXPENSE,
            amount=Decimal("30"),
            category=CashCategory.RENT,
            expense_type=ExpenseType.OPERATIONAL,
        ),
    )

    cli.run_cash_report(context, argparse.Namespace(date_from=None, date_to=None))

    output = capsys.readouterr().out
    assert "Operational expenses:\t30" in output
    assert "Balance:\t-30" in output


# ---------------------------------------------------------------------------
# Dispatch, error handling and persistence
# ---------------------------------------------------------------------------


def test_build_command_table_indexes_specs(command_spec_iterable):
    table = cli.build_command_table(command_spec_iterable)
    assert list(table) == ["alpha", "beta", "gamma"]


def test_build_command_table_rejects_duplicates(command_spec_iterable):
    with pytest.raises(ValueError):
        cli.build_command_table([*command_spec_iterable, command_spec_iterable[0]])


def test_dispatch_command_unknown_raises(context, command_spec_iterable):
    table = cli.build_command_table(command_spec_iterable)
    with pytest.raises(KeyError):
        cli.dispatch_command(context, argparse.Namespace(command="delta"), table)


@pytest.mark.parametrize(
    "error, expected",
    [
        (core_logic.BusinessRuleViolation("invalid"), 2),
        (core_logic.MissingReferenceError("missing client"), 2),
        (FileNotFoundError("missing"), 3),
        (ValueError("bad value"), 1),
        (core_logic.PersistenceError("locked"), 1),
    ],
)
def test_handle_cli_error_returns_exit_code(error: Exception, expected: int, caplog: pytest.LogCaptureFixture):
    """handle_cli_error should convert exceptions into exit codes."""

    caplog.set_level("ERROR")
    assert cli.handle_cli_error(error) == expected
    assert any(str(error) in record.getMessage() for record in caplog.records)


def test_persist_workbook_handles_read_only_workbooks(context, monkeypatch):
    def fake_persist(_: core_logic.RuntimeContext) -> None:
        raise PermissionError("read-only")

    monkeypatch.setattr(cli.core_logic, "persist_context", fake_persist)
    with pytest.raises(core_logic.PersistenceError, match="read-only"):
        cli.persist_workbook(context)


def test_load_runtime_context_binds_sale_updates(runtime_context, monkeypatch):
    monkeypatch.setattr(cli.core_logic, "load_runtime_context", lambda path=None: runtime_context)

    context = cli.load_runtime_context()

    assert context.sale_status_channel.has_subscriber


# ---------------------------------------------------------------------------
# Program entry point
# ---------------------------------------------------------------------------


def test_main_persists_after_successful_write(monkeypatch, context):
    parser = _stub_parser(command="sale")
    command_table = {"sale": cli.CommandSpec("sale", "help", lambda _: parser, lambda *_: 0)}
    _install(monkeypatch, parser, command_table, context)

    persisted = {}
    monkeypatch.setattr(cli, "persist_workbook", lambda ctx: persisted.setdefault("context", ctx))

    assert cli.main(["sale"]) == 0
    assert persisted["context"] is context


def test_main_skips_persist_for_reports(monkeypatch, context):
    parser = _stub_parser(command="stock")
    command_table = {"stock": cli.CommandSpec("stock", "help", lambda _: parser, lambda *_: 0, persist=False)}
    _install(monkeypatch, parser, command_table, context)
    monkeypatch.setattr(cli, "persist_workbook", _fail_on_persist)

    assert cli.main(["stock"]) == 0


def test_main_handles_bll_errors(monkeypatch, context):
    """main should surface business rule violations as non-zero exits."""

    def fake_execute(*_: object) -> int:
        raise core_logic.BusinessRuleViolation("invalid")

    parser = _stub_parser(command="sale")
    command_table = {"sale": cli.CommandSpec("sale", "help", lambda _: parser, fake_execute)}
    _install(monkeypatch, parser, command_table, context)
    monkeypatch.setattr(cli, "persist_workbook", _fail_on_persist)

    assert cli.main(["sale"]) == 2


def test_main_reports_missing_config(monkeypatch):
    parser = _stub_parser(command="stock")
    monkeypatch.setattr(cli, "build_parser", lambda: parser)
    monkeypatch.setattr(cli, "configure_subcommands", lambda _: {})

    def fake_load(path=None):
        raise FileNotFoundError("config.ini not found")

    monkeypatch.setattr(cli, "load_runtime_context", fake_load)

    assert cli.main(["stock"]) == 3


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _install(
    monkeypatch: pytest.MonkeyPatch,
    parser: argparse.ArgumentParser,
    command_table: Mapping[str, cli.CommandSpec],
    context: core_logic.RuntimeContext,
) -> None:
    monkeypatch.setattr(cli, "build_parser", lambda: parser)
    monkeypatch.setattr(cli, "configure_subcommands", lambda _: command_table)
    monkeypatch.setattr(cli, "load_runtime_context", lambda path=None: context)


def _fail_on_persist(_: core_logic.RuntimeContext) -> None:
    raise AssertionError("should not persist")


def _stub_parser(command: str) -> argparse.ArgumentParser:
    """Create a stub parser that always returns the supplied command."""

    class _Stub(argparse.ArgumentParser):
        def parse_args(self, args: Iterable[str] | None = None, namespace: argparse.Namespace | None = None):  # type: ignore[override]
            return argparse.Namespace(command=command)

    return _Stub(prog="test")


def _registered_choices(parser: argparse.ArgumentParser) -> set[str]:
    """Return the set of registered sub-command names for assertion helpers."""

    actions = getattr(parser, "_subparsers", None)
    if not actions:
        return set()
    group_actions = actions._group_actions  # type: ignore[attr-defined]
    if not group_actions:
        return set()
    return set(group_actions[0].choices)  # type: ignore[index]
