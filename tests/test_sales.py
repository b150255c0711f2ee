"""Tests for the counter sale flow and the sale list."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from shop_ledger import accounts, cash, catalog, core_logic, sales
from shop_ledger.constants import (
    TRADE_IN_PROVIDER,
    CashCategory,
    InventoryStatus,
    ItemCondition,
    PaymentType,
    SaleStatus,
)


@pytest.fixture
def client(context):
    return catalog.add_client(context, "Ana Pérez", "11-5555")


def _cash_sale(context, *item_ids, trade_in=None, on=None, client_name="Mostrador"):
    return sales.register_sale(
        context,
        sales.NewSaleCommand(
            item_ids=list(item_ids),
            payment_type=PaymentType.CASH,
            client_name=client_name,
            trade_in=trade_in,
            entry_date=on,
        ),
    )


def _credit_sale(context, client_id, *item_ids, on=None):
    return sales.register_sale(
        context,
        sales.NewSaleCommand(
            item_ids=list(item_ids), payment_type=PaymentType.CREDIT, client_id=client_id, entry_date=on
        ),
    )


def test_cash_sale_is_credited_and_books_income(context, stock_item, fixed_today):
    first = stock_item("iPhone 13", cost_price="400", sale_price="600")
    second = stock_item("iPhone 12", cost_price="300", sale_price="450")

    sale = _cash_sale(context, first.item_id, second.item_id)

    assert sale.status == SaleStatus.CREDITED.value
    assert sale.total == Decimal("1050")
    assert sale.total_cost == Decimal("700")
    assert sale.gross_profit == Decimal("350")
    assert sale.date_iso == "2026-03-10"
    assert sale.salesperson == context.settings.default_salesperson
    assert sales.get_sale(context, sale.sale_id) == sale

    for item_id in (first.item_id, second.item_id):
        assert catalog.get_inventory_item(context, item_id).status == InventoryStatus.SOLD.value

    [income] = cash.list_cash_transactions(context)
    assert income.amount == Decimal("1050")
    assert income.category == CashCategory.COLLECTIONS.value
    assert income.related_id == sale.sale_id
    assert income.description == "Venta - Mostrador: iPhone 13 y 1 más"


def test_cash_sale_with_trade_in(context, stock_item):
    item = stock_item(sale_price="600")
    trade_in = sales.TradeIn(
        model="iPhone 8",
        taken_value=Decimal("150"),
        resale_value=Decimal("220"),
        storage="64GB",
        color="Blanco",
        battery="85",
        imei="359000000000001",
    )

    sale = _cash_sale(context, item.item_id, trade_in=trade_in)

    assert "Tomado: $150 Reventa: $220" in sale.trade_in
    assert cash.calculate_cash_balance(context) == Decimal("450")

    [received] = catalog.list_inventory(context)
    assert received.model == "iPhone 8"
    assert received.condition == ItemCondition.USED.value
    assert received.provider == TRADE_IN_PROVIDER
    assert received.cost_price == Decimal("150")
    assert received.sale_price == Decimal("220")


def test_trade_in_covering_the_total_books_no_cash(context, stock_item):
    item = stock_item(sale_price="200")
    trade_in = sales.TradeIn(model="iPhone X", taken_value=Decimal("200"), resale_value=Decimal("260"))

    _cash_sale(context, item.item_id, trade_in=trade_in)

    assert cash.list_cash_transactions(context) == []


def test_trade_in_above_total_rejected(context, stock_item):
    item = stock_item(sale_price="100")
    trade_in = sales.TradeIn(model="iPhone X", taken_value=Decimal("150"), resale_value=Decimal("200"))

    with pytest.raises(core_logic.BusinessRuleViolation):
        _cash_sale(context, item.item_id, trade_in=trade_in)
    assert sales.list_sales(context) == []


def test_credit_sale_charges_client_account(context, stock_item, client):
    item = stock_item(sale_price="600")

    sale = _credit_sale(context, client.client_id, item.item_id)

    assert sale.status == SaleStatus.PENDING.value
    assert sale.client == client.name
    account = accounts.get_client_account(context, client.client_id)
    assert account.balance == Decimal("600")
    assert [row.sale_id for row in account.transactions] == [sale.sale_id]
    assert cash.list_cash_transactions(context) == []


def test_credit_sale_requires_registered_client(context, stock_item):
    item = stock_item()
    with pytest.raises(core_logic.BusinessRuleViolation):
        sales.register_sale(
            context,
            sales.NewSaleCommand(item_ids=[item.item_id], payment_type=PaymentType.CREDIT, client_name="Ana"),
        )
    with pytest.raises(core_logic.MissingReferenceError):
        _credit_sale(context, "client_missing", item.item_id)
    assert catalog.get_inventory_item(context, item.item_id).status == InventoryStatus.AVAILABLE.value


def test_sold_item_cannot_be_sold_again(context, stock_item):
    item = stock_item()
    _cash_sale(context, item.item_id)

    with pytest.raises(core_logic.BusinessRuleViolation):
        _cash_sale(context, item.item_id)
    assert len(sales.list_sales(context)) == 1


def test_sale_needs_items(context):
    with pytest.raises(core_logic.BusinessRuleViolation):
        _cash_sale(context)


def test_full_payment_credits_pending_sale(context, stock_item, client):
    sales.bind_sale_status_updates(context)
    sale = _credit_sale(context, client.client_id, stock_item(sale_price="100").item_id)

    accounts.record_client_payment(
        context, accounts.ClientPaymentCommand(account_id=client.client_id, amount=Decimal("60"))
    )
    assert sales.get_sale(context, sale.sale_id).status == SaleStatus.PENDING.value

    accounts.record_client_payment(
        context, accounts.ClientPaymentCommand(account_id=client.client_id, amount=Decimal("40"))
    )
    assert sales.get_sale(context, sale.sale_id).status == SaleStatus.CREDITED.value


def test_notification_for_deleted_sale_is_dropped(context, stock_item, client):
    sales.bind_sale_status_updates(context)
    sale = _credit_sale(context, client.client_id, stock_item(sale_price="100").item_id)
    sales.delete_sale(context, sale.sale_id)

    payment = accounts.record_client_payment(
        context, accounts.ClientPaymentCommand(account_id=client.client_id, amount=Decimal("100"))
    )

    assert payment is not None
    assert sales.list_sales(context) == []


def test_update_sale_status(context, stock_item):
    sale = _cash_sale(context, stock_item().item_id)

    updated = sales.update_sale_status(context, sale.sale_id, SaleStatus.DELIVERED)

    assert updated.status == SaleStatus.DELIVERED.value
    with pytest.raises(core_logic.MissingReferenceError):
        sales.update_sale_status(context, "sale_missing", SaleStatus.CREDITED)


def test_delete_sale_is_idempotent(context, stock_item):
    sale = _cash_sale(context, stock_item().item_id)

    assert sales.delete_sale(context, sale.sale_id) is True
    assert sales.delete_sale(context, sale.sale_id) is False
    assert cash.calculate_cash_balance(context) == Decimal("600")


def test_list_sales_newest_first_with_filters(context, stock_item, client):
    march = _cash_sale(context, stock_item().item_id, on=date(2026, 3, 1), client_name="Luis")
    april = _cash_sale(context, stock_item().item_id, on=date(2026, 4, 1), client_name="Marta")
    pending = _credit_sale(context, client.client_id, stock_item().item_id, on=date(2026, 5, 1))

    ordered = [sale.sale_id for sale in sales.list_sales(context, date_to=date(2026, 4, 30))]
    assert ordered == [april.sale_id, march.sale_id]

    assert [s.sale_id for s in sales.list_sales(context, status=SaleStatus.PENDING)] == [pending.sale_id]
    assert [s.sale_id for s in sales.list_sales(context, client_search="mar")] == [april.sale_id]
    assert [
        s.sale_id for s in sales.list_sales(context, date_from=date(2026, 3, 1), date_to=date(2026, 3, 31))
    ] == [march.sale_id]


def test_sales_summary(context, stock_item):
    _cash_sale(context, stock_item(cost_price="400", sale_price="600").item_id, on=date(2026, 3, 2))
    _cash_sale(context, stock_item(cost_price="100", sale_price="150").item_id, on=date(2026, 3, 3))
    _cash_sale(context, stock_item(cost_price="50", sale_price="90").item_id, on=date(2026, 5, 1))

    summary = sales.calculate_sales_summary(context, date(2026, 3, 1), date(2026, 3, 31))

    assert summary == {
        "count": 2,
        "total": Decimal("750"),
        "total_cost": Decimal("500"),
        "gross_profit": Decimal("250"),
    }


def _raise_persistence_error(*_args, **_kwargs):
    raise core_logic.PersistenceError("row store unavailable")


def test_failed_credit_charge_rolls_back_sale(context, stock_item, client, monkeypatch):
    item = stock_item()
    monkeypatch.setattr(sales, "record_client_sale", _raise_persistence_error)

    with pytest.raises(core_logic.PersistenceError):
        _credit_sale(context, client.client_id, item.item_id)

    assert sales.list_sales(context) == []
    assert catalog.get_inventory_item(context, item.item_id).status == InventoryStatus.AVAILABLE.value
    assert accounts.list_client_accounts(context, include_settled=True) == []


def test_failed_trade_in_intake_rolls_back_cash_income(context, stock_item, monkeypatch):
    first = stock_item("iPhone 13")
    second = stock_item("iPhone 12")
    trade_in = sales.TradeIn(model="iPhone 8", taken_value=Decimal("100"), resale_value=Decimal("180"))
    monkeypatch.setattr(sales, "add_inventory_item", _raise_persistence_error)

    with pytest.raises(core_logic.PersistenceError):
        _cash_sale(context, first.item_id, second.item_id, trade_in=trade_in)

    assert sales.list_sales(context) == []
    assert cash.list_cash_transactions(context) == []
    assert [item.item_id for item in catalog.list_inventory(context)] == [first.item_id, second.item_id]
