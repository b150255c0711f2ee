"""Enumerations shared across Shop Ledger modules.

Every closed vocabulary stored in the workbook lives here so that the data
access layer, the business logic modules and the CLI agree on the exact text
written to each cell. Values that end up in the store keep the spelling the
shop already uses (``"Acreditado"``, ``"Cobranzas"``...), while member names
stay in English.
"""

from __future__ import annotations

from enum import Enum


# Central schema version expected by all layers when validating workbooks.
EXPECTED_SCHEMA_VERSION = "1.0.0"

# Provider recorded on inventory units that entered the shop as a trade-in.
TRADE_IN_PROVIDER = "Plan Canje"

DEFAULT_PRODUCT_TYPE = "Celular"

# Placeholder for descriptive inventory fields a purchase order leaves blank.
NOT_AVAILABLE = "N/A"


class SheetName(str, Enum):
    """Enumerate the workbook sheets (one per table) managed by the DAL."""

    SALES = "sales"
    INVENTORY = "inventory"
    CLIENTS = "clients"
    PROVIDERS = "providers"
    ACCOUNT_TRANSACTIONS = "account_transactions"
    CASH_TRANSACTIONS = "cash_transactions"
    PENDING_ORDERS = "pending_orders"
    PRODUCT_CATEGORIES = "product_categories"
    PRODUCT_ATTRIBUTES = "product_attributes"


class AccountType(str, Enum):
    """Which side of the books an account ledger belongs to."""

    CLIENT = "client"
    PROVIDER = "provider"


class AccountTransactionType(str, Enum):
    """Kinds of signed entries recorded on client and provider accounts."""

    SALE = "sale"
    PAYMENT = "payment"
    PURCHASE = "purchase"
    PAYMENT_TO_PROVIDER = "payment_to_provider"
    MANUAL_DEBT = "manual_debt"


class CashTransactionType(str, Enum):
    """Direction of a cash movement."""

    INCOME = "income"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    CARD = "card"
    CHECK = "check"
    OTHER = "other"


class CashCategory(str, Enum):
    """Primary classification of cash movements."""

    COLLECTIONS = "Cobranzas"
    CAPITAL = "Capital"
    ADJUSTMENT = "Ajuste"
    RENT = "Alquiler"
    FOOD = "Comida"
    TRANSPORT = "Transporte"
    SERVICES = "Servicios"
    TAXES = "Impuestos"
    SALARIES = "Salarios"
    OWNER_WITHDRAWAL = "Retiro del dueño"
    STOCK_PAYMENT = "Pago stock"
    OTHER = "Otros"


class ExpenseType(str, Enum):
    """Secondary tag on expenses, orthogonal to :class:`CashCategory`."""

    OPERATIONAL = "operational"
    WITHDRAWAL = "withdrawal"
    STOCK_PAYMENT = "stock_payment"
    OTHER = "other"


class RelatedTo(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    EXPENSE = "expense"
    OTHER = "other"


class SaleStatus(str, Enum):
    """Lifecycle states of a sale."""

    CREDITED = "Acreditado"
    PENDING = "Pendiente"
    DELIVERED = "Entregado"


class PaymentType(str, Enum):
    """How the customer settles a sale at the counter."""

    CASH = "cash"
    CREDIT = "credit"


class InventoryStatus(str, Enum):
    AVAILABLE = "Disponible"
    SOLD = "Vendido"
    RESERVED = "Reservado"


class ItemCondition(str, Enum):
    NEW = "Nuevo"
    USED = "Usado"
    REFURBISHED = "Refurbished"


class OrderStatus(str, Enum):
    PENDING = "pending"
    RECEIVED = "received"


class AttributeKind(str, Enum):
    """Descriptive unit fields whose allowed values are kept as ordered lists."""

    COLOR = "color"
    STORAGE = "storage"
    CONDITION = "condition"


__all__ = [
    "EXPECTED_SCHEMA_VERSION",
    "TRADE_IN_PROVIDER",
    "DEFAULT_PRODUCT_TYPE",
    "NOT_AVAILABLE",
    "SheetName",
    "AccountType",
    "AccountTransactionType",
    "CashTransactionType",
    "PaymentMethod",
    "CashCategory",
    "ExpenseType",
    "RelatedTo",
    "SaleStatus",
    "PaymentType",
    "InventoryStatus",
    "ItemCondition",
    "OrderStatus",
    "AttributeKind",
]
