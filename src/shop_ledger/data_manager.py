"""Data access layer for Shop Ledger.

This module provides low-level helpers that read from and write to the shop
workbook, the row store behind every collection. Business logic belongs
elsewhere.

The public API is designed around three responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. Workbook lifecycle: opening, validating, and persisting the Excel file.
3. Table operations: loading typed records and appending, updating or
   deleting individual rows keyed by their ``id`` column.
"""


from __future__ import annotations

import configparser
import json
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from openpyxl.workbook import Workbook
import openpyxl

from . import log
from .constants import DEFAULT_PRODUCT_TYPE, SheetName


CONFIG_FILE_NAME = "config.ini"
ID_COLUMN = "id"

# Column layout of every table. Row 1 of each sheet carries these headers.
TABLE_COLUMNS: Mapping[SheetName, Sequence[str]] = {
    SheetName.SALES: [
        "id", "status", "date", "time", "client", "salesperson", "trade_in",
        "order", "gross_profit", "total", "discount", "total_cost",
    ],
    SheetName.INVENTORY: [
        "id", "model", "storage", "color", "battery", "imei", "cost_price",
        "sale_price", "condition", "status", "provider", "product_type",
        "created_at",
    ],
    SheetName.CLIENTS: ["id", "name", "phone", "date_added"],
    SheetName.PROVIDERS: ["id", "name", "phone", "email", "date_added"],
    SheetName.ACCOUNT_TRANSACTIONS: [
        "id", "account_type", "account_id", "account_name", "type", "date",
        "description", "amount", "sale_id", "due_date",
    ],
    SheetName.CASH_TRANSACTIONS: [
        "id", "type", "date", "amount", "payment_method", "category",
        "description", "expense_type", "related_to", "related_id",
    ],
    SheetName.PENDING_ORDERS: [
        "id", "provider_id", "provider", "products", "total_cost",
        "order_date", "expected_date", "status", "received_date", "notes",
    ],
    SheetName.PRODUCT_CATEGORIES: [
        "id", "name", "model", "storage", "color", "condition", "battery", "imei",
    ],
    SheetName.PRODUCT_ATTRIBUTES: ["id", "kind", "value", "position"],
}


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    data_file: Path
    shop_name: str
    schema_version: str
    default_salesperson: str
    default_product_type: str = DEFAULT_PRODUCT_TYPE


@dataclass(frozen=True)
class SaleRow:
    """In-memory view of a row from the ``sales`` sheet."""

    sale_id: str
    status: str
    date_iso: str
    time: str
    client: str
    salesperson: str
    trade_in: Optional[str]
    order: str
    gross_profit: Decimal
    total: Decimal
    discount: Decimal
    total_cost: Decimal


@dataclass(frozen=True)
class InventoryRow:
    """In-memory view of a row from the ``inventory`` sheet."""

    item_id: str
    model: str
    storage: str
    color: str
    battery: str
    imei: str
    cost_price: Decimal
    sale_price: Decimal
    condition: str
    status: str
    provider: str
    product_type: str
    created_at: str


@dataclass(frozen=True)
class ClientRow:
    client_id: str
    name: str
    phone: str
    date_added: str


@dataclass(frozen=True)
class ProviderRow:
    provider_id: str
    name: str
    phone: str
    email: Optional[str]
    date_added: str


@dataclass(frozen=True)
class AccountTransactionRow:
    """In-memory view of a row from the ``account_transactions`` sheet.

    ``amount`` is signed: positive entries increase what the account holder
    owes (or what the shop owes a provider), negative entries reduce it.
    """

    transaction_id: str
    account_type: str
    account_id: str
    account_name: str
    transaction_type: str
    date_iso: str
    description: str
    amount: Decimal
    sale_id: Optional[str]
    due_date_iso: Optional[str]


@dataclass(frozen=True)
class CashTransactionRow:
    """In-memory view of a row from the ``cash_transactions`` sheet.

    ``amount`` is never negative; the direction lives in ``transaction_type``.
    """

    transaction_id: str
    transaction_type: str
    date_iso: str
    amount: Decimal
    payment_method: str
    category: str
    description: str
    expense_type: Optional[str]
    related_to: Optional[str]
    related_id: Optional[str]


@dataclass(frozen=True)
class OrderLine:
    """One product line of a purchase order, stored inside a JSON array."""

    model: str
    quantity: int
    unit_cost: Decimal
    sale_price: Decimal = Decimal("0")
    storage: Optional[str] = None
    color: Optional[str] = None
    battery: Optional[str] = None
    imei: Optional[str] = None
    condition: Optional[str] = None
    product_category: Optional[str] = None

    @property
    def total_cost(self) -> Decimal:
        return self.unit_cost * self.quantity


@dataclass(frozen=True)
class PendingOrderRow:
    """In-memory view of a row from the ``pending_orders`` sheet."""

    order_id: str
    provider_id: str
    provider_name: str
    lines: Tuple[OrderLine, ...]
    total_cost: Decimal
    order_date_iso: str
    expected_date_iso: Optional[str]
    status: str
    received_date_iso: Optional[str]
    notes: Optional[str] = None


@dataclass(frozen=True)
class ProductCategoryRow:
    """In-memory view of a row from the ``product_categories`` sheet.

    Each ``show_*`` flag tells whether units of the category carry that
    descriptive field; fields switched off are stored as ``N/A``.
    """

    category_id: str
    name: str
    show_model: bool = True
    show_storage: bool = True
    show_color: bool = True
    show_condition: bool = True
    show_battery: bool = True
    show_imei: bool = True


@dataclass(frozen=True)
class ProductAttributeRow:
    attribute_id: str
    kind: str
    value: str
    position: int


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file that controls how the data layer behaves.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification, which allows the caller to deliberately target a
    non-standard location. When no explicit path is given the function walks up
    from the current working directory toward the filesystem root looking for a
    file named ``CONFIG_FILE_NAME``. The first match that exists on disk is
    considered authoritative.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search. May be relative to the current working directory.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If the search exhausts all parent directories without
            finding ``CONFIG_FILE_NAME``.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(
        f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` and return a populated ``ConfigParser`` instance.

    Args:
        config_path (Path): Path to the configuration file, relative or
            absolute. ``~`` is expanded.

    Returns:
        configparser.ConfigParser: Parser containing the raw configuration.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist after expansion and
            resolution.
    """

    config_path = config_path.expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    Required options are ``System.DataFile``, ``System.ShopName``,
    ``System.SchemaVersion`` and ``Defaults.DefaultSalesperson``.
    ``Defaults.DefaultProductType`` is optional. Relative data file paths are
    anchored at ``base_path`` (or the working directory) and resolved.

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Directory used to anchor a relative
            ``DataFile`` entry.

    Returns:
        ConfigSettings: Immutable settings container.

    Raises:
        KeyError: If one of the required sections or options is missing.
    """

    try:
        data_file_raw = parser.get("System", "DataFile")
        shop_name = parser.get("System", "ShopName")
        schema_version = parser.get("System", "SchemaVersion")
        default_salesperson = parser.get("Defaults", "DefaultSalesperson")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    default_product_type = parser.get(
        "Defaults", "DefaultProductType", fallback=DEFAULT_PRODUCT_TYPE)

    data_file_path = Path(data_file_raw)
    if not data_file_path.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        data_file_path = (base_path / data_file_path).resolve()

    return ConfigSettings(
        data_file=data_file_path,
        shop_name=shop_name,
        schema_version=schema_version,
        default_salesperson=default_salesperson,
        default_product_type=default_product_type,
    )


def open_workbook(data_file: Path) -> Workbook:
    """Open the shop workbook and return a live ``openpyxl`` workbook.

    Args:
        data_file (Path): Filesystem path to the workbook.

    Returns:
        Workbook: ``openpyxl`` workbook instance backed by the provided file.

    Raises:
        FileNotFoundError: If ``data_file`` does not exist after expansion and
            resolution.
        KeyError: If one of the expected table sheets is missing.
    """

    data_file = Path(data_file).expanduser().resolve()
    if not data_file.exists():
        raise FileNotFoundError(f"Workbook not found: {data_file}")

    wb = openpyxl.load_workbook(data_file)
    missing = [sheet.value for sheet in TABLE_COLUMNS if sheet.value not in wb.sheetnames]
    if missing:
        log.error("Workbook %s is missing tables: %s", data_file, ", ".join(missing))
        raise KeyError(f"Workbook is missing tables: {', '.join(missing)}")
    return wb


def save_workbook(workbook: Workbook, destination: Path) -> None:
    """Persist the workbook to disk at an explicitly provided destination.

    Parent directories are created on demand.
    """

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)


def refresh_workbook(data_file: Path) -> Workbook:
    """Reload the workbook from disk, discarding any unsaved in-memory changes."""

    return open_workbook(data_file)


def iter_records(workbook: Workbook, sheet_name: SheetName) -> Iterable[Any]:
    """Iterate over the typed records stored on ``sheet_name``.

    The header row and fully empty rows are skipped. Each remaining row is
    converted by the deserializer registered for the table, so callers always
    receive the dataclass matching the sheet (``SaleRow`` for ``sales`` and
    so on).

    Args:
        workbook (Workbook): Workbook containing the table sheets.
        sheet_name (SheetName): Table to read.

    Yields:
        Any: One structured record per meaningful row, in sheet order.
    """

    deserialize = _DESERIALIZERS[sheet_name]
    sheet = workbook[sheet_name.value]
    for raw in sheet.iter_rows(min_row=2, values_only=True):
        # skip fully empty rows
        if any(cell is not None for cell in raw):
            yield deserialize(raw)


def append_record(workbook: Workbook, record: Any) -> None:
    """Append a typed record to the sheet that stores its type.

    Args:
        workbook (Workbook): Workbook whose table should be modified.
        record (Any): One of the row dataclasses defined in this module.

    Raises:
        TypeError: If ``record`` is not a known row type.
    """

    try:
        sheet_name, serialize = _SERIALIZERS[type(record)]
    except KeyError as exc:
        raise TypeError(f"Unsupported record type: {type(record).__name__}") from exc
    workbook[sheet_name.value].append(serialize(record))


def update_record(workbook: Workbook, sheet_name: SheetName, record_id: str, *, field_values: Mapping[str, Any]) -> None:
    """Update selected columns for an existing row.

    The row whose ``id`` equals ``record_id`` is located, each requested column
    is checked against the header row, and only those cells are rewritten.

    Args:
        workbook (Workbook): Workbook containing the table.
        sheet_name (SheetName): Table holding the row.
        record_id (str): Value of the ``id`` column of the target row.
        field_values (Mapping[str, Any]): Column names mapped to replacement
            values, already in their stored representation.

    Raises:
        KeyError: If the row or any referenced column cannot be found.
    """

    row_index = locate_row(workbook, sheet_name.value, ID_COLUMN, record_id)
    if row_index is None:
        raise KeyError(f"Row not found in {sheet_name.value}: {record_id}")

    sheet = workbook[sheet_name.value]
    header_map = _header_map(sheet)

    unknown = [name for name in field_values if name not in header_map]
    if unknown:
        raise KeyError(f"Unknown {sheet_name.value} field: {', '.join(unknown)}")
    for name, value in field_values.items():
        sheet.cell(row=row_index, column=header_map[name], value=value)


def delete_record(workbook: Workbook, sheet_name: SheetName, record_id: str) -> bool:
    """Delete the row whose ``id`` equals ``record_id``.

    Returns:
        bool: ``True`` when a row was removed, ``False`` when no row matched.
    """

    row_index = locate_row(workbook, sheet_name.value, ID_COLUMN, record_id)
    if row_index is None:
        return False
    workbook[sheet_name.value].delete_rows(row_index)
    return True


def locate_row(workbook: Workbook, sheet_name: str, key_column: str, key_value: str) -> Optional[int]:
    """Find a row by matching a key value within the specified worksheet.

    Args:
        workbook (Workbook): Workbook providing access to ``sheet_name``.
        sheet_name (str): Name of the worksheet to search.
        key_column (str): Header title identifying the key column.
        key_value (str): Value to match within the key column.

    Returns:
        int | None: 1-based Excel row index when a match is found, otherwise
            ``None``.

    Raises:
        KeyError: If ``key_column`` is not present in the worksheet header.
    """

    sheet = workbook[sheet_name]
    header_map = _header_map(sheet)
    if key_column not in header_map:
        raise KeyError(f"Unknown column: {key_column}")

    key_col_index = header_map[key_column]

    for row_idx, row in enumerate(sheet.iter_rows(min_row=2, values_only=True), start=2):
        cell_value = row[key_col_index - 1]
        if cell_value is not None and str(cell_value) == key_value:
            return row_idx

    return None


def _header_map(sheet) -> Dict[str, int]:
    return {cell.value: idx + 1 for idx, cell in enumerate(sheet[1])}


def serialize_sale(record: SaleRow) -> list[object]:
    return [
        record.sale_id,
        record.status,
        record.date_iso,
        record.time,
        record.client,
        record.salesperson,
        record.trade_in,
        record.order,
        record.gross_profit,
        record.total,
        record.discount,
        record.total_cost,
    ]


def serialize_inventory_item(record: InventoryRow) -> list[object]:
    return [
        record.item_id,
        record.model,
        record.storage,
        record.color,
        record.battery,
        record.imei,
        record.cost_price,
        record.sale_price,
        record.condition,
        record.status,
        record.provider,
        record.product_type,
        record.created_at,
    ]


def serialize_client(record: ClientRow) -> list[object]:
    return [record.client_id, record.name, record.phone, record.date_added]


def serialize_provider(record: ProviderRow) -> list[object]:
    return [record.provider_id, record.name, record.phone, record.email, record.date_added]


def serialize_account_transaction(record: AccountTransactionRow) -> list[object]:
    """Convert an account transaction into the sheet column order.

    Numeric fields stay :class:`~decimal.Decimal` so Excel keeps precision.
    """

    return [
        record.transaction_id,
        record.account_type,
        record.account_id,
        record.account_name,
        record.transaction_type,
        record.date_iso,
        record.description,
        record.amount,
        record.sale_id,
        record.due_date_iso,
    ]


def serialize_cash_transaction(record: CashTransactionRow) -> list[object]:
    return [
        record.transaction_id,
        record.transaction_type,
        record.date_iso,
        record.amount,
        record.payment_method,
        record.category,
        record.description,
        record.expense_type,
        record.related_to,
        record.related_id,
    ]


def serialize_order_lines(lines: Sequence[OrderLine]) -> str:
    """Encode order lines as the JSON array stored in ``products``.

    Decimals are written as strings to avoid binary float rounding.
    """

    payload = []
    for line in lines:
        payload.append(
            {
                "model": line.model,
                "quantity": line.quantity,
                "unit_cost": str(line.unit_cost),
                "total_cost": str(line.total_cost),
                "sale_price": str(line.sale_price),
                "storage": line.storage,
                "color": line.color,
                "battery": line.battery,
                "imei": line.imei,
                "condition": line.condition,
                "product_category": line.product_category,
            }
        )
    return json.dumps(payload, ensure_ascii=False)


def serialize_pending_order(record: PendingOrderRow) -> list[object]:
    return [
        record.order_id,
        record.provider_id,
        record.provider_name,
        serialize_order_lines(record.lines),
        record.total_cost,
        record.order_date_iso,
        record.expected_date_iso,
        record.status,
        record.received_date_iso,
        record.notes,
    ]


def serialize_product_category(record: ProductCategoryRow) -> list[object]:
    return [
        record.category_id,
        record.name,
        record.show_model,
        record.show_storage,
        record.show_color,
        record.show_condition,
        record.show_battery,
        record.show_imei,
    ]


def serialize_product_attribute(record: ProductAttributeRow) -> list[object]:
    return [record.attribute_id, record.kind, record.value, record.position]


def _to_decimal(raw: object, default: str = "0") -> Decimal:
    return Decimal(str(raw)) if raw is not None and raw != "" else Decimal(default)


def _to_text(raw: object) -> str:
    return str(raw) if raw is not None else ""


def _to_optional_text(raw: object) -> Optional[str]:
    if raw is None or raw == "":
        return None
    return str(raw)


def _pad(raw_row: Sequence[object], width: int) -> Sequence[object]:
    # Trailing empty cells are not always materialised by openpyxl.
    if len(raw_row) >= width:
        return raw_row[:width]
    return tuple(raw_row) + (None,) * (width - len(raw_row))


def deserialize_sale(raw_row: Sequence[object]) -> SaleRow:
    """Convert a raw ``sales`` row into a :class:`SaleRow`."""

    (
        sale_id, status, date_iso, time, client, salesperson, trade_in,
        order, gross_profit, total, discount, total_cost,
    ) = _pad(raw_row, len(TABLE_COLUMNS[SheetName.SALES]))
    return SaleRow(
        sale_id=_to_text(sale_id),
        status=_to_text(status),
        date_iso=_to_text(date_iso),
        time=_to_text(time),
        client=_to_text(client),
        salesperson=_to_text(salesperson),
        trade_in=_to_optional_text(trade_in),
        order=_to_text(order),
        gross_profit=_to_decimal(gross_profit),
        total=_to_decimal(total),
        discount=_to_decimal(discount),
        total_cost=_to_decimal(total_cost),
    )


def deserialize_inventory_item(raw_row: Sequence[object]) -> InventoryRow:
    """Convert a raw ``inventory`` row into an :class:`InventoryRow`.

    ``battery`` and ``imei`` are coerced to text because Excel turns digit-only
    values into numbers.
    """

    (
        item_id, model, storage, color, battery, imei, cost_price, sale_price,
        condition, status, provider, product_type, created_at,
    ) = _pad(raw_row, len(TABLE_COLUMNS[SheetName.INVENTORY]))
    return InventoryRow(
        item_id=_to_text(item_id),
        model=_to_text(model),
        storage=_to_text(storage),
        color=_to_text(color),
        battery=_to_text(battery),
        imei=_to_text(imei),
        cost_price=_to_decimal(cost_price),
        sale_price=_to_decimal(sale_price),
        condition=_to_text(condition),
        status=_to_text(status),
        provider=_to_text(provider),
        product_type=_to_text(product_type) or DEFAULT_PRODUCT_TYPE,
        created_at=_to_text(created_at),
    )


def deserialize_client(raw_row: Sequence[object]) -> ClientRow:
    client_id, name, phone, date_added = _pad(raw_row, len(TABLE_COLUMNS[SheetName.CLIENTS]))
    return ClientRow(
        client_id=_to_text(client_id),
        name=_to_text(name),
        phone=_to_text(phone),
        date_added=_to_text(date_added),
    )


def deserialize_provider(raw_row: Sequence[object]) -> ProviderRow:
    provider_id, name, phone, email, date_added = _pad(
        raw_row, len(TABLE_COLUMNS[SheetName.PROVIDERS]))
    return ProviderRow(
        provider_id=_to_text(provider_id),
        name=_to_text(name),
        phone=_to_text(phone),
        email=_to_optional_text(email),
        date_added=_to_text(date_added),
    )


def deserialize_account_transaction(raw_row: Sequence[object]) -> AccountTransactionRow:
    """Convert a raw ``account_transactions`` row into a typed record.

    Older rows written before ``account_id`` existed fall back to the account
    name so they still group under a single account.
    """

    (
        transaction_id, account_type, account_id, account_name, transaction_type,
        date_iso, description, amount, sale_id, due_date_iso,
    ) = _pad(raw_row, len(TABLE_COLUMNS[SheetName.ACCOUNT_TRANSACTIONS]))
    return AccountTransactionRow(
        transaction_id=_to_text(transaction_id),
        account_type=_to_text(account_type),
        account_id=_to_text(account_id) or _to_text(account_name),
        account_name=_to_text(account_name),
        transaction_type=_to_text(transaction_type),
        date_iso=_to_text(date_iso),
        description=_to_text(description),
        amount=_to_decimal(amount),
        sale_id=_to_optional_text(sale_id),
        due_date_iso=_to_optional_text(due_date_iso),
    )


def deserialize_cash_transaction(raw_row: Sequence[object]) -> CashTransactionRow:
    (
        transaction_id, transaction_type, date_iso, amount, payment_method,
        category, description, expense_type, related_to, related_id,
    ) = _pad(raw_row, len(TABLE_COLUMNS[SheetName.CASH_TRANSACTIONS]))
    return CashTransactionRow(
        transaction_id=_to_text(transaction_id),
        transaction_type=_to_text(transaction_type),
        date_iso=_to_text(date_iso),
        amount=_to_decimal(amount),
        payment_method=_to_text(payment_method),
        category=_to_text(category),
        description=_to_text(description),
        expense_type=_to_optional_text(expense_type),
        related_to=_to_optional_text(related_to),
        related_id=_to_optional_text(related_id),
    )


def deserialize_order_lines(raw: object) -> Tuple[OrderLine, ...]:
    """Decode the JSON ``products`` cell into :class:`OrderLine` records.

    Raises:
        ValueError: If the cell does not hold a JSON array.
    """

    if raw is None or raw == "":
        return ()
    payload = json.loads(str(raw))
    if not isinstance(payload, list):
        raise ValueError("Order products must be a JSON array")

    lines = []
    for entry in payload:
        battery = entry.get("battery")
        lines.append(
            OrderLine(
                model=str(entry.get("model") or ""),
                quantity=int(entry.get("quantity") or 0),
                unit_cost=_to_decimal(entry.get("unit_cost", entry.get("cost_price"))),
                sale_price=_to_decimal(entry.get("sale_price")),
                storage=_to_optional_text(entry.get("storage")),
                color=_to_optional_text(entry.get("color")),
                battery=_to_optional_text(battery),
                imei=_to_optional_text(entry.get("imei")),
                condition=_to_optional_text(entry.get("condition")),
                product_category=_to_optional_text(entry.get("product_category")),
            )
        )
    return tuple(lines)


def deserialize_pending_order(raw_row: Sequence[object]) -> PendingOrderRow:
    (
        order_id, provider_id, provider_name, products, total_cost, order_date_iso,
        expected_date_iso, status, received_date_iso, notes,
    ) = _pad(raw_row, len(TABLE_COLUMNS[SheetName.PENDING_ORDERS]))
    return PendingOrderRow(
        order_id=_to_text(order_id),
        provider_id=_to_text(provider_id) or _to_text(provider_name),
        provider_name=_to_text(provider_name),
        lines=deserialize_order_lines(products),
        total_cost=_to_decimal(total_cost),
        order_date_iso=_to_text(order_date_iso),
        expected_date_iso=_to_optional_text(expected_date_iso),
        status=_to_text(status),
        received_date_iso=_to_optional_text(received_date_iso),
        notes=_to_optional_text(notes),
    )


def _to_flag(raw: object) -> bool:
    # Blank cells mean the field is shown.
    if raw is None or raw == "":
        return True
    if isinstance(raw, str):
        return raw.strip().lower() not in ("false", "0", "no")
    return bool(raw)


def deserialize_product_category(raw_row: Sequence[object]) -> ProductCategoryRow:
    """Convert a raw ``product_categories`` row into a :class:`ProductCategoryRow`."""

    (
        category_id, name, model, storage, color, condition, battery, imei,
    ) = _pad(raw_row, len(TABLE_COLUMNS[SheetName.PRODUCT_CATEGORIES]))
    return ProductCategoryRow(
        category_id=_to_text(category_id),
        name=_to_text(name),
        show_model=_to_flag(model),
        show_storage=_to_flag(storage),
        show_color=_to_flag(color),
        show_condition=_to_flag(condition),
        show_battery=_to_flag(battery),
        show_imei=_to_flag(imei),
    )


def deserialize_product_attribute(raw_row: Sequence[object]) -> ProductAttributeRow:
    attribute_id, kind, value, position = _pad(raw_row, len(TABLE_COLUMNS[SheetName.PRODUCT_ATTRIBUTES]))
    return ProductAttributeRow(
        attribute_id=_to_text(attribute_id),
        kind=_to_text(kind),
        value=_to_text(value),
        position=int(position) if position not in (None, "") else 0,
    )


_DESERIALIZERS: Dict[SheetName, Callable[[Sequence[object]], Any]] = {
    SheetName.SALES: deserialize_sale,
    SheetName.INVENTORY: deserialize_inventory_item,
    SheetName.CLIENTS: deserialize_client,
    SheetName.PROVIDERS: deserialize_provider,
    SheetName.ACCOUNT_TRANSACTIONS: deserialize_account_transaction,
    SheetName.CASH_TRANSACTIONS: deserialize_cash_transaction,
    SheetName.PENDING_ORDERS: deserialize_pending_order,
    SheetName.PRODUCT_CATEGORIES: deserialize_product_category,
    SheetName.PRODUCT_ATTRIBUTES: deserialize_product_attribute,
}

_SERIALIZERS: Dict[type, Tuple[SheetName, Callable[[Any], list[object]]]] = {
    SaleRow: (SheetName.SALES, serialize_sale),
    InventoryRow: (SheetName.INVENTORY, serialize_inventory_item),
    ClientRow: (SheetName.CLIENTS, serialize_client),
    ProviderRow: (SheetName.PROVIDERS, serialize_provider),
    AccountTransactionRow: (SheetName.ACCOUNT_TRANSACTIONS, serialize_account_transaction),
    CashTransactionRow: (SheetName.CASH_TRANSACTIONS, serialize_cash_transaction),
    PendingOrderRow: (SheetName.PENDING_ORDERS, serialize_pending_order),
    ProductCategoryRow: (SheetName.PRODUCT_CATEGORIES, serialize_product_category),
    ProductAttributeRow: (SheetName.PRODUCT_ATTRIBUTES, serialize_product_attribute),
}


__all__ = [
    "CONFIG_FILE_NAME",
    "TABLE_COLUMNS",
    "ConfigSettings",
    "SaleRow",
    "InventoryRow",
    "ClientRow",
    "ProviderRow",
    "AccountTransactionRow",
    "CashTransactionRow",
    "OrderLine",
    "PendingOrderRow",
    "ProductCategoryRow",
    "ProductAttributeRow",
    "find_config_file",
    "read_config",
    "parse_settings",
    "open_workbook",
    "save_workbook",
    "refresh_workbook",
    "iter_records",
    "append_record",
    "update_record",
    "delete_record",
    "locate_row",
]