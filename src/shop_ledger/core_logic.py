"""Shared business logic infrastructure for Shop Ledger.

Every domain module (accounts, cash, catalog, sales, orders) works through the
:class:`RuntimeContext` defined here: it carries the parsed settings, the live
workbook acting as row store, per-table read caches and the sale status
channel. Helpers in this module handle id generation, validation, cache
upkeep and the single failure convention shared by all write paths.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from openpyxl.workbook import Workbook

from . import data_manager, date_helpers, log
from .constants import EXPECTED_SCHEMA_VERSION, SaleStatus, SheetName


class BusinessRuleViolation(Exception):
    """Raised when a requested operation violates a domain constraint."""


class MissingReferenceError(BusinessRuleViolation):
    """Raised when a referenced sale, item, client, provider, account or order is unknown."""


class PersistenceError(RuntimeError):
    """Raised when the row store rejects a write."""


SaleStatusCallback = Callable[[str, SaleStatus], None]


class SaleStatusChannel:
    """Single-subscriber channel carrying sale status changes.

    The account ledger publishes here when a client settles their debt and the
    sale list subscribes to apply the new status, so neither module imports
    the other. Subscribing replaces the previous subscriber. Publishing is
    synchronous; with nobody subscribed the notification is dropped.
    """

    def __init__(self) -> None:
        self._subscriber: Optional[SaleStatusCallback] = None

    @property
    def has_subscriber(self) -> bool:
        return self._subscriber is not None

    def subscribe(self, callback: SaleStatusCallback) -> None:
        if self._subscriber is not None:
            log.info("Replacing sale status subscriber")
        self._subscriber = callback

    def publish(self, sale_id: str, status: SaleStatus) -> bool:
        """Deliver ``(sale_id, status)`` to the subscriber.

        Returns:
            bool: ``True`` when a subscriber received the notification.
        """
        if self._subscriber is None:
            log.debug("No sale status subscriber; dropping %s -> %s", sale_id, status.value)
            return False
        self._subscriber(sale_id, status)
        return True


@dataclass(frozen=True)
class RuntimeContext:
    """Container for configuration, workbook and collaborators used by the BLL."""

    settings: data_manager.ConfigSettings
    workbook: Workbook
    sale_status_channel: SaleStatusChannel = field(default_factory=SaleStatusChannel, repr=False, compare=False)
    _cache: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False, compare=False)


# Attribute holding the primary key on each table's row dataclass.
_ID_ATTRIBUTES: Dict[SheetName, str] = {
    SheetName.SALES: "sale_id",
    SheetName.INVENTORY: "item_id",
    SheetName.CLIENTS: "client_id",
    SheetName.PROVIDERS: "provider_id",
    SheetName.ACCOUNT_TRANSACTIONS: "transaction_id",
    SheetName.CASH_TRANSACTIONS: "transaction_id",
    SheetName.PENDING_ORDERS: "order_id",
    SheetName.PRODUCT_CATEGORIES: "category_id",
    SheetName.PRODUCT_ATTRIBUTES: "attribute_id",
}


def resolve_timestamp(candidate: Optional[datetime]) -> datetime:
    """Return ``candidate`` or the current UTC datetime when it is ``None``."""

    return candidate if candidate is not None else datetime.now(UTC)


def resolve_date(candidate: Optional[date]) -> date:
    """Return ``candidate`` or today's local calendar day when it is ``None``."""

    return candidate if candidate is not None else date_helpers.today()


def _get_cache_bucket(context: RuntimeContext, name: str) -> Dict[str, Any]:
    """Return a mutable cache bucket dedicated to the supplied name.

    Buckets are simple dictionaries keyed by table name that store the typed
    rows read from the workbook, so repeated queries avoid rescanning sheets.
    """

    bucket = context._cache.get(name)
    if bucket is None:
        log.debug("Initializing cache bucket '%s'", name)
        bucket = {}
        context._cache[name] = bucket
    return bucket


def invalidate_cache(context: RuntimeContext, *tables: SheetName) -> None:
    """Evict the cache buckets of ``tables`` after mutating workbook state.

    Missing buckets are ignored so callers can request targeted invalidation
    without checking first.
    """

    if not tables:
        return

    log.debug("Invalidating cache buckets: %s", ", ".join(table.value for table in tables))

    for table in tables:
        context._cache.pop(table.value, None)


def ensure_table_cache(context: RuntimeContext, table: SheetName) -> Dict[str, Any]:
    """Populate the cache bucket of ``table`` on demand.

    Returns:
        dict[str, Any]: Bucket containing ``all`` records in sheet order and a
            ``by_id`` lookup dictionary keyed by each row's primary key.
    """

    bucket = _get_cache_bucket(context, table.value)
    if "all" not in bucket:
        records = list(data_manager.iter_records(context.workbook, table))
        id_attribute = _ID_ATTRIBUTES[table]
        bucket["all"] = records
        bucket["by_id"] = {getattr(record, id_attribute): record for record in records}
        log.debug("Populated %s cache with %d entries", table.value, len(records))
    return bucket


def list_records(context: RuntimeContext, table: SheetName) -> List[Any]:
    """Return a shallow copy of the cached rows of ``table`` in sheet order."""

    return list(ensure_table_cache(context, table)["all"])


def find_record(context: RuntimeContext, table: SheetName, record_id: str) -> Optional[Any]:
    return ensure_table_cache(context, table)["by_id"].get(record_id)


def get_record(context: RuntimeContext, table: SheetName, record_id: str) -> Any:
    """Resolve a row by primary key.

    Raises:
        MissingReferenceError: If ``record_id`` is absent from ``table``.
    """

    record = find_record(context, table, record_id)
    if record is None:
        log.warning("Lookup failed for id '%s' in %s", record_id, table.value)
        raise MissingReferenceError(f"Unknown {table.value} id: {record_id}")
    return record


@contextmanager
def store_write(context: RuntimeContext, action: str, *tables: SheetName) -> Iterator[None]:
    """Run a row store write and refresh the caches of ``tables`` afterwards.

    Any exception raised inside the block is logged and re-raised as
    :class:`PersistenceError`; caches are only invalidated when the block
    completes, so readers never observe a half-applied write.

    Args:
        context (RuntimeContext): Context whose workbook is written.
        action (str): Short human description used in log and error messages.
        *tables (SheetName): Tables touched by the write.
    """

    try:
        yield
    except Exception as exc:
        log.error("Row store rejected %s: %s", action, exc)
        raise PersistenceError(f"Unable to {action}: {exc}") from exc
    invalidate_cache(context, *tables)


def load_runtime_context(config_path: Optional[Path] = None) -> RuntimeContext:
    """Load configuration settings and a live workbook for the BLL.

    Args:
        config_path (Path | None): Optional override path for the configuration
            file. When omitted the data layer performs its upward search from
            the current working directory.

    Returns:
        RuntimeContext: Context with no sale status subscriber yet.

    Raises:
        FileNotFoundError: If the configuration file or workbook cannot be
            located.
        KeyError: When mandatory configuration options or tables are missing.
    """
    located_config = data_manager.find_config_file(config_path)
    resolved_config = Path(located_config).expanduser().resolve()
    parser = data_manager.read_config(resolved_config)
    settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
    workbook = data_manager.open_workbook(settings.data_file)
    log.info("Loaded runtime context for workbook '%s'", settings.data_file)
    return RuntimeContext(settings=settings, workbook=workbook)


def ensure_schema_version(context: RuntimeContext) -> None:
    """Validate workbook compatibility before mutating state.

    Raises:
        RuntimeError: If the schema version declared in the configuration does
            not match ``EXPECTED_SCHEMA_VERSION``.
    """
    if context.settings.schema_version != EXPECTED_SCHEMA_VERSION:
        log.error(
            "Workbook schema mismatch: expected %s, found %s",
            EXPECTED_SCHEMA_VERSION,
            context.settings.schema_version,
        )
        raise RuntimeError(
            "Workbook schema mismatch: expected %s, found %s"
            % (EXPECTED_SCHEMA_VERSION, context.settings.schema_version)
        )

    log.debug("Schema version '%s' validated", context.settings.schema_version)


def generate_id(prefix: str, *, when: Optional[datetime] = None) -> str:
    """Generate a row identifier from a UTC timestamp and a random suffix.

    Args:
        prefix (str): Table designator such as ``"sale"`` or ``"inv"``.
        when (datetime | None): Timestamp embedded in the identifier. Defaults
            to the current UTC time.

    Returns:
        str: Identifier formed as ``{prefix}_{YYYYMMDDHHMMSSffffff}_{suffix}``
            where ``suffix`` is nine random hex characters, so ids minted in
            the same microsecond still differ.
    """
    when = when or resolve_timestamp(None)
    return f"{prefix}_{when.strftime('%Y%m%d%H%M%S%f')}_{uuid.uuid4().hex[:9]}"


def require_positive_quantity(quantity: int) -> None:
    """Validate that a unit count is strictly positive.

    Raises:
        ValueError: If ``quantity`` is zero or negative.
    """
    if quantity <= 0:
        log.error("Quantity validation failed: %s", quantity)
        raise ValueError("Quantity must be greater than zero")


def require_positive_money(amount: Decimal) -> None:
    """Validate that a monetary value is strictly positive.

    Ledger commands always take magnitudes; the sign is applied by the
    operation (payments are stored negated).

    Raises:
        ValueError: If ``amount`` is zero or negative.
    """
    if amount <= Decimal("0"):
        log.error("Monetary value validation failed: %s", amount)
        raise ValueError("Amount must be greater than zero")


def require_nonnegative_money(amount: Decimal) -> None:
    """Validate that a monetary value is nonnegative.

    Raises:
        ValueError: If ``amount`` is less than zero.
    """
    if amount < Decimal("0"):
        log.error("Monetary value validation failed: %s", amount)
        raise ValueError("Amount must be zero or positive")


def persist_context(context: RuntimeContext) -> None:
    """Persist any in-memory workbook changes to the configured data file."""
    data_manager.save_workbook(
        context.workbook,
        destination=context.settings.data_file,
    )
    log.info("Persisted workbook '%s'", context.settings.data_file)


def refresh_context(context: RuntimeContext) -> RuntimeContext:
    """Reload the workbook to discard unsaved modifications.

    Returns:
        RuntimeContext: Fresh context containing a newly opened workbook, an
            empty cache and a sale status channel without subscriber. Callers
            that rely on automatic sale crediting must bind the sale list
            again (see :func:`shop_ledger.sales.bind_sale_status_updates`).

    Raises:
        FileNotFoundError: If the backing workbook cannot be reloaded.
    """
    workbook = data_manager.refresh_workbook(context.settings.data_file)
    log.info("Reloaded workbook '%s'", context.settings.data_file)
    return RuntimeContext(settings=context.settings, workbook=workbook)
