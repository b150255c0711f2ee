"""Inventory, client and provider collections, plus the product catalog setup.

These are plain CRUD collections over their tables. Inventory units are
individual serialized devices (one row per phone), so quantity never appears
here; stock is the count of ``Disponible`` rows.

Product categories decide which descriptive fields a unit carries, and the
attribute lists hold the ordered color, storage and condition choices offered
when a unit is entered.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from . import data_manager, date_helpers, log
from .constants import NOT_AVAILABLE, AttributeKind, InventoryStatus, ItemCondition, SheetName
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
    resolve_timestamp,
    store_write,
)


@dataclass(frozen=True)
class NewInventoryItem:
    """User intent for adding one serialized unit to stock.

    ``product_type`` falls back to the configured default when omitted.
    """

    model: str
    cost_price: Decimal
    sale_price: Decimal
    storage: str = ""
    color: str = ""
    battery: str = ""
    imei: str = ""
    condition: ItemCondition = ItemCondition.NEW
    provider: str = ""
    product_type: Optional[str] = None
    status: InventoryStatus = InventoryStatus.AVAILABLE


def _require_name(value: str, label: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        log.error("%s validation failed: blank name", label)
        raise ValueError(f"{label} name must not be blank")
    return cleaned


def _matches(term: str, *values: Optional[str]) -> bool:
    return any(term in value.lower() for value in values if value)


# Inventory ---------------------------------------------------------------


def add_inventory_item(context: RuntimeContext, item: NewInventoryItem) -> data_manager.InventoryRow:
    """Validate and append one inventory unit.

    The product type must name a registered category once any exists.
    Fields the category switches off are stored as ``N/A``; a category
    without model falls back to its own name when the model is blank.

    Raises:
        ValueError: If the model is blank or a price is negative.
        MissingReferenceError: If the product type is not a registered
            category.
        PersistenceError: If the row store rejects the write.
    """
    product_type = item.product_type or context.settings.default_product_type
    category = resolve_product_category(context, product_type)
    shown = category_fields(category)
    model = item.model
    if not shown.model and not model.strip():
        model = category.name
    model = _require_name(model, "Model")
    require_nonnegative_money(item.cost_price)
    require_nonnegative_money(item.sale_price)

    row = data_manager.InventoryRow(
        item_id=generate_id("inv"),
        model=model,
        storage=shown_or_placeholder(shown.storage, item.storage),
        color=shown_or_placeholder(shown.color, item.color),
        battery=shown_or_placeholder(shown.battery, item.battery),
        imei=shown_or_placeholder(shown.imei, item.imei),
        cost_price=item.cost_price,
        sale_price=item.sale_price,
        condition=shown_or_placeholder(shown.condition, item.condition.value),
        status=item.status.value,
        provider=item.provider,
        product_type=category.name if category is not None else product_type,
        created_at=resolve_timestamp(None).isoformat(),
    )
    with store_write(context, "add inventory item", SheetName.INVENTORY):
        data_manager.append_record(context.workbook, row)
    log.info("Added inventory item '%s' (%s, cost=%s)", row.item_id, row.model, row.cost_price)
    return row


def get_inventory_item(context: RuntimeContext, item_id: str) -> data_manager.InventoryRow:
    """Resolve an inventory unit by id.

    Raises:
        MissingReferenceError: If ``item_id`` is unknown.
    """
    return get_record(context, SheetName.INVENTORY, item_id)


def list_inventory(context: RuntimeContext, *, include_unavailable: bool = False) -> List[data_manager.InventoryRow]:
    """Return inventory units, by default only those still ``Disponible``."""
    rows = list_records(context, SheetName.INVENTORY)
    if include_unavailable:
        return rows
    return [row for row in rows if row.status == InventoryStatus.AVAILABLE.value]


def update_inventory_item(
    context: RuntimeContext,
    item_id: str,
    field_values: Mapping[str, Any],
) -> data_manager.InventoryRow:
    """Rewrite selected columns of an inventory unit.

    Enum values are stored by their text. Prices are validated like on
    insertion, and a new product type must be a registered category.

    Args:
        context (RuntimeContext): Runtime context providing workbook access.
        item_id (str): Unit to update.
        field_values (Mapping[str, Any]): Column names mapped to new values.

    Returns:
        data_manager.InventoryRow: The unit as stored after the update.

    Raises:
        MissingReferenceError: If ``item_id`` is unknown or the new product
            type is not a registered category.
        BusinessRuleViolation: If a column is unknown or is the id column.
        ValueError: If a price is negative.
    """
    get_inventory_item(context, item_id)
    columns = data_manager.TABLE_COLUMNS[SheetName.INVENTORY]
    invalid = [name for name in field_values if name not in columns or name == data_manager.ID_COLUMN]
    if invalid:
        log.warning("Rejected inventory update on '%s': invalid fields %s", item_id, ", ".join(invalid))
        raise BusinessRuleViolation(f"Cannot update inventory fields: {', '.join(invalid)}")
    if "product_type" in field_values:
        resolve_product_category(context, str(field_values["product_type"]))

    stored: dict[str, Any] = {}
    for name, value in field_values.items():
        if name in ("cost_price", "sale_price"):
            value = Decimal(str(value))
            require_nonnegative_money(value)
        elif isinstance(value, Enum):
            value = value.value
        stored[name] = value

    with store_write(context, "update inventory item", SheetName.INVENTORY):
        data_manager.update_record(context.workbook, SheetName.INVENTORY, item_id, field_values=stored)
    log.info("Updated inventory item '%s': %s", item_id, ", ".join(sorted(stored)))
    return get_inventory_item(context, item_id)


def remove_inventory_item(context: RuntimeContext, item_id: str) -> bool:
    """Delete an inventory unit; returns ``False`` when the id is unknown."""
    if find_record(context, SheetName.INVENTORY, item_id) is None:
        log.info("Inventory item '%s' not found; nothing to remove", item_id)
        return False
    with store_write(context, "remove inventory item", SheetName.INVENTORY):
        data_manager.delete_record(context.workbook, SheetName.INVENTORY, item_id)
    log.info("Removed inventory item '%s'", item_id)
    return True


def mark_items_sold(context: RuntimeContext, item_ids: Iterable[str]) -> List[data_manager.InventoryRow]:
    """Flip the given units to ``Vendido``.

    Every unit is checked before anything is written, so either all units are
    marked or none is.

    Raises:
        MissingReferenceError: If a unit id is unknown.
        BusinessRuleViolation: If a unit is not ``Disponible`` or listed twice.
    """
    ids = list(item_ids)
    if len(set(ids)) != len(ids):
        raise BusinessRuleViolation("The same inventory item was listed more than once")
    for item_id in ids:
        item = get_inventory_item(context, item_id)
        if item.status != InventoryStatus.AVAILABLE.value:
            log.warning("Inventory item '%s' is not available (status=%s)", item_id, item.status)
            raise BusinessRuleViolation(f"Inventory item '{item_id}' is not available")

    with store_write(context, "mark items sold", SheetName.INVENTORY):
        for item_id in ids:
            data_manager.update_record(
                context.workbook,
                SheetName.INVENTORY,
                item_id,
                field_values={"status": InventoryStatus.SOLD.value},
            )
    log.info("Marked %d inventory item(s) as sold", len(ids))
    return [get_inventory_item(context, item_id) for item_id in ids]


# Clients -----------------------------------------------------------------


def add_client(
    context: RuntimeContext,
    name: str,
    phone: str = "",
    *,
    date_added: Optional[date] = None,
) -> data_manager.ClientRow:
    """Register a client and return the stored row.

    Raises:
        ValueError: If ``name`` is blank.
        PersistenceError: If the row store rejects the write.
    """
    row = data_manager.ClientRow(
        client_id=generate_id("client"),
        name=_require_name(name, "Client"),
        phone=phone.strip(),
        date_added=date_helpers.to_iso_date(resolve_date(date_added)),
    )
    with store_write(context, "add client", SheetName.CLIENTS):
        data_manager.append_record(context.workbook, row)
    log.info("Added client '%s' (%s)", row.client_id, row.name)
    return row


def get_client(context: RuntimeContext, client_id: str) -> data_manager.ClientRow:
    return get_record(context, SheetName.CLIENTS, client_id)


def list_clients(context: RuntimeContext) -> List[data_manager.ClientRow]:
    return list_records(context, SheetName.CLIENTS)


def search_clients(context: RuntimeContext, term: str) -> List[data_manager.ClientRow]:
    """Case-insensitive substring search over client name and phone.

    An empty term returns every client.
    """
    needle = term.strip().lower()
    clients = list_clients(context)
    if not needle:
        return clients
    return [client for client in clients if _matches(needle, client.name, client.phone)]


def remove_client(context: RuntimeContext, client_id: str) -> bool:
    """Delete a client; returns ``False`` when the id is unknown.

    Account transactions recorded for the client are kept.
    """
    if find_record(context, SheetName.CLIENTS, client_id) is None:
        log.info("Client '%s' not found; nothing to remove", client_id)
        return False
    with store_write(context, "remove client", SheetName.CLIENTS):
        data_manager.delete_record(context.workbook, SheetName.CLIENTS, client_id)
    log.info("Removed client '%s'", client_id)
    return True


# Providers ---------------------------------------------------------------


def add_provider(
    context: RuntimeContext,
    name: str,
    phone: str = "",
    email: Optional[str] = None,
    *,
    date_added: Optional[date] = None,
) -> data_manager.ProviderRow:
    """Register a provider and return the stored row.

    Raises:
        ValueError: If ``name`` is blank.
        PersistenceError: If the row store rejects the write.
    """
    row = data_manager.ProviderRow(
        provider_id=generate_id("provider"),
        name=_require_name(name, "Provider"),
        phone=phone.strip(),
        email=email.strip() if email and email.strip() else None,
        date_added=date_helpers.to_iso_date(resolve_date(date_added)),
    )
    with store_write(context, "add provider", SheetName.PROVIDERS):
        data_manager.append_record(context.workbook, row)
    log.info("Added provider '%s' (%s)", row.provider_id, row.name)
    return row


def get_provider(context: RuntimeContext, provider_id: str) -> data_manager.ProviderRow:
    return get_record(context, SheetName.PROVIDERS, provider_id)


def list_providers(context: RuntimeContext) -> List[data_manager.ProviderRow]:
    return list_records(context, SheetName.PROVIDERS)


def search_providers(context: RuntimeContext, term: str) -> List[data_manager.ProviderRow]:
    """Case-insensitive substring search over provider name, phone and email."""
    needle = term.strip().lower()
    providers = list_providers(context)
    if not needle:
        return providers
    return [
        provider
        for provider in providers
        if _matches(needle, provider.name, provider.phone, provider.email)
    ]


def remove_provider(context: RuntimeContext, provider_id: str) -> bool:
    if find_record(context, SheetName.PROVIDERS, provider_id) is None:
        log.info("Provider '%s' not found; nothing to remove", provider_id)
        return False
    with store_write(context, "remove provider", SheetName.PROVIDERS):
        data_manager.delete_record(context.workbook, SheetName.PROVIDERS, provider_id)
    log.info("Removed provider '%s'", provider_id)
    return True


# Product categories ------------------------------------------------------


@dataclass(frozen=True)
class CategoryFields:
    """Descriptive fields carried by units of a product category."""

    model: bool = True
    storage: bool = True
    color: bool = True
    condition: bool = True
    battery: bool = True
    imei: bool = True


def category_fields(category: Optional[data_manager.ProductCategoryRow]) -> CategoryFields:
    """Return the field toggles of ``category``; every field is on without one."""
    if category is None:
        return CategoryFields()
    return CategoryFields(
        model=category.show_model,
        storage=category.show_storage,
        color=category.show_color,
        condition=category.show_condition,
        battery=category.show_battery,
        imei=category.show_imei,
    )


def _flag_columns(fields: CategoryFields) -> Dict[str, bool]:
    return {
        "model": fields.model,
        "storage": fields.storage,
        "color": fields.color,
        "condition": fields.condition,
        "battery": fields.battery,
        "imei": fields.imei,
    }


def _require_unique_category(context: RuntimeContext, name: str, *, category_id: Optional[str] = None) -> None:
    existing = get_product_category_by_name(context, name)
    if existing is not None and existing.category_id != category_id:
        log.warning("Rejected duplicate product category '%s'", name)
        raise BusinessRuleViolation(f"Product category '{name}' already exists")


def add_product_category(
    context: RuntimeContext,
    name: str,
    fields: CategoryFields = CategoryFields(),
) -> data_manager.ProductCategoryRow:
    """Register a product category with its field toggles.

    Raises:
        ValueError: If ``name`` is blank.
        BusinessRuleViolation: If another category already uses the name
            (compared case-insensitively).
        PersistenceError: If the row store rejects the write.
    """
    cleaned = _require_name(name, "Category")
    _require_unique_category(context, cleaned)
    row = data_manager.ProductCategoryRow(
        category_id=generate_id("cat"),
        name=cleaned,
        show_model=fields.model,
        show_storage=fields.storage,
        show_color=fields.color,
        show_condition=fields.condition,
        show_battery=fields.battery,
        show_imei=fields.imei,
    )
    with store_write(context, "add product category", SheetName.PRODUCT_CATEGORIES):
        data_manager.append_record(context.workbook, row)
    log.info("Added product category '%s' (%s)", row.category_id, row.name)
    return row


def update_product_category(
    context: RuntimeContext,
    category_id: str,
    name: str,
    fields: CategoryFields,
) -> data_manager.ProductCategoryRow:
    """Rename a category and replace its field toggles.

    Units already in stock keep the values they were stored with.

    Raises:
        MissingReferenceError: If ``category_id`` is unknown.
        ValueError: If ``name`` is blank.
        BusinessRuleViolation: If another category already uses the name.
    """
    get_product_category(context, category_id)
    cleaned = _require_name(name, "Category")
    _require_unique_category(context, cleaned, category_id=category_id)
    with store_write(context, "update product category", SheetName.PRODUCT_CATEGORIES):
        data_manager.update_record(
            context.workbook,
            SheetName.PRODUCT_CATEGORIES,
            category_id,
            field_values={"name": cleaned, **_flag_columns(fields)},
        )
    log.info("Updated product category '%s' (%s)", category_id, cleaned)
    return get_product_category(context, category_id)


def remove_product_category(context: RuntimeContext, category_id: str) -> bool:
    """Delete a category; units of that type stay in stock unchanged."""
    if find_record(context, SheetName.PRODUCT_CATEGORIES, category_id) is None:
        log.info("Product category '%s' not found; nothing to remove", category_id)
        return False
    with store_write(context, "remove product category", SheetName.PRODUCT_CATEGORIES):
        data_manager.delete_record(context.workbook, SheetName.PRODUCT_CATEGORIES, category_id)
    log.info("Removed product category '%s'", category_id)
    return True


def get_product_category(context: RuntimeContext, category_id: str) -> data_manager.ProductCategoryRow:
    return get_record(context, SheetName.PRODUCT_CATEGORIES, category_id)


def get_product_category_by_name(context: RuntimeContext, name: str) -> Optional[data_manager.ProductCategoryRow]:
    needle = name.strip().lower()
    for category in list_records(context, SheetName.PRODUCT_CATEGORIES):
        if category.name.lower() == needle:
            return category
    return None


def list_product_categories(context: RuntimeContext) -> List[data_manager.ProductCategoryRow]:
    """Return categories sorted by name."""
    return sorted(list_records(context, SheetName.PRODUCT_CATEGORIES), key=lambda category: category.name.lower())


def resolve_product_category(context: RuntimeContext, name: str) -> Optional[data_manager.ProductCategoryRow]:
    """Look up the category a unit is filed under.

    While no category is registered every product type is accepted and
    ``None`` is returned, so a fresh workbook works without setup.

    Raises:
        MissingReferenceError: If categories exist and none is called
            ``name``.
    """
    if not list_records(context, SheetName.PRODUCT_CATEGORIES):
        return None
    category = get_product_category_by_name(context, name)
    if category is None:
        log.warning("Unknown product category '%s'", name)
        raise MissingReferenceError(f"Unknown product category: {name}")
    return category


def shown_or_placeholder(shown: bool, value: Optional[str]) -> str:
    """Return ``value`` for a field the category carries, ``N/A`` otherwise."""
    if not shown:
        return NOT_AVAILABLE
    return value or ""


# Product attributes ------------------------------------------------------


def list_attribute_values(context: RuntimeContext, kind: AttributeKind) -> List[data_manager.ProductAttributeRow]:
    """Return the values offered for ``kind`` in display order."""
    rows = [row for row in list_records(context, SheetName.PRODUCT_ATTRIBUTES) if row.kind == kind.value]
    return sorted(rows, key=lambda row: row.position)


def add_attribute_value(context: RuntimeContext, kind: AttributeKind, value: str) -> data_manager.ProductAttributeRow:
    """Append ``value`` at the end of the list for ``kind``.

    Raises:
        ValueError: If ``value`` is blank.
        BusinessRuleViolation: If the list already holds the value.
        PersistenceError: If the row store rejects the write.
    """
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("Attribute value must not be blank")
    existing = list_attribute_values(context, kind)
    if any(row.value.lower() == cleaned.lower() for row in existing):
        raise BusinessRuleViolation(f"{kind.value} value '{cleaned}' already exists")

    row = data_manager.ProductAttributeRow(
        attribute_id=generate_id(kind.value),
        kind=kind.value,
        value=cleaned,
        position=max((row.position for row in existing), default=0) + 1,
    )
    with store_write(context, "add attribute value", SheetName.PRODUCT_ATTRIBUTES):
        data_manager.append_record(context.workbook, row)
    log.info("Added %s value '%s' at position %d", kind.value, cleaned, row.position)
    return row


def remove_attribute_value(context: RuntimeContext, attribute_id: str) -> bool:
    if find_record(context, SheetName.PRODUCT_ATTRIBUTES, attribute_id) is None:
        log.info("Attribute value '%s' not found; nothing to remove", attribute_id)
        return False
    with store_write(context, "remove attribute value", SheetName.PRODUCT_ATTRIBUTES):
        data_manager.delete_record(context.workbook, SheetName.PRODUCT_ATTRIBUTES, attribute_id)
    log.info("Removed attribute value '%s'", attribute_id)
    return True


def reorder_attribute_values(
    context: RuntimeContext,
    kind: AttributeKind,
    ordered_ids: Sequence[str],
) -> List[data_manager.ProductAttributeRow]:
    """Renumber the values of ``kind`` so they follow ``ordered_ids``.

    Positions are rewritten as ``1..n``.

    Raises:
        BusinessRuleViolation: If ``ordered_ids`` is not exactly the ids of
            the current values of ``kind``.
    """
    ids = list(ordered_ids)
    current = {row.attribute_id for row in list_attribute_values(context, kind)}
    if len(ids) != len(current) or set(ids) != current:
        log.warning("Rejected reorder of %s values: ids do not match", kind.value)
        raise BusinessRuleViolation(f"Reorder must list every {kind.value} value exactly once")

    with store_write(context, "reorder attribute values", SheetName.PRODUCT_ATTRIBUTES):
        for position, attribute_id in enumerate(ids, start=1):
            data_manager.update_record(
                context.workbook,
                SheetName.PRODUCT_ATTRIBUTES,
                attribute_id,
                field_values={"position": position},
            )
    log.info("Reordered %d %s value(s)", len(ids), kind.value)
    return list_attribute_values(context, kind)


__all__ = [
    "NewInventoryItem",
    "add_inventory_item",
    "get_inventory_item",
    "list_inventory",
    "update_inventory_item",
    "remove_inventory_item",
    "mark_items_sold",
    "add_client",
    "get_client",
    "list_clients",
    "search_clients",
    "remove_client",
    "add_provider",
    "get_provider",
    "list_providers",
    "search_providers",
    "remove_provider",
    "CategoryFields",
    "category_fields",
    "add_product_category",
    "update_product_category",
    "remove_product_category",
    "get_product_category",
    "get_product_category_by_name",
    "list_product_categories",
    "resolve_product_category",
    "shown_or_placeholder",
    "list_attribute_values",
    "add_attribute_value",
    "remove_attribute_value",
    "reorder_attribute_values",
]
