"""Full-state export and all-or-nothing import."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from comanda.config import OPEN_ORDERS_KEY, ORDER_HISTORY_KEY, PRODUCTS_KEY
from comanda.errors import CorruptStateError, ValidationError
from comanda.models import order_from_record, product_from_record, to_money
from comanda.persistence import CollectionStore

logger = logging.getLogger(__name__)

# Document field -> store key.
DOCUMENT_FIELDS: dict[str, str] = {
    "openOrders": OPEN_ORDERS_KEY,
    "orderHistory": ORDER_HISTORY_KEY,
    "products": PRODUCTS_KEY,
}


def export_state(store: CollectionStore) -> dict[str, list[dict[str, Any]]]:
    """Snapshot the three collections into one document."""
    return {field: store.load(key) or [] for field, key in DOCUMENT_FIELDS.items()}


def dump_state(store: CollectionStore, path: str | Path) -> None:
    document = export_state(store)
    Path(path).write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(
        "exported %d open orders, %d history records, %d products to %s",
        len(document["openOrders"]),
        len(document["orderHistory"]),
        len(document["products"]),
        path,
    )


def _check_order(record: dict[str, Any], expect_open: bool, seen: set[str]) -> None:
    order = order_from_record(record)
    if order.id in seen:
        raise ValidationError(f"order id {order.id!r} appears more than once")
    seen.add(order.id)

    if expect_open and not order.is_open:
        raise ValidationError(f"open order {order.id!r} has status {order.status!r}")
    if not expect_open and order.is_open:
        raise ValidationError(f"history order {order.id!r} is still open")
    if order.is_open and order.closed_at is not None:
        raise ValidationError(f"open order {order.id!r} has closedAt")
    if not order.is_open and order.closed_at is None:
        raise ValidationError(f"{order.status} order {order.id!r} has no closedAt")

    # order_from_record recomputes totals; the stored ones must agree.
    for item_record, item in zip(record.get("items", []), order.items):
        if to_money(item_record["total"]) != item.total:
            raise ValidationError(f"order {order.id!r} row {item.id!r} total does not match quantity x unit price")
    if "total" in record and to_money(record["total"]) != order.total:
        raise ValidationError(
            f"order {order.id!r} total {record['total']!r} does not match items minus discount ({order.total})"
        )


def validate_document(document: Any) -> dict[str, list[dict[str, Any]]]:
    """Check shape and every record; raise ValidationError on the first problem.

    Order ids must be unique across both order arrays, product ids within
    theirs. Only open orders may lack ``closedAt``, and stored totals must
    agree with what the items and discount add up to.
    """
    if not isinstance(document, dict):
        raise ValidationError("import document must be a JSON object")
    for field in DOCUMENT_FIELDS:
        if not isinstance(document.get(field), list):
            raise ValidationError(f"import field {field!r} must be an array")

    seen_orders: set[str] = set()
    for record in document["openOrders"]:
        _check_order(record, True, seen_orders)
    for record in document["orderHistory"]:
        _check_order(record, False, seen_orders)

    seen_products: set[str] = set()
    for record in document["products"]:
        product = product_from_record(record)
        if product.id in seen_products:
            raise ValidationError(f"product id {product.id!r} appears more than once")
        seen_products.add(product.id)
    return {field: list(document[field]) for field in DOCUMENT_FIELDS}

def import_state(store: CollectionStore, document: Any) -> None:
    """Replace all three collections with the document's, or change nothing."""
    valid = validate_document(document)
    store.save_many({key: valid[field] for field, key in DOCUMENT_FIELDS.items()})
    logger.info(
        "imported %d open orders, %d history records, %d products",
        len(valid["openOrders"]),
        len(valid["orderHistory"]),
        len(valid["products"]),
    )


def load_state(store: CollectionStore, path: str | Path) -> None:
    text = Path(path).read_text(encoding="utf-8")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptStateError(f"{path} is not valid JSON: {exc}") from exc
    import_state(store, document)
