"""Order ledger: open tabs, their items and payments, and the closed-order history.

Every mutating operation works on a copy of the affected order, writes the
resulting collections to the store, and only then swaps the in-memory
snapshot. A rejected or failed operation therefore leaves both memory and
store untouched, and finalizing an order moves it from the open set to the
history in a single store write.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Literal
from uuid import uuid4

from comanda.catalog import ProductCatalog
from comanda.config import OPEN_ORDERS_KEY, ORDER_HISTORY_KEY
from comanda.errors import CorruptStateError, NotFoundError, ValidationError
from comanda.models import (
    PAYMENT_METHODS,
    ZERO,
    Order,
    OrderItem,
    PartialPayment,
    PaymentMethod,
    order_from_record,
    order_to_record,
    remaining_balance,
    to_money,
)
from comanda.persistence import CollectionStore
from comanda.reports import today_total

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _new_id() -> str:
    return str(uuid4())


def _invalid(message: str) -> ValidationError:
    logger.warning("rejected: %s", message)
    return ValidationError(message)


def _require_quantity(value: Any, label: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise _invalid(f"{label} must be an integer, got {value!r}")
    if value <= 0:
        raise _invalid(f"{label} must be > 0")
    return value


def _require_method(method: Any) -> PaymentMethod:
    if method not in PAYMENT_METHODS:
        raise _invalid(f"unknown payment method {method!r}")
    return method


class OrderLedger:
    """Owns the open-order and history collections and every mutation on them."""

    def __init__(
        self,
        store: CollectionStore,
        catalog: ProductCatalog | None = None,
        clock: Callable[[], datetime] = _local_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.clock = clock
        self.id_factory = id_factory
        self._open: list[Order] = []
        self._history: list[Order] = []

    # ---- loading ----------------------------------------------------------

    def load(self) -> None:
        """Read both collections from the store.

        Corrupt collections load as empty; once both are in place a
        CorruptStateError naming them is raised so the caller can tell the
        user. The ledger is usable afterwards either way.
        """
        corrupt: list[str] = []
        self._open = self._load_collection(OPEN_ORDERS_KEY, corrupt)
        self._history = self._load_collection(ORDER_HISTORY_KEY, corrupt)
        logger.info("loaded %d open orders, %d history records", len(self._open), len(self._history))
        if corrupt:
            raise CorruptStateError(f"unreadable collections: {', '.join(corrupt)}", keys=tuple(corrupt))

    def _load_collection(self, key: str, corrupt: list[str]) -> list[Order]:
        try:
            records = self.store.load(key)
            if records is None:
                return []
            return [order_from_record(record) for record in records]
        except (CorruptStateError, ValidationError) as exc:
            logger.error("collection %s is corrupt, treating it as empty: %s", key, exc)
            corrupt.append(key)
            return []

    # ---- read-only views ----------------------------------------------------

    @property
    def open_orders(self) -> tuple[Order, ...]:
        return tuple(copy.deepcopy(self._open))

    @property
    def order_history(self) -> tuple[Order, ...]:
        return tuple(copy.deepcopy(self._history))

    def get_order(self, order_id: str) -> Order | None:
        """Open order by id, or None."""
        for order in self._open:
            if order.id == order_id:
                return copy.deepcopy(order)
        return None

    def find_order(self, order_id: str) -> Order | None:
        """Open or closed order by id, or None."""
        for order in (*self._open, *self._history):
            if order.id == order_id:
                return copy.deepcopy(order)
        return None

    def get_order_remaining_balance(self, order: Order) -> Decimal:
        return remaining_balance(order)

    def get_today_total(self) -> Decimal:
        return today_total(self._history, self.clock())

    # ---- order lifecycle ------------------------------------------------------

    def create_order(self, name: str) -> Order:
        """Open a new empty tab named after the table or customer."""
        clean_name = (name or "").strip()
        if not clean_name:
            raise _invalid("order name is required")
        order = Order(id=self.id_factory(), name=clean_name, opened_at=self.clock())
        self._commit(open_orders=[*self._open, order])
        logger.info("order=%s opened name=%r", order.id, order.name)
        return copy.deepcopy(order)

    def pay_order(self, order_id: str, payment_method: PaymentMethod) -> Order:
        """Close an open order as paid and move it to the front of the history."""
        method = _require_method(payment_method)
        return self._finalize(order_id, "paid", method)

    def cancel_order(self, order_id: str) -> Order:
        """Close an open order as cancelled."""
        return self._finalize(order_id, "cancelled", None)

    def _finalize(
        self,
        order_id: str,
        status: Literal["paid", "cancelled"],
        payment_method: PaymentMethod | None,
    ) -> Order:
        order = self._working_copy(order_id)
        order.status = status
        order.closed_at = self.clock()
        if payment_method is not None:
            order.payment_method = payment_method
        self._commit(
            open_orders=[o for o in self._open if o.id != order_id],
            history=[order, *self._history],
        )
        logger.info(
            "order=%s %s total=%s method=%s partials=%s",
            order.id,
            status,
            order.total,
            order.payment_method,
            order.paid_amount(),
        )
        return copy.deepcopy(order)

    def delete_from_history(self, order_id: str) -> None:
        """Drop a closed order for good."""
        remaining = [o for o in self._history if o.id != order_id]
        if len(remaining) == len(self._history):
            raise NotFoundError(f"order {order_id!r} not found in history", entity_id=order_id)
        self._commit(history=remaining)
        logger.info("order=%s deleted from history", order_id)

    # ---- items ---------------------------------------------------------------

    def add_item_to_order(
        self,
        order_id: str,
        product_id: str,
        product_name: str,
        quantity: int,
        unit_price: Any,
    ) -> OrderItem:
        """Add ``quantity`` units; an active row of the same product absorbs them."""
        order = self._working_copy(order_id)
        qty = _require_quantity(quantity, "quantity")
        price = to_money(unit_price)
        if price < ZERO:
            raise _invalid("unit price must be >= 0")

        for item in order.items:
            if item.product_id == product_id and not item.cancelled:
                # Keeps the price captured when the row was first added.
                item.quantity += qty
                item.recalculate()
                row = item
                break
        else:
            row = OrderItem(
                id=self.id_factory(),
                product_id=product_id,
                product_name=product_name,
                quantity=qty,
                unit_price=price,
                total=ZERO,
            )
            row.recalculate()
            order.items.append(row)

        self._save_order(order)
        logger.info("order=%s +%dx %s (row=%s qty=%d)", order.id, qty, row.product_name, row.id, row.quantity)
        return copy.deepcopy(row)

    def add_product_to_order(self, order_id: str, product_id: str, quantity: int = 1) -> OrderItem:
        """Add a catalog product, capturing its current name and price."""
        if self.catalog is None:
            raise NotFoundError(f"product {product_id!r} not found: no catalog attached", entity_id=product_id)
        self._require_open(order_id)
        product = self.catalog.lookup(product_id)
        return self.add_item_to_order(order_id, product.id, product.name, quantity, product.price)

    def repeat_item(self, order_id: str, item_id: str) -> OrderItem:
        """Add the same product and quantity as an existing row again."""
        order = self._require_open(order_id)
        item = order.find_item(item_id)
        if item is None:
            raise NotFoundError(f"item {item_id!r} not found in order {order_id!r}", entity_id=item_id)
        return self.add_item_to_order(order_id, item.product_id, item.product_name, item.quantity, item.unit_price)

    def cancel_item(self, order_id: str, item_id: str, cancel_quantity: int | None = None) -> OrderItem:
        """Cancel a whole row, or split ``cancel_quantity`` units off into a cancelled row.

        Returns the row that ends up cancelled.
        """
        order = self._working_copy(order_id)
        item = order.find_item(item_id)
        if item is None:
            raise NotFoundError(f"item {item_id!r} not found in order {order_id!r}", entity_id=item_id)
        if cancel_quantity is not None:
            _require_quantity(cancel_quantity, "cancel quantity")
        if item.cancelled:
            raise _invalid(f"item {item_id!r} is already cancelled")

        if cancel_quantity is None or cancel_quantity >= item.quantity:
            item.cancelled = True
            cancelled_row = item
        else:
            item.quantity -= cancel_quantity
            item.recalculate()
            cancelled_row = OrderItem(
                id=self.id_factory(),
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=cancel_quantity,
                unit_price=item.unit_price,
                total=ZERO,
                cancelled=True,
            )
            cancelled_row.recalculate()
            order.items.append(cancelled_row)

        self._save_order(order)
        logger.info(
            "order=%s cancelled %dx %s (row=%s)",
            order.id,
            cancelled_row.quantity,
            cancelled_row.product_name,
            cancelled_row.id,
        )
        return copy.deepcopy(cancelled_row)

    def remove_item(self, order_id: str, item_id: str) -> None:
        """Delete a row outright, leaving no cancelled trace."""
        order = self._working_copy(order_id)
        remaining = [item for item in order.items if item.id != item_id]
        if len(remaining) == len(order.items):
            raise NotFoundError(f"item {item_id!r} not found in order {order_id!r}", entity_id=item_id)
        order.items = remaining
        self._save_order(order)
        logger.info("order=%s removed row=%s", order.id, item_id)

    def set_order_discount(self, order_id: str, discount: Any) -> Order:
        """Replace the discount; negative values count as zero."""
        order = self._working_copy(order_id)
        order.discount = max(ZERO, to_money(discount))
        self._save_order(order)
        logger.info("order=%s discount=%s total=%s", order.id, order.discount, order.total)
        return copy.deepcopy(order)

    # ---- partial payments ------------------------------------------------------

    def add_partial_payment(self, order_id: str, amount: Any, method: PaymentMethod) -> PartialPayment:
        """Record part of the bill as paid; never more than what is still owed."""
        order = self._working_copy(order_id)
        value = to_money(amount)
        pay_method = _require_method(method)
        if value <= ZERO:
            raise _invalid("payment amount must be > 0")
        remaining = remaining_balance(order)
        if value > remaining:
            raise _invalid(f"payment {value} exceeds remaining balance {remaining}")

        payment = PartialPayment(id=self.id_factory(), amount=value, method=pay_method, paid_at=self.clock())
        order.partial_payments.append(payment)
        self._save_order(order)
        logger.info("order=%s partial payment %s via %s (remaining=%s)", order.id, value, pay_method, remaining - value)
        return copy.deepcopy(payment)

    def remove_partial_payment(self, order_id: str, payment_id: str) -> None:
        """Undo one partial payment."""
        order = self._working_copy(order_id)
        payment = order.find_payment(payment_id)
        if payment is None:
            raise NotFoundError(f"payment {payment_id!r} not found in order {order_id!r}", entity_id=payment_id)
        order.partial_payments.remove(payment)
        # Total is independent of payments; only the order row is rewritten.
        self._commit(open_orders=[order if o.id == order.id else o for o in self._open])
        logger.info("order=%s removed payment=%s", order.id, payment_id)

    # ---- internals ----------------------------------------------------------------

    def _require_open(self, order_id: str) -> Order:
        for order in self._open:
            if order.id == order_id:
                return order
        raise NotFoundError(f"open order {order_id!r} not found", entity_id=order_id)

    def _working_copy(self, order_id: str) -> Order:
        return copy.deepcopy(self._require_open(order_id))

    def _save_order(self, order: Order) -> None:
        order.recalculate()
        self._commit(open_orders=[order if o.id == order.id else o for o in self._open])

    def _commit(self, open_orders: list[Order] | None = None, history: list[Order] | None = None) -> None:
        collections = {}
        if open_orders is not None:
            collections[OPEN_ORDERS_KEY] = [order_to_record(order) for order in open_orders]
        if history is not None:
            collections[ORDER_HISTORY_KEY] = [order_to_record(order) for order in history]
        self.store.save_many(collections)
        if open_orders is not None:
            self._open = open_orders
        if history is not None:
            self._history = history
