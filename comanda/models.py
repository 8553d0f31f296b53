"""Domain models for comanda."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Literal, get_args

from comanda.errors import ValidationError

OrderStatus = Literal["open", "paid", "cancelled"]
PaymentMethod = Literal["cash", "pix", "card"]

ORDER_STATUSES: tuple[str, ...] = get_args(OrderStatus)
PAYMENT_METHODS: tuple[str, ...] = get_args(PaymentMethod)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce a number or numeric string to a cent-quantized Decimal."""
    if isinstance(value, bool):
        raise ValidationError(f"invalid amount: {value!r}")
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_json(amount: Decimal) -> int | float:
    """JSON numbers for money: integral amounts stay ints, the rest become floats."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        # Naive stamps are local wall-clock time.
        parsed = parsed.astimezone()
    return parsed


@dataclass
class Product:
    """A sellable catalog entry."""

    id: str
    name: str
    price: Decimal
    created_at: datetime
    for_kitchen: bool = False


@dataclass
class OrderItem:
    """One product row of an order, with name and price captured when it was added."""

    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    cancelled: bool = False

    def recalculate(self) -> None:
        self.total = (self.unit_price * self.quantity).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PartialPayment:
    """Part of an order's total settled before the order is closed."""

    id: str
    amount: Decimal
    method: PaymentMethod
    paid_at: datetime


@dataclass
class Order:
    """A tab: a named running bill with items and partial payments."""

    id: str
    name: str
    opened_at: datetime
    items: list[OrderItem] = field(default_factory=list)
    status: OrderStatus = "open"
    total: Decimal = ZERO
    closed_at: datetime | None = None
    payment_method: PaymentMethod | None = None
    partial_payments: list[PartialPayment] = field(default_factory=list)
    discount: Decimal = ZERO

    def active_items(self) -> list[OrderItem]:
        return [item for item in self.items if not item.cancelled]

    def subtotal(self) -> Decimal:
        return sum((item.total for item in self.active_items()), ZERO)

    def paid_amount(self) -> Decimal:
        return sum((payment.amount for payment in self.partial_payments), ZERO)

    def recalculate(self) -> None:
        """Recompute ``total`` from active items and the discount."""
        self.total = max(ZERO, self.subtotal() - self.discount)

    def find_item(self, item_id: str) -> OrderItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_payment(self, payment_id: str) -> PartialPayment | None:
        for payment in self.partial_payments:
            if payment.id == payment_id:
                return payment
        return None

    @property
    def is_open(self) -> bool:
        return self.status == "open"


def remaining_balance(order: Order) -> Decimal:
    """Amount still owed: total minus partial payments, never below zero."""
    return max(ZERO, order.total - order.paid_amount())


# ---- record conversion -------------------------------------------------------
#
# Records use the camelCase keys of the exported JSON document.


def product_to_record(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "price": money_to_json(product.price),
        "forKitchen": product.for_kitchen,
        "createdAt": product.created_at.isoformat(),
    }


def product_from_record(record: dict[str, Any]) -> Product:
    return _parse("product", record, _product_from_record)


def _product_from_record(record: dict[str, Any]) -> Product:
    return Product(
        id=str(record["id"]),
        name=str(record["name"]),
        price=to_money(record["price"]),
        created_at=parse_timestamp(record["createdAt"]),
        for_kitchen=bool(record.get("forKitchen", False)),
    )


def item_to_record(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "productId": item.product_id,
        "productName": item.product_name,
        "quantity": item.quantity,
        "unitPrice": money_to_json(item.unit_price),
        "total": money_to_json(item.total),
        "cancelled": item.cancelled,
    }


def _item_from_record(record: dict[str, Any]) -> OrderItem:
    quantity = record["quantity"]
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise ValueError(f"quantity must be an integer, got {quantity!r}")
    item = OrderItem(
        id=str(record["id"]),
        product_id=str(record["productId"]),
        product_name=str(record["productName"]),
        quantity=quantity,
        unit_price=to_money(record["unitPrice"]),
        total=to_money(record["total"]),
        cancelled=bool(record.get("cancelled", False)),
    )
    # Row total always follows price and quantity.
    item.recalculate()
    return item


def payment_to_record(payment: PartialPayment) -> dict[str, Any]:
    return {
        "id": payment.id,
        "amount": money_to_json(payment.amount),
        "method": payment.method,
        "paidAt": payment.paid_at.isoformat(),
    }


def _payment_from_record(record: dict[str, Any]) -> PartialPayment:
    method = record["method"]
    if method not in PAYMENT_METHODS:
        raise ValueError(f"unknown payment method {method!r}")
    return PartialPayment(
        id=str(record["id"]),
        amount=to_money(record["amount"]),
        method=method,
        paid_at=parse_timestamp(record["paidAt"]),
    )


def order_to_record(order: Order) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": order.id,
        "name": order.name,
        "openedAt": order.opened_at.isoformat(),
        "items": [item_to_record(item) for item in order.items],
        "status": order.status,
        "total": money_to_json(order.total),
        "partialPayments": [payment_to_record(p) for p in order.partial_payments],
        "discount": money_to_json(order.discount),
    }
    if order.closed_at is not None:
        record["closedAt"] = order.closed_at.isoformat()
    if order.payment_method is not None:
        record["paymentMethod"] = order.payment_method
    return record


def order_from_record(record: dict[str, Any]) -> Order:
    return _parse("order", record, _order_from_record)


def _order_from_record(record: dict[str, Any]) -> Order:
    status = record["status"]
    if status not in ORDER_STATUSES:
        raise ValueError(f"unknown status {status!r}")
    payment_method = record.get("paymentMethod")
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValueError(f"unknown payment method {payment_method!r}")
    closed_at = record.get("closedAt")
    order = Order(
        id=str(record["id"]),
        name=str(record["name"]),
        opened_at=parse_timestamp(record["openedAt"]),
        items=[_item_from_record(item) for item in record.get("items", [])],
        status=status,
        total=to_money(record.get("total", 0)),
        closed_at=parse_timestamp(closed_at) if closed_at else None,
        payment_method=payment_method,
        partial_payments=[_payment_from_record(p) for p in record.get("partialPayments") or []],
        discount=max(ZERO, to_money(record.get("discount") or 0)),
    )
    order.recalculate()
    return order


def _parse(kind: str, record: Any, parser: Any) -> Any:
    if not isinstance(record, dict):
        raise ValidationError(f"{kind} record must be an object, got {type(record).__name__}")
    try:
        return parser(record)
    except ValidationError as exc:
        raise ValidationError(f"invalid {kind} record {record.get('id')!r}: {exc.message}") from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"invalid {kind} record {record.get('id')!r}: {exc}") from exc
