"""Static catalog seeds and display-text helpers."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from comanda.constant import (
    DEFAULT_PRODUCTS as _DEFAULT_PRODUCTS_RAW,
    PAYMENT_METHOD_LABELS,
    PERIOD_LABELS,
    STATUS_LABELS,
)
from comanda.models import Product, to_money


def default_products(created_at: datetime) -> list[Product]:
    """Build the seed catalog, stamped with one creation time."""
    return [
        Product(
            id=str(raw["id"]),
            name=str(raw["name"]),
            price=to_money(raw["price"]),
            created_at=created_at,
            for_kitchen=bool(raw["for_kitchen"]),
        )
        for raw in _DEFAULT_PRODUCTS_RAW
    ]


def format_currency(amount: Decimal) -> str:
    """Format as Brazilian real, e.g. ``R$ 1.234,56``."""
    sign = "-" if amount < 0 else ""
    # Swap separators: 1,234.56 -> 1.234,56
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


def payment_method_label(method: str | None) -> str:
    if method is None:
        return ""
    return PAYMENT_METHOD_LABELS.get(method, method)


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def period_label(period: str) -> str:
    return PERIOD_LABELS.get(period, period)


def format_date(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.astimezone().date()
    return value.strftime("%d/%m/%Y")


def format_time(value: datetime) -> str:
    return value.astimezone().strftime("%H:%M")


def format_datetime(value: datetime) -> str:
    return value.astimezone().strftime("%d/%m/%Y %H:%M")
