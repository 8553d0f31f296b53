"""Read-only projections over closed orders: day totals, analytics and the daily conference."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Literal

from comanda.errors import ValidationError
from comanda.models import CENT, PAYMENT_METHODS, ZERO, Order, OrderItem

Period = Literal["week", "month", "all"]

_PERIOD_DAYS: dict[str, int | None] = {"week": 7, "month": 30, "all": None}


@dataclass(frozen=True)
class DailySummary:
    date: date
    total_sales: Decimal
    order_count: int


@dataclass
class HistoryDay:
    """Closed orders of one calendar day, newest first."""

    date: date
    orders: list[Order] = field(default_factory=list)

    @property
    def paid_total(self) -> Decimal:
        return sum((o.total for o in self.orders if o.status == "paid"), ZERO)


@dataclass(frozen=True)
class ProductSales:
    name: str
    quantity: int
    total: Decimal


@dataclass(frozen=True)
class StackedItem:
    product_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class PeriodSummary:
    period: str
    revenue: Decimal
    order_count: int
    average_ticket: Decimal
    daily: list[DailySummary]
    methods: dict[str, Decimal]
    products: list[ProductSales]


@dataclass(frozen=True)
class DayConference:
    """End-of-day summary printed for the cash count."""

    date: date
    paid_orders: list[Order]
    cancelled_orders: list[Order]
    method_totals: dict[str, Decimal]
    items_sold: list[ProductSales]
    total: Decimal


def closing_time(order: Order) -> datetime:
    return order.closed_at or order.opened_at


def day_of(order: Order, tz: tzinfo | None = None) -> date:
    """Local calendar day an order counts for (``tz`` defaults to the system zone)."""
    return closing_time(order).astimezone(tz).date()


def today_total(history: Iterable[Order], now: datetime) -> Decimal:
    today = now.date()
    return sum(
        (o.total for o in history if o.status == "paid" and day_of(o, now.tzinfo) == today),
        ZERO,
    )


def group_by_day(history: Iterable[Order], tz: tzinfo | None = None) -> list[HistoryDay]:
    days: dict[date, HistoryDay] = {}
    for order in history:
        key = day_of(order, tz)
        days.setdefault(key, HistoryDay(date=key)).orders.append(order)
    for day in days.values():
        day.orders.sort(key=closing_time, reverse=True)
    return sorted(days.values(), key=lambda day: day.date, reverse=True)


def filter_paid_by_period(history: Iterable[Order], period: str, now: datetime) -> list[Order]:
    if period not in _PERIOD_DAYS:
        raise ValidationError(f"unknown period {period!r}")
    paid = [o for o in history if o.status == "paid"]
    days = _PERIOD_DAYS[period]
    if days is None:
        return paid
    cutoff = now - timedelta(days=days)
    return [o for o in paid if closing_time(o) >= cutoff]


def daily_sales(orders: Iterable[Order], tz: tzinfo | None = None) -> list[DailySummary]:
    totals: dict[date, Decimal] = {}
    counts: dict[date, int] = {}
    for order in orders:
        key = day_of(order, tz)
        totals[key] = totals.get(key, ZERO) + order.total
        counts[key] = counts.get(key, 0) + 1
    return [DailySummary(date=key, total_sales=totals[key], order_count=counts[key]) for key in sorted(totals)]


def payment_method_totals(orders: Iterable[Order]) -> dict[str, Decimal]:
    """Money received per method.

    Partial payments count under their own method; the final method is
    credited with whatever the partials left unpaid. Methods with nothing
    received are left out.
    """
    totals: dict[str, Decimal] = {method: ZERO for method in PAYMENT_METHODS}
    for order in orders:
        for payment in order.partial_payments:
            totals[payment.method] += payment.amount
        if order.payment_method is not None:
            totals[order.payment_method] += max(ZERO, order.total - order.paid_amount())
    return {method: value for method, value in totals.items() if value > ZERO}


def _aggregate_items(orders: Iterable[Order]) -> dict[str, tuple[int, Decimal]]:
    sold: dict[str, tuple[int, Decimal]] = {}
    for order in orders:
        for item in order.active_items():
            quantity, total = sold.get(item.product_name, (0, ZERO))
            sold[item.product_name] = (quantity + item.quantity, total + item.total)
    return sold


def product_ranking(orders: Iterable[Order]) -> list[ProductSales]:
    """Active items aggregated by product name, best-selling by revenue first."""
    sold = _aggregate_items(orders)
    rows = [ProductSales(name=name, quantity=qty, total=total) for name, (qty, total) in sold.items()]
    return sorted(rows, key=lambda row: row.total, reverse=True)


def stack_items(order: Order) -> list[StackedItem]:
    """Merge active rows sharing product name and unit price, for compact display."""
    stacked: list[StackedItem] = []
    for item in order.active_items():
        for idx, row in enumerate(stacked):
            if row.product_name == item.product_name and row.unit_price == item.unit_price:
                stacked[idx] = StackedItem(
                    product_name=row.product_name,
                    quantity=row.quantity + item.quantity,
                    unit_price=row.unit_price,
                    total=row.total + item.total,
                )
                break
        else:
            stacked.append(_stack_row(item))
    return stacked


def _stack_row(item: OrderItem) -> StackedItem:
    return StackedItem(
        product_name=item.product_name,
        quantity=item.quantity,
        unit_price=item.unit_price,
        total=item.total,
    )


def average_ticket(orders: list[Order]) -> Decimal:
    if not orders:
        return ZERO
    revenue = sum((o.total for o in orders), ZERO)
    return (revenue / len(orders)).quantize(CENT, rounding=ROUND_HALF_UP)


def period_summary(history: Iterable[Order], period: str, now: datetime) -> PeriodSummary:
    orders = filter_paid_by_period(history, period, now)
    return PeriodSummary(
        period=period,
        revenue=sum((o.total for o in orders), ZERO),
        order_count=len(orders),
        average_ticket=average_ticket(orders),
        daily=daily_sales(orders, now.tzinfo),
        methods=payment_method_totals(orders),
        products=product_ranking(orders),
    )


def day_conference(history: Iterable[Order], day: date, tz: tzinfo | None = None) -> DayConference:
    orders = [o for o in history if day_of(o, tz) == day]
    paid = [o for o in orders if o.status == "paid"]
    cancelled = [o for o in orders if o.status == "cancelled"]
    sold = _aggregate_items(paid)
    items_sold = sorted(
        (ProductSales(name=name, quantity=qty, total=total) for name, (qty, total) in sold.items()),
        key=lambda row: row.quantity,
        reverse=True,
    )
    return DayConference(
        date=day,
        paid_orders=paid,
        cancelled_orders=cancelled,
        method_totals=payment_method_totals(paid),
        items_sold=items_sold,
        total=sum((o.total for o in paid), ZERO),
    )
