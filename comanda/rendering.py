"""Rich text helpers for the terminal UI."""

from __future__ import annotations

from rich.text import Text

from comanda.data import format_currency, format_time, payment_method_label, status_label
from comanda.models import Order, OrderItem, PartialPayment, remaining_balance


def badge_style(status: str) -> str:
    """Return a consistent badge style for order statuses."""
    if status == "paid":
        return "bold #0b1f0f on #5fbf72"
    if status == "cancelled":
        return "bold #ffffff on #b23a48"
    return "bold #ffffff on #2f6db5"


def format_status_badge(status: str) -> Text:
    return Text(f" {status_label(status)} ", style=badge_style(status))


def format_order_label(order: Order) -> Text:
    """Render ``name  HH:MM  R$ total`` with a status tag for closed orders."""
    text = Text()
    if not order.is_open:
        text.append_text(format_status_badge(order.status))
        text.append(" ")
    text.append(order.name, style="bold")
    text.append(f"  {format_time(order.closed_at or order.opened_at)}", style="dim")
    text.append(f"  {format_currency(order.total)}")
    return text


def format_item_line(item: OrderItem) -> Text:
    text = Text()
    line = f"{item.quantity}x {item.product_name}  {format_currency(item.total)}"
    if item.cancelled:
        text.append(line, style="strike dim")
        text.append(" cancelado", style="#b23a48")
    else:
        text.append(line)
    return text


def format_payment_line(payment: PartialPayment) -> Text:
    text = Text()
    text.append(f"{format_time(payment.paid_at)} ", style="dim")
    text.append(f"{payment_method_label(payment.method)} {format_currency(payment.amount)}")
    return text


def format_order_summary(order: Order) -> Text:
    """Discount, total, paid and remaining lines for the order detail pane."""
    text = Text()
    if order.discount:
        text.append(f"Desconto: -{format_currency(order.discount)}\n", style="dim")
    text.append(f"Total: {format_currency(order.total)}", style="bold")
    paid = order.paid_amount()
    if paid:
        text.append(f"\nPago: {format_currency(paid)}")
        text.append(f"\nRestante: {format_currency(remaining_balance(order))}", style="bold #5fbf72")
    return text


def window_bounds(total: int, rows: int, selected: int | None) -> tuple[int, int]:
    """Visible slice of a list so the selected row stays roughly centered."""
    if total <= 0:
        return (0, 0)

    rows = max(1, rows)
    if total <= rows:
        return (0, total)

    if selected is None:
        start = 0
    else:
        start = selected - rows // 2
        start = max(0, start)
        start = min(start, total - rows)

    return (start, start + rows)
