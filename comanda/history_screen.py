"""Closed orders grouped by day, with period analytics and the daily conference."""

from __future__ import annotations

import logging
from datetime import date, datetime

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.screen import Screen
from textual.widgets import Header, Static

from comanda.choice_modal import CONFIRM_CHOICES, ChoiceModal
from comanda.data import format_currency, format_date, payment_method_label, period_label
from comanda.errors import LedgerError
from comanda.ledger import OrderLedger
from comanda.models import Order
from comanda.printer import print_conference, print_receipt
from comanda.reports import day_conference, day_of, group_by_day, period_summary
from comanda.rendering import format_order_label, window_bounds

logger = logging.getLogger(__name__)

_TOP_PRODUCTS = 5


class HistoryScreen(Screen[None]):
    """j/k pick an order, r reprints it, p prints the day conference, Del removes it."""

    CSS = """
    #history-layout {
        height: 1fr;
    }

    #history-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #analytics-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #history-list {
        height: 1fr;
    }

    #history-status {
        height: 3;
        border: heavy $secondary;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("j", "move(1)", "Próxima"),
        ("down", "move(1)", "Próxima"),
        ("k", "move(-1)", "Anterior"),
        ("up", "move(-1)", "Anterior"),
        ("w", "period('week')", "7 dias"),
        ("m", "period('month')", "30 dias"),
        ("a", "period('all')", "Tudo"),
        ("r", "print_receipt", "Reimprimir"),
        ("p", "print_conference", "Conferência do dia"),
        ("delete", "delete_order", "Excluir"),
        ("escape", "close", "Voltar"),
    ]

    def __init__(self, ledger: OrderLedger) -> None:
        super().__init__()
        self.ledger = ledger
        self.period = "week"
        self.selected_index: int | None = None
        self.status_message = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="history-layout"):
            with Vertical(id="history-pane"):
                yield Static(id="history-list")
            with Vertical(id="analytics-pane"):
                yield Static(id="analytics")
        yield Static(id="history-status")

    def on_mount(self) -> None:
        if self.ledger.order_history:
            self.selected_index = 0
        self._refresh_all()

    def _current_time(self) -> datetime:
        return self.ledger.clock()

    def _flat_orders(self) -> list[Order]:
        # Same order the grouped list is drawn in.
        days = group_by_day(self.ledger.order_history, self._current_time().tzinfo)
        return [order for day in days for order in day.orders]

    def _selected_order(self) -> Order | None:
        orders = self._flat_orders()
        if self.selected_index is None or not (0 <= self.selected_index < len(orders)):
            return None
        return orders[self.selected_index]

    def action_move(self, delta: int) -> None:
        orders = self._flat_orders()
        if not orders:
            return
        if self.selected_index is None:
            self.selected_index = 0
        else:
            self.selected_index = (self.selected_index + delta) % len(orders)
        self._refresh_all()

    def action_period(self, period: str) -> None:
        self.period = period
        self._refresh_all()

    def action_close(self) -> None:
        self.dismiss(None)

    def action_print_receipt(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        try:
            print_receipt(order)
        except Exception as exc:
            logger.warning("receipt reprint failed order=%s: %s", order.id, exc)
            self.status_message = f"Falha ao imprimir: {exc}"
        else:
            self.status_message = f"Comanda {order.name} reimpressa"
        self._refresh_all()

    def action_print_conference(self) -> None:
        order = self._selected_order()
        tz = self._current_time().tzinfo
        day: date = day_of(order, tz) if order is not None else self._current_time().date()
        conference = day_conference(self.ledger.order_history, day, tz)
        try:
            print_conference(conference)
        except Exception as exc:
            logger.warning("conference print failed day=%s: %s", day, exc)
            self.status_message = f"Falha ao imprimir: {exc}"
        else:
            self.status_message = f"Conferência de {format_date(day)} impressa"
        self._refresh_all()

    def action_delete_order(self) -> None:
        order = self._selected_order()
        if order is None:
            return

        def confirm(answer: str | None) -> None:
            if answer != "yes":
                return
            try:
                self.ledger.delete_from_history(order.id)
            except LedgerError as exc:
                self.status_message = exc.message
            else:
                self.status_message = f"Comanda {order.name} excluída do histórico"
                count = len(self.ledger.order_history)
                if count == 0:
                    self.selected_index = None
                elif self.selected_index is not None:
                    self.selected_index = min(self.selected_index, count - 1)
            self._refresh_all()

        self.app.push_screen(
            ChoiceModal("Excluir do histórico", f'Excluir "{order.name}" permanentemente?', CONFIRM_CHOICES),
            confirm,
        )

    def _refresh_all(self) -> None:
        self._refresh_history()
        self._refresh_analytics()
        self._refresh_status()

    def _refresh_history(self) -> None:
        try:
            widget = self.query_one("#history-list", Static)
        except NoMatches:
            return
        days = group_by_day(self.ledger.order_history, self._current_time().tzinfo)
        if not days:
            widget.update("(histórico vazio)")
            return

        rows: list[tuple[Text, bool]] = []
        flat_index = 0
        selected_row = 0
        for day in days:
            header = Text(f"{format_date(day.date)}  ", style="bold underline")
            header.append(format_currency(day.paid_total), style="bold #5fbf72")
            rows.append((header, False))
            for order in day.orders:
                is_selected = flat_index == self.selected_index
                if is_selected:
                    selected_row = len(rows)
                line = Text("➤ " if is_selected else "  ")
                line.append_text(format_order_label(order))
                if order.payment_method:
                    line.append(f"  {payment_method_label(order.payment_method)}", style="dim")
                rows.append((line, is_selected))
                flat_index += 1

        height = widget.size.height if widget.size.height > 0 else 20
        start, end = window_bounds(len(rows), height, selected_row)
        text = Text()
        for idx in range(start, end):
            if idx > start:
                text.append("\n")
            text.append_text(rows[idx][0])
        widget.update(text)

    def _refresh_analytics(self) -> None:
        try:
            widget = self.query_one("#analytics", Static)
        except NoMatches:
            return
        summary = period_summary(self.ledger.order_history, self.period, self._current_time())
        text = Text(f"Período: {period_label(self.period)}\n\n", style="bold")
        text.append(f"Faturamento: {format_currency(summary.revenue)}\n")
        text.append(f"Comandas pagas: {summary.order_count}\n")
        text.append(f"Ticket médio: {format_currency(summary.average_ticket)}\n\n")

        text.append("Formas de pagamento\n", style="bold")
        if not summary.methods:
            text.append("  (nenhum)\n", style="dim")
        for method, amount in summary.methods.items():
            text.append(f"  {payment_method_label(method)}: {format_currency(amount)}\n")

        text.append("\nMais vendidos\n", style="bold")
        if not summary.products:
            text.append("  (nenhum)\n", style="dim")
        for row in summary.products[:_TOP_PRODUCTS]:
            text.append(f"  {row.quantity}x {row.name}  {format_currency(row.total)}\n")

        text.append("\nVendas por dia\n", style="bold")
        for daily in summary.daily[-7:]:
            text.append(f"  {format_date(daily.date)}  {daily.order_count}  {format_currency(daily.total_sales)}\n")
        widget.update(text)

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#history-status", Static)
        except NoMatches:
            return
        text = Text(f"Vendas de hoje: {format_currency(self.ledger.get_today_total())}", style="bold")
        text.append("   w/m/a período · r reimprime · p conferência · Del exclui · Esc volta\n", style="dim")
        text.append(self.status_message or "Histórico")
        bar.update(text)
