"""Main Textual app: open tabs on the left, the selected tab's bill on the right."""

from __future__ import annotations

import logging
from typing import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import Header, Static

from comanda.catalog import ProductCatalog
from comanda.choice_modal import CONFIRM_CHOICES, PAYMENT_CHOICES, ChoiceModal
from comanda.data import format_currency, format_time, payment_method_label
from comanda.errors import CorruptStateError, LedgerError
from comanda.history_screen import HistoryScreen
from comanda.ledger import OrderLedger
from comanda.models import Order, OrderItem, remaining_balance, to_money
from comanda.printer import check_printer_dependencies, print_kitchen_ticket, print_receipt
from comanda.product_modal import ProductPickerModal
from comanda.prompt_modal import PromptModal, amount_error, quantity_error, required_error
from comanda.rendering import (
    format_item_line,
    format_order_label,
    format_order_summary,
    format_payment_line,
    window_bounds,
)

logger = logging.getLogger(__name__)


class ComandaApp(App):
    """Keyboard-driven tab manager for the restaurant floor."""

    TITLE = "Comanda"
    SUB_TITLE = "Comandas abertas"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #orders-pane {
        width: 2fr;
        border: round $primary;
        padding: 1;
    }

    #detail-pane {
        width: 3fr;
        border: round $secondary;
        padding: 1;
    }

    #orders-list, #items-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #order-summary {
        height: auto;
        padding: 0 1;
    }

    #status-bar {
        height: 3;
        border: heavy $secondary;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    BINDINGS = [
        ("j", "move_order(1)", "Próxima"),
        ("k", "move_order(-1)", "Anterior"),
        ("down", "move_item(1)", "Próximo item"),
        ("up", "move_item(-1)", "Item anterior"),
        ("n", "new_order", "Nova comanda"),
        ("a", "add_item", "Adicionar"),
        ("plus", "repeat_item", "Repetir item"),
        ("x", "cancel_item", "Cancelar item"),
        ("delete", "remove_item", "Remover item"),
        ("d", "set_discount", "Desconto"),
        ("s", "split_payment", "Parcial"),
        ("u", "remove_partial_payment", "Remover parcial"),
        ("f", "pay_order", "Pagar"),
        ("c", "cancel_order", "Cancelar comanda"),
        ("r", "print_receipt", "Conferência"),
        ("t", "print_kitchen", "Cozinha"),
        ("h", "show_history", "Histórico"),
        ("ctrl+q", "quit", "Sair"),
    ]

    def __init__(self, ledger: OrderLedger, catalog: ProductCatalog) -> None:
        super().__init__()
        self.ledger = ledger
        self.catalog = catalog
        self.order_selected_index: int | None = None
        self.item_selected_index: int | None = None
        self.system_status = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="orders-pane"):
                yield Static("Comandas abertas", classes="pane-title")
                yield Static("(nenhuma comanda)", id="orders-list")
            with Vertical(id="detail-pane"):
                yield Static("Itens", id="detail-title", classes="pane-title")
                yield Static(id="items-list")
                yield Static(id="order-summary")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        problems: list[str] = []
        for loader in (self.catalog.load, self.ledger.load):
            try:
                loader()
            except CorruptStateError as exc:
                problems.append(exc.message)
        if problems:
            self.system_status = "Dados corrompidos ignorados: " + "; ".join(problems)
        else:
            _, self.system_status = check_printer_dependencies()
        if self.ledger.open_orders:
            self.order_selected_index = 0
        self._refresh_all()

    # ---- selection ------------------------------------------------------------

    def _screen_busy(self) -> bool:
        return len(self.screen_stack) > 1

    def _selected_order(self) -> Order | None:
        orders = self.ledger.open_orders
        if self.order_selected_index is None or not (0 <= self.order_selected_index < len(orders)):
            return None
        return orders[self.order_selected_index]

    def _selected_item(self) -> OrderItem | None:
        order = self._selected_order()
        if order is None or self.item_selected_index is None:
            return None
        if not (0 <= self.item_selected_index < len(order.items)):
            return None
        return order.items[self.item_selected_index]

    def action_move_order(self, delta: int) -> None:
        if self._screen_busy():
            return
        orders = self.ledger.open_orders
        if not orders:
            return
        if self.order_selected_index is None:
            self.order_selected_index = 0 if delta > 0 else len(orders) - 1
        else:
            self.order_selected_index = (self.order_selected_index + delta) % len(orders)
        self.item_selected_index = None
        self._refresh_all()

    def action_move_item(self, delta: int) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None or not order.items:
            return
        if self.item_selected_index is None:
            self.item_selected_index = 0 if delta > 0 else len(order.items) - 1
        else:
            self.item_selected_index = (self.item_selected_index + delta) % len(order.items)
        self._refresh_all()

    # ---- commands -------------------------------------------------------------

    def _apply(self, command: Callable[[], object], success: str) -> bool:
        """Apply one ledger command; errors end up in the status bar, never as a crash."""
        try:
            command()
        except LedgerError as exc:
            self.system_status = exc.message
            self._refresh_all()
            return False
        self.system_status = success
        self._refresh_all()
        return True

    def action_new_order(self) -> None:
        if self._screen_busy():
            return

        def create(name: str | None) -> None:
            if name is None:
                return
            if self._apply(lambda: self.ledger.create_order(name), f'Comanda "{name}" aberta!'):
                self.order_selected_index = len(self.ledger.open_orders) - 1
                self.item_selected_index = None
                self._refresh_all()

        self.push_screen(PromptModal("Nova comanda", "Nome da mesa ou cliente", validate=required_error), create)

    def action_add_item(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None:
            self.system_status = "Abra ou selecione uma comanda"
            self._refresh_all()
            return

        def ask_quantity(product_id: str | None) -> None:
            if product_id is None:
                return
            product = self.catalog.get_product(product_id)
            if product is None:
                return

            def add(value: str | None) -> None:
                if value is None:
                    return
                self._apply(
                    lambda: self.ledger.add_product_to_order(order.id, product.id, int(value)),
                    f"{value}x {product.name} adicionado!",
                )

            self.push_screen(
                PromptModal(product.name, "Quantidade", initial="1", mode="digits", validate=quantity_error),
                add,
            )

        self.push_screen(ProductPickerModal(list(self.catalog.products)), ask_quantity)

    def action_repeat_item(self) -> None:
        if self._screen_busy():
            return
        order, item = self._selected_order(), self._selected_item()
        if order is None or item is None:
            return
        self._apply(
            lambda: self.ledger.repeat_item(order.id, item.id),
            f"{item.quantity}x {item.product_name} adicionado!",
        )

    def action_cancel_item(self) -> None:
        if self._screen_busy():
            return
        order, item = self._selected_order(), self._selected_item()
        if order is None or item is None:
            return
        if item.quantity <= 1 or item.cancelled:
            self._apply(lambda: self.ledger.cancel_item(order.id, item.id), "Item cancelado")
            return

        def cancel(value: str | None) -> None:
            if value is None:
                return
            self._apply(
                lambda: self.ledger.cancel_item(order.id, item.id, int(value)),
                f"{min(int(value), item.quantity)} item(ns) cancelado(s)",
            )

        self.push_screen(
            PromptModal(
                f"Cancelar {item.product_name}",
                f"Quantidade a cancelar (máx. {item.quantity})",
                initial=str(item.quantity),
                mode="digits",
                validate=quantity_error,
            ),
            cancel,
        )

    def action_remove_item(self) -> None:
        if self._screen_busy():
            return
        order, item = self._selected_order(), self._selected_item()
        if order is None or item is None:
            return
        if self._apply(lambda: self.ledger.remove_item(order.id, item.id), "Item removido"):
            self.item_selected_index = None
            self._refresh_all()

    def action_set_discount(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None:
            return

        def apply(value: str | None) -> None:
            if value is None:
                return
            self._apply(lambda: self.ledger.set_order_discount(order.id, value), "Desconto aplicado")

        self.push_screen(
            PromptModal("Desconto", "Valor do desconto (R$)", initial=str(order.discount), mode="amount", validate=amount_error),
            apply,
        )

    def action_split_payment(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None:
            return
        remaining = remaining_balance(order)

        def ask_method(value: str | None) -> None:
            if value is None:
                return

            def pay(method: str | None) -> None:
                if method is None:
                    return
                self._apply(
                    lambda: self.ledger.add_partial_payment(order.id, value, method),
                    f"Pagamento parcial de {format_currency(to_money(value))} via {payment_method_label(method)}",
                )

            self.push_screen(ChoiceModal("Pagamento parcial", "Forma de pagamento", PAYMENT_CHOICES), pay)

        self.push_screen(
            PromptModal(
                "Pagamento parcial",
                f"Valor a pagar (restante {format_currency(remaining)})",
                mode="amount",
                validate=amount_error,
            ),
            ask_method,
        )

    def action_remove_partial_payment(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None or not order.partial_payments:
            return

        def remove(payment_id: str | None) -> None:
            if payment_id is None:
                return
            self._apply(lambda: self.ledger.remove_partial_payment(order.id, payment_id), "Pagamento parcial removido")

        if len(order.partial_payments) == 1:
            remove(order.partial_payments[0].id)
            return
        # Digits 1-9 pick directly; later payments are reached with the cursor.
        choices = [
            (
                str(idx + 1) if idx < 9 else "",
                payment.id,
                f"{format_currency(payment.amount)} {payment_method_label(payment.method)} às {format_time(payment.paid_at)}",
            )
            for idx, payment in enumerate(order.partial_payments)
        ]
        self.push_screen(ChoiceModal("Remover pagamento parcial", f"Comanda {order.name}", choices), remove)

    def action_pay_order(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None:
            return

        def pay(method: str | None) -> None:
            if method is None:
                return
            if self._apply(
                lambda: self.ledger.pay_order(order.id, method),
                f"Pagamento via {payment_method_label(method)} registrado!",
            ):
                self._after_close()

        prompt = f"Restante: {format_currency(remaining_balance(order))}"
        self.push_screen(ChoiceModal(f"Fechar {order.name}", prompt, PAYMENT_CHOICES), pay)

    def action_cancel_order(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None:
            return

        def confirm(answer: str | None) -> None:
            if answer != "yes":
                return
            if self._apply(lambda: self.ledger.cancel_order(order.id), "Comanda cancelada"):
                self._after_close()

        self.push_screen(ChoiceModal("Cancelar comanda", f'Cancelar "{order.name}"?', CONFIRM_CHOICES), confirm)

    def _after_close(self) -> None:
        count = len(self.ledger.open_orders)
        if count == 0:
            self.order_selected_index = None
        elif self.order_selected_index is not None:
            self.order_selected_index = min(self.order_selected_index, count - 1)
        self.item_selected_index = None
        self._refresh_all()

    def action_print_receipt(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None:
            return
        try:
            print_receipt(order)
        except Exception as exc:
            logger.warning("receipt print failed order=%s: %s", order.id, exc)
            self.system_status = f"Falha ao imprimir: {exc}"
        else:
            self.system_status = f"Conferência de {order.name} impressa"
        self._refresh_all()

    def action_print_kitchen(self) -> None:
        if self._screen_busy():
            return
        order = self._selected_order()
        if order is None:
            return
        try:
            printed = print_kitchen_ticket(order, self.catalog)
        except Exception as exc:
            logger.warning("kitchen print failed order=%s: %s", order.id, exc)
            self.system_status = f"Falha ao imprimir: {exc}"
        else:
            self.system_status = "Pedido enviado à cozinha" if printed else "Nenhum item de cozinha"
        self._refresh_all()

    def action_show_history(self) -> None:
        if self._screen_busy():
            return
        self.push_screen(HistoryScreen(self.ledger), lambda _: self._refresh_all())

    # ---- rendering --------------------------------------------------------------

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _refresh_all(self) -> None:
        self._refresh_orders()
        self._refresh_detail()
        self._refresh_status()

    def _refresh_orders(self) -> None:
        try:
            orders_widget = self.query_one("#orders-list", Static)
        except NoMatches:
            return
        orders = self.ledger.open_orders
        if not orders:
            self.order_selected_index = None
            orders_widget.update("(nenhuma comanda)")
            return
        if self.order_selected_index is not None and self.order_selected_index >= len(orders):
            self.order_selected_index = len(orders) - 1

        start, end = window_bounds(len(orders), self._visible_rows(orders_widget), self.order_selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.order_selected_index else "  "
            lines.append(pointer)
            lines.append_text(format_order_label(orders[idx]))
        if end < len(orders):
            lines.append("\n⋮", style="dim")
        orders_widget.update(lines)

    def _refresh_detail(self) -> None:
        try:
            title = self.query_one("#detail-title", Static)
            items_widget = self.query_one("#items-list", Static)
            summary_widget = self.query_one("#order-summary", Static)
        except NoMatches:
            return
        order = self._selected_order()
        if order is None:
            title.update("Itens")
            items_widget.update("")
            summary_widget.update("")
            return

        title.update(order.name)
        if self.item_selected_index is not None and self.item_selected_index >= len(order.items):
            self.item_selected_index = len(order.items) - 1 if order.items else None

        lines = Text()
        if not order.items:
            lines.append("(nenhum item)", style="dim")
        start, end = window_bounds(len(order.items), self._visible_rows(items_widget), self.item_selected_index)
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.item_selected_index else "  "
            lines.append(pointer)
            lines.append_text(format_item_line(order.items[idx]))
        items_widget.update(lines)

        summary = Text()
        for payment in order.partial_payments:
            summary.append("Parcial ")
            summary.append_text(format_payment_line(payment))
            summary.append("\n")
        summary.append_text(format_order_summary(order))
        summary_widget.update(summary)

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        text = Text()
        text.append(f"Vendas de hoje: {format_currency(self.ledger.get_today_total())}", style="bold")
        text.append("   n nova · a item · x cancela · s parcial · f paga · h histórico\n", style="dim")
        text.append(self.system_status or "Pronto")
        bar.update(text)
