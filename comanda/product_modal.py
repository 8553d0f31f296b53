"""Searchable product picker modal."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from comanda.data import format_currency
from comanda.models import Product
from comanda.rendering import window_bounds

_VISIBLE_ROWS = 10


def filter_products(products: list[Product], query: str) -> list[Product]:
    """Case-insensitive substring match on the product name."""
    if not query:
        return list(products)
    q = query.lower()
    return [product for product in products if q in product.name.lower()]


class ProductPickerModal(ModalScreen[str | None]):
    """Type to filter, ↑/↓ to move, Enter to pick; dismisses with the product id."""

    CSS = """
    ProductPickerModal {
        align: center middle;
        background: $background 60%;
    }

    #picker-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #picker-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #picker-search {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
    }

    #picker-help {
        margin-top: 1;
        color: $text-muted;
    }
    """

    def __init__(self, products: list[Product]) -> None:
        super().__init__()
        self.products = products
        self.search_query = ""
        self.selected_index = 0

    def compose(self) -> ComposeResult:
        with Container(id="picker-dialog"):
            yield Static("Adicionar item", id="picker-title")
            yield Static(id="picker-search")
            yield Static(id="picker-results")
            yield Static("Digite para buscar. ↑/↓ move, Enter escolhe, Esc cancela.", id="picker-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        event.stop()
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            return

        results = filter_products(self.products, self.search_query)
        if event.key in {"up", "down", "tab"}:
            if results:
                delta = -1 if event.key == "up" else 1
                self.selected_index = (self.selected_index + delta) % len(results)
            self._refresh_content()
            return

        if event.key == "enter":
            if results:
                self.dismiss(results[min(self.selected_index, len(results) - 1)].id)
            return

        if event.key == "backspace":
            if self.search_query:
                self.search_query = self.search_query[:-1]
                self.selected_index = 0
                self._refresh_content()
            return

        if event.is_printable and event.character:
            self.search_query += event.character
            self.selected_index = 0
            self._refresh_content()

    def _refresh_content(self) -> None:
        self.query_one("#picker-search", Static).update(f"Buscar: {self.search_query}|")
        results_widget = self.query_one("#picker-results", Static)

        results = filter_products(self.products, self.search_query)
        if not results:
            results_widget.update("Nenhum produto")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0

        start, end = window_bounds(len(results), _VISIBLE_ROWS, self.selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            product = results[idx]
            pointer = "➤ " if idx == self.selected_index else "  "
            style = "bold white" if idx == self.selected_index else "white"
            lines.append(f"{pointer}{product.name}", style=style)
            lines.append(f"  {format_currency(product.price)}", style="dim")
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)
