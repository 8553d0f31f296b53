"""Receipt, kitchen ticket and daily conference layouts for a 58mm thermal printer."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from time import sleep
from typing import Iterable

from comanda.catalog import ProductCatalog
from comanda.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_LINE_CHARS,
    PRINTER_TAIL_SPACER_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
    RESTAURANT_HEADER_LINES,
    RESTAURANT_NAME,
)
from comanda.data import format_currency, format_date, format_datetime, format_time, payment_method_label
from comanda.models import Order, OrderItem, remaining_balance
from comanda.reports import DayConference, stack_items

logger = logging.getLogger(__name__)

SEPARATOR = "-" * PRINTER_LINE_CHARS
SEPARATOR_DOUBLE = "=" * PRINTER_LINE_CHARS

# SEPARATOR_DOUBLE prints as a solid bar.
_RULE_BAND_PX = 20
_RULE_THICKNESS_PX = 5
_RULE_SLICE_PX = 2
_RULE_PAUSE_SECONDS = 0.1
_LINE_EXTRA_PX = 10
_FONT_OVERRIDE_ENV = "COMANDA_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/liberation/LiberationMono-Regular.ttf",
)


# ---- text layouts ---------------------------------------------------------------


def center(text: str, width: int = PRINTER_LINE_CHARS) -> str:
    return text[:width].center(width).rstrip()


def columns(left: str, right: str, width: int = PRINTER_LINE_CHARS) -> str:
    """Left text and right-aligned value on one line; the left side is cut with '...' if needed."""
    room = width - len(right) - 1
    if room < 1:
        return right[-width:]
    if len(left) > room:
        left = left[: max(0, room - 3)] + "..."
    return f"{left:<{room}} {right}"


def receipt_lines(order: Order) -> list[str]:
    """Customer receipt for an open or closed order."""
    lines = [center(RESTAURANT_NAME.upper())]
    lines.extend(center(line) for line in RESTAURANT_HEADER_LINES)
    lines.append(SEPARATOR)
    lines.append(order.name)
    lines.append(f"Abertura: {format_datetime(order.opened_at)}")
    if order.closed_at is not None:
        lines.append(f"Fechamento: {format_datetime(order.closed_at)}")
    lines.append(SEPARATOR)
    lines.append(columns("Qtd Produto", "Total"))

    # Rows with the same name and price print as one line.
    stacked = stack_items(order)
    if not stacked:
        lines.append(center("Nenhum item"))
    for row in stacked:
        lines.append(columns(f"{row.quantity:>3} {row.product_name}", format_currency(row.total)))

    lines.append(SEPARATOR_DOUBLE)
    if order.discount:
        lines.append(columns("Desconto", f"-{format_currency(order.discount)}"))
    lines.append(columns("TOTAL", format_currency(order.total)))

    if order.partial_payments:
        lines.append(SEPARATOR)
        for payment in order.partial_payments:
            lines.append(columns(f"Parcial {payment_method_label(payment.method)}", format_currency(payment.amount)))
        lines.append(columns("Restante", format_currency(remaining_balance(order))))
    if order.payment_method is not None:
        lines.append(columns("Pagamento", payment_method_label(order.payment_method)))

    lines.append(SEPARATOR)
    lines.append(center("Obrigado pela preferência!"))
    lines.append(center("Volte sempre!"))
    return lines


def kitchen_items(order: Order, catalog: ProductCatalog) -> list[OrderItem]:
    """Active rows whose product is prepared in the kitchen."""
    selected: list[OrderItem] = []
    for item in order.active_items():
        product = catalog.get_product(item.product_id)
        if product is not None and product.for_kitchen:
            selected.append(item)
    return selected


def kitchen_ticket_lines(
    order_name: str,
    items: Iterable[OrderItem],
    timestamp: datetime,
    notes: str | None = None,
) -> list[str]:
    lines = [
        center("*** PEDIDO COZINHA ***"),
        SEPARATOR,
        center(order_name),
        center(format_time(timestamp)),
        SEPARATOR_DOUBLE,
    ]
    lines.extend(center(f"{item.quantity}x {item.product_name}") for item in items)
    if notes and notes.strip():
        lines.append(SEPARATOR)
        lines.append(f"OBS: {notes.strip()}")
    lines.append(SEPARATOR_DOUBLE)
    lines.append(center("Preparar com atenção!"))
    return lines


def conference_lines(conference: DayConference) -> list[str]:
    """End-of-day cash count."""
    lines = [
        center(RESTAURANT_NAME),
        center(f"Conferência {format_date(conference.date)}"),
        SEPARATOR,
        columns("Comandas pagas", str(len(conference.paid_orders))),
        columns("Comandas canceladas", str(len(conference.cancelled_orders))),
        SEPARATOR,
        "POR FORMA DE PAGAMENTO",
    ]
    if not conference.method_totals:
        lines.append(center("Nenhum pagamento"))
    for method, amount in conference.method_totals.items():
        lines.append(columns(payment_method_label(method), format_currency(amount)))
    lines.append(SEPARATOR)
    lines.append("ITENS VENDIDOS")
    for row in conference.items_sold:
        lines.append(columns(f"{row.quantity}x {row.name}", format_currency(row.total)))
    lines.append(SEPARATOR_DOUBLE)
    lines.append(columns("TOTAL DO DIA", format_currency(conference.total)))
    lines.append(center(format_datetime(datetime.now().astimezone())))
    return lines


# ---- thermal output -------------------------------------------------------------


def _font_candidates() -> list[str]:
    """Environment override, then the configured font, then common Linux paths; no repeats."""
    override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    ordered = [override, PRINTER_FONT_PATH, *_LINUX_FONT_FALLBACKS]
    return list(dict.fromkeys(path for path in ordered if path))


def resolve_printer_font_path() -> str:
    """First candidate font that exists on disk; RuntimeError when none does."""
    candidates = _font_candidates()
    found = next((path for path in candidates if Path(path).is_file()), None)
    if found is None:
        raise RuntimeError(
            f"Nenhuma fonte para a impressora; defina {_FONT_OVERRIDE_ENV}. Procurado em: {', '.join(candidates)}"
        )
    return found


def check_printer_dependencies() -> tuple[bool, str]:
    """(ok, message) for the status bar: escpos importable and a printer font loadable."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Impressora indisponível: {exc}")
    return (True, "Impressora pronta")


def _render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    canvas_height = PRINTER_FONT_SIZE + _LINE_EXTRA_PX
    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)

    bbox = draw.textbbox((0, 0), text or " ", font=font)
    text_height = bbox[3] - bbox[1]
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_spacer(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def _render_rule() -> object:
    """Full-width black bar centred in a white band."""
    from PIL import Image, ImageDraw

    band = Image.new("1", (PRINTER_WIDTH_PX, _RULE_BAND_PX), color=1)
    margin = (_RULE_BAND_PX - _RULE_THICKNESS_PX) // 2
    ImageDraw.Draw(band).rectangle((0, margin, PRINTER_WIDTH_PX - 1, margin + _RULE_THICKNESS_PX - 1), fill=0)
    return band


def _print_rule(printer: object) -> None:
    """Send the bar as thin slices with a short pause between them, or the heated head smears it."""
    rule = _render_rule()
    for index, top in enumerate(range(0, rule.height, _RULE_SLICE_PX)):
        if index:
            sleep(_RULE_PAUSE_SECONDS)
        printer.image(rule.crop((0, top, PRINTER_WIDTH_PX, min(rule.height, top + _RULE_SLICE_PX))))


def print_lines(lines: list[str], printer: object | None = None) -> None:
    """Render each line as an image, print it and cut the ticket at the end."""
    if not lines:
        return

    try:
        from PIL import ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    if printer is None:
        try:
            from escpos.printer import Usb
        except Exception as exc:
            raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc
        printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)

    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    for line in lines:
        if line == SEPARATOR_DOUBLE:
            _print_rule(printer)
            continue
        printer.image(_render_line(line, font))

    # Extra tail for easier tearing.
    printer.image(_render_spacer(PRINTER_TAIL_SPACER_PX))
    printer.cut()
    logger.info("printed %d lines", len(lines))


def print_receipt(order: Order, printer: object | None = None) -> None:
    print_lines(receipt_lines(order), printer)


def print_kitchen_ticket(order: Order, catalog: ProductCatalog, notes: str | None = None, printer: object | None = None) -> bool:
    """Print kitchen items of an order; returns False when there is nothing for the kitchen."""
    items = kitchen_items(order, catalog)
    if not items:
        return False
    print_lines(kitchen_ticket_lines(order.name, items, datetime.now().astimezone(), notes), printer)
    return True


def print_conference(conference: DayConference, printer: object | None = None) -> None:
    print_lines(conference_lines(conference), printer)
