"""Runtime configuration defaults for persistence, logging and printing."""

from __future__ import annotations

import os

DB_PATH = os.environ.get("COMANDA_DB_PATH", "data/comanda.db")
LOG_PATH = os.environ.get("COMANDA_LOG_PATH", "data/comanda.log")
LOG_LEVEL = os.environ.get("COMANDA_LOG_LEVEL", "INFO")

# Collection keys kept from the browser store so exported state stays compatible.
OPEN_ORDERS_KEY = "restaurant_open_orders"
ORDER_HISTORY_KEY = "restaurant_order_history"
PRODUCTS_KEY = "restaurant_products"

RESTAURANT_NAME = "Jailma Lanches e Petiscos"
RESTAURANT_HEADER_LINES = (
    "Rua Exemplo, 123 - Centro",
    "Cidade - Estado",
    "Tel: (00) 0000-0000",
)

PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 24
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNSMono.ttf"
PRINTER_LEFT_INDENT_PX = 8
PRINTER_TAIL_SPACER_PX = 70
# Characters per line for the 58mm text layouts.
PRINTER_LINE_CHARS = 32
