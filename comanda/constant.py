"""Editable static catalog seeds and display labels."""

from __future__ import annotations

# Seeded into an empty catalog on first run.
DEFAULT_PRODUCTS: list[dict[str, object]] = [
    {"id": "1", "name": "Água Mineral", "price": "5.00", "for_kitchen": False},
    {"id": "2", "name": "Refrigerante Lata", "price": "7.00", "for_kitchen": False},
    {"id": "3", "name": "Cerveja Long Neck", "price": "12.00", "for_kitchen": False},
    {"id": "4", "name": "Porção de Batata Frita", "price": "35.00", "for_kitchen": True},
    {"id": "5", "name": "Hambúrguer Artesanal", "price": "42.00", "for_kitchen": True},
]

PAYMENT_METHOD_LABELS: dict[str, str] = {
    "cash": "Espécie",
    "pix": "Pix",
    "card": "Cartão",
}

# Single-key shortcuts used by the payment method prompt.
PAYMENT_METHOD_KEYS: dict[str, str] = {
    "e": "cash",
    "p": "pix",
    "c": "card",
}

STATUS_LABELS: dict[str, str] = {
    "open": "Aberta",
    "paid": "Paga",
    "cancelled": "Cancelada",
}

PERIOD_LABELS: dict[str, str] = {
    "week": "7 dias",
    "month": "30 dias",
    "all": "Tudo",
}
