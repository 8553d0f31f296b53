"""Tests for money coercion, record conversion and display formatting."""

from datetime import datetime
from decimal import Decimal

import pytest

from comanda.data import format_currency, payment_method_label
from comanda.errors import ValidationError
from comanda.models import Order, money_to_json, order_from_record, order_to_record, to_money

from conftest import BRT


@pytest.mark.parametrize(
    "value,expected",
    [("10", "10.00"), ("2,345", "2.35"), (7, "7.00"), (0.1, "0.10"), (" 3.5 ", "3.50")],
)
def test_to_money(value, expected):
    assert to_money(value) == Decimal(expected)


@pytest.mark.parametrize("value", [True, None, "", "abc", "nan", "inf"])
def test_to_money_rejects(value):
    with pytest.raises(ValidationError):
        to_money(value)


def test_money_to_json_keeps_integers():
    assert money_to_json(Decimal("20.00")) == 20
    assert isinstance(money_to_json(Decimal("20.00")), int)
    assert money_to_json(Decimal("10.50")) == 10.5


def test_open_order_record_has_camel_case_keys_and_no_closing_fields():
    order = Order(id="o1", name="Mesa 1", opened_at=datetime(2024, 5, 10, 19, 0, tzinfo=BRT))
    record = order_to_record(order)
    assert set(record) == {"id", "name", "openedAt", "items", "status", "total", "partialPayments", "discount"}
    assert record["openedAt"] == "2024-05-10T19:00:00-03:00"


def test_legacy_record_without_optional_fields():
    order = order_from_record(
        {
            "id": "o2",
            "name": "Mesa 2",
            "openedAt": "2024-05-10T22:00:00.000Z",
            "items": [
                {"id": "i1", "productId": "1", "productName": "Água", "quantity": 2, "unitPrice": 5, "total": 10}
            ],
            "status": "paid",
            "total": 10,
            "closedAt": "2024-05-10T23:00:00.000Z",
            "paymentMethod": "cash",
        }
    )
    assert order.partial_payments == []
    assert order.discount == Decimal("0.00")
    assert order.items[0].cancelled is False
    assert order.closed_at.utcoffset().total_seconds() == 0


@pytest.mark.parametrize(
    "record",
    [
        "not a dict",
        {"id": "x", "name": "A", "openedAt": "2024-05-10T10:00:00Z", "status": "closed"},
        {"id": "x", "name": "A", "openedAt": "yesterday", "status": "open"},
        {
            "id": "x",
            "name": "A",
            "openedAt": "2024-05-10T10:00:00Z",
            "status": "open",
            "items": [{"id": "i", "productId": "1", "productName": "B", "quantity": "2", "unitPrice": 1, "total": 2}],
        },
    ],
)
def test_invalid_order_records(record):
    with pytest.raises(ValidationError):
        order_from_record(record)


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "R$ 1.234,50"
    assert format_currency(Decimal("0")) == "R$ 0,00"
    assert format_currency(Decimal("-3.2")) == "-R$ 3,20"


def test_payment_method_label():
    assert payment_method_label("card") == "Cartão"
    assert payment_method_label(None) == ""
