"""Tests for the order ledger: items, cancellations, payments and closing."""

from decimal import Decimal

import pytest

from comanda.config import OPEN_ORDERS_KEY, ORDER_HISTORY_KEY
from comanda.errors import CorruptStateError, NotFoundError, ValidationError
from comanda.ledger import OrderLedger
from comanda.models import ZERO, remaining_balance
from comanda.persistence import MemoryCollectionStore


def _assert_total_invariant(order):
    active = sum((item.total for item in order.items if not item.cancelled), ZERO)
    assert order.total == max(ZERO, active - order.discount)


def test_mesa_1_walkthrough(ledger):
    order = ledger.create_order("Mesa 1")
    row = ledger.add_item_to_order(order.id, "p1", "Prato", 2, "10.00")
    assert ledger.get_order(order.id).total == Decimal("20.00")

    cancelled = ledger.cancel_item(order.id, row.id, 1)
    current = ledger.get_order(order.id)
    active = current.find_item(row.id)
    assert (active.quantity, active.total, active.cancelled) == (1, Decimal("10.00"), False)
    assert (cancelled.quantity, cancelled.total, cancelled.cancelled) == (1, Decimal("10.00"), True)
    assert cancelled.id != row.id
    assert current.total == Decimal("10.00")

    ledger.add_partial_payment(order.id, "6.00", "cash")
    assert remaining_balance(ledger.get_order(order.id)) == Decimal("4.00")

    closed = ledger.pay_order(order.id, "pix")
    assert ledger.get_order(order.id) is None
    assert ledger.order_history[0].id == order.id
    assert closed.status == "paid"
    assert closed.payment_method == "pix"
    assert [(p.amount, p.method) for p in closed.partial_payments] == [(Decimal("6.00"), "cash")]
    assert closed.total == Decimal("10.00")


def test_create_order_requires_name(ledger):
    with pytest.raises(ValidationError):
        ledger.create_order("   ")
    assert ledger.open_orders == ()


def test_create_order_defaults(ledger, clock):
    order = ledger.create_order("  Balcão ")
    assert order.name == "Balcão"
    assert order.status == "open"
    assert order.total == ZERO
    assert order.items == []
    assert order.opened_at == clock.now


def test_adding_same_product_merges_and_keeps_first_price(ledger):
    order = ledger.create_order("Mesa 2")
    first = ledger.add_item_to_order(order.id, "p1", "Suco", 1, "8.00")
    merged = ledger.add_item_to_order(order.id, "p1", "Suco", 2, "9.50")

    current = ledger.get_order(order.id)
    assert len(current.items) == 1
    assert merged.id == first.id
    assert merged.quantity == 3
    assert merged.unit_price == Decimal("8.00")
    assert current.total == Decimal("24.00")


def test_cancelled_row_does_not_absorb_new_units(ledger):
    order = ledger.create_order("Mesa 3")
    row = ledger.add_item_to_order(order.id, "p1", "Suco", 1, "8.00")
    ledger.cancel_item(order.id, row.id)
    ledger.add_item_to_order(order.id, "p1", "Suco", 1, "8.00")

    current = ledger.get_order(order.id)
    assert len(current.items) == 2
    assert current.total == Decimal("8.00")


@pytest.mark.parametrize("quantity", [0, -2, 1.5, True, "2"])
def test_add_item_rejects_bad_quantity(ledger, quantity):
    order = ledger.create_order("Mesa 4")
    with pytest.raises(ValidationError):
        ledger.add_item_to_order(order.id, "p1", "Suco", quantity, "8.00")
    assert ledger.get_order(order.id).items == []


def test_add_item_to_unknown_order(ledger):
    with pytest.raises(NotFoundError):
        ledger.add_item_to_order("missing", "p1", "Suco", 1, "8.00")


def test_add_product_uses_catalog_snapshot(ledger, catalog):
    order = ledger.create_order("Mesa 5")
    row = ledger.add_product_to_order(order.id, "5", 2)
    assert row.product_name == "Hambúrguer Artesanal"
    assert row.unit_price == Decimal("42.00")

    catalog.update_product("5", "Hambúrguer Artesanal", "50.00", for_kitchen=True)
    assert ledger.get_order(order.id).items[0].unit_price == Decimal("42.00")

    with pytest.raises(NotFoundError):
        ledger.add_product_to_order(order.id, "nope")


def test_repeat_item_adds_same_quantity(ledger):
    order = ledger.create_order("Mesa 6")
    row = ledger.add_item_to_order(order.id, "p1", "Cerveja", 2, "12.00")
    repeated = ledger.repeat_item(order.id, row.id)
    assert repeated.quantity == 4
    assert ledger.get_order(order.id).total == Decimal("48.00")


def test_cancel_whole_row_when_quantity_omitted_or_exceeds(ledger):
    order = ledger.create_order("Mesa 7")
    a = ledger.add_item_to_order(order.id, "p1", "Suco", 2, "8.00")
    b = ledger.add_item_to_order(order.id, "p2", "Água", 1, "5.00")

    ledger.cancel_item(order.id, a.id, 5)
    ledger.cancel_item(order.id, b.id)

    current = ledger.get_order(order.id)
    assert len(current.items) == 2
    assert all(item.cancelled for item in current.items)
    assert current.find_item(a.id).quantity == 2
    assert current.total == ZERO


def test_partial_cancel_split_preserves_quantity(ledger):
    order = ledger.create_order("Mesa 8")
    row = ledger.add_item_to_order(order.id, "p1", "Pastel", 5, "6.00")
    ledger.cancel_item(order.id, row.id, 2)

    current = ledger.get_order(order.id)
    assert sum(item.quantity for item in current.items) == 5
    assert current.find_item(row.id).cancelled is False
    _assert_total_invariant(current)


@pytest.mark.parametrize("quantity", [0, -1])
def test_cancel_item_rejects_non_positive_quantity(ledger, quantity):
    order = ledger.create_order("Mesa 9")
    row = ledger.add_item_to_order(order.id, "p1", "Pastel", 3, "6.00")
    with pytest.raises(ValidationError):
        ledger.cancel_item(order.id, row.id, quantity)
    assert ledger.get_order(order.id).find_item(row.id).quantity == 3


def test_cancel_already_cancelled_row_is_rejected(ledger):
    order = ledger.create_order("Mesa 10")
    row = ledger.add_item_to_order(order.id, "p1", "Pastel", 1, "6.00")
    ledger.cancel_item(order.id, row.id)
    with pytest.raises(ValidationError):
        ledger.cancel_item(order.id, row.id)


def test_cancel_unknown_item(ledger):
    order = ledger.create_order("Mesa 11")
    with pytest.raises(NotFoundError):
        ledger.cancel_item(order.id, "ghost")


def test_remove_item_twice_fails_second_time(ledger):
    order = ledger.create_order("Mesa 12")
    row = ledger.add_item_to_order(order.id, "p1", "Pastel", 1, "6.00")
    keep = ledger.add_item_to_order(order.id, "p2", "Suco", 1, "8.00")
    ledger.remove_item(order.id, row.id)
    before = ledger.get_order(order.id)

    with pytest.raises(NotFoundError):
        ledger.remove_item(order.id, row.id)
    after = ledger.get_order(order.id)
    assert after == before
    assert [item.id for item in after.items] == [keep.id]


def test_discount_is_clamped_and_total_never_negative(ledger):
    order = ledger.create_order("Mesa 13")
    ledger.add_item_to_order(order.id, "p1", "Pastel", 2, "6.00")

    assert ledger.set_order_discount(order.id, "-5").discount == ZERO
    discounted = ledger.set_order_discount(order.id, "2,50")
    assert discounted.total == Decimal("9.50")
    assert ledger.set_order_discount(order.id, 100).total == ZERO

    with pytest.raises(ValidationError):
        ledger.set_order_discount(order.id, "abc")


def test_partial_payment_limits(ledger):
    order = ledger.create_order("Mesa 14")
    ledger.add_item_to_order(order.id, "p1", "Pastel", 2, "10.00")

    for amount in ("0", "-1", "20.01"):
        with pytest.raises(ValidationError):
            ledger.add_partial_payment(order.id, amount, "cash")
    with pytest.raises(ValidationError):
        ledger.add_partial_payment(order.id, "5", "cheque")

    ledger.add_partial_payment(order.id, "15", "card")
    with pytest.raises(ValidationError):
        ledger.add_partial_payment(order.id, "5.01", "pix")
    ledger.add_partial_payment(order.id, "5", "pix")

    current = ledger.get_order(order.id)
    assert current.paid_amount() == current.total
    assert remaining_balance(current) == ZERO
    assert current.status == "open"


def test_remove_partial_payment_leaves_total(ledger):
    order = ledger.create_order("Mesa 15")
    ledger.add_item_to_order(order.id, "p1", "Pastel", 2, "10.00")
    payment = ledger.add_partial_payment(order.id, "7", "cash")

    ledger.remove_partial_payment(order.id, payment.id)
    current = ledger.get_order(order.id)
    assert current.partial_payments == []
    assert current.total == Decimal("20.00")

    with pytest.raises(NotFoundError):
        ledger.remove_partial_payment(order.id, payment.id)


def test_remaining_balance_never_negative(ledger):
    order = ledger.create_order("Mesa 16")
    ledger.add_item_to_order(order.id, "p1", "Pastel", 2, "10.00")
    ledger.add_partial_payment(order.id, "20", "cash")
    discounted = ledger.set_order_discount(order.id, "5")
    assert ledger.get_order_remaining_balance(discounted) == ZERO


def test_cancel_order_moves_to_history_without_method(ledger, clock):
    order = ledger.create_order("Mesa 17")
    clock.advance(minutes=40)
    closed = ledger.cancel_order(order.id)

    assert closed.status == "cancelled"
    assert closed.payment_method is None
    assert closed.closed_at == clock.now
    assert [o.id for o in ledger.order_history] == [order.id]
    assert ledger.open_orders == ()


def test_finalized_order_is_prepended_and_cannot_be_finalized_again(ledger):
    first = ledger.create_order("A")
    second = ledger.create_order("B")
    ledger.pay_order(first.id, "cash")
    ledger.pay_order(second.id, "card")
    assert [o.name for o in ledger.order_history] == ["B", "A"]

    with pytest.raises(NotFoundError):
        ledger.pay_order(first.id, "cash")
    with pytest.raises(NotFoundError):
        ledger.cancel_order(first.id)


def test_pay_order_rejects_unknown_method(ledger):
    order = ledger.create_order("Mesa 18")
    with pytest.raises(ValidationError):
        ledger.pay_order(order.id, "cheque")
    assert ledger.get_order(order.id) is not None


def test_closed_orders_are_immutable(ledger):
    order = ledger.create_order("Mesa 19")
    row = ledger.add_item_to_order(order.id, "p1", "Pastel", 1, "6.00")
    ledger.pay_order(order.id, "cash")

    with pytest.raises(NotFoundError):
        ledger.add_item_to_order(order.id, "p1", "Pastel", 1, "6.00")
    with pytest.raises(NotFoundError):
        ledger.cancel_item(order.id, row.id)
    assert ledger.find_order(order.id).status == "paid"


class FailingStore(MemoryCollectionStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def save_many(self, collections):
        if self.fail:
            raise OSError("disk full")
        super().save_many(collections)


def test_failed_write_leaves_memory_and_store_untouched(clock):
    store = FailingStore()
    ledger = OrderLedger(store, clock=clock)
    ledger.load()
    order = ledger.create_order("Mesa 20")
    ledger.add_item_to_order(order.id, "p1", "Pastel", 1, "6.00")
    snapshot = dict(store.payloads)

    store.fail = True
    with pytest.raises(OSError):
        ledger.pay_order(order.id, "cash")

    assert store.payloads == snapshot
    assert [o.id for o in ledger.open_orders] == [order.id]
    assert ledger.order_history == ()


def test_finalize_writes_both_collections_together(ledger, store):
    order = ledger.create_order("Mesa 21")
    writes = []
    original = store.save_many

    def recording(collections):
        writes.append(set(collections))
        original(collections)

    store.save_many = recording
    ledger.pay_order(order.id, "pix")
    assert writes == [{OPEN_ORDERS_KEY, ORDER_HISTORY_KEY}]


def test_delete_from_history(ledger):
    order = ledger.create_order("Mesa 22")
    ledger.cancel_order(order.id)
    ledger.delete_from_history(order.id)
    assert ledger.order_history == ()

    with pytest.raises(NotFoundError):
        ledger.delete_from_history(order.id)


def test_today_total_counts_paid_orders_closed_today(ledger, clock):
    paid = ledger.create_order("Mesa 23")
    ledger.add_item_to_order(paid.id, "p1", "Pastel", 2, "10.00")
    ledger.pay_order(paid.id, "cash")

    cancelled = ledger.create_order("Mesa 24")
    ledger.add_item_to_order(cancelled.id, "p1", "Pastel", 1, "10.00")
    ledger.cancel_order(cancelled.id)

    assert ledger.get_today_total() == Decimal("20.00")
    clock.advance(days=1)
    assert ledger.get_today_total() == ZERO


def test_state_survives_reload(ledger, store, clock):
    order = ledger.create_order("Mesa 25")
    ledger.add_item_to_order(order.id, "p1", "Pastel", 3, "6.00")
    ledger.add_partial_payment(order.id, "4.50", "pix")

    reloaded = OrderLedger(store, clock=clock)
    reloaded.load()
    assert reloaded.open_orders == ledger.open_orders


def test_views_are_copies(ledger):
    order = ledger.create_order("Mesa 26")
    view = ledger.get_order(order.id)
    view.name = "changed"
    view.items.append(None)
    assert ledger.get_order(order.id).name == "Mesa 26"
    assert ledger.get_order(order.id).items == []


def test_corrupt_collection_loads_empty_and_raises(store, clock):
    store.payloads[OPEN_ORDERS_KEY] = "{not json"
    store.payloads[ORDER_HISTORY_KEY] = "[]"
    ledger = OrderLedger(store, clock=clock)

    with pytest.raises(CorruptStateError) as excinfo:
        ledger.load()
    assert excinfo.value.keys == (OPEN_ORDERS_KEY,)
    assert ledger.open_orders == ()

    # Still usable after the failure.
    order = ledger.create_order("Mesa 27")
    assert ledger.get_order(order.id) is not None


def test_invalid_record_counts_as_corrupt(store, clock):
    store.payloads[ORDER_HISTORY_KEY] = '[{"id": "x", "status": "paid"}]'
    ledger = OrderLedger(store, clock=clock)
    with pytest.raises(CorruptStateError) as excinfo:
        ledger.load()
    assert excinfo.value.keys == (ORDER_HISTORY_KEY,)
    assert ledger.order_history == ()
