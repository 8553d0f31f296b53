"""Tests for the product catalog."""

from decimal import Decimal

import pytest

from comanda.catalog import ProductCatalog
from comanda.config import PRODUCTS_KEY
from comanda.errors import CorruptStateError, NotFoundError, ValidationError
from comanda.persistence import MemoryCollectionStore


def test_first_load_seeds_defaults(catalog, store, clock):
    products = catalog.products
    assert [p.id for p in products] == ["1", "2", "3", "4", "5"]
    assert all(p.created_at == clock.now for p in products)
    assert [p.id for p in products if p.for_kitchen] == ["4", "5"]
    assert len(store.load(PRODUCTS_KEY)) == 5


def test_existing_empty_catalog_is_not_reseeded(clock):
    store = MemoryCollectionStore({PRODUCTS_KEY: "[]"})
    catalog = ProductCatalog(store, clock=clock)
    catalog.load()
    assert catalog.products == ()


def test_add_update_delete(catalog):
    product = catalog.add_product("  Caipirinha ", "18,90")
    assert product.name == "Caipirinha"
    assert product.price == Decimal("18.90")
    assert catalog.lookup(product.id).name == "Caipirinha"

    updated = catalog.update_product(product.id, "Caipiroska", "22", for_kitchen=False)
    assert updated.price == Decimal("22.00")

    catalog.delete_product(product.id)
    assert catalog.get_product(product.id) is None
    with pytest.raises(NotFoundError):
        catalog.delete_product(product.id)
    with pytest.raises(NotFoundError):
        catalog.update_product(product.id, "X", "1")


@pytest.mark.parametrize("name,price", [("", "5"), ("   ", "5"), ("Suco", "0"), ("Suco", "-3"), ("Suco", "x")])
def test_invalid_products_are_rejected(catalog, name, price):
    with pytest.raises(ValidationError):
        catalog.add_product(name, price)
    assert len(catalog.products) == 5


def test_lookup_unknown_product(catalog):
    assert catalog.get_product("99") is None
    with pytest.raises(NotFoundError):
        catalog.lookup("99")


def test_corrupt_catalog_is_emptied(clock):
    store = MemoryCollectionStore({PRODUCTS_KEY: '[{"id": "1"}]'})
    catalog = ProductCatalog(store, clock=clock)
    with pytest.raises(CorruptStateError) as excinfo:
        catalog.load()
    assert excinfo.value.keys == (PRODUCTS_KEY,)
    assert catalog.products == ()
