"""Product catalog backed by the products collection."""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable
from uuid import uuid4

from comanda.config import PRODUCTS_KEY
from comanda.data import default_products
from comanda.errors import CorruptStateError, NotFoundError, ValidationError
from comanda.models import ZERO, Product, product_from_record, product_to_record, to_money
from comanda.persistence import CollectionStore

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _new_id() -> str:
    return str(uuid4())


class ProductCatalog:
    """Name/price lookup for the ledger, plus product maintenance."""

    def __init__(
        self,
        store: CollectionStore,
        clock: Callable[[], datetime] = _local_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.store = store
        self.clock = clock
        self.id_factory = id_factory
        self._products: list[Product] = []

    def load(self) -> None:
        """Read products from the store, seeding defaults on first run.

        A corrupt collection leaves the catalog empty and raises
        CorruptStateError; the catalog stays usable.
        """
        try:
            records = self.store.load(PRODUCTS_KEY)
        except CorruptStateError:
            self._products = []
            logger.error("products collection is corrupt; starting with an empty catalog")
            raise
        if records is None:
            products = default_products(self.clock())
            self._commit(products)
            logger.info("seeded %d default products", len(products))
            return
        try:
            self._products = [product_from_record(record) for record in records]
        except ValidationError as exc:
            self._products = []
            raise CorruptStateError(f"products collection is unreadable: {exc.message}", keys=(PRODUCTS_KEY,)) from exc

    @property
    def products(self) -> tuple[Product, ...]:
        return tuple(copy.deepcopy(self._products))

    def get_product(self, product_id: str) -> Product | None:
        for product in self._products:
            if product.id == product_id:
                return copy.deepcopy(product)
        return None

    def lookup(self, product_id: str) -> Product:
        product = self.get_product(product_id)
        if product is None:
            raise NotFoundError(f"product {product_id!r} not found", entity_id=product_id)
        return product

    def add_product(self, name: str, price: Any, for_kitchen: bool = False) -> Product:
        clean_name, clean_price = _validate_product(name, price)
        product = Product(
            id=self.id_factory(),
            name=clean_name,
            price=clean_price,
            created_at=self.clock(),
            for_kitchen=for_kitchen,
        )
        self._commit([*self._products, product])
        logger.info("product=%s added name=%r price=%s", product.id, product.name, product.price)
        return copy.deepcopy(product)

    def update_product(self, product_id: str, name: str, price: Any, for_kitchen: bool = False) -> Product:
        clean_name, clean_price = _validate_product(name, price)
        products = copy.deepcopy(self._products)
        for product in products:
            if product.id == product_id:
                product.name = clean_name
                product.price = clean_price
                product.for_kitchen = for_kitchen
                self._commit(products)
                logger.info("product=%s updated name=%r price=%s", product_id, clean_name, clean_price)
                return copy.deepcopy(product)
        raise NotFoundError(f"product {product_id!r} not found", entity_id=product_id)

    def delete_product(self, product_id: str) -> None:
        remaining = [product for product in self._products if product.id != product_id]
        if len(remaining) == len(self._products):
            raise NotFoundError(f"product {product_id!r} not found", entity_id=product_id)
        self._commit(remaining)
        logger.info("product=%s deleted", product_id)

    def _commit(self, products: list[Product]) -> None:
        self.store.save(PRODUCTS_KEY, [product_to_record(product) for product in products])
        self._products = products


def _validate_product(name: str, price: Any) -> tuple[str, Decimal]:
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("product name is required")
    clean_price = to_money(price)
    if clean_price <= ZERO:
        raise ValidationError("product price must be > 0")
    return clean_name, clean_price
