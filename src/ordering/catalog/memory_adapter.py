"""In-memory catalog store for development and testing.

Stock changes happen under a single lock so that compare-and-debit is
atomic across request threads.
"""

import threading
from dataclasses import replace

import structlog

from ordering.catalog.port import CatalogStore, ProductSnapshot

logger = structlog.get_logger(__name__)


class InMemoryCatalog(CatalogStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._products: dict[str, ProductSnapshot] = {}
        self.debits: list[tuple[str, str | None, int]] = []
        self.restocks: list[tuple[str, str | None, int]] = []

    def register_product(self, product: ProductSnapshot) -> ProductSnapshot:
        with self._lock:
            self._products[product.product_id] = product
        return product

    def update_product(self, product_id: str, **changes) -> ProductSnapshot:
        """Replace fields of a registered product (price changes, deactivation, ...)."""
        with self._lock:
            updated = replace(self._products[product_id], **changes)
            self._products[product_id] = updated
        return updated

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        with self._lock:
            return self._products.get(str(product_id))

    def debit_inventory(self, product_id: str, variant_key: str | None, quantity: int) -> bool:
        with self._lock:
            product = self._products.get(str(product_id))
            if product is None:
                return False

            if product.has_variants:
                available = product.variants.get(variant_key, 0) if variant_key else 0
                if available < quantity:
                    return False
                variants = dict(product.variants)
                variants[variant_key] = available - quantity
                self._products[product.product_id] = replace(product, variants=variants)
            else:
                if product.inventory < quantity:
                    return False
                self._products[product.product_id] = replace(product, inventory=product.inventory - quantity)

            self.debits.append((product.product_id, variant_key, quantity))
            return True

    def restock_inventory(self, product_id: str, variant_key: str | None, quantity: int) -> None:
        with self._lock:
            product = self._products.get(str(product_id))
            if product is None:
                logger.warning("restock_unknown_product", product_id=str(product_id), quantity=quantity)
                return

            if product.has_variants and variant_key:
                variants = dict(product.variants)
                variants[variant_key] = variants.get(variant_key, 0) + quantity
                self._products[product.product_id] = replace(product, variants=variants)
            else:
                self._products[product.product_id] = replace(product, inventory=product.inventory + quantity)

            self.restocks.append((product.product_id, variant_key, quantity))
