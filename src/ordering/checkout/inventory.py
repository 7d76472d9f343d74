"""Inventory debits for committed lines, and their compensating restocks."""

import structlog

from ordering.catalog import CatalogStore, get_catalog
from ordering.errors import InsufficientInventory

logger = structlog.get_logger(__name__)


def debit_lines(lines, catalog: CatalogStore | None = None) -> list:
    """Debit every line, all or nothing.

    If any debit cannot be covered, the lines already debited are restocked
    and ``InsufficientInventory`` names the product that ran out.
    """
    catalog = catalog or get_catalog()
    debited = []
    for line in lines:
        if not catalog.debit_inventory(str(line.product_id), line.variant_key, line.quantity):
            logger.warning(
                "inventory_debit_failed",
                product_id=str(line.product_id),
                variant_key=line.variant_key,
                quantity=line.quantity,
            )
            restock_lines(debited, catalog)
            raise InsufficientInventory(str(line.product_id), getattr(line, "product_name", None))
        debited.append(line)
    return debited


def restock_lines(lines, catalog: CatalogStore | None = None) -> None:
    catalog = catalog or get_catalog()
    for line in lines:
        catalog.restock_inventory(str(line.product_id), line.variant_key, line.quantity)
