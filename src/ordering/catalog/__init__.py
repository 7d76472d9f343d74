"""Catalog store factory.

Provides get_catalog() / set_catalog() to swap implementations. The
in-memory catalog is the default for development and tests. The adapter
imports this package, so it is loaded on first use rather than here.
"""

from ordering.catalog.port import ApprovalStatus, CatalogStore, ProductSnapshot, Promotion

_current_catalog: CatalogStore | None = None


def get_catalog() -> CatalogStore:
    """Return the current catalog store. Defaults to InMemoryCatalog."""
    global _current_catalog
    if _current_catalog is None:
        from ordering.catalog.memory_adapter import InMemoryCatalog

        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CatalogStore) -> None:
    """Override the active catalog store (useful for tests)."""
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    """Reset to the default catalog store."""
    global _current_catalog
    _current_catalog = None


__all__ = [
    "ApprovalStatus",
    "CatalogStore",
    "ProductSnapshot",
    "Promotion",
    "get_catalog",
    "reset_catalog",
    "set_catalog",
]
