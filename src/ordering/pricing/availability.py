"""Purchasability checks shared by cart mutations and reconciliation."""

from ordering.catalog.port import ApprovalStatus, ProductSnapshot


def unavailability_reason(product: ProductSnapshot | None) -> str | None:
    """Why a product cannot be bought at all, or None if it can."""
    if product is None:
        return "Product not found"
    if not product.vendor_active:
        return "Vendor is inactive"
    if not product.is_active:
        return "Product is inactive"
    if product.approval_status == ApprovalStatus.PENDING.value:
        return "Product is pending approval"
    if product.approval_status == ApprovalStatus.REJECTED.value:
        return "Product has been rejected"
    if product.approval_status != ApprovalStatus.APPROVED.value:
        return "Product is not approved"
    return None


def variant_reason(product: ProductSnapshot, variant_key: str | None) -> str | None:
    if not product.has_variants:
        return None
    if not variant_key:
        return "SKU is required for this product"
    if variant_key not in product.variants:
        return "Invalid SKU"
    return None


def stock_reason(product: ProductSnapshot, variant_key: str | None, quantity: int) -> str | None:
    available = product.available_quantity(variant_key)
    if quantity > available:
        return f"Only {available} items available in stock"
    return None


def line_reason(product: ProductSnapshot | None, variant_key: str | None, quantity: int) -> str | None:
    """First reason a cart line cannot be fulfilled, checking in a fixed order."""
    return (
        unavailability_reason(product)
        or variant_reason(product, variant_key)
        or stock_reason(product, variant_key, quantity)
    )
