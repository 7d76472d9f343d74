"""Typed failures raised by the checkout pipeline and the order lifecycle.

Input validation uses protean's ``ValidationError``; everything here is a
business outcome the HTTP layer maps to a status code.
"""


class OrderingError(Exception):
    status_code = 400
    code = "ordering_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "details": self.details}


class EmptyCart(OrderingError):
    status_code = 409
    code = "empty_cart"

    def __init__(self, message: str = "Cart is empty. Nothing to order") -> None:
        super().__init__(message)


class NoAvailableItems(OrderingError):
    """Every line was removed during reconciliation."""

    status_code = 409
    code = "no_available_items"

    def __init__(self, removed_lines: list) -> None:
        self.removed_lines = list(removed_lines)
        super().__init__(
            "None of the items in your cart are available. Unavailable items have been removed",
            details={"removed_items": [line.to_dict() for line in self.removed_lines]},
        )


class ConcurrencyFailure(OrderingError):
    """Lost a race for a shared resource. The attempt was rolled back and may be retried."""

    status_code = 409
    code = "concurrency_failure"


class InsufficientInventory(ConcurrencyFailure):
    code = "insufficient_inventory"

    def __init__(self, product_id: str, product_name: str | None = None) -> None:
        self.product_id = product_id
        label = product_name or product_id
        super().__init__(
            f"Insufficient inventory for {label}",
            details={"product_id": product_id},
        )


class CouponUsageExhausted(ConcurrencyFailure):
    code = "coupon_usage_exhausted"

    def __init__(self, coupon_code: str) -> None:
        self.coupon_code = coupon_code
        super().__init__(
            f"Coupon {coupon_code} has reached its usage limit",
            details={"coupon_code": coupon_code},
        )


class AssignmentConflict(ConcurrencyFailure):
    code = "assignment_conflict"

    def __init__(self, order_id: str, message: str = "Order has already been assigned to another courier") -> None:
        self.order_id = order_id
        super().__init__(message, details={"order_id": order_id})


class OrderNumberAllocationFailed(OrderingError):
    status_code = 500
    code = "order_number_allocation_failed"

    def __init__(self, attempts: int) -> None:
        super().__init__(
            "Failed to generate unique order number after multiple attempts",
            details={"attempts": attempts},
        )


class InvalidTransition(OrderingError):
    status_code = 409
    code = "invalid_transition"

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move order from {current} to {requested}",
            details={"current_status": current, "requested_status": requested},
        )


class Forbidden(OrderingError):
    status_code = 403
    code = "forbidden"
