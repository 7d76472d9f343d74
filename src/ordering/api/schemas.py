"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal protean commands.
"""

from datetime import UTC, date, datetime

from pydantic import BaseModel, Field, field_validator

from ordering.coupon.terms import OfferKind
from ordering.order.order import OrderStatus, PaymentMethod


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    line1: str
    line2: str | None = None
    city: str
    state: str
    pin_code: str = Field(pattern=r"^[0-9]{6}$")
    phone: str
    landmark: str | None = None


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    variant_key: str | None = None
    quantity: int = Field(ge=1, default=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "variant_key": "SKU-RED-M",
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    quantity: int = Field(ge=1)


class ApplyCouponRequest(BaseModel):
    coupon_code: str = Field(min_length=1, max_length=50)


class ItemIdResponse(BaseModel):
    item_id: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    shipping_address: AddressSchema
    payment_method: PaymentMethod = PaymentMethod.COD
    notes: str | None = Field(default=None, max_length=1000)
    idempotency_key: str | None = Field(default=None, max_length=100)


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus
    reason: str | None = Field(default=None, max_length=500)


class UpdateNotesRequest(BaseModel):
    notes: str = Field(max_length=1000)


class SettlePaymentRequest(BaseModel):
    succeeded: bool


class OrderListResponse(BaseModel):
    orders: list[dict]
    total: int
    page: int
    per_page: int


# ---------------------------------------------------------------------------
# Coupons and couriers
# ---------------------------------------------------------------------------
def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class IssueCouponRequest(BaseModel):
    code: str = Field(pattern=r"^[A-Za-z0-9]+$", max_length=50)
    name: str = Field(max_length=100)
    description: str | None = Field(default=None, max_length=500)
    offer_kind: OfferKind
    terms: dict = Field(default_factory=dict)
    min_amount: float = Field(default=0.0, ge=0)
    max_amount: float | None = Field(default=None, ge=0)
    scope: str = Field(default="all", pattern=r"^(all|select)$")
    category_ids: list[str] = Field(default_factory=list)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=1)

    @field_validator("valid_from", "valid_until")
    @classmethod
    def _assume_utc(cls, value):
        return _as_utc(value)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "SAVE10",
                    "name": "Ten percent off",
                    "offer_kind": "percentage",
                    "terms": {"percentage": 10},
                    "min_amount": 150,
                    "usage_limit": 100,
                },
                {
                    "code": "LUNCH50",
                    "name": "Lunch hour offer",
                    "offer_kind": "daily_offer",
                    "terms": {
                        "amount": 50,
                        "product_ids": ["prod-001"],
                        "starts_on": str(date(2026, 1, 1)),
                        "ends_on": str(date(2026, 1, 31)),
                        "opens_at": "12:00",
                        "closes_at": "14:00",
                    },
                },
            ]
        }
    }


class CouponIdResponse(BaseModel):
    coupon_id: str


class RegisterCourierRequest(BaseModel):
    name: str = Field(max_length=100)
    phone: str | None = Field(default=None, max_length=15)
    vendor_id: str


class CourierIdResponse(BaseModel):
    courier_id: str


class ExpireOffersResponse(BaseModel):
    expired: int


class RebroadcastResponse(BaseModel):
    offered: int


class CourierAvailabilityRequest(BaseModel):
    is_active: bool
