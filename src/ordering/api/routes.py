"""FastAPI routes for the Ordering domain: cart, orders, vendor and courier views."""

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from ordering.api.identity import (
    Identity,
    require_admin,
    require_coupon_issuer,
    require_courier,
    require_customer,
    require_vendor,
    resolve_identity,
)
from ordering.api.schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CouponIdResponse,
    CourierAvailabilityRequest,
    CourierIdResponse,
    ExpireOffersResponse,
    IssueCouponRequest,
    ItemIdResponse,
    OrderListResponse,
    PlaceOrderRequest,
    RebroadcastResponse,
    RegisterCourierRequest,
    SettlePaymentRequest,
    StatusResponse,
    UpdateCartQuantityRequest,
    UpdateNotesRequest,
    UpdateOrderStatusRequest,
)
from ordering.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, RefreshCart
from ordering.checkout.placement import place_order
from ordering.coupon.issuance import DeactivateCoupon, IssueCoupon
from ordering.dispatch.assignment import AcceptAssignment, ExpireStaleOffers, RebroadcastOffers, RejectAssignment
from ordering.dispatch.courier import Courier, RegisterCourier, SetCourierAvailability
from ordering.errors import Forbidden
from ordering.order.lifecycle import CancelOrder, TransitionOrderStatus
from ordering.order.order import Actor, Order, OrderStatus
from ordering.order.payment import SettlePayment, UpdateOrderNotes
from ordering.utils.locks import cart_key, order_key, process_exclusively


def _load_order(order_id: str, identity: Identity) -> Order:
    order = current_domain.repository_for(Order).get(order_id)
    if not order.is_involved(identity.actor, identity.actor_id):
        raise Forbidden("You are not allowed to view this order")
    return order


def _cart_view(customer_id: str, reconciliation) -> dict:
    return {"customer_id": customer_id, **reconciliation.to_dict()}


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def get_cart(identity: Identity = Depends(require_customer)) -> dict:
    """Reconciled cart view. Lines that can no longer be bought are pruned and reported."""
    reconciliation = process_exclusively(RefreshCart(customer_id=identity.actor_id), cart_key(identity.actor_id))
    return _cart_view(identity.actor_id, reconciliation)


@cart_router.post("/items", status_code=201, response_model=ItemIdResponse)
async def add_cart_item(body: AddToCartRequest, identity: Identity = Depends(require_customer)) -> ItemIdResponse:
    command = AddToCart(
        customer_id=identity.actor_id,
        product_id=body.product_id,
        variant_key=body.variant_key,
        quantity=body.quantity,
    )
    item_id = process_exclusively(command, cart_key(identity.actor_id))
    return ItemIdResponse(item_id=item_id)


@cart_router.patch("/items/{item_id}", response_model=StatusResponse)
async def update_cart_item(
    item_id: str,
    body: UpdateCartQuantityRequest,
    identity: Identity = Depends(require_customer),
) -> StatusResponse:
    command = UpdateCartQuantity(customer_id=identity.actor_id, item_id=item_id, new_quantity=body.quantity)
    process_exclusively(command, cart_key(identity.actor_id))
    return StatusResponse()


@cart_router.delete("/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(item_id: str, identity: Identity = Depends(require_customer)) -> StatusResponse:
    process_exclusively(RemoveFromCart(customer_id=identity.actor_id, item_id=item_id), cart_key(identity.actor_id))
    return StatusResponse()


@cart_router.delete("", response_model=StatusResponse)
async def clear_cart(identity: Identity = Depends(require_customer)) -> StatusResponse:
    process_exclusively(ClearCart(customer_id=identity.actor_id), cart_key(identity.actor_id))
    return StatusResponse()


@cart_router.post("/coupon")
async def apply_coupon(body: ApplyCouponRequest, identity: Identity = Depends(require_customer)) -> dict:
    command = ApplyCouponToCart(customer_id=identity.actor_id, coupon_code=body.coupon_code)
    reconciliation = process_exclusively(command, cart_key(identity.actor_id))
    return _cart_view(identity.actor_id, reconciliation)


@cart_router.delete("/coupon", response_model=StatusResponse)
async def remove_coupon(identity: Identity = Depends(require_customer)) -> StatusResponse:
    process_exclusively(RemoveCouponFromCart(customer_id=identity.actor_id), cart_key(identity.actor_id))
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router (customer view)
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201)
async def create_order(body: PlaceOrderRequest, identity: Identity = Depends(require_customer)) -> dict:
    order = place_order(
        customer_id=identity.actor_id,
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method.value,
        notes=body.notes,
        idempotency_key=body.idempotency_key,
    )
    return order.to_dict()


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    status: OrderStatus | None = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(require_customer),
) -> OrderListResponse:
    orders, total = current_domain.repository_for(Order).for_customer(
        identity.actor_id,
        status=status.value if status else None,
        page=page,
        per_page=per_page,
    )
    return OrderListResponse(orders=[o.to_dict() for o in orders], total=total, page=page, per_page=per_page)


@order_router.get("/{order_id}")
async def get_order(order_id: str, identity: Identity = Depends(resolve_identity)) -> dict:
    order = _load_order(order_id, identity)
    if identity.actor == Actor.VENDOR:
        return order.vendor_view(identity.actor_id)
    return order.to_dict()


@order_router.get("/{order_id}/invoice")
async def get_invoice(order_id: str, identity: Identity = Depends(resolve_identity)) -> dict:
    if identity.actor == Actor.COURIER:
        raise Forbidden("Couriers cannot view invoices")
    order = _load_order(order_id, identity)
    if identity.actor == Actor.VENDOR:
        return order.invoice(vendor_id=identity.actor_id)
    return order.invoice()


@order_router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    identity: Identity = Depends(resolve_identity),
) -> dict:
    command = CancelOrder(
        order_id=order_id,
        actor=identity.actor.value,
        actor_id=identity.actor_id,
        reason=body.reason,
    )
    return process_exclusively(command, order_key(order_id))


@order_router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    identity: Identity = Depends(resolve_identity),
) -> dict:
    command = TransitionOrderStatus(
        order_id=order_id,
        new_status=body.status.value,
        actor=identity.actor.value,
        actor_id=identity.actor_id,
        reason=body.reason,
    )
    return process_exclusively(command, order_key(order_id))


@order_router.patch("/{order_id}/notes", response_model=StatusResponse)
async def update_order_notes(
    order_id: str,
    body: UpdateNotesRequest,
    identity: Identity = Depends(resolve_identity),
) -> StatusResponse:
    command = UpdateOrderNotes(
        order_id=order_id,
        notes=body.notes,
        actor=identity.actor.value,
        actor_id=identity.actor_id,
    )
    process_exclusively(command, order_key(order_id))
    return StatusResponse()


@order_router.post("/{order_id}/payment", response_model=StatusResponse)
async def settle_payment(
    order_id: str,
    body: SettlePaymentRequest,
    identity: Identity = Depends(require_admin),
) -> StatusResponse:
    payment_status = process_exclusively(
        SettlePayment(order_id=order_id, succeeded=body.succeeded),
        order_key(order_id),
    )
    return StatusResponse(status=payment_status)


# ---------------------------------------------------------------------------
# Vendor Router
# ---------------------------------------------------------------------------
vendor_router = APIRouter(prefix="/vendor/orders", tags=["vendor"])


@vendor_router.get("", response_model=OrderListResponse)
async def list_vendor_orders(
    status: OrderStatus | None = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(require_vendor),
) -> OrderListResponse:
    orders, total = current_domain.repository_for(Order).for_vendor(
        identity.actor_id,
        status=status.value if status else None,
        page=page,
        per_page=per_page,
    )
    return OrderListResponse(
        orders=[o.vendor_view(identity.actor_id) for o in orders],
        total=total,
        page=page,
        per_page=per_page,
    )


@vendor_router.post("/{order_id}/rebroadcast", response_model=RebroadcastResponse)
async def rebroadcast_offers(order_id: str, identity: Identity = Depends(require_vendor)) -> RebroadcastResponse:
    _load_order(order_id, identity)
    offered = process_exclusively(RebroadcastOffers(order_id=order_id), order_key(order_id))
    return RebroadcastResponse(offered=offered)


# ---------------------------------------------------------------------------
# Courier Router
# ---------------------------------------------------------------------------
courier_router = APIRouter(prefix="/courier/orders", tags=["courier"])


@courier_router.get("", response_model=OrderListResponse)
async def list_courier_orders(
    status: OrderStatus | None = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(require_courier),
) -> OrderListResponse:
    orders, total = current_domain.repository_for(Order).for_courier(
        identity.actor_id,
        status=status.value if status else None,
        page=page,
        per_page=per_page,
    )
    return OrderListResponse(orders=[o.to_dict() for o in orders], total=total, page=page, per_page=per_page)


@courier_router.get("/available", response_model=OrderListResponse)
async def list_available_orders(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(require_courier),
) -> OrderListResponse:
    courier = current_domain.repository_for(Courier).get(identity.actor_id)
    if not courier.is_eligible:
        return OrderListResponse(orders=[], total=0, page=page, per_page=per_page)
    orders, total = current_domain.repository_for(Order).available_for_courier(
        identity.actor_id,
        courier.vendor_id,
        page=page,
        per_page=per_page,
    )
    return OrderListResponse(orders=[o.to_dict() for o in orders], total=total, page=page, per_page=per_page)


@courier_router.post("/{order_id}/accept")
async def accept_assignment(order_id: str, identity: Identity = Depends(require_courier)) -> dict:
    command = AcceptAssignment(order_id=order_id, courier_id=identity.actor_id)
    return process_exclusively(command, order_key(order_id))


@courier_router.post("/{order_id}/reject", response_model=StatusResponse)
async def reject_assignment(order_id: str, identity: Identity = Depends(require_courier)) -> StatusResponse:
    process_exclusively(RejectAssignment(order_id=order_id, courier_id=identity.actor_id), order_key(order_id))
    return StatusResponse()


@courier_router.post("/{order_id}/deliver")
async def mark_delivered(order_id: str, identity: Identity = Depends(require_courier)) -> dict:
    command = TransitionOrderStatus(
        order_id=order_id,
        new_status=OrderStatus.DELIVERED.value,
        actor=Actor.COURIER.value,
        actor_id=identity.actor_id,
    )
    return process_exclusively(command, order_key(order_id))


# ---------------------------------------------------------------------------
# Admin Router: coupons, couriers and dispatch housekeeping
# ---------------------------------------------------------------------------
admin_router = APIRouter(tags=["admin"])


@admin_router.post("/coupons", status_code=201, response_model=CouponIdResponse)
async def issue_coupon(body: IssueCouponRequest, identity: Identity = Depends(require_coupon_issuer)) -> CouponIdResponse:
    command = IssueCoupon(
        **body.model_dump(exclude={"offer_kind"}),
        offer_kind=body.offer_kind.value,
        issuer_type=identity.actor.value,
        issuer_id=identity.actor_id,
    )
    coupon_id = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=coupon_id)


@admin_router.post("/coupons/{coupon_id}/deactivate", response_model=StatusResponse)
async def deactivate_coupon(coupon_id: str, identity: Identity = Depends(require_coupon_issuer)) -> StatusResponse:
    command = DeactivateCoupon(coupon_id=coupon_id, issuer_type=identity.actor.value, issuer_id=identity.actor_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@admin_router.post("/couriers", status_code=201, response_model=CourierIdResponse)
async def register_courier(
    body: RegisterCourierRequest,
    identity: Identity = Depends(require_vendor),
) -> CourierIdResponse:
    if identity.actor == Actor.VENDOR and body.vendor_id != identity.actor_id:
        raise Forbidden("Vendors can only register their own couriers")
    command = RegisterCourier(name=body.name, phone=body.phone, vendor_id=body.vendor_id)
    courier_id = current_domain.process(command, asynchronous=False)
    return CourierIdResponse(courier_id=courier_id)


@admin_router.patch("/couriers/{courier_id}/availability", response_model=StatusResponse)
async def set_courier_availability(
    courier_id: str,
    body: CourierAvailabilityRequest,
    identity: Identity = Depends(require_vendor),
) -> StatusResponse:
    courier = current_domain.repository_for(Courier).get(courier_id)
    if identity.actor == Actor.VENDOR and str(courier.vendor_id) != identity.actor_id:
        raise Forbidden("Vendors can only manage their own couriers")
    current_domain.process(SetCourierAvailability(courier_id=courier_id, is_active=body.is_active), asynchronous=False)
    return StatusResponse()


@admin_router.post("/dispatch/expire-offers", response_model=ExpireOffersResponse)
async def expire_offers(identity: Identity = Depends(require_admin)) -> ExpireOffersResponse:
    expired = current_domain.process(ExpireStaleOffers(), asynchronous=False)
    return ExpireOffersResponse(expired=expired)
