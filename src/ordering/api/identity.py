"""Caller identity, resolved from headers set by the upstream auth gateway.

The gateway authenticates the caller. This layer only reads who they are
and leaves ownership checks to the domain.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

from ordering.order.order import Actor


@dataclass(frozen=True)
class Identity:
    actor: Actor
    actor_id: str


def resolve_identity(
    x_user_id: str | None = Header(default=None),
    x_vendor_id: str | None = Header(default=None),
    x_courier_id: str | None = Header(default=None),
    x_admin_id: str | None = Header(default=None),
) -> Identity:
    for actor, value in (
        (Actor.ADMIN, x_admin_id),
        (Actor.VENDOR, x_vendor_id),
        (Actor.COURIER, x_courier_id),
        (Actor.CUSTOMER, x_user_id),
    ):
        if value:
            return Identity(actor=actor, actor_id=value)
    raise HTTPException(status_code=401, detail="Authentication required")


def _require(*actors: Actor):
    def dependency(identity: Identity = Depends(resolve_identity)) -> Identity:
        if identity.actor not in actors:
            raise HTTPException(status_code=403, detail="Not allowed for this kind of account")
        return identity

    return dependency


require_customer = _require(Actor.CUSTOMER)
require_vendor = _require(Actor.VENDOR, Actor.ADMIN)
require_courier = _require(Actor.COURIER)
require_admin = _require(Actor.ADMIN)
require_coupon_issuer = _require(Actor.VENDOR, Actor.ADMIN)
