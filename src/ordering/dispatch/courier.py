"""Courier aggregate: a delivery rider affiliated with one vendor."""

from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering

_PAGE_SIZE = 100


class CourierApproval(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@ordering.aggregate
class Courier:
    name = String(required=True, max_length=100)
    phone = String(max_length=15)
    vendor_id = Identifier(required=True)
    is_active = Boolean(default=True)
    approval_status = String(choices=CourierApproval, default=CourierApproval.PENDING.value)
    registered_at = DateTime()

    @property
    def is_eligible(self) -> bool:
        return bool(self.is_active) and self.approval_status == CourierApproval.APPROVED.value

    def serves_any(self, vendor_ids) -> bool:
        return str(self.vendor_id) in {str(v) for v in vendor_ids}


@ordering.repository(part_of=Courier)
class CourierRepository:
    def eligible_for_vendors(self, vendor_ids) -> list[Courier]:
        """Every active, approved courier affiliated with any of ``vendor_ids``."""
        vendor_ids = sorted({str(v) for v in vendor_ids})
        if not vendor_ids:
            return []

        couriers, offset = [], 0
        while True:
            results = (
                self._dao.query.filter(
                    vendor_id__in=vendor_ids,
                    is_active=True,
                    approval_status=CourierApproval.APPROVED.value,
                )
                .order_by("id")
                .offset(offset)
                .limit(_PAGE_SIZE)
                .all()
            )
            couriers.extend(results.items)
            if not results.has_next:
                return couriers
            offset += _PAGE_SIZE


@ordering.command(part_of="Courier")
class RegisterCourier:
    name = String(required=True, max_length=100)
    phone = String(max_length=15)
    vendor_id = Identifier(required=True)
    approval_status = String(choices=CourierApproval, default=CourierApproval.APPROVED.value)
    is_active = Boolean(default=True)


@ordering.command(part_of="Courier")
class SetCourierAvailability:
    courier_id = Identifier(required=True)
    is_active = Boolean(required=True)


@ordering.command_handler(part_of=Courier)
class CourierRegistrationHandler:
    @handle(RegisterCourier)
    def register_courier(self, command):
        courier = Courier(
            name=command.name,
            phone=command.phone,
            vendor_id=command.vendor_id,
            approval_status=command.approval_status,
            is_active=command.is_active,
            registered_at=datetime.now(UTC),
        )
        current_domain.repository_for(Courier).add(courier)
        return str(courier.id)

    @handle(SetCourierAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(Courier)
        courier = repo.get(command.courier_id)
        courier.is_active = command.is_active
        repo.add(courier)
