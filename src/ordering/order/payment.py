"""Payment settlement and order notes: commands and handler."""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Actor, Order


@ordering.command(part_of="Order")
class SettlePayment:
    """The external payment collaborator reported whether the charge succeeded."""

    order_id = Identifier(required=True)
    succeeded = Boolean(required=True)


@ordering.command(part_of="Order")
class UpdateOrderNotes:
    order_id = Identifier(required=True)
    notes = String(max_length=1000)
    actor = String(required=True, choices=Actor)
    actor_id = Identifier()


@ordering.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(SettlePayment)
    def settle_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.settle_payment(succeeded=command.succeeded)
        repo.add(order)
        return order.payment_status

    @handle(UpdateOrderNotes)
    def update_notes(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_notes(command.notes, actor=command.actor, actor_id=command.actor_id)
        repo.add(order)
