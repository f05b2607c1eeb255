"""
Courier assignment and delivery tracking.

Delivery progress drives the order lifecycle: a delivery going in transit
dispatches a confirmed order, and a completed delivery marks the order
delivered. Both happen through orders.services.transition_order in the same
transaction as the delivery update.
"""
import logging
import uuid

from django.db import transaction

from core.exceptions import CourierUnavailable, IllegalTransition, NotFound, OrderValidationError
from core.models import ErrorLog
from orders.models import Order
from orders.services import transition_order
from .models import Courier, OrderDelivery

logger = logging.getLogger(__name__)

DELIVERY_TRANSITIONS = {
    OrderDelivery.Status.ASSIGNED: {OrderDelivery.Status.IN_TRANSIT, OrderDelivery.Status.FAILED},
    OrderDelivery.Status.IN_TRANSIT: {OrderDelivery.Status.DELIVERED, OrderDelivery.Status.FAILED},
    OrderDelivery.Status.DELIVERED: set(),
    OrderDelivery.Status.FAILED: set(),
}

ASSIGNABLE_ORDER_STATES = {Order.Status.CONFIRMED, Order.Status.DISPATCHED}


def generate_tracking_number() -> str:
    return f"TRK-{uuid.uuid4().hex[:12].upper()}"


def assign_courier(order_id: int, courier_id: int, tracking_number: str = '') -> OrderDelivery:
    """
    Hand an order to a courier.

    Raises:
        NotFound: If the order or courier does not exist
        CourierUnavailable: If the courier is inactive or the order already
            has a live delivery
        IllegalTransition: If the order is not confirmed or dispatched
    """
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFound('Order', order_id)
        courier = Courier.objects.filter(pk=courier_id).first()
        if courier is None:
            raise NotFound('Courier', courier_id)

        if not courier.is_active:
            raise CourierUnavailable(f"Courier {courier.name} is inactive")
        if order.status not in ASSIGNABLE_ORDER_STATES:
            raise IllegalTransition(order.status, 'assigned', subject='delivery of order')

        live = order.deliveries.filter(
            status__in=[OrderDelivery.Status.ASSIGNED, OrderDelivery.Status.IN_TRANSIT]
        ).first()
        if live is not None:
            raise CourierUnavailable(
                f"Order #{order.id} already has live delivery {live.tracking_number}"
            )

        delivery = OrderDelivery.objects.create(
            order=order,
            courier=courier,
            tracking_number=tracking_number or generate_tracking_number()
        )

    logger.info(f"Order #{order.id} assigned to {courier.name} ({delivery.tracking_number})")
    return delivery


def update_delivery_status(delivery_id: int, target: str) -> OrderDelivery:
    """
    Advance a delivery and propagate the change to its order.

    Raises:
        NotFound: If the delivery does not exist
        IllegalTransition: If the delivery or order move is not allowed
    """
    if target not in OrderDelivery.Status.values:
        raise OrderValidationError(f"Unknown delivery status '{target}'")

    with transaction.atomic():
        delivery = (
            OrderDelivery.objects.select_for_update()
            .select_related('courier')
            .filter(pk=delivery_id)
            .first()
        )
        if delivery is None:
            raise NotFound('Delivery', delivery_id)

        if target not in DELIVERY_TRANSITIONS[delivery.status]:
            raise IllegalTransition(delivery.status, target, subject='delivery')

        previous = delivery.status
        delivery.status = target
        delivery.save(update_fields=['status', 'updated_at'])

        order_status = Order.objects.filter(pk=delivery.order_id).values_list('status', flat=True).get()
        if target == OrderDelivery.Status.IN_TRANSIT and order_status == Order.Status.CONFIRMED:
            transition_order(delivery.order_id, Order.Status.DISPATCHED)
        elif target == OrderDelivery.Status.DELIVERED:
            if order_status == Order.Status.CONFIRMED:
                transition_order(delivery.order_id, Order.Status.DISPATCHED)
            transition_order(delivery.order_id, Order.Status.DELIVERED)

    if target == OrderDelivery.Status.FAILED:
        ErrorLog.record(
            ErrorLog.ErrorType.COURIER_ISSUE,
            f"Delivery {delivery.tracking_number} via {delivery.courier.name} failed",
            delivery.order_id
        )

    logger.info(f"Delivery {delivery.tracking_number}: {previous} -> {target}")
    return delivery
