"""
Order Service Layer - Atomic order creation and lifecycle.

Order creation is all-or-nothing:
1. Validate item structure, customer and delivery address
2. Reserve stock for every line through the inventory ledger
3. Snapshot unit prices into order items and derive the total
4. If ANY reservation fails: the transaction rolls back, no order exists
   and no stock stays reserved

Status changes go through transition_order(); entering CANCELLED releases
reserved stock, fails any live delivery and refunds a paid order exactly once.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.exceptions import (
    EmptyOrder,
    IllegalTransition,
    InsufficientStock,
    NotFound,
    OrderValidationError,
)
from core.models import ErrorLog
from couriers.models import OrderDelivery
from customers.models import Address, Customer
from inventory import ledger
from inventory.models import Product
from payments.models import Payment
from payments.services import refund_order
from .models import Order, OrderItem, OrderStatusChange
from .transitions import validate_transition

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def validate_order_items(items: List[Dict]) -> None:
    """
    Validate order items structure.

    Args:
        items: List of dicts with 'product_id' and 'quantity'

    Raises:
        EmptyOrder: If there are no items
        OrderValidationError: If any item is malformed
    """
    if not items:
        raise EmptyOrder()

    seen_products = set()
    for idx, item in enumerate(items):
        if 'product_id' not in item:
            raise OrderValidationError(f"Item {idx}: missing 'product_id'")
        if 'quantity' not in item:
            raise OrderValidationError(f"Item {idx}: missing 'quantity'")

        product_id = item['product_id']
        quantity = item['quantity']

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise OrderValidationError(f"Item {idx}: quantity must be a positive integer")

        if product_id in seen_products:
            raise OrderValidationError(f"Item {idx}: duplicate product_id {product_id}")
        seen_products.add(product_id)


def recompute_total(order_or_items) -> Decimal:
    """
    Sum of price x quantity over an order's items.

    Accepts an Order (its saved items are read) or any iterable of objects
    with ``price`` and ``quantity``.
    """
    if isinstance(order_or_items, Order):
        items: Iterable = order_or_items.items.all()
    else:
        items = order_or_items
    total = sum((item.price * item.quantity for item in items), Decimal('0.00'))
    return total.quantize(CENT)


def create_order(customer_id: int, address_id: int, items: List[Dict]) -> Order:
    """
    Create a PENDING order, reserving stock for every line.

    Args:
        customer_id: ID of the ordering customer
        address_id: ID of a delivery address owned by that customer
        items: List of dicts with 'product_id' and 'quantity'

    Returns:
        The created Order

    Raises:
        EmptyOrder / OrderValidationError: If items are malformed
        NotFound: If the customer, address or any product is missing
        InsufficientStock: If any line exceeds available stock
    """
    validate_order_items(items)

    if not Customer.objects.filter(pk=customer_id).exists():
        raise NotFound('Customer', customer_id)
    try:
        address = Address.objects.get(pk=address_id, customer_id=customer_id)
    except Address.DoesNotExist:
        raise NotFound('Address', address_id)

    # Reserve in product id order so concurrent orders lock rows consistently
    lines = sorted(items, key=lambda item: item['product_id'])
    product_ids = [line['product_id'] for line in lines]

    try:
        with transaction.atomic():
            products = {
                p.id: p for p in Product.objects.filter(id__in=product_ids, is_active=True)
            }
            missing_products = sorted(set(product_ids) - set(products.keys()))
            if missing_products:
                raise NotFound(
                    'Product',
                    ', '.join(str(pid) for pid in missing_products)
                )

            order_items = []
            for line in lines:
                product = products[line['product_id']]
                ledger.reserve(product.id, line['quantity'])
                order_items.append(OrderItem(
                    product=product,
                    quantity=line['quantity'],
                    price=product.price
                ))

            order = Order.objects.create(
                customer_id=customer_id,
                address=address,
                status=Order.Status.PENDING,
                total_amount=recompute_total(order_items)
            )
            for order_item in order_items:
                order_item.order = order
            OrderItem.objects.bulk_create(order_items)
    except InsufficientStock as exc:
        ErrorLog.record(ErrorLog.ErrorType.STOCK_ISSUE, f"Order rejected: {exc}")
        raise

    logger.info(
        f"Order #{order.id} created for customer {customer_id}: "
        f"{len(order_items)} items, total ${order.total_amount}"
    )
    return order


def _queue_confirmation(order_id: int) -> None:
    try:
        from .tasks import send_order_confirmation
        send_order_confirmation.delay(order_id)
        logger.info(f"Triggered confirmation task for order #{order_id}")
    except Exception as e:
        # Don't fail the order if task queuing fails
        logger.error(f"Failed to queue confirmation task: {e}")


def _release_reservations(order: Order) -> None:
    for item in order.items.all():
        ledger.release(item.product_id, item.quantity)
    logger.info(f"Order #{order.id}: released stock for {order.items.count()} items")


def _fail_live_deliveries(order: Order) -> None:
    failed = order.deliveries.filter(
        status__in=[OrderDelivery.Status.ASSIGNED, OrderDelivery.Status.IN_TRANSIT]
    ).update(status=OrderDelivery.Status.FAILED, updated_at=timezone.now())
    if failed:
        logger.info(f"Order #{order.id}: stopped {failed} live deliveries")


def transition_order(order_id: int, target: str) -> Order:
    """
    Move an order to ``target`` status.

    Cancelling an already-cancelled order returns it unchanged; every other
    request outside the legal edges raises IllegalTransition and leaves the
    order untouched.

    Raises:
        OrderValidationError: If ``target`` is not a known status
        NotFound: If the order does not exist
        IllegalTransition: If the move is not allowed
    """
    if target not in Order.Status.values:
        raise OrderValidationError(f"Unknown order status '{target}'")

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFound('Order', order_id)

        if order.status == target == Order.Status.CANCELLED:
            logger.info(f"Order #{order.id} already cancelled, nothing to do")
            return order

        validate_transition(order.status, target)
        previous = order.status

        try:
            with transaction.atomic():
                OrderStatusChange.objects.create(
                    order=order,
                    from_status=previous,
                    to_status=target
                )
        except IntegrityError:
            # A concurrent request entered this state first
            if target == Order.Status.CANCELLED:
                return Order.objects.get(pk=order.pk)
            raise IllegalTransition(previous, target)

        order.status = target
        order.save(update_fields=['status', 'updated_at'])

        if target == Order.Status.CANCELLED:
            _release_reservations(order)
            _fail_live_deliveries(order)
            refund_order(order)
        elif target == Order.Status.CONFIRMED:
            transaction.on_commit(lambda: _queue_confirmation(order.id))

    logger.info(f"Order #{order.id}: {previous} -> {target}")
    return order


def update_item_quantity(order_id: int, item_id: int, quantity: int) -> Order:
    """
    Change an item's quantity on a pending, unpaid order.

    The stock difference is reserved or released through the ledger and the
    total re-derived from the items in the same transaction.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise OrderValidationError("quantity must be a positive integer")

    try:
        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                raise NotFound('Order', order_id)
            if order.status != Order.Status.PENDING:
                raise OrderValidationError(
                    f"Items of order #{order.id} cannot change in status '{order.status}'"
                )
            if order.payment_status == Order.PaymentStatus.PAID:
                raise OrderValidationError(f"Order #{order.id} is already paid")
            if order.payments.filter(status=Payment.Status.PENDING, kind=Payment.Kind.CHARGE).exists():
                raise OrderValidationError(f"Order #{order.id} has a charge awaiting settlement")

            item = order.items.filter(pk=item_id).first()
            if item is None:
                raise NotFound('OrderItem', item_id)

            delta = quantity - item.quantity
            if delta > 0:
                ledger.reserve(item.product_id, delta)
            elif delta < 0:
                ledger.release(item.product_id, -delta)

            item.quantity = quantity
            item.save(update_fields=['quantity'])

            order.total_amount = recompute_total(order)
            order.save(update_fields=['total_amount', 'updated_at'])
    except InsufficientStock as exc:
        ErrorLog.record(ErrorLog.ErrorType.STOCK_ISSUE, f"Item change rejected: {exc}", order_id)
        raise

    logger.info(f"Order #{order.id}: item {item_id} set to {quantity}, total ${order.total_amount}")
    return order


def get_order_summary(order_id: int) -> Dict:
    """
    Get detailed order summary with optimized queries.

    Uses select_related and prefetch_related to minimize database hits.
    """
    try:
        order = Order.objects.select_related('customer', 'address').prefetch_related(
            'items__product', 'payments', 'deliveries__courier'
        ).get(id=order_id)
    except Order.DoesNotExist:
        raise NotFound('Order', order_id)

    items = list(order.items.all())
    return {
        'id': order.id,
        'customer': {
            'id': order.customer.id,
            'name': order.customer.name,
            'phone_number': order.customer.phone_number,
        },
        'address': {
            'id': order.address.id,
            'address_line': order.address.address_line,
            'city': order.address.city,
            'postal_code': order.address.postal_code,
        },
        'status': order.status,
        'payment_status': order.payment_status,
        'total_amount': str(order.total_amount),
        'total_matches_items': recompute_total(items) == order.total_amount,
        'item_count': len(items),
        'items': [
            {
                'product_id': item.product.id,
                'product_name': item.product.name,
                'category': item.product.category,
                'quantity': item.quantity,
                'price': str(item.price),
                'subtotal': str(item.subtotal)
            }
            for item in items
        ],
        'payments': [
            {
                'id': payment.id,
                'kind': payment.kind,
                'status': payment.status,
                'amount': str(payment.amount),
                'transaction_ref': payment.transaction_ref,
            }
            for payment in order.payments.all()
        ],
        'deliveries': [
            {
                'id': delivery.id,
                'courier': delivery.courier.name,
                'tracking_number': delivery.tracking_number,
                'status': delivery.status,
            }
            for delivery in order.deliveries.all()
        ],
        'created_at': order.created_at.isoformat(),
        'updated_at': order.updated_at.isoformat()
    }
