"""
Celery tasks for order processing.

Tasks:
    - send_order_confirmation: Async notification after order confirmation
    - audit_order_totals: Periodic check that stored totals match their items
    - generate_daily_order_report: Daily order statistics
"""
import logging
from datetime import timedelta

from celery import shared_task
from django.db import OperationalError, models
from django.db.models import Count, Sum
from django.utils import timezone

from core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(StoreUnavailable, OperationalError),
    retry_backoff=True
)
def send_order_confirmation(self, order_id: int):
    """
    Async task triggered after an order is confirmed.

    Args:
        order_id: ID of the confirmed order

    Returns:
        Dict with confirmation details
    """
    from orders.models import Order

    try:
        order = Order.objects.select_related('customer', 'address').prefetch_related(
            'items__product'
        ).get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order #{order_id} not found for confirmation")
        return {'status': 'error', 'message': f'Order {order_id} not found'}

    if order.status != Order.Status.CONFIRMED:
        logger.warning(
            f"Order #{order_id} is not confirmed (status: {order.status}), "
            "skipping confirmation"
        )
        return {
            'status': 'skipped',
            'message': f'Order {order_id} is not confirmed'
        }

    items_summary = [
        f"  - {item.quantity}x {item.product.name} @ ${item.price}"
        for item in order.items.all()
    ]

    confirmation_message = f"""
    ===============================================
    ORDER CONFIRMATION - #{order.id}
    ===============================================
    Customer: {order.customer.name} ({order.customer.phone_number})
    Deliver to: {order.address.address_line}, {order.address.city}
    Status: {order.status}
    Payment: {order.payment_status}
    Total: ${order.total_amount}

    Items:
    {chr(10).join(items_summary)}

    Created: {order.created_at.strftime('%Y-%m-%d %H:%M:%S')}
    ===============================================
    """

    logger.info(confirmation_message)

    return {
        'status': 'success',
        'order_id': order.id,
        'message': f'Confirmation sent for order {order_id}'
    }


@shared_task(
    autoretry_for=(StoreUnavailable, OperationalError),
    retry_backoff=True,
    max_retries=3
)
def audit_order_totals():
    """
    Recompute every live order's total from its items.

    Each divergence is written to the error log as a system error; stored
    totals are never silently rewritten.
    """
    from core.models import ErrorLog
    from orders.models import Order
    from orders.services import recompute_total

    mismatched = []
    orders = Order.objects.exclude(status=Order.Status.CANCELLED).prefetch_related('items')
    for order in orders.iterator(chunk_size=500):
        expected = recompute_total(order.items.all())
        if expected != order.total_amount:
            mismatched.append(order.id)
            ErrorLog.record(
                ErrorLog.ErrorType.SYSTEM_ERROR,
                f"Order #{order.id} total {order.total_amount} does not match items sum {expected}",
                order.id
            )

    if mismatched:
        logger.error(f"Total audit found {len(mismatched)} mismatched orders: {mismatched}")
    else:
        logger.info("Total audit found no mismatched orders")

    return {'mismatched': mismatched}


@shared_task
def generate_daily_order_report():
    """
    Generate daily order statistics report.

    Can be scheduled via Celery Beat for daily execution.
    """
    from orders.models import Order

    today = timezone.now().date()
    yesterday = today - timedelta(days=1)

    orders = Order.objects.filter(
        created_at__date=yesterday
    )

    stats = orders.aggregate(
        total_orders=Count('id'),
        delivered_orders=Count('id', filter=models.Q(status=Order.Status.DELIVERED)),
        cancelled_orders=Count('id', filter=models.Q(status=Order.Status.CANCELLED)),
        paid_revenue=Sum('total_amount', filter=models.Q(payment_status=Order.PaymentStatus.PAID))
    )

    report = f"""
    ===============================================
    DAILY ORDER REPORT - {yesterday}
    ===============================================
    Total Orders: {stats['total_orders']}
    Delivered: {stats['delivered_orders']}
    Cancelled: {stats['cancelled_orders']}
    Paid Revenue: ${stats['paid_revenue'] or 0}
    ===============================================
    """

    logger.info(report)

    stats['paid_revenue'] = str(stats['paid_revenue'] or '0.00')
    return stats
