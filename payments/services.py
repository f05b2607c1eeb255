"""
Payment Reconciliation.

Payment status and delivery status are independent: recording a payment
never moves Order.status. The one required reconciliation is a refund when
a paid order is cancelled, issued by refund_order() from the order state
machine inside the cancellation transaction.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction

from core.exceptions import AmountMismatch, NotFound, PaymentError, PaymentNotAllowed
from core.models import ErrorLog
from orders.models import Order
from .models import Payment

logger = logging.getLogger(__name__)


def _to_decimal(amount) -> Decimal:
    try:
        return Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise PaymentError(f"Invalid payment amount {amount!r}")


def _apply_outcome(order: Order, status: str) -> None:
    """Reflect a charge outcome on the order's payment status."""
    if status == Payment.Status.SUCCESS:
        order.payment_status = Order.PaymentStatus.PAID
    elif status == Payment.Status.FAILED and order.payment_status != Order.PaymentStatus.PAID:
        order.payment_status = Order.PaymentStatus.FAILED
    else:
        return
    order.save(update_fields=['payment_status', 'updated_at'])


def record_payment(order_id: int, provider: str, amount, transaction_ref: str,
                   status: str = Payment.Status.SUCCESS) -> Payment:
    """
    Record a charge against an order.

    Re-submitting the reference of a pending charge with a final status
    settles that charge. A success settled on an order that was cancelled in
    the meantime is refunded right away.

    Args:
        order_id: ID of the order being paid
        provider: Payment provider name
        amount: Charged amount, must equal the order total
        transaction_ref: Provider reference, unique across payments
        status: Outcome reported by the provider

    Returns:
        The Payment; an existing one if transaction_ref was already recorded
        for this order

    Raises:
        NotFound: If the order does not exist
        AmountMismatch: If amount differs from the order total
        PaymentNotAllowed: If the order is cancelled or already paid, or the
            reference belongs to another order
    """
    if status not in Payment.Status.values:
        raise PaymentError(f"Unknown payment status '{status}'")
    amount = _to_decimal(amount)

    try:
        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                raise NotFound('Order', order_id)

            existing = Payment.objects.select_for_update().filter(transaction_ref=transaction_ref).first()
            if existing is not None:
                if existing.order_id != order.id or existing.kind != Payment.Kind.CHARGE:
                    raise PaymentNotAllowed(
                        f"Transaction {transaction_ref} is already recorded for another payment"
                    )
                if existing.status != Payment.Status.PENDING or status == Payment.Status.PENDING:
                    logger.info(f"Payment {transaction_ref} already recorded for order #{order.id}")
                    return existing
                if amount != existing.amount:
                    raise AmountMismatch(order.id, existing.amount, amount)

                payment = existing
                payment.status = status
                payment.save(update_fields=['status'])
                _apply_outcome(order, status)
                if status == Payment.Status.SUCCESS and order.is_cancelled:
                    refund_order(order)
            else:
                if order.is_cancelled:
                    raise PaymentNotAllowed(f"Order #{order.id} is cancelled")
                if status != Payment.Status.FAILED and order.payment_status == Order.PaymentStatus.PAID:
                    raise PaymentNotAllowed(f"Order #{order.id} is already paid")

                if amount != order.total_amount:
                    raise AmountMismatch(order.id, order.total_amount, amount)

                payment = Payment.objects.create(
                    order=order,
                    provider=provider,
                    amount=amount,
                    status=status,
                    kind=Payment.Kind.CHARGE,
                    transaction_ref=transaction_ref
                )
                _apply_outcome(order, status)
    except PaymentError as exc:
        ErrorLog.record(ErrorLog.ErrorType.PAYMENT_ISSUE, str(exc), order_id)
        raise

    if status == Payment.Status.FAILED:
        ErrorLog.record(
            ErrorLog.ErrorType.PAYMENT_ISSUE,
            f"Payment {transaction_ref} via {provider} failed",
            order.id
        )

    logger.info(f"Recorded {status} payment {transaction_ref} of ${amount} for order #{order.id}")
    return payment


def refund_order(order: Order) -> list:
    """
    Refund every successful charge of a cancelled order.

    Must run inside the cancellation transaction. Charges that already have
    a refund are skipped; returns the refunds created by this call.
    """
    charges = (
        Payment.objects.select_for_update()
        .filter(order=order, kind=Payment.Kind.CHARGE, status=Payment.Status.SUCCESS)
        .exclude(id__in=Payment.objects.filter(refund_of__isnull=False).values('refund_of'))
        .order_by('created_at', 'id')
    )

    refunds = []
    for charge in charges:
        refunds.append(Payment.objects.create(
            order=order,
            provider=charge.provider,
            amount=charge.amount,
            status=Payment.Status.SUCCESS,
            kind=Payment.Kind.REFUND,
            transaction_ref=f"refund-{charge.transaction_ref}",
            refund_of=charge
        ))
        logger.info(f"Order #{order.id}: refunded ${charge.amount} of charge {charge.transaction_ref}")

    if refunds:
        order.payment_status = Order.PaymentStatus.REFUNDED
        order.save(update_fields=['payment_status', 'updated_at'])
    return refunds
