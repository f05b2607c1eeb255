"""
Order Models - Order, OrderItem and status history.

Order Status Flow:
    PENDING -> CONFIRMED -> DISPATCHED -> DELIVERED
    PENDING | CONFIRMED | DISPATCHED -> CANCELLED

Payment status is tracked on a separate axis and never drives the status
above.
"""
from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator

from customers.models import Customer, Address
from inventory.models import Product


class Order(models.Model):
    """
    Customer order delivered to one of the customer's addresses.

    total_amount always equals the sum of its items' price x quantity;
    it is written only by orders.services.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CONFIRMED = 'confirmed', 'Confirmed'
        DISPATCHED = 'dispatched', 'Dispatched'
        DELIVERED = 'delivered', 'Delivered'
        CANCELLED = 'cancelled', 'Cancelled'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        FAILED = 'failed', 'Failed'
        REFUNDED = 'refunded', 'Refunded'

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name='orders',
        help_text="Customer who placed the order"
    )
    address = models.ForeignKey(
        Address,
        on_delete=models.PROTECT,
        related_name='orders',
        help_text="Delivery address"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
        help_text="Current order status"
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
        help_text="Current payment status"
    )
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Total order amount"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer', 'status']),
            models.Index(fields=['status', 'created_at']),
            models.Index(fields=['payment_status', 'created_at']),
        ]

    def __str__(self):
        return f"Order #{self.id} - {self.customer.name} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in (self.Status.DELIVERED, self.Status.CANCELLED)

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.Status.CANCELLED

    @property
    def item_count(self) -> int:
        return self.items.count()


class OrderItem(models.Model):
    """
    OrderItem entity representing a product in an order.

    Stores the unit price at time of order to preserve historical pricing.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Parent order"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,  # Prevent deletion of products with orders
        related_name='order_items',
        help_text="Ordered product"
    )
    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Quantity ordered"
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Unit price at time of order"
    )

    class Meta:
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='order_item_quantity_positive'
            ),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.product.name} @ ${self.price}"

    @property
    def subtotal(self) -> Decimal:
        """Calculate item subtotal."""
        return self.quantity * self.price


class OrderStatusChange(models.Model):
    """
    Applied status transition.

    The (order, to_status) pair is unique: a given target state is entered
    at most once per order, which makes retried transitions, cancellation in
    particular, safe to replay.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='status_changes'
    )
    from_status = models.CharField(max_length=20, choices=Order.Status.choices)
    to_status = models.CharField(max_length=20, choices=Order.Status.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Order Status Change'
        verbose_name_plural = 'Order Status Changes'
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['order', 'to_status'],
                name='unique_order_target_status'
            )
        ]

    def __str__(self):
        return f"Order #{self.order_id}: {self.from_status} -> {self.to_status}"
