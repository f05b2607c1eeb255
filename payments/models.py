"""
Payment Models - Charges and refunds recorded against orders.
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class Payment(models.Model):
    """
    Payment attempt or refund for an order.

    For every payment not in FAILED status, amount equals the order total.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        SUCCESS = 'success', 'Success'
        FAILED = 'failed', 'Failed'

    class Kind(models.TextChoices):
        CHARGE = 'charge', 'Charge'
        REFUND = 'refund', 'Refund'

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.PROTECT,
        related_name='payments',
        help_text="Paid order"
    )
    provider = models.CharField(
        max_length=100,
        help_text="Payment provider name"
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    kind = models.CharField(
        max_length=10,
        choices=Kind.choices,
        default=Kind.CHARGE,
        db_index=True
    )
    transaction_ref = models.CharField(
        max_length=128,
        unique=True,
        help_text="Provider transaction reference"
    )
    refund_of = models.OneToOneField(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='refund',
        help_text="Charge this refund compensates"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['order', 'kind', 'status']),
        ]

    def __str__(self):
        return f"{self.kind} {self.transaction_ref} for order #{self.order_id} ({self.status})"

    @property
    def is_successful_charge(self) -> bool:
        return self.kind == self.Kind.CHARGE and self.status == self.Status.SUCCESS
