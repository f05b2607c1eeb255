"""
Core Models - Operational error log shared by all apps.
"""
import logging

from django.db import models, transaction

logger = logging.getLogger(__name__)


class ErrorLog(models.Model):
    """
    Categorized failure record for operational visibility.

    Rows are written after the failing unit of work has rolled back, so an
    entry never references half-applied state.
    """

    class ErrorType(models.TextChoices):
        STOCK_ISSUE = 'stock_issue', 'Stock issue'
        COURIER_ISSUE = 'courier_issue', 'Courier issue'
        PAYMENT_ISSUE = 'payment_issue', 'Payment issue'
        SYSTEM_ERROR = 'system_error', 'System error'

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='error_logs',
        help_text="Order the failure relates to, if any"
    )
    error_type = models.CharField(
        max_length=20,
        choices=ErrorType.choices,
        db_index=True,
        help_text="Failure category"
    )
    message = models.TextField(help_text="Failure description")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Error Log'
        verbose_name_plural = 'Error Logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['error_type', 'created_at']),
        ]

    def __str__(self):
        return f"[{self.error_type}] {self.message[:60]}"

    @classmethod
    def record(cls, error_type, message, order_id=None):
        """
        Persist an error log entry.

        Failures while writing the log itself are logged and suppressed so
        they never mask the original error.
        """
        try:
            with transaction.atomic():
                return cls.objects.create(
                    error_type=error_type,
                    message=message,
                    order_id=order_id,
                )
        except Exception:
            logger.exception(f"Could not write {error_type} error log entry")
            return None
