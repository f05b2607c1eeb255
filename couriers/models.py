"""
Courier Models - Delivery partners and their assignments to orders.

Delivery Status Flow:
    ASSIGNED -> IN_TRANSIT -> DELIVERED
    ASSIGNED | IN_TRANSIT -> FAILED
"""
from django.db import models


class Courier(models.Model):
    """
    Delivery partner reachable through its own API.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'

    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Courier company name"
    )
    api_endpoint = models.URLField(
        blank=True,
        default='',
        help_text="Courier integration endpoint"
    )
    contact_number = models.CharField(max_length=32, blank=True, default='')
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )

    class Meta:
        verbose_name = 'Courier'
        verbose_name_plural = 'Couriers'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE


class OrderDelivery(models.Model):
    """
    Assignment of an order to a courier, with tracking state.
    """

    class Status(models.TextChoices):
        ASSIGNED = 'assigned', 'Assigned'
        IN_TRANSIT = 'in_transit', 'In transit'
        DELIVERED = 'delivered', 'Delivered'
        FAILED = 'failed', 'Failed'

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='deliveries'
    )
    courier = models.ForeignKey(
        Courier,
        on_delete=models.PROTECT,
        related_name='deliveries'
    )
    tracking_number = models.CharField(max_length=64, unique=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ASSIGNED,
        db_index=True
    )
    assigned_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Order Delivery'
        verbose_name_plural = 'Order Deliveries'
        ordering = ['-assigned_at', '-id']

    def __str__(self):
        return f"{self.tracking_number} - order #{self.order_id} via {self.courier.name}"

    @property
    def is_live(self) -> bool:
        return self.status in (self.Status.ASSIGNED, self.Status.IN_TRANSIT)
