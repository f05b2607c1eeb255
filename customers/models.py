"""
Customer Models - Customers and their delivery addresses.
"""
from django.db import models


class Customer(models.Model):
    """
    Customer placing delivery orders.
    """
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Customer full name"
    )
    phone_number = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Contact phone number"
    )
    email = models.EmailField(
        blank=True,
        null=True,
        help_text="Optional contact email"
    )
    default_address = models.ForeignKey(
        'customers.Address',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="Address used when none is given"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.phone_number})"


class Address(models.Model):
    """
    Delivery address owned by exactly one customer.
    """
    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name='addresses',
        help_text="Owning customer"
    )
    address_line = models.CharField(max_length=300)
    city = models.CharField(max_length=100, db_index=True)
    postal_code = models.CharField(max_length=20)
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Address'
        verbose_name_plural = 'Addresses'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.address_line}, {self.city} {self.postal_code}"
