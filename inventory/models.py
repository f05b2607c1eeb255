"""
Inventory Models - Vendors and the products they supply.

Models:
    - Vendor: Supplier of products
    - Product: Item available for ordering, carrying its own stock level

Product.stock_quantity is written only by inventory.ledger.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Vendor(models.Model):
    """
    Vendor entity supplying products.
    """
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Vendor name"
    )
    contact_number = models.CharField(max_length=32, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    location = models.CharField(
        max_length=300,
        blank=True,
        default='',
        help_text="Vendor address or location description"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Vendor'
        verbose_name_plural = 'Vendors'
        ordering = ['name']

    def __str__(self):
        return self.name


class Product(models.Model):
    """
    Product entity representing items available for ordering.
    """
    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.PROTECT,
        related_name='products',
        help_text="Supplying vendor"
    )
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    description = models.TextField(
        blank=True,
        default='',
        help_text="Optional product description"
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Unit price (non-negative)"
    )
    stock_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Units currently in stock"
    )
    category = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Product category"
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether product is available for ordering"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name='product_stock_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name='product_price_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['name', 'is_active']),
            models.Index(fields=['category', 'is_active']),
            models.Index(fields=['stock_quantity']),
        ]

    def __str__(self):
        return f"{self.name} (${self.price})"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity < settings.LOW_STOCK_THRESHOLD

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock_quantity == 0
