"""
Customer queries.

Order statistics are computed by the database in the same query that
fetches the customers, never by per-customer round trips.
"""
from decimal import Decimal

from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce

from orders.models import Order
from .models import Customer


def with_order_stats(queryset):
    """
    Annotate customers with ``order_count`` and ``total_spent``.

    Cancelled orders count towards ``order_count`` but not ``total_spent``.
    """
    return queryset.annotate(
        order_count=Count('orders', distinct=True),
        total_spent=Coalesce(
            Sum('orders__total_amount', filter=~Q(orders__status=Order.Status.CANCELLED)),
            Value(Decimal('0.00')),
            output_field=DecimalField(max_digits=14, decimal_places=2),
        ),
    )


def search_customers(term: str = ''):
    """Customers matching ``term`` in name, phone or email, newest first."""
    queryset = Customer.objects.select_related('default_address')
    term = (term or '').strip()
    if term:
        queryset = queryset.filter(
            Q(name__icontains=term) |
            Q(phone_number__icontains=term) |
            Q(email__icontains=term)
        )
    return with_order_stats(queryset).order_by('-created_at', '-id')
