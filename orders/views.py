"""
Order API Views.

Implements:
- GET /orders/ - List orders with optimized queries
- POST /orders/ - Create order with atomic stock reservation
- GET /orders/{id}/ - Order detail with items
- GET /orders/{id}/summary/ - Order summary with payments and deliveries
- POST /orders/{id}/status/ - Move an order through its lifecycle
- PATCH /orders/{id}/items/{item_id}/ - Change an item's quantity
- GET /orders/stats/ - Order counts per status
- GET /dashboard/ - Operations overview
"""
import logging
from decimal import Decimal

from django.db import models
from django.db.models import Count, Q, Sum
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from customers.models import Customer
from inventory.models import Product
from .models import Order
from .serializers import (
    OrderSerializer,
    OrderListSerializer,
    OrderCreateSerializer,
    OrderItemUpdateSerializer,
    OrderStatusUpdateSerializer,
)
from .services import (
    CENT,
    create_order,
    get_order_summary,
    transition_order,
    update_item_quantity,
)

logger = logging.getLogger(__name__)


def order_detail_queryset():
    return Order.objects.select_related('customer', 'address').prefetch_related(
        'items__product', 'status_changes'
    )


class OrderListCreateView(generics.ListCreateAPIView):
    """
    GET: List orders, newest first
    POST: Create a new order with atomic stock reservation

    Query Parameters (GET):
        - status: Filter by status (pending, confirmed, dispatched, delivered, cancelled)
        - payment_status: Filter by payment status
        - customer_id: Filter by customer
        - q: Case-insensitive substring of customer name or phone

    Request Body (POST):
    {
        "customer_id": 1,
        "address_id": 4,
        "items": [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1}
        ]
    }
    """

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return OrderCreateSerializer
        return OrderListSerializer

    def get_queryset(self):
        queryset = Order.objects.select_related('customer', 'address').prefetch_related(
            'items'
        )
        params = self.request.query_params

        status_filter = params.get('status', '').lower()
        if status_filter in Order.Status.values:
            queryset = queryset.filter(status=status_filter)

        payment_status = params.get('payment_status', '').lower()
        if payment_status in Order.PaymentStatus.values:
            queryset = queryset.filter(payment_status=payment_status)

        customer_id = params.get('customer_id')
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)

        keyword = params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(customer__name__icontains=keyword) |
                Q(customer__phone_number__icontains=keyword)
            )

        return queryset.order_by('-created_at', '-id')

    def create(self, request, *args, **kwargs):
        """
        Create order with atomic stock reservation.

        Returns:
            - 201: Order created
            - 400: Validation error or empty order
            - 404: Customer, address or product not found
            - 409: Insufficient stock
        """
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = create_order(
            serializer.validated_data['customer_id'],
            serializer.validated_data['address_id'],
            [dict(item) for item in serializer.validated_data['items']]
        )

        # Fetch fresh order with all relations
        order = order_detail_queryset().get(id=order.id)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(generics.RetrieveAPIView):
    """
    GET: Retrieve order details with all items.

    Uses prefetch_related for optimized item loading.
    """
    serializer_class = OrderSerializer

    def get_queryset(self):
        return order_detail_queryset()


class OrderSummaryView(APIView):
    """
    GET: Flat order summary with items, payments and deliveries.

    Includes ``total_matches_items`` for audit screens.
    """

    def get(self, request, pk):
        return Response(get_order_summary(pk))


class OrderStatusView(APIView):
    """
    POST: Move an order to a new status.

    Request Body:
        {"status": "confirmed"}

    Returns:
        - 200: Order in its new status
        - 404: Order not found
        - 409: Transition not allowed
    """

    def post(self, request, pk):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        transition_order(pk, serializer.validated_data['status'])
        order = order_detail_queryset().get(id=pk)
        return Response(OrderSerializer(order).data)


class OrderItemUpdateView(APIView):
    """
    PATCH: Change the quantity of an item on a pending order.

    Request Body:
        {"quantity": 3}
    """

    def patch(self, request, pk, item_id):
        serializer = OrderItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        update_item_quantity(pk, item_id, serializer.validated_data['quantity'])
        order = order_detail_queryset().get(id=pk)
        return Response(OrderSerializer(order).data)


class OrderStatsView(APIView):
    """
    GET: Get order statistics overall or for one customer.

    Query Parameters:
        - customer_id: Filter stats by customer (optional)
    """

    def get(self, request):
        queryset = Order.objects.all()

        customer_id = request.query_params.get('customer_id')
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)

        counts = {
            f'{value}_orders': Count('id', filter=models.Q(status=value))
            for value in Order.Status.values
        }
        stats = queryset.aggregate(
            total_orders=Count('id'),
            paid_revenue=Sum('total_amount', filter=models.Q(payment_status=Order.PaymentStatus.PAID)),
            **counts
        )

        stats['paid_revenue'] = str((stats['paid_revenue'] or Decimal('0')).quantize(CENT))

        return Response(stats)


class DashboardView(APIView):
    """
    GET: Operations overview.

    Totals come from aggregate queries; recent orders embed customer and
    delivery city.
    """
    recent_limit = 5

    def get(self, request):
        order_stats = Order.objects.aggregate(
            total_orders=Count('id'),
            pending_orders=Count('id', filter=models.Q(status=Order.Status.PENDING)),
            total_revenue=Sum('total_amount', filter=models.Q(payment_status=Order.PaymentStatus.PAID)),
        )
        recent_orders = Order.objects.select_related('customer', 'address').prefetch_related(
            'items'
        ).order_by('-created_at', '-id')[:self.recent_limit]

        return Response({
            'total_orders': order_stats['total_orders'],
            'total_customers': Customer.objects.count(),
            'total_products': Product.objects.count(),
            'total_revenue': str((order_stats['total_revenue'] or Decimal('0')).quantize(CENT)),
            'pending_orders': order_stats['pending_orders'],
            'recent_orders': OrderListSerializer(recent_orders, many=True).data,
        })
