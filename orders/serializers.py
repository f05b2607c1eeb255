"""
Serializers for order models.
"""
from rest_framework import serializers
from .models import Order, OrderItem, OrderStatusChange
from .services import recompute_total
from .transitions import next_states
from customers.serializers import AddressMinimalSerializer, CustomerMinimalSerializer
from inventory.serializers import ProductMinimalSerializer


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem with product details."""
    product = ProductMinimalSerializer(read_only=True)
    subtotal = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        read_only=True
    )

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'quantity', 'price', 'subtotal']


class OrderItemCreateSerializer(serializers.Serializer):
    """Serializer for creating order items in order creation request."""
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class OrderItemUpdateSerializer(serializers.Serializer):
    """Request body for PATCH /orders/{id}/items/{item_id}/"""
    quantity = serializers.IntegerField(min_value=1)


class OrderStatusChangeSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusChange
        fields = ['from_status', 'to_status', 'created_at']


class OrderSerializer(serializers.ModelSerializer):
    """
    Serializer for Order model with nested items.
    Uses prefetch_related for optimized queries.
    """
    customer = CustomerMinimalSerializer(read_only=True)
    address = AddressMinimalSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    status_changes = OrderStatusChangeSerializer(many=True, read_only=True)
    item_count = serializers.SerializerMethodField()
    total_matches_items = serializers.SerializerMethodField()
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'customer', 'address', 'status', 'payment_status',
            'total_amount', 'total_matches_items', 'items', 'item_count',
            'allowed_transitions', 'status_changes',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_item_count(self, obj):
        return len(obj.items.all())

    def get_total_matches_items(self, obj):
        return recompute_total(obj.items.all()) == obj.total_amount

    def get_allowed_transitions(self, obj):
        return next_states(obj.status)


class OrderListSerializer(serializers.ModelSerializer):
    """
    Optimized serializer for listing orders.
    Uses select_related for customer and address data.
    """
    customer = CustomerMinimalSerializer(read_only=True)
    address = AddressMinimalSerializer(read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'customer', 'address', 'status', 'payment_status',
            'total_amount', 'item_count', 'created_at'
        ]

    def get_item_count(self, obj):
        # Use prefetched items count if available
        if hasattr(obj, '_prefetched_objects_cache') and 'items' in obj._prefetched_objects_cache:
            return len(obj.items.all())
        return obj.items.count()


class OrderCreateSerializer(serializers.Serializer):
    """
    Serializer for creating orders via POST /orders/

    Request format:
    {
        "customer_id": 1,
        "address_id": 4,
        "items": [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1}
        ]
    }

    An empty items list is passed through so the service reports EmptyOrder.
    """
    customer_id = serializers.IntegerField(min_value=1)
    address_id = serializers.IntegerField(min_value=1)
    items = OrderItemCreateSerializer(many=True, allow_empty=True)


class OrderStatusUpdateSerializer(serializers.Serializer):
    """Request body for POST /orders/{id}/status/"""
    status = serializers.ChoiceField(choices=Order.Status.choices)
