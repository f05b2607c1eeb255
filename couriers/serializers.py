"""
Serializers for courier models.
"""
from rest_framework import serializers
from .models import Courier, OrderDelivery


class CourierSerializer(serializers.ModelSerializer):
    """Serializer for Courier model."""
    active_deliveries = serializers.SerializerMethodField()

    class Meta:
        model = Courier
        fields = ['id', 'name', 'api_endpoint', 'contact_number', 'status', 'active_deliveries']
        read_only_fields = ['id']

    def get_active_deliveries(self, obj):
        return obj.deliveries.filter(
            status__in=[OrderDelivery.Status.ASSIGNED, OrderDelivery.Status.IN_TRANSIT]
        ).count()


class CourierMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested courier representation."""
    class Meta:
        model = Courier
        fields = ['id', 'name', 'contact_number']


class OrderDeliverySerializer(serializers.ModelSerializer):
    """Serializer for OrderDelivery with courier details."""
    courier = CourierMinimalSerializer(read_only=True)

    class Meta:
        model = OrderDelivery
        fields = ['id', 'order', 'courier', 'tracking_number', 'status', 'assigned_at', 'updated_at']
        read_only_fields = fields


class CourierAssignSerializer(serializers.Serializer):
    """Request body for POST /orders/{id}/delivery/"""
    courier_id = serializers.IntegerField(min_value=1)
    tracking_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default='')


class DeliveryStatusSerializer(serializers.Serializer):
    """Request body for POST /deliveries/{id}/status/"""
    status = serializers.ChoiceField(choices=OrderDelivery.Status.choices)
