"""
Serializers for customer models.
"""
from rest_framework import serializers
from .models import Customer, Address


class AddressSerializer(serializers.ModelSerializer):
    """Serializer for Address model."""

    class Meta:
        model = Address
        fields = [
            'id', 'customer', 'address_line', 'city', 'postal_code',
            'latitude', 'longitude', 'created_at'
        ]
        read_only_fields = ['id', 'customer', 'created_at']


class AddressMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested address representation."""
    class Meta:
        model = Address
        fields = ['id', 'address_line', 'city', 'postal_code']


class CustomerMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested customer representation."""
    class Meta:
        model = Customer
        fields = ['id', 'name', 'phone_number', 'email']


class CustomerSerializer(serializers.ModelSerializer):
    """
    Serializer for Customer with default address and order statistics.

    ``order_count`` and ``total_spent`` come from queryset annotations.
    """
    default_address = AddressMinimalSerializer(read_only=True)
    default_address_id = serializers.PrimaryKeyRelatedField(
        queryset=Address.objects.all(),
        source='default_address',
        write_only=True,
        required=False,
        allow_null=True
    )
    order_count = serializers.IntegerField(read_only=True, default=0)
    total_spent = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        read_only=True,
        default=0
    )

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'phone_number', 'email',
            'default_address', 'default_address_id',
            'order_count', 'total_spent', 'created_at'
        ]
        read_only_fields = ['id', 'created_at']

    def validate(self, attrs):
        address = attrs.get('default_address')
        if address is not None and (self.instance is None or address.customer_id != self.instance.id):
            raise serializers.ValidationError(
                {'default_address_id': "Address does not belong to this customer."}
            )
        return attrs
