"""
Serializers for inventory models.
Provides data validation and JSON conversion for API endpoints.
"""
from rest_framework import serializers
from .models import Vendor, Product


class VendorSerializer(serializers.ModelSerializer):
    """Serializer for Vendor model."""
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Vendor
        fields = [
            'id', 'name', 'contact_number', 'email', 'location',
            'product_count', 'created_at'
        ]
        read_only_fields = ['id', 'created_at']

    def get_product_count(self, obj):
        """Get count of products supplied by this vendor."""
        return obj.products.count()


class VendorMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested vendor representation."""
    class Meta:
        model = Vendor
        fields = ['id', 'name', 'location']


class ProductSerializer(serializers.ModelSerializer):
    """
    Serializer for Product model with nested vendor.

    Stock is read-only here; it changes only through the inventory ledger.
    """
    vendor = VendorMinimalSerializer(read_only=True)
    vendor_id = serializers.PrimaryKeyRelatedField(
        queryset=Vendor.objects.all(),
        source='vendor',
        write_only=True
    )
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'stock_quantity',
            'category', 'is_active', 'vendor', 'vendor_id',
            'is_low_stock', 'is_out_of_stock',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'stock_quantity', 'created_at', 'updated_at']


class ProductMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for autocomplete and nested representations."""
    class Meta:
        model = Product
        fields = ['id', 'name', 'category', 'price']


class RestockSerializer(serializers.Serializer):
    """Request body for POST /products/{id}/restock/"""
    quantity = serializers.IntegerField(min_value=1)
