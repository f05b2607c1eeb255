"""
Serializers for payment models.
"""
from rest_framework import serializers
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """Read serializer for Payment."""
    refund_of = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'order', 'provider', 'amount', 'status', 'kind',
            'transaction_ref', 'refund_of', 'created_at'
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    """
    Serializer for recording a payment via POST /orders/{id}/payments/

    Request format:
    {
        "provider": "stripe",
        "amount": "35.00",
        "transaction_ref": "ch_123",
        "status": "success"
    }
    """
    provider = serializers.CharField(max_length=100)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    transaction_ref = serializers.CharField(max_length=120)
    status = serializers.ChoiceField(
        choices=Payment.Status.choices,
        default=Payment.Status.SUCCESS
    )
