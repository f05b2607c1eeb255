"""
Payment API Views.

Implements:
- GET /payments/ - List payments
- GET/POST /orders/{id}/payments/ - Payments of an order, record a payment
"""
from rest_framework import generics, status
from rest_framework.response import Response

from .models import Payment
from .serializers import PaymentSerializer, PaymentCreateSerializer
from .services import record_payment


class PaymentListView(generics.ListAPIView):
    """
    GET: List payments, newest first

    Query Parameters:
        - status: pending / success / failed
        - kind: charge / refund
    """
    serializer_class = PaymentSerializer

    def get_queryset(self):
        queryset = Payment.objects.all()

        status_filter = self.request.query_params.get('status', '').lower()
        if status_filter in Payment.Status.values:
            queryset = queryset.filter(status=status_filter)

        kind = self.request.query_params.get('kind', '').lower()
        if kind in Payment.Kind.values:
            queryset = queryset.filter(kind=kind)

        return queryset.order_by('-created_at', '-id')


class OrderPaymentListCreateView(generics.ListCreateAPIView):
    """
    GET: Payments and refunds of an order
    POST: Record a payment for the order

    Returns:
        - 201: Payment recorded
        - 400: Amount does not match the order total
        - 404: Order not found
        - 409: Order cancelled
    """
    pagination_class = None

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return PaymentCreateSerializer
        return PaymentSerializer

    def get_queryset(self):
        return Payment.objects.filter(order_id=self.kwargs['order_id']).order_by('created_at', 'id')

    def create(self, request, *args, **kwargs):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        payment = record_payment(self.kwargs['order_id'], **serializer.validated_data)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
