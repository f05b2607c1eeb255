"""
Courier API Views.

Implements:
- CRUD operations for Courier
- GET/POST /orders/{id}/delivery/ - Deliveries of an order, assign a courier
- POST /deliveries/{id}/status/ - Advance a delivery
"""
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Courier, OrderDelivery
from .serializers import (
    CourierSerializer,
    OrderDeliverySerializer,
    CourierAssignSerializer,
    DeliveryStatusSerializer,
)
from .services import assign_courier, update_delivery_status


class CourierListCreateView(generics.ListCreateAPIView):
    """
    GET: List couriers
    POST: Create a new courier

    Query Parameters (GET):
        - q: Keyword matched against name and contact number
        - status: active / inactive
    """
    serializer_class = CourierSerializer

    def get_queryset(self):
        queryset = Courier.objects.all()

        keyword = self.request.query_params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) | Q(contact_number__icontains=keyword)
            )

        status_filter = self.request.query_params.get('status', '').lower()
        if status_filter in Courier.Status.values:
            queryset = queryset.filter(status=status_filter)

        return queryset.order_by('name', 'id')


class CourierDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a courier
    PUT/PATCH: Update a courier
    DELETE: Delete a courier
    """
    queryset = Courier.objects.all()
    serializer_class = CourierSerializer


class OrderDeliveryListCreateView(generics.ListCreateAPIView):
    """
    GET: Deliveries of an order, newest first
    POST: Assign the order to a courier
    """
    pagination_class = None

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return CourierAssignSerializer
        return OrderDeliverySerializer

    def get_queryset(self):
        return OrderDelivery.objects.select_related('courier').filter(
            order_id=self.kwargs['order_id']
        )

    def create(self, request, *args, **kwargs):
        serializer = CourierAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        delivery = assign_courier(
            self.kwargs['order_id'],
            serializer.validated_data['courier_id'],
            serializer.validated_data['tracking_number']
        )
        return Response(OrderDeliverySerializer(delivery).data, status=status.HTTP_201_CREATED)


class DeliveryStatusView(APIView):
    """
    POST: Move a delivery to a new status.

    Request Body:
        {"status": "in_transit"}
    """

    def post(self, request, pk):
        serializer = DeliveryStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        delivery = update_delivery_status(pk, serializer.validated_data['status'])
        return Response(OrderDeliverySerializer(delivery).data)
