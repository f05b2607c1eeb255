"""
Customer API Views.

Implements:
- GET/POST /customers/ - Search customers with order statistics
- GET/PUT/PATCH /customers/{id}/ - Customer detail
- GET/POST /customers/{id}/addresses/ - Customer addresses
"""
from django.shortcuts import get_object_or_404
from rest_framework import generics

from .models import Customer, Address
from .serializers import CustomerSerializer, AddressSerializer
from .services import search_customers, with_order_stats


class CustomerListCreateView(generics.ListCreateAPIView):
    """
    GET: Search customers by name, phone or email
    POST: Create a new customer

    Query Parameters (GET):
        - q: Case-insensitive substring matched against name, phone and email
    """
    serializer_class = CustomerSerializer

    def get_queryset(self):
        return search_customers(self.request.query_params.get('q', ''))


class CustomerDetailView(generics.RetrieveUpdateAPIView):
    """
    GET: Retrieve a customer with order statistics
    PUT/PATCH: Update a customer
    """
    serializer_class = CustomerSerializer

    def get_queryset(self):
        return with_order_stats(Customer.objects.select_related('default_address'))


class CustomerAddressListCreateView(generics.ListCreateAPIView):
    """
    GET: List a customer's addresses
    POST: Add an address to the customer
    """
    serializer_class = AddressSerializer
    pagination_class = None

    def get_customer(self):
        return get_object_or_404(Customer, pk=self.kwargs['customer_id'])

    def get_queryset(self):
        return Address.objects.filter(customer=self.get_customer())

    def perform_create(self, serializer):
        customer = self.get_customer()
        address = serializer.save(customer=customer)
        if customer.default_address_id is None:
            customer.default_address = address
            customer.save(update_fields=['default_address'])
