"""
Inventory API Views with optimized queries.

Implements:
- CRUD operations for Vendor and Product
- Product listing with keyword, category and stock filters
- Restocking through the inventory ledger
- Autocomplete with rate limiting
"""
from django.conf import settings
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response

from core.rate_limiting import rate_limit
from . import ledger
from .models import Vendor, Product
from .serializers import (
    VendorSerializer,
    ProductSerializer,
    RestockSerializer,
)


# =============================================================================
# Vendor Views
# =============================================================================

class VendorListCreateView(generics.ListCreateAPIView):
    """
    GET: List vendors
    POST: Create a new vendor

    Query Parameters (GET):
        - q: Keyword matched against name and location
    """
    serializer_class = VendorSerializer

    def get_queryset(self):
        queryset = Vendor.objects.all()
        keyword = self.request.query_params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) | Q(location__icontains=keyword)
            )
        return queryset.order_by('name')


class VendorDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a vendor
    PUT/PATCH: Update a vendor
    DELETE: Delete a vendor
    """
    queryset = Vendor.objects.all()
    serializer_class = VendorSerializer


# =============================================================================
# Product Views
# =============================================================================

class ProductListCreateView(generics.ListCreateAPIView):
    """
    GET: List products with vendor info
    POST: Create a new product

    Query Parameters (GET):
        - q: Keyword to search in name and description
        - category: Exact category
        - stock: 'low' (below threshold) or 'out' (zero stock)
        - vendor_id: Filter by vendor
        - active: 'true' / 'false'

    Uses select_related to eliminate N+1 queries.
    """
    serializer_class = ProductSerializer

    def get_queryset(self):
        queryset = Product.objects.select_related('vendor')
        params = self.request.query_params

        keyword = params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) |
                Q(description__icontains=keyword)
            )

        category = params.get('category', '').strip()
        if category and category != 'all':
            queryset = queryset.filter(category=category)

        stock = params.get('stock', '').lower()
        if stock == 'low':
            queryset = queryset.filter(stock_quantity__lt=settings.LOW_STOCK_THRESHOLD)
        elif stock == 'out':
            queryset = queryset.filter(stock_quantity=0)

        vendor_id = params.get('vendor_id')
        if vendor_id:
            queryset = queryset.filter(vendor_id=vendor_id)

        active = params.get('active', '').lower()
        if active in ('true', 'false'):
            queryset = queryset.filter(is_active=(active == 'true'))

        return queryset.order_by('name', 'id')


class ProductDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update a product (including toggling is_active)
    DELETE: Delete a product
    """
    serializer_class = ProductSerializer

    def get_queryset(self):
        return Product.objects.select_related('vendor')


class ProductRestockView(APIView):
    """
    POST: Add received units to a product's stock.

    Request Body:
        {"quantity": 25}
    """

    def post(self, request, pk):
        serializer = RestockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = ledger.restock(pk, serializer.validated_data['quantity'])
        return Response(ProductSerializer(product).data)


class ProductCategoryListView(APIView):
    """
    GET: Distinct product categories, alphabetically.
    """

    def get(self, request):
        categories = (
            Product.objects.order_by('category')
            .values_list('category', flat=True)
            .distinct()
        )
        return Response(list(categories))


class ProductAutocompleteView(APIView):
    """
    GET: Fast prefix-matching autocomplete for product names.

    Query Parameters:
        - q: Search query (minimum 3 characters)

    Returns top 10 matching active products.
    Rate limited to 20 requests per minute.
    """

    @rate_limit(max_requests=20, window_seconds=60)
    def get(self, request):
        query = request.query_params.get('q', '').strip()

        if len(query) < 3:
            return Response(
                {'error': 'Validation Error', 'detail': 'Query must be at least 3 characters'},
                status=status.HTTP_400_BAD_REQUEST
            )

        products = Product.objects.filter(
            name__istartswith=query,
            is_active=True
        ).order_by('name').values('id', 'name', 'price', 'stock_quantity')[:10]

        return Response(list(products))
