"""
Core API Views.

Implements:
- GET /error-logs/ - Operational error log, newest first
"""
from rest_framework import generics

from .models import ErrorLog
from .serializers import ErrorLogSerializer


class ErrorLogListView(generics.ListAPIView):
    """
    GET: List error log entries

    Query Parameters:
        - error_type: stock_issue / courier_issue / payment_issue / system_error
        - order_id: Entries for one order
    """
    serializer_class = ErrorLogSerializer

    def get_queryset(self):
        queryset = ErrorLog.objects.all()

        error_type = self.request.query_params.get('error_type', '').lower()
        if error_type in ErrorLog.ErrorType.values:
            queryset = queryset.filter(error_type=error_type)

        order_id = self.request.query_params.get('order_id')
        if order_id:
            queryset = queryset.filter(order_id=order_id)

        return queryset.order_by('-created_at', '-id')
