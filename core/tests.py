"""
Tests for the shared error handling and error log.
"""
from django.db import OperationalError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase

from core.exceptions import InsufficientStock, NotFound, service_exception_handler
from core.models import ErrorLog


class ExceptionHandlerTestCase(TestCase):

    def handle(self, exc):
        return service_exception_handler(exc, {'view': None})

    def test_service_error_payload(self):
        response = self.handle(NotFound('Product', 42))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Not Found', 'detail': 'Product 42 not found'})

    def test_insufficient_stock_payload(self):
        response = self.handle(InsufficientStock(7, requested=6, available=5))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['product_id'], 7)
        self.assertEqual(response.data['available'], 5)

    @override_settings(STORE_RETRY_AFTER_SECONDS=7)
    def test_store_unavailable(self):
        response = self.handle(OperationalError('connection refused'))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response['Retry-After'], '7')
        self.assertFalse(ErrorLog.objects.exists())

    def test_drf_errors_use_default_handling(self):
        response = self.handle(ValidationError({'quantity': ['Required.']}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['quantity'], ['Required.'])

    def test_unexpected_error_recorded(self):
        with self.assertLogs('core.exceptions', level='ERROR'):
            response = self.handle(RuntimeError('boom'))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Server Error')
        log = ErrorLog.objects.get()
        self.assertEqual(log.error_type, ErrorLog.ErrorType.SYSTEM_ERROR)
        self.assertIn('boom', log.message)


class ErrorLogAPITestCase(APITestCase):

    def setUp(self):
        ErrorLog.record(ErrorLog.ErrorType.STOCK_ISSUE, 'Out of rice')
        ErrorLog.record(ErrorLog.ErrorType.COURIER_ISSUE, 'Van broke down')

    def test_list_newest_first(self):
        response = self.client.get(reverse('core:error-log-list'))

        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['results'][0]['message'], 'Van broke down')

    def test_filter_by_type(self):
        response = self.client.get(reverse('core:error-log-list'), {'error_type': 'stock_issue'})

        self.assertEqual([row['message'] for row in response.data['results']], ['Out of rice'])
