"""
Tests for the inventory ledger and product endpoints.
"""
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import InsufficientStock, NotFound
from inventory import ledger
from inventory.models import Product, Vendor


class LedgerTestCase(TestCase):
    """Stock moves through reserve / release / restock."""

    def setUp(self):
        self.vendor = Vendor.objects.create(name='Ledger Vendor')
        self.product = Product.objects.create(
            vendor=self.vendor,
            name='Ledger Product',
            price=Decimal('12.00'),
            stock_quantity=5,
            category='Groceries'
        )

    def stock(self):
        self.product.refresh_from_db()
        return self.product.stock_quantity

    def test_reserve_decrements(self):
        ledger.reserve(self.product.id, 3)
        self.assertEqual(self.stock(), 2)

    def test_reserve_exact_stock(self):
        ledger.reserve(self.product.id, 5)
        self.assertEqual(self.stock(), 0)

    def test_reserve_more_than_available_fails_without_partial_decrement(self):
        with self.assertRaises(InsufficientStock) as context:
            ledger.reserve(self.product.id, 6)

        self.assertEqual(context.exception.available, 5)
        self.assertEqual(context.exception.requested, 6)
        self.assertEqual(self.stock(), 5)

    def test_stock_never_negative_over_sequence(self):
        ledger.reserve(self.product.id, 4)
        with self.assertRaises(InsufficientStock):
            ledger.reserve(self.product.id, 2)
        ledger.release(self.product.id, 4)
        ledger.reserve(self.product.id, 5)
        with self.assertRaises(InsufficientStock):
            ledger.reserve(self.product.id, 1)

        self.assertEqual(self.stock(), 0)

    def test_release_adds_back(self):
        ledger.reserve(self.product.id, 5)
        ledger.release(self.product.id, 2)
        self.assertEqual(self.stock(), 2)

    def test_restock_returns_refreshed_product(self):
        product = ledger.restock(self.product.id, 10)
        self.assertEqual(product.stock_quantity, 15)

    def test_unknown_product(self):
        with self.assertRaises(NotFound):
            ledger.reserve(99999, 1)
        with self.assertRaises(NotFound):
            ledger.release(99999, 1)
        with self.assertRaises(NotFound):
            ledger.restock(99999, 1)

    def test_quantity_must_be_positive_integer(self):
        for bad in (0, -1, 1.5, True, '2'):
            with self.subTest(quantity=bad):
                with self.assertRaises(ValueError):
                    ledger.reserve(self.product.id, bad)
        self.assertEqual(self.stock(), 5)


class ProductAPITestCase(APITestCase):

    def setUp(self):
        self.vendor = Vendor.objects.create(name='Fresh Farms', location='Jeddah')
        self.milk = Product.objects.create(
            vendor=self.vendor, name='Fresh Milk', description='Full cream',
            price=Decimal('6.50'), stock_quantity=40, category='Dairy'
        )
        self.cheese = Product.objects.create(
            vendor=self.vendor, name='Cheddar Cheese', description='Aged',
            price=Decimal('22.00'), stock_quantity=3, category='Dairy'
        )
        self.rice = Product.objects.create(
            vendor=self.vendor, name='Basmati Rice', description='Long grain milk-free',
            price=Decimal('35.00'), stock_quantity=0, category='Groceries'
        )

    def names(self, response):
        return [row['name'] for row in response.data['results']]

    def test_list_ordered_by_name_with_vendor(self):
        response = self.client.get(reverse('inventory:product-list'))

        self.assertEqual(self.names(response), ['Basmati Rice', 'Cheddar Cheese', 'Fresh Milk'])
        self.assertEqual(response.data['results'][0]['vendor']['name'], 'Fresh Farms')

    def test_keyword_matches_name_and_description(self):
        response = self.client.get(reverse('inventory:product-list'), {'q': 'MILK'})
        self.assertEqual(self.names(response), ['Basmati Rice', 'Fresh Milk'])

    def test_category_filter(self):
        response = self.client.get(reverse('inventory:product-list'), {'category': 'Dairy'})
        self.assertEqual(self.names(response), ['Cheddar Cheese', 'Fresh Milk'])

    def test_stock_filters(self):
        response = self.client.get(reverse('inventory:product-list'), {'stock': 'low'})
        self.assertEqual(self.names(response), ['Basmati Rice', 'Cheddar Cheese'])

        response = self.client.get(reverse('inventory:product-list'), {'stock': 'out'})
        self.assertEqual(self.names(response), ['Basmati Rice'])

    def test_stock_not_writable_through_update(self):
        response = self.client.patch(
            reverse('inventory:product-detail', args=[self.milk.id]),
            {'stock_quantity': 999, 'is_active': False},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.milk.refresh_from_db()
        self.assertEqual(self.milk.stock_quantity, 40)
        self.assertFalse(self.milk.is_active)

    def test_restock_endpoint(self):
        response = self.client.post(
            reverse('inventory:product-restock', args=[self.rice.id]),
            {'quantity': 25},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stock_quantity'], 25)

    def test_restock_rejects_non_positive(self):
        response = self.client.post(
            reverse('inventory:product-restock', args=[self.rice.id]),
            {'quantity': 0},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_restock_unknown_product(self):
        response = self.client.post(
            reverse('inventory:product-restock', args=[99999]),
            {'quantity': 1},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Not Found')

    def test_categories(self):
        response = self.client.get(reverse('inventory:product-categories'))
        self.assertEqual(response.data, ['Dairy', 'Groceries'])

    def test_create_product(self):
        response = self.client.post(reverse('inventory:product-list'), {
            'name': 'Green Tea',
            'price': '9.99',
            'category': 'Groceries',
            'vendor_id': self.vendor.id,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stock_quantity'], 0)

    def test_negative_price_rejected(self):
        response = self.client.post(reverse('inventory:product-list'), {
            'name': 'Broken',
            'price': '-1.00',
            'category': 'Groceries',
            'vendor_id': self.vendor.id,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_autocomplete(self):
        response = self.client.get(reverse('inventory:product-autocomplete'), {'q': 'fre'})
        self.assertEqual([row['name'] for row in response.data], ['Fresh Milk'])

        response = self.client.get(reverse('inventory:product-autocomplete'), {'q': 'fr'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_vendor_search(self):
        Vendor.objects.create(name='City Grocers', location='Riyadh')

        response = self.client.get(reverse('inventory:vendor-list'), {'q': 'jed'})

        self.assertEqual([row['name'] for row in response.data['results']], ['Fresh Farms'])
        self.assertEqual(response.data['results'][0]['product_count'], 3)
