"""
Tests for customer search and order statistics.
"""
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from customers.models import Address, Customer
from customers.services import search_customers, with_order_stats
from inventory.models import Product, Vendor
from orders.models import Order
from orders.services import create_order, transition_order


def make_customer(name, phone, email=None, city='Riyadh'):
    customer = Customer.objects.create(name=name, phone_number=phone, email=email)
    address = Address.objects.create(
        customer=customer, address_line='1 Olaya Street', city=city, postal_code='12211'
    )
    customer.default_address = address
    customer.save(update_fields=['default_address'])
    return customer


class CustomerStatsTestCase(TestCase):

    def setUp(self):
        vendor = Vendor.objects.create(name='Stats Vendor')
        self.product = Product.objects.create(
            vendor=vendor, name='Widget', price=Decimal('10.00'),
            stock_quantity=100, category='Household'
        )
        self.customer = make_customer('Sara Alharbi', '0500000001', 'sara@example.com')

    def place(self, quantity):
        return create_order(self.customer.id, self.customer.default_address_id, [
            {'product_id': self.product.id, 'quantity': quantity}
        ])

    def test_stats_without_orders(self):
        customer = with_order_stats(Customer.objects.filter(pk=self.customer.pk)).get()

        self.assertEqual(customer.order_count, 0)
        self.assertEqual(customer.total_spent, Decimal('0.00'))

    def test_cancelled_orders_excluded_from_total_spent(self):
        self.place(2)
        self.place(3)
        cancelled = self.place(4)
        transition_order(cancelled.id, Order.Status.CANCELLED)

        customer = with_order_stats(Customer.objects.filter(pk=self.customer.pk)).get()

        self.assertEqual(customer.order_count, 3)
        self.assertEqual(customer.total_spent, Decimal('50.00'))

    def test_search_is_case_insensitive_across_fields(self):
        make_customer('Omar Alqahtani', '0555123456')

        self.assertEqual([c.name for c in search_customers('SARA')], ['Sara Alharbi'])
        self.assertEqual([c.name for c in search_customers('123')], ['Omar Alqahtani'])
        self.assertEqual([c.name for c in search_customers('example.com')], ['Sara Alharbi'])
        self.assertEqual(
            [c.name for c in search_customers('')],
            ['Omar Alqahtani', 'Sara Alharbi']
        )


class CustomerAPITestCase(APITestCase):

    def setUp(self):
        self.customer = make_customer('Lina Alshehri', '0500000002')

    def test_list_includes_stats_and_default_address(self):
        response = self.client.get(reverse('customers:customer-list'), {'q': 'lina'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        row = response.data['results'][0]
        self.assertEqual(row['order_count'], 0)
        self.assertEqual(row['total_spent'], '0.00')
        self.assertEqual(row['default_address']['city'], 'Riyadh')

    def test_create_customer(self):
        response = self.client.post(reverse('customers:customer-list'), {
            'name': 'Khalid Alotaibi',
            'phone_number': '0500000003',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['default_address'])

    def test_first_address_becomes_default(self):
        customer = Customer.objects.create(name='Noura', phone_number='0500000004')
        url = reverse('customers:customer-addresses', args=[customer.id])

        first = self.client.post(url, {
            'address_line': '9 Tahlia Street', 'city': 'Jeddah', 'postal_code': '23433'
        }, format='json')
        self.client.post(url, {
            'address_line': '10 Corniche Road', 'city': 'Jeddah', 'postal_code': '23434'
        }, format='json')

        customer.refresh_from_db()
        self.assertEqual(customer.default_address_id, first.data['id'])
        self.assertEqual(len(self.client.get(url).data), 2)

    def test_addresses_of_unknown_customer(self):
        response = self.client.get(reverse('customers:customer-addresses', args=[99999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_default_address_must_belong_to_customer(self):
        other = make_customer('Faisal', '0500000005')

        response = self.client.patch(
            reverse('customers:customer-detail', args=[self.customer.id]),
            {'default_address_id': other.default_address_id},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('default_address_id', response.data)
