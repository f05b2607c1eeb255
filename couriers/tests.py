"""
Tests for courier assignment and delivery tracking.
"""
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import CourierUnavailable, IllegalTransition
from core.models import ErrorLog
from couriers.models import Courier, OrderDelivery
from couriers.services import assign_courier, update_delivery_status
from customers.models import Address, Customer
from inventory.models import Product, Vendor
from orders.models import Order
from orders.services import create_order, transition_order


class DeliveryTestMixin:

    def setUp(self):
        vendor = Vendor.objects.create(name='Courier Vendor')
        product = Product.objects.create(
            vendor=vendor, name='Parcel', price=Decimal('8.00'),
            stock_quantity=30, category='Household'
        )
        customer = Customer.objects.create(name='Receiver', phone_number='0522222222')
        address = Address.objects.create(
            customer=customer, address_line='3 Drop Street', city='Jeddah', postal_code='21411'
        )
        self.order = create_order(customer.id, address.id, [
            {'product_id': product.id, 'quantity': 1}
        ])
        self.courier = Courier.objects.create(
            name='SMSA Express', api_endpoint='https://api.smsa.example', contact_number='920009999'
        )

    def order_status(self):
        self.order.refresh_from_db()
        return self.order.status


class AssignCourierTestCase(DeliveryTestMixin, TestCase):

    def test_assign_confirmed_order(self):
        transition_order(self.order.id, Order.Status.CONFIRMED)

        delivery = assign_courier(self.order.id, self.courier.id)

        self.assertEqual(delivery.status, OrderDelivery.Status.ASSIGNED)
        self.assertTrue(delivery.tracking_number.startswith('TRK-'))

    def test_pending_order_cannot_be_assigned(self):
        with self.assertRaises(IllegalTransition):
            assign_courier(self.order.id, self.courier.id)

    def test_inactive_courier(self):
        transition_order(self.order.id, Order.Status.CONFIRMED)
        self.courier.status = Courier.Status.INACTIVE
        self.courier.save()

        with self.assertRaises(CourierUnavailable):
            assign_courier(self.order.id, self.courier.id)

    def test_one_live_delivery_per_order(self):
        transition_order(self.order.id, Order.Status.CONFIRMED)
        assign_courier(self.order.id, self.courier.id)

        with self.assertRaises(CourierUnavailable):
            assign_courier(self.order.id, self.courier.id)

    def test_reassign_after_failure(self):
        transition_order(self.order.id, Order.Status.CONFIRMED)
        first = assign_courier(self.order.id, self.courier.id)
        update_delivery_status(first.id, OrderDelivery.Status.FAILED)

        second = assign_courier(self.order.id, self.courier.id, tracking_number='MANUAL-1')

        self.assertEqual(second.tracking_number, 'MANUAL-1')


class DeliveryStatusTestCase(DeliveryTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        transition_order(self.order.id, Order.Status.CONFIRMED)
        self.delivery = assign_courier(self.order.id, self.courier.id)

    def test_in_transit_dispatches_order(self):
        update_delivery_status(self.delivery.id, OrderDelivery.Status.IN_TRANSIT)
        self.assertEqual(self.order_status(), Order.Status.DISPATCHED)

    def test_delivered_delivers_order(self):
        update_delivery_status(self.delivery.id, OrderDelivery.Status.IN_TRANSIT)
        delivery = update_delivery_status(self.delivery.id, OrderDelivery.Status.DELIVERED)

        self.assertEqual(delivery.status, OrderDelivery.Status.DELIVERED)
        self.assertEqual(self.order_status(), Order.Status.DELIVERED)

    def test_cannot_skip_in_transit(self):
        with self.assertRaises(IllegalTransition):
            update_delivery_status(self.delivery.id, OrderDelivery.Status.DELIVERED)

        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.status, OrderDelivery.Status.ASSIGNED)
        self.assertEqual(self.order_status(), Order.Status.CONFIRMED)

    def test_failure_logged_as_courier_issue(self):
        update_delivery_status(self.delivery.id, OrderDelivery.Status.FAILED)

        log = ErrorLog.objects.get()
        self.assertEqual(log.error_type, ErrorLog.ErrorType.COURIER_ISSUE)
        self.assertEqual(log.order_id, self.order.id)
        self.assertEqual(self.order_status(), Order.Status.CONFIRMED)

    def test_cancelling_order_fails_live_delivery(self):
        update_delivery_status(self.delivery.id, OrderDelivery.Status.IN_TRANSIT)
        transition_order(self.order.id, Order.Status.CANCELLED)

        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.status, OrderDelivery.Status.FAILED)
        with self.assertRaises(IllegalTransition):
            update_delivery_status(self.delivery.id, OrderDelivery.Status.DELIVERED)
        self.assertEqual(self.order_status(), Order.Status.CANCELLED)

    def test_assigned_delivery_of_cancelled_order_cannot_start(self):
        transition_order(self.order.id, Order.Status.CANCELLED)

        with self.assertRaises(IllegalTransition):
            update_delivery_status(self.delivery.id, OrderDelivery.Status.IN_TRANSIT)

        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.status, OrderDelivery.Status.FAILED)
        self.assertFalse(ErrorLog.objects.filter(error_type=ErrorLog.ErrorType.COURIER_ISSUE).exists())

    def test_delivered_delivery_kept_when_order_finished(self):
        update_delivery_status(self.delivery.id, OrderDelivery.Status.IN_TRANSIT)
        update_delivery_status(self.delivery.id, OrderDelivery.Status.DELIVERED)

        with self.assertRaises(IllegalTransition):
            transition_order(self.order.id, Order.Status.CANCELLED)

        self.delivery.refresh_from_db()
        self.assertEqual(self.delivery.status, OrderDelivery.Status.DELIVERED)


class CourierAPITestCase(DeliveryTestMixin, APITestCase):

    def test_crud_and_search(self):
        response = self.client.post(reverse('couriers:courier-list'), {
            'name': 'Aramex',
            'api_endpoint': 'https://api.aramex.example',
            'contact_number': '920020505',
            'status': 'inactive',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        courier_id = response.data['id']

        response = self.client.get(reverse('couriers:courier-list'), {'q': 'ara'})
        self.assertEqual([row['name'] for row in response.data['results']], ['Aramex'])

        response = self.client.get(reverse('couriers:courier-list'), {'status': 'active'})
        self.assertEqual([row['name'] for row in response.data['results']], ['SMSA Express'])

        response = self.client.patch(
            reverse('couriers:courier-detail', args=[courier_id]),
            {'status': 'active'},
            format='json'
        )
        self.assertEqual(response.data['status'], 'active')

        response = self.client.delete(reverse('couriers:courier-detail', args=[courier_id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_assign_and_track(self):
        transition_order(self.order.id, Order.Status.CONFIRMED)

        response = self.client.post(
            reverse('couriers:order-delivery', args=[self.order.id]),
            {'courier_id': self.courier.id},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        delivery_id = response.data['id']

        response = self.client.post(
            reverse('couriers:delivery-status', args=[delivery_id]),
            {'status': 'in_transit'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.order_status(), Order.Status.DISPATCHED)

        response = self.client.get(reverse('couriers:order-delivery', args=[self.order.id]))
        self.assertEqual(response.data[0]['courier']['name'], 'SMSA Express')

    def test_assign_pending_order_conflict(self):
        response = self.client.post(
            reverse('couriers:order-delivery', args=[self.order.id]),
            {'courier_id': self.courier.id},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
