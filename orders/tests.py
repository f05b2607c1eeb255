"""
Tests for order creation, lifecycle and total consistency.

Test Cases:
1. Order created with sufficient stock, stock reserved
2. Order rejected with insufficient stock, nothing reserved, no order row
3. Validation of items, customer and address
4. Status state machine edges
5. Cancellation releases stock exactly once and refunds paid orders
6. Item mutation keeps the total equal to the items sum
7. Concurrent orders and cancellations on a locking database
"""
import threading
from decimal import Decimal

from django.db import connection
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import (
    EmptyOrder,
    IllegalTransition,
    InsufficientStock,
    NotFound,
    OrderValidationError,
)
from core.models import ErrorLog
from customers.models import Address, Customer
from inventory.models import Product, Vendor
from payments.models import Payment
from payments.services import record_payment
from orders.models import Order, OrderItem, OrderStatusChange
from orders.services import (
    create_order,
    get_order_summary,
    recompute_total,
    transition_order,
    update_item_quantity,
)
from orders.tasks import audit_order_totals
from orders.transitions import VALID_TRANSITIONS, can_transition, next_states

Status = Order.Status


def make_customer(name='Test Customer', phone='0500000001'):
    customer = Customer.objects.create(name=name, phone_number=phone)
    address = Address.objects.create(
        customer=customer,
        address_line='1 Test Street',
        city='Riyadh',
        postal_code='11564'
    )
    return customer, address


class OrderTestMixin:
    """Shared catalogue: product A (10.00, stock 5), B (5.00, stock 20), C (15.50, stock 10)."""

    def setUp(self):
        self.vendor = Vendor.objects.create(name='Test Vendor', location='Riyadh')
        self.product_a = Product.objects.create(
            vendor=self.vendor, name='Product A', price=Decimal('10.00'),
            stock_quantity=5, category='Groceries'
        )
        self.product_b = Product.objects.create(
            vendor=self.vendor, name='Product B', price=Decimal('5.00'),
            stock_quantity=20, category='Groceries'
        )
        self.product_c = Product.objects.create(
            vendor=self.vendor, name='Product C', price=Decimal('15.50'),
            stock_quantity=10, category='Dairy'
        )
        self.customer, self.address = make_customer()

    def place(self, *lines):
        items = [{'product_id': product.id, 'quantity': qty} for product, qty in lines]
        return create_order(self.customer.id, self.address.id, items)

    def stock(self, product):
        product.refresh_from_db()
        return product.stock_quantity


class OrderCreationTestCase(OrderTestMixin, TestCase):
    """Test cases for order creation."""

    def test_order_created_with_sufficient_stock(self):
        """
        Given: A has stock 5, B has stock 20
        When: Ordering 3 x A @ 10 and 1 x B @ 5
        Then: Order is PENDING, total is 35, A stock becomes 2
        """
        order = self.place((self.product_a, 3), (self.product_b, 1))

        self.assertEqual(order.status, Status.PENDING)
        self.assertEqual(order.payment_status, Order.PaymentStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal('35.00'))
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(self.stock(self.product_a), 2)
        self.assertEqual(self.stock(self.product_b), 19)

    def test_total_matches_items_sum(self):
        order = self.place((self.product_a, 2), (self.product_c, 3))

        self.assertEqual(order.total_amount, recompute_total(order))
        self.assertEqual(order.total_amount, Decimal('66.50'))

    def test_price_snapshot_survives_price_change(self):
        order = self.place((self.product_b, 2))

        self.product_b.price = Decimal('99.00')
        self.product_b.save()

        item = order.items.get()
        self.assertEqual(item.price, Decimal('5.00'))
        self.assertEqual(recompute_total(order), Decimal('10.00'))

    def test_insufficient_stock_rejects_whole_order(self):
        """
        Given: A has stock 2
        When: Ordering 3 x A and 1 x B
        Then: InsufficientStock, A and B untouched, no order row
        """
        Product.objects.filter(pk=self.product_a.pk).update(stock_quantity=2)

        with self.assertRaises(InsufficientStock) as context:
            self.place((self.product_a, 3), (self.product_b, 1))

        self.assertEqual(context.exception.product_id, self.product_a.id)
        self.assertEqual(context.exception.requested, 3)
        self.assertEqual(context.exception.available, 2)
        self.assertEqual(self.stock(self.product_a), 2)
        self.assertEqual(self.stock(self.product_b), 20)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)

    def test_earlier_reservations_rolled_back(self):
        """B is reserved before C fails; B's stock must be restored."""
        original_b = self.stock(self.product_b)

        with self.assertRaises(InsufficientStock):
            self.place((self.product_b, 4), (self.product_c, 11))

        self.assertEqual(self.stock(self.product_b), original_b)
        self.assertEqual(self.stock(self.product_c), 10)

    def test_insufficient_stock_is_logged(self):
        with self.assertRaises(InsufficientStock):
            self.place((self.product_a, 6))

        log = ErrorLog.objects.get()
        self.assertEqual(log.error_type, ErrorLog.ErrorType.STOCK_ISSUE)
        self.assertIn('Insufficient stock', log.message)

    def test_order_with_exact_stock(self):
        self.place((self.product_c, 10))
        self.assertEqual(self.stock(self.product_c), 0)

    def test_empty_order(self):
        with self.assertRaises(EmptyOrder):
            create_order(self.customer.id, self.address.id, [])

    def test_validation_error_invalid_quantity(self):
        with self.assertRaises(OrderValidationError):
            create_order(self.customer.id, self.address.id, [
                {'product_id': self.product_a.id, 'quantity': 0}
            ])

    def test_validation_error_duplicate_products(self):
        with self.assertRaises(OrderValidationError) as context:
            self.place((self.product_a, 1), (self.product_a, 2))

        self.assertIn('duplicate', str(context.exception).lower())

    def test_unknown_customer(self):
        with self.assertRaises(NotFound):
            create_order(99999, self.address.id, [{'product_id': self.product_a.id, 'quantity': 1}])

    def test_address_of_another_customer(self):
        _, other_address = make_customer('Other', '0500000002')

        with self.assertRaises(NotFound) as context:
            create_order(self.customer.id, other_address.id, [
                {'product_id': self.product_a.id, 'quantity': 1}
            ])

        self.assertEqual(context.exception.entity, 'Address')

    def test_inactive_product(self):
        self.product_b.is_active = False
        self.product_b.save()

        with self.assertRaises(NotFound):
            self.place((self.product_a, 1), (self.product_b, 1))

        self.assertEqual(self.stock(self.product_a), 5)
        self.assertEqual(Order.objects.count(), 0)

    def test_order_summary(self):
        order = self.place((self.product_a, 1), (self.product_b, 2))

        summary = get_order_summary(order.id)

        self.assertEqual(summary['total_amount'], '20.00')
        self.assertTrue(summary['total_matches_items'])
        self.assertEqual(summary['item_count'], 2)
        self.assertEqual(summary['address']['city'], 'Riyadh')


class StateMachineTestCase(TestCase):
    """Pure transition rules."""

    LEGAL = {
        (Status.PENDING, Status.CONFIRMED),
        (Status.CONFIRMED, Status.DISPATCHED),
        (Status.DISPATCHED, Status.DELIVERED),
        (Status.PENDING, Status.CANCELLED),
        (Status.CONFIRMED, Status.CANCELLED),
        (Status.DISPATCHED, Status.CANCELLED),
    }

    def test_only_legal_edges_allowed(self):
        for current in Status.values:
            for target in Status.values:
                with self.subTest(current=current, target=target):
                    self.assertEqual(
                        can_transition(current, target),
                        (current, target) in self.LEGAL
                    )

    def test_terminal_states_have_no_exits(self):
        self.assertEqual(VALID_TRANSITIONS[Status.DELIVERED], set())
        self.assertEqual(VALID_TRANSITIONS[Status.CANCELLED], set())

    def test_next_states_in_lifecycle_order(self):
        self.assertEqual(next_states(Status.PENDING), ['confirmed', 'cancelled'])
        self.assertEqual(next_states(Status.DELIVERED), [])


class OrderTransitionTestCase(OrderTestMixin, TestCase):
    """Persistence side of the state machine."""

    def advance(self, order, *targets):
        for target in targets:
            order = transition_order(order.id, target)
        return order

    def test_full_lifecycle(self):
        order = self.place((self.product_a, 1))
        order = self.advance(order, Status.CONFIRMED, Status.DISPATCHED, Status.DELIVERED)

        self.assertEqual(order.status, Status.DELIVERED)
        self.assertEqual(
            list(order.status_changes.values_list('to_status', flat=True)),
            ['confirmed', 'dispatched', 'delivered']
        )

    def test_delivered_to_confirmed_rejected(self):
        order = self.place((self.product_a, 1))
        self.advance(order, Status.CONFIRMED, Status.DISPATCHED, Status.DELIVERED)

        with self.assertRaises(IllegalTransition):
            transition_order(order.id, Status.CONFIRMED)

        order.refresh_from_db()
        self.assertEqual(order.status, Status.DELIVERED)

    def test_skipping_a_state_rejected(self):
        order = self.place((self.product_a, 1))

        with self.assertRaises(IllegalTransition):
            transition_order(order.id, Status.DISPATCHED)

        order.refresh_from_db()
        self.assertEqual(order.status, Status.PENDING)
        self.assertFalse(order.status_changes.exists())

    def test_delivered_cannot_be_cancelled(self):
        order = self.place((self.product_a, 2))
        self.advance(order, Status.CONFIRMED, Status.DISPATCHED, Status.DELIVERED)

        with self.assertRaises(IllegalTransition):
            transition_order(order.id, Status.CANCELLED)

        self.assertEqual(self.stock(self.product_a), 3)

    def test_unknown_status(self):
        order = self.place((self.product_a, 1))
        with self.assertRaises(OrderValidationError):
            transition_order(order.id, 'shipped')

    def test_unknown_order(self):
        with self.assertRaises(NotFound):
            transition_order(99999, Status.CONFIRMED)

    def test_cancel_dispatched_order_releases_stock(self):
        """
        Given: A dispatched order for 3 x A and 4 x B
        When: Cancelled
        Then: Status cancelled, all reserved stock back
        """
        order = self.place((self.product_a, 3), (self.product_b, 4))
        self.advance(order, Status.CONFIRMED, Status.DISPATCHED)

        order = transition_order(order.id, Status.CANCELLED)

        self.assertEqual(order.status, Status.CANCELLED)
        self.assertEqual(self.stock(self.product_a), 5)
        self.assertEqual(self.stock(self.product_b), 20)

    def test_repeated_cancellation_releases_once(self):
        order = self.place((self.product_a, 3))

        transition_order(order.id, Status.CANCELLED)
        again = transition_order(order.id, Status.CANCELLED)

        self.assertEqual(again.status, Status.CANCELLED)
        self.assertEqual(self.stock(self.product_a), 5)
        self.assertEqual(
            OrderStatusChange.objects.filter(order=order, to_status=Status.CANCELLED).count(),
            1
        )

    def test_cancel_paid_order_creates_refund(self):
        order = self.place((self.product_a, 3), (self.product_b, 1))
        record_payment(order.id, 'mada', Decimal('35.00'), 'txn-1')
        self.advance(order, Status.CONFIRMED, Status.DISPATCHED)

        order = transition_order(order.id, Status.CANCELLED)

        self.assertEqual(order.payment_status, Order.PaymentStatus.REFUNDED)
        refund = Payment.objects.get(order=order, kind=Payment.Kind.REFUND)
        self.assertEqual(refund.amount, Decimal('35.00'))
        self.assertEqual(refund.refund_of.transaction_ref, 'txn-1')

    def test_repeated_cancellation_refunds_once(self):
        order = self.place((self.product_a, 1))
        record_payment(order.id, 'mada', Decimal('10.00'), 'txn-2')

        transition_order(order.id, Status.CANCELLED)
        transition_order(order.id, Status.CANCELLED)

        self.assertEqual(Payment.objects.filter(order=order, kind=Payment.Kind.REFUND).count(), 1)

    def test_cancel_unpaid_order_has_no_refund(self):
        order = self.place((self.product_a, 1))
        order = transition_order(order.id, Status.CANCELLED)

        self.assertEqual(order.payment_status, Order.PaymentStatus.PENDING)
        self.assertFalse(Payment.objects.exists())


class ItemMutationTestCase(OrderTestMixin, TestCase):
    """Item changes keep stock and total consistent."""

    def test_increase_reserves_delta_and_recomputes_total(self):
        order = self.place((self.product_a, 1), (self.product_b, 1))
        item = order.items.get(product=self.product_a)

        order = update_item_quantity(order.id, item.id, 4)

        self.assertEqual(order.total_amount, Decimal('45.00'))
        self.assertEqual(order.total_amount, recompute_total(order))
        self.assertEqual(self.stock(self.product_a), 1)

    def test_decrease_releases_delta(self):
        order = self.place((self.product_b, 10))
        item = order.items.get()

        order = update_item_quantity(order.id, item.id, 2)

        self.assertEqual(order.total_amount, Decimal('10.00'))
        self.assertEqual(self.stock(self.product_b), 18)

    def test_increase_beyond_stock_changes_nothing(self):
        order = self.place((self.product_a, 2))
        item = order.items.get()

        with self.assertRaises(InsufficientStock):
            update_item_quantity(order.id, item.id, 10)

        item.refresh_from_db()
        order.refresh_from_db()
        self.assertEqual(item.quantity, 2)
        self.assertEqual(order.total_amount, Decimal('20.00'))
        self.assertEqual(self.stock(self.product_a), 3)

    def test_only_pending_orders(self):
        order = self.place((self.product_a, 1))
        transition_order(order.id, Status.CONFIRMED)

        with self.assertRaises(OrderValidationError):
            update_item_quantity(order.id, order.items.get().id, 2)

    def test_paid_orders_locked(self):
        order = self.place((self.product_a, 1))
        record_payment(order.id, 'mada', Decimal('10.00'), 'txn-locked')

        with self.assertRaises(OrderValidationError):
            update_item_quantity(order.id, order.items.get().id, 2)

    def test_orders_with_pending_charge_locked(self):
        order = self.place((self.product_a, 1))
        record_payment(order.id, 'mada', Decimal('10.00'), 'txn-open', status=Payment.Status.PENDING)

        with self.assertRaises(OrderValidationError):
            update_item_quantity(order.id, order.items.get().id, 2)

        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('10.00'))


class OrderTaskTestCase(OrderTestMixin, TestCase):

    def test_audit_reports_divergent_totals(self):
        good = self.place((self.product_a, 1))
        bad = self.place((self.product_b, 1))
        Order.objects.filter(pk=bad.pk).update(total_amount=Decimal('1.00'))

        result = audit_order_totals()

        self.assertEqual(result['mismatched'], [bad.id])
        self.assertNotIn(good.id, result['mismatched'])
        log = ErrorLog.objects.get(order=bad)
        self.assertEqual(log.error_type, ErrorLog.ErrorType.SYSTEM_ERROR)


class OrderAPITestCase(OrderTestMixin, APITestCase):

    def test_create_order(self):
        response = self.client.post(reverse('orders:order-list'), {
            'customer_id': self.customer.id,
            'address_id': self.address.id,
            'items': [
                {'product_id': self.product_a.id, 'quantity': 3},
                {'product_id': self.product_b.id, 'quantity': 1},
            ]
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '35.00')
        self.assertEqual(response.data['status'], 'pending')
        self.assertTrue(response.data['total_matches_items'])

    def test_create_order_insufficient_stock(self):
        response = self.client.post(reverse('orders:order-list'), {
            'customer_id': self.customer.id,
            'address_id': self.address.id,
            'items': [{'product_id': self.product_a.id, 'quantity': 6}]
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Insufficient Stock')
        self.assertEqual(response.data['available'], 5)

    def test_create_empty_order(self):
        response = self.client.post(reverse('orders:order-list'), {
            'customer_id': self.customer.id,
            'address_id': self.address.id,
            'items': []
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Empty Order')

    def test_status_endpoint_rejects_illegal_transition(self):
        order = self.place((self.product_a, 1))

        response = self.client.post(
            reverse('orders:order-status', args=[order.id]),
            {'status': 'delivered'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Illegal Transition')

    def test_status_endpoint(self):
        order = self.place((self.product_a, 1))

        response = self.client.post(
            reverse('orders:order-status', args=[order.id]),
            {'status': 'confirmed'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'confirmed')
        self.assertEqual(response.data['allowed_transitions'], ['dispatched', 'cancelled'])

    def test_list_filters_and_search(self):
        first = self.place((self.product_a, 1))
        other, other_address = make_customer('Nour Salem', '0555123456')
        create_order(other.id, other_address.id, [{'product_id': self.product_b.id, 'quantity': 1}])
        transition_order(first.id, Status.CONFIRMED)

        response = self.client.get(reverse('orders:order-list'), {'status': 'confirmed'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], first.id)

        response = self.client.get(reverse('orders:order-list'), {'q': '5123'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['customer']['name'], 'Nour Salem')

    def test_list_is_paginated(self):
        Product.objects.filter(pk=self.product_b.pk).update(stock_quantity=100)
        for _ in range(12):
            self.place((self.product_b, 1))

        response = self.client.get(reverse('orders:order-list'))

        self.assertEqual(response.data['count'], 12)
        self.assertEqual(len(response.data['results']), 10)
        self.assertIsNotNone(response.data['next'])

    def test_item_update_endpoint(self):
        order = self.place((self.product_b, 1))
        item = order.items.get()

        response = self.client.patch(
            reverse('orders:order-item-update', args=[order.id, item.id]),
            {'quantity': 3},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '15.00')

    def test_summary_endpoint(self):
        order = self.place((self.product_c, 2))
        record_payment(order.id, 'mada', Decimal('31.00'), 'txn-summary')

        response = self.client.get(reverse('orders:order-summary', args=[order.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '31.00')
        self.assertTrue(response.data['total_matches_items'])
        self.assertEqual(response.data['payments'][0]['transaction_ref'], 'txn-summary')
        self.assertEqual(response.data['deliveries'], [])

        response = self.client.get(reverse('orders:order-summary', args=[99999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_dashboard(self):
        paid = self.place((self.product_a, 1))
        self.place((self.product_b, 2))
        record_payment(paid.id, 'mada', Decimal('10.00'), 'txn-dash')

        response = self.client.get(reverse('orders:dashboard'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['pending_orders'], 2)
        self.assertEqual(response.data['total_customers'], 1)
        self.assertEqual(response.data['total_products'], 3)
        self.assertEqual(response.data['total_revenue'], '10.00')
        self.assertEqual(len(response.data['recent_orders']), 2)

    def test_stats(self):
        order = self.place((self.product_a, 1))
        paid = self.place((self.product_b, 1))
        transition_order(order.id, Status.CANCELLED)

        response = self.client.get(reverse('orders:order-stats'))

        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['cancelled_orders'], 1)
        self.assertEqual(response.data['pending_orders'], 1)
        self.assertEqual(response.data['paid_revenue'], '0.00')

        record_payment(paid.id, 'mada', Decimal('5.00'), 'txn-stats')
        response = self.client.get(reverse('orders:order-stats'))
        self.assertEqual(response.data['paid_revenue'], '5.00')


@skipUnlessDBFeature('has_select_for_update')
class ConcurrentOrderTestCase(TransactionTestCase):
    """
    Concurrent reservation and cancellation on a database with row locking.
    Uses TransactionTestCase for proper multi-threading support.
    """

    def setUp(self):
        vendor = Vendor.objects.create(name='Concurrent Vendor')
        self.product = Product.objects.create(
            vendor=vendor, name='Limited Stock Product', price=Decimal('50.00'),
            stock_quantity=10, category='Limited'
        )
        self.customer, self.address = make_customer('Racer', '0500000009')

    def run_concurrently(self, target, count=2):
        results = []
        lock = threading.Lock()

        def worker():
            try:
                outcome = target()
            except Exception as e:
                outcome = e
            finally:
                connection.close()
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_concurrent_orders_no_overselling(self):
        """
        Given: 10 units in stock
        When: Two concurrent orders of 8 units each
        Then: Exactly one succeeds, stock ends at 2
        """
        items = [{'product_id': self.product.id, 'quantity': 8}]
        results = self.run_concurrently(
            lambda: create_order(self.customer.id, self.address.id, items)
        )

        created = [r for r in results if isinstance(r, Order)]
        rejected = [r for r in results if isinstance(r, InsufficientStock)]
        self.assertEqual(len(created), 1)
        self.assertEqual(len(rejected), 1)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 2)

    def test_concurrent_cancellation_releases_once(self):
        order = create_order(self.customer.id, self.address.id, [
            {'product_id': self.product.id, 'quantity': 4}
        ])

        results = self.run_concurrently(
            lambda: transition_order(order.id, Status.CANCELLED),
            count=3
        )

        self.assertTrue(all(isinstance(r, Order) for r in results))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
