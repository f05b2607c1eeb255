"""
Tests for payment reconciliation.
"""
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import AmountMismatch, NotFound, PaymentNotAllowed
from core.models import ErrorLog
from customers.models import Address, Customer
from inventory.models import Product, Vendor
from orders.models import Order
from orders.services import create_order, transition_order
from payments.models import Payment
from payments.services import record_payment, refund_order


class PaymentTestMixin:

    def setUp(self):
        vendor = Vendor.objects.create(name='Pay Vendor')
        self.product = Product.objects.create(
            vendor=vendor, name='Paid Product', price=Decimal('17.50'),
            stock_quantity=50, category='Household'
        )
        customer = Customer.objects.create(name='Payer', phone_number='0511111111')
        address = Address.objects.create(
            customer=customer, address_line='2 Pay Street', city='Dammam', postal_code='31411'
        )
        self.order = create_order(customer.id, address.id, [
            {'product_id': self.product.id, 'quantity': 2}
        ])


class RecordPaymentTestCase(PaymentTestMixin, TestCase):

    def test_successful_payment_marks_order_paid(self):
        payment = record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_1')

        self.order.refresh_from_db()
        self.assertEqual(payment.status, Payment.Status.SUCCESS)
        self.assertEqual(payment.kind, Payment.Kind.CHARGE)
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PAID)

    def test_payment_does_not_change_order_status(self):
        record_payment(self.order.id, 'stripe', '35.00', 'ch_2')

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.Status.PENDING)

    def test_amount_mismatch_creates_no_payment(self):
        with self.assertRaises(AmountMismatch):
            record_payment(self.order.id, 'stripe', Decimal('34.99'), 'ch_3')

        self.assertFalse(Payment.objects.exists())
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PENDING)
        self.assertEqual(
            ErrorLog.objects.get().error_type,
            ErrorLog.ErrorType.PAYMENT_ISSUE
        )

    def test_failed_payment_still_requires_matching_amount(self):
        with self.assertRaises(AmountMismatch):
            record_payment(self.order.id, 'stripe', Decimal('1.00'), 'ch_4', status=Payment.Status.FAILED)
        self.assertFalse(Payment.objects.exists())

    def test_failed_payment_marks_order_failed(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_5', status=Payment.Status.FAILED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.FAILED)
        self.assertTrue(ErrorLog.objects.filter(
            order=self.order, error_type=ErrorLog.ErrorType.PAYMENT_ISSUE
        ).exists())

    def test_failed_attempt_after_success_keeps_paid(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_6')
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_7', status=Payment.Status.FAILED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PAID)

    def test_same_reference_is_idempotent(self):
        first = record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_8')
        second = record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_8')

        self.assertEqual(first.id, second.id)
        self.assertEqual(Payment.objects.count(), 1)

    def test_reference_reused_for_another_order(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_9')
        other = create_order(self.order.customer_id, self.order.address_id, [
            {'product_id': self.product.id, 'quantity': 1}
        ])

        with self.assertRaises(PaymentNotAllowed):
            record_payment(other.id, 'stripe', Decimal('17.50'), 'ch_9')

    def test_cancelled_order_rejects_payment(self):
        transition_order(self.order.id, Order.Status.CANCELLED)

        with self.assertRaises(PaymentNotAllowed):
            record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_10')

    def test_unknown_order(self):
        with self.assertRaises(NotFound):
            record_payment(99999, 'stripe', Decimal('35.00'), 'ch_11')

    def test_second_charge_on_paid_order_rejected(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_12')

        with self.assertRaises(PaymentNotAllowed):
            record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_13')

        self.assertEqual(Payment.objects.filter(kind=Payment.Kind.CHARGE).count(), 1)

    def test_pending_charge_settles_to_success(self):
        pending = record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_14', status=Payment.Status.PENDING)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PENDING)

        settled = record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_14')

        self.assertEqual(settled.id, pending.id)
        self.assertEqual(settled.status, Payment.Status.SUCCESS)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PAID)
        self.assertEqual(Payment.objects.count(), 1)

    def test_pending_charge_settles_to_failed(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_15', status=Payment.Status.PENDING)

        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_15', status=Payment.Status.FAILED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.FAILED)
        self.assertEqual(Payment.objects.get().status, Payment.Status.FAILED)

    def test_settled_charge_is_final(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_16')

        payment = record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_16', status=Payment.Status.FAILED)

        self.assertEqual(payment.status, Payment.Status.SUCCESS)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.PAID)

    def test_pending_charge_settled_after_cancellation_is_refunded(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_17', status=Payment.Status.PENDING)
        transition_order(self.order.id, Order.Status.CANCELLED)

        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_17')

        refund = Payment.objects.get(kind=Payment.Kind.REFUND)
        self.assertEqual(refund.refund_of.transaction_ref, 'ch_17')
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.REFUNDED)


class RefundTestCase(PaymentTestMixin, TestCase):

    def test_refund_without_charge(self):
        self.assertEqual(refund_order(self.order), [])

    def test_refund_created_once(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_r1')

        [refund] = refund_order(self.order)
        self.assertEqual(refund_order(self.order), [])

        self.assertEqual(refund.kind, Payment.Kind.REFUND)
        self.assertEqual(refund.amount, Decimal('35.00'))
        self.assertEqual(refund.transaction_ref, 'refund-ch_r1')
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.REFUNDED)

    def test_every_successful_charge_refunded_on_cancel(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_r3', status=Payment.Status.PENDING)
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_r4')
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_r3')

        transition_order(self.order.id, Order.Status.CANCELLED)

        charges = Payment.objects.filter(kind=Payment.Kind.CHARGE, status=Payment.Status.SUCCESS)
        refunds = Payment.objects.filter(kind=Payment.Kind.REFUND)
        self.assertEqual(charges.count(), 2)
        self.assertEqual(
            sorted(refund.refund_of.transaction_ref for refund in refunds),
            ['ch_r3', 'ch_r4']
        )

    def test_failed_charge_not_refunded(self):
        record_payment(self.order.id, 'stripe', Decimal('35.00'), 'ch_r2', status=Payment.Status.FAILED)
        self.assertEqual(refund_order(self.order), [])


class PaymentAPITestCase(PaymentTestMixin, APITestCase):

    def test_record_payment(self):
        response = self.client.post(
            reverse('payments:order-payments', args=[self.order.id]),
            {'provider': 'mada', 'amount': '35.00', 'transaction_ref': 'api-1'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'success')

        response = self.client.get(reverse('payments:order-payments', args=[self.order.id]))
        self.assertEqual(len(response.data), 1)

    def test_amount_mismatch(self):
        response = self.client.post(
            reverse('payments:order-payments', args=[self.order.id]),
            {'provider': 'mada', 'amount': '10.00', 'transaction_ref': 'api-2'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Amount Mismatch')
        self.assertFalse(Payment.objects.exists())

    def test_list_filters_refunds(self):
        record_payment(self.order.id, 'mada', Decimal('35.00'), 'api-3')
        transition_order(self.order.id, Order.Status.CANCELLED)

        response = self.client.get(reverse('payments:payment-list'), {'kind': 'refund'})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['transaction_ref'], 'refund-api-3')
