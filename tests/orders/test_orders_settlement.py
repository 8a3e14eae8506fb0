"""
Tests for order placement: input validation, voucher handling and the incentive fan-out.
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from apps.common.exceptions import PersistenceFailure, ValidationError, VoucherExhausted, VoucherNotFound
from apps.notifications.models import Notification
from apps.orders.models import Order, OrderItem, OrderStatus, OrderStatusHistory, PaymentStatus
from apps.orders.services import OrderSettlementService
from apps.promotions.models import VoucherUsage
from apps.promotions.services import (
    RedemptionResult,
    RedemptionStatus,
    ReferralService,
    RewardService,
    VoucherLedgerService,
)
from tests.factories.ledger import create_customer, create_order, create_voucher, order_data, place_order


class OrderPlacementTestCase(TestCase):
    """Happy paths of OrderSettlementService.place_order"""

    def setUp(self):
        self.customer = create_customer()

    def test_place_order_persists_order_items_and_history(self):
        data = order_data(
            self.customer,
            '30000',
            items=[
                {'product_id': 'prod-001', 'quantity': 2, 'price': Decimal('10000'), 'title': 'Kaftan',
                 'option': {'name': 'Large'}},
                {'bundle_id': 'bundle-7', 'quantity': 1, 'price': Decimal('10000'), 'title': 'Beauty Box'},
            ],
        )

        result = OrderSettlementService.place_order(data)

        self.assertTrue(result.is_ok())
        outcome = result.unwrap()
        order = Order.objects.get(pk=outcome.order_id)
        self.assertEqual(order.status, OrderStatus.CONFIRMED)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal('30000'))
        self.assertEqual(len(order.reference), 8)
        self.assertTrue(order.is_first_order)
        self.assertEqual(OrderItem.objects.filter(order=order).count(), 2)
        self.assertEqual(order.items.get(product_id='prod-001').option_name, 'Large')

        history = OrderStatusHistory.objects.get(order=order)
        self.assertEqual(history.old_status, '')
        self.assertEqual(history.new_status, OrderStatus.CONFIRMED)

        self.assertFalse(outcome.voucher_applied)
        self.assertIsNone(outcome.voucher_status)
        self.assertEqual(outcome.tier_label, 'Welcome Spin')

    def test_guest_order(self):
        result = OrderSettlementService.place_order(order_data(None, '75000'))

        outcome = result.unwrap()
        self.assertIsNone(outcome.order.user)
        self.assertFalse(outcome.order.is_first_order)
        self.assertIsNone(outcome.tier_label)
        self.assertFalse(Notification.objects.exists())

    def test_is_first_order_ignores_cancelled_orders(self):
        self.assertTrue(OrderSettlementService.is_first_order(self.customer))
        create_order(self.customer, '5000', status=OrderStatus.CANCELLED)
        self.assertTrue(OrderSettlementService.is_first_order(self.customer))
        create_order(self.customer, '5000')
        self.assertFalse(OrderSettlementService.is_first_order(self.customer))
        self.assertFalse(OrderSettlementService.is_first_order(None))


class OrderValidationTestCase(TestCase):
    """Invalid input is rejected before anything is written"""

    def setUp(self):
        self.customer = create_customer()

    def test_invalid_inputs(self):
        cases = {
            'no items': {'items': []},
            'two refs': {'items': [{'product_id': 'p', 'offer_id': 'o', 'quantity': 1, 'price': Decimal('1')}]},
            'no ref': {'items': [{'quantity': 1, 'price': Decimal('1')}]},
            'zero quantity': {'items': [{'product_id': 'p', 'quantity': 0, 'price': Decimal('1')}]},
            'negative price': {'items': [{'product_id': 'p', 'quantity': 1, 'price': Decimal('-1')}]},
            'negative total': {'total_amount': Decimal('-5')},
            'bad total': {'total_amount': 'lots'},
            'negative delivery fee': {'delivery_fee': Decimal('-1')},
            'unknown payment method': {'payment_method': 'barter'},
            'no address': {'shipping_address': {}},
            'malformed voucher': {'voucher_id': 'not-a-uuid'},
        }
        for label, overrides in cases.items():
            with self.subTest(label):
                result = OrderSettlementService.place_order(order_data(self.customer, '1000', **overrides))
                self.assertTrue(result.is_err())
                self.assertIsInstance(result.error, ValidationError)
                self.assertEqual(result.error.http_status, 400)

        self.assertFalse(Order.objects.exists())

    def test_unknown_and_inactive_vouchers(self):
        inactive = create_voucher(code='RETIRED', is_active=False)

        for voucher_id in (uuid.uuid4(), inactive.pk):
            with self.subTest(voucher_id=voucher_id):
                result = OrderSettlementService.place_order(order_data(self.customer, '1000', voucher_id=voucher_id))
                self.assertIsInstance(result.error, VoucherNotFound)
        self.assertFalse(Order.objects.exists())

    def test_exhausted_voucher_is_rejected_up_front(self):
        voucher = create_voucher(max_uses=1, used_count=1)

        result = OrderSettlementService.place_order(order_data(self.customer, '1000', voucher_id=voucher.pk))

        self.assertIsInstance(result.error, VoucherExhausted)
        self.assertEqual(result.error.http_status, 409)
        self.assertFalse(Order.objects.exists())

    def test_another_users_voucher_is_rejected_before_the_order_is_written(self):
        owner = create_customer('owner@example.com')
        voucher = create_voucher(code='OWNERONLY', user=owner, max_uses=1)

        result = OrderSettlementService.place_order(order_data(self.customer, '5000', voucher_id=voucher.pk))

        self.assertIsInstance(result.error, ValidationError)
        self.assertEqual(result.error.http_status, 400)
        self.assertEqual(result.error.message, 'This voucher is not valid for your account.')
        self.assertFalse(Order.objects.exists())
        self.assertFalse(VoucherUsage.objects.exists())
        voucher.refresh_from_db()
        self.assertEqual(voucher.used_count, 0)

        # A guest cannot use a personal voucher either
        self.assertIsInstance(
            OrderSettlementService.place_order(order_data(None, '5000', voucher_id=voucher.pk)).error,
            ValidationError,
        )
        # The owner still can
        self.assertTrue(place_order(owner, '5000', voucher_id=voucher.pk).voucher)

    def test_expired_and_not_yet_valid_vouchers_are_rejected(self):
        now = timezone.now()
        expired = create_voucher(code='EXPIRED', valid_to=now - timedelta(minutes=1))
        upcoming = create_voucher(code='UPCOMING', valid_from=now + timedelta(days=1))

        for voucher, message in ((expired, 'Voucher has expired.'), (upcoming, 'Voucher is not yet valid.')):
            with self.subTest(code=voucher.code):
                result = OrderSettlementService.place_order(order_data(self.customer, '5000', voucher_id=voucher.pk))
                self.assertIsInstance(result.error, ValidationError)
                self.assertEqual(result.error.message, message)
                voucher.refresh_from_db()
                self.assertEqual(voucher.used_count, 0)
        self.assertFalse(Order.objects.exists())

    def test_order_below_voucher_minimum_is_rejected(self):
        voucher = create_voucher(code='MIN50K', min_order_amount=Decimal('50000'))

        result = OrderSettlementService.place_order(order_data(self.customer, '5000', voucher_id=voucher.pk))

        self.assertIsInstance(result.error, ValidationError)
        self.assertIn('50000', result.error.message)
        self.assertFalse(Order.objects.exists())
        voucher.refresh_from_db()
        self.assertEqual(voucher.used_count, 0)

        outcome = OrderSettlementService.place_order(
            order_data(self.customer, '50000', voucher_id=voucher.pk)
        ).unwrap()
        self.assertTrue(outcome.voucher_applied)

    def test_persistence_failure(self):
        voucher = create_voucher(max_uses=5)

        with patch.object(OrderSettlementService, '_persist_order', side_effect=DatabaseError('disk full')):
            result = OrderSettlementService.place_order(order_data(self.customer, '1000', voucher_id=voucher.pk))

        self.assertIsInstance(result.error, PersistenceFailure)
        self.assertEqual(result.error.to_dict(), {
            'success': False,
            'error': 'Failed to create order',
            'code': 'persistence_failure',
        })
        voucher.refresh_from_db()
        self.assertEqual(voucher.used_count, 0)


class OrderVoucherRedemptionTestCase(TestCase):
    """Redemption runs after the order is stored and never fails placement"""

    def setUp(self):
        self.customer = create_customer()
        self.voucher = create_voucher(max_uses=5)

    def test_voucher_is_redeemed_with_the_order(self):
        outcome = OrderSettlementService.place_order(
            order_data(self.customer, '20000', voucher_id=self.voucher.pk)
        ).unwrap()

        self.assertTrue(outcome.voucher_applied)
        self.assertEqual(outcome.voucher_status, RedemptionStatus.REDEEMED.value)
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.used_count, 1)
        usage = VoucherUsage.objects.get(voucher=self.voucher)
        self.assertEqual(usage.order_id, outcome.order_id)
        self.assertEqual(Order.objects.get(pk=outcome.order_id).voucher, self.voucher)

    def test_lost_race_keeps_order_without_voucher(self):
        conflict = RedemptionResult(RedemptionStatus.CONFLICT, self.voucher.pk, attempts=2)

        with patch.object(VoucherLedgerService, 'try_redeem', return_value=conflict):
            result = OrderSettlementService.place_order(
                order_data(self.customer, '20000', voucher_id=self.voucher.pk)
            )

        outcome = result.unwrap()
        self.assertFalse(outcome.voucher_applied)
        self.assertEqual(outcome.voucher_status, 'conflict')
        self.assertIsNone(Order.objects.get(pk=outcome.order_id).voucher)

    def test_voucher_already_used_by_customer(self):
        place_order(self.customer, '20000', voucher_id=self.voucher.pk)

        outcome = OrderSettlementService.place_order(
            order_data(self.customer, '20000', voucher_id=self.voucher.pk)
        ).unwrap()

        self.assertFalse(outcome.voucher_applied)
        self.assertEqual(outcome.voucher_status, 'already_used')
        self.voucher.refresh_from_db()
        self.assertEqual(self.voucher.used_count, 1)

    def test_redemption_crash_is_contained(self):
        with patch.object(VoucherLedgerService, 'try_redeem', side_effect=RuntimeError('boom')):
            outcome = OrderSettlementService.place_order(
                order_data(self.customer, '20000', voucher_id=self.voucher.pk)
            ).unwrap()

        self.assertFalse(outcome.voucher_applied)
        self.assertEqual(outcome.voucher_status, 'error')
        self.assertTrue(Order.objects.filter(pk=outcome.order_id).exists())


class OrderIncentiveFanOutTestCase(TestCase):
    """Referral progress and rewards are best-effort"""

    def setUp(self):
        self.customer = create_customer()

    def test_failing_collaborators_do_not_fail_placement(self):
        with patch.object(ReferralService, 'record_order', side_effect=RuntimeError('referral down')), \
                patch.object(RewardService, 'process_order_rewards', side_effect=RuntimeError('rewards down')):
            result = OrderSettlementService.place_order(order_data(self.customer, '200000'))

        self.assertTrue(result.is_ok())
        outcome = result.unwrap()
        self.assertIsNone(outcome.referral)
        self.assertIsNone(outcome.tier_label)
        self.assertTrue(Order.objects.filter(pk=outcome.order_id).exists())

    def test_rewards_are_reported_on_the_outcome(self):
        outcome = OrderSettlementService.place_order(order_data(self.customer, '250000')).unwrap()

        self.assertEqual(outcome.tier_label, '1 Loyalty Point')
        self.assertEqual(outcome.rewards.cashback, Decimal('4000'))
        self.assertIsNotNone(outcome.rewards.free_delivery_voucher)
