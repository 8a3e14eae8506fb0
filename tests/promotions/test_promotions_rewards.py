"""
Tests for order rewards: loyalty grants, cashback wallet, free-delivery vouchers and their retraction.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone

from apps.notifications.models import Notification
from apps.promotions.models import LoyaltyGrant, Voucher, VoucherSource, Wallet, WalletTransaction
from apps.promotions.services import LoyaltyService, RewardService, WalletService
from apps.users.models import UserProfile
from tests.factories.ledger import create_customer, create_order, place_order


class LoyaltyGrantTestCase(TestCase):
    """One tier per order, granted once and retracted once"""

    def setUp(self):
        self.customer = create_customer()

    def _profile(self):
        return UserProfile.objects.get(user=self.customer)

    def test_first_order_of_30000_grants_only_welcome_spin(self):
        order = place_order(self.customer, '30000')

        grant = LoyaltyGrant.objects.get(order=order)
        self.assertEqual(grant.tier_label, 'Welcome Spin')
        self.assertEqual(grant.points, 0)
        self.assertEqual(grant.spin_credits, 1)
        profile = self._profile()
        self.assertEqual(profile.spin_credits, 1)
        self.assertEqual(profile.loyalty_points, 0)
        self.assertTrue(Notification.objects.filter(user=self.customer, title='Loyalty Reward!').exists())

    def test_retraction_undoes_exactly_the_granted_tier(self):
        order = place_order(self.customer, '30000')

        result = LoyaltyService.retract_for_order(order)

        self.assertEqual(result.tier_label, 'Welcome Spin')
        self.assertEqual(result.spin_credits, 1)
        self.assertEqual(result.points, 0)
        self.assertEqual(self._profile().spin_credits, 0)
        self.assertTrue(LoyaltyGrant.objects.get(order=order).is_retracted)

    def test_retraction_is_idempotent(self):
        order = place_order(self.customer, '200000')

        LoyaltyService.retract_for_order(order)
        second = LoyaltyService.retract_for_order(order)

        self.assertIsNone(second)
        self.assertEqual(self._profile().loyalty_points, 0)

    def test_grant_is_idempotent(self):
        order = create_order(self.customer, '500000')

        LoyaltyService.grant_for_order(order)
        LoyaltyService.grant_for_order(order)

        self.assertEqual(self._profile().loyalty_points, 2)
        self.assertEqual(LoyaltyGrant.objects.filter(order=order).count(), 1)

    def test_retraction_floors_counters_at_zero(self):
        order = place_order(self.customer, '1000000')
        UserProfile.objects.filter(user=self.customer).update(loyalty_points=1)

        LoyaltyService.retract_for_order(order)

        self.assertEqual(self._profile().loyalty_points, 0)

    def test_repeat_customer_below_free_delivery_earns_no_tier(self):
        place_order(self.customer, '10000')

        order = place_order(self.customer, '30000')

        self.assertFalse(order.is_first_order)
        self.assertFalse(LoyaltyGrant.objects.filter(order=order).exists())

    def test_gift_tier_has_no_counter_grant(self):
        order = place_order(self.customer, '60000')

        self.assertFalse(LoyaltyGrant.objects.filter(order=order).exists())
        self.assertEqual(self._profile().loyalty_points, 0)


class WalletTestCase(TestCase):
    def setUp(self):
        self.customer = create_customer()

    def test_credit_is_idempotent_per_reference(self):
        WalletService.credit(self.customer.pk, Decimal('2000'), 'CASHBACK-abc')
        duplicate = WalletService.credit(self.customer.pk, Decimal('2000'), 'CASHBACK-abc')

        self.assertIsNone(duplicate)
        self.assertEqual(Wallet.objects.get(user=self.customer).balance, Decimal('2000'))

    def test_reverse_books_the_negative_amount(self):
        WalletService.credit(self.customer.pk, Decimal('4000'), 'CASHBACK-xyz')

        entry = WalletService.reverse('CASHBACK-xyz', 'REVERSAL-xyz', 'Cancelled')

        self.assertEqual(entry.amount, Decimal('-4000'))
        self.assertEqual(Wallet.objects.get(user=self.customer).balance, Decimal('0'))
        self.assertIsNone(WalletService.reverse('CASHBACK-missing', 'REVERSAL-missing'))


class OrderRewardsTestCase(TestCase):
    """process_order_rewards and retract_order_bonuses"""

    def setUp(self):
        self.customer = create_customer()

    def test_large_order_earns_points_cashback_and_free_delivery(self):
        order = create_order(self.customer, '200000', is_first_order=True)

        summary = RewardService.process_order_rewards(order)

        self.assertEqual(summary.tier_label, '1 Loyalty Point')
        self.assertEqual(summary.points, 1)
        self.assertEqual(summary.cashback, Decimal('4000'))
        self.assertTrue(summary.free_delivery_voucher.startswith('FREE-DELIV-NEXT-'))

        self.assertEqual(Wallet.objects.get(user=self.customer).balance, Decimal('4000'))
        voucher = Voucher.objects.get(code=summary.free_delivery_voucher)
        self.assertEqual(voucher.source, VoucherSource.FREE_DELIVERY_REWARD.value)
        self.assertEqual(voucher.source_order, order)
        self.assertEqual(voucher.user, self.customer)
        self.assertEqual(voucher.discount_value, Decimal('2500'))
        self.assertAlmostEqual(voucher.valid_to, timezone.now() + timedelta(days=14), delta=timedelta(minutes=1))

        titles = set(Notification.objects.filter(user=self.customer).values_list('title', flat=True))
        self.assertEqual(titles, {'Loyalty Reward!', 'Cashback Earned!', 'Free Delivery Reward!'})

    def test_rewards_are_not_granted_twice(self):
        order = create_order(self.customer, '200000')

        RewardService.process_order_rewards(order)
        RewardService.process_order_rewards(order)

        self.assertEqual(Wallet.objects.get(user=self.customer).balance, Decimal('4000'))
        self.assertEqual(Voucher.objects.filter(source_order=order).count(), 1)

    def test_guest_orders_earn_nothing(self):
        summary = RewardService.process_order_rewards(create_order(None, '500000'))

        self.assertIsNone(summary.tier_label)
        self.assertEqual(summary.cashback, Decimal('0'))
        self.assertFalse(Wallet.objects.exists())

    def test_one_failing_reward_does_not_block_the_others(self):
        order = create_order(self.customer, '200000')

        with patch.object(LoyaltyService, 'grant_for_order', side_effect=RuntimeError('db hiccup')):
            summary = RewardService.process_order_rewards(order)

        self.assertIsNone(summary.tier_label)
        self.assertEqual(summary.cashback, Decimal('4000'))
        self.assertIsNotNone(summary.free_delivery_voucher)

    def test_retract_order_bonuses_reverses_everything_once(self):
        order = create_order(self.customer, '200000')
        RewardService.process_order_rewards(order)

        summary = RewardService.retract_order_bonuses(order)

        self.assertEqual(summary.loyalty.points, 1)
        self.assertEqual(summary.cashback_reversed, Decimal('4000'))
        self.assertEqual(summary.vouchers_deactivated, 1)
        self.assertEqual(Wallet.objects.get(user=self.customer).balance, Decimal('0'))
        self.assertFalse(Voucher.objects.get(source_order=order).is_active)

        again = RewardService.retract_order_bonuses(order)

        self.assertIsNone(again.loyalty)
        self.assertEqual(again.cashback_reversed, Decimal('0'))
        self.assertEqual(again.vouchers_deactivated, 0)
        self.assertEqual(WalletTransaction.objects.filter(order=order).count(), 2)

    def test_used_free_delivery_voucher_stays_active(self):
        order = create_order(self.customer, '60000')
        RewardService.process_order_rewards(order)
        Voucher.objects.filter(source_order=order).update(used_count=1)

        summary = RewardService.retract_order_bonuses(order)

        self.assertEqual(summary.vouchers_deactivated, 0)
        self.assertTrue(Voucher.objects.get(source_order=order).is_active)
