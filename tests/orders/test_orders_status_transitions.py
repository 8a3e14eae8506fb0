"""
Tests for admin order status changes: the transition table, authorization and the follow-up side effects.
"""

import uuid
from unittest.mock import MagicMock, patch

from django.test import TestCase

from apps.common.exceptions import AuthorizationError, IllegalTransition, OrderNotFound, ValidationError
from apps.notifications.models import EmailLog, Notification
from apps.notifications.services import NotificationService
from apps.orders.models import Order, OrderStatus, OrderStatusHistory, PaymentStatus, is_valid_status_transition
from apps.orders.services import OrderQueryService, OrderStatusService
from apps.promotions.models import LoyaltyGrant
from apps.promotions.services import RewardService
from apps.users.models import UserProfile
from tests.factories.ledger import create_admin, create_customer, place_order


class StatusTableTestCase(TestCase):
    def test_allowed_transitions(self):
        allowed = [
            (OrderStatus.CONFIRMED, OrderStatus.IN_TRANSIT),
            (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
            (OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED),
            (OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED),
        ]
        for current in OrderStatus.values:
            for target in OrderStatus.values:
                with self.subTest(current=current, target=target):
                    self.assertEqual(is_valid_status_transition(current, target), (current, target) in allowed)


class OrderStatusSideEffectsTestCase(TestCase):
    """Which collaborators run for each transition"""

    def setUp(self):
        self.admin = create_admin()
        self.customer = create_customer()
        self.order = place_order(self.customer, '30000')

        self.retract = patch.object(RewardService, 'retract_order_bonuses').start()
        self.notify = patch.object(NotificationService, 'notify_order_status').start()
        self.email = patch.object(NotificationService, 'send_order_status_email').start()
        self.addCleanup(patch.stopall)

    def test_full_delivery_flow_sends_two_emails_and_retracts_nothing(self):
        first = OrderStatusService.update_order_status(self.order.pk, OrderStatus.IN_TRANSIT, self.admin)
        second = OrderStatusService.update_order_status(self.order.pk, OrderStatus.DELIVERED, self.admin)

        self.assertTrue(first.is_ok())
        self.assertTrue(second.is_ok())
        self.assertEqual(second.unwrap().status, OrderStatus.DELIVERED)
        self.assertEqual(self.email.call_count, 2)
        self.assertEqual(self.notify.call_count, 2)
        self.assertEqual(self.retract.call_count, 0)
        self.assertEqual(OrderStatusHistory.objects.filter(order=self.order).count(), 3)

    def test_cancellation_retracts_then_notifies_without_email(self):
        calls = MagicMock()
        calls.attach_mock(self.retract, 'retract')
        calls.attach_mock(self.notify, 'notify')

        result = OrderStatusService.update_order_status(self.order.pk, OrderStatus.CANCELLED, self.admin, notes='Out of stock')

        self.assertTrue(result.is_ok())
        self.assertEqual(self.retract.call_count, 1)
        self.assertEqual(self.notify.call_count, 1)
        self.assertEqual(self.email.call_count, 0)
        self.assertEqual([name for name, _args, _kwargs in calls.mock_calls], ['retract', 'notify'])

        history = OrderStatusHistory.objects.filter(order=self.order).first()
        self.assertEqual(history.new_status, OrderStatus.CANCELLED)
        self.assertEqual(history.changed_by, self.admin)
        self.assertEqual(history.notes, 'Out of stock')

    def test_illegal_transition_has_no_side_effects(self):
        OrderStatusService.update_order_status(self.order.pk, OrderStatus.IN_TRANSIT, self.admin)
        OrderStatusService.update_order_status(self.order.pk, OrderStatus.DELIVERED, self.admin)
        self.email.reset_mock()
        self.notify.reset_mock()

        result = OrderStatusService.update_order_status(self.order.pk, OrderStatus.IN_TRANSIT, self.admin)

        self.assertIsInstance(result.error, IllegalTransition)
        self.assertEqual(result.error.http_status, 409)
        self.assertEqual(Order.objects.get(pk=self.order.pk).status, OrderStatus.DELIVERED)
        self.assertEqual(OrderStatusHistory.objects.filter(order=self.order).count(), 3)
        self.assertEqual(self.email.call_count, 0)
        self.assertEqual(self.notify.call_count, 0)

    def test_cancelled_is_terminal(self):
        OrderStatusService.update_order_status(self.order.pk, OrderStatus.CANCELLED, self.admin)

        result = OrderStatusService.update_order_status(self.order.pk, OrderStatus.CANCELLED, self.admin)

        self.assertIsInstance(result.error, IllegalTransition)
        self.assertEqual(self.retract.call_count, 1)

    def test_failing_retraction_still_notifies(self):
        self.retract.side_effect = RuntimeError('wallet unavailable')

        result = OrderStatusService.update_order_status(self.order.pk, OrderStatus.CANCELLED, self.admin)

        self.assertTrue(result.is_ok())
        self.assertEqual(self.notify.call_count, 1)
        self.assertEqual(Order.objects.get(pk=self.order.pk).status, OrderStatus.CANCELLED)

    def test_failing_notification_still_emails(self):
        self.notify.side_effect = RuntimeError('inbox down')

        result = OrderStatusService.update_order_status(self.order.pk, OrderStatus.IN_TRANSIT, self.admin)

        self.assertTrue(result.is_ok())
        self.assertEqual(self.email.call_count, 1)

    def test_concurrent_change_is_reported_as_illegal(self):
        stale = Order.objects.get(pk=self.order.pk)
        Order.objects.filter(pk=self.order.pk).update(status=OrderStatus.IN_TRANSIT)

        with patch.object(OrderStatusService, '_get_order', return_value=stale):
            result = OrderStatusService.update_order_status(self.order.pk, OrderStatus.IN_TRANSIT, self.admin)

        self.assertIsInstance(result.error, IllegalTransition)
        self.assertEqual(self.notify.call_count, 0)
        self.assertEqual(OrderStatusHistory.objects.filter(order=self.order).count(), 1)


class OrderStatusAuthorizationTestCase(TestCase):
    """Checks run in order: caller, status value, order lookup, transition"""

    def setUp(self):
        self.admin = create_admin()
        self.customer = create_customer()
        self.order = place_order(self.customer, '5000')

    def test_non_admin_callers_are_rejected_first(self):
        support = create_customer('support@example.com', is_staff=True, staff_role='support')
        for actor in (None, self.customer, support):
            with self.subTest(actor=actor):
                result = OrderStatusService.update_order_status(self.order.pk, 'Teleported', actor)
                self.assertIsInstance(result.error, AuthorizationError)
                self.assertEqual(result.error.message, 'Not authorized')
                self.assertEqual(result.error.http_status, 403)

    def test_superuser_counts_as_admin(self):
        root = create_customer('root@example.com', is_superuser=True)

        result = OrderStatusService.update_order_status(self.order.pk, OrderStatus.IN_TRANSIT, root)

        self.assertTrue(result.is_ok())

    def test_unknown_status_is_checked_before_lookup(self):
        result = OrderStatusService.update_order_status(uuid.uuid4(), 'Teleported', self.admin)

        self.assertIsInstance(result.error, ValidationError)

    def test_unknown_order(self):
        for order_id in (uuid.uuid4(), 'not-a-uuid'):
            with self.subTest(order_id=order_id):
                result = OrderStatusService.update_order_status(order_id, OrderStatus.IN_TRANSIT, self.admin)
                self.assertIsInstance(result.error, OrderNotFound)


class OrderCancellationIntegrationTestCase(TestCase):
    """Cancellation against the real collaborators"""

    def setUp(self):
        self.admin = create_admin()
        self.customer = create_customer()

    def test_cancelling_first_order_retracts_the_welcome_spin(self):
        order = place_order(self.customer, '30000')
        self.assertEqual(UserProfile.objects.get(user=self.customer).spin_credits, 1)

        result = OrderStatusService.update_order_status(order.pk, OrderStatus.CANCELLED, self.admin)

        self.assertTrue(result.is_ok())
        self.assertEqual(UserProfile.objects.get(user=self.customer).spin_credits, 0)
        self.assertTrue(LoyaltyGrant.objects.get(order=order).is_retracted)
        self.assertTrue(Notification.objects.filter(user=self.customer, title='Order Update').exists())
        self.assertFalse(EmailLog.objects.exists())

    @patch('apps.notifications.services.async_task')
    def test_transition_queues_status_email(self, mock_async_task):
        order = place_order(self.customer, '30000')

        OrderStatusService.update_order_status(order.pk, OrderStatus.IN_TRANSIT, self.admin)

        email_log = EmailLog.objects.get(order=order)
        self.assertEqual(email_log.to_addr, self.customer.email)
        self.assertEqual(email_log.status, 'queued')
        mock_async_task.assert_called_once()
        self.assertEqual(mock_async_task.call_args.args[0], 'apps.notifications.tasks.send_email_task')
        self.assertEqual(mock_async_task.call_args.kwargs['to'], [self.customer.email])


class PaymentStatusAndDetailsTestCase(TestCase):
    def setUp(self):
        self.admin = create_admin()
        self.customer = create_customer()
        self.order = place_order(self.customer, '5000')

    def test_admin_updates_payment_status(self):
        result = OrderStatusService.update_payment_status(self.order.pk, PaymentStatus.PAID, self.admin)

        self.assertTrue(result.is_ok())
        self.assertEqual(Order.objects.get(pk=self.order.pk).payment_status, PaymentStatus.PAID)

    def test_payment_status_rejections(self):
        self.assertIsInstance(
            OrderStatusService.update_payment_status(self.order.pk, PaymentStatus.PAID, self.customer).error,
            AuthorizationError,
        )
        self.assertIsInstance(
            OrderStatusService.update_payment_status(self.order.pk, 'Bartered', self.admin).error,
            ValidationError,
        )
        self.assertIsInstance(
            OrderStatusService.update_payment_status(uuid.uuid4(), PaymentStatus.PAID, self.admin).error,
            OrderNotFound,
        )

    def test_order_details_for_admin_only(self):
        result = OrderQueryService.get_order_details(self.order.pk, self.admin)

        order = result.unwrap()
        self.assertEqual(order.items.count(), 1)
        self.assertEqual(order.status_history.count(), 1)
        self.assertIsInstance(OrderQueryService.get_order_details(self.order.pk, self.customer).error, AuthorizationError)
        self.assertIsInstance(OrderQueryService.get_order_details(uuid.uuid4(), self.admin).error, OrderNotFound)
