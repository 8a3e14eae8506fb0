"""
Tests for notification delivery: inbox rows, push queueing, status emails and the background tasks.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import requests
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.notifications.models import EmailLog, Notification
from apps.notifications.services import NotificationService, build_order_status_context, order_recipient
from apps.notifications.tasks import purge_expired_notifications, send_email_task, send_push_notification
from apps.orders.models import OrderItem, OrderStatus
from tests.factories.ledger import create_customer, create_order

PUSH_URL = 'https://push.example.com/v1/send'


class NotifyUserTestCase(TestCase):
    def setUp(self):
        self.customer = create_customer()

    @patch('apps.notifications.services.async_task')
    def test_inbox_row_without_push_gateway(self, mock_async_task):
        notification = NotificationService.notify_user(self.customer.pk, title='Hi', body='Welcome', kind='info')

        self.assertEqual(notification.user, self.customer)
        self.assertFalse(notification.is_read)
        self.assertAlmostEqual(
            notification.expires_at, timezone.now() + timedelta(days=30), delta=timedelta(minutes=1)
        )
        mock_async_task.assert_not_called()

    @override_settings(PUSH_GATEWAY_URL=PUSH_URL)
    @patch('apps.notifications.services.async_task')
    def test_push_is_queued_when_gateway_configured(self, mock_async_task):
        NotificationService.notify_user(self.customer.pk, title='Cashback Earned!', body='₦2,000', kind='reward')

        mock_async_task.assert_called_once()
        self.assertEqual(mock_async_task.call_args.args[0], 'apps.notifications.tasks.send_push_notification')
        self.assertEqual(mock_async_task.call_args.kwargs['user_id'], str(self.customer.pk))

    def test_order_status_notification(self):
        order = create_order(self.customer, '5000', status=OrderStatus.IN_TRANSIT, reference='ABCD1234')

        notification = NotificationService.notify_order_status(order)

        self.assertEqual(notification.title, 'Order Update')
        self.assertEqual(notification.kind, 'order')
        self.assertIn('#ABCD1234', notification.body)
        self.assertIn('In Transit', notification.body)

    def test_guest_orders_get_no_inbox_row(self):
        self.assertIsNone(NotificationService.notify_order_status(create_order(None, '5000')))
        self.assertFalse(Notification.objects.exists())


class OrderStatusEmailTestCase(TestCase):
    def setUp(self):
        self.customer = create_customer()
        self.order = create_order(self.customer, '21500', status=OrderStatus.IN_TRANSIT, delivery_fee=Decimal('1500'))
        OrderItem.objects.create(
            order=self.order, product_id='prod-9', title='Aso Oke Set', quantity=2,
            price=Decimal('10000'), option={'name': 'Royal Blue'},
        )

    def test_context_carries_items_and_street(self):
        context = build_order_status_context(self.order)

        self.assertEqual(context['deliveryAddress'], '12 Admiralty Way')
        self.assertEqual(context['items'], [
            {'title': 'Aso Oke Set', 'price': Decimal('10000'), 'quantity': 2, 'optionName': 'Royal Blue'},
        ])

    def test_recipient_falls_back_to_shipping_email(self):
        guest_order = create_order(None, '5000', shipping_address={'street': 'x', 'email': 'guest@example.com'})

        self.assertEqual(order_recipient(self.order), self.customer.email)
        self.assertEqual(order_recipient(guest_order), 'guest@example.com')

    @patch('apps.notifications.services.async_task')
    def test_status_email_is_logged_and_queued(self, mock_async_task):
        email_log = NotificationService.send_order_status_email(self.order)

        self.assertEqual(email_log.status, 'queued')
        kwargs = mock_async_task.call_args.kwargs
        self.assertEqual(kwargs['email_log_id'], str(email_log.id))
        self.assertIn('Aso Oke Set (Royal Blue) x 2', kwargs['body_text'])
        self.assertIn('12 Admiralty Way', kwargs['body_html'])

    @patch('apps.notifications.services.async_task')
    def test_no_recipient_skips_email(self, mock_async_task):
        guest_order = create_order(None, '5000', shipping_address={'street': 'x'})

        self.assertIsNone(NotificationService.send_order_status_email(guest_order))
        mock_async_task.assert_not_called()
        self.assertFalse(EmailLog.objects.exists())


class EmailTaskTestCase(TestCase):
    def setUp(self):
        self.email_log = EmailLog.objects.create(to_addr='customer@example.com', subject='Order update')

    def test_sends_and_marks_sent(self):
        result = send_email_task(
            str(self.email_log.id), ['customer@example.com'], 'Order update', 'text body', '<p>html body</p>'
        )

        self.assertTrue(result['success'])
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].alternatives[0][1], 'text/html')
        self.email_log.refresh_from_db()
        self.assertEqual(self.email_log.status, 'sent')
        self.assertIsNotNone(self.email_log.sent_at)

    def test_backend_failure_marks_failed(self):
        with patch('apps.notifications.tasks.EmailMultiAlternatives.send', side_effect=OSError('connection refused')):
            result = send_email_task(str(self.email_log.id), ['customer@example.com'], 'Order update', 'text')

        self.assertFalse(result['success'])
        self.email_log.refresh_from_db()
        self.assertEqual(self.email_log.status, 'failed')
        self.assertIn('connection refused', self.email_log.error)

    def test_missing_log(self):
        result = send_email_task('7d1f0f4e-1c7a-4d8e-9a4b-000000000000', ['a@example.com'], 'x', 'y')

        self.assertEqual(result, {'success': False, 'error': 'EmailLog not found'})
        self.assertEqual(len(mail.outbox), 0)


class PushTaskTestCase(TestCase):
    def test_skipped_without_gateway(self):
        with patch('apps.notifications.tasks.requests.post') as mock_post:
            result = send_push_notification('user-1', 'Title', 'Body')

        self.assertTrue(result['skipped'])
        mock_post.assert_not_called()

    @override_settings(PUSH_GATEWAY_URL=PUSH_URL, PUSH_GATEWAY_TOKEN='secret-token')
    def test_posts_to_gateway_with_bearer_token(self):
        with patch('apps.notifications.tasks.requests.post') as mock_post:
            mock_post.return_value.status_code = 200
            result = send_push_notification('user-1', 'Order Update', 'Shipped', '/account/orders/1')

        self.assertTrue(result['success'])
        self.assertEqual(mock_post.call_args.args[0], PUSH_URL)
        self.assertEqual(mock_post.call_args.kwargs['headers']['Authorization'], 'Bearer secret-token')
        self.assertEqual(mock_post.call_args.kwargs['json']['url'], '/account/orders/1')
        self.assertEqual(mock_post.call_args.kwargs['timeout'], 10)

    @override_settings(PUSH_GATEWAY_URL=PUSH_URL)
    def test_gateway_errors_are_reported_not_raised(self):
        with patch('apps.notifications.tasks.requests.post', side_effect=requests.ConnectionError('down')):
            result = send_push_notification('user-1', 'Title', 'Body')

        self.assertFalse(result['success'])


class NotificationPurgeTestCase(TestCase):
    def test_purges_only_expired_rows(self):
        customer = create_customer()
        Notification.objects.create(user=customer, title='old', body='x', expires_at=timezone.now() - timedelta(days=1))
        Notification.objects.create(user=customer, title='fresh', body='y')

        result = purge_expired_notifications()

        self.assertEqual(result, {'deleted': 1})
        self.assertEqual(list(Notification.objects.values_list('title', flat=True)), ['fresh'])
