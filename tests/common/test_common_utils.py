"""
Tests for shared helpers: tokens, masking, the best-effort boundary and request correlation.
"""

import logging
from unittest.mock import patch

from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase, TestCase

from apps.common.exceptions import AuthorizationError, IllegalTransition
from apps.common.logging import RequestIDFilter, get_request_context
from apps.common.middleware import RequestIDMiddleware
from apps.common.request_ip import get_safe_client_ip
from apps.common.types import Err, Ok
from apps.common.utils import generate_code, generate_reference, mask_email, run_best_effort
from apps.users.models import User


class TokenAndMaskingTestCase(SimpleTestCase):
    def test_reference_and_code_shapes(self):
        reference = generate_reference()
        self.assertEqual(len(reference), 8)
        self.assertTrue(reference.isalnum() and reference.upper() == reference)
        self.assertRegex(generate_code('REF'), r'^REF-[A-Z0-9]{8}$')

    def test_mask_email(self):
        self.assertEqual(mask_email('adaeze@example.com'), 'ad***@example.com')
        self.assertEqual(mask_email(None), '***')
        self.assertEqual(mask_email('not-an-email'), '***')

    def test_result_types(self):
        self.assertEqual(Ok(5).unwrap_or(0), 5)
        self.assertEqual(Err('nope').unwrap_or(0), 0)
        with self.assertRaises(ValueError):
            Err('nope').unwrap()

    def test_error_payloads(self):
        self.assertEqual(AuthorizationError().to_dict(), {
            'success': False, 'error': 'Not authorized', 'code': 'not_authorized',
        })
        self.assertEqual(IllegalTransition('x').http_status, 409)


class BestEffortTestCase(TestCase):
    def test_returns_value_on_success(self):
        self.assertEqual(run_best_effort('adder', lambda a, b: a + b, 2, b=3), 5)

    def test_failure_is_logged_and_swallowed(self):
        def explode():
            raise RuntimeError('collaborator down')

        with patch('apps.common.utils.logger') as mock_logger:
            self.assertIsNone(run_best_effort('exploder', explode))

        mock_logger.exception.assert_called_once()
        self.assertIn('exploder', mock_logger.exception.call_args.args[0])

    def test_failed_write_does_not_poison_outer_transaction(self):
        User.objects.create_user(email='taken@example.com', password='testpass123')

        run_best_effort('duplicate_user', User.objects.create_user, email='taken@example.com', password='x')

        self.assertEqual(User.objects.count(), 1)


class RequestCorrelationTestCase(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_middleware_sets_header_and_clears_context(self):
        seen = {}

        def view(request):
            seen.update(get_request_context())
            return HttpResponse('ok')

        response = RequestIDMiddleware(view)(self.factory.get('/', HTTP_X_REQUEST_ID='req-123'))

        self.assertEqual(response['X-Request-ID'], 'req-123')
        self.assertEqual(seen['request_id'], 'req-123')
        self.assertEqual(get_request_context()['request_id'], '-')

    def test_middleware_context_carries_only_request_scoped_fields(self):
        seen = {}

        def view(request):
            seen.update(get_request_context())
            return HttpResponse('ok')

        RequestIDMiddleware(view)(self.factory.get('/', REMOTE_ADDR='10.0.0.5'))

        # Authentication has not run yet when the context is set, so no user field
        self.assertEqual(set(seen), {'request_id', 'ip_address'})
        self.assertEqual(seen['ip_address'], '10.0.0.5')

    def test_filter_adds_request_fields(self):
        record = logging.LogRecord('apps', logging.INFO, __file__, 1, 'msg', None, None)

        self.assertTrue(RequestIDFilter().filter(record))
        self.assertEqual(record.request_id, '-')

    def test_forwarded_for_ignored_without_trusted_proxies(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.9', REMOTE_ADDR='10.0.0.5')

        self.assertEqual(get_safe_client_ip(request), '10.0.0.5')

