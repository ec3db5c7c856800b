"""
Tests for the x402 payment gate.
"""
import base64
import json
from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase, override_settings

from apps.audits.middleware import (
    PaymentGateMiddleware,
    decode_payment_header,
    price_to_atomic_units,
)
from apps.common.exceptions import PaymentRequired


def encode_payment(payload) -> str:
    return base64.b64encode(json.dumps(payload).encode()).decode()


PAYMENT = encode_payment({
    'x402Version': 1,
    'scheme': 'exact',
    'network': 'base',
    'payload': {'signature': '0xsig', 'authorization': {'from': '0xpayer', 'value': '500000'}},
})


class PaymentHelpersTest(TestCase):

    def test_price_to_atomic_units(self):
        self.assertEqual(price_to_atomic_units('$0.50'), '500000')
        self.assertEqual(price_to_atomic_units('1'), '1000000')
        self.assertEqual(price_to_atomic_units(' $0.001 '), '1000')

    def test_bad_price(self):
        with self.assertRaises(ValueError):
            price_to_atomic_units('free')

    def test_decode_payment_header(self):
        self.assertEqual(decode_payment_header(PAYMENT)['scheme'], 'exact')

    def test_decode_rejects_garbage(self):
        for header in ['not base64 at all!', encode_payment([1, 2]), base64.b64encode(b'{oops').decode()]:
            with self.subTest(header=header):
                with self.assertRaises(PaymentRequired):
                    decode_payment_header(header)


@override_settings(
    X402_ENABLED=True,
    X402_PROTECTED_PATHS=['/api/analyze/'],
    X402_PAY_TO='0x' + '9' * 40,
    X402_PRICE='$0.50',
    X402_NETWORK='base',
    X402_FACILITATOR_URL='',
)
class PaymentGateTest(TestCase):

    def post(self, body=None, **headers):
        return self.client.post(
            '/api/analyze/',
            data=json.dumps(body if body is not None else {'code': 'x'}),
            content_type='application/json',
            headers=headers,
        )

    def test_missing_header_returns_requirements(self):
        response = self.post()

        self.assertEqual(response.status_code, 402)
        body = response.json()
        self.assertEqual(body['x402Version'], 1)
        self.assertEqual(body['error'], 'X-PAYMENT header is required')
        self.assertEqual(len(body['accepts']), 1)
        requirement = body['accepts'][0]
        self.assertEqual(requirement['scheme'], 'exact')
        self.assertEqual(requirement['network'], 'base')
        self.assertEqual(requirement['maxAmountRequired'], '500000')
        self.assertEqual(requirement['payTo'], '0x' + '9' * 40)
        self.assertEqual(requirement['mimeType'], 'text/event-stream')
        self.assertTrue(requirement['resource'].endswith('/api/analyze/'))

    def test_malformed_header_rejected(self):
        response = self.post(**{'X-PAYMENT': '%%%'})
        self.assertEqual(response.status_code, 402)
        self.assertEqual(response.json()['error'], 'Invalid X-PAYMENT header')

    def test_well_formed_header_passes_without_facilitator(self):
        # Reaches the view, which rejects the too-short code.
        response = self.post(**{'X-PAYMENT': PAYMENT})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'Please provide valid Solidity code.'})

    def test_unprotected_paths_not_gated(self):
        response = self.client.get('/api/audits/missing/')
        self.assertEqual(response.status_code, 404)

    @override_settings(X402_ENABLED=False)
    def test_disabled_gate(self):
        response = self.post()
        self.assertEqual(response.status_code, 400)

    @override_settings(X402_FACILITATOR_URL='https://facilitator.test/')
    @patch('apps.audits.middleware.requests.post')
    def test_facilitator_rejection(self, mock_post):
        mock_post.return_value = MagicMock(
            json=MagicMock(return_value={'isValid': False, 'invalidReason': 'insufficient_funds'}),
        )

        response = self.post(**{'X-PAYMENT': PAYMENT})

        self.assertEqual(response.status_code, 402)
        self.assertEqual(response.json()['error'], 'insufficient_funds')
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://facilitator.test/verify')
        self.assertEqual(kwargs['json']['paymentPayload']['scheme'], 'exact')
        self.assertEqual(kwargs['json']['paymentRequirements']['maxAmountRequired'], '500000')

    @override_settings(X402_FACILITATOR_URL='https://facilitator.test')
    @patch('apps.audits.middleware.requests.post')
    def test_facilitator_acceptance(self, mock_post):
        mock_post.return_value = MagicMock(json=MagicMock(return_value={'isValid': True}))
        response = self.post(**{'X-PAYMENT': PAYMENT})
        self.assertEqual(response.status_code, 400)

    @override_settings(X402_FACILITATOR_URL='https://facilitator.test')
    @patch('apps.audits.middleware.requests.post')
    def test_facilitator_unreachable(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('down')
        response = self.post(**{'X-PAYMENT': PAYMENT})
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json(), {'error': 'Payment facilitator unavailable.'})

    def test_requirements_built_from_settings(self):
        request = MagicMock()
        request.path = '/api/analyze/'
        request.build_absolute_uri.return_value = 'http://testserver/api/analyze/'
        requirements = PaymentGateMiddleware.payment_requirements(request)
        self.assertEqual(requirements['resource'], 'http://testserver/api/analyze/')
        self.assertEqual(requirements['maxTimeoutSeconds'], 60)
