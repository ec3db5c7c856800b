"""
Tests for AuditStreamClient against an in-process httpx transport.
"""
import asyncio
import json
from unittest import TestCase

import httpx

from apps.audits.client import AuditRequestError, AuditStreamClient
from apps.audits.events import StreamEventType, encode_event, terminal_event


def wire(*units: str) -> bytes:
    return ''.join(units).encode('utf-8')


class RunAuditTest(TestCase):

    def setUp(self):
        self.requests = []

    def make_client(self, handler, **kwargs):
        def _record(request: httpx.Request):
            self.requests.append(request)
            return handler(request)
        return AuditStreamClient('http://testserver/', transport=httpx.MockTransport(_record), **kwargs)

    def test_streamed_audit_reassembled(self):
        body = wire(
            encode_event(StreamEventType.FINDING, {"severity": "Low", "title": "pragma"}),
            encode_event(StreamEventType.FINDING, {"severity": "High", "title": "access"}),
            encode_event(StreamEventType.SCORE, 67),
            encode_event(StreamEventType.SUMMARY, "Two issues."),
            encode_event(StreamEventType.ID, "k3Jd9sQ0aZ1x"),
            terminal_event(),
        )

        def handler(request):
            return httpx.Response(200, content=body, headers={'Content-Type': 'text/event-stream'})

        client = self.make_client(handler)
        state = asyncio.run(client.run_audit('contract C {}', contract_address='0xabc', source='etherscan'))

        self.assertEqual([f['title'] for f in state.findings], ['access', 'pragma'])
        self.assertEqual(state.score, 67)
        self.assertEqual(state.audit_id, 'k3Jd9sQ0aZ1x')
        self.assertTrue(state.done)

        request = self.requests[0]
        self.assertEqual(request.method, 'POST')
        self.assertEqual(request.url.path, '/api/analyze/')
        self.assertEqual(json.loads(request.content), {
            'code': 'contract C {}',
            'contractAddress': '0xabc',
            'source': 'etherscan',
        })

    def test_stream_error_event_kept_in_state(self):
        body = wire(encode_event(StreamEventType.ERROR, 'Analysis failed'), terminal_event())
        client = self.make_client(lambda request: httpx.Response(200, content=body))
        state = asyncio.run(client.run_audit('contract C {}'))
        self.assertEqual(state.error, 'Analysis failed')
        self.assertFalse(state.has_results)

    def test_validation_rejection_raises(self):
        def handler(request):
            return httpx.Response(400, json={'error': 'Please provide valid Solidity code.'})

        client = self.make_client(handler)
        with self.assertRaises(AuditRequestError) as ctx:
            asyncio.run(client.run_audit('x'))
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, 'Please provide valid Solidity code.')

    def test_payment_header_sent(self):
        client = self.make_client(
            lambda request: httpx.Response(200, content=wire(terminal_event())),
            payment_header='eyJ4NDAyVmVyc2lvbiI6MX0=',
        )
        asyncio.run(client.run_audit('contract C {}'))
        self.assertEqual(self.requests[0].headers['X-PAYMENT'], 'eyJ4NDAyVmVyc2lvbiI6MX0=')

    def test_payment_required_payload_exposed(self):
        challenge = {'x402Version': 1, 'error': 'X-PAYMENT header is required', 'accepts': []}
        client = self.make_client(lambda request: httpx.Response(402, json=challenge))
        with self.assertRaises(AuditRequestError) as ctx:
            asyncio.run(client.run_audit('contract C {}'))
        self.assertEqual(ctx.exception.status_code, 402)
        self.assertEqual(ctx.exception.payload['x402Version'], 1)


class LookupTest(TestCase):

    def test_fetch_contract(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                'sourceCode': 'contract A {}', 'contractName': 'A', 'compiler': 'v0.8.19',
            })

        client = AuditStreamClient('http://testserver', transport=httpx.MockTransport(handler))
        result = asyncio.run(client.fetch_contract(' 0x' + 'a' * 40 + ' '))
        self.assertEqual(result['contractName'], 'A')
        self.assertEqual(seen[0].url.params['address'], '0x' + 'a' * 40)

    def test_fetch_contract_not_found(self):
        client = AuditStreamClient(
            'http://testserver',
            transport=httpx.MockTransport(
                lambda request: httpx.Response(404, json={'error': 'Contract not found or not verified'})
            ),
        )
        with self.assertRaises(AuditRequestError) as ctx:
            asyncio.run(client.fetch_contract('0x' + 'b' * 40))
        self.assertEqual(ctx.exception.message, 'Contract not found or not verified')

    def test_get_audit_non_json_error_uses_fallback(self):
        client = AuditStreamClient(
            'http://testserver',
            transport=httpx.MockTransport(lambda request: httpx.Response(404, text='nope')),
        )
        with self.assertRaises(AuditRequestError) as ctx:
            asyncio.run(client.get_audit('missing'))
        self.assertEqual(ctx.exception.message, 'Audit not found')
