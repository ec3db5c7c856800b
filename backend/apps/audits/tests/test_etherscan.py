"""
Tests for the Etherscan source lookup.

requests.get is patched: no network access.
"""
import json
from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase, override_settings

from apps.audits.etherscan import (
    fetch_contract_source,
    flatten_source_bundle,
    is_valid_address,
)
from apps.common.exceptions import (
    ContractNotFound,
    RegistryNotConfigured,
    RegistryUnavailable,
)

ADDRESS = '0x' + 'aB' * 20


def make_response(payload=None, status_code=200, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f'{status_code} error')
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


def etherscan_payload(source_code, name='Vault', compiler='v0.8.20+commit.a1b79de6'):
    return {
        'status': '1',
        'message': 'OK',
        'result': [{
            'SourceCode': source_code,
            'ContractName': name,
            'CompilerVersion': compiler,
        }],
    }


class AddressValidationTest(TestCase):

    def test_valid(self):
        self.assertTrue(is_valid_address(ADDRESS))
        self.assertTrue(is_valid_address('0x' + '0' * 40))

    def test_invalid(self):
        for address in ['', None, '0x123', 'ab' * 21, '0x' + 'g' * 40, '0x' + 'a' * 41, ' ' + ADDRESS]:
            with self.subTest(address=address):
                self.assertFalse(is_valid_address(address))


class FlattenSourceBundleTest(TestCase):

    def test_single_file_unchanged(self):
        code = 'pragma solidity ^0.8.0;\ncontract A {}'
        self.assertEqual(flatten_source_bundle(code), code)

    def test_double_braced_bundle(self):
        bundle = json.dumps({
            'language': 'Solidity',
            'sources': {
                'A.sol': {'content': 'x'},
                'B.sol': {'content': 'y'},
            },
        })
        self.assertEqual(flatten_source_bundle('{' + bundle + '}'), 'x\n\ny')

    def test_single_braced_bundle(self):
        bundle = json.dumps({'sources': {'Only.sol': {'content': 'contract Only {}'}}})
        self.assertEqual(flatten_source_bundle(bundle), 'contract Only {}')

    def test_unparseable_bundle_returned_raw(self):
        raw = '{{ not really json }}'
        self.assertEqual(flatten_source_bundle(raw), raw)

    def test_bundle_without_sources_returned_raw(self):
        raw = json.dumps({'settings': {}})
        self.assertEqual(flatten_source_bundle(raw), raw)


@override_settings(
    ETHERSCAN_API_KEY='test-etherscan-key',
    ETHERSCAN_API_URL='https://api.etherscan.io/v2/api',
    ETHERSCAN_CHAIN_ID=1,
)
class FetchContractSourceTest(TestCase):

    @patch('apps.audits.etherscan.requests.get')
    def test_verified_contract(self, mock_get):
        mock_get.return_value = make_response(etherscan_payload('contract Vault {}'))

        source = fetch_contract_source(ADDRESS)

        self.assertEqual(source.to_response(), {
            'sourceCode': 'contract Vault {}',
            'contractName': 'Vault',
            'compiler': 'v0.8.20+commit.a1b79de6',
        })
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], 'https://api.etherscan.io/v2/api')
        self.assertEqual(kwargs['params'], {
            'chainid': 1,
            'module': 'contract',
            'action': 'getsourcecode',
            'address': ADDRESS,
            'apikey': 'test-etherscan-key',
        })

    @patch('apps.audits.etherscan.requests.get')
    def test_bundle_flattened(self, mock_get):
        bundle = '{' + json.dumps({'sources': {'A.sol': {'content': 'x'}, 'B.sol': {'content': 'y'}}}) + '}'
        mock_get.return_value = make_response(etherscan_payload(bundle))
        self.assertEqual(fetch_contract_source(ADDRESS).source_code, 'x\n\ny')

    @patch('apps.audits.etherscan.requests.get')
    def test_unverified_contract_not_found(self, mock_get):
        mock_get.return_value = make_response(etherscan_payload(''))
        with self.assertRaises(ContractNotFound):
            fetch_contract_source(ADDRESS)

    @patch('apps.audits.etherscan.requests.get')
    def test_error_status_not_found(self, mock_get):
        mock_get.return_value = make_response({'status': '0', 'message': 'NOTOK', 'result': 'Invalid'})
        with self.assertRaises(ContractNotFound):
            fetch_contract_source(ADDRESS)

    @patch('apps.audits.etherscan.requests.get')
    def test_network_error_unavailable(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('refused')
        with self.assertRaises(RegistryUnavailable):
            fetch_contract_source(ADDRESS)

    @patch('apps.audits.etherscan.requests.get')
    def test_timeout_unavailable(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout()
        with self.assertRaises(RegistryUnavailable):
            fetch_contract_source(ADDRESS)

    @patch('apps.audits.etherscan.requests.get')
    def test_http_error_unavailable(self, mock_get):
        mock_get.return_value = make_response(status_code=503)
        with self.assertRaises(RegistryUnavailable):
            fetch_contract_source(ADDRESS)

    @patch('apps.audits.etherscan.requests.get')
    def test_non_json_reply_unavailable(self, mock_get):
        mock_get.return_value = make_response(json_error=ValueError('Expecting value'))
        with self.assertRaises(RegistryUnavailable):
            fetch_contract_source(ADDRESS)

    @override_settings(ETHERSCAN_API_KEY='')
    @patch('apps.audits.etherscan.requests.get')
    def test_missing_key(self, mock_get):
        with self.assertRaises(RegistryNotConfigured):
            fetch_contract_source(ADDRESS)
        mock_get.assert_not_called()
