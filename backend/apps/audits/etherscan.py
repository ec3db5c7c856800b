"""
Contract source lookup via the Etherscan API.

Verified contracts come back either as a single flattened source file or as
a standard-JSON compiler input. Etherscan wraps the latter in an extra pair
of braces (`{{ ... }}`); both JSON forms are flattened by concatenating the
`content` of every entry under `sources`, in the order they appear.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings

from apps.common.exceptions import (
    ContractNotFound,
    RegistryNotConfigured,
    RegistryUnavailable,
)

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r'^0x[a-fA-F0-9]{40}$')
SOURCE_SEPARATOR = '\n\n'


@dataclass
class ContractSource:
    """Verified source returned for one address."""
    address: str
    source_code: str
    contract_name: str = ''
    compiler: str = ''

    def to_response(self) -> dict:
        return {
            'sourceCode': self.source_code,
            'contractName': self.contract_name,
            'compiler': self.compiler,
        }


def is_valid_address(address) -> bool:
    return isinstance(address, str) and bool(ADDRESS_RE.match(address))


def flatten_source_bundle(source_code: str) -> str:
    """
    Concatenate a multi-file source bundle into one text.

    Text that is not a parseable bundle is returned unchanged.
    """
    stripped = source_code.strip()
    if stripped.startswith('{{') and stripped.endswith('}}'):
        candidate = stripped[1:-1]
    elif stripped.startswith('{'):
        candidate = stripped
    else:
        return source_code

    try:
        bundle = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return source_code

    sources = bundle.get('sources') if isinstance(bundle, dict) else None
    if not isinstance(sources, dict):
        return source_code

    contents = [
        entry['content'] for entry in sources.values()
        if isinstance(entry, dict) and isinstance(entry.get('content'), str)
    ]
    if not contents:
        return source_code
    return SOURCE_SEPARATOR.join(contents)


def fetch_contract_source(
    address: str,
    api_key: Optional[str] = None,
    api_url: Optional[str] = None,
    chain_id: Optional[int] = None,
    timeout: Optional[float] = None,
) -> ContractSource:
    """
    Fetch verified source code for a contract address.

    Args:
        address: 0x-prefixed, 40 hex digit address (validated by the caller)
        api_key, api_url, chain_id, timeout: override the ETHERSCAN_* settings

    Returns:
        ContractSource with bundles already flattened

    Raises:
        RegistryNotConfigured: no API key
        RegistryUnavailable: network/HTTP error or a non-JSON reply
        ContractNotFound: no verified source for the address
    """
    api_key = api_key if api_key is not None else settings.ETHERSCAN_API_KEY
    if not api_key:
        raise RegistryNotConfigured()

    params = {
        'chainid': chain_id or settings.ETHERSCAN_CHAIN_ID,
        'module': 'contract',
        'action': 'getsourcecode',
        'address': address,
        'apikey': api_key,
    }

    try:
        response = requests.get(
            api_url or settings.ETHERSCAN_API_URL,
            params=params,
            timeout=timeout or settings.ETHERSCAN_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.Timeout as e:
        logger.warning(f"Etherscan lookup timeout: {address}")
        raise RegistryUnavailable() from e
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Etherscan lookup failed: {address}: {e}")
        raise RegistryUnavailable() from e

    if not isinstance(data, dict) or data.get('status') != '1':
        raise ContractNotFound()
    result = data.get('result')
    first = result[0] if isinstance(result, list) and result else None
    if not isinstance(first, dict) or not first.get('SourceCode'):
        raise ContractNotFound()

    return ContractSource(
        address=address,
        source_code=flatten_source_bundle(first['SourceCode']),
        contract_name=first.get('ContractName', ''),
        compiler=first.get('CompilerVersion', ''),
    )
