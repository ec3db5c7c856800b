"""
Shared test fixtures and helpers for audit tests.
"""
import json
from unittest.mock import AsyncMock, MagicMock

from apps.audits.store import AuditStore, PersistOutcome


SAMPLE_CODE = """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

contract Vault {
    mapping(address => uint256) public balances;

    function withdraw() external {
        uint256 amount = balances[msg.sender];
        (bool ok, ) = msg.sender.call{value: amount}("");
        require(ok);
        balances[msg.sender] = 0;
    }
}
"""

SAMPLE_PAYLOAD = {
    "findings": [
        {
            "severity": "Medium",
            "title": "Missing event emission",
            "description": "withdraw() emits no event.",
            "recommendation": "Emit a Withdrawal event.",
        },
        {
            "severity": "Critical",
            "title": "Reentrancy in withdraw",
            "description": "State is updated after the external call.",
            "recommendation": "Apply checks-effects-interactions.",
            "line": 9,
        },
        {
            "severity": "Low",
            "title": "Floating pragma",
            "description": "",
            "recommendation": "Pin the compiler version.",
        },
    ],
    "score": 41,
    "summary": "The vault is vulnerable to reentrancy.",
}


def make_model_response(payload=None) -> str:
    return json.dumps(SAMPLE_PAYLOAD if payload is None else payload)


def make_mock_provider(response: str | None = None, error: Exception | None = None):
    """Mock LLMProvider whose generate() returns `response` or raises `error`."""
    provider = MagicMock()
    if error is not None:
        provider.generate = AsyncMock(side_effect=error)
    else:
        provider.generate = AsyncMock(
            return_value=make_model_response() if response is None else response
        )
    return provider


def make_mock_store(saved: bool = True):
    """Mock AuditStore recording persist() calls."""
    store = MagicMock(spec=AuditStore)

    async def _persist(audit_id, code, result, contract_address=None, source='paste'):
        return PersistOutcome(
            audit_id=audit_id,
            saved=saved,
            error=None if saved else 'database is locked',
        )

    store.persist = AsyncMock(side_effect=_persist)
    return store


def fake_sync_to_async(fn=None, thread_sensitive=True):
    """Replace sync_to_async for testing: runs fn on the calling thread.

    Keeps ORM calls on the test's connection so TestCase transactions stay
    visible.
    """
    if fn is None:
        def decorator(fn):
            async def wrapper(*args, **kwargs):
                return fn(*args, **kwargs)
            return wrapper
        return decorator

    async def wrapper(*args, **kwargs):
        return fn(*args, **kwargs)
    return wrapper


async def collect(async_iterable) -> list:
    return [item async for item in async_iterable]


def parse_wire(units: list[str]) -> list:
    """Decode encoded wire units into (type, data) tuples; DONE becomes ('DONE', None)."""
    events = []
    for unit in units:
        assert unit.startswith('data: ') and unit.endswith('\n\n'), unit
        payload = unit[len('data: '):].strip()
        if payload == '[DONE]':
            events.append(('DONE', None))
        else:
            decoded = json.loads(payload)
            events.append((decoded['type'], decoded['data']))
    return events


async def chunked(data: bytes, size: int):
    """Async byte iterator splitting `data` into `size`-byte chunks."""
    for start in range(0, len(data), size):
        yield data[start:start + size]
