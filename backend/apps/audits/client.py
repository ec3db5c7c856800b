"""
HTTP client for the audit API, built on httpx.

`run_audit` posts the contract and folds the streamed response through a
StreamReassembler; pre-stream rejections (validation, payment gate) are
raised as AuditRequestError.
"""
import logging
from typing import Optional

import httpx

from .reassembler import AuditStreamState, StreamReassembler

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 90.0


class AuditRequestError(Exception):
    """The server answered with an error status instead of a stream."""

    def __init__(self, status_code: int, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}


class AuditStreamClient:
    """Async client for the analyze, lookup and record endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        payment_header: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.payment_header = payment_header
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self.payment_header:
            headers['X-PAYMENT'] = self.payment_header
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
        )

    @staticmethod
    async def _raise_for_error(response: httpx.Response, fallback: str) -> None:
        if response.status_code < 400:
            return
        await response.aread()
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        message = payload.get('error') if isinstance(payload, dict) else None
        raise AuditRequestError(response.status_code, message or fallback, payload)

    async def run_audit(
        self,
        code: str,
        contract_address: Optional[str] = None,
        source: str = 'paste',
        reassembler: Optional[StreamReassembler] = None,
    ) -> AuditStreamState:
        """
        Run one audit and return the reassembled state.

        Pass your own `reassembler` to observe state while the stream is
        being read, or to cancel() it from another task.
        """
        reassembler = reassembler or StreamReassembler()
        body = {
            'code': code,
            'contractAddress': contract_address,
            'source': source,
        }
        async with self._client() as client:
            async with client.stream('POST', '/api/analyze/', json=body) as response:
                await self._raise_for_error(response, 'Analysis failed')
                return await reassembler.consume(response.aiter_bytes())

    async def fetch_contract(self, address: str) -> dict:
        """Resolve a contract address to `{sourceCode, contractName, compiler}`."""
        async with self._client() as client:
            response = await client.get('/api/etherscan/', params={'address': address.strip()})
            await self._raise_for_error(response, 'Failed to fetch contract')
            return response.json()

    async def get_audit(self, audit_id: str) -> dict:
        """Fetch a stored audit record."""
        async with self._client() as client:
            response = await client.get(f'/api/audits/{audit_id}/')
            await self._raise_for_error(response, 'Audit not found')
            return response.json()
