"""
Analysis orchestrator - one model call, then an ordered event stream.

Delivery order for a successful run:

    finding* (severity order, paced)  ->  score  ->  summary  ->  id  ->  [DONE]

A provider or parse failure replaces everything after the stream opened
with a single `error` event. `stream()` always ends with the terminal unit.
Persistence happens between `summary` and `id`; its failure is logged and
the `id` event is sent anyway.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

from django.conf import settings

from apps.common.correlation import get_correlation_id, set_correlation_id
from apps.common.exceptions import ParseFailure, ProviderFailure, ValidationFailure
from apps.common.logging_utils import build_log_extra

from .events import StreamEvent, StreamEventType, encode_event, terminal_event
from .models import AuditSource, generate_audit_id
from .normalizer import normalize_response
from .prompts import AUDIT_SYSTEM_PROMPT, build_audit_user_prompt
from .store import AuditStore

logger = logging.getLogger(__name__)

VALID_SOURCES = {choice.value for choice in AuditSource}


@dataclass(frozen=True)
class AnalysisRequest:
    code: str
    contract_address: Optional[str] = None
    source: str = AuditSource.PASTE.value


def validate_analysis_request(body: Any) -> AnalysisRequest:
    """
    Check an analyze request body before any external call is made.

    Raises:
        ValidationFailure: on missing/short code or malformed optional fields
    """
    if not isinstance(body, dict):
        raise ValidationFailure('Invalid request.')

    code = body.get('code')
    if not isinstance(code, str) or len(code.strip()) < settings.AUDIT_MIN_CODE_LENGTH:
        raise ValidationFailure()

    contract_address = body.get('contractAddress')
    if contract_address is not None and not isinstance(contract_address, str):
        raise ValidationFailure('contractAddress must be a string.')

    source = body.get('source') or AuditSource.PASTE.value
    if source not in VALID_SOURCES:
        raise ValidationFailure(
            f"source must be one of: {', '.join(sorted(VALID_SOURCES))}."
        )

    if contract_address is not None:
        contract_address = contract_address.strip() or None

    return AnalysisRequest(code=code, contract_address=contract_address, source=source)


class AnalysisOrchestrator:
    """
    Runs one audit: model call, normalization, paced delivery, persistence.

    Collaborators are injectable so tests can swap the provider and store.
    """

    def __init__(
        self,
        provider,
        store: Optional[AuditStore] = None,
        finding_delay: Optional[float] = None,
        model_timeout: Optional[float] = None,
        max_findings: Optional[int] = None,
        id_factory: Callable[[], str] = generate_audit_id,
        correlation_id: Optional[str] = None,
    ):
        self.provider = provider
        self.store = store or AuditStore()
        self.finding_delay = (
            settings.AUDIT_FINDING_DELAY_SECONDS if finding_delay is None else finding_delay
        )
        self.model_timeout = (
            settings.AUDIT_MODEL_TIMEOUT_SECONDS if model_timeout is None else model_timeout
        )
        self.max_findings = (
            settings.AUDIT_MAX_FINDINGS if max_findings is None else max_findings
        )
        self.id_factory = id_factory
        # Captured at construction: the request middleware clears the
        # context once headers are returned, before the stream is read.
        self.correlation_id = correlation_id or get_correlation_id()

    async def _call_model(self, code: str) -> str:
        """Single blocking model call.

        Raises:
            ProviderFailure: on timeout or any provider/network error
        """
        messages = [{
            'role': 'user',
            'content': build_audit_user_prompt(code, settings.AUDIT_PROMPT_CODE_LIMIT),
        }]
        try:
            return await asyncio.wait_for(
                self.provider.generate(
                    messages=messages,
                    system_prompt=AUDIT_SYSTEM_PROMPT,
                    max_tokens=settings.AUDIT_MODEL_MAX_TOKENS,
                ),
                timeout=self.model_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderFailure(
                f"Analysis timed out after {self.model_timeout:g}s"
            ) from e
        except Exception as e:
            raise ProviderFailure(str(e)) from e

    async def run(self, request: AnalysisRequest) -> AsyncIterator[StreamEvent]:
        """Yield the events of one analysis run (without the terminal unit)."""
        audit_id = self.id_factory()
        started = time.monotonic()

        try:
            text = await self._call_model(request.code)
        except ProviderFailure as e:
            logger.warning(
                "audit_provider_failed",
                extra=build_log_extra(audit_id=audit_id, error=e.message),
            )
            yield StreamEvent(StreamEventType.ERROR, e.message)
            return

        try:
            result = normalize_response(text, max_findings=self.max_findings)
        except ParseFailure:
            yield StreamEvent(StreamEventType.ERROR, ParseFailure.user_message)
            return

        for finding in result.findings:
            yield StreamEvent(StreamEventType.FINDING, finding)
            if self.finding_delay:
                await asyncio.sleep(self.finding_delay)

        yield StreamEvent(StreamEventType.SCORE, result.score)
        yield StreamEvent(StreamEventType.SUMMARY, result.summary)

        persisted = await self._persist(audit_id, request, result)

        logger.info(
            "audit_completed",
            extra=build_log_extra(
                audit_id=audit_id,
                findings=len(result.findings),
                score=result.score,
                persisted=persisted,
                duration_ms=round((time.monotonic() - started) * 1000.0, 2),
            ),
        )
        yield StreamEvent(StreamEventType.ID, audit_id)

    async def _persist(self, audit_id: str, request: AnalysisRequest, result) -> bool:
        """Best-effort write. Never raises; the id is issued either way."""
        try:
            outcome = await self.store.persist(
                audit_id,
                request.code,
                result,
                contract_address=request.contract_address,
                source=request.source,
            )
        except Exception as e:
            logger.exception(
                "audit_persist_failed",
                extra=build_log_extra(audit_id=audit_id, error=str(e)),
            )
            return False
        return outcome.saved

    async def stream(self, request: AnalysisRequest) -> AsyncIterator[str]:
        """Encoded wire units for run(), always closed by the terminal unit."""
        previous_correlation_id = get_correlation_id()
        set_correlation_id(self.correlation_id)
        try:
            try:
                async for event in self.run(request):
                    yield event.encode()
            except Exception:
                logger.exception("audit_stream_failed")
                yield encode_event(StreamEventType.ERROR, ProviderFailure.default_message)
            yield terminal_event()
        finally:
            set_correlation_id(previous_correlation_id)
