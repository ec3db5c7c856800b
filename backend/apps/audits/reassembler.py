"""
Client-side stream reassembly.

Folds the analysis byte stream into an AuditStreamState:

- bytes go through an incremental UTF-8 decoder into a text buffer
- the buffer is split on newlines; the trailing partial line is kept
- every complete `data: ` line is decoded and dispatched by event type
- `data: [DONE]` stops reading

Malformed lines are skipped. Cancellation stops the read loop without
recording an error and without touching accumulated results.
"""
import asyncio
import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Optional, Union

from .events import DONE_SENTINEL, EVENT_PREFIX, StreamEventType
from .schemas import sort_findings

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()


@dataclass
class AuditStreamState:
    findings: list = field(default_factory=list)
    score: Optional[Union[int, float]] = None
    summary: str = ''
    audit_id: Optional[str] = None
    error: Optional[str] = None
    done: bool = False
    cancelled: bool = False

    @property
    def has_results(self) -> bool:
        return self.score is not None and bool(self.findings)


class StreamReassembler:
    """Line-buffering state machine over the analysis event stream."""

    def __init__(self, state: Optional[AuditStreamState] = None):
        self.state = state or AuditStreamState()
        self._buffer = ''
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
        self._cancel_requested = False
        self._read_task: Optional[asyncio.Task] = None

    # -- synchronous folding ---------------------------------------------

    def feed(self, chunk: Union[bytes, str]) -> bool:
        """Consume one chunk. Returns True once the terminal unit was seen."""
        if self.state.done:
            return True
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        lines = self._buffer.split('\n')
        self._buffer = lines.pop()
        for line in lines:
            self._process_line(line)
            if self.state.done:
                self._buffer = ''
                break
        return self.state.done

    def finish(self) -> None:
        """End of input: flush the decoder and process any residue line."""
        if self.state.done:
            return
        tail = self._decoder.decode(b'', final=True)
        residue = self._buffer + tail
        self._buffer = ''
        for line in residue.split('\n'):
            self._process_line(line)
            if self.state.done:
                break

    def _process_line(self, line: str) -> None:
        if not line.startswith(EVENT_PREFIX):
            return
        payload = line[len(EVENT_PREFIX):].strip()
        if not payload:
            return
        if payload == DONE_SENTINEL:
            self.state.done = True
            return
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed stream line: %.80s", payload)
            return
        if isinstance(event, dict):
            self._dispatch(event.get('type'), event.get('data'))

    def _dispatch(self, event_type: Any, data: Any) -> None:
        state = self.state
        if event_type == StreamEventType.FINDING.value:
            if isinstance(data, dict):
                # Re-sorted on every arrival so order never depends on delivery order.
                state.findings = sort_findings([*state.findings, data])
        elif event_type == StreamEventType.SCORE.value:
            state.score = data
        elif event_type == StreamEventType.SUMMARY.value:
            state.summary = data
        elif event_type == StreamEventType.ID.value:
            state.audit_id = data
        elif event_type == StreamEventType.ERROR.value:
            state.error = data

    # -- async read loop ---------------------------------------------------

    def cancel(self) -> None:
        """Abort the read loop. Not an error: state keeps what it has."""
        self._cancel_requested = True
        if self._read_task is not None and not self._read_task.done():
            self._read_task.cancel()

    async def consume(self, chunks: AsyncIterable[Union[bytes, str]]) -> AuditStreamState:
        """
        Read `chunks` until the terminal unit, end of stream, or cancel().

        The iterator is closed (aclose) on every exit path. A cancellation
        that did not come from cancel() is still re-raised after the state
        is marked cancelled.
        """
        iterator = chunks.__aiter__()

        async def _next():
            try:
                return await iterator.__anext__()
            except StopAsyncIteration:
                return _END_OF_STREAM

        try:
            while not self.state.done:
                if self._cancel_requested:
                    self.state.cancelled = True
                    break
                self._read_task = asyncio.ensure_future(_next())
                try:
                    chunk = await self._read_task
                except asyncio.CancelledError:
                    self.state.cancelled = True
                    if self._cancel_requested:
                        break
                    raise
                finally:
                    self._read_task = None
                if chunk is _END_OF_STREAM:
                    self.finish()
                    break
                self.feed(chunk)
        finally:
            aclose = getattr(iterator, 'aclose', None)
            if aclose is not None:
                await aclose()
        return self.state
