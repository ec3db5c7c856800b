"""
Analysis stream events and their wire encoding.

Each event is one line-delimited unit:

    data: {"type": "finding", "data": {...}}\\n\\n

and the stream ends with the literal unit `data: [DONE]\\n\\n`, which can
never be mistaken for an event because it is not a JSON object.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

EVENT_PREFIX = 'data: '
DONE_SENTINEL = '[DONE]'


class StreamEventType(str, Enum):
    FINDING = 'finding'
    SCORE = 'score'
    SUMMARY = 'summary'
    ID = 'id'
    ERROR = 'error'


@dataclass(frozen=True)
class StreamEvent:
    type: StreamEventType
    data: Any

    def encode(self) -> str:
        return encode_event(self.type, self.data)


def _to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode='json', exclude_none=True)
    return data


def encode_event(event_type, data: Any) -> str:
    """Format one event as a wire unit."""
    type_value = event_type.value if isinstance(event_type, StreamEventType) else str(event_type)
    payload = json.dumps({'type': type_value, 'data': _to_jsonable(data)})
    return f"{EVENT_PREFIX}{payload}\n\n"


def terminal_event() -> str:
    """The end-of-stream unit."""
    return f"{EVENT_PREFIX}{DONE_SENTINEL}\n\n"
