"""
Response normalizer - turns raw model text into an AnalysisResult

The model is asked for bare JSON but routinely wraps it in markdown fences
or surrounds it with prose. Parsing is therefore two-staged:

  1. strip a fence wrapping the whole response and parse the cleaned text
  2. fall back to the greedy first-'{' to last-'}' span of the original text

If neither yields a JSON object the outcome is a failure. Field-level
problems never fail a parse; they are defaulted, clamped or coerced by the
schemas in `apps.audits.schemas`.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from apps.common.exceptions import ParseFailure
from apps.common.llm_providers.utils import extract_brace_span, strip_markdown_fences

from .schemas import AnalysisResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseOutcome:
    """Tagged parse result: exactly one of `result` / `error` is set."""
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def _loads_object(text: Optional[str]) -> Optional[dict]:
    if not text:
        return None
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def extract_payload(text: str) -> Optional[dict]:
    """Recover the JSON object from a model response, or None."""
    payload = _loads_object(strip_markdown_fences(text))
    if payload is None:
        payload = _loads_object(extract_brace_span(text))
    return payload


def parse_analysis(text: Any, max_findings: Optional[int] = None) -> ParseOutcome:
    """
    Parse raw model output into a normalized AnalysisResult.

    Args:
        text: Raw model response text
        max_findings: Keep at most this many findings (most severe first)

    Returns:
        ParseOutcome with either `result` or `error` set
    """
    if not isinstance(text, str):
        return ParseOutcome(error='Model response was not text')

    payload = extract_payload(text)
    if payload is None:
        logger.warning(
            "audit_response_unparseable",
            extra={'response_length': len(text), 'response_head': text[:200]},
        )
        return ParseOutcome(error='No JSON object found in model response')

    try:
        result = AnalysisResult.model_validate(payload)
    except ValidationError as e:
        # The schema coerces every field; reaching this is a schema bug.
        logger.exception("audit_response_invalid")
        return ParseOutcome(error=str(e))

    if max_findings is not None and len(result.findings) > max_findings:
        logger.warning(
            "audit_findings_truncated",
            extra={'received': len(result.findings), 'kept': max_findings},
        )
        result = result.model_copy(update={'findings': result.findings[:max_findings]})

    return ParseOutcome(result=result)


def normalize_response(text: Any, max_findings: Optional[int] = None) -> AnalysisResult:
    """Raising variant of parse_analysis().

    Raises:
        ParseFailure: if no JSON object can be recovered from the text
    """
    outcome = parse_analysis(text, max_findings=max_findings)
    if not outcome.ok:
        raise ParseFailure(outcome.error)
    return outcome.result
