"""
Pydantic schemas for audit results

These schemas define the normalized shape of a model's audit output.
Every field has a default or a coercing validator so that validating a
raw model object never fails on a missing or malformed field.
"""
import math
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

UNNAMED_FINDING_TITLE = 'Unnamed Finding'


class Severity(str, Enum):
    """Finding severity, most severe first"""
    CRITICAL = 'Critical'
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'
    INFO = 'Info'

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER[self.value]


SEVERITY_ORDER = {
    'Critical': 0,
    'High': 1,
    'Medium': 2,
    'Low': 3,
    'Info': 4,
}

# Rank for severities outside the enum (only seen in unnormalized data).
UNKNOWN_SEVERITY_RANK = 5


def severity_rank(severity: Any) -> int:
    """Rank for sorting; accepts a Severity, its string value, or junk."""
    if isinstance(severity, Severity):
        return severity.rank
    if not isinstance(severity, str):
        return UNKNOWN_SEVERITY_RANK
    return SEVERITY_ORDER.get(severity, UNKNOWN_SEVERITY_RANK)


def _coerce_text(value: Any) -> str:
    # Falsy values (None, 0, empty containers) read as absent.
    if not value:
        return ''
    return str(value)


class Finding(BaseModel):
    """A single issue reported by the model"""
    severity: Severity = Field(
        default=Severity.INFO,
        description="Critical, High, Medium, Low or Info; anything else becomes Info",
    )
    title: str = Field(default=UNNAMED_FINDING_TITLE)
    description: str = Field(default='')
    recommendation: str = Field(default='')
    line: Optional[str] = Field(
        default=None,
        description="Source reference, omitted from the wire format when absent",
    )

    @field_validator('severity', mode='before')
    @classmethod
    def _coerce_severity(cls, value):
        if isinstance(value, Severity):
            return value
        if isinstance(value, str) and value in SEVERITY_ORDER:
            return Severity(value)
        return Severity.INFO

    @field_validator('title', mode='before')
    @classmethod
    def _coerce_title(cls, value):
        return _coerce_text(value) or UNNAMED_FINDING_TITLE

    @field_validator('description', 'recommendation', mode='before')
    @classmethod
    def _coerce_body(cls, value):
        return _coerce_text(value)

    @field_validator('line', mode='before')
    @classmethod
    def _coerce_line(cls, value):
        if not value:
            return None
        return str(value)

    def to_wire(self) -> dict:
        """JSON-ready dict; `line` is dropped when absent."""
        return self.model_dump(mode='json', exclude_none=True)


def normalize_score(value: Any) -> int:
    """Round and clamp into 0..100. Missing or non-numeric input is 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 100 if number > 0 else 0
    # Halves round up, not to even.
    return max(0, min(100, math.floor(number + 0.5)))


def sort_findings(findings: List[Any]) -> List[Any]:
    """Stable sort by severity rank; works on Finding models and raw dicts."""
    def _key(finding):
        if isinstance(finding, Finding):
            return finding.severity.rank
        if isinstance(finding, dict):
            return severity_rank(finding.get('severity'))
        return UNKNOWN_SEVERITY_RANK
    return sorted(findings, key=_key)


class AnalysisResult(BaseModel):
    """Normalized outcome of one analysis run"""
    findings: List[Finding] = Field(default_factory=list)
    score: int = Field(default=0, ge=0, le=100)
    summary: str = Field(default='')

    @field_validator('findings', mode='before')
    @classmethod
    def _coerce_findings(cls, value):
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, Finding))]

    @field_validator('findings', mode='after')
    @classmethod
    def _sort_findings(cls, value):
        return sort_findings(value)

    @field_validator('score', mode='before')
    @classmethod
    def _coerce_score(cls, value):
        return normalize_score(value)

    @field_validator('summary', mode='before')
    @classmethod
    def _coerce_summary(cls, value):
        return _coerce_text(value)
