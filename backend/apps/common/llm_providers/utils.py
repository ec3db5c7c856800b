"""
Shared utilities for LLM interactions.
"""
import re

# A fence wrapping the whole response; the opening marker may carry a
# language label (```json, ```solidity, ...). The body match is greedy so
# fences quoted inside the payload stay part of it.
_OUTER_FENCE_RE = re.compile(
    r"\A\s*```[A-Za-z0-9_+-]*[ \t]*\r?\n?(.*)```\s*\Z",
    re.DOTALL,
)


def strip_markdown_fences(text: str) -> str:
    """
    Remove a markdown code fence wrapping the whole LLM response.

    Handles labeled and unlabeled outer fences:
        ```json\n{...}\n```
        ```\n{...}\n```
    Fences anywhere else (inside prose, or inside JSON string values such
    as a recommendation's code example) are left untouched.
    """
    match = _OUTER_FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_brace_span(text: str) -> str | None:
    """Return the greedy span from the first '{' to the last '}', if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start:end + 1]
