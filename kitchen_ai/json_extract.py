"""
json_extract.py  —  Best-effort JSON recovery from free-form model text

The model is asked for raw JSON but routinely returns something else:
markdown-fenced JSON, JSON with a friendly sentence before or after it, or
escaped newlines left over from its own formatting. Nothing here trusts the
model to obey format instructions.

Pipeline:
  clean_json_string()  — strip fences, unescape \\n, tabs → spaces, trim.
  safe_json_parse()    — run EXTRACTION_STRATEGIES in order, first dict/list wins:
      1. direct     parse the cleaned text as-is
      2. greedy     first '{' … last '}' (or '[' … ']') of the raw text
      3. fenced     contents of ```json … ``` then of a generic ``` … ``` block
      4. balanced   walk every '{' / '[' to its matching closer, string-aware;
                    an opener left unclosed at end of text (a truncated
                    reply) ends the scan instead of yielding a nested piece

The greedy span is cheap and right for the common "prose + one object" reply,
but it swallows stray braces in the prose ("use {your} judgement: {...}").
The balanced scan runs last to recover the real object in that case.
"""

import json
import logging
import re
from typing import Any, Callable, Optional

from .errors import MalformedResponseError

log = logging.getLogger(__name__)


_LEADING_FENCE  = re.compile(r"^```(?:json)?\n?")
_TRAILING_FENCE = re.compile(r"\n?```$")
_GREEDY_SPAN    = re.compile(r"\{[\s\S]*\}|\[[\s\S]*\]")
_FENCE_PATTERNS = (
    re.compile(r"```json\n?([\s\S]*?)\n?```"),
    re.compile(r"```\n?([\s\S]*?)\n?```"),
)

_CLOSERS = {"{": "}", "[": "]"}


def clean_json_string(text: str) -> str:
    """
    Removes framing characters around a JSON payload without touching its content.

    Only one leading and one trailing fence are removed, so text without fences
    passes through apart from the whitespace trim.
    """
    text = text.strip()
    text = _LEADING_FENCE.sub("", text)
    text = _TRAILING_FENCE.sub("", text)
    text = text.replace("\\n", "\n").replace("\t", "  ")
    return text.strip()


def _loads(candidate: str) -> Optional[Any]:
    # strict=False: unescaped newlines inside strings are legal after cleaning
    try:
        value = json.loads(candidate, strict=False)
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, (dict, list)) else None


# ──────────────────────────────────────────────────────────────────────────────
# Strategies: each takes the raw text and returns a dict/list or None
# ──────────────────────────────────────────────────────────────────────────────

def _direct(text: str) -> Optional[Any]:
    return _loads(clean_json_string(text))


def _greedy_span(text: str) -> Optional[Any]:
    match = _GREEDY_SPAN.search(text)
    if not match:
        return None
    log.debug("Greedy span candidate: %.200s", match.group(0))
    return _loads(match.group(0))


def _fenced_block(text: str) -> Optional[Any]:
    for pattern in _FENCE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        value = _loads(clean_json_string(match.group(1)))
        if value is not None:
            return value
    return None


def _matching_close(text: str, start: int) -> Optional[int]:
    """
    Index of the bracket closing text[start]; -1 on a mismatched closer, None
    when the text ends before text[start] is closed.
    Brackets inside JSON strings are ignored.
    """
    stack = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("}", "]"):
            if not stack or stack.pop() != ch:
                return -1
            if not stack:
                return i
    return None


def _balanced_scan(text: str) -> Optional[Any]:
    for start, ch in enumerate(text):
        if ch not in _CLOSERS:
            continue
        end = _matching_close(text, start)
        if end is None:
            # Truncated reply: everything after here sits inside the unclosed
            # value, and a nested fragment is not the answer.
            log.debug("Unterminated %r at offset %d, stopping scan.", ch, start)
            return None
        if end == -1:
            continue
        value = _loads(text[start:end + 1])
        if value is not None:
            return value
    return None


EXTRACTION_STRATEGIES: tuple[tuple[str, Callable[[str], Optional[Any]]], ...] = (
    ("direct",   _direct),
    ("greedy",   _greedy_span),
    ("fenced",   _fenced_block),
    ("balanced", _balanced_scan),
)


def safe_json_parse(response: Any) -> Any:
    """
    Recovers a JSON object or array from a model response.

    Already-parsed dicts and lists are returned unchanged. Raises
    MalformedResponseError (with the raw text attached) when every strategy fails.
    """
    if isinstance(response, (dict, list)):
        return response
    if not isinstance(response, str):
        log.error("Cannot extract JSON from a %s response: %r", type(response).__name__, response)
        raise MalformedResponseError(
            f"Expected model text, got {type(response).__name__}.", raw_text=response,
        )

    for name, strategy in EXTRACTION_STRATEGIES:
        value = strategy(response)
        if value is not None:
            if name != "direct":
                log.debug("Recovered JSON via %s strategy.", name)
            return value
        log.debug("JSON strategy %s found nothing.", name)

    log.error("Could not extract JSON. Original response: %r", response)
    raise MalformedResponseError(
        "Could not extract valid JSON from response. The AI response may be malformed.",
        raw_text=response,
    )
