"""
Lenient JSON extraction for model replies.

Models wrap JSON in markdown fences, add chatter around it, or stop
mid-object when they run out of tokens. The solver and explanation tools
read their structured results through `loads_lenient`.

Bracket scanning skips string literals: LaTeX values such as
"\\frac{1}{2" routinely carry unbalanced braces.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)(?:```|$)", re.IGNORECASE | re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}


def _structure(text: str) -> Tuple[List[Tuple[int, str]], bool]:
    """
    Positions of the brackets that sit outside string literals, and whether
    the text ends inside an unterminated string.
    """
    brackets: List[Tuple[int, str]] = []
    in_string = False
    escaped = False
    for i, c in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
        elif c == '"':
            in_string = True
        elif c in "{}[]":
            brackets.append((i, c))
    return brackets, in_string


def extract_json(text: str) -> str:
    """The JSON part of a reply: fenced block, else the first bracketed value."""
    fenced = _FENCE_RE.search(text)
    if fenced:
        return fenced.group(1).strip()

    brackets, _ = _structure(text)
    if not brackets or brackets[0][1] not in _CLOSERS:
        return text.strip()

    start = brackets[0][0]
    depth = 0
    for i, c in brackets:
        depth += 1 if c in _CLOSERS else -1
        if depth == 0:
            return text[start:i + 1]
    # Never closed; left for repair_truncated_json
    return text[start:].strip()


def repair_truncated_json(text: str) -> Optional[str]:
    """
    Close what a truncated reply left open: a string literal, then any
    arrays and objects. Returns None for empty input.
    """
    if not text or not text.strip():
        return None

    s = text.rstrip()
    brackets, in_string = _structure(s)
    if in_string:
        s += '"'

    pending: List[str] = []
    for _, c in brackets:
        if c in _CLOSERS:
            pending.append(_CLOSERS[c])
        elif pending:
            pending.pop()

    s = s.rstrip().rstrip(",")
    return s + "".join(reversed(pending))


def loads_lenient(text: Optional[str]) -> Optional[Any]:
    """Parse JSON out of a model reply; None when nothing usable is found."""
    json_str = extract_json(text or "")
    for candidate in (json_str, repair_truncated_json(json_str)):
        if candidate is None:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    logger.debug(f"No parseable JSON in reply: {(text or '')[:120]!r}")
    return None
