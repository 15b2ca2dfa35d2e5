# json_recovery.py

"""
Best-effort recovery of a JSON array of strings from free-form model output.

Pipeline (first success wins):
  1) strip markdown code fences and surrounding whitespace
  2) keep only the span from the first '[' to the last ']'
  3) json.loads; on failure run attempt_repair() once and parse again
Anything that still fails, or parses to a non-list, yields None.
"""

import json
import re
from typing import Any, List, Optional

_CODE_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
_ZW_CHARS = "".join(["\u200b", "\u200c", "\u200d", "\ufeff", "\u2060"])
_TRAILING_COMMA_RE = re.compile(r",\s*(\])\s*$")


def strip_code_fences(s: str) -> str:
    if not isinstance(s, str):
        return s
    return _CODE_FENCE_RE.sub("", s.strip()).strip()


def extract_array_span(s: str) -> str:
    """Carve '[ ... ]' out of surrounding prose; unchanged when there is no such span."""
    start = s.find("[")
    end = s.rfind("]")
    if start == -1 or end <= start:
        return s
    return s[start:end + 1]


def _closes_string(s: str, i: int) -> bool:
    # a real closing quote is followed by ',' or ']' (or the end of the text)
    j = i + 1
    while j < len(s) and s[j].isspace():
        j += 1
    return j >= len(s) or s[j] in ",]"


def attempt_repair(text: str) -> Optional[str]:
    """
    Replace unescaped double quotes that sit inside a string value with single
    quotes, e.g. ["The "core" system"] -> ["The 'core' system"]. A quote only
    closes a string when the next non-space character is ',' or ']'.
    Also drops zero-width characters and a trailing comma before the final ']'.
    Returns None when nothing could be changed.
    """
    if not isinstance(text, str) or not text:
        return None
    s = text.translate({ord(c): None for c in _ZW_CHARS})
    s = _TRAILING_COMMA_RE.sub(r"\1", s)

    out: List[str] = []
    in_str = False
    i = 0
    while i < len(s):
        ch = s[i]
        if in_str and ch == "\\":
            out.append(s[i:i + 2])
            i += 2
            continue
        if ch == '"':
            if not in_str:
                in_str = True
                out.append(ch)
            elif _closes_string(s, i):
                in_str = False
                out.append(ch)
            else:
                out.append("'")
        else:
            out.append(ch)
        i += 1

    repaired = "".join(out)
    return repaired if repaired != text else None


def parse_json_array(raw: str) -> Optional[List[Any]]:
    """Run the recovery pipeline; returns the parsed list or None."""
    if not isinstance(raw, str):
        return None
    cleaned = extract_array_span(strip_code_fences(raw))
    if not cleaned:
        return None
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        repaired = attempt_repair(cleaned)
        if repaired is None:
            return None
        try:
            parsed = json.loads(repaired)
        except ValueError:
            return None
    return parsed if isinstance(parsed, list) else None
