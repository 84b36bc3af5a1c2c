"""
Structured-text extraction and repair for generation output

Generation services wrap JSON in prose, fences and comments, and occasionally
emit JS-style object literals. extract() recovers the embedded payload:

1. Interior of a fenced block (json, json5, jsonc or schema tags preferred, any fence otherwise)
2. Otherwise the span from the first opening bracket to its last closing twin
3. Comments stripped (outside string literals)
4. Strict parse
5. Trailing separators removed and bare keys quoted, then parse again
6. ExtractionError carrying the raw text

Only syntax is recovered here. Whether the payload makes sense is the
Validator's business.
"""
import json
import re
from typing import Any, Callable, List, Optional, Tuple


class ExtractionError(Exception):
    """Raised when no structured payload can be recovered from raw text"""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


_JSON_FENCE = re.compile(r"```(?:json5?|jsonc|schema)(?![\w.+-])[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[\w.+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_TRAILING_SEPARATOR = re.compile(r",(\s*[}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)(\s*:)")

_CLOSING = {"{": "}", "[": "]"}


def extract(raw: str) -> Any:
    """
    Extract and parse the structured payload embedded in raw generator text

    Args:
        raw: Text returned by the generation service

    Returns:
        Parsed value (dict, list or scalar)

    Raises:
        ExtractionError: If no parseable payload is found
    """
    if raw is None or not raw.strip():
        raise ExtractionError("Empty generation output", raw or "")

    candidate = _locate_candidate(raw)
    candidate = strip_comments(candidate).strip()
    if not candidate:
        raise ExtractionError("No structured payload found in generation output", raw)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    repaired = repair(candidate)
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Invalid JSON after repair: {e}", raw) from e


def _locate_candidate(raw: str) -> str:
    """Pick the substring most likely to hold the payload"""
    fenced = _JSON_FENCE.search(raw) or _ANY_FENCE.search(raw)
    if fenced:
        return fenced.group(1)

    starts = [i for i in (raw.find("{"), raw.find("[")) if i != -1]
    if not starts:
        return raw

    start = min(starts)
    end = raw.rfind(_CLOSING[raw[start]])
    if end <= start:
        return raw[start:]
    return raw[start:end + 1]


def _split_strings(text: str) -> List[Tuple[bool, str]]:
    """
    Split text into (is_string_literal, segment) pairs

    Only double-quoted literals count, with backslash escapes honoured.
    An unterminated literal runs to the end of the text.
    """
    segments: List[Tuple[bool, str]] = []
    buf_start = 0
    i = 0
    length = len(text)
    while i < length:
        if text[i] == '"':
            if i > buf_start:
                segments.append((False, text[buf_start:i]))
            j = i + 1
            while j < length:
                if text[j] == "\\":
                    j += 2
                    continue
                if text[j] == '"':
                    break
                j += 1
            end = min(j + 1, length)
            segments.append((True, text[i:end]))
            i = buf_start = end
            continue
        i += 1
    if buf_start < length:
        segments.append((False, text[buf_start:]))
    return segments


def _outside_strings(text: str, transform: Callable[[str], str]) -> str:
    return "".join(
        segment if is_literal else transform(segment)
        for is_literal, segment in _split_strings(text)
    )


def strip_comments(text: str) -> str:
    """Remove // line and /* block */ comments that sit outside string literals"""
    out: List[str] = []
    in_string = False
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
            continue
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = length if close == -1 else close + 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def repair(text: str) -> str:
    """Apply the mechanical repairs: drop trailing separators, quote bare keys"""
    def _fix(segment: str) -> str:
        segment = _TRAILING_SEPARATOR.sub(r"\1", segment)
        return _BARE_KEY.sub(r'\1"\2"\3', segment)

    return _outside_strings(text, _fix)


def try_extract(raw: str) -> Optional[Any]:
    """extract() that returns None instead of raising"""
    try:
        return extract(raw)
    except ExtractionError:
        return None


__all__ = ["extract", "try_extract", "repair", "strip_comments", "ExtractionError"]
