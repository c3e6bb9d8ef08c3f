"""
JSON extraction for LLM responses.

Models wrap JSON in prose, markdown fences or trailing commentary, and now and
then emit trailing commas or comments. ``extract_json`` tries a few strategies
in order and reports the outcome as a result dict instead of raising.
"""
import json
import logging
import re
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_FENCE_PATTERNS = [
    re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE),
    re.compile(r"```\s*([\s\S]*?)\s*```"),
]
_CLOSERS = {"{": "}", "[": "]"}
_STRING_LITERAL = re.compile(r'("(?:\\.|[^"\\])*")')


def _try_parse(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return False, None


def _from_fence(text: str) -> Tuple[bool, Any]:
    for pattern in _FENCE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            ok, data = _try_parse(match.group(1).strip())
            if ok:
                return ok, data
    return False, None


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index of the bracket closing the one at ``start``, skipping strings.

    Returns None on a mismatched bracket and -1 when the text ends first.
    """
    stack = []
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return index
    return -1


def _from_balanced(text: str) -> Tuple[bool, Any]:
    """Parse the first top-level balanced object or array that is valid JSON.

    A balanced span that does not parse is skipped as a whole, so fragments
    nested inside malformed JSON are never returned.
    """
    start = 0
    while start < len(text):
        if text[start] not in _CLOSERS:
            start += 1
            continue
        end = _balanced_end(text, start)
        if end == -1:
            # Everything after an unclosed bracket is nested inside it
            break
        if end is None:
            start += 1
            continue
        ok, data = _try_parse(text[start:end + 1])
        if ok:
            return ok, data
        start = end + 1
    return False, None


def _repair(text: str) -> Tuple[bool, Any]:
    starts = [index for index in (text.find("{"), text.find("[")) if index != -1]
    end = max(text.rfind("}"), text.rfind("]"))
    if not starts or end <= min(starts):
        return False, None

    # Odd parts are string literals and are left untouched
    parts = _STRING_LITERAL.split(text[min(starts):end + 1])
    for index in range(0, len(parts), 2):
        segment = parts[index]
        segment = re.sub(r"/\*[\s\S]*?\*/", "", segment)
        segment = re.sub(r"^\s*//[^\n]*$", "", segment, flags=re.MULTILINE)
        segment = re.sub(r",\s*([\]}])", r"\1", segment)
        segment = re.sub(r"}\s*{", "},{", segment)
        parts[index] = segment
    return _try_parse("".join(parts))


def extract_json(text: Any) -> Dict[str, Any]:
    """Extract the JSON value from a raw model response.

    Returns:
        ``{"success": True, "data": value}`` or
        ``{"success": False, "error": message, "raw_response": text}``
    """
    if not isinstance(text, str) or not text.strip():
        return {"success": False, "error": "Empty response from model", "raw_response": text}

    cleaned = text.strip()
    for strategy in (_try_parse, _from_fence, _from_balanced, _repair):
        ok, data = strategy(cleaned)
        if ok:
            return {"success": True, "data": data}

    logger.warning(f"Could not extract JSON from model response ({len(cleaned)} chars)")
    return {
        "success": False,
        "error": "Could not find valid JSON in response",
        "raw_response": text,
    }
