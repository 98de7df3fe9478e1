"""
Tolerant JSON extraction from model output.

Model responses frequently wrap JSON in markdown fences, surround it with
prose, or append commentary. ``extract_json_from_text`` tries a short
chain of candidates and returns the first that parses:

1. Contents of markdown code fences
2. The whole (stripped) text
3. The first balanced ``{...}`` or ``[...]`` substring
"""

from typing import Any, Iterator, List, Optional
import json
import re


class ResponseParseError(Exception):
    """Exception raised when no JSON can be extracted from a response."""

    def __init__(self, message: str, raw_text: str = "", errors: Optional[List[str]] = None):
        super().__init__(message)
        self.raw_text = raw_text
        self.errors = errors or []


CODE_BLOCK_PATTERNS = [
    r"```json\s*([\s\S]*?)\s*```",
    r"```[a-zA-Z0-9_-]*\s*([\s\S]*?)\s*```",
]


def _balanced_substring(text: str, start_idx: int) -> Optional[str]:
    """Return the balanced bracket substring starting at start_idx, if any."""
    opener = text[start_idx]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start_idx:], start_idx):
        if escape_next:
            escape_next = False
            continue

        if char == "\\":
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start_idx:i + 1]

    return None


def _candidates(text: str) -> Iterator[str]:
    for pattern in CODE_BLOCK_PATTERNS:
        for match in re.finditer(pattern, text):
            yield match.group(1).strip()

    yield text

    for opener in ("{", "["):
        start_idx = text.find(opener)
        while start_idx != -1:
            candidate = _balanced_substring(text, start_idx)
            if candidate:
                yield candidate
            start_idx = text.find(opener, start_idx + 1)


def extract_json_from_text(text: Optional[str]) -> Any:
    """
    Extract and parse the first JSON value found in model output.

    Parameters
    ----------
    text : str
        Raw model output

    Returns
    -------
    Any
        The parsed JSON value (usually a dict or list)

    Raises
    ------
    ResponseParseError
        If no candidate parses as JSON
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty response", raw_text=text or "")

    text = text.strip()
    errors: List[str] = []
    seen = set()

    for candidate in _candidates(text):
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            errors.append(f"{e.msg} at position {e.pos}")

    raise ResponseParseError("No valid JSON found in response", raw_text=text, errors=errors)


def extract_json_object(text: Optional[str]) -> dict:
    """Like ``extract_json_from_text`` but requires a JSON object."""
    value = extract_json_from_text(text)
    if not isinstance(value, dict):
        # a bare array may precede the object we want
        for candidate in _candidates(text.strip()):
            if candidate.startswith("{"):
                try:
                    parsed = json.loads(candidate)
                except json.JSONDecodeError:
                    continue
                if isinstance(parsed, dict):
                    return parsed
        raise ResponseParseError(
            f"Expected a JSON object, got {type(value).__name__}",
            raw_text=text or "",
        )
    return value


__all__ = [
    "ResponseParseError",
    "extract_json_from_text",
    "extract_json_object",
]
