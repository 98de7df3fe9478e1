"""
Scene wire format helpers.

Producers emit the bare JSON array form. Readers also accept an object
wrapping the array under ``elements`` (or ``scene`` / ``objects``).
"""

from typing import Any, List, Optional, Sequence, Union
import json
import logging
import re

from .elements import Kind, SceneElement
from .sanitize import sanitize

logger = logging.getLogger(__name__)

WRAPPER_KEYS = ("elements", "scene", "objects")

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*|\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    return _FENCE_RE.sub("", text.strip()).strip()


def unwrap_elements(payload: Any) -> Optional[list]:
    """Return the element array from a bare array or a wrapper object."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in WRAPPER_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return None


def _load(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            pass
    return None


def parse_scene_elements(
    text: Optional[str],
    kind_hint: Union[Kind, str, None] = None,
) -> Optional[List[SceneElement]]:
    """
    Parse and sanitize a scene from JSON text.

    Parameters
    ----------
    text : str
        Scene JSON, possibly wrapped in a code fence or surrounded by prose
    kind_hint : Kind or str, optional
        Passed through to ``sanitize``

    Returns
    -------
    list of SceneElement or None
        None when no usable element could be recovered
    """
    if not text or not text.strip():
        return None

    payload = _load(strip_code_fences(text))
    raw_elements = unwrap_elements(payload)
    if raw_elements is None:
        logger.debug("No scene element array found in text")
        return None

    elements = sanitize(raw_elements, kind_hint)
    return elements or None


def dump_scene(elements: Sequence[SceneElement]) -> str:
    """Serialise a scene to the bare-array wire form."""
    return json.dumps([e.to_dict() for e in elements], indent=2)


__all__ = [
    "WRAPPER_KEYS",
    "strip_code_fences",
    "unwrap_elements",
    "parse_scene_elements",
    "dump_scene",
]
