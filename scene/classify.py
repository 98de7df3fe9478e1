"""
Kind Classification

Keyword heuristics that decide whether a scene or a request describes an
enclosure or an organic object. The heuristics sit behind the
``KindClassifier`` interface so a different strategy can be swapped in
with ``set_kind_classifier``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
import logging
import re

from .elements import BOX_LIKE_TYPES, ORGANIC_TYPES, Kind, SceneElement

logger = logging.getLogger(__name__)


ANATOMICAL_KEYWORDS = (
    "head", "ear", "muzzle", "eye", "arm", "leg", "paw", "plush", "teddy", "bear",
)

OBJECT_KEYWORDS = (
    "teddy", "bear", "plush", "plushie", "stuffed", "toy", "doll", "figurine",
    "character", "animal", "bunny", "bunnies", "cat", "dog", "soft toy",
)

ORGANIC_SHARE = 0.4
BOX_LIKE_SHARE = 0.6

_NAME_TOKEN_RE = re.compile(r"[a-z0-9]+")


def _keyword_pattern(keywords: Sequence[str]) -> "re.Pattern":
    # whole words only, optional plural "s"
    alternatives = "|".join(re.escape(k).replace(r"\ ", r"\s+") for k in keywords)
    return re.compile(rf"\b(?:{alternatives})s?\b", re.IGNORECASE)


def _element_fields(element: Union[SceneElement, Dict[str, Any]]):
    if isinstance(element, SceneElement):
        return element.type, element.label
    if isinstance(element, dict):
        raw_type = element.get("type")
        raw_name = element.get("name")
        return (
            raw_type.strip().lower() if isinstance(raw_type, str) else "",
            raw_name.lower() if isinstance(raw_name, str) else "",
        )
    return "", ""


class KindClassifier(ABC):
    """Strategy interface for kind classification."""

    @abstractmethod
    def classify_text(self, text: str) -> Kind:
        """Classify a free-text description."""

    @abstractmethod
    def classify_elements(self, elements: Iterable[Any]) -> Kind:
        """Classify a list of elements (SceneElement or raw dicts)."""


class KeywordKindClassifier(KindClassifier):
    """
    Keyword and primitive-share heuristics.

    Elements are classified as OBJECT when any element name contains an
    anatomical word, or when spheres/capsules make up at least 40% of the
    elements and outnumber box-like primitives. Otherwise ENCLOSURE.
    Text is classified as OBJECT when it mentions a toy or character word.
    """

    def __init__(
        self,
        anatomical_keywords: Sequence[str] = ANATOMICAL_KEYWORDS,
        object_keywords: Sequence[str] = OBJECT_KEYWORDS,
        organic_share: float = ORGANIC_SHARE,
        box_like_share: float = BOX_LIKE_SHARE,
    ):
        self.anatomical_keywords = tuple(anatomical_keywords)
        self.object_keywords = tuple(object_keywords)
        self.organic_share = organic_share
        self.box_like_share = box_like_share
        self._text_re = _keyword_pattern(self.object_keywords)

    def _is_anatomical(self, name: str) -> bool:
        for token in _NAME_TOKEN_RE.findall(name):
            if token in self.anatomical_keywords:
                return True
            if token.endswith("s") and token[:-1] in self.anatomical_keywords:
                return True
        return False

    def classify_text(self, text: str) -> Kind:
        if text and self._text_re.search(text):
            return Kind.OBJECT
        return Kind.ENCLOSURE

    def classify_elements(self, elements: Iterable[Any]) -> Kind:
        fields = [_element_fields(e) for e in elements]
        if not fields:
            return Kind.ENCLOSURE

        if any(self._is_anatomical(name) for _, name in fields if name):
            return Kind.OBJECT

        total = len(fields)
        organic = sum(1 for t, _ in fields if t in ORGANIC_TYPES)
        box_like = sum(1 for t, _ in fields if t in BOX_LIKE_TYPES)

        if organic / total >= self.organic_share and organic > box_like:
            return Kind.OBJECT
        if box_like / total >= self.box_like_share:
            return Kind.ENCLOSURE
        return Kind.ENCLOSURE


_classifier: KindClassifier = KeywordKindClassifier()


def get_kind_classifier() -> KindClassifier:
    return _classifier


def set_kind_classifier(classifier: KindClassifier) -> KindClassifier:
    """Install a new default classifier and return the previous one."""
    global _classifier
    previous = _classifier
    _classifier = classifier
    return previous


def classify_kind(
    subject: Union[str, Sequence[Any], None],
    classifier: Optional[KindClassifier] = None,
) -> Kind:
    """
    Classify a description or an element list as enclosure or object.

    Parameters
    ----------
    subject : str or sequence
        Free text, or a list of SceneElement / raw element dicts
    classifier : KindClassifier, optional
        Strategy to use instead of the installed default

    Returns
    -------
    Kind
    """
    classifier = classifier or _classifier
    if subject is None:
        return Kind.ENCLOSURE
    if isinstance(subject, str):
        return classifier.classify_text(subject)
    return classifier.classify_elements(list(subject))


def _analysis_text(analysis: Optional[Dict[str, Any]]) -> List[str]:
    if not isinstance(analysis, dict):
        return []
    parts: List[str] = []
    summary = analysis.get("summary")
    if isinstance(summary, str):
        parts.append(summary)
    for key in ("components", "features"):
        values = analysis.get(key)
        if isinstance(values, list):
            parts.extend(str(v) for v in values if v is not None)
    return parts


def infer_kind_from_text(
    description: Optional[str],
    analysis: Optional[Dict[str, Any]] = None,
    classifier: Optional[KindClassifier] = None,
) -> Kind:
    """
    Classify a request from its description and any prior project analysis.

    The analysis summary, components and features are appended to the
    description before classification.
    """
    text = " ".join([description or ""] + _analysis_text(analysis))
    kind = classify_kind(text, classifier=classifier)
    logger.debug(f"Inferred kind '{kind.value}' from description")
    return kind


__all__ = [
    "ANATOMICAL_KEYWORDS",
    "OBJECT_KEYWORDS",
    "KindClassifier",
    "KeywordKindClassifier",
    "get_kind_classifier",
    "set_kind_classifier",
    "classify_kind",
    "infer_kind_from_text",
]
