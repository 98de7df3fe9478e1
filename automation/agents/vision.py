"""
Vision stage: what does the request depict?

With an image, the model describes the sketch. Without one (or when the
image call fails) the analysis is inferred from the description text with
keyword rules.
"""

from typing import Optional
import re

from ..json_extract import extract_json_object
from ..prompts import VISION_ANALYSIS_PROMPT, render
from .base import AgentKind, GenerationAgent, StageContext
from .schemas import PartHint, VisionAnalysis

TEXT_CONFIDENCE = 0.4
FAILED_IMAGE_CONFIDENCE = 0.3

ORGANIC_RE = re.compile(r"\b(?:teddy|bear|plush|stuffed|toy|doll|character|animal|bunny|cat|dog)s?\b", re.IGNORECASE)
MECHANICAL_RE = re.compile(r"\b(?:gear|bracket|mount|shaft|lever|mechanism)s?\b", re.IGNORECASE)
ABSTRACT_RE = re.compile(r"\b(?:art|sculpture|abstract|decoration)s?\b", re.IGNORECASE)


_TEXT_PARTS = {
    "enclosure": ([
        PartHint("body", "rounded-box", "large"),
        PartHint("lid", "rounded-box", "medium"),
    ], ["#808080", "#606060", "#404040"]),
    "organic": ([
        PartHint("body", "capsule", "large"),
        PartHint("head", "sphere", "medium"),
    ], ["#8B4513", "#A0522D", "#F5DEB3"]),
    "mechanical": ([
        PartHint("body", "cylinder", "large"),
    ], ["#C0C0C0", "#808080", "#404040"]),
    "abstract": ([
        PartHint("body", "box", "large"),
    ], ["#808080"]),
}


def infer_from_description(description: str, confidence: float = TEXT_CONFIDENCE) -> VisionAnalysis:
    """
    Build a VisionAnalysis from text alone.

    Parameters
    ----------
    description : str
        Request text
    confidence : float
        Confidence to report; low because nothing was seen

    Returns
    -------
    VisionAnalysis
    """
    description = description or ""
    if ORGANIC_RE.search(description):
        object_type = "organic"
    elif MECHANICAL_RE.search(description):
        object_type = "mechanical"
    elif ABSTRACT_RE.search(description):
        object_type = "abstract"
    else:
        object_type = "enclosure"

    parts, colors = _TEXT_PARTS[object_type]
    return VisionAnalysis(
        object_type=object_type,
        object_name=description[:50] or "Hardware project",
        description=description,
        main_parts=[PartHint(p.name, p.shape, p.relative_size) for p in parts],
        suggested_colors=list(colors),
        overall_dimensions={"width": 50.0, "height": 30.0, "depth": 40.0},
        confidence=confidence,
    )


class VisionAgent(GenerationAgent[VisionAnalysis]):
    """Analyse the request image; text inference otherwise."""

    kind = AgentKind.VISION
    sends_image = True

    def should_invoke(self, context: StageContext) -> bool:
        return bool(context.image)

    def build_prompt(self, context: StageContext) -> str:
        return render(VISION_ANALYSIS_PROMPT, description=context.description or "(none)")

    def validate(self, raw_text: str, context: StageContext) -> Optional[VisionAnalysis]:
        return VisionAnalysis.from_dict(extract_json_object(raw_text))

    def fallback(self, context: StageContext) -> VisionAnalysis:
        confidence = FAILED_IMAGE_CONFIDENCE if context.image else TEXT_CONFIDENCE
        return infer_from_description(context.description, confidence)


__all__ = ["infer_from_description", "VisionAgent"]
