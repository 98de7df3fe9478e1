"""
Structural refinement stage: produce a replacement scene that fixes the
critique's issues.
"""

from typing import List, Optional

from scene import ElementType, SceneElement, sanitize, scene_to_dicts
from scene.wire import unwrap_elements

from ..json_extract import extract_json_from_text
from ..prompts import REFINER_PROMPT, render
from .base import AgentKind, GenerationAgent, StageContext
from .schemas import RefinementResult


def organic_to_boxes(scene: List[SceneElement]) -> List[SceneElement]:
    """Replace spheres and capsules with rounded boxes of similar size."""
    fixed = []
    for element in scene:
        if element.is_organic:
            d0, d1, d2 = element.dimensions
            element = element.evolve(
                type=ElementType.ROUNDED_BOX.value,
                dimensions=(d0 * 2 or 20.0, d1 or d0 or 10.0, d2 or d0 * 2 or 20.0),
            )
        fixed.append(element)
    return fixed


class RefinerAgent(GenerationAgent[RefinementResult]):
    """
    Rewrite the scene according to the structural critique.

    The model may answer with ``{"elements": [...], "changes": [...]}`` or a
    bare element array. When it fails and the critique reports a type
    mismatch on an enclosure, organic primitives are converted to rounded
    boxes locally; otherwise the refinement is reported as unsuccessful.
    """

    kind = AgentKind.REFINER

    def build_prompt(self, context: StageContext) -> str:
        return render(
            REFINER_PROMPT,
            analysis=context.analysis.to_dict() if context.analysis else {},
            scene=scene_to_dicts(context.scene),
            critique=context.critique.to_dict() if context.critique else {},
        )

    def validate(self, raw_text: str, context: StageContext) -> Optional[RefinementResult]:
        payload = extract_json_from_text(raw_text)
        kind = context.analysis.kind if context.analysis else None
        elements = sanitize(unwrap_elements(payload), kind)
        if not elements:
            return None

        changes = payload.get("changes") if isinstance(payload, dict) else None
        if not isinstance(changes, list) or not changes:
            changes = ["Refinement applied"]
        return RefinementResult(elements=elements, changes=[str(c) for c in changes], success=True)

    def fallback(self, context: StageContext) -> RefinementResult:
        critique = context.critique
        is_enclosure = context.analysis is not None and context.analysis.object_type == "enclosure"
        if critique is not None and not critique.matches_input and is_enclosure:
            return RefinementResult(
                elements=organic_to_boxes(context.scene),
                changes=["Emergency fix: converted organic shapes to boxes for enclosure"],
                success=True,
            )
        return RefinementResult(elements=list(context.scene), changes=[], success=False)


__all__ = ["organic_to_boxes", "RefinerAgent"]
