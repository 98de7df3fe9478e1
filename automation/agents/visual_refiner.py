"""
Visual refinement stage: polish colours, materials and corner rounding.
"""

from typing import List, Optional

from scene import ElementType, Material, SceneElement, sanitize, scene_to_dicts
from scene.wire import unwrap_elements

from ..json_extract import extract_json_from_text
from ..prompts import VISUAL_REFINER_PROMPT, render
from .base import AgentKind, GenerationAgent, StageContext
from .schemas import VisualRefinementResult

DULL_COLORS = ("808080", "333333", "000000")
POLISH_PALETTE = ("#F8FAFC", "#E2E8F0", "#F8FAFC")
MIN_CORNER_RADIUS = 2.0
POLISHED_CORNER_RADIUS = 3.0
POLISHED_SMOOTHNESS = 8.0


def apply_fallback_polish(scene: List[SceneElement]) -> List[SceneElement]:
    """
    Deterministic polish used when the model is unavailable.

    Dull greys and blacks cycle through a light palette, rounded boxes get
    smoothness 8 and a corner radius of at least 3, and missing materials
    are filled in (plastic for the first element, metal otherwise).
    """
    polished = []
    color_index = 0
    for index, element in enumerate(scene):
        changes = {}
        color = (element.color or "").lower()
        if any(dull in color for dull in DULL_COLORS):
            changes["color"] = POLISH_PALETTE[color_index % len(POLISH_PALETTE)]
            color_index += 1
        if element.type == ElementType.ROUNDED_BOX.value:
            if not element.smoothness:
                changes["smoothness"] = POLISHED_SMOOTHNESS
            if not element.radius or element.radius < MIN_CORNER_RADIUS:
                changes["radius"] = POLISHED_CORNER_RADIUS
        if not element.material:
            changes["material"] = Material.PLASTIC.value if index == 0 else Material.METAL.value
        polished.append(element.evolve(**changes) if changes else element)
    return polished


class VisualRefinerAgent(GenerationAgent[VisualRefinementResult]):
    """
    Rewrite the scene according to the visual critique.

    The model's ``refinedScene`` may be an object with ``elements`` or a bare
    array. The fallback polish counts as a successful refinement only when
    it actually changed something.
    """

    kind = AgentKind.VISUAL_REFINER

    def build_prompt(self, context: StageContext) -> str:
        return render(
            VISUAL_REFINER_PROMPT,
            scene={"elements": scene_to_dicts(context.scene)},
            description=context.description or "(none)",
            critique=context.visual_critique.to_dict() if context.visual_critique else {},
        )

    def validate(self, raw_text: str, context: StageContext) -> Optional[VisualRefinementResult]:
        payload = extract_json_from_text(raw_text)
        if isinstance(payload, dict):
            refined = payload.get("refinedScene", payload.get("refined_scene", payload))
        else:
            refined = payload
        kind = context.analysis.kind if context.analysis else None
        elements = sanitize(unwrap_elements(refined), kind)
        if not elements:
            return None

        changes = payload.get("changesApplied") if isinstance(payload, dict) else None
        summary = payload.get("summary") if isinstance(payload, dict) else None
        return VisualRefinementResult(
            elements=elements,
            changes=[str(c) for c in changes] if isinstance(changes, list) else [],
            summary=summary if isinstance(summary, str) else "Visual improvements applied",
            success=True,
        )

    def fallback(self, context: StageContext) -> VisualRefinementResult:
        polished = apply_fallback_polish(context.scene)
        changed = polished != list(context.scene)
        return VisualRefinementResult(
            elements=polished,
            changes=["Applied fallback color palette"] if changed else [],
            summary="Applied default visual improvements" if changed else "No default improvements applicable",
            success=changed,
        )


__all__ = ["apply_fallback_polish", "VisualRefinerAgent"]
