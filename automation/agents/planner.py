"""
Structure planning stage: turn the analysis into an initial scene.
"""

from typing import Optional

from scene import build_fallback, sanitize
from scene.wire import unwrap_elements

from ..json_extract import extract_json_from_text
from ..prompts import STRUCTURE_PLANNER_PROMPT, render
from .base import AgentKind, GenerationAgent, StageContext
from .schemas import StructurePlan


def _kind_hint(context: StageContext):
    if context.analysis is not None:
        return context.analysis.kind
    return None


class StructurePlannerAgent(GenerationAgent[StructurePlan]):
    """
    Plan the scene once per pipeline run.

    The model's elements are sanitized with the analysis kind as hint; an
    empty result counts as a failure and the deterministic fallback scene
    for the description is used instead.
    """

    kind = AgentKind.STRUCTURE_PLANNER

    def build_prompt(self, context: StageContext) -> str:
        analysis = context.analysis.to_dict() if context.analysis else {}
        return render(
            STRUCTURE_PLANNER_PROMPT,
            analysis=analysis,
            description=context.description or "(none)",
        )

    def validate(self, raw_text: str, context: StageContext) -> Optional[StructurePlan]:
        payload = extract_json_from_text(raw_text)
        elements = sanitize(unwrap_elements(payload), _kind_hint(context))
        if not elements:
            return None
        reasoning = payload.get("reasoning") if isinstance(payload, dict) else None
        return StructurePlan(
            elements=elements,
            reasoning=reasoning if isinstance(reasoning, str) else "Structure planned from analysis",
        )

    def fallback(self, context: StageContext) -> StructurePlan:
        return StructurePlan(
            elements=build_fallback(context.description, _kind_hint(context)),
            reasoning="Fallback structure due to planning error",
        )


__all__ = ["StructurePlannerAgent"]
