"""
Structural critique stage: does the scene match what was asked for?
"""

from typing import List, Optional

from scene import SceneElement, scene_to_dicts

from ..json_extract import extract_json_object
from ..prompts import CRITIC_PROMPT, render
from .base import AgentKind, GenerationAgent, StageContext
from .schemas import CritiqueIssue, CritiqueResult

MISMATCH_SCORE = 2.0
QUICK_PASS_SCORE = 6.0


def detect_type_mismatch(object_type: str, scene: List[SceneElement]) -> bool:
    """
    True if the primitives contradict the expected object type.

    An enclosure built only from spheres/capsules, or an organic object
    built only from boxes, is a mismatch.
    """
    has_organic = any(e.is_organic for e in scene)
    has_boxes = any(e.is_box_like for e in scene)
    if object_type == "enclosure":
        return has_organic and not has_boxes
    if object_type == "organic":
        return has_boxes and not has_organic
    return False


class CriticAgent(GenerationAgent[CritiqueResult]):
    """Score the current scene against the analysis."""

    kind = AgentKind.CRITIC

    def build_prompt(self, context: StageContext) -> str:
        return render(
            CRITIC_PROMPT,
            analysis=context.analysis.to_dict() if context.analysis else {},
            scene=scene_to_dicts(context.scene),
        )

    def validate(self, raw_text: str, context: StageContext) -> Optional[CritiqueResult]:
        return CritiqueResult.from_dict(extract_json_object(raw_text))

    def fallback(self, context: StageContext) -> CritiqueResult:
        expected = context.analysis.object_type if context.analysis else "enclosure"
        if detect_type_mismatch(expected, context.scene):
            return CritiqueResult(
                score=MISMATCH_SCORE,
                is_acceptable=False,
                matches_input=False,
                issues=[CritiqueIssue(
                    severity="critical",
                    description=f"Object type mismatch: expected {expected} but got different shape types",
                    suggested_fix=f"Use appropriate shapes for {expected}",
                )],
                summary="Critical type mismatch detected",
            )
        return CritiqueResult(
            score=QUICK_PASS_SCORE,
            is_acceptable=True,
            matches_input=True,
            summary="Quick validation passed",
        )


__all__ = ["detect_type_mismatch", "CriticAgent"]
