"""
Visual critique stage: aesthetic scoring, separate from structural
correctness.
"""

from typing import Optional

from scene import scene_to_dicts

from ..json_extract import extract_json_object
from ..prompts import VISUAL_CRITIC_PROMPT, render
from .base import AgentKind, GenerationAgent, StageContext
from .schemas import CritiqueIssue, VisualCritiqueResult


class VisualCriticAgent(GenerationAgent[VisualCritiqueResult]):
    """Score colour harmony, contrast, balance, polish and finish."""

    kind = AgentKind.VISUAL_CRITIC

    def build_prompt(self, context: StageContext) -> str:
        return render(
            VISUAL_CRITIC_PROMPT,
            scene=scene_to_dicts(context.scene),
            description=context.description or "(none)",
        )

    def validate(self, raw_text: str, context: StageContext) -> Optional[VisualCritiqueResult]:
        return VisualCritiqueResult.from_dict(extract_json_object(raw_text))

    def fallback(self, context: StageContext) -> VisualCritiqueResult:
        # Unknown quality: ask for the default polish pass
        return VisualCritiqueResult(
            score=6.0,
            is_acceptable=False,
            issues=[CritiqueIssue(
                severity="minor",
                description="Unable to fully evaluate visual quality",
                suggested_fix="Apply general visual improvements",
                category="polish",
            )],
            overall_impression="Evaluation incomplete, applying default polish",
        )


__all__ = ["VisualCriticAgent"]
