"""
Scene Generation Orchestrator

Runs the generation agents as a fixed state machine:

    INIT -> VISION_DONE -> STRUCTURE_PLANNED -> STRUCTURAL_ITERATING
         -> STRUCTURAL_DONE -> VISUAL_ITERATING -> DONE

1. Vision: analyse the image, or infer the analysis from the description
   when there is no image or vision is skipped.
2. Structure planning: one initial scene.
3. Structural loop: critique, stop if acceptable, otherwise refine. A
   successful refinement replaces the scene; a failed one ends the loop.
   One final critique always follows the loop.
4. Visual loop (optional): the same pattern with the visual critic and
   visual refiner and its own threshold, plus a final visual critique.

The scene is never modified in place: every stage receives a StageContext
and the next context is derived from it.

Usage:
    from automation.llm_client import LLMClient
    from automation.orchestrator import orchestrate_scene_generation

    result = orchestrate_scene_generation(LLMClient(), "A small plush teddy bear toy")
    print("\\n".join(result.logs))
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
import logging

from scene import SceneElement, scene_to_dicts

from .agents import (
    AgentKind,
    CritiqueResult,
    GenerationAgent,
    ModelInvoker,
    StageContext,
    VisionAnalysis,
    VisualCritiqueResult,
    build_pipeline_agents,
    infer_from_description,
)

logger = logging.getLogger(__name__)

SUCCESS_MIN_SCORE = 5.0


class PipelineState(Enum):
    """States of one scene-generation run."""
    INIT = "init"
    VISION_DONE = "vision_done"
    STRUCTURE_PLANNED = "structure_planned"
    STRUCTURAL_ITERATING = "structural_iterating"
    STRUCTURAL_DONE = "structural_done"
    VISUAL_ITERATING = "visual_iterating"
    DONE = "done"


_OPTION_KEYS = {
    "maxIterations": "max_iterations",
    "minAcceptableScore": "min_acceptable_score",
    "maxVisualIterations": "max_visual_iterations",
    "minVisualScore": "min_visual_score",
    "skipVision": "skip_vision",
    "skipVisualPolish": "skip_visual_polish",
    "existingVisionAnalysis": "existing_vision_analysis",
}


@dataclass
class OrchestratorOptions:
    """
    Loop bounds and thresholds for one run.

    Attributes
    ----------
    max_iterations : int
        Upper bound on structural critique/refine iterations
    min_acceptable_score : float
        Structural score needed to stop early
    max_visual_iterations : int
        Upper bound on visual critique/refine iterations
    min_visual_score : float
        Visual score needed to stop early
    skip_vision : bool
        Infer the analysis from the description even if an image is given
    skip_visual_polish : bool
        Skip the visual loop entirely
    existing_vision_analysis : VisionAnalysis, optional
        Reuse a prior analysis instead of running the vision stage
    """
    max_iterations: int = 2
    min_acceptable_score: float = 7.0
    max_visual_iterations: int = 3
    min_visual_score: float = 8.0
    skip_vision: bool = False
    skip_visual_polish: bool = False
    existing_vision_analysis: Optional[VisionAnalysis] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OrchestratorOptions":
        """Accepts snake_case or camelCase keys; unknown keys are ignored."""
        values = {}
        for key, value in d.items():
            name = _OPTION_KEYS.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None:
                values[name] = value
        analysis = values.get("existing_vision_analysis")
        if isinstance(analysis, dict):
            values["existing_vision_analysis"] = VisionAnalysis.from_dict(analysis)
        return cls(**values)


@dataclass
class OrchestratorResult:
    """Outcome of ``orchestrate_scene_generation``."""
    success: bool
    scene: List[SceneElement]
    vision_analysis: VisionAnalysis
    critique: Optional[CritiqueResult] = None
    visual_critique: Optional[VisualCritiqueResult] = None
    iterations: int = 0
    visual_iterations: int = 0
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "scene": scene_to_dicts(self.scene),
            "visionAnalysis": self.vision_analysis.to_dict(),
            "critique": self.critique.to_dict() if self.critique else None,
            "visualCritique": self.visual_critique.to_dict() if self.visual_critique else None,
            "iterations": self.iterations,
            "visualIterations": self.visual_iterations,
            "logs": list(self.logs),
        }


class SceneOrchestrator:
    """
    One pipeline run.

    Parameters
    ----------
    agents : dict
        AgentKind -> GenerationAgent for all six stages
    options : OrchestratorOptions
    """

    def __init__(self, agents: Dict[AgentKind, GenerationAgent], options: OrchestratorOptions):
        self.agents = agents
        self.options = options
        self.state = PipelineState.INIT
        self.logs: List[str] = []

    def _log(self, message: str) -> None:
        logger.info(f"[{self.state.value}] {message}")
        self.logs.append(message)

    def _enter(self, state: PipelineState) -> None:
        logger.info(f"{self.state.value} -> {state.value}")
        self.state = state

    def _run(self, kind: AgentKind, context: StageContext):
        return self.agents[kind].run(context).value

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def _analyse(self, context: StageContext) -> VisionAnalysis:
        if self.options.existing_vision_analysis is not None:
            self._log("Using existing vision analysis")
            return self.options.existing_vision_analysis

        if self.options.skip_vision or not context.image:
            analysis = infer_from_description(context.description)
            self._log(f"Vision skipped, inferred from description: {analysis.object_type}")
            return analysis

        self._log("Running vision analysis on sketch...")
        analysis = self._run(AgentKind.VISION, context)
        self._log(f"Vision analysis complete: {analysis.object_type} - {analysis.object_name}")
        self._log(
            f"Identified {len(analysis.main_parts)} parts with confidence {analysis.confidence}"
        )
        return analysis

    def _structural_loop(self, context: StageContext) -> StageContext:
        iterations = 0
        while iterations < self.options.max_iterations:
            iterations += 1
            self._log(f"--- Iteration {iterations} ---")

            critique = self._run(AgentKind.CRITIC, context)
            context = context.evolve(critique=critique)
            self._log(
                f"Critique: score={critique.score}, acceptable={critique.is_acceptable}, "
                f"matchesInput={critique.matches_input}"
            )
            if critique.issues:
                self._log(f"Issues: {'; '.join(i.description for i in critique.issues)}")

            if (
                critique.is_acceptable
                and critique.score >= self.options.min_acceptable_score
                and critique.matches_input
            ):
                self._log("Scene is acceptable, stopping iterations")
                break

            refinement = self._run(AgentKind.REFINER, context)
            if not refinement.success:
                self._log("Refinement failed, keeping current scene")
                break
            context = context.evolve(scene=list(refinement.elements))
            self._log(f"Refinement applied: {', '.join(refinement.changes)}")

        self.iterations = iterations
        return context

    def _visual_loop(self, context: StageContext) -> StageContext:
        iterations = 0
        while iterations < self.options.max_visual_iterations:
            iterations += 1
            self._log(f"--- Visual iteration {iterations} ---")

            critique = self._run(AgentKind.VISUAL_CRITIC, context)
            context = context.evolve(visual_critique=critique)
            self._log(f"Visual critique: score={critique.score}, acceptable={critique.is_acceptable}")

            if critique.is_acceptable and critique.score >= self.options.min_visual_score:
                self._log("Scene looks good, stopping visual polish")
                break

            refinement = self._run(AgentKind.VISUAL_REFINER, context)
            if not refinement.success:
                self._log("Visual refinement failed, keeping current scene")
                break
            context = context.evolve(scene=list(refinement.elements))
            changes = ", ".join(refinement.changes) or refinement.summary
            self._log(f"Visual refinement applied: {changes}")

        self.visual_iterations = iterations
        return context

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def run(self, description: str, image: Optional[str] = None) -> OrchestratorResult:
        self.iterations = 0
        self.visual_iterations = 0
        context = StageContext(description=description or "", image=image)

        analysis = self._analyse(context)
        context = context.evolve(analysis=analysis)
        self._enter(PipelineState.VISION_DONE)

        self._log("Planning 3D structure...")
        plan = self._run(AgentKind.STRUCTURE_PLANNER, context)
        context = context.evolve(scene=list(plan.elements))
        self._enter(PipelineState.STRUCTURE_PLANNED)
        self._log(f"Structure planned: {len(plan.elements)} elements")

        self._enter(PipelineState.STRUCTURAL_ITERATING)
        context = self._structural_loop(context)

        final_critique = self._run(AgentKind.CRITIC, context)
        context = context.evolve(critique=final_critique)
        self._enter(PipelineState.STRUCTURAL_DONE)
        self._log(f"Final score: {final_critique.score}")

        final_visual = None
        if self.options.skip_visual_polish:
            self._log("Visual polish skipped")
        else:
            self._enter(PipelineState.VISUAL_ITERATING)
            context = self._visual_loop(context)
            final_visual = self._run(AgentKind.VISUAL_CRITIC, context)
            context = context.evolve(visual_critique=final_visual)
            self._log(f"Final visual score: {final_visual.score}")

        self._enter(PipelineState.DONE)
        success = final_critique.matches_input and final_critique.score >= SUCCESS_MIN_SCORE
        self._log(f"Pipeline finished: success={success}")

        return OrchestratorResult(
            success=success,
            scene=list(context.scene),
            vision_analysis=analysis,
            critique=final_critique,
            visual_critique=final_visual,
            iterations=self.iterations,
            visual_iterations=self.visual_iterations,
            logs=list(self.logs),
        )


def orchestrate_scene_generation(
    llm_client: Optional[ModelInvoker],
    description: str,
    image: Optional[str] = None,
    options: Optional[OrchestratorOptions] = None,
    agents: Optional[Dict[AgentKind, GenerationAgent]] = None,
) -> OrchestratorResult:
    """
    Generate a scene for a description and optional image.

    Parameters
    ----------
    llm_client : ModelInvoker or None
        Model collaborator shared by all agents. With None every stage uses
        its deterministic fallback.
    description : str
        What to build
    image : str, optional
        Sketch or photo as a data URL or base64
    options : OrchestratorOptions, optional
    agents : dict, optional
        Replacement agents by kind; missing kinds are built from
        ``llm_client``

    Returns
    -------
    OrchestratorResult
        ``success`` is true when the final critique matches the input and
        scores at least 5
    """
    stage_agents = build_pipeline_agents(llm_client)
    if agents:
        stage_agents.update(agents)
    return SceneOrchestrator(stage_agents, options or OrchestratorOptions()).run(description, image)


__all__ = [
    "PipelineState",
    "OrchestratorOptions",
    "OrchestratorResult",
    "SceneOrchestrator",
    "orchestrate_scene_generation",
]
