"""
Generation agents for the scene pipeline.

One agent per stage (vision, structure planning, critique, refinement,
visual critique, visual refinement), all implementing the same
build_prompt / validate / fallback capability.
"""

from .base import AgentKind, AgentRun, GenerationAgent, ModelInvoker, StageContext
from .schemas import (
    CritiqueIssue,
    CritiqueResult,
    PartHint,
    RefinementResult,
    StructurePlan,
    VisionAnalysis,
    VisualCritiqueResult,
    VisualRefinementResult,
)
from .vision import VisionAgent, infer_from_description
from .planner import StructurePlannerAgent
from .critic import CriticAgent, detect_type_mismatch
from .refiner import RefinerAgent, organic_to_boxes
from .visual_critic import VisualCriticAgent
from .visual_refiner import VisualRefinerAgent, apply_fallback_polish
from .registry import AGENT_CLASSES, build_agent, build_pipeline_agents

__all__ = [
    "AgentKind",
    "AgentRun",
    "GenerationAgent",
    "ModelInvoker",
    "StageContext",
    "CritiqueIssue",
    "CritiqueResult",
    "PartHint",
    "RefinementResult",
    "StructurePlan",
    "VisionAnalysis",
    "VisualCritiqueResult",
    "VisualRefinementResult",
    "VisionAgent",
    "infer_from_description",
    "StructurePlannerAgent",
    "CriticAgent",
    "detect_type_mismatch",
    "RefinerAgent",
    "organic_to_boxes",
    "VisualCriticAgent",
    "VisualRefinerAgent",
    "apply_fallback_polish",
    "AGENT_CLASSES",
    "build_agent",
    "build_pipeline_agents",
]
