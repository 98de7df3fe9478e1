"""
Registry mapping each AgentKind to its implementation.

The mapping is checked for exhaustiveness at import time so adding a kind
without an agent (or the reverse) fails immediately.
"""

from typing import Dict, Optional, Type

from .base import AgentKind, GenerationAgent, ModelInvoker
from .critic import CriticAgent
from .planner import StructurePlannerAgent
from .refiner import RefinerAgent
from .vision import VisionAgent
from .visual_critic import VisualCriticAgent
from .visual_refiner import VisualRefinerAgent


AGENT_CLASSES: Dict[AgentKind, Type[GenerationAgent]] = {
    AgentKind.VISION: VisionAgent,
    AgentKind.STRUCTURE_PLANNER: StructurePlannerAgent,
    AgentKind.CRITIC: CriticAgent,
    AgentKind.REFINER: RefinerAgent,
    AgentKind.VISUAL_CRITIC: VisualCriticAgent,
    AgentKind.VISUAL_REFINER: VisualRefinerAgent,
}


def _check_exhaustive() -> None:
    missing = set(AgentKind) - set(AGENT_CLASSES)
    if missing:
        raise RuntimeError(f"No agent registered for: {sorted(k.value for k in missing)}")
    for kind, cls in AGENT_CLASSES.items():
        if cls.kind != kind:
            raise RuntimeError(f"{cls.__name__} is registered as {kind.value} but declares {cls.kind.value}")


_check_exhaustive()


def build_agent(kind: AgentKind, llm_client: Optional[ModelInvoker] = None) -> GenerationAgent:
    """Instantiate the agent for a kind."""
    return AGENT_CLASSES[AgentKind(kind)](llm_client)


def build_pipeline_agents(llm_client: Optional[ModelInvoker] = None) -> Dict[AgentKind, GenerationAgent]:
    """One agent per kind, all sharing the same model client."""
    return {kind: build_agent(kind, llm_client) for kind in AgentKind}


__all__ = ["AGENT_CLASSES", "build_agent", "build_pipeline_agents"]
