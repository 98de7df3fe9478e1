"""
Generation agent base class.

Every pipeline stage is a GenerationAgent with the same four-step
capability: build a prompt, invoke the model, validate the response into a
typed result, and fall back to a deterministic local result when any of
that fails. ``run`` wires the steps together and never raises because of
the model: invocation errors, unparseable text and responses that fail
validation all end in ``fallback``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Generic, List, Optional, Protocol, TypeVar
import logging

from scene import SceneElement

from ..json_extract import ResponseParseError
from .schemas import CritiqueResult, VisionAnalysis, VisualCritiqueResult

logger = logging.getLogger(__name__)


T = TypeVar("T")


class AgentKind(str, Enum):
    """The six pipeline stages."""
    VISION = "vision"
    STRUCTURE_PLANNER = "structure-planner"
    CRITIC = "critic"
    REFINER = "refiner"
    VISUAL_CRITIC = "visual-critic"
    VISUAL_REFINER = "visual-refiner"


class ModelInvoker(Protocol):
    """Anything with ``invoke(prompt, image=None) -> str``, e.g. LLMClient."""

    def invoke(self, prompt: str, image: Optional[str] = None) -> str:
        ...


@dataclass(frozen=True)
class StageContext:
    """
    Immutable input to a pipeline stage.

    Each stage reads the context it is given; the orchestrator derives the
    next context with ``evolve`` rather than modifying this one.
    """
    description: str
    image: Optional[str] = None
    analysis: Optional[VisionAnalysis] = None
    scene: List[SceneElement] = field(default_factory=list)
    critique: Optional[CritiqueResult] = None
    visual_critique: Optional[VisualCritiqueResult] = None

    def evolve(self, **changes) -> "StageContext":
        return replace(self, **changes)


@dataclass
class AgentRun(Generic[T]):
    """Outcome of ``GenerationAgent.run``."""
    value: T
    used_fallback: bool = False
    error: Optional[str] = None


class GenerationAgent(ABC, Generic[T]):
    """
    Base class for pipeline-stage agents.

    Parameters
    ----------
    llm_client : ModelInvoker, optional
        Model collaborator. Without one every run uses the fallback.
    """

    kind: AgentKind
    sends_image: bool = False

    def __init__(self, llm_client: Optional[ModelInvoker] = None):
        self.llm_client = llm_client

    @abstractmethod
    def build_prompt(self, context: StageContext) -> str:
        """Prompt text for this stage."""

    @abstractmethod
    def validate(self, raw_text: str, context: StageContext) -> Optional[T]:
        """
        Parse and check a model response.

        Returns None (or raises ResponseParseError) when the response is
        not usable.
        """

    @abstractmethod
    def fallback(self, context: StageContext) -> T:
        """Deterministic result used when the model path fails. No I/O."""

    def should_invoke(self, context: StageContext) -> bool:
        """Whether this context warrants a model call at all."""
        return True

    def invoke(self, prompt: str, context: StageContext) -> str:
        image = context.image if self.sends_image else None
        return self.llm_client.invoke(prompt, image=image)

    def _fall_back(self, context: StageContext, reason: str) -> AgentRun[T]:
        logger.info(f"{self.kind.value}: using fallback ({reason})")
        return AgentRun(value=self.fallback(context), used_fallback=True, error=reason)

    def run(self, context: StageContext) -> AgentRun[T]:
        """Build, invoke, validate; fall back on any failure."""
        if self.llm_client is None:
            return self._fall_back(context, "no model client")
        if not self.should_invoke(context):
            return self._fall_back(context, "model call not applicable")

        try:
            raw_text = self.invoke(self.build_prompt(context), context)
        except Exception as e:
            logger.warning(f"{self.kind.value}: model invocation failed: {e}")
            return self._fall_back(context, str(e))

        try:
            value = self.validate(raw_text or "", context)
        except ResponseParseError as e:
            logger.warning(f"{self.kind.value}: unparseable response: {e}")
            return self._fall_back(context, str(e))
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            logger.warning(f"{self.kind.value}: response failed validation: {e}")
            return self._fall_back(context, str(e))

        if value is None:
            logger.warning(f"{self.kind.value}: response failed validation")
            return self._fall_back(context, "invalid response")

        return AgentRun(value=value)


__all__ = [
    "AgentKind",
    "ModelInvoker",
    "StageContext",
    "AgentRun",
    "GenerationAgent",
]
