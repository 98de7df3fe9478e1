"""
Output Agents

One agent per scheduler output type. Each reads a TaskExecutionContext
(the task, the project, current outputs and dependency results) and
returns an ExecutionResult.

- scene-json runs the scene orchestrator and publishes the final elements
  as the result payload for dependents
- openscad sizes its model from the scene (dependency payload first, then
  the project's current scene) and falls back to a deterministic source
- bom keeps only the first Markdown table of the response
- the remaining text outputs share one prompt-per-output agent

``execute_agent_plan`` wires these agents into a TaskGraphRunner.
``recover`` is the runner's failure hook: a failed scene task still yields
a fallback scene, any other failed task keeps its current content.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, List, Optional, Type, Union
import logging
import math

from scene import (
    Kind,
    SceneElement,
    beautify_scene,
    build_fallback,
    compute_bounds,
    dump_scene,
    fallback_openscad,
    infer_kind_from_text,
    normalize_colors,
    parse_scene_elements,
    scene_to_dicts,
    strip_code_fences,
)

from taskgraph import (
    ExecutionOutcome,
    ExecutionResult,
    OutputType,
    Plan,
    ProjectContext,
    TaskExecutionContext,
    TaskGraphRunner,
    keep_current_content,
)

from .agents import ModelInvoker
from .bom import normalize_bom_markdown
from .orchestrator import OrchestratorOptions, orchestrate_scene_generation
from .prompts import (
    BOM_PROMPT,
    OPENSCAD_PROMPT,
    TEXT_OUTPUT_PROMPTS,
    UPDATE_SUFFIX,
    render,
)

logger = logging.getLogger(__name__)


NOT_GENERATED = "Not generated"


def _project_brief(ctx: TaskExecutionContext) -> str:
    """Project description plus known components and features."""
    lines = [ctx.project.project_description]
    if ctx.project.components:
        lines.append(f"Components: {', '.join(ctx.project.components)}")
    if ctx.project.features:
        lines.append(f"Features: {', '.join(ctx.project.features)}")
    return "\n".join(lines)


def _with_instruction(prompt: str, ctx: TaskExecutionContext) -> str:
    """Append the update section, or just the instruction when regenerating."""
    instruction = ctx.task.instruction or "(none)"
    if not ctx.regenerate:
        return prompt + "\n" + render(UPDATE_SUFFIX, current=ctx.current, instruction=instruction)
    return f"{prompt}\n\nUser instruction: {instruction}"


def _verb(ctx: TaskExecutionContext) -> str:
    return "Generated" if ctx.regenerate else "Updated"


def scene_from_context(ctx: TaskExecutionContext) -> Optional[List[SceneElement]]:
    """
    Scene elements available to a task.

    A scene-json dependency's payload wins; otherwise the current scene-json
    output is parsed and its colours normalized.
    """
    payload = ctx.dependency_payload(OutputType.SCENE_JSON)
    if payload:
        return list(payload)
    parsed = parse_scene_elements(ctx.outputs.get(OutputType.SCENE_JSON.value))
    return normalize_colors(parsed) if parsed else None


class OutputAgent(ABC):
    """
    Base class for scheduler output agents.

    Parameters
    ----------
    llm_client : ModelInvoker, optional
        Model collaborator; agents without one produce fallback content
        where they have it
    """

    output_type: OutputType
    label: str = ""

    def __init__(self, llm_client: Optional[ModelInvoker] = None):
        self.llm_client = llm_client

    def _ask(self, prompt: str) -> str:
        if self.llm_client is None:
            raise RuntimeError("No model client configured")
        return self.llm_client.invoke(prompt) or ""

    @abstractmethod
    def run(self, ctx: TaskExecutionContext) -> ExecutionResult:
        """Produce this output for a task."""

    def _result(self, content: str, summary: str, payload: Any = None) -> ExecutionResult:
        return ExecutionResult(
            output_type=self.output_type,
            content=content,
            summary=summary,
            payload=payload,
        )


class SceneJsonAgent(OutputAgent):
    """Scene JSON through the full generation pipeline."""

    output_type = OutputType.SCENE_JSON
    label = "3D scene"

    def __init__(
        self,
        llm_client: Optional[ModelInvoker] = None,
        options: Optional[OrchestratorOptions] = None,
    ):
        super().__init__(llm_client)
        self.options = options

    def _description(self, ctx: TaskExecutionContext) -> str:
        description = ctx.project.project_description
        instruction = (ctx.task.instruction or "").strip()
        if instruction and instruction.lower() not in description.lower():
            description = f"{description}\nUser instruction: {instruction}"
        return description

    def run(self, ctx: TaskExecutionContext) -> ExecutionResult:
        description = self._description(ctx)
        options = self.options or OrchestratorOptions()
        if not ctx.project.image:
            options = replace(options, skip_vision=True)

        result = orchestrate_scene_generation(
            self.llm_client, description, image=ctx.project.image, options=options
        )

        base = result.scene
        if not base:
            base = parse_scene_elements(ctx.current) or []
        scene = beautify_scene(base, ctx.project.project_description, ctx.project.analysis)

        score = result.critique.score if result.critique else 0
        quality = "" if result.success else ", low confidence"
        return self._result(
            dump_scene(scene),
            f"{_verb(ctx)} {self.label} ({len(scene)} elements, score {score:g}/10{quality})",
            payload=scene,
        )


def _dimensions_hint(bounds: Optional[Dict[str, float]], kind: Kind) -> str:
    if bounds:
        w = math.ceil(bounds["width"])
        d = math.ceil(bounds["depth"])
        h = math.ceil(bounds["height"])
        return f"Derived from 3D scene bounds: ~{w}x{d}x{h}mm (W x D x H)."
    if kind == Kind.OBJECT:
        return "Default to a hand-sized object (e.g. ~200mm tall for a small plush/toy)."
    return "Auto-size based on components (typical: 80x50x30mm)."


class OpenSCADAgent(OutputAgent):
    """OpenSCAD source sized from the scene, with a deterministic fallback."""

    output_type = OutputType.OPENSCAD
    label = "OpenSCAD model"

    def run(self, ctx: TaskExecutionContext) -> ExecutionResult:
        description = ctx.project.project_description
        kind = infer_kind_from_text(description, ctx.project.analysis)
        scene = scene_from_context(ctx)
        bounds = compute_bounds(scene) if scene else None

        prompt = render(
            OPENSCAD_PROMPT,
            description=_project_brief(ctx),
            scene=scene_to_dicts(scene) if scene else "(none)",
            dimensions=_dimensions_hint(bounds, kind),
            current="",
        )
        prompt = _with_instruction(prompt, ctx)

        try:
            source = strip_code_fences(self._ask(prompt))
            if not source.strip():
                raise ValueError("No response from model")
        except Exception as e:
            logger.warning(f"OpenSCAD generation failed: {e}")
            fallback = ctx.current or fallback_openscad(description, bounds)
            return self._result(fallback, f"Used fallback OpenSCAD (error: {e})")

        return self._result(source, f"{_verb(ctx)} {self.label}")


class BOMAgent(OutputAgent):
    """Bill of materials as a single Markdown table."""

    output_type = OutputType.BOM
    label = "BOM"

    def run(self, ctx: TaskExecutionContext) -> ExecutionResult:
        prompt = render(BOM_PROMPT, description=_project_brief(ctx), current="")
        prompt = _with_instruction(prompt, ctx)
        prompt += "\nPreserve the header and separator row exactly."

        text = self._ask(prompt)
        if text.strip():
            content = normalize_bom_markdown(text)
        else:
            content = normalize_bom_markdown(ctx.current) if ctx.current else ""
        return self._result(content, f"{_verb(ctx)} {self.label}")


class TextOutputAgent(OutputAgent):
    """
    Documents produced from a single prompt.

    Empty responses keep the current content.
    """

    def run(self, ctx: TaskExecutionContext) -> ExecutionResult:
        scene = ctx.outputs.get(OutputType.SCENE_JSON.value)
        prompt = render(
            TEXT_OUTPUT_PROMPTS[self.output_type.value],
            description=_project_brief(ctx),
            bom=ctx.outputs.get(OutputType.BOM.value) or NOT_GENERATED,
            scene=scene or NOT_GENERATED,
        )
        prompt = _with_instruction(prompt, ctx)

        text = self._ask(prompt)
        content = text if text.strip() else (ctx.current or "")
        return self._result(content, f"{_verb(ctx)} {self.label}")


def _text_agent(name: str, output_type: OutputType, label: str) -> Type[TextOutputAgent]:
    return type(name, (TextOutputAgent,), {"output_type": output_type, "label": label})


AssemblyAgent = _text_agent("AssemblyAgent", OutputType.ASSEMBLY, "assembly instructions")
FirmwareAgent = _text_agent("FirmwareAgent", OutputType.FIRMWARE, "firmware")
SchematicAgent = _text_agent("SchematicAgent", OutputType.SCHEMATIC, "schematic")
SafetyAgent = _text_agent("SafetyAgent", OutputType.SAFETY, "safety review")
SustainabilityAgent = _text_agent("SustainabilityAgent", OutputType.SUSTAINABILITY, "sustainability report")
CostOptimizerAgent = _text_agent("CostOptimizerAgent", OutputType.COST_OPTIMIZATION, "cost optimization report")
DFMAgent = _text_agent("DFMAgent", OutputType.DFM, "DFM analysis")
MarketingAgent = _text_agent("MarketingAgent", OutputType.MARKETING, "marketing copy")
PatentRiskAgent = _text_agent("PatentRiskAgent", OutputType.PATENT_RISK, "patent risk assessment")


OUTPUT_AGENTS: Dict[OutputType, Type[OutputAgent]] = {
    OutputType.SCENE_JSON: SceneJsonAgent,
    OutputType.OPENSCAD: OpenSCADAgent,
    OutputType.BOM: BOMAgent,
    OutputType.ASSEMBLY: AssemblyAgent,
    OutputType.FIRMWARE: FirmwareAgent,
    OutputType.SCHEMATIC: SchematicAgent,
    OutputType.SAFETY: SafetyAgent,
    OutputType.SUSTAINABILITY: SustainabilityAgent,
    OutputType.COST_OPTIMIZATION: CostOptimizerAgent,
    OutputType.DFM: DFMAgent,
    OutputType.MARKETING: MarketingAgent,
    OutputType.PATENT_RISK: PatentRiskAgent,
}


def _check_exhaustive() -> None:
    missing = set(OutputType) - set(OUTPUT_AGENTS)
    if missing:
        raise RuntimeError(f"No output agent registered for: {sorted(t.value for t in missing)}")
    for output_type, cls in OUTPUT_AGENTS.items():
        if cls.output_type != output_type:
            raise RuntimeError(f"{cls.__name__} is registered as {output_type.value}")


_check_exhaustive()


class OutputAgentDispatcher:
    """Agent invoker for TaskGraphRunner: one agent instance per output type."""

    def __init__(self, llm_client: Optional[ModelInvoker] = None):
        self.agents = {t: cls(llm_client) for t, cls in OUTPUT_AGENTS.items()}

    def __call__(self, ctx: TaskExecutionContext) -> ExecutionResult:
        return self.agents[ctx.task.output_type].run(ctx)


def recover(ctx: TaskExecutionContext, error: Exception) -> ExecutionResult:
    """
    Failure hook for the runner.

    A scene task still produces a scene (the deterministic fallback) so
    that dependents have geometry to work with; any other task keeps its
    current content.
    """
    if ctx.task.output_type != OutputType.SCENE_JSON:
        return keep_current_content(ctx, error)

    scene = normalize_colors(build_fallback(ctx.project.project_description))
    return ExecutionResult(
        output_type=OutputType.SCENE_JSON,
        content=dump_scene(scene),
        summary=f"Generated fallback 3D scene (error: {error})",
        payload=scene,
    )


def execute_agent_plan(
    plan: Union[Plan, Dict[str, Any]],
    project_context: Union[ProjectContext, Dict[str, Any], None],
    llm_client: Optional[ModelInvoker],
    max_workers: Optional[int] = None,
) -> ExecutionOutcome:
    """
    Run a plan against a project with the output agents.

    Parameters
    ----------
    plan : Plan or dict
    project_context : ProjectContext or dict, optional
        Description, prior analysis, prior outputs and optional image
    llm_client : ModelInvoker or None
    max_workers : int, optional
        Thread pool size per round

    Returns
    -------
    ExecutionOutcome
        ``outputs`` and ``summaries`` by output type

    Raises
    ------
    PlanValidationError
        If the plan cannot be scheduled; nothing runs in that case
    """
    if isinstance(plan, dict):
        plan = Plan.from_dict(plan)
    if isinstance(project_context, dict):
        project_context = ProjectContext.from_dict(project_context)

    runner = TaskGraphRunner(
        agent_invoker=OutputAgentDispatcher(llm_client),
        on_failure=recover,
        max_workers=max_workers,
    )
    return runner.execute(plan, project_context)


__all__ = [
    "OutputAgent",
    "SceneJsonAgent",
    "OpenSCADAgent",
    "BOMAgent",
    "TextOutputAgent",
    "AssemblyAgent",
    "FirmwareAgent",
    "SchematicAgent",
    "SafetyAgent",
    "SustainabilityAgent",
    "CostOptimizerAgent",
    "DFMAgent",
    "MarketingAgent",
    "PatentRiskAgent",
    "OUTPUT_AGENTS",
    "OutputAgentDispatcher",
    "scene_from_context",
    "recover",
    "execute_agent_plan",
]
