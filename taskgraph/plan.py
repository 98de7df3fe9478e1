"""
Plan and task model for the output scheduler.

A Plan lists the outputs a request wants (re)produced as Tasks. Each task
names the output type it writes, whether it updates the current content or
regenerates it, the instruction to follow, and the ids of tasks it must
wait for.

OUTPUT TYPES
------------
scene-json, openscad, bom, assembly, firmware, schematic, safety,
sustainability, cost-optimization, dfm, marketing, patent-risk

Requested outputs use the same names, except that ``3d-model`` stands for
the scene-json + openscad pair.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Sequence, Union
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class OutputType(str, Enum):
    """Output a task writes. Each task in a plan writes a distinct one."""
    SCENE_JSON = "scene-json"
    OPENSCAD = "openscad"
    BOM = "bom"
    ASSEMBLY = "assembly"
    FIRMWARE = "firmware"
    SCHEMATIC = "schematic"
    SAFETY = "safety"
    SUSTAINABILITY = "sustainability"
    COST_OPTIMIZATION = "cost-optimization"
    DFM = "dfm"
    MARKETING = "marketing"
    PATENT_RISK = "patent-risk"


class RequestedOutput(str, Enum):
    """Outputs a user can ask for."""
    MODEL_3D = "3d-model"
    BOM = "bom"
    ASSEMBLY = "assembly"
    FIRMWARE = "firmware"
    SCHEMATIC = "schematic"
    SAFETY = "safety"
    SUSTAINABILITY = "sustainability"
    COST_OPTIMIZATION = "cost-optimization"
    DFM = "dfm"
    MARKETING = "marketing"
    PATENT_RISK = "patent-risk"


class TaskAction(str, Enum):
    UPDATE = "update"
    REGENERATE = "regenerate"


class PlanRule(str, Enum):
    """Plan rules whose violation rejects the whole plan."""
    DUPLICATE_ID = "duplicate_id"
    SELF_DEPENDENCY = "self_dependency"
    UNKNOWN_DEPENDENCY = "unknown_dependency"
    CYCLIC_DEPENDENCY = "cyclic_dependency"
    NO_EXECUTABLE_TASKS = "no_executable_tasks"


class PlanValidationError(Exception):
    """
    A plan that cannot be scheduled.

    Raised before any task executes.

    Attributes
    ----------
    rule : PlanRule
        The violated rule
    task_ids : list of str
        Offending task id(s), if any
    """

    def __init__(self, rule: PlanRule, message: str, task_ids: Optional[Sequence[str]] = None):
        self.rule = PlanRule(rule)
        self.task_ids = list(task_ids or [])
        super().__init__(f"{self.rule.value}: {message}")


AGENT_BY_OUTPUT: Dict[OutputType, str] = {
    OutputType.SCENE_JSON: "SceneJsonAgent",
    OutputType.OPENSCAD: "OpenSCADAgent",
    OutputType.BOM: "BOMAgent",
    OutputType.ASSEMBLY: "AssemblyAgent",
    OutputType.FIRMWARE: "FirmwareAgent",
    OutputType.SCHEMATIC: "SchematicAgent",
    OutputType.SAFETY: "SafetyAgent",
    OutputType.SUSTAINABILITY: "SustainabilityAgent",
    OutputType.COST_OPTIMIZATION: "CostOptimizerAgent",
    OutputType.DFM: "DFMAgent",
    OutputType.MARKETING: "MarketingAgent",
    OutputType.PATENT_RISK: "PatentRiskAgent",
}


def _output_type(value: Any) -> Optional[OutputType]:
    try:
        return OutputType(value)
    except ValueError:
        return None


def _requested_output(value: Any) -> Optional[RequestedOutput]:
    try:
        return RequestedOutput(value)
    except ValueError:
        return None


@dataclass
class Task:
    """
    One unit of scheduled work.

    Attributes
    ----------
    id : str
        Unique within its plan
    agent : str
        Agent identifier, informational
    output_type : OutputType
        Output this task writes
    action : TaskAction
        Update the current content or regenerate it
    instruction : str
        What the user asked for
    depends_on : list of str
        Ids of tasks that must complete first
    """
    id: str
    output_type: OutputType
    agent: str = ""
    action: TaskAction = TaskAction.UPDATE
    instruction: str = ""
    depends_on: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.output_type = OutputType(self.output_type)
        self.action = TaskAction(self.action)
        if not self.agent:
            self.agent = AGENT_BY_OUTPUT[self.output_type]

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "agent": self.agent,
            "outputType": self.output_type.value,
            "action": self.action.value,
            "instruction": self.instruction,
        }
        if self.depends_on:
            d["dependsOn"] = list(self.depends_on)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Task":
        """
        Build a task from its JSON form (camelCase or snake_case keys).

        Raises
        ------
        ValueError
            If the id is missing or the output type is unknown
        """
        task_id = d.get("id")
        if not isinstance(task_id, str) or not task_id.strip():
            raise ValueError(f"Task has no id: {d!r}")

        raw_type = d.get("outputType", d.get("output_type"))
        output_type = _output_type(raw_type)
        if output_type is None:
            raise ValueError(f"Task {task_id} has unknown output type {raw_type!r}")

        action = d.get("action")
        depends_on = d.get("dependsOn", d.get("depends_on")) or []
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        instruction = d.get("instruction")
        agent = d.get("agent")

        return cls(
            id=task_id.strip(),
            output_type=output_type,
            agent=agent if isinstance(agent, str) else "",
            action=TaskAction.REGENERATE if action == TaskAction.REGENERATE.value else TaskAction.UPDATE,
            instruction=instruction if isinstance(instruction, str) else "",
            depends_on=[str(dep) for dep in depends_on],
        )


@dataclass
class Plan:
    """An ordered task list for a set of requested outputs."""
    tasks: List[Task] = field(default_factory=list)
    requested_outputs: List[RequestedOutput] = field(default_factory=list)
    version: int = 1
    summary: Optional[str] = None
    questions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "version": self.version,
            "requestedOutputs": [r.value for r in self.requested_outputs],
            "tasks": [t.to_dict() for t in self.tasks],
        }
        if self.summary:
            d["summary"] = self.summary
        if self.questions:
            d["questions"] = list(self.questions)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Plan":
        """
        Build a plan from its JSON form.

        Tasks that cannot be read (missing id, unknown output type) and
        unknown requested outputs are skipped with a warning.
        """
        tasks = []
        for raw in d.get("tasks") or []:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping non-object task entry: {raw!r}")
                continue
            try:
                tasks.append(Task.from_dict(raw))
            except ValueError as e:
                logger.warning(f"Skipping task: {e}")

        requested = []
        for raw in d.get("requestedOutputs", d.get("requested_outputs")) or []:
            out = _requested_output(raw)
            if out is None:
                logger.warning(f"Ignoring unknown requested output {raw!r}")
            elif out not in requested:
                requested.append(out)

        version = d.get("version")
        summary = d.get("summary")
        questions = d.get("questions")
        return cls(
            tasks=tasks,
            requested_outputs=requested,
            version=version if isinstance(version, int) and version > 0 else 1,
            summary=summary if isinstance(summary, str) else None,
            questions=[str(q) for q in questions] if isinstance(questions, list) else [],
        )


def expand_requested_outputs(requested: Sequence[Union[RequestedOutput, str]]) -> List[OutputType]:
    """
    Output types implied by a request, in request order.

    ``3d-model`` expands to scene-json followed by openscad.
    """
    expanded: List[OutputType] = []
    for raw in requested:
        out = RequestedOutput(raw)
        if out == RequestedOutput.MODEL_3D:
            types = [OutputType.SCENE_JSON, OutputType.OPENSCAD]
        else:
            types = [OutputType(out.value)]
        for t in types:
            if t not in expanded:
                expanded.append(t)
    return expanded


def normalize_plan_for_request(
    plan: Plan,
    requested: Sequence[Union[RequestedOutput, str]],
    message: str,
) -> Plan:
    """
    Rebuild a drafted plan so it covers exactly the requested outputs.

    - tasks for outputs that were not requested are dropped; the first task
      per output type supplies the action and instruction
    - ids are renumbered ``t1..tn`` in request order
    - a 3d-model request always yields a scene-json task followed by an
      openscad task that depends on it
    - assembly depends on bom when bom is requested earlier
    - missing instructions default to the user message, missing tasks to
      action ``update``
    """
    requested_outputs = []
    for raw in requested:
        out = RequestedOutput(raw)
        if out not in requested_outputs:
            requested_outputs.append(out)
    allowed = set(expand_requested_outputs(requested_outputs))

    existing: Dict[OutputType, Task] = {}
    for task in plan.tasks:
        if task.output_type in allowed and task.output_type not in existing:
            existing[task.output_type] = task

    tasks: List[Task] = []

    def add(output_type: OutputType, depends_on: Optional[List[str]] = None) -> str:
        source = existing.get(output_type)
        task_id = f"t{len(tasks) + 1}"
        tasks.append(Task(
            id=task_id,
            output_type=output_type,
            action=source.action if source else TaskAction.UPDATE,
            instruction=(source.instruction if source else "") or message,
            depends_on=depends_on or [],
        ))
        return task_id

    bom_id = None
    for out in requested_outputs:
        if out == RequestedOutput.MODEL_3D:
            scene_id = add(OutputType.SCENE_JSON)
            add(OutputType.OPENSCAD, [scene_id])
            continue

        output_type = OutputType(out.value)
        depends_on = [bom_id] if output_type == OutputType.ASSEMBLY and bom_id else None
        task_id = add(output_type, depends_on)
        if output_type == OutputType.BOM:
            bom_id = task_id

    return Plan(
        tasks=tasks,
        requested_outputs=requested_outputs,
        version=plan.version or 1,
        summary=plan.summary,
        questions=list(plan.questions),
    )


__all__ = [
    "OutputType",
    "RequestedOutput",
    "TaskAction",
    "PlanRule",
    "PlanValidationError",
    "AGENT_BY_OUTPUT",
    "Task",
    "Plan",
    "expand_requested_outputs",
    "normalize_plan_for_request",
]
