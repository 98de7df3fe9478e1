"""
Inputs and outputs of a scheduled task.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from .plan import OutputType, Task, TaskAction

DEFAULT_PROJECT_DESCRIPTION = "Hardware project"


def build_project_description(description: Optional[str], summary: Optional[str]) -> str:
    """
    Merge the user's description with a prior analysis summary.

    When one text contains the other (case-insensitively) only the longer
    one is kept; otherwise the summary comes first followed by the user's
    notes. Returns an empty string when both are empty.
    """
    desc = description.strip() if isinstance(description, str) else ""
    summ = summary.strip() if isinstance(summary, str) else ""

    if not desc or not summ:
        return desc or summ
    if summ.lower() in desc.lower():
        return desc
    if desc.lower() in summ.lower():
        return summ
    return f"{summ}\nUser notes: {desc}"


def _is_non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


@dataclass
class ProjectContext:
    """
    The project a plan runs against.

    Attributes
    ----------
    description : str
        The user's current description
    analysis : dict, optional
        Prior analysis with ``summary``, ``identifiedComponents`` and
        ``suggestedFeatures``
    outputs : dict
        Prior content by output type value
    image : str, optional
        Sketch or photo as a data URL or base64
    """
    description: str = ""
    analysis: Optional[Dict[str, Any]] = None
    outputs: Dict[str, str] = field(default_factory=dict)
    image: Optional[str] = None

    @property
    def summary(self) -> Optional[str]:
        if not self.analysis:
            return None
        summary = self.analysis.get("summary")
        return summary if isinstance(summary, str) else None

    @property
    def project_description(self) -> str:
        """Description used in prompts; never empty."""
        return (
            build_project_description(self.description, self.summary)
            or DEFAULT_PROJECT_DESCRIPTION
        )

    def _analysis_list(self, camel: str, snake: str) -> List[str]:
        value = (self.analysis or {}).get(camel, (self.analysis or {}).get(snake))
        return [str(v) for v in value] if isinstance(value, list) else []

    @property
    def components(self) -> List[str]:
        return self._analysis_list("identifiedComponents", "identified_components")

    @property
    def features(self) -> List[str]:
        return self._analysis_list("suggestedFeatures", "suggested_features")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProjectContext":
        outputs = d.get("outputs") or {}
        analysis = d.get("analysis")
        description = d.get("description")
        image = d.get("image")
        return cls(
            description=description if isinstance(description, str) else "",
            analysis=analysis if isinstance(analysis, dict) else None,
            outputs={str(k): v for k, v in outputs.items() if isinstance(v, str)},
            image=image if isinstance(image, str) and image else None,
        )


@dataclass
class ExecutionResult:
    """
    What a task produced.

    ``payload`` is a side channel for dependents, e.g. the scene elements
    behind a scene-json result.
    """
    output_type: OutputType
    content: str
    summary: str
    payload: Any = None

    def __post_init__(self):
        self.output_type = OutputType(self.output_type)


@dataclass
class TaskExecutionContext:
    """
    Everything a task may read while it runs.

    Attributes
    ----------
    task : Task
    project : ProjectContext
    outputs : dict
        Content by output type as of the start of this task's round: the
        project's prior outputs overlaid with results of earlier rounds
    dependency_results : dict
        Results of this task's dependencies, by task id
    """
    task: Task
    project: ProjectContext
    outputs: Dict[str, str] = field(default_factory=dict)
    dependency_results: Dict[str, ExecutionResult] = field(default_factory=dict)

    @property
    def current(self) -> Optional[str]:
        """Current content for this task's output, if any."""
        value = self.outputs.get(self.task.output_type.value)
        return value if _is_non_empty(value) else None

    @property
    def regenerate(self) -> bool:
        """Regenerate when asked to or when there is nothing to update."""
        return self.task.action == TaskAction.REGENERATE or self.current is None

    def dependency_payload(self, output_type: OutputType) -> Any:
        """Payload of the first dependency that produced ``output_type``."""
        for task_id in self.task.depends_on:
            result = self.dependency_results.get(task_id)
            if result is not None and result.output_type == output_type and result.payload is not None:
                return result.payload
        return None


__all__ = [
    "DEFAULT_PROJECT_DESCRIPTION",
    "build_project_description",
    "ProjectContext",
    "ExecutionResult",
    "TaskExecutionContext",
]
