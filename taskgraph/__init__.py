"""
Task graph scheduling for output generation.

A Plan names which outputs to (re)produce as dependency-annotated Tasks.
The runner rejects plans it cannot schedule before running anything, then
executes ready tasks round by round, concurrently within each round.

This package does not depend on how individual outputs are produced; the
caller supplies an agent invoker.
"""

from .plan import (
    AGENT_BY_OUTPUT,
    OutputType,
    Plan,
    PlanRule,
    PlanValidationError,
    RequestedOutput,
    Task,
    TaskAction,
    expand_requested_outputs,
    normalize_plan_for_request,
)
from .graph import build_dependency_graph, check_task_ids, execution_rounds
from .context import (
    ExecutionResult,
    ProjectContext,
    TaskExecutionContext,
    build_project_description,
)
from .runner import ExecutionOutcome, TaskGraphRunner, delta_summary, keep_current_content

__all__ = [
    "AGENT_BY_OUTPUT",
    "OutputType",
    "Plan",
    "PlanRule",
    "PlanValidationError",
    "RequestedOutput",
    "Task",
    "TaskAction",
    "expand_requested_outputs",
    "normalize_plan_for_request",
    "build_dependency_graph",
    "check_task_ids",
    "execution_rounds",
    "ExecutionResult",
    "ProjectContext",
    "TaskExecutionContext",
    "build_project_description",
    "ExecutionOutcome",
    "TaskGraphRunner",
    "delta_summary",
    "keep_current_content",
]
