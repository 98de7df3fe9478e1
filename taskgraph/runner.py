"""
Round-based task scheduler.

The runner validates the whole plan before anything executes, then runs
one round at a time: every task of a round is submitted to a thread pool
and the round settles completely before the next one starts. A task that
raises does not affect its siblings, and it still counts as completed, so
its dependents run in the next round against whatever recovery result it
produced.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging

from .context import ExecutionResult, ProjectContext, TaskExecutionContext
from .graph import execution_rounds
from .plan import (
    OutputType,
    Plan,
    PlanRule,
    PlanValidationError,
    Task,
    expand_requested_outputs,
)

logger = logging.getLogger(__name__)


AgentInvoker = Callable[[TaskExecutionContext], ExecutionResult]
FailureHandler = Callable[[TaskExecutionContext, Exception], ExecutionResult]


def keep_current_content(ctx: TaskExecutionContext, error: Exception) -> ExecutionResult:
    """Default failure handling: leave the output as it was."""
    return ExecutionResult(
        output_type=ctx.task.output_type,
        content=ctx.current or "",
        summary=f"Failed to update ({error})",
    )


def _line_count(text: str) -> int:
    return len(text.split("\n"))


def delta_summary(summary: str, before: Optional[str], after: str) -> str:
    """Append a line-count note comparing the previous and new content."""
    if before:
        return f"{summary} ({_line_count(before)}→{_line_count(after)} lines)"
    return f"{summary} ({_line_count(after)} lines)"


@dataclass
class ExecutionOutcome:
    """
    Merged result of a plan run.

    Attributes
    ----------
    outputs : dict
        New content by output type value; only requested outputs with
        non-empty content
    summaries : dict
        Human summary by output type value, with a line-count note
    results : dict
        Raw result of every executed task, by task id
    failed : list of str
        Ids of tasks whose agent raised
    """
    outputs: Dict[str, str] = field(default_factory=dict)
    summaries: Dict[str, str] = field(default_factory=dict)
    results: Dict[str, ExecutionResult] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {"outputs": dict(self.outputs), "summaries": dict(self.summaries)}


class TaskGraphRunner:
    """
    Execute a plan's tasks in dependency rounds.

    Parameters
    ----------
    agent_invoker : callable
        ``agent_invoker(ctx) -> ExecutionResult`` runs one task
    on_failure : callable, optional
        ``on_failure(ctx, error) -> ExecutionResult`` recovers from a task
        that raised. Defaults to keeping the current content.
    max_workers : int, optional
        Thread pool size per round. Defaults to the size of the round.
    """

    def __init__(
        self,
        agent_invoker: AgentInvoker,
        on_failure: Optional[FailureHandler] = None,
        max_workers: Optional[int] = None,
    ):
        self.agent_invoker = agent_invoker
        self.on_failure = on_failure or keep_current_content
        self.max_workers = max_workers

    def _allowed_outputs(self, plan: Plan) -> List[OutputType]:
        if plan.requested_outputs:
            return expand_requested_outputs(plan.requested_outputs)
        # No request recorded: every task's own output is allowed
        return list(dict.fromkeys(t.output_type for t in plan.tasks))

    def prepare(self, plan: Plan) -> List[List[Task]]:
        """
        Filter the plan to its requested outputs and split it into rounds.

        Raises
        ------
        PlanValidationError
            If nothing is left to run or the task graph is invalid
        """
        allowed = set(self._allowed_outputs(plan))
        tasks = [t for t in plan.tasks if t.output_type in allowed]
        if not tasks:
            raise PlanValidationError(
                PlanRule.NO_EXECUTABLE_TASKS,
                "Plan has no tasks for the requested outputs",
            )
        return execution_rounds(tasks)

    def _run_task(self, ctx: TaskExecutionContext) -> ExecutionResult:
        return self.agent_invoker(ctx)

    def _run_round(
        self,
        tasks: List[Task],
        project: ProjectContext,
        outputs: Dict[str, str],
        results: Dict[str, ExecutionResult],
        failed: List[str],
    ) -> None:
        snapshot = dict(outputs)
        contexts = [
            TaskExecutionContext(
                task=task,
                project=project,
                outputs=snapshot,
                dependency_results={dep: results[dep] for dep in task.depends_on},
            )
            for task in tasks
        ]

        workers = self.max_workers or len(contexts)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._run_task, ctx) for ctx in contexts]

            # Every future settles before the pool exits
            for ctx, future in zip(contexts, futures):
                try:
                    result = future.result()
                except Exception as e:
                    logger.warning(
                        f"Task {ctx.task.id} ({ctx.task.output_type.value}) failed: {e}",
                        exc_info=True,
                    )
                    failed.append(ctx.task.id)
                    result = self.on_failure(ctx, e)

                results[ctx.task.id] = result
                outputs[result.output_type.value] = result.content

    def execute(self, plan: Plan, project: Optional[ProjectContext] = None) -> ExecutionOutcome:
        """
        Run every task of the plan.

        Parameters
        ----------
        plan : Plan
        project : ProjectContext, optional
            Description, prior analysis and prior outputs

        Returns
        -------
        ExecutionOutcome

        Raises
        ------
        PlanValidationError
            Before any task runs, if the plan cannot be scheduled
        """
        project = project or ProjectContext()
        rounds = self.prepare(plan)
        allowed = set(self._allowed_outputs(plan))

        outputs = dict(project.outputs)
        results: Dict[str, ExecutionResult] = {}
        failed: List[str] = []

        for index, tasks in enumerate(rounds, start=1):
            logger.info(f"Round {index}/{len(rounds)}: {', '.join(t.id for t in tasks)}")
            self._run_round(tasks, project, outputs, results, failed)

        outcome = ExecutionOutcome(results=results, failed=failed)
        for task in (t for round_ in rounds for t in round_):
            result = results[task.id]
            if result.output_type not in allowed:
                continue
            if not isinstance(result.content, str) or not result.content.strip():
                continue
            key = result.output_type.value
            outcome.outputs[key] = result.content
            outcome.summaries[key] = delta_summary(
                result.summary, project.outputs.get(key), result.content
            )

        logger.info(
            f"Executed {len(results)} task(s), {len(failed)} failed, "
            f"{len(outcome.outputs)} output(s) updated"
        )
        return outcome


__all__ = [
    "AgentInvoker",
    "FailureHandler",
    "keep_current_content",
    "delta_summary",
    "ExecutionOutcome",
    "TaskGraphRunner",
]
