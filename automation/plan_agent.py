"""
Plan drafting: turn a user message and a set of requested outputs into a
schedulable Plan.

The model proposes tasks; whatever it returns (or nothing, if it fails) is
passed through ``normalize_plan_for_request`` so the final plan always
covers exactly the requested outputs with valid dependencies.
"""

from typing import Optional, Sequence, Union
import logging

from taskgraph import (
    Plan,
    ProjectContext,
    RequestedOutput,
    normalize_plan_for_request,
)

from .agents import ModelInvoker
from .json_extract import ResponseParseError, extract_json_object
from .prompts import PLAN_PROMPT, render

logger = logging.getLogger(__name__)

NO_OUTPUTS = "No outputs generated yet"


def _existing_outputs(project: ProjectContext) -> str:
    available = [k for k, v in project.outputs.items() if isinstance(v, str) and v.strip()]
    return ", ".join(available) if available else NO_OUTPUTS


def draft_plan(
    message: str,
    requested_outputs: Sequence[Union[RequestedOutput, str]],
    project_context: Optional[ProjectContext] = None,
    llm_client: Optional[ModelInvoker] = None,
) -> Plan:
    """
    Draft a plan for the requested outputs.

    Parameters
    ----------
    message : str
        The user's instruction; also the default task instruction
    requested_outputs : sequence
        RequestedOutput values, e.g. ``["3d-model", "bom"]``
    project_context : ProjectContext, optional
    llm_client : ModelInvoker, optional
        Without one, or when the model fails, an empty plan is normalized

    Returns
    -------
    Plan
    """
    project = project_context or ProjectContext()
    requested = [RequestedOutput(r) for r in requested_outputs]
    names = ", ".join(r.value for r in requested)

    drafted = Plan(requested_outputs=requested, summary=f"Proposed updates: {names}")
    if llm_client is not None:
        prompt = render(
            PLAN_PROMPT,
            message=message,
            description=project.project_description,
            requested=names,
            existing=_existing_outputs(project),
        )
        try:
            drafted = Plan.from_dict(extract_json_object(llm_client.invoke(prompt)))
        except ResponseParseError as e:
            logger.warning(f"Plan response was not usable, using default plan: {e}")
        except Exception as e:
            logger.warning(f"Plan drafting failed, using default plan: {e}")

    plan = normalize_plan_for_request(drafted, requested, message)
    if not plan.summary:
        plan.summary = f"Proposed updates: {names}"
    logger.info(f"Drafted plan with {len(plan.tasks)} task(s) for {names}")
    return plan


__all__ = ["draft_plan"]
