"""
Dependency graph checks and execution rounds for a task list.

Tasks become graph nodes keyed by id, with an edge from each dependency to
its dependent. A round is the set of tasks whose dependencies all finished
in earlier rounds, which is exactly a topological generation of the graph.
"""

from collections import Counter
from typing import List, Sequence
import logging

import networkx as nx

from .plan import PlanRule, PlanValidationError, Task

logger = logging.getLogger(__name__)


def check_task_ids(tasks: Sequence[Task]) -> None:
    """
    Reject duplicate ids, self-dependencies and unknown dependencies.

    Raises
    ------
    PlanValidationError
        For the first violated rule, in that order
    """
    counts = Counter(t.id for t in tasks)
    duplicates = sorted(task_id for task_id, n in counts.items() if n > 1)
    if duplicates:
        raise PlanValidationError(
            PlanRule.DUPLICATE_ID,
            f"Duplicate task id(s): {', '.join(duplicates)}",
            duplicates,
        )

    known = set(counts)
    for task in tasks:
        if task.id in task.depends_on:
            raise PlanValidationError(
                PlanRule.SELF_DEPENDENCY,
                f"Task {task.id} depends on itself",
                [task.id],
            )
        unknown = [dep for dep in task.depends_on if dep not in known]
        if unknown:
            raise PlanValidationError(
                PlanRule.UNKNOWN_DEPENDENCY,
                f"Task {task.id} depends on unknown task(s): {', '.join(unknown)}",
                [task.id] + unknown,
            )


def build_dependency_graph(tasks: Sequence[Task]) -> nx.DiGraph:
    """Directed graph with an edge dependency -> dependent."""
    G = nx.DiGraph()
    for index, task in enumerate(tasks):
        G.add_node(task.id, task=task, order=index)
    for task in tasks:
        for dep in task.depends_on:
            G.add_edge(dep, task.id)
    return G


def execution_rounds(tasks: Sequence[Task]) -> List[List[Task]]:
    """
    Group tasks into rounds that can run concurrently.

    Within a round, tasks keep their plan order.

    Raises
    ------
    PlanValidationError
        If the id checks fail or the dependencies contain a cycle
    """
    check_task_ids(tasks)
    G = build_dependency_graph(tasks)

    try:
        generations = list(nx.topological_generations(G))
    except nx.NetworkXUnfeasible:
        cycle = nx.find_cycle(G)
        ids = [u for u, _ in cycle]
        raise PlanValidationError(
            PlanRule.CYCLIC_DEPENDENCY,
            f"Cyclic dependency between tasks: {' -> '.join(ids + ids[:1])}",
            ids,
        ) from None

    rounds = []
    for generation in generations:
        ordered = sorted(generation, key=lambda n: G.nodes[n]["order"])
        rounds.append([G.nodes[n]["task"] for n in ordered])

    logger.debug(f"Planned {len(rounds)} round(s) for {len(tasks)} task(s)")
    return rounds


__all__ = ["check_task_ids", "build_dependency_graph", "execution_rounds"]
