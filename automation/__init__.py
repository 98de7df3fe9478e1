"""
Hardware Scene Agents - Automation

This package connects the scene geometry to language models.

Main Components:
    - llm_client: Client for LLM APIs (OpenAI, Anthropic, or a local server)
    - llm_healthcheck: Credential preflight and error classification
    - json_extract: Tolerant JSON extraction from model output
    - agents: The six scene-pipeline agents (vision, planning, critique,
      refinement, visual critique, visual refinement)
    - orchestrator: Runs the agents as a bounded critique/refine state machine
    - output_agents: Scheduler tasks for every project output type
    - plan_agent: Drafts output plans from a user message
    - cli: The ``hwscene`` command

Example:
    >>> from automation import LLMClient, orchestrate_scene_generation
    >>>
    >>> client = LLMClient(provider="openai", api_key="...")
    >>> result = orchestrate_scene_generation(client, "ESP32 weather station enclosure")
    >>> result.success, len(result.scene)

    >>> # Without a client every stage uses its deterministic fallback
    >>> result = orchestrate_scene_generation(None, "A small plush teddy bear toy")
"""

from .llm_client import LLMClient, LLMConfig, LLMProvider, LLMResponse, Message
from .llm_healthcheck import (
    FatalLLMError,
    LLMError,
    MissingCredentialsError,
    ProviderMisconfiguredError,
    QuotaExhaustedError,
    TransientLLMError,
    check_llm_ready,
    classify_llm_error,
)
from .json_extract import ResponseParseError, extract_json_from_text, extract_json_object
from .bom import BomTable, extract_bom_table, normalize_bom_markdown, parse_bom_table
from .orchestrator import (
    OrchestratorOptions,
    OrchestratorResult,
    PipelineState,
    SceneOrchestrator,
    orchestrate_scene_generation,
)
from .output_agents import (
    OUTPUT_AGENTS,
    OutputAgent,
    OutputAgentDispatcher,
    execute_agent_plan,
    recover,
)
from .plan_agent import draft_plan

__version__ = "0.1.0"

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "Message",
    "LLMError",
    "MissingCredentialsError",
    "ProviderMisconfiguredError",
    "TransientLLMError",
    "FatalLLMError",
    "QuotaExhaustedError",
    "check_llm_ready",
    "classify_llm_error",
    "ResponseParseError",
    "extract_json_from_text",
    "extract_json_object",
    "BomTable",
    "extract_bom_table",
    "normalize_bom_markdown",
    "parse_bom_table",
    "OrchestratorOptions",
    "OrchestratorResult",
    "PipelineState",
    "SceneOrchestrator",
    "orchestrate_scene_generation",
    "OUTPUT_AGENTS",
    "OutputAgent",
    "OutputAgentDispatcher",
    "execute_agent_plan",
    "recover",
    "draft_plan",
]
