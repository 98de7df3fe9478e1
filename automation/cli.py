"""
Command-Line Interface

CLI for generating 3D scenes and running output plans from the command line.

    hwscene generate "A small plush teddy bear toy" --output scene.json
    hwscene execute --plan plan.json --context project.json
    hwscene fallback "ESP32 weather station"
"""

import argparse
import base64
import json
import logging
import mimetypes
import os
import sys
from pathlib import Path
from typing import List, Optional

from scene import build_fallback, dump_scene
from taskgraph import PlanValidationError

from .llm_client import LLMClient, LLMConfig
from .llm_healthcheck import (
    PROVIDER_DEFAULT_MODELS,
    MissingCredentialsError,
    ProviderMisconfiguredError,
    check_llm_ready,
)
from .orchestrator import OrchestratorOptions, orchestrate_scene_generation
from .output_agents import execute_agent_plan
from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hwscene",
        description="Hardware scene agents - generate 3D scenes and project outputs with LLM agents",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate a 3D scene from a description")
    gen_parser.add_argument("description", type=str, help="What to build")
    gen_parser.add_argument(
        "--image", "-i",
        type=str,
        default=None,
        help="Path to a sketch or photo",
    )
    gen_parser.add_argument(
        "--max-iterations",
        type=int,
        default=2,
        help="Maximum structural refine iterations (default: 2)",
    )
    gen_parser.add_argument(
        "--min-score",
        type=float,
        default=7.0,
        help="Structural score that ends refinement early (default: 7)",
    )
    gen_parser.add_argument(
        "--max-visual-iterations",
        type=int,
        default=3,
        help="Maximum visual polish iterations (default: 3)",
    )
    gen_parser.add_argument(
        "--min-visual-score",
        type=float,
        default=8.0,
        help="Visual score that ends polishing early (default: 8)",
    )
    gen_parser.add_argument("--skip-vision", action="store_true", help="Ignore the image")
    gen_parser.add_argument("--skip-visual-polish", action="store_true", help="Skip the visual loop")
    gen_parser.add_argument(
        "--output", "-O",
        type=str,
        default=None,
        help="Write the scene JSON here instead of stdout",
    )

    # Execute command
    exec_parser = subparsers.add_parser("execute", help="Run an output plan")
    exec_parser.add_argument("--plan", "-p", type=str, required=True, help="Plan JSON file")
    exec_parser.add_argument(
        "--context", "-c",
        type=str,
        default=None,
        help="Project context JSON file (description, analysis, outputs)",
    )
    exec_parser.add_argument(
        "--output", "-O",
        type=str,
        default=None,
        help="Write outputs and summaries as JSON here instead of stdout",
    )

    # Fallback command
    fb_parser = subparsers.add_parser("fallback", help="Print the deterministic fallback scene")
    fb_parser.add_argument("description", type=str, help="What to build")

    # Common arguments for all commands
    for p in [gen_parser, exec_parser, fb_parser]:
        p.add_argument(
            "--provider",
            type=str,
            default=None,
            choices=["openai", "anthropic", "local"],
            help="LLM provider (default: $HWSCENE_PROVIDER or openai)",
        )
        p.add_argument(
            "--model",
            type=str,
            default=None,
            help="Model name (default: auto based on provider)",
        )
        p.add_argument(
            "--api-key",
            type=str,
            default=None,
            help="API key (or set via environment variable)",
        )
        p.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable verbose output",
        )

    return parser


def create_client(args) -> Optional[LLMClient]:
    """
    Build the model client, or None when it cannot be configured.

    Without a client every agent uses its deterministic fallback.
    """
    config = LLMConfig.from_env(provider=args.provider, model=args.model, api_key=args.api_key)
    if args.model is None and not os.environ.get("HWSCENE_MODEL"):
        config.model = PROVIDER_DEFAULT_MODELS.get(config.provider.lower(), config.model)

    try:
        check_llm_ready(config)
    except (MissingCredentialsError, ProviderMisconfiguredError) as e:
        print(f"Warning: {e}", file=sys.stderr)
        print("Continuing with deterministic fallbacks only.", file=sys.stderr)
        return None
    config.system_prompt = config.system_prompt or SYSTEM_PROMPT
    logger.info(f"Using {config.provider} model {config.model}")
    return LLMClient(config=config)


def load_image(path: str) -> str:
    """Read an image file as a data URL."""
    media_type = mimetypes.guess_type(path)[0] or "image/jpeg"
    data = base64.b64encode(Path(path).read_bytes()).decode("ascii")
    return f"data:{media_type};base64,{data}"


def _write(text: str, path: Optional[str]) -> None:
    if path:
        Path(path).write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {path}")
    else:
        print(text)


def run_generate(client: Optional[LLMClient], args) -> int:
    """Run the generate command."""
    options = OrchestratorOptions(
        max_iterations=args.max_iterations,
        min_acceptable_score=args.min_score,
        max_visual_iterations=args.max_visual_iterations,
        min_visual_score=args.min_visual_score,
        skip_vision=args.skip_vision,
        skip_visual_polish=args.skip_visual_polish,
    )
    image = load_image(args.image) if args.image else None

    result = orchestrate_scene_generation(client, args.description, image=image, options=options)

    for line in result.logs:
        print(line, file=sys.stderr)
    score = result.critique.score if result.critique else 0
    print(
        f"\nSuccess: {result.success} (score {score:g}, "
        f"{result.iterations} iteration(s), {result.visual_iterations} visual)",
        file=sys.stderr,
    )

    _write(dump_scene(result.scene), args.output)
    return 0


def run_execute(client: Optional[LLMClient], args) -> int:
    """Run the execute command."""
    plan = json.loads(Path(args.plan).read_text(encoding="utf-8"))
    context = None
    if args.context:
        context = json.loads(Path(args.context).read_text(encoding="utf-8"))

    try:
        outcome = execute_agent_plan(plan, context, client)
    except PlanValidationError as e:
        print(f"Plan rejected: {e}", file=sys.stderr)
        return 2

    for output_type, summary in outcome.summaries.items():
        print(f"{output_type}: {summary}", file=sys.stderr)

    _write(json.dumps(outcome.to_dict(), indent=2), args.output)
    return 0


def run_fallback(args) -> int:
    """Run the fallback command."""
    print(dump_scene(build_fallback(args.description)))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    if args.command == "fallback":
        return run_fallback(args)

    client = create_client(args)
    if args.command == "generate":
        return run_generate(client, args)
    return run_execute(client, args)


if __name__ == "__main__":
    sys.exit(main())
