"""Command-line interface for group trip date matching."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any

from loguru import logger

from .matching import match_plan
from .models import InputValidationError, load_plan_from_json
from .reporting import (
    build_openai_narrative,
    build_result_payload,
    format_result_json,
    format_result_text,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INPUT_ERROR = 2

DEFAULT_TOP_N = 3
DEFAULT_MODEL = "gpt-4.1-mini"
API_KEY_ENV_VAR = "OPENAI_API_KEY"

_RENDERERS = {
    "text": format_result_text,
    "json": format_result_json,
}


def build_argument_parser() -> argparse.ArgumentParser:
    """Build the ``trip-matcher`` argument parser.

    Returns:
        argparse.ArgumentParser: Parser for the matching and narrative flags.
    """
    parser = argparse.ArgumentParser(
        prog="trip-matcher",
        description="Find date windows where a group is free for the whole trip.",
    )
    parser.add_argument("--input", required=True, help="Path to a plan JSON file.")
    parser.add_argument(
        "--top-n",
        type=int,
        default=DEFAULT_TOP_N,
        help=f"Number of date windows to list. Default: {DEFAULT_TOP_N}.",
    )
    parser.add_argument(
        "--output-format",
        choices=sorted(_RENDERERS),
        default="text",
        help="Report format. Default: text.",
    )
    parser.add_argument(
        "--skip-recommendation",
        action="store_true",
        help="Leave the prioritized recommendation out of the report.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log matching details to stderr.",
    )

    narrative = parser.add_argument_group("narrative")
    narrative.add_argument(
        "--include-openai-narrative",
        action="store_true",
        help="Append a short OpenAI-written summary of the report.",
    )
    narrative.add_argument(
        "--openai-api-key",
        default="",
        help=f"OpenAI API key. Default: the {API_KEY_ENV_VAR} env var.",
    )
    narrative.add_argument(
        "--model",
        default=DEFAULT_MODEL,
        help=f"OpenAI model for the summary. Default: {DEFAULT_MODEL}.",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    """Route log records to stderr at the requested level."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _resolve_api_key(args: argparse.Namespace) -> str:
    """Pick the narrative API key from the flag, else the environment.

    Args:
        args (argparse.Namespace): Parsed arguments.

    Returns:
        str: API key, empty when neither source sets one.
    """
    return args.openai_api_key or os.getenv(API_KEY_ENV_VAR, "")


def _print_narrative(payload: dict[str, Any], args: argparse.Namespace) -> int:
    """Request and print the narrative summary for a finished report.

    Args:
        payload (dict[str, Any]): Report payload already printed.
        args (argparse.Namespace): Parsed arguments.

    Returns:
        int: Exit code for the narrative step.
    """
    api_key = _resolve_api_key(args)
    if not api_key:
        print(
            f"Narrative needs an API key: pass --openai-api-key or set {API_KEY_ENV_VAR}.",
            file=sys.stderr,
        )
        return EXIT_INPUT_ERROR

    try:
        narrative = build_openai_narrative(payload, api_key=api_key, model=args.model)
    except RuntimeError as exc:
        print(f"Narrative failed: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print(f"\nSummary ({args.model}):\n")
    print(narrative)
    return EXIT_OK


def run_cli(argv: list[str] | None = None) -> int:
    """Load a plan, match it and print the report.

    Args:
        argv (list[str] | None): Optional argument list. Defaults to None.

    Returns:
        int: 0 on success, 2 on invalid input, 1 on any other failure.
    """
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    if args.top_n <= 0:
        parser.error("--top-n must be greater than 0.")

    configure_logging(args.verbose)

    try:
        plan = load_plan_from_json(args.input)
        payload = build_result_payload(
            plan,
            match_plan(plan),
            top_n=args.top_n,
            include_recommendation=not args.skip_recommendation,
        )
    except InputValidationError as exc:
        print(f"Input validation error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except Exception as exc:
        logger.exception("Matching failed for {}", args.input)
        print(f"Unhandled error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print(_RENDERERS[args.output_format](payload))

    if args.include_openai_narrative:
        return _print_narrative(payload, args)
    return EXIT_OK


def main() -> None:
    """Run the CLI and exit with its status code."""
    raise SystemExit(run_cli())
