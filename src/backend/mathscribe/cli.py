"""
Run a single conversion from the command line.

Usage:
    python -m mathscribe.cli text-to-latex "the square root of x plus one"
    python -m mathscribe.cli latex-to-text "\\frac{a}{b}"
    python -m mathscribe.cli explain "e^{i\\pi} + 1 = 0" --level undergraduate
    python -m mathscribe.cli notation "x^2" --target mathml --max-iterations 3
    python -m mathscribe.cli solve "2x + 3 = 7" --no-cache --verbose

Prints the result as JSON.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from mathscribe.config import settings
from mathscribe.models.schemas import ExplanationLevel, NotationTarget
from mathscribe.services.converter import ConverterService

logger = logging.getLogger(__name__)

COMMANDS = [
    "text-to-latex",
    "latex-to-text",
    "simplify",
    "verify",
    "solve",
    "explain",
    "prove",
    "notation",
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mathscribe",
        description="Math notation conversion with iterative accuracy refinement",
    )
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("input", help="Text, LaTeX, equation or statement to process")
    parser.add_argument("--max-iterations", type=int, default=None,
                        help="Maximum request/response round-trips")
    parser.add_argument("--model", default=None, help=f"Primary model (default {settings.primary_model})")
    parser.add_argument("--temperature", type=float, default=None)
    parser.add_argument("--timeout-ms", type=int, default=None)
    parser.add_argument("--no-cache", action="store_true", help="Bypass the result cache")
    parser.add_argument("--verbose", action="store_true", help="Log every refinement round-trip")
    parser.add_argument("--level", choices=[lvl.value for lvl in ExplanationLevel],
                        default=ExplanationLevel.HIGH_SCHOOL.value)
    parser.add_argument("--target", choices=[t.value for t in NotationTarget],
                        default=NotationTarget.MATHML.value)
    return parser


def option_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        "max_iterations": args.max_iterations,
        "model": args.model,
        "temperature": args.temperature,
        "timeout_ms": args.timeout_ms,
    }
    if args.no_cache:
        overrides["use_cache"] = False
    if args.verbose:
        overrides["verbose"] = True
    return overrides


async def run_command(converter: ConverterService, args: argparse.Namespace):
    overrides = option_overrides(args)
    if args.command == "text-to-latex":
        return await converter.text_to_latex(args.input, **overrides)
    if args.command == "latex-to-text":
        return await converter.latex_to_text(args.input, **overrides)
    if args.command == "simplify":
        return await converter.simplify_latex(args.input, **overrides)
    if args.command == "verify":
        return await converter.verify_latex(args.input, **overrides)
    if args.command == "solve":
        return await converter.solve_equation(args.input, with_audio=False, **overrides)
    if args.command == "explain":
        return await converter.explain_expression(
            args.input, ExplanationLevel(args.level), with_audio=False, **overrides
        )
    if args.command == "prove":
        return await converter.prove(args.input, **overrides)
    return await converter.convert_notation(args.input, NotationTarget(args.target), **overrides)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else settings.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        result = asyncio.run(run_command(ConverterService(), args))
    except Exception as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        print("Conversion failed, please retry.", file=sys.stderr)
        return 1

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
