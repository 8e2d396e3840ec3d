"""
Tool: Step-by-step equation solver

The result section carries a JSON object {"latex": ..., "steps": [...]}.
Replies that are not valid JSON are read line by line instead: a
"latex:"/"solution:" line gives the answer and "Step N:" or "N." lines
give the steps.
"""
from __future__ import annotations

import logging
import re
from typing import List

from mathscribe.models.schemas import SolutionSteps
from mathscribe.refinement.base import ValidationOutcome
from mathscribe.tools.base import PASSED, RefinementTool, strip_code_fence
from mathscribe.tools.latex_validation import validate_latex
from mathscribe.utils.json_extract import loads_lenient

logger = logging.getLogger(__name__)

_STEP_LINE_RE = re.compile(r"^\s*(?:step\s*\d+\s*[:.)-]|\d+\s*[.)])\s*(.+)$", re.IGNORECASE)
_ANSWER_LINE_RE = re.compile(r"^\s*(?:latex|solution|answer)\s*:\s*(.+)$", re.IGNORECASE)


class EquationSolverTool(RefinementTool[SolutionSteps]):
    task = (
        "solve the following equation step by step. In the result section return ONLY "
        'a JSON object with the keys "latex" (the final solution as LaTeX) and '
        '"steps" (a list of short strings, one per solution step)'
    )
    max_iterations = 3
    temperature = 0.2

    def process(self, raw: str) -> SolutionSteps:
        data = loads_lenient(raw)
        if isinstance(data, dict):
            steps = data.get("steps") or []
            if isinstance(steps, str):
                steps = [steps]
            return SolutionSteps(
                latex=str(data.get("latex") or "").strip(),
                steps=[str(s).strip() for s in steps if str(s).strip()],
            )
        logger.debug("Solver reply was not JSON; parsing lines")
        return parse_solution_lines(raw)

    def check(self, value: SolutionSteps) -> ValidationOutcome:
        if not value.latex:
            return ValidationOutcome(
                valid=False, feedback='Provide the final solution in the "latex" field.'
            )
        latex_outcome = validate_latex(value.latex)
        if not latex_outcome.valid:
            return latex_outcome
        if not value.steps:
            return ValidationOutcome(
                valid=False, feedback='List the solution steps in the "steps" field.'
            )
        return PASSED


def parse_solution_lines(text: str) -> SolutionSteps:
    latex = ""
    steps: List[str] = []
    for line in strip_code_fence(text).splitlines():
        answer = _ANSWER_LINE_RE.match(line)
        if answer and not latex:
            latex = answer.group(1).strip().strip("$").strip()
            continue
        step = _STEP_LINE_RE.match(line)
        if step:
            steps.append(step.group(1).strip())
    return SolutionSteps(latex=latex, steps=steps)
