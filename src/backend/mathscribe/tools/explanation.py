"""
Tool: Educational explanation of an expression

Explanations are pitched at one of four audience levels. The result
section carries {"explanation": ..., "concepts": [...]}; non-JSON replies
are used whole as the explanation, with concepts taken from a
"Concepts:" line if present.
"""
from __future__ import annotations

import re

from mathscribe.models.schemas import ExplanationLevel, MathExplanation
from mathscribe.refinement.base import ValidationOutcome
from mathscribe.tools.base import PASSED, RefinementTool
from mathscribe.refinement.engine import RefinementEngine
from mathscribe.utils.json_extract import loads_lenient

MIN_EXPLANATION_CHARS = 80

_CONCEPTS_LINE_RE = re.compile(r"^\s*(?:key\s+)?concepts\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)


class ExplanationTool(RefinementTool[MathExplanation]):
    max_iterations = 2
    temperature = 0.4

    def __init__(self, engine: RefinementEngine, level: ExplanationLevel = ExplanationLevel.HIGH_SCHOOL):
        super().__init__(engine)
        self.level = ExplanationLevel(level)
        self.task = (
            f"explain the following mathematical expression to a {self.level.value} "
            "level student, describing what it means and how it is used. In the result "
            'section return ONLY a JSON object with the keys "explanation" (a few clear '
            'paragraphs) and "concepts" (a list of the key mathematical concepts involved)'
        )

    def process(self, raw: str) -> MathExplanation:
        data = loads_lenient(raw)
        if isinstance(data, dict) and data.get("explanation"):
            concepts = data.get("concepts") or []
            if isinstance(concepts, str):
                concepts = concepts.split(",")
            return MathExplanation(
                explanation=str(data["explanation"]).strip(),
                concepts=[str(c).strip() for c in concepts if str(c).strip()],
            )

        concepts_line = _CONCEPTS_LINE_RE.search(raw)
        concepts = []
        explanation = raw.strip()
        if concepts_line:
            concepts = [c.strip() for c in concepts_line.group(1).split(",") if c.strip()]
            explanation = _CONCEPTS_LINE_RE.sub("", raw).strip()
        return MathExplanation(explanation=explanation, concepts=concepts)

    def check(self, value: MathExplanation) -> ValidationOutcome:
        problems = []
        if len(value.explanation) < MIN_EXPLANATION_CHARS:
            problems.append(
                f"the explanation is too short (at least {MIN_EXPLANATION_CHARS} characters expected)"
            )
        if not value.concepts:
            problems.append('list the key concepts in the "concepts" field')
        if problems:
            return ValidationOutcome(valid=False, feedback="Improve the answer: " + "; ".join(problems) + ".")
        return PASSED
