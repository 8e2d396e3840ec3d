"""
Tool: Notation system conversion

Converts LaTeX into MathML, AsciiMath or plain Unicode math. Each target
has a substring check that catches the usual failure: LaTeX leaking
through, or MathML without its root element.
"""
from __future__ import annotations

from mathscribe.models.schemas import NotationTarget
from mathscribe.refinement.base import ValidationOutcome
from mathscribe.refinement.engine import RefinementEngine
from mathscribe.tools.base import PASSED, RefinementTool, strip_code_fence

TARGET_DESCRIPTIONS = {
    NotationTarget.MATHML: "presentation MathML wrapped in a single <math> element",
    NotationTarget.ASCIIMATH: "AsciiMath notation",
    NotationTarget.UNICODE: "plain Unicode text using mathematical symbols (no markup)",
}


class NotationTool(RefinementTool[str]):
    max_iterations = 2
    temperature = 0.1

    def __init__(self, engine: RefinementEngine, target: NotationTarget = NotationTarget.MATHML):
        super().__init__(engine)
        self.target = NotationTarget(target)
        self.task = (
            "convert the following LaTeX expression to "
            f"{TARGET_DESCRIPTIONS[self.target]}, preserving its exact mathematical meaning"
        )

    def process(self, raw: str) -> str:
        return strip_code_fence(raw)

    def check(self, value: str) -> ValidationOutcome:
        if not value:
            return ValidationOutcome(valid=False, feedback="The result is empty.")
        if self.target is NotationTarget.MATHML:
            if "<math" not in value or "</math>" not in value:
                return ValidationOutcome(
                    valid=False,
                    feedback="Wrap the MathML in a single <math> ... </math> element.",
                )
            return PASSED
        if "\\" in value or "$" in value:
            return ValidationOutcome(
                valid=False,
                feedback=f"Remove all LaTeX commands and dollar signs; use {self.target.value} only.",
            )
        return PASSED
