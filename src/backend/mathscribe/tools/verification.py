"""
Tool: Mathematical correctness check

Asks for an explicit verdict on a LaTeX expression. Any unambiguous verdict
is accepted; a rambling answer is sent back for an explicit one.
"""
from __future__ import annotations

from mathscribe.refinement.base import ValidationOutcome
from mathscribe.tools.base import PASSED, RefinementTool

CORRECT_VERDICTS = frozenset({"correct", "mathematically valid"})
INCORRECT_VERDICTS = frozenset({"incorrect", "mathematically invalid"})


class CorrectnessTool(RefinementTool[str]):
    task = (
        "verify the mathematical correctness of the following LaTeX expression. "
        "The result must be exactly one of: correct, incorrect"
    )
    max_iterations = 2
    temperature = 0.1

    def process(self, raw: str) -> str:
        return raw.strip().strip(".!\"'`").strip().lower()

    def check(self, value: str) -> ValidationOutcome:
        if value in CORRECT_VERDICTS or value in INCORRECT_VERDICTS:
            return PASSED
        return ValidationOutcome(
            valid=False,
            feedback='Please explicitly state if the expression is "correct" or "incorrect".',
        )

    @staticmethod
    def is_correct(verdict: str) -> bool:
        return verdict in CORRECT_VERDICTS
