"""
Tool: Proof writing

Only a length heuristic is applied; correctness of the argument is left
to the model's own reasoning and the confidence gate.
"""
from __future__ import annotations

from mathscribe.refinement.base import ValidationOutcome
from mathscribe.tools.base import PASSED, RefinementTool, strip_code_fence

MIN_PROOF_CHARS = 200
MIN_PROOF_LINES = 3


class ProofTool(RefinementTool[str]):
    task = (
        "write a rigorous, step-by-step proof of the following mathematical statement, "
        "stating each step on its own line and justifying it, using LaTeX for formulas"
    )
    max_iterations = 3
    temperature = 0.3

    def process(self, raw: str) -> str:
        return strip_code_fence(raw)

    def check(self, value: str) -> ValidationOutcome:
        lines = [line for line in value.splitlines() if line.strip()]
        if len(value) < MIN_PROOF_CHARS or len(lines) < MIN_PROOF_LINES:
            return ValidationOutcome(
                valid=False,
                feedback=(
                    "The proof is too brief. Give a complete argument with at least "
                    f"{MIN_PROOF_LINES} justified steps, each on its own line."
                ),
            )
        return PASSED
