"""
Tools: LaTeX conversions

Natural language / speech / image candidates → LaTeX, LaTeX → speakable
text, and LaTeX simplification. All LaTeX-producing tools are validated by
the structural checks in latex_validation.py.
"""
from __future__ import annotations

from mathscribe.refinement.base import ValidationOutcome
from mathscribe.tools.base import PASSED, RefinementTool, strip_code_fence
from mathscribe.tools.latex_validation import validate_latex

SPEAKABLE_FEEDBACK = "Ensure all LaTeX commands are properly converted to natural language."


class _LatexOutputTool(RefinementTool[str]):
    max_iterations = 3
    temperature = 0.2

    def process(self, raw: str) -> str:
        return strip_code_fence(raw)

    def check(self, value: str) -> ValidationOutcome:
        return validate_latex(value)


class TextToLatexTool(_LatexOutputTool):
    """Natural-language math → LaTeX."""
    task = "convert natural language mathematical expressions to accurate LaTeX"


class SpokenMathToLatexTool(_LatexOutputTool):
    """Transcribed speech → LaTeX; spoken math is often ambiguous about grouping."""
    task = (
        "convert natural language mathematical expressions to LaTeX, particularly "
        "focusing on spoken math that may contain ambiguities"
    )


class SimplifyLatexTool(_LatexOutputTool):
    task = "simplify the following LaTeX expression while preserving its mathematical meaning"


class ImageLatexCleanupTool(_LatexOutputTool):
    """Corrects a LaTeX candidate read from an image by the vision model."""
    max_iterations = 2
    task = (
        "check and correct LaTeX that was automatically extracted from an image of "
        "mathematics, fixing recognition errors while keeping the original meaning"
    )


class LatexToTextTool(RefinementTool[str]):
    """LaTeX → clear natural language suitable for text-to-speech."""
    task = (
        "convert LaTeX mathematical expressions to clear, spoken natural language "
        "suitable for text-to-speech"
    )
    max_iterations = 3
    temperature = 0.3

    def process(self, raw: str) -> str:
        return raw.strip()

    def check(self, value: str) -> ValidationOutcome:
        if not value:
            return ValidationOutcome(valid=False, feedback="The result is empty. " + SPEAKABLE_FEEDBACK)
        leftovers = [token for token in ("\\", "$") if token in value]
        if leftovers:
            return ValidationOutcome(
                valid=False,
                feedback=f"The text still contains {' and '.join(repr(t) for t in leftovers)}. "
                + SPEAKABLE_FEEDBACK,
            )
        return PASSED
