"""
Base class for refinement tools.

A tool is both the Processor and the Validator the engine needs. Subclasses
implement `process` and `check`; `validate` wraps `check` so a bug in a
domain check shows up as an invalid attempt rather than a crashed request.
"""
from __future__ import annotations

import logging
from typing import Any, Generic, Optional

from mathscribe.refinement.base import RefinementOptions, RefinementResult, T, ValidationOutcome
from mathscribe.refinement.engine import RefinementEngine
from mathscribe.refinement.ledger import CallLedger

logger = logging.getLogger(__name__)

# Outcome for a result that passes every check. Failing outcomes carry no
# confidence, so the engine keeps the previous round's value.
PASSED = ValidationOutcome(valid=True, confidence=1.0)


class RefinementTool(Generic[T]):
    """
    Usage:
        tool = TextToLatexTool(engine)
        result = await tool.run("x squared plus one")
        result.final_result   # "x^2 + 1"
    """

    task: str = ""
    max_iterations: int = 2
    temperature: float = 0.2

    def __init__(self, engine: RefinementEngine):
        self.engine = engine

    def process(self, raw: str) -> T:
        raise NotImplementedError

    def check(self, value: T) -> ValidationOutcome:
        raise NotImplementedError

    def validate(self, value: T) -> ValidationOutcome:
        try:
            return self.check(value)
        except Exception as e:
            logger.exception(f"{type(self).__name__} validator raised on {value!r:.80}")
            return ValidationOutcome(valid=False, feedback=f"The result could not be checked: {e}")

    def options(self, **overrides: Any) -> RefinementOptions:
        values: dict[str, Any] = {
            "max_iterations": self.max_iterations,
            "temperature": self.temperature,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return RefinementOptions(**values)

    async def run(
        self,
        input_text: str,
        ledger: Optional[CallLedger] = None,
        **overrides: Any,
    ) -> RefinementResult[T]:
        return await self.engine.refine(
            self.task,
            input_text,
            processor=self,
            validator=self,
            options=self.options(**overrides),
            ledger=ledger,
        )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` fence (with optional language tag) and backticks."""
    s = text.strip()
    if s.startswith("```"):
        s = s[3:]
        newline = s.find("\n")
        if newline != -1 and s[:newline].strip().isalpha():
            s = s[newline + 1:]
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip().strip("`").strip()
