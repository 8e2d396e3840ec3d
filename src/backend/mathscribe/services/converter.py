"""
Converter Service — the conversion pipelines behind the API and CLI.

Each method runs one or more refinement tools and wraps the I/O around
them: speech transcription before, speech synthesis after, and the vision
read for images. A fresh CallLedger per conversion reports usage.

All services share one RefinementEngine (and so one cache).
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from mathscribe.config import settings
from mathscribe.models.schemas import (
    ConversionResult,
    ExplanationLevel,
    ExplanationResult,
    NotationResult,
    NotationTarget,
    ProofResult,
    RefinementSummary,
    SolutionResult,
    VerificationResult,
)
from mathscribe.refinement.cache import RefinementCache
from mathscribe.refinement.engine import RefinementEngine
from mathscribe.refinement.ledger import CallLedger
from mathscribe.services.llm import LLMService
from mathscribe.tools.equation_solver import EquationSolverTool
from mathscribe.tools.explanation import ExplanationTool
from mathscribe.tools.image_extraction import ImageToLatexTool
from mathscribe.tools.latex_conversion import (
    LatexToTextTool,
    SimplifyLatexTool,
    SpokenMathToLatexTool,
    TextToLatexTool,
)
from mathscribe.tools.notation import NotationTool
from mathscribe.tools.proof import ProofTool
from mathscribe.tools.verification import CorrectnessTool

logger = logging.getLogger(__name__)


class ConverterService:
    """
    Usage:
        converter = ConverterService()
        result = await converter.text_to_latex("the integral of x squared")
        result.latex
    """

    def __init__(
        self,
        llm: Optional[LLMService] = None,
        engine: Optional[RefinementEngine] = None,
        cache: Optional[RefinementCache] = None,
    ):
        self.llm = llm or LLMService()
        if engine is None:
            cache = cache or RefinementCache(
                ttl_seconds=settings.cache_ttl_seconds,
                max_entries=settings.cache_max_entries,
            )
            engine = RefinementEngine(self.llm, cache=cache)
        self.engine = engine

        self.text_to_latex_tool = TextToLatexTool(engine)
        self.spoken_math_tool = SpokenMathToLatexTool(engine)
        self.latex_to_text_tool = LatexToTextTool(engine)
        self.simplify_tool = SimplifyLatexTool(engine)
        self.correctness_tool = CorrectnessTool(engine)
        self.solver_tool = EquationSolverTool(engine)
        self.proof_tool = ProofTool(engine)
        self.image_tool = ImageToLatexTool(engine, self.llm)

    @property
    def cache(self) -> Optional[RefinementCache]:
        return self.engine.cache

    # ──────────────────────────────────────────────
    # Text / LaTeX
    # ──────────────────────────────────────────────

    async def text_to_latex(self, text: str, **overrides: Any) -> ConversionResult:
        ledger = CallLedger()
        result = await self.text_to_latex_tool.run(text, ledger=ledger, **overrides)
        return _conversion(text=text, latex=result.final_result, result=result, ledger=ledger)

    async def latex_to_text(self, latex: str, **overrides: Any) -> ConversionResult:
        ledger = CallLedger()
        result = await self.latex_to_text_tool.run(latex, ledger=ledger, **overrides)
        return _conversion(text=result.final_result, latex=latex, result=result, ledger=ledger)

    async def simplify_latex(self, latex: str, **overrides: Any) -> ConversionResult:
        ledger = CallLedger()
        result = await self.simplify_tool.run(latex, ledger=ledger, **overrides)
        return _conversion(latex=result.final_result, result=result, ledger=ledger)

    async def verify_latex(self, latex: str, **overrides: Any) -> VerificationResult:
        ledger = CallLedger()
        result = await self.correctness_tool.run(latex, ledger=ledger, **overrides)
        return VerificationResult(
            latex=latex,
            correct=CorrectnessTool.is_correct(result.final_result),
            verdict=result.final_result,
            refinement=RefinementSummary.from_result(result),
            usage=ledger.to_dict(),
        )

    # ──────────────────────────────────────────────
    # Speech / image
    # ──────────────────────────────────────────────

    async def speech_to_latex(
        self, audio: bytes, filename: str = "audio.webm", **overrides: Any
    ) -> ConversionResult:
        # Transcription is a single call; only the LaTeX step is refined
        transcribed = await self.llm.transcribe(audio, filename)
        logger.info(f"Transcribed {len(audio)} bytes of audio to {len(transcribed)} chars")

        ledger = CallLedger()
        result = await self.spoken_math_tool.run(transcribed, ledger=ledger, **overrides)
        return _conversion(text=transcribed, latex=result.final_result, result=result, ledger=ledger)

    async def image_to_latex(
        self, image: bytes | str, mime_type: str = "image/png", **overrides: Any
    ) -> ConversionResult:
        ledger = CallLedger()
        result = await self.image_tool.run(image, mime_type=mime_type, ledger=ledger, **overrides)
        return _conversion(latex=result.final_result, result=result, ledger=ledger)

    async def latex_to_speech(self, latex: str, **overrides: Any) -> ConversionResult:
        conversion = await self.latex_to_text(latex, **overrides)
        conversion.audio_base64 = await self._speak(conversion.text)
        return conversion

    async def image_to_speech(
        self, image: bytes | str, mime_type: str = "image/png", **overrides: Any
    ) -> ConversionResult:
        extracted = await self.image_to_latex(image, mime_type=mime_type, **overrides)
        spoken = await self.latex_to_speech(extracted.latex, **overrides)
        spoken.usage = _merge_usage(extracted.usage, spoken.usage)
        return spoken

    # ──────────────────────────────────────────────
    # Structured tools
    # ──────────────────────────────────────────────

    async def solve_equation(
        self, equation: str, with_audio: bool = True, **overrides: Any
    ) -> SolutionResult:
        ledger = CallLedger()
        result = await self.solver_tool.run(equation, ledger=ledger, **overrides)
        solution = result.final_result
        audio = await self._speak(". ".join(solution.steps)) if with_audio and solution.steps else None
        return SolutionResult(
            latex=solution.latex,
            steps=solution.steps,
            audio_base64=audio,
            refinement=RefinementSummary.from_result(result),
            usage=ledger.to_dict(),
        )

    async def explain_expression(
        self,
        expression: str,
        level: ExplanationLevel = ExplanationLevel.HIGH_SCHOOL,
        with_audio: bool = True,
        **overrides: Any,
    ) -> ExplanationResult:
        ledger = CallLedger()
        tool = ExplanationTool(self.engine, level)
        result = await tool.run(expression, ledger=ledger, **overrides)
        explanation = result.final_result
        audio = await self._speak(explanation.explanation) if with_audio and explanation.explanation else None
        return ExplanationResult(
            explanation=explanation.explanation,
            concepts=explanation.concepts,
            level=tool.level,
            audio_base64=audio,
            refinement=RefinementSummary.from_result(result),
            usage=ledger.to_dict(),
        )

    async def prove(self, statement: str, **overrides: Any) -> ProofResult:
        ledger = CallLedger()
        result = await self.proof_tool.run(statement, ledger=ledger, **overrides)
        return ProofResult(
            statement=statement,
            proof=result.final_result,
            refinement=RefinementSummary.from_result(result),
            usage=ledger.to_dict(),
        )

    async def convert_notation(
        self, latex: str, target: NotationTarget = NotationTarget.MATHML, **overrides: Any
    ) -> NotationResult:
        ledger = CallLedger()
        tool = NotationTool(self.engine, target)
        result = await tool.run(latex, ledger=ledger, **overrides)
        return NotationResult(
            latex=latex,
            target=tool.target,
            output=result.final_result,
            refinement=RefinementSummary.from_result(result),
            usage=ledger.to_dict(),
        )

    async def _speak(self, text: str) -> str:
        audio = await self.llm.text_to_speech(text)
        return base64.b64encode(audio).decode("ascii")


def _conversion(
    result: Any,
    ledger: CallLedger,
    text: str = "",
    latex: str = "",
) -> ConversionResult:
    return ConversionResult(
        text=text,
        latex=latex,
        reasoning=result.reasoning,
        refinement=RefinementSummary.from_result(result),
        usage=ledger.to_dict(),
    )


def _merge_usage(first: dict, second: dict) -> dict:
    merged = dict(second)
    for key in ("call_count", "failed_calls", "total_input_tokens", "total_output_tokens",
                "total_tokens", "total_latency_ms"):
        merged[key] = first.get(key, 0) + second.get(key, 0)
    merged["total_cost_usd"] = round(first.get("total_cost_usd", 0.0) + second.get("total_cost_usd", 0.0), 6)
    merged["models"] = sorted(set(first.get("models", [])) | set(second.get("models", [])))
    return merged
