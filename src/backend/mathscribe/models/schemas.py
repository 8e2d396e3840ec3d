"""
Domain and API models for Mathscribe.

Structured tool outputs and every request/response body of the HTTP API
are Pydantic models.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mathscribe.refinement.base import RefinementResult


# ──────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────

class ExplanationLevel(str, Enum):
    ELEMENTARY = "elementary"
    HIGH_SCHOOL = "high-school"
    UNDERGRADUATE = "undergraduate"
    GRADUATE = "graduate"


class NotationTarget(str, Enum):
    MATHML = "mathml"
    ASCIIMATH = "asciimath"
    UNICODE = "unicode"


# ──────────────────────────────────────────────
# Structured tool outputs
# ──────────────────────────────────────────────

class SolutionSteps(BaseModel):
    """Worked solution of an equation."""
    latex: str = Field("", description="Final solution in LaTeX")
    steps: List[str] = Field(default_factory=list, description="Ordered solution steps")


class MathExplanation(BaseModel):
    """Educational explanation of an expression."""
    explanation: str = Field("", description="Plain-language explanation")
    concepts: List[str] = Field(default_factory=list, description="Concepts the expression uses")


class RefinementSummary(BaseModel):
    """How a result was obtained."""
    iterations: int
    confidence: float
    model_used: str
    processing_time_ms: int
    reasoning: str = ""

    @classmethod
    def from_result(cls, result: RefinementResult) -> "RefinementSummary":
        return cls(
            iterations=result.iterations,
            confidence=result.confidence,
            model_used=result.model_used,
            processing_time_ms=result.processing_time_ms,
            reasoning=result.reasoning,
        )


# ──────────────────────────────────────────────
# API Request Models
# ──────────────────────────────────────────────

class TextInput(BaseModel):
    text: str = Field(..., min_length=1, description="Natural-language math")


class LatexInput(BaseModel):
    latex: str = Field(..., min_length=1, description="LaTeX expression")


class AudioInput(BaseModel):
    audio_base64: str = Field(..., min_length=1, description="Base64-encoded recording")
    filename: str = Field("audio.webm", description="Original file name; the extension sets the format")


class ImageInput(BaseModel):
    image: str = Field(..., min_length=1, description="Data URL or bare base64 image")
    mime_type: str = Field("image/png", description="Used when `image` is bare base64")


class EquationInput(BaseModel):
    equation: str = Field(..., min_length=1)


class ExplainInput(BaseModel):
    expression: str = Field(..., min_length=1)
    level: ExplanationLevel = ExplanationLevel.HIGH_SCHOOL


class ProofInput(BaseModel):
    statement: str = Field(..., min_length=1)


class NotationInput(BaseModel):
    latex: str = Field(..., min_length=1)
    target: NotationTarget = NotationTarget.MATHML


# ──────────────────────────────────────────────
# API Response Models
# ──────────────────────────────────────────────

class ConversionResult(BaseModel):
    """Text/LaTeX conversion, optionally with synthesized speech."""
    text: str = ""
    latex: str = ""
    audio_base64: Optional[str] = None
    reasoning: Optional[str] = None
    refinement: Optional[RefinementSummary] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class VerificationResult(BaseModel):
    latex: str
    correct: bool
    verdict: str
    refinement: Optional[RefinementSummary] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class SolutionResult(BaseModel):
    latex: str
    steps: List[str] = Field(default_factory=list)
    audio_base64: Optional[str] = None
    refinement: Optional[RefinementSummary] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class ExplanationResult(BaseModel):
    explanation: str
    concepts: List[str] = Field(default_factory=list)
    level: ExplanationLevel
    audio_base64: Optional[str] = None
    refinement: Optional[RefinementSummary] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class ProofResult(BaseModel):
    statement: str
    proof: str
    refinement: Optional[RefinementSummary] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class NotationResult(BaseModel):
    latex: str
    target: NotationTarget
    output: str
    refinement: Optional[RefinementSummary] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class CacheStats(BaseModel):
    size: int
    keys: List[str] = Field(default_factory=list)
