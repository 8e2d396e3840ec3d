"""
Core types for the refinement loop.

The engine talks to three injected capabilities:
  - Submitter  — sends a prompt to a model and returns the raw reply text
  - Processor  — turns the parsed result text into a typed domain value
  - Validator  — judges a typed value and returns a ValidationOutcome

Processors and validators must be side-effect-free and deterministic:
the cache and the fallback path both assume that re-running them on the
same text gives the same answer.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from mathscribe.config import settings

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)
T_contra = TypeVar("T_contra", contravariant=True)

DEFAULT_CONFIDENCE = 0.5


# ──────────────────────────────────────────────
# Capabilities
# ──────────────────────────────────────────────

class Submitter(Protocol):
    async def submit(self, prompt: str, model: str, temperature: float) -> str: ...


class Processor(Protocol[T_co]):
    def process(self, raw: str) -> T_co: ...


class Validator(Protocol[T_contra]):
    def validate(self, value: T_contra) -> "ValidationOutcome": ...


# ──────────────────────────────────────────────
# Data
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class ValidationOutcome:
    """Verdict on one attempt. Confidence, when given, lies in [0, 1]."""
    valid: bool
    feedback: Optional[str] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class ParsedResponse:
    reasoning: str
    result: str
    confidence: float = DEFAULT_CONFIDENCE


class RefinementOptions(BaseModel):
    """Per-call configuration. Absent values fall back to application settings."""
    model_config = ConfigDict(frozen=True)

    max_iterations: int = Field(default_factory=lambda: settings.refine_max_iterations, ge=1)
    temperature: float = Field(default_factory=lambda: settings.refine_temperature, ge=0.0, le=2.0)
    model: str = Field(default_factory=lambda: settings.primary_model, min_length=1)
    fallback_model: Optional[str] = Field(default_factory=lambda: settings.fallback_model or None)
    timeout_ms: int = Field(default_factory=lambda: settings.refine_timeout_ms, gt=0)
    use_cache: bool = Field(default_factory=lambda: settings.refine_use_cache)
    confidence_threshold: float = Field(
        default_factory=lambda: settings.refine_confidence_threshold, ge=0.0, le=1.0
    )
    verbose: bool = False


@dataclass(frozen=True)
class RefinementResult(Generic[T]):
    """
    Outcome of one refinement call.

    `iterations` counts request/response round-trips (the first attempt
    included), never just the refinement passes.
    """
    final_result: T
    iterations: int
    reasoning: str
    confidence: float
    model_used: str
    processing_time_ms: int
    initial_result: Optional[T] = None


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class RefinementError(Exception):
    """Base class for errors surfaced by the refinement engine."""


class TransportFailure(RefinementError):
    """The submit capability raised for the given model."""

    def __init__(self, model: str, message: str = ""):
        self.model = model
        super().__init__(message or f"Request to model {model!r} failed")


class UpstreamFailure(TransportFailure):
    """Primary model failed and no usable fallback produced a result."""


class RefinementTimeout(RefinementError):
    """The wall-clock budget elapsed before the refinement finished."""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Refinement timed out after {timeout_ms}ms")
