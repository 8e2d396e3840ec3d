"""
Call ledger — records token usage, latency and estimated cost per round-trip.

A ledger belongs to a single refinement call; the engine appends one
record for every request it sends, successful or not.
"""
from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import List


# ──────────────────────────────────────────────
# Pricing constants (approximate, per 1K tokens)
# ──────────────────────────────────────────────

COST_PER_1K_INPUT_TOKENS = 0.0025
COST_PER_1K_OUTPUT_TOKENS = 0.0100


@dataclass
class LLMCallRecord:
    """Record of a single LLM round-trip."""
    call_id: str
    step_name: str                         # "initial", "refinement" or "fallback"
    iteration: int
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0
    temperature: float = 0.0
    estimated_cost_usd: float = 0.0
    succeeded: bool = True
    timestamp: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class CallLedger:
    """Running ledger of the LLM calls made for one refinement."""
    calls: List[LLMCallRecord] = field(default_factory=list)

    def record(
        self,
        step_name: str,
        iteration: int,
        model: str,
        prompt: str,
        response: str,
        latency_ms: int,
        temperature: float,
        succeeded: bool = True,
    ) -> LLMCallRecord:
        input_tokens = estimate_tokens(prompt)
        output_tokens = estimate_tokens(response) if response else 0
        record = LLMCallRecord(
            call_id=str(uuid.uuid4())[:8],
            step_name=step_name,
            iteration=iteration,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=latency_ms,
            temperature=temperature,
            estimated_cost_usd=estimate_cost(input_tokens, output_tokens),
            succeeded=succeeded,
            timestamp=time.time(),
        )
        self.calls.append(record)
        return record

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def total_tokens(self) -> int:
        return sum(c.total_tokens for c in self.calls)

    @property
    def total_cost_usd(self) -> float:
        return sum(c.estimated_cost_usd for c in self.calls)

    @property
    def total_latency_ms(self) -> int:
        return sum(c.latency_ms for c in self.calls)

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "call_count": self.call_count,
            "failed_calls": sum(1 for c in self.calls if not c.succeeded),
            "total_input_tokens": sum(c.input_tokens for c in self.calls),
            "total_output_tokens": sum(c.output_tokens for c in self.calls),
            "total_tokens": self.total_tokens,
            "total_cost_usd": round(self.total_cost_usd, 6),
            "total_latency_ms": self.total_latency_ms,
            "models": sorted({c.model for c in self.calls}),
        }


def estimate_tokens(text: str) -> int:
    """
    Rough token count estimation (4 chars ≈ 1 token for English text).

    Good enough for usage reporting; use a tokenizer for exact counts.
    """
    return max(1, len(text) // 4)


def estimate_cost(input_tokens: int, output_tokens: int) -> float:
    """Estimate USD cost for a single LLM call."""
    return (
        (input_tokens / 1000) * COST_PER_1K_INPUT_TOKENS
        + (output_tokens / 1000) * COST_PER_1K_OUTPUT_TOKENS
    )
