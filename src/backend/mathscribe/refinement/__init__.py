"""
Iterative-accuracy loop: prompt building, reply parsing, result caching
and the refinement engine that ties them together.
"""
from mathscribe.refinement.base import (
    ParsedResponse,
    Processor,
    RefinementError,
    RefinementOptions,
    RefinementResult,
    RefinementTimeout,
    Submitter,
    TransportFailure,
    UpstreamFailure,
    ValidationOutcome,
    Validator,
)
from mathscribe.refinement.cache import CacheEntry, RefinementCache, make_cache_key
from mathscribe.refinement.engine import RefinementEngine
from mathscribe.refinement.ledger import CallLedger, LLMCallRecord
from mathscribe.refinement.parser import parse_response
from mathscribe.refinement.prompts import build_initial_prompt, build_refinement_prompt

__all__ = [
    "CacheEntry",
    "CallLedger",
    "LLMCallRecord",
    "ParsedResponse",
    "Processor",
    "RefinementCache",
    "RefinementEngine",
    "RefinementError",
    "RefinementOptions",
    "RefinementResult",
    "RefinementTimeout",
    "Submitter",
    "TransportFailure",
    "UpstreamFailure",
    "ValidationOutcome",
    "Validator",
    "build_initial_prompt",
    "build_refinement_prompt",
    "make_cache_key",
    "parse_response",
]
