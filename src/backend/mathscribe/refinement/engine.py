"""
Refinement Engine — the propose → validate → refine loop.

One call to `refine()`:
  1. Returns a cached result if an unexpired entry exists for
     (task, input, model, temperature), re-storing it
  2. Otherwise races the refinement procedure against `timeout_ms`
  3. Sends the initial prompt, parses the tagged reply, processes and
     validates the result
  4. While the result is invalid or under the confidence threshold and
     round-trips remain, sends a refinement prompt carrying the feedback

Confidence comes from the validator: 0.5 when the first outcome reports
none, and carried over from the previous round when a later one omits it.
The model's self-reported confidence is only logged.
  5. If the primary model fails at transport level, makes one
     non-iterative attempt against the fallback model
  6. Caches and returns the result

Cancellation: on timeout the in-flight procedure task is cancelled. The
OpenAI transport honours task cancellation; for a transport that cannot
be hard-cancelled, whatever it eventually returns is dropped here and is
never cached or returned.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from mathscribe.refinement.base import (
    DEFAULT_CONFIDENCE,
    ParsedResponse,
    Processor,
    RefinementOptions,
    RefinementResult,
    RefinementTimeout,
    Submitter,
    T,
    TransportFailure,
    UpstreamFailure,
    ValidationOutcome,
    Validator,
)
from mathscribe.refinement.cache import RefinementCache, make_cache_key
from mathscribe.refinement.ledger import CallLedger
from mathscribe.refinement.parser import parse_response
from mathscribe.refinement.prompts import build_initial_prompt, build_refinement_prompt

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "The result needs improvement."
FALLBACK_MARKER = "[Fallback]"
FALLBACK_CONFIDENCE = 0.5


class RefinementEngine:
    """
    Runs refinement calls against an injected submitter and cache.

    Usage:
        engine = RefinementEngine(LLMService(), cache=RefinementCache())
        result = await engine.refine(task, text, processor, validator, options)
    """

    def __init__(
        self,
        submitter: Submitter,
        cache: Optional[RefinementCache] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.submitter = submitter
        self.cache = cache
        self._clock = clock

    async def refine(
        self,
        task: str,
        input_text: str,
        processor: Processor[T],
        validator: Validator[T],
        options: Optional[RefinementOptions] = None,
        ledger: Optional[CallLedger] = None,
    ) -> RefinementResult[T]:
        """
        Produce a validated result for `task` applied to `input_text`.

        Args:
            task: Natural-language description of what the model should do
            input_text: The payload the task is applied to
            processor: Turns the parsed result text into a typed value
            validator: Judges the typed value
            options: Per-call options (defaults from settings)
            ledger: Optional per-call ledger that receives one record per round-trip

        Raises:
            RefinementTimeout: the timeout fired before a result was ready
            UpstreamFailure: the primary and fallback models both failed
        """
        options = options or RefinementOptions()
        started = self._clock()
        key = make_cache_key(task, input_text, options.model, options.temperature)
        caching = options.use_cache and self.cache is not None

        if caching:
            entry = self.cache.get(key, task)
            if entry is not None:
                logger.info(f"Cache hit for task '{_abbreviate(task)}' on {options.model}")
                # Re-stored so the TTL counts from the last use
                self.cache.put(key, entry.result, task)
                return replace(entry.result, processing_time_ms=self._elapsed_ms(started))

        timer = asyncio.timeout(options.timeout_ms / 1000)
        try:
            async with timer:
                result = await self._run(
                    task, input_text, processor, validator, options, ledger, started
                )
        except TimeoutError as e:
            # A TimeoutError raised by a processor or validator is theirs, not ours
            if not timer.expired():
                raise
            logger.warning(
                f"Refinement of '{_abbreviate(task)}' timed out after {options.timeout_ms}ms"
            )
            raise RefinementTimeout(options.timeout_ms) from e

        if caching:
            self.cache.put(key, result, task)
        return result

    # ──────────────────────────────────────────────
    # Procedure
    # ──────────────────────────────────────────────

    async def _run(
        self,
        task: str,
        input_text: str,
        processor: Processor[T],
        validator: Validator[T],
        options: RefinementOptions,
        ledger: Optional[CallLedger],
        started: float,
    ) -> RefinementResult[T]:
        try:
            return await self._iterate(
                task, input_text, processor, validator, options, ledger, started
            )
        except TransportFailure as exc:
            fallback = options.fallback_model
            if not fallback or fallback == options.model:
                logger.error(f"Model {options.model} failed with no fallback available: {exc}")
                raise UpstreamFailure(options.model, str(exc)) from exc

            logger.warning(f"Model {options.model} failed ({exc}); falling back to {fallback}")
            try:
                return await self._fallback_attempt(
                    task, input_text, processor, options, fallback, ledger, started
                )
            except TransportFailure as fallback_exc:
                logger.error(f"Fallback model {fallback} also failed: {fallback_exc}")
                raise UpstreamFailure(fallback, str(fallback_exc)) from fallback_exc

    async def _iterate(
        self,
        task: str,
        input_text: str,
        processor: Processor[T],
        validator: Validator[T],
        options: RefinementOptions,
        ledger: Optional[CallLedger],
        started: float,
    ) -> RefinementResult[T]:
        model = options.model

        prompt = build_initial_prompt(task, input_text)
        parsed = parse_response(
            await self._submit(prompt, model, options.temperature, "initial", 1, ledger)
        )
        processed = processor.process(parsed.result)
        initial_result = processed
        validation = validator.validate(processed)
        iterations = 1
        confidence = _confidence(validation, DEFAULT_CONFIDENCE)
        reasoning = parsed.reasoning
        previous_result = parsed.result
        self._log_attempt(options, iterations, model, validation, confidence, parsed)

        while (
            not validation.valid or confidence < options.confidence_threshold
        ) and iterations < options.max_iterations:
            prompt = build_refinement_prompt(
                task,
                input_text,
                previous_result=previous_result,
                feedback=validation.feedback or DEFAULT_FEEDBACK,
                previous_reasoning=reasoning,
                previous_confidence=confidence,
            )
            parsed = parse_response(
                await self._submit(
                    prompt, model, options.temperature, "refinement", iterations + 1, ledger
                )
            )
            reasoning += (
                f"\n\nRefinement Iteration {iterations}:\n"
                f"{parsed.reasoning or '(no reasoning provided)'}"
            )
            previous_result = parsed.result
            processed = processor.process(parsed.result)
            validation = validator.validate(processed)
            confidence = _confidence(validation, confidence)
            iterations += 1
            self._log_attempt(options, iterations, model, validation, confidence, parsed)

        if not validation.valid:
            logger.info(
                f"'{_abbreviate(task)}' still invalid after {iterations} round-trips; "
                f"returning last attempt"
            )

        return RefinementResult(
            final_result=processed,
            initial_result=initial_result,
            iterations=iterations,
            reasoning=reasoning,
            confidence=confidence,
            model_used=model,
            processing_time_ms=self._elapsed_ms(started),
        )

    async def _fallback_attempt(
        self,
        task: str,
        input_text: str,
        processor: Processor[T],
        options: RefinementOptions,
        fallback: str,
        ledger: Optional[CallLedger],
        started: float,
    ) -> RefinementResult[T]:
        prompt = build_initial_prompt(task, input_text)
        parsed = parse_response(
            await self._submit(prompt, fallback, options.temperature, "fallback", 1, ledger)
        )
        processed = processor.process(parsed.result)
        reasoning = f"{FALLBACK_MARKER} {options.model} failed; answered by {fallback}."
        if parsed.reasoning:
            reasoning += f"\n\n{parsed.reasoning}"

        return RefinementResult(
            final_result=processed,
            initial_result=processed,
            iterations=1,
            reasoning=reasoning,
            confidence=FALLBACK_CONFIDENCE,
            model_used=fallback,
            processing_time_ms=self._elapsed_ms(started),
        )

    async def _submit(
        self,
        prompt: str,
        model: str,
        temperature: float,
        step_name: str,
        iteration: int,
        ledger: Optional[CallLedger],
    ) -> str:
        t0 = self._clock()
        try:
            response = await self.submitter.submit(prompt, model, temperature)
        except Exception as e:
            if ledger is not None:
                ledger.record(
                    step_name, iteration, model, prompt, "",
                    self._elapsed_ms(t0), temperature, succeeded=False,
                )
            raise TransportFailure(model, f"{type(e).__name__}: {e}") from e

        response = response or ""
        if ledger is not None:
            ledger.record(
                step_name, iteration, model, prompt, response, self._elapsed_ms(t0), temperature
            )
        return response

    def _elapsed_ms(self, since: float) -> int:
        return int((self._clock() - since) * 1000)

    @staticmethod
    def _log_attempt(
        options: RefinementOptions,
        iteration: int,
        model: str,
        validation: ValidationOutcome,
        confidence: float,
        parsed: ParsedResponse,
    ) -> None:
        level = logging.INFO if options.verbose else logging.DEBUG
        logger.log(
            level,
            f"  [Round-trip {iteration}/{options.max_iterations}] model={model} "
            f"valid={validation.valid} confidence={confidence:.2f} "
            f"(model reported {parsed.confidence:.2f})",
        )
        if options.verbose:
            logger.info(f"    reasoning: {parsed.reasoning[:300]}")
            logger.info(f"    result: {parsed.result[:300]}")


def _confidence(validation: ValidationOutcome, previous: float) -> float:
    """The validator's confidence, clamped; `previous` when it reports none."""
    if validation.confidence is None:
        return previous
    return min(1.0, max(0.0, validation.confidence))


def _abbreviate(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."
