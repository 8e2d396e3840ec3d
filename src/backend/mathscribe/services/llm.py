"""
LLM Service — handles all communication with the OpenAI API.

Provides the capabilities the rest of the backend builds on:
  - submit            — plain chat completion (the refinement engine's transport)
  - submit_with_image — vision completion used to read math from images
  - transcribe        — speech-to-text
  - text_to_speech    — speech synthesis

Transient API errors (429 / 5xx / connection / timeout) are retried with
exponential backoff before the error is raised to the caller.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from openai import AsyncOpenAI

from mathscribe.config import settings

logger = logging.getLogger(__name__)

R = TypeVar("R")

TRANSIENT_ERROR_KEYWORDS = [
    "503", "502", "500", "429", "rate limit", "service unavailable", "overloaded",
    "connection", "timeout", "timed out", "temporarily",
]


class LLMService:
    """
    Unified interface for OpenAI inference.

    Usage:
        service = LLMService()
        reply = await service.submit("Convert x squared to LaTeX", "gpt-4o", 0.2)
        latex = await service.submit_with_image(SYSTEM_PROMPT, "data:image/png;base64,...")
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
    ):
        self._client = client
        self.max_retries = max(1, max_retries if max_retries is not None else settings.llm_max_retries)
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.llm_retry_base_delay
        )

    def _get_client(self) -> AsyncOpenAI:
        """Lazy-initialize the API client."""
        if self._client is None:
            if not settings.openai_api_key:
                raise RuntimeError(
                    "OpenAI client is not configured. Set OPENAI_API_KEY in the environment or .env."
                )
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url or None,
            )
        return self._client

    async def check_readiness(self) -> bool:
        """
        Lightweight probe to check the API accepts requests.
        Sends a tiny 1-token completion; returns False on any error.
        """
        try:
            client = self._get_client()
            response = await client.chat.completions.create(
                model=settings.primary_model,
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=1,
                temperature=0.0,
            )
            return bool(response.choices)
        except Exception as e:
            logger.debug(f"Readiness probe failed: {e}")
            return False

    async def submit(self, prompt: str, model: str, temperature: float) -> str:
        """
        Send a single prompt and return the trimmed reply text.

        The prompt is sent as the system message; it already carries the
        task, the input and the response format.
        """
        client = self._get_client()

        async def _call() -> str:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "system", "content": prompt}],
                temperature=temperature,
                max_tokens=settings.llm_max_tokens,
            )
            return _first_choice_text(response)

        return await self._with_retries(f"chat completion ({model})", _call)

    async def submit_with_image(self, system_prompt: str, image_data: str) -> str:
        """
        Ask the vision model about an image.

        Args:
            system_prompt: Instructions for the model
            image_data: A data URL (data:image/png;base64,...) or an http(s) URL
        """
        client = self._get_client()
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": image_data}},
                ],
            },
        ]

        async def _call() -> str:
            response = await client.chat.completions.create(
                model=settings.vision_model,
                messages=messages,
                temperature=0.1,
                max_tokens=settings.llm_max_tokens,
            )
            return _first_choice_text(response)

        return await self._with_retries(f"vision completion ({settings.vision_model})", _call)

    async def transcribe(self, audio: bytes, filename: str = "audio.webm") -> str:
        """Transcribe recorded speech to text."""
        client = self._get_client()

        async def _call() -> str:
            response = await client.audio.transcriptions.create(
                model=settings.transcription_model,
                file=(filename, audio),
                language=settings.transcription_language,
            )
            return response.text.strip()

        return await self._with_retries("transcription", _call)

    async def text_to_speech(self, text: str) -> bytes:
        """Synthesize speech for `text`; returns MP3 bytes."""
        client = self._get_client()

        async def _call() -> bytes:
            response = await client.audio.speech.create(
                model=settings.tts_model,
                voice=settings.tts_voice,
                input=text,
            )
            return response.content

        return await self._with_retries("speech synthesis", _call)

    async def _with_retries(self, operation: str, call: Callable[[], Awaitable[R]]) -> R:
        """Run `call`, retrying transient errors with exponential backoff."""
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                return await call()
            except Exception as e:
                last_error = e
                if is_transient_error(e) and attempt < self.max_retries - 1:
                    delay = self.retry_base_delay * (2 ** attempt)
                    logger.warning(
                        f"OpenAI transient error during {operation} "
                        f"(attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    await asyncio.sleep(delay)
                    continue

                logger.error(
                    f"OpenAI error during {operation} "
                    f"(attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                break

        raise last_error


def is_transient_error(error: Exception) -> bool:
    """True for errors worth retrying: rate limits, 5xx, connection problems, timeouts."""
    status = getattr(error, "status_code", None)
    if isinstance(status, int) and (status == 429 or status >= 500):
        return True
    error_str = str(error).lower()
    return any(keyword in error_str for keyword in TRANSIENT_ERROR_KEYWORDS)


def _first_choice_text(response: Any) -> str:
    if not response.choices:
        return ""
    return (response.choices[0].message.content or "").strip()
