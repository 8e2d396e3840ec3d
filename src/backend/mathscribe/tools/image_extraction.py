"""
Tool: Image → LaTeX

The vision model reads the image once to produce a LaTeX candidate; the
candidate then goes through the ordinary text refinement loop.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Optional, Protocol

from mathscribe.refinement.base import RefinementResult
from mathscribe.refinement.engine import RefinementEngine
from mathscribe.refinement.ledger import CallLedger
from mathscribe.tools.base import strip_code_fence
from mathscribe.tools.latex_conversion import ImageLatexCleanupTool

logger = logging.getLogger(__name__)

VISION_SYSTEM_PROMPT = """You are a specialized mathematical OCR system. Extract every mathematical
expression visible in the image and transcribe it as LaTeX.
Return ONLY the LaTeX code with no explanation or additional text.
Do not include backticks, code blocks or dollar-sign delimiters."""


class VisionSubmitter(Protocol):
    async def submit_with_image(self, system_prompt: str, image_data: str) -> str: ...


def to_data_url(image: bytes | str, mime_type: str = "image/png") -> str:
    """Encode raw bytes or bare base64 as a data URL; data/http URLs pass through."""
    if isinstance(image, bytes):
        return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
    image = image.strip()
    if image.startswith(("data:", "http://", "https://")):
        return image
    return f"data:{mime_type};base64,{image}"


class ImageToLatexTool:
    """
    Usage:
        tool = ImageToLatexTool(engine, llm_service)
        result = await tool.run(image_bytes)
    """

    def __init__(self, engine: RefinementEngine, vision: VisionSubmitter):
        self.vision = vision
        self.cleanup = ImageLatexCleanupTool(engine)

    async def extract_candidate(self, image: bytes | str, mime_type: str = "image/png") -> str:
        candidate = await self.vision.submit_with_image(
            VISION_SYSTEM_PROMPT, to_data_url(image, mime_type)
        )
        candidate = strip_code_fence(candidate)
        logger.info(f"Vision candidate extracted ({len(candidate)} chars)")
        return candidate

    async def run(
        self,
        image: bytes | str,
        mime_type: str = "image/png",
        ledger: Optional[CallLedger] = None,
        **overrides: Any,
    ) -> RefinementResult[str]:
        candidate = await self.extract_candidate(image, mime_type)
        return await self.cleanup.run(candidate, ledger=ledger, **overrides)
