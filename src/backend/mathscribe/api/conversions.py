"""
REST API for conversions.

Failures surface to clients as a generic "conversion failed" message;
the engine's error taxonomy stays in the logs.
"""
from __future__ import annotations

import base64
import binascii
import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, HTTPException

from mathscribe.api.deps import get_converter
from mathscribe.models.schemas import (
    AudioInput,
    ConversionResult,
    EquationInput,
    ExplainInput,
    ExplanationResult,
    ImageInput,
    LatexInput,
    NotationInput,
    NotationResult,
    ProofInput,
    ProofResult,
    SolutionResult,
    TextInput,
    VerificationResult,
)
from mathscribe.refinement.base import RefinementTimeout
from mathscribe.services.converter import ConverterService

logger = logging.getLogger(__name__)
router = APIRouter()

FAILURE_DETAIL = "Conversion failed, please retry."


@asynccontextmanager
async def _conversion_errors(operation: str):
    try:
        yield
    except HTTPException:
        raise
    except RefinementTimeout as e:
        logger.warning(f"{operation} timed out: {e}")
        raise HTTPException(status_code=504, detail=FAILURE_DETAIL) from e
    except Exception as e:
        logger.error(f"{operation} failed: {type(e).__name__}: {e}")
        raise HTTPException(status_code=502, detail=FAILURE_DETAIL) from e


def _decode_base64(data: str) -> bytes:
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HTTPException(status_code=422, detail="Invalid base64 payload") from e


@router.post("/text-to-latex", response_model=ConversionResult)
async def text_to_latex(body: TextInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("text-to-latex"):
        return await converter.text_to_latex(body.text)


@router.post("/latex-to-text", response_model=ConversionResult)
async def latex_to_text(body: LatexInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("latex-to-text"):
        return await converter.latex_to_text(body.latex)


@router.post("/simplify", response_model=ConversionResult)
async def simplify(body: LatexInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("simplify"):
        return await converter.simplify_latex(body.latex)


@router.post("/verify", response_model=VerificationResult)
async def verify(body: LatexInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("verify"):
        return await converter.verify_latex(body.latex)


@router.post("/speech-to-latex", response_model=ConversionResult)
async def speech_to_latex(body: AudioInput, converter: ConverterService = Depends(get_converter)):
    audio = _decode_base64(body.audio_base64)
    async with _conversion_errors("speech-to-latex"):
        return await converter.speech_to_latex(audio, body.filename)


@router.post("/image-to-latex", response_model=ConversionResult)
async def image_to_latex(body: ImageInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("image-to-latex"):
        return await converter.image_to_latex(body.image, mime_type=body.mime_type)


@router.post("/latex-to-speech", response_model=ConversionResult)
async def latex_to_speech(body: LatexInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("latex-to-speech"):
        return await converter.latex_to_speech(body.latex)


@router.post("/image-to-speech", response_model=ConversionResult)
async def image_to_speech(body: ImageInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("image-to-speech"):
        return await converter.image_to_speech(body.image, mime_type=body.mime_type)


@router.post("/solve", response_model=SolutionResult)
async def solve(body: EquationInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("solve"):
        return await converter.solve_equation(body.equation)


@router.post("/explain", response_model=ExplanationResult)
async def explain(body: ExplainInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("explain"):
        return await converter.explain_expression(body.expression, body.level)


@router.post("/prove", response_model=ProofResult)
async def prove(body: ProofInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("prove"):
        return await converter.prove(body.statement)


@router.post("/notation", response_model=NotationResult)
async def notation(body: NotationInput, converter: ConverterService = Depends(get_converter)):
    async with _conversion_errors("notation"):
        return await converter.convert_notation(body.latex, body.target)
