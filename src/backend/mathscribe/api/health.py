"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends

from mathscribe.api.deps import get_converter
from mathscribe.config import settings
from mathscribe.services.converter import ConverterService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": settings.app_name}


@router.get("/api/health/config")
async def config_check():
    """Diagnostic endpoint: shows whether critical settings are configured (no secrets)."""
    return {
        "openai_api_key_set": bool(settings.openai_api_key),
        "openai_base_url_set": bool(settings.openai_base_url),
        "primary_model": settings.primary_model,
        "fallback_model": settings.fallback_model or None,
        "vision_model": settings.vision_model,
        "refine_max_iterations": settings.refine_max_iterations,
        "refine_timeout_ms": settings.refine_timeout_ms,
    }


@router.get("/api/health/model")
async def model_readiness(converter: ConverterService = Depends(get_converter)):
    """Check whether the primary model is accepting requests."""
    ready = await converter.llm.check_readiness()
    return {"ready": ready, "model_id": settings.primary_model}
