"""Cache inspection and invalidation."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from mathscribe.api.deps import get_converter
from mathscribe.models.schemas import CacheStats
from mathscribe.services.converter import ConverterService

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_cache(converter: ConverterService):
    if converter.cache is None:
        raise HTTPException(status_code=404, detail="Caching is disabled")
    return converter.cache


@router.get("/stats", response_model=CacheStats)
async def cache_stats(converter: ConverterService = Depends(get_converter)):
    return CacheStats(**_require_cache(converter).stats())


@router.delete("")
async def clear_cache(converter: ConverterService = Depends(get_converter)):
    cache = _require_cache(converter)
    cleared = len(cache)
    cache.clear()
    logger.info(f"Cache cleared ({cleared} entries)")
    return {"cleared": cleared}
