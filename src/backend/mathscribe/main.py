"""
Mathscribe — FastAPI Backend
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mathscribe import __version__
from mathscribe.api import cache, conversions, health
from mathscribe.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Mathscribe",
    description="Math notation conversion with iterative accuracy refinement",
    version=__version__,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router, tags=["health"])
app.include_router(conversions.router, prefix="/api/convert", tags=["conversions"])
app.include_router(cache.router, prefix="/api/cache", tags=["cache"])


@app.on_event("startup")
async def startup():
    """Log the effective configuration."""
    def _mask(val: str) -> str:
        if not val:
            return "(empty)"
        if len(val) <= 8:
            return "***"
        return val[:4] + "..." + val[-4:]

    logger.info("=== Mathscribe Backend Starting ===")
    logger.info(f"  openai_base_url   : {settings.openai_base_url or '(default)'}")
    logger.info(f"  openai_api_key    : {_mask(settings.openai_api_key)}")
    logger.info(f"  primary_model     : {settings.primary_model}")
    logger.info(f"  fallback_model    : {settings.fallback_model or '(disabled)'}")
    logger.info(f"  refine_iterations : {settings.refine_max_iterations}")
    logger.info(f"  refine_timeout_ms : {settings.refine_timeout_ms}")
    logger.info(f"  cache             : ttl={settings.cache_ttl_seconds}s max={settings.cache_max_entries}")
    logger.info(f"  cors_origins      : {settings.cors_origins}")

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is empty -- conversion requests will fail!")
