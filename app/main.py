"""
Main FastAPI application for the Character Artifact API.
Serves health, image/story/sketch generation with caching, and metrics.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.routes import health, images, stories, sketches
from app.db.session import init_db
from app.services.generation import ProviderFactory
from app.utils.metrics import router as metrics_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if settings.cache_enabled:
        init_db()
    else:
        logger.warning("cache_unavailable", extra={"error": "DATABASE_URL not set - caching disabled"})
    app.state.generation_context = ProviderFactory.build_context(
        settings, getattr(app.state, "generation_context", None)
    )
    logger.info("app_started", extra={"family": settings.primary_provider})
    yield


app = FastAPI(
    title="Character Artifact API",
    description="Character images, stories and sketches with multi-provider fallback",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = settings.cors_origins_list or ["http://localhost:5173", "http://127.0.0.1:5173"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(images.router)
app.include_router(stories.router)
app.include_router(sketches.router)
app.include_router(metrics_router)
