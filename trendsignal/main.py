"""
TrendSignal - FastAPI Application

Main entry point for the analysis API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trendsignal.core.config import settings
from trendsignal.api.v1 import router as api_v1_router
from trendsignal.services.data_ingestion import get_candle_source

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    source = get_candle_source()
    logger.info(f"Candle source: {source.name}")

    yield

    # Shutdown
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    TrendSignal Technical Analysis API

    ## Architecture
    - **Indicator Engine**: SMA, EMA, RSI, MACD, Bollinger Bands, ATR, ADX (NumPy)
    - **Pattern Detector**: Support/resistance, double bottom/top, divergences
    - **Recommendation Scorer**: Weighted score, entry quality, overheat warnings

    ## Core Principles
    - Deterministic: same candles, same result
    - Degrade gracefully: short history gives neutral sub-scores, not errors
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "candle_source": await get_candle_source().health_check(),
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "TrendSignal API",
        "docs": "/docs",
        "health": "/health",
    }
