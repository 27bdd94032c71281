"""
policyscout - policy document discovery API
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from policyscout import __version__
from policyscout.api.v1.api import api_router
from policyscout.core.config import settings
from policyscout.core.exceptions import setup_exception_handlers
from policyscout.core.logging import setup_logging
from policyscout.scrapers.fetcher import PolicyFetcher

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="policyscout API",
    description="Finds and validates published policy documents for any domain",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
)

# Setup CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup exception handlers
setup_exception_handlers(app)

# Include API router
app.include_router(api_router)


@app.on_event("startup")
async def startup_event():
    """Create the shared fetcher on startup"""
    logger.info("Starting policyscout API...")
    if getattr(app.state, "fetcher", None) is None:
        app.state.fetcher = PolicyFetcher()
    logger.info("Application startup complete!")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the shared HTTP client"""
    logger.info("Shutting down policyscout API...")
    fetcher = getattr(app.state, "fetcher", None)
    if fetcher is not None:
        await fetcher.close()
        app.state.fetcher = None


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": "policyscout-api",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        },
    )
