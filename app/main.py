"""
AdVid API - AI advertisement video generation
FastAPI Backend Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from app.core.config import settings
from app.core.database import init_db
from app.core.errors import register_error_handlers
from app.api import jobs, video

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info(f"Starting {settings.APP_NAME}...")
    init_db()
    if not settings.REPLICATE_API_TOKEN:
        logger.warning("REPLICATE_API_TOKEN is not set; video generation requests will fail with 500")
    if not settings.webhook_url:
        logger.info("PUBLIC_BASE_URL is not set; provider webhooks disabled, clients must poll")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    description="Ad video generation with asynchronous job tracking",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

register_error_handlers(app)

# Include routers
app.include_router(video.router, prefix="/api/v1", tags=["Video Generation"])
app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["Jobs"])


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for monitoring.
    Returns status of the database and whether the provider is configured.
    """
    status = {
        "status": "healthy",
        "version": "0.1.0",
        "services": {
            "provider": "configured" if settings.REPLICATE_API_TOKEN else "missing token",
            "webhooks": "enabled" if settings.webhook_url else "disabled",
        },
    }

    try:
        from app.core.database import SessionLocal
        from sqlalchemy import text
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        status["services"]["database"] = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        status["services"]["database"] = "error"
        status["status"] = "degraded"

    return status


@app.get("/files/{file_path:path}", tags=["Files"])
async def serve_file(file_path: str):
    """Serve locally stored videos."""
    from app.services.storage import StorageService

    if not settings.USE_LOCAL_STORAGE:
        raise HTTPException(status_code=404, detail="Not found")
    try:
        data = await StorageService().get_file(file_path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Not found")

    media_type = "video/mp4" if file_path.endswith(".mp4") else "application/octet-stream"
    return Response(content=data, media_type=media_type, headers={"Cache-Control": "public, max-age=3600"})


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.APP_NAME} - ad video generation",
        "docs": "/docs",
        "health": "/health",
    }
