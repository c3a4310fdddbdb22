"""
Module: main.py
Description: FastAPI application entry point for the event pipeline ingress.

Initializes the FastAPI application with the publish route, a health
check and a global error handler, and exposes the Mangum adapter used
as the publisher Lambda handler behind API Gateway.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum

from event_pipeline import __version__
from event_pipeline.config.settings import settings
from event_pipeline.handlers.publisher import router as publisher_router
from event_pipeline.models.response import ErrorResponse
from event_pipeline.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Event ingestion for the queue-mediated delivery pipeline",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(publisher_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.info("Health check requested")

    return {
        "status": "ok",
        "message": "Event pipeline is healthy",
        "version": settings.app_version,
        "environment": settings.stage
    }


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors.

    Logs unexpected exceptions and returns the structured failure body.
    """
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method
    )

    body = ErrorResponse(error="Failed to publish message", details=str(exc) or type(exc).__name__)
    return JSONResponse(status_code=500, content=body.model_dump())


@app.on_event("startup")
async def startup_event():
    """Application startup event handler."""
    logger.info(
        "Starting event pipeline ingress",
        version=settings.app_version,
        stage=settings.stage,
        region=settings.aws_region
    )


# Lambda handler
handler = Mangum(app, lifespan="off")
