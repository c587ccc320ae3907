# control_plane/main.py
"""
Relay Fleet Control Plane - Main Application
FastAPI application entry point
"""

import uvicorn
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from .api.v1 import nodes, regions
from .config import settings
from .core.region_service import region_service
from .database.session import init_db, check_connection, SessionLocal
from .schemas.base import ErrorResponse, HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events
    - Startup: Initialize database, seed regions
    - Shutdown: Cleanup resources
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}")

    init_db()
    if settings.SEED_DEFAULT_REGIONS:
        db = SessionLocal()
        try:
            region_service.seed_default_regions(db)
        finally:
            db.close()

    if not settings.NODE_PROVISION_TOKEN:
        logger.warning("NODE_PROVISION_TOKEN not set, node endpoints are disabled")

    logger.info("Application started successfully")

    yield

    logger.info("Shutting down application")


# Initialize FastAPI App
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Relay Fleet Control Plane API

    - **Node API**: relay agents register and report health (provisioning token)
    - **Region API**: per-region capacity for placement
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan
)


# === Exception Handlers ===

def error_response(status_code: int, error: str, error_code: str, details: dict = None) -> JSONResponse:
    body = ErrorResponse(error=error, error_code=error_code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        {"errors": errors},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.exception(f"Unexpected error: {exc}")

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_ERROR",
        {"message": str(exc)} if settings.DEBUG else None,
    )


# === Include Routers ===

app.include_router(
    nodes.router,
    prefix=f"{settings.API_PREFIX}/nodes",
    tags=["Nodes"]
)

app.include_router(
    regions.router,
    prefix=f"{settings.API_PREFIX}/regions",
    tags=["Regions"]
)


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check():
    """Health check endpoint for monitoring"""
    db_status = "connected" if check_connection() else "disconnected"

    return HealthResponse(
        status="healthy" if db_status == "connected" else "unhealthy",
        version=settings.APP_VERSION,
        database=db_status
    )


def run() -> None:
    """Console entry point"""
    uvicorn.run(
        "control_plane.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
