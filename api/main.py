"""
Safe Walk Routing API - FastAPI Main Application

A RESTful API for calculating walking routes ranked by estimated personal safety.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import uvicorn

from safe_walk_routing import RoutingError, __version__
from api.routes.routing import router as routing_router
from api.services.routing_service import routing_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - startup and shutdown events.
    """
    # Startup
    logger.info("Starting Safe Walk Routing API...")

    health = routing_service.get_health_status()
    if health.crime_data_configured:
        logger.info(f"✓ Routing service ready ({health.config_preset} preset, "
                    f"crime data at {health.crime_data_path})")
    else:
        logger.warning("⚠ Routing service running in degraded mode - no crime data configured")

    yield

    # Shutdown
    logger.info("Shutting down Safe Walk Routing API...")


# Create FastAPI application
app = FastAPI(
    title="Safe Walk Routing API",
    description="""
    **Walking routes ranked by estimated personal safety**

    Several distinct walking routes are computed between two points and scored
    on crime, lighting, road type, nearby activity, CCTV and transit. The
    safest route is selected unless data coverage is too thin to trust, in
    which case routes are ordered by distance.

    ## Features

    - **Multiple Routes**: Up to five distinct candidates per request
    - **Safety Breakdown**: Integer sub-scores and a composite per route
    - **Confidence Gating**: Distance ordering when data is insufficient
    - **Session Superseding**: Newer requests cancel stale ones per session
    - **GeoJSON Output**: Optional FeatureCollection for map clients

    ## Data Sources

    - **Street Network, Places, Transit**: OpenStreetMap via OSMnx
    - **Crime Data**: Local GeoJSON file (`SAFE_WALK_CRIME_DATA`)

    ## Quick Start

    1. Check service health: `GET /api/routing/health`
    2. Calculate routes: `POST /api/routing/routes`
    """,
    version=__version__,
    license_info={
        "name": "MIT License",
        "url": "https://opensource.org/licenses/MIT",
    },
    lifespan=lifespan
)

# Add CORS middleware for web applications
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Custom exception handlers
@app.exception_handler(RoutingError)
async def routing_exception_handler(request: Request, exc: RoutingError):
    """
    Map typed routing failures to their status code and error body.
    """
    logger.warning(f"Routing error {exc.code} for {request.url.path}: {exc.message}")
    body = exc.to_dict()
    body["details"] = dict(exc.details, endpoint=request.url.path)
    return JSONResponse(status_code=exc.http_status, content=body)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle request validation errors with detailed information.
    """
    logger.warning(f"Validation error for {request.url}: {exc}")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "validation_error",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors())
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle unexpected errors without leaking internals.
    """
    logger.exception(f"Unexpected error for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": {"endpoint": request.url.path}
        }
    )


# Include routers
app.include_router(routing_router)


@app.get("/", tags=["general"])
async def root():
    """
    API root endpoint with basic information.
    """
    return {
        "api": "Safe Walk Routing API",
        "version": __version__,
        "status": "operational",
        "documentation": "/docs",
        "health_check": "/api/routing/health"
    }


@app.get("/health", tags=["general"])
async def api_health():
    """
    Simple health check endpoint.
    """
    service_health = routing_service.get_health_status()
    return {
        "api_status": "healthy",
        "service_status": service_health.status
    }


# Development server configuration
if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
