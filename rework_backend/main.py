"""
Rework Station API - Entry Point.

State controller for choco rework stations: each station follows a fixed
workflow (wait pallet, scan pallet, scan tank, empty bigbag, choose tank)
driven by triggers. Every accepted transition is persisted in Redis and
published to "<namespace>/station<id>/state".

Configuration:
- FastAPI app with automatic OpenAPI docs
- CORS for operator frontends
- Exception handlers for custom errors (ReworkException)
- Redis connection pools opened at startup, closed at shutdown

Endpoints:
- GET  /                                   - Root endpoint (API info)
- GET  /api/docs                           - OpenAPI documentation (Swagger UI)
- GET  /api/health                         - Health check (Redis)
- GET  /api/stations[/{id}]                - Station records
- PUT  /api/stations/{id}                  - Status override
- GET  /api/stations/{id}/state|info|permitted-triggers|diagram
- POST /api/stations/{id}/triggers         - Fire a trigger
- GET  /api/sse/stations/{id}              - State notification stream
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from rework_backend.config import config
from rework_backend.core.dependency import get_operation_registry
from rework_backend.exceptions import ReworkException
from rework_backend.models.error import ErrorResponse
from rework_backend.repositories.redis_repository import RedisRepository
from rework_backend.services.state_machines.rework_station_table import REWORK_STATION_TABLE
from rework_backend.utils.logger import setup_logger

from rework_backend.routers import health, stations, sse_router


# ============================================================================
# FASTAPI INITIALIZATION
# ============================================================================

app = FastAPI(
    title="Rework Station API",
    description="""
    State controller for choco rework stations.

    ## Workflow

    NoOrder → WaitPallet → ScanPallet → ScanTank → EmptyBigbag → ChooseTank → NoOrder

    Lifecycle triggers (Pause, Resume, DetectError, ResolveError,
    BeginMaintenance, EndMaintenance, Shutdown) move stations in and out of
    the operating cycle.

    ## Triggers

    - A trigger not permitted from the current state is rejected with
      **409 INVALID_STATE_TRANSITION** and nothing runs
    - An accepted trigger returns the outcome: `applied`, or `degraded` when
      the state changed but an operation, the write or the notification failed
    """,
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)


# ============================================================================
# MIDDLEWARE - CORS
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"]
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

STATUS_MAP = {
    # 404 NOT FOUND
    "STATION_NOT_FOUND": status.HTTP_404_NOT_FOUND,

    # 400 BAD REQUEST
    "INVALID_STATUS": status.HTTP_400_BAD_REQUEST,

    # 409 CONFLICT
    "INVALID_STATE_TRANSITION": status.HTTP_409_CONFLICT,
    "STATION_BUSY": status.HTTP_409_CONFLICT,
    "VERSION_CONFLICT": status.HTTP_409_CONFLICT,

    # 503 SERVICE UNAVAILABLE
    "PERSISTENCE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
    "NOTIFICATION_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE
}


@app.exception_handler(ReworkException)
async def rework_exception_handler(request: Request, exc: ReworkException):
    """
    Global handler for every custom exception.

    Maps ReworkException.error_code → HTTP status (500 when unmapped, e.g.
    UNKNOWN_PERSISTED_STATE) and returns an ErrorResponse.

    Logging by severity:
        - 500+: ERROR with stack trace
        - 409: WARNING (rejected triggers, contention)
        - other 4xx: INFO
    """
    http_status = STATUS_MAP.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    error_response = ErrorResponse(
        success=False,
        error=exc.error_code,
        message=exc.message,
        data=exc.data if exc.data else None
    )

    if http_status >= 500:
        logging.error(f"Server error: {exc.message}", exc_info=True)
    elif http_status == status.HTTP_409_CONFLICT:
        logging.warning(f"Conflict: {exc.message}")
    else:
        logging.info(f"Client error: {exc.message}")

    return JSONResponse(
        status_code=http_status,
        content=error_response.model_dump()
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """
    Fallback for unhandled exceptions: 500 with a generic message.

    Error details are included only when ENVIRONMENT=local.
    """
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    error_response = ErrorResponse(
        success=False,
        error="INTERNAL_SERVER_ERROR",
        message="Internal server error. Contact the administrator.",
        data={"detail": str(exc)} if config.ENVIRONMENT == "local" else None
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump()
    )


# ============================================================================
# STARTUP/SHUTDOWN EVENTS
# ============================================================================


@app.on_event("startup")
async def startup_event():
    """
    Configure the system when the app starts.

    - Configure logging
    - Validate configuration and the transition table (fatal when invalid)
    - Connect Redis (non fatal: the API starts degraded and answers 503)
    """
    setup_logger()
    config.validate()
    REWORK_STATION_TABLE.validate(known_operations=get_operation_registry().names())

    logging.info("✅ Rework Station API started")
    logging.info(f"Environment: {config.ENVIRONMENT}")
    logging.info(f"Notification namespace: {config.NOTIFICATION_NAMESPACE}")
    logging.info(f"CORS Origins: {config.ALLOWED_ORIGINS}")

    try:
        await RedisRepository().connect()
    except Exception as e:
        logging.error(f"❌ Redis unavailable at startup, running degraded: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Close Redis connection pools."""
    await RedisRepository().disconnect()
    logging.info("🔴 Rework Station API shutting down...")


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(stations.router, prefix="/api", tags=["Stations"])
app.include_router(sse_router.router)


# ============================================================================
# ROOT ENDPOINT
# ============================================================================


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - basic API information.

    Example response:
        ```json
        {
            "message": "Rework Station API - Choco rework station state controller",
            "version": "1.0.0",
            "docs": "/api/docs",
            "redoc": "/api/redoc",
            "health": "/api/health"
        }
        ```
    """
    return {
        "message": "Rework Station API - Choco rework station state controller",
        "version": "1.0.0",
        "docs": "/api/docs",
        "redoc": "/api/redoc",
        "health": "/api/health"
    }
