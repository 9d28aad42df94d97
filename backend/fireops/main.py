"""FastAPI application for the fire dispatch backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fireops.config import get_settings
from fireops.database import check_db_ready
from fireops.errors import DispatchError, UnexpectedError
from fireops.limiter import limiter
from fireops.routers import alerts_router, health_router, incidents_router, units_router
from fireops.tasks.scheduler import setup_scheduler, shutdown_scheduler
from fireops.websocket import manager, websocket_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting fire dispatch backend...")

    # Verify database is ready
    try:
        await check_db_ready()
        logger.info("Database ready")
    except Exception as e:
        logger.error(f"Database not ready: {e}")
        raise

    # Start the unit sweep once DB is ready.
    setup_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("Fire dispatch backend shut down")


# Create FastAPI app
app = FastAPI(
    title="Fire Dispatch API",
    description="Alert triage, incident tracking and unit duty scheduling for fire stations",
    version="0.1.0",
    lifespan=lifespan,
)

# Publish handle shared by every request and the WebSocket hub
app.state.publisher = manager

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    """Render lifecycle errors with their status code and detail."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Answer malformed request bodies with 400."""
    errors = [
        f"{'.'.join(str(part) for part in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation error", "errors": errors},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    error = UnexpectedError(str(exc))
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_response(),
    )


# Include routers
app.include_router(health_router)
app.include_router(alerts_router, prefix=settings.api_prefix)
app.include_router(incidents_router, prefix=settings.api_prefix)
app.include_router(units_router, prefix=settings.api_prefix)
app.include_router(websocket_router)  # WebSocket at /ws/events


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Fire Dispatch API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fireops.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
