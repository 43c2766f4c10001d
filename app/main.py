from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog
import time

from app.core.config import settings
from app.core.database import database
from app.api import dashboard, events
from app.schemas.event import HealthResponse

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ]
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events"""
    logger.info("application_startup", app_name=settings.app_name)
    try:
        await database.initialize()
    except Exception as e:
        # Requests retry initialization; the service stays up meanwhile
        logger.error("startup_initialization_failed", error=str(e))
    yield
    await database.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Middleware for logging requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = time.time() - start_time
    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration * 1000, 2)
    )

    return response


@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    """Reject request bodies larger than max_body_bytes"""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > settings.max_body_bytes:
        logger.warning("request_body_too_large", path=request.url.path, content_length=int(content_length))
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={"detail": "Request body too large"}
        )
    return await call_next(request)


# Include routers
app.include_router(events.router)
app.include_router(dashboard.router)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness plus whether the event store has been initialized"""
    return {"status": "healthy", "app": settings.app_name, "initialized": database.initialized}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": settings.app_name,
        "endpoints": {
            "health": "/health",
            "ingest": "/api/plugin-analytics/ingest",
            "dashboard": "/api/plugin-analytics/dashboard",
            "features": "/api/plugin-analytics/features",
            "docs": "/docs"
        }
    }
