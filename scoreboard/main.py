"""
Main FastAPI application for the pinball cabinet scoreboard.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from scoreboard.api.deps import AppServices
from scoreboard.api.routes import activity, cabinet, duplicates, scores, sync, tables
from scoreboard.core import metrics
from scoreboard.core.config import settings
from scoreboard.core.logging import configure_logging, get_logger
from scoreboard.core.middleware import CorrelationIdMiddleware
from scoreboard.services.clients import PinballDBClient, PinupPopperClient, VPinStudioClient
from scoreboard.services.sync.orchestrator import ScanOrchestrator
from scoreboard.storage.document import DocumentStore

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


def build_services() -> AppServices:
    """Load the document and wire the collaborators around it."""
    store = DocumentStore(settings.DOCUMENT_PATH, settings.OWNER_INITIALS)
    document = store.load()
    cabinet_client = VPinStudioClient()
    return AppServices(
        document=document,
        orchestrator=ScanOrchestrator(document, cabinet_client, store=store),
        cabinet=cabinet_client,
        frontend=PinupPopperClient(),
        catalog=PinballDBClient(),
        store=store,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    missing = settings.validate_required_settings()
    if missing:
        if settings.is_production():
            raise RuntimeError(f"Missing required settings: {', '.join(missing)}")
        logger.warning(f"Missing settings: {', '.join(missing)}")

    services = build_services()
    app.state.services = services
    metrics.update_model_metrics(services.model)

    from scoreboard.core.scheduler import start_scheduler
    await start_scheduler(services.orchestrator)
    metrics.update_scheduler_metrics()

    logger.info("Application started")

    yield

    # Shutdown
    from scoreboard.core.scheduler import stop_scheduler
    await stop_scheduler()
    metrics.update_scheduler_metrics()
    await services.close()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="High scores, duplicate tables and play activity for a virtual pinball cabinet",
    lifespan=lifespan,
)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API v1 - all routes use the /api/v1/ prefix
app.include_router(tables.router, prefix="/api/v1")
app.include_router(scores.router, prefix="/api/v1")
app.include_router(duplicates.router, prefix="/api/v1")
app.include_router(activity.router, prefix="/api/v1")
app.include_router(sync.router, prefix="/api/v1")
app.include_router(cabinet.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "api_version": "v1",
            "tables": "/api/v1/tables",
            "recent_scores": "/api/v1/scores/recent",
            "duplicates": "/api/v1/duplicates",
            "activity": "/api/v1/activity",
            "sync": "/api/v1/sync/status",
            "catalog": "/api/v1/catalog",
            "cabinet": "/api/v1/cabinet/current",
            "docs": "/docs",
            "health": "/health",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("scoreboard.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
