"""Main FastAPI application for the chart plugin service."""

import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

# Configure logging BEFORE importing any modules that use logger
log_level = os.getenv('LOG_LEVEL', 'INFO')
logging.basicConfig(
    level=getattr(logging, log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Import after logging is configured
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from chart_service.plugins.errors import LoaderFailure
from chart_service.routers import charts_router

# Create FastAPI app
app = FastAPI(
    title="Chart Plugin Service",
    description="Chart plugin registry, configuration validation and rendering factory",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(charts_router)  # /api/charts endpoints


@app.get("/")
async def root():
    return {"message": "Chart Plugin Service API", "docs": "/docs"}


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    from chart_service.constants import BUNDLED_CHARTS_DIR
    from chart_service.dependencies import get_chart_factory

    logger.info("Starting Chart Plugin Service")
    logger.info(f"Bundled charts directory: {BUNDLED_CHARTS_DIR}")

    factory = get_chart_factory()
    try:
        await factory.initialize()
    except LoaderFailure as e:
        # Requests retry initialization; /api/charts answers 503 until it succeeds.
        logger.error(f"Chart registry failed to initialize: {e}")
        return

    stats = factory.statistics()
    logger.info(f"Chart registry ready: {stats.total} plugin(s) across {len(stats.by_library)} librar(ies)")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event."""
    logger.info("Shutting down Chart Plugin Service")


if __name__ == "__main__":
    import uvicorn
    from chart_service.constants import DEFAULT_PORT
    uvicorn.run("app:app", host="0.0.0.0", port=DEFAULT_PORT, reload=True)
