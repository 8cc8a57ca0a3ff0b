"""
Test Case Tree - FastAPI Application Entry Point

Organizes test cases into per-project folder trees with materialized
paths, cascading renames and moves, and transactional deletes.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import init_db
from .exceptions import register_exception_handlers
from .migrations.rebuild_folder_paths import migrate as migrate_folder_paths
from .routers import folders, projects, test_cases

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting Test Case Tree API...")
    init_db()
    # Repair paths left inconsistent by older writers
    migrate_folder_paths()
    yield
    logger.info("Shutting down Test Case Tree API...")


app = FastAPI(
    title="Test Case Tree",
    description="Folder trees for organizing test cases per project",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Configure CORS middleware
# Allow all origins for development; restrict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
register_exception_handlers(app)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "name": "Test Case Tree",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Register routers
app.include_router(projects.router)
app.include_router(folders.router)
app.include_router(test_cases.router)
