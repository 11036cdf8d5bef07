"""FastAPI application entry point."""

import logging
import os

import sqlalchemy
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coachflow.routes import generations, onboarding

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Coachflow",
    description="Onboarding completion and AI split generation with resumable progress streams",
    version="0.1.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(onboarding.router)
app.include_router(generations.router)
app.include_router(generations.events_router)


def run_migrations():
    """Apply Alembic migrations unless the schema is already in place."""
    from coachflow.database import engine

    try:
        if sqlalchemy.inspect(engine).has_table("generation_requests"):
            logger.info("Database tables already exist, skipping migrations")
            return

        logger.info("Running database migrations...")
        from alembic import command
        from alembic.config import Config

        alembic_cfg = Config(os.path.join(os.path.dirname(os.path.dirname(__file__)), "alembic.ini"))
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")
    except Exception as e:
        logger.error(f"Startup database check/migration error: {e}")
        logger.info("Continuing startup - assuming database is ready")


@app.on_event("startup")
def startup_event():
    """Make sure the schema exists before serving streams."""
    logger.info("Starting application...")
    run_migrations()


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "Coachflow",
        "version": "0.1.0",
        "status": "running",
    }
