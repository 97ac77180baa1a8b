"""FastAPI application entry point."""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from standup.config import settings
from standup.core.logging import configure_logging
from standup.core.middleware import RequestContextMiddleware
from standup.database import database
from standup.routers import goals, plans, profile

configure_logging(log_level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await database.connect()
    yield
    # Shutdown
    await database.disconnect()


app = FastAPI(
    title="Standup API",
    description="Plan tomorrow's goals, review them today",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(plans.router)
app.include_router(goals.router)
app.include_router(profile.router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"status": "ok", "message": "Standup API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
