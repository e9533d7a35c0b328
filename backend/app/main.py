"""
Symptom Journal - Pattern Analysis API
======================================
Observational pattern signals over a personal symptom journal.
Main entry point for the API server.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timezone

from .config import settings
from .db import init_db
from .api.v1.router import api_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await init_db()
    logger.info(
        "%s %s started (%s, model %s)",
        settings.project_name,
        settings.version,
        settings.environment,
        "enabled" if settings.gemini_api_key else "disabled",
    )
    yield


# =============================================================
# APP INITIALIZATION
# =============================================================
app = FastAPI(
    title=settings.project_name,
    description="""
## Symptom Journal Pattern Analysis
Observational pattern signals only. This service does not diagnose.

### Key Features:
- Severity trend, frequency and recurrence per body region
- Z-score anomaly rules against the user's own baseline
- Family history relevance
- Optional language model insights with a safe fallback
- Append-only flags and summaries
    """,
    version=settings.version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# =============================================================
# MIDDLEWARE
# =============================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Every failed call returns a single {"error": ...} body."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{location}: {message}" if location else message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Unexpected failures still answer with a JSON {"error": ...} body."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
    return JSONResponse(status_code=500, content={"error": str(exc) or "Analysis failed"})

# =============================================================
# ROUTES
# =============================================================
app.include_router(api_router)

@app.get("/", tags=["Root"])
async def root():
    """Welcome endpoint."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "environment": settings.environment,
        "status": "healthy",
        "docs": "/docs",
    }

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
        "llm_configured": bool(settings.gemini_api_key),
    }


def run():
    """Serve the API with uvicorn (``symptom-journal-api`` console script)."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
