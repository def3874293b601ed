"""Main FastAPI application with modularized routes."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assessment_api.database import init_db
from assessment_api.exceptions import AppError
from assessment_api.logging_setup import setup_console_logging
from assessment_api.routes import attempts, auth, tests
from assessment_api.services.cleanup_service import schedule_attempt_expiry

setup_console_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Assessment API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render service-layer errors with their status and error code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, **exc.to_dict()},
    )


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database and schedule the attempt expiry sweep on startup."""
    init_db()
    schedule_attempt_expiry()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers
app.include_router(auth.router)
app.include_router(tests.router)
app.include_router(attempts.router)
