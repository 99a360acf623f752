"""
FastAPI entrypoint for the Focus Journal backend application.
"""
import logging
import math
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.exceptions import (
    AntiSpamViolation, EntryNotFoundError, EntryValidationError, JournalError, VALIDATION_ERROR
)
from app.core.time_window import parse_timestamp, utcnow
from app.core.utils import format_error
from app.api.router import api_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Focus Journal API",
    description="Backend API for mood + task productivity journaling",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Field-attributable 400 for malformed request bodies and parameters."""
    details = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "body"
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.setdefault(field, message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("Validation failed", VALIDATION_ERROR, details=details)
    )


@app.exception_handler(EntryValidationError)
async def entry_validation_handler(request: Request, exc: EntryValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error(exc.message, exc.code, details=exc.details)
    )


@app.exception_handler(AntiSpamViolation)
async def anti_spam_handler(request: Request, exc: AntiSpamViolation):
    """409 with the retry time, plus a Retry-After header in seconds."""
    wait = (parse_timestamp(exc.retry_after) - utcnow()).total_seconds()
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=format_error(
            exc.message,
            exc.code,
            retry_after=exc.retry_after,
            details={"current_entry_created_at": exc.current_entry_created_at}
        ),
        headers={"Retry-After": str(max(0, math.ceil(wait)))}
    )


@app.exception_handler(EntryNotFoundError)
async def not_found_handler(request: Request, exc: EntryNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=format_error(exc.message, exc.code)
    )


@app.exception_handler(JournalError)
async def journal_error_handler(request: Request, exc: JournalError):
    """Store and internal-consistency failures surface as a generic 500."""
    logger.error(f"Error handling {request.method} {request.url.path}: {exc.message}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=format_error("Internal server error", exc.code)
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Focus Journal API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
