"""
Catalog API

Handles:
1. Product image uploads via S3 pre-signed URLs
2. Upload confirmation and deletion
3. Per-client rate limiting
"""

from pathlib import Path
from dotenv import load_dotenv
import os

# Load .env file from src directory (parent of apis/)
env_path = Path(__file__).parent.parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from apis.shared.errors import (
    ApiError,
    ErrorCode,
    create_error_response,
    error_response,
    http_status_to_error_code,
)
from apis.shared.rate_limit import (
    apply_rate_limit_headers,
    get_rate_limit_storage,
)

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Lifespan event handler (replaces on_event)
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("=== Catalog API Starting ===")
    # Create rate-limit storage up front; counters expire on their own
    get_rate_limit_storage()

    yield  # Application is running

    # Shutdown
    logger.info("=== Catalog API Shutting Down ===")

# Create FastAPI app with lifespan
app = FastAPI(
    title="Catalog API",
    version="1.0.0",
    description="Product image upload service",
    lifespan=lifespan
)

# Add CORS middleware for local development
# In production (AWS), CloudFront handles routing so CORS is not needed
if os.getenv('ENVIRONMENT', 'development') == 'development':
    logger.info("Adding CORS middleware for local development")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv('CORS_ALLOWED_ORIGINS', 'http://localhost:3000').split(','),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
    )


# =============================================================================
# Error Handlers
# =============================================================================


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
    return apply_rate_limit_headers(request, error_response(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            problems = ["Malformed JSON body."]
            break
        # Drop the "body" prefix and list positions
        field = ".".join(
            part for part in error.get("loc", ())[1:] if isinstance(part, str)
        )
        problems.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    logger.warning(f"Invalid request body for {request.url.path}: {problems}")
    response = create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Invalid request.",
        detail="; ".join(problems),
        status_code=400,
    )
    return apply_rate_limit_headers(request, response)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = create_error_response(
        code=http_status_to_error_code(exc.status_code),
        message=str(exc.detail),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )
    return apply_rate_limit_headers(request, response)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    response = create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred.",
        status_code=500,
    )
    return apply_rate_limit_headers(request, response)


# Import routers
from .health import router as health_router
from .files.routes import router as files_router
# Include routers
app.include_router(health_router)
app.include_router(files_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
