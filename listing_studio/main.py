"""
Listing Studio Backend - Main FastAPI Application
"""
from pathlib import Path
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from listing_studio import __version__
from listing_studio.api.v1.api import api_router
from listing_studio.core.config import settings
from listing_studio.core.exceptions import AppException
from listing_studio.core.middleware import LoggingMiddleware
from listing_studio.db.session import create_db_and_tables

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Generation, review and marketplace publishing of product listing images and videos.",
    version=__version__,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc"
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"]
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Render domain errors with their machine-readable code"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Application error",
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": "http_error", "message": str(exc.detail), "details": {}}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    logger.warning(
        "Request Validation Error",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method
    )
    # Only loc, msg and type; the raw input may not be serializable
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"code": "validation_error", "message": "Request validation failed", "details": {"errors": errors}}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(
        "Unexpected Error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={"code": "internal_error", "message": "Internal server error", "details": {}}
    )


app.include_router(api_router, prefix=settings.API_V1_STR)

if settings.STORAGE_BACKEND == "local":
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/")
async def root():
    return {
        "message": "Listing Studio API",
        "version": __version__,
        "status": "active",
        "docs_url": f"{settings.API_V1_STR}/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": __version__
    }


@app.on_event("startup")
async def startup_event():
    logger.info(
        "Listing Studio Backend starting up",
        version=__version__,
        api_prefix=settings.API_V1_STR,
        cors_origins=settings.CORS_ORIGINS,
        storage_backend=settings.STORAGE_BACKEND
    )
    create_db_and_tables()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Listing Studio Backend shutting down")
