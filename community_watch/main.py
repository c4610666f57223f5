from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from community_watch import __version__
from community_watch.core.config import settings
from community_watch.core.database import init_db, close_db, session_scope
from community_watch.core.exceptions import CommunityWatchError, StorageError
from community_watch.core.logging_config import logger
from community_watch.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
)
from community_watch.core.rate_limiter import limiter, rate_limit_exceeded_handler
from community_watch.api.v1.router import api_router
from community_watch.db.bootstrap import bootstrap


def check_config() -> None:
    """Log warnings for development defaults left in place"""
    warnings = []
    is_production = settings.ENVIRONMENT == "production"

    if settings.JWT_SECRET_KEY == "dev-secret-key-change-me":
        warnings.append("JWT_SECRET_KEY is using the development default")

    if settings.DEFAULT_ADMIN_PASSWORD == "admin123":
        warnings.append("DEFAULT_ADMIN_PASSWORD is using the development default")

    if not settings.EMAIL_CONFIGURED:
        warnings.append("SMTP_USER not set - forwards are recorded but no email is sent")

    for warn in warnings:
        if is_production:
            logger.warning(f"[Startup] WARNING: {warn}")
        else:
            logger.info(f"[Startup] {warn}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed the default admin and email groups before serving"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME} v{__version__}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info("=" * 60)

    check_config()

    await init_db()
    async with session_scope() as db:
        await bootstrap(db)
    logger.info("[Startup] Database ready")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    description="Anonymous community incident reporting with admin triage and email forwarding",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# slowapi reads the limiter from app.state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Starlette runs the last-added middleware outermost
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# Evidence uploads are multipart; oversized bodies are refused before parsing
app.add_middleware(RequestSizeLimitMiddleware, max_size=settings.MAX_UPLOAD_SIZE)

# Dashboard origins come from CORS_ORIGINS_STR
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time", "Retry-After"],
)


@app.exception_handler(CommunityWatchError)
async def community_watch_error_handler(request: Request, exc: CommunityWatchError):
    headers = None
    if exc.status_code == 401 and exc.code == "UNAUTHENTICATED":
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    error = StorageError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
        }
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for the container and uptime checks"""
    return {
        "status": "healthy",
        "appName": settings.APP_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT
    }


# Evidence downloads (linked from forwarded emails when too large to attach)
app.mount("/uploads", StaticFiles(directory=str(settings.UPLOAD_DIR)), name="uploads")

app.include_router(api_router, prefix=settings.API_PREFIX)


def run():
    """Console entry point: serve the API with uvicorn"""
    import uvicorn
    uvicorn.run(
        "community_watch.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
