from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

from config import Settings, settings, configure_logging, get_settings

from core.exceptions import AppException
from core.responses import error
from routes import users_router, posts_router, roles_router
from database.db import create_tables, get_database_url

logger = logging.getLogger(__name__)

# configure logging once at startup
configure_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle."""
    # Startup
    logger.info(f"Database: {get_database_url()}")
    try:
        create_tables()
    except Exception as e:
        logger.warning(f"Could not create database tables: {e}")
    yield
    # Shutdown

app = FastAPI(
    title=settings.app_name,
    description="Uniform repository operations (CRUD, relations, pagination) over users, roles and posts.",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    debug=settings.debug_mode
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Render application errors through the error envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}", exc_info=True)
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

    errors = {"message": exc.message}
    if exc.details:
        errors["details"] = exc.details
    return error(errors, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error(jsonable_encoder(exc.errors()), status.HTTP_422_UNPROCESSABLE_ENTITY)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return error("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.get("/")
async def root(config: Settings = Depends(get_settings)):
    """API information."""
    return {
        "message": config.app_name,
        "version": config.app_version,
        "status": "active",
        "environment": "production" if config.is_production else "development",
        "docs": "/docs",
        "redoc": "/redoc"
    }

app.include_router(users_router)
app.include_router(posts_router)
app.include_router(roles_router)

@app.get("/health")
async def health_check():
    """Health check with a database round trip."""
    from database.db import engine
    from sqlalchemy import text

    db_status = "unknown"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Health check: database connection error: {e}")
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "unhealthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "database": db_status,
        "environment": "production" if settings.is_production else "development"
    }

if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower()
    )
