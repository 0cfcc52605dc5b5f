from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    BaseCustomException,
    ValidationError,
    create_error_response,
    create_validation_error_response,
)
from app.api.v1.api import api_router
from app.infrastructure.cache import create_cache
from app.infrastructure.database import close_db, get_db, init_db, ping_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and own the cache for the lifetime of the process"""
    await init_db()
    app.state.cache = await create_cache(settings)
    logger.info(f"{settings.PROJECT_NAME} started")

    yield

    await app.state.cache.close()
    del app.state.cache
    await close_db()
    logger.info(f"{settings.PROJECT_NAME} stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for managing doctors and their availability",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.exception_handler(BaseCustomException)
async def custom_exception_handler(request: Request, exc: BaseCustomException):
    return JSONResponse(status_code=exc.status_code, content=create_error_response(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    validation_errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        validation_errors.setdefault(field, []).append(error["msg"])

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=create_validation_error_response(
            ValidationError(message="Request validation failed"),
            validation_errors=validation_errors,
        ),
    )


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    if not await ping_db(db):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unreachable"},
        )
    return {"status": "healthy", "database": "connected"}
