from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
import uvicorn
import logging
import sys

from steadyday.core.config import settings
from steadyday.core.errors import ApiError
from steadyday.core.rate_limiter import RateLimiterRegistry

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


def error_response(message: str, status_code: int, code: str) -> JSONResponse:
    """Uniform error body clients can switch on via `code`"""
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting up {settings.PROJECT_NAME} ({settings.ENVIRONMENT.value})...")
    limiters: RateLimiterRegistry = app.state.rate_limiters
    await limiters.start_sweeper()

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}...")
    await limiters.stop_sweeper()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message} - {request.url}")
        return error_response(exc.message, exc.status_code, exc.code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request."
        if errors:
            message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
        return error_response(message, 400, "VALIDATION_ERROR")

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc!r}")
        return error_response("Something went wrong.", 500, "INTERNAL_ERROR")


def create_application(rate_limiters: Optional[RateLimiterRegistry] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="SteadyDay - reminder delivery and request throttling",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        lifespan=lifespan,
    )

    # One registry per process; handlers receive it through deps.get_rate_limiters
    app.state.rate_limiters = rate_limiters or RateLimiterRegistry.from_settings(settings)
    logger.info(f"Rate limit policies: {', '.join(app.state.rate_limiters.names())}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    from steadyday.api.v1.api import api_router
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health", tags=["Health Check"])
    async def health_check():
        return {"status": "healthy", "service": "reminders", "version": settings.VERSION}

    if settings.METRICS_ENABLED:
        from prometheus_fastapi_instrumentator import Instrumentator
        Instrumentator().instrument(app).expose(app, endpoint="/metrics")

    return app


# Create the FastAPI app instance
app = create_application()

if __name__ == "__main__":
    uvicorn.run(
        "steadyday.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
