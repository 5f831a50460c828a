import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from peopledesk.api.errors import ErrorResponse, register_exception_handlers
from peopledesk.api.v1 import api_router
from peopledesk.core.config import settings
from peopledesk.core.logging_config import RequestLoggingMiddleware, setup_logging
from peopledesk.core.version import APP_VERSION, get_full_version
from peopledesk.db.session import check_db_connection
from peopledesk.runtime import Runtime

# Configure structured logging (JSON in production, colored in development)
setup_logging()
logger = logging.getLogger("peopledesk")

_default_dev_origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add the standard hardening headers to every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    checks: dict[str, bool]


def create_app(runtime: Optional[Runtime] = None) -> FastAPI:
    """
    Build the application.

    With no runtime the lifespan creates one from settings and closes it on
    shutdown. A runtime passed in (tests) is used as is and left open.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"PeopleDesk {get_full_version()} starting ({settings.ENVIRONMENT})")
        owned = runtime is None
        app.state.runtime = runtime if runtime is not None else await Runtime.create()
        logger.info("Application startup complete")
        try:
            yield
        finally:
            logger.info("Application shutting down...")
            if owned:
                await app.state.runtime.close()

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="HR data access: employees, departments and leave requests with live updates",
        version=APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    if runtime is not None:
        app.state.runtime = runtime

    cors_origins = settings.ALLOWED_ORIGINS or _default_dev_origins

    register_exception_handlers(app)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Unexpected errors: full detail in the log, a reference id in production responses."""
        error_id = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        logger.error(
            f"Unhandled exception [{error_id}]: {exc}\n"
            f"Path: {request.url.path}\n"
            f"Method: {request.method}\n"
            f"Traceback: {traceback.format_exc()}"
        )
        if settings.ENVIRONMENT.lower() == "production":
            detail = f"An unexpected error occurred. Reference ID: {error_id}"
            error = "Internal server error"
        else:
            detail = str(exc)
            error = exc.__class__.__name__
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error=error,
                detail=detail,
                timestamp=datetime.now(timezone.utc).isoformat(),
                path=request.url.path,
            ).model_dump(exclude_none=True),
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Returns 503 when the database is unreachable."""
        db_healthy = await check_db_connection(request.app.state.runtime.engine)
        response = HealthResponse(
            status="healthy" if db_healthy else "unhealthy",
            service="peopledesk-backend",
            version=APP_VERSION,
            environment=settings.ENVIRONMENT,
            checks={"database": db_healthy},
        )
        if not db_healthy:
            logger.warning(f"Health check failed: {response.checks}")
            return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response.model_dump())
        return response

    @app.get("/")
    async def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("peopledesk.main:app", host="0.0.0.0", port=8000)
