"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from wardrobe.config import get_settings
from wardrobe.domain import errors
from wardrobe.infrastructure.db.session import check_db_connection
from wardrobe.api.v1 import budgets, reports
from wardrobe.application.scheduler import start_scheduler, shutdown_scheduler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs any unhandled exception with its traceback and answers 500"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "\n%s\nERROR on %s %s\n%s%s",
                "=" * 60, request.method, request.url.path, traceback.format_exc(), "=" * 60,
            )
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


# Domain error -> HTTP status
_ERROR_STATUS = (
    (errors.ValidationError, 422),
    (errors.InvalidPeriodError, 422),
    (errors.NotFoundError, 404),
    (errors.ConflictError, 409),
    (errors.DependencyError, 503),
)


def _budget_error_handler(request: Request, exc: errors.BudgetError) -> JSONResponse:
    status_code = 400
    for error_class, code in _ERROR_STATUS:
        if isinstance(exc, error_class):
            status_code = code
            break
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": exc.__class__.__name__},
    )


def create_app() -> FastAPI:
    """
    Application factory - builds and configures the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.SCHEDULER_ENABLED:
            start_scheduler()
        yield
        shutdown_scheduler()

    app = FastAPI(
        title="Wardrobe Budget",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    app.add_exception_handler(errors.BudgetError, _budget_error_handler)

    app.include_router(budgets.router)
    app.include_router(reports.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wardrobe.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
