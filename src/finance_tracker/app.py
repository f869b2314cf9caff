from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from finance_tracker.api.routes import analytics, budgets, categories, transactions, users
from finance_tracker.core import settings
from finance_tracker.errors import AuthenticationError, FinanceTrackerError
from finance_tracker.integration.identity import IdentityVerifier
from finance_tracker.integration.store import RecordStore
from finance_tracker.logger import get_logger, setup_logging

logger = get_logger(__name__)


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        # Drop the leading "body"/"query" segment from the location.
        location = [str(part) for part in error.get("loc", ())][1:]
        errors.append({"field": ".".join(location), "message": error.get("msg", "")})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FinanceTrackerError)
    async def handle_app_error(request: Request, exc: FinanceTrackerError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.error)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Validation error", "errors": _field_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error": str(exc)},
        )


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        verifier = IdentityVerifier(
            base_url=settings.IDENTITY_URL,
            api_key=settings.IDENTITY_API_KEY,
            timeout=settings.HTTP_TIMEOUT,
        )
        store = RecordStore(
            base_url=settings.STORE_URL,
            project_id=settings.STORE_PROJECT_ID,
            database=settings.STORE_DATABASE,
            token=settings.STORE_TOKEN,
            timeout=settings.HTTP_TIMEOUT,
        )
        if not verifier.configured:
            logger.warning("IDENTITY_API_KEY not set. Authenticated requests will fail.")
        if not store.configured:
            logger.warning("STORE_PROJECT_ID not set. Record store calls will fail.")

        app.state.verifier = verifier
        app.state.store = store

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await verifier.aclose()
        await store.aclose()

    app = FastAPI(title="Finance Tracker", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(users.router)
    app.include_router(transactions.router)
    app.include_router(budgets.router)
    app.include_router(categories.router)
    app.include_router(analytics.router)

    return app


app = create_app()
