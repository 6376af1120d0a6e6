import logging
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import TokenSigner
from .config import Settings, get_settings
from .db import Database
from .errors import ApiError
from .models import Envelope
from .otel import configure_logging, configure_otel
from .routes import admin_router, books_router, categories_router, health_router, users_router

request_logger = logging.getLogger("bookapi.requests")
error_logger = logging.getLogger("bookapi.errors")


def envelope_response(status_code: int, message: str, error: str | None = None, headers=None) -> JSONResponse:
    body = Envelope.failure(message, error).model_dump(mode="json")
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _first_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    log = error_logger.error if exc.status_code >= 500 else error_logger.info
    log(
        "request.failed",
        extra={"path": request.url.path, "status": exc.status_code, "error_message": exc.message},
    )
    return envelope_response(exc.status_code, exc.message, exc.detail, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return envelope_response(status.HTTP_400_BAD_REQUEST, "Invalid request body", _first_validation_error(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return envelope_response(
            status.HTTP_404_NOT_FOUND, "Route not found", "the requested endpoint does not exist"
        )
    return envelope_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    database = Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_create_schema:
            database.create_all()
        yield
        database.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description="Books and categories CRUD API with JWT authentication.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.token_signer = TokenSigner(settings.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours))

    if settings.otel_enabled:
        configure_otel(app, settings)
    else:
        configure_logging(settings)

    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.include_router(health_router)
    app.include_router(users_router)
    if settings.admin_bootstrap_enabled:
        app.include_router(admin_router)
    app.include_router(categories_router)
    app.include_router(books_router)

    @app.middleware("http")
    async def request_logging_middleware(request, call_next):
        request_logger.info("request.start", extra={"path": request.url.path, "method": request.method})
        response = await call_next(request)
        request_logger.info(
            "request.end",
            extra={"path": request.url.path, "method": request.method, "status": response.status_code},
        )
        return response

    @app.middleware("http")
    async def request_id_middleware(request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    return app
