from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import config, normalize_cors_origins
from routers import browse, health
from services.errors import ConfigurationError
from utils.prometheus import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

# Configure Logging
import logging_config  # This initializes logging

logger = logging.getLogger("curb.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up browse gateway...", extra={"mock_drive": config.USE_MOCK_DRIVE})
    if not config.DRIVE_ROOT_FOLDER_ID and not config.USE_MOCK_DRIVE:
        logger.warning("GOOGLE_DRIVE_ROOT_FOLDER_ID not set; /browse will answer 500")
    yield
    logger.info("Shutting down browse gateway...")


app = FastAPI(lifespan=lifespan)

origins = normalize_cors_origins(config.CORS_ORIGINS)
logger.info(f"CORS allowed origins: {origins}")

cors_params = {
    "allow_origins": origins,
    "allow_credentials": False,
    "allow_methods": ["GET", "OPTIONS"],
    "allow_headers": ["Content-Type"],
    "expose_headers": ["X-Cache"],
}

if config.CORS_ORIGIN_REGEX:
    cors_params["allow_origin_regex"] = config.CORS_ORIGIN_REGEX
    logger.info(f"CORS origin regex enabled: {config.CORS_ORIGIN_REGEX}")

app.add_middleware(CORSMiddleware, **cors_params)


HTTP_STATUS_CODE_MAP = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    422: "validation_error",
    429: "too_many_requests",
}


def _http_exception_to_api_error(exc: StarletteHTTPException) -> dict:
    detail = exc.detail
    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, dict) and "message" in detail:
        message = str(detail["message"])
    else:
        message = str(detail) if detail else "Request error"

    payload = {
        "error": message,
        "code": HTTP_STATUS_CODE_MAP.get(exc.status_code, "http_error"),
        "message": message,
    }

    if not isinstance(detail, str):
        payload["details"] = detail

    return payload


@app.middleware("http")
async def ensure_json_error_response(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.error("Unhandled exception", exc_info=True, extra={"path": request.url.path})
        return JSONResponse(
            status_code=500,
            content={
                "error": "An unexpected error occurred",
                "code": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler_for_api(request: Request, exc: StarletteHTTPException):
    """Normalize HTTP errors (including 405 for non-GET browse calls) into JSON error bodies."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_http_exception_to_api_error(exc),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Missing credentials fail the request, never the process."""
    logger.error("Gateway configuration error", extra={"error": str(exc)})
    return JSONResponse(
        status_code=500,
        content={"error": "Server configuration error", "message": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Normalize validation errors (e.g. an unknown ``type``) for the browse API."""
    if request.url.path.endswith("/browse"):
        return JSONResponse(
            status_code=422,
            content={
                "error": "Validation error",
                "code": "validation_error",
                "message": "Validation error",
                "details": exc.errors(),
            },
        )

    return await request_validation_exception_handler(request, exc)


app.include_router(browse.router, prefix="/api")
app.include_router(browse.router)
app.include_router(health.router)


@app.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics collected by the application."""
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.get("/")
def read_root():
    return {"message": "CURB Browse Gateway"}
