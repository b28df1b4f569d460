# app.py
import os
import logging
import time

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match
from utils.json_logging import configure_json_logging
from utils.metrics import incr, observe_ms

# Load env before importing route modules that read os.getenv at import time.
load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    configure_json_logging(service="post-upload-api", level=level)


configure_logging()
logger = logging.getLogger("api.error")
from startup_env import validate_startup_env
from utils.request_id import REQUEST_ID_HEADER, get_request_id, normalize_request_id, set_request_id

validate_startup_env()

from config import is_development_mode
from services.auth import initialize_credentials
from services.errors import AuthError, UploadError
from routes.upload import UPLOAD_PATH, upload_error_from_form_errors, router as upload_router
from routes.auth import router as auth_router
from routes.health import router as health_router

credential_state = initialize_credentials()
logger.info("credential_state state=%s", credential_state.value)

app = FastAPI(title="Post Upload API")


def _parse_csv_env(name: str) -> list[str]:
    raw = os.getenv(name, "")
    values = [x.strip() for x in raw.split(",") if x.strip()]
    seen = set()
    ordered = []
    for item in values:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


UNMATCHED_ROUTE = "unmatched"
HTTP_ERROR_CODES = {
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = int(getattr(response, "status_code", 500))
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        duration_ms = (time.perf_counter() - started) * 1000.0
        method = request.method.upper()
        route = route_label(request)
        status_class = f"{status_code // 100}xx"
        incr("api_http_requests_total", method=method, route=route, status_class=status_class)
        observe_ms("api_http_request_latency_ms", duration_ms, method=method, route=route)
        set_request_id(None)


def route_label(request: Request) -> str:
    """Route template for metrics labels; unknown paths share one label."""
    for route in app.router.routes:
        match, _ = route.matches(request.scope)
        if match != Match.NONE:
            return getattr(route, "path", UNMATCHED_ROUTE)
    return UNMATCHED_ROUTE


def _http_error_code(status_code: int) -> str:
    return HTTP_ERROR_CODES.get(status_code, f"HTTP_{status_code}")


def _error_body(*, request: Request, error_code: str, error_message: str) -> dict:
    request_id = get_request_id() or normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
    return {
        "error": error_message,
        "error_code": error_code,
        "error_message": error_message,
        "path": request.url.path,
        "request_id": request_id,
    }


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    if not exc.is_validation_error:
        logger.error(
            "upload_failed status=%s error_code=%s error=%s",
            exc.status_code,
            exc.kind.value,
            exc.details or exc.message,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(include_details=is_development_mode()),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    body = _error_body(request=request, error_code=exc.error_code, error_message=exc.public_message)
    logger.warning(
        "auth_failed status=%s path=%s error_code=%s error=%s",
        exc.status_code,
        request.url.path,
        exc.error_code,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    if route_label(request) == UPLOAD_PATH:
        return await upload_error_handler(request, upload_error_from_form_errors(exc.errors()))

    body = _error_body(request=request, error_code="VALIDATION_ERROR", error_message="Request validation failed")
    logger.warning(
        "request_failed_validation status=422 path=%s request_id=%s error_code=%s",
        request.url.path,
        body["request_id"],
        body["error_code"],
    )
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = _error_body(request=request, error_code=_http_error_code(exc.status_code), error_message=str(exc.detail))
    logger.warning(
        "request_failed status=%s path=%s request_id=%s error_code=%s",
        exc.status_code,
        request.url.path,
        body["request_id"],
        body["error_code"],
    )
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    body = _error_body(request=request, error_code="INTERNAL_SERVER_ERROR", error_message="Internal server error")
    logger.exception(
        "request_failed_unhandled path=%s request_id=%s error=%s: %s",
        request.url.path,
        body["request_id"],
        exc.__class__.__name__,
        exc,
    )
    return JSONResponse(status_code=500, content=body)


CORS_ALLOW_ORIGINS = _parse_csv_env("CORS_ALLOW_ORIGINS")
CORS_ALLOW_ORIGIN_REGEX = (os.getenv("CORS_ALLOW_ORIGIN_REGEX") or "").strip() or None
logger.info(
    "cors_configured allow_origins=%s allow_origin_regex=%s",
    CORS_ALLOW_ORIGINS,
    CORS_ALLOW_ORIGIN_REGEX or "",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_origin_regex=CORS_ALLOW_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)

app.include_router(auth_router)
app.include_router(health_router)
app.include_router(upload_router)
