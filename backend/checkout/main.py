import sentry_sdk
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes import donations as donations_routes
from .errors import CheckoutError, RequestMethodError, UnknownCheckoutError
from .health import health_checker
from .logging_config import configure_structlog, get_logger
from .metrics import PrometheusMiddleware, get_metrics
from .responses import to_response
from .settings import settings
from .utils import (
    add_cors,
    add_rate_limiting,
    add_request_id_tracing,
    add_security_headers,
)

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or f"{settings.SERVICE_NAME}@{settings.APP_VERSION}",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=False,
    )

app = FastAPI(
    title="Donation Checkout API",
    version=settings.APP_VERSION,
    description="Donation checkout backed by a third-party payment processor",
)
add_cors(app)
add_security_headers(app)
add_request_id_tracing(app)
add_rate_limiting(app)
app.add_middleware(PrometheusMiddleware)

API_PREFIX = "/v1"

app.include_router(donations_routes.router, prefix=API_PREFIX)

logger = get_logger(__name__)

if settings.PAYMENTS_MODE == "live" and settings.csrf_secret_is_default:
    logger.warning("csrf_default_secret", hint="set CSRF_SECRET before taking live donations")


@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    return to_response(exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        return to_response(RequestMethodError())
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "data": {"message": message}},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Full detail goes to the log and Sentry, never to the donor.
    logger.exception("unhandled_error", path=request.url.path)
    sentry_sdk.capture_exception(exc)
    return to_response(UnknownCheckoutError())


@app.get("/health")
def health():
    """Return service health including payment processor configuration."""
    status = health_checker.check_all()
    status_code = 200 if status["status"] == "healthy" else 503
    body = {
        "status": status["status"],
        "timestamp": status.get("timestamp"),
        "checks": status.get("checks", {}),
        "service": settings.SERVICE_NAME,
        "version": settings.APP_VERSION,
    }
    return JSONResponse(content=body, status_code=status_code)


@app.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    try:
        return get_metrics()
    except Exception:  # pragma: no cover
        logger.exception("metrics_export_failed")
        raise HTTPException(status_code=503, detail="metrics unavailable")
