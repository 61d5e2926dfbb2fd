"""Main FastAPI application"""
import logging
import time
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from api.config import settings as api_settings
from api.routers import stability
from api.utils.metrics import get_metrics_text
from fusionrisk.config import settings
from fusionrisk.db.session import check_db_health, init_db
from fusionrisk.log_config import get_logger, logger
from fusionrisk.utils.errors import FusionRiskError

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-internal-token",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

access_logger = get_logger("api.access")

SENSITIVE_HEADERS = ["authorization", "cookie", "x-internal-token", "apikey"]


def _strip_sensitive_data(event):
    """Remove secrets before sending to Sentry"""
    request = event.get("request")
    if request:
        if request.get("cookies"):
            request["cookies"] = {}

        headers = request.get("headers")
        if headers:
            for header in list(headers.keys()):
                if header.lower() in SENSITIVE_HEADERS:
                    headers[header] = "REDACTED"

    extra = event.get("extra")
    if extra:
        sensitive_keys = ["TOKEN", "SECRET", "DATABASE_URL", "PASSWORD"]
        for key in list(extra.keys()):
            if any(s in key.upper() for s in sensitive_keys):
                extra[key] = "REDACTED"

    return event


if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.2 if settings.is_production else 1.0,
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        before_send=lambda event, hint: _strip_sensitive_data(event),
    )
    logger.info("Sentry error monitoring initialized")
else:
    logger.info("Sentry DSN not configured, error monitoring disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting Fusion Stability API...")
    init_db()
    yield
    logger.info("Shutting down Fusion Stability API...")


app = FastAPI(
    title=api_settings.API_TITLE,
    description="Adaptive workflow stability pipeline: baseline, forecast, risk response and calibration.",
    version=api_settings.API_VERSION,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "stability", "description": "Fusion stability pipeline handlers (internal token required)"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-internal-token"],
)


@app.middleware("http")
async def access_log_middleware(request: Request, call_next):
    """Log every request with status and timing"""
    t0 = time.time()
    response = await call_next(request)
    ms = int((time.time() - t0) * 1000)
    access_logger.info(
        "request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration_ms=ms,
    )
    return response


# Outermost middleware: keep it registered after the others.
@app.middleware("http")
async def preflight_middleware(request: Request, call_next):
    if request.method == "OPTIONS":
        return PlainTextResponse("ok", status_code=status.HTTP_200_OK, headers=CORS_HEADERS)
    return await call_next(request)


@app.exception_handler(FusionRiskError)
async def fusion_risk_exception_handler(request: Request, exc: FusionRiskError):
    """Render pipeline errors as {error, details}"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=CORS_HEADERS)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are client errors"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
        headers=CORS_HEADERS,
    )


app.include_router(stability.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": api_settings.API_TITLE,
        "version": api_settings.API_VERSION,
        "status": "running",
    }


@app.get("/healthz")
def health_check():
    """Health check endpoint"""
    database = "ok" if check_db_health() else "unavailable"
    return {"status": "healthy", "database": database}


@app.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    """
    Prometheus-style metrics endpoint.

    Exposes counters for:
    - pipeline_runs_total / pipeline_errors_total: per handler
    - risk_events_recorded_total: risk events written
    - reinforcement_sync_calls_total / reinforcement_sync_failures_total
    - api_uptime_seconds: API uptime
    """
    return PlainTextResponse(content=get_metrics_text())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=api_settings.API_HOST, port=api_settings.API_PORT)
