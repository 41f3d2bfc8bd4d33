# src/tradecraft/interfaces/api/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from tradecraft import __version__
from tradecraft.boot import build_services
from tradecraft.config import settings
from tradecraft.infrastructure.metrics import LATENCY, REQUESTS
from tradecraft.interfaces.api.routers import auth as auth_router
from tradecraft.interfaces.api.routers import billing as billing_router
from tradecraft.interfaces.api.routers import quotes as quotes_router
from tradecraft.interfaces.api.routers import user as user_router
from tradecraft.interfaces.webhook import stripe as stripe_webhook_router
from tradecraft.logging_conf import setup_logging

setup_logging()
log = logging.getLogger(__name__)

# --- FastAPI App ---
app = FastAPI(title="TradeCraft AI API", version=__version__)
app.state.services = build_services(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    REQUESTS.inc()
    started = time.perf_counter()
    try:
        return await call_next(request)
    finally:
        LATENCY.observe(time.perf_counter() - started)

# --- Error bodies: the web client reads {"error": "..."} ---

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    log.debug(f"Request validation failed: {exc.errors()}")
    return JSONResponse({"error": "Invalid request"}, status_code=400)


@app.get("/")
def root(): return {"message": "TradeCraft API Running"}

@app.get("/health")
def health_check(): return {"status": "ok"}


app.include_router(auth_router.router)
app.include_router(user_router.router)
app.include_router(billing_router.router)
app.include_router(quotes_router.router)
app.include_router(stripe_webhook_router.router)

if settings.METRICS_ENABLED:
    @app.get("/metrics", include_in_schema=False)
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
