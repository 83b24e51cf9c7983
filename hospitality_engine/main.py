from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import time
import uuid

from .config import settings
from .database import create_tables
from .services.errors import EngineError
from .utils.dependencies import http_error
from .utils.logging_config import setup_logging, get_logger, set_request_context, clear_request_context
from .utils.metrics import record_http_request
from .utils.rate_limiter import limiter

from .routers import availability, reservations, health, metrics

setup_logging(level=settings.log_level, json_format=settings.log_json)
logger = get_logger("hospitality_engine")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info(f"Starting availability & pricing engine ({settings.environment})")
    logger.info(f"CORS origins: {settings.cors_origins}")

    create_tables()

    yield

    logger.info("Shutting down availability & pricing engine")


app = FastAPI(
    title="Hospitality Availability & Pricing Engine",
    description="Availability checks, itemized quotes and reservation commits for rooms and event venues",
    version=health.VERSION,
    lifespan=lifespan
)

app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags logs with a request id and records request metrics"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            duration = time.perf_counter() - started

            route = request.scope.get("route")
            path = getattr(route, "path", request.url.path)
            record_http_request(request.method, path, response.status_code, duration)
            logger.api_request(request.method, path, response.status_code, duration * 1000)

            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()


app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, try again later"}
    )


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    """Engine errors that escaped a router's own translation"""
    http_exc = http_error(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app.include_router(availability.router)
app.include_router(reservations.router)
app.include_router(health.router)
app.include_router(metrics.router)


@app.get("/")
async def root():
    return {
        "message": "Hospitality Availability & Pricing Engine",
        "version": health.VERSION,
        "docs": "/docs",
        "status": "running"
    }
