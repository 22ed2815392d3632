from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from portal.api import admin, auth, documents, orders, quotes, translation, webhooks
from portal.core import clients
from portal.core.config import settings
from portal.core.errors import ErrorCategory, PortalError
from portal.core.redis import init_redis, close_redis, get_redis
from portal.core.metrics import request_count, request_duration, get_metrics_text
import time
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code
            ).inc()

            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)

            return response
        except Exception:
            duration = time.time() - start_time
            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=500
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(duration)
            raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")

    logger.info("Initializing Redis connection...")
    await init_redis()
    await clients.init_clients()

    yield

    logger.info("Application shutting down...")
    await clients.close_clients()
    await close_redis()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.add_middleware(MetricsMiddleware)

app.include_router(auth.router)
app.include_router(orders.router)
app.include_router(quotes.router)
app.include_router(admin.router)
app.include_router(documents.router)
app.include_router(translation.router)
app.include_router(webhooks.router)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request data")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "category": str(ErrorCategory.VALIDATION_FAILED),
            "error": message,
            "error_ar": "خطأ في البيانات المدخلة",
        },
    )


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check():
    redis = get_redis()

    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "environment": settings.ENVIRONMENT,
        "dependencies": {
            "redis": "connected" if redis is not None else "disconnected",
            "notion": "configured" if settings.NOTION_API_KEY else "not configured",
            "drive": "configured" if settings.GOOGLE_SERVICE_ACCOUNT_EMAIL else "not configured",
            "gemini": "configured" if settings.GEMINI_API_KEY else "not configured",
        }
    }


@app.get("/readiness", tags=["monitoring"])
async def readiness_check():
    if clients.store is None:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "reason": "Order store not initialised"},
        )

    return {
        "ready": True,
        "service": settings.API_TITLE,
        "redis": get_redis() is not None,
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
