from datetime import datetime, timezone
import contextlib
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from qc_api.config import settings
from qc_api.core.errors import QCImageError, InternalError, ValidationError
from qc_api.models.schemas import HealthResponse
from qc_api.api.v1 import images

STARTED_AT = time.monotonic()


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    # === Service Registration ===
    from qc_api.core.container import container, Services
    from qc_api.core.service_registry import register_all_services
    register_all_services()

    # === Startup Logic ===
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    settings.init_dirs()

    if settings.LOG_TO_FILE:
        log_file = settings.LOG_DIR / "qc_api.log"
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            level="DEBUG",
            encoding="utf-8",
            enqueue=True,
            backtrace=True,
            diagnose=settings.is_development,
        )
        logger.info(f"Log file configured at {log_file}")

    logger.info(f"Base URL: {settings.public_base_url}")
    logger.info(f"Upstream: {settings.UPSTREAM_BASE_URL}")
    logger.info(f"Registered {len(container._factories)} services")

    # Resolve watermark assets once; they are read-only afterwards
    if settings.WATERMARK_MODE.lower() == "image":
        container.get(Services.WATERMARK_RESOLVER).load_assets()

    if not settings.api_keys and settings.is_production:
        logger.warning("No API keys configured in production! Run scripts/generate_api_key.py")

    yield

    # === Shutdown Logic ===
    logger.info("Shutting down...")
    if container.is_instantiated(Services.UPSTREAM_CLIENT):
        await container.get(Services.UPSTREAM_CLIENT).close()
    container.reset()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


app.include_router(images.router, prefix="/api")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET"],
    allow_headers=["Content-Type", "X-API-Key"],
    max_age=86400,
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    client = request.client.host if request.client else "-"
    logger.info(f"{request.method} {request.url.path} - IP: {client} -> {response.status_code} ({elapsed_ms:.0f} ms)")
    return response


# ─── Global Error Handlers ────────────────────────────────────────
@app.exception_handler(QCImageError)
async def qc_error_handler(request: Request, exc: QCImageError):
    """Render every known failure as {success: false, error, message?}."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return 400 with one entry per invalid query parameter."""
    details = [
        {"field": str(err["loc"][-1]) if err.get("loc") else "", "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    logger.warning(f"Validation failed on {request.method} {request.url.path}: {details}")
    error = ValidationError(details=details)
    return JSONResponse(status_code=error.status_code, content=error.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        body = {"success": False, "error": "Not found", "message": "The requested endpoint does not exist"}
    else:
        body = {"success": False, "error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: return 500 with consistent JSON shape."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    message = str(exc) if settings.is_development else "An unexpected error occurred"
    return JSONResponse(status_code=500, content=InternalError(message).to_body())


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Heartbeat endpoint to check if the service is running."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }


@app.get("/")
async def usage():
    """Usage document listing endpoints and parameters."""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "products": {
                "endpoint": "/api/qc-images",
                "method": "GET",
                "authentication": "X-API-Key header or apiKey query parameter",
                "required_params": {"id": "Product ID"},
                "optional_params": {
                    "storePlatform": f"WEIDIAN, TAOBAO, 1688 or TMALL (default: {settings.DEFAULT_STORE_PLATFORM})",
                    "quality": f"Image quality 1-100 (default: {settings.DEFAULT_QUALITY})",
                    "format": f"png, webp, jpeg or jpg (default: {settings.DEFAULT_FORMAT})",
                    "width": f"Image width in pixels 100-2000 (default: {settings.DEFAULT_WIDTH})",
                },
                "example": "/api/qc-images?id=7494645791&storePlatform=WEIDIAN",
            },
            "image": {
                "endpoint": "/api/image",
                "method": "GET",
                "required_params": {"url": "Source image URL"},
                "optional_params": {"watermark": "true or false (default: true)"},
            },
            "health": {"endpoint": "/health", "method": "GET"},
        },
        "watermarks": {
            "mode": settings.WATERMARK_MODE,
            "positions": {
                "image1": "Top left corner",
                "image2": "Top right corner",
                "image3": "Bottom right corner",
            },
            "size": f"{settings.WATERMARK_SCALE:.0%} of image width",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "qc_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
