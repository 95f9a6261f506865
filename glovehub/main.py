# glovehub/main.py
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from glovehub import models  # noqa: F401  (registers SQLAlchemy models)
from glovehub.config import settings
from glovehub.core.logging_config import logger, setup_logging
from glovehub.db import Base, engine
from glovehub.errors import PipelineError
from glovehub.observability.metrics import router as metrics_router
from glovehub.routers import invoices, quotations

# ----------------------------------------------------
# App init
# ----------------------------------------------------
app = FastAPI(title="GloveHub Pipeline", version="0.1.0")

setup_logging()
logger.info("startup", service=settings.app_name, env=settings.app_env)


# ----------------------------------------------------
# Health
# ----------------------------------------------------
@app.get("/health", include_in_schema=True)
def health() -> dict:
    return {"status": "ok"}


# ----------------------------------------------------
# Logging middleware
# ----------------------------------------------------
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    start = time.time()

    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    client_ip = request.client.host if request.client else "unknown"

    bound_logger = logger.bind(
        request_id=request_id,
        actor=request.headers.get("X-User-Id", "anonymous"),
        ip=client_ip,
        endpoint=str(request.url.path),
        method=request.method,
    )

    bound_logger.info("request_started")
    response = await call_next(request)
    latency_ms = round((time.time() - start) * 1000, 2)

    response.headers["X-Request-ID"] = request_id
    bound_logger.bind(status_code=response.status_code, latency_ms=latency_ms).info(
        "request_finished"
    )
    return response


# ----------------------------------------------------
# Errors
# ----------------------------------------------------
@app.exception_handler(PipelineError)
def pipeline_error_handler(request: Request, exc: PipelineError):
    logger.info(
        "request_rejected",
        endpoint=str(request.url.path),
        code=exc.code,
        status_code=exc.http_status,
    )
    return JSONResponse(exc.to_dict(), status_code=exc.http_status)


# ----------------------------------------------------
# Routers
# ----------------------------------------------------
app.include_router(quotations.router)
app.include_router(invoices.router)
if settings.metrics_enabled:
    app.include_router(metrics_router)  # /metrics


# ----------------------------------------------------
# Startup
# ----------------------------------------------------
@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
