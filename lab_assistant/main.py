# lab_assistant/main.py
import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lab_assistant.api.dependencies import get_services
from lab_assistant.api.routes import router
from lab_assistant.config import LOG_LEVEL
from lab_assistant.memory.embedder import api_key_status
from lab_assistant.observability.logger import setup_logging
from lab_assistant.observability.metrics import metrics_tracker
from lab_assistant.observability.posthog_client import posthog_client


class UTF8JSONResponse(JSONResponse):
    """JSON responses always declare their charset (Japanese payloads)."""

    media_type = "application/json; charset=utf-8"


# Initialize logging FIRST
setup_logging(log_level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Lab Thesis Assistant API",
    description="Thesis knowledge base with keyword and semantic retrieval",
    version="1.0.0",
    default_response_class=UTF8JSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every HTTP request with latency and record metrics.
    """

    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    logger.info(
        "request_started",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        },
    )

    start_time = time.time()

    try:

        response = await call_next(request)

        latency = time.time() - start_time

        if response.status_code < 500:
            metrics_tracker.record_success(latency, endpoint=request.url.path)
        else:
            metrics_tracker.record_failure(endpoint=request.url.path)

        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_seconds": round(latency, 3),
            },
        )

        return response

    except Exception as e:

        latency = time.time() - start_time

        metrics_tracker.record_failure(endpoint=request.url.path)

        posthog_client.track_error(
            distinct_id=request_id,
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint=request.url.path,
        )

        logger.error(
            "request_failed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "latency_seconds": round(latency, 3),
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )

        raise


app.include_router(router)


@app.on_event("startup")
async def startup_event():

    services = get_services()

    logger.info(
        "application_startup",
        extra={
            "version": "1.0.0",
            "document_backends": services.repository.backend_names,
            "vector_backend": services.vector_store.backend,
        },
    )

    key_status = api_key_status()

    if key_status != "configured":

        logger.warning(
            "missing_api_key",
            extra={
                "warning_detail": f"OPENAI_API_KEY {key_status}. Chat, translation and embeddings will fail.",
            },
        )


@app.on_event("shutdown")
async def shutdown_event():

    services = get_services()

    await services.kv.aclose()

    posthog_client.shutdown()

    logger.info("application_shutdown")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):

    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )

    posthog_client.track_error(
        distinct_id=request_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        endpoint=request.url.path,
    )

    return UTF8JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal error occurred. Please try again.",
            "request_id": request_id,
            "error_type": type(exc).__name__,
        },
    )


@app.get("/")
async def root():

    return {
        "message": "Lab Thesis Assistant API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }
