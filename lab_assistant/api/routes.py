import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
)
from pydantic import ValidationError

from lab_assistant.api.dependencies import Services, get_services
from lab_assistant.config import (
    ALLOWED_FILE_EXTENSIONS,
    CACHE_BYPASS_HEADER,
    MAX_UPLOAD_SIZE_MB,
)
from lab_assistant.errors import BackendError, CompletionError
from lab_assistant.memory.embedder import api_key_status
from lab_assistant.memory.loader import (
    extract_pdf_text_async,
    extract_section,
    format_text,
)
from lab_assistant.models import (
    ChatRequest,
    ChatResponse,
    DocumentInfo,
    HealthResponse,
    IngestResponse,
    IngestUrlsRequest,
    ListDocumentsResponse,
    MaintenanceResponse,
    PdfResponse,
    PdfSettings,
    TranslateRequest,
    TranslateResponse,
    UploadResponse,
)
from lab_assistant.observability.metrics import metrics_tracker
from lab_assistant.observability.posthog_client import posthog_client


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# HELPERS
# ============================================================

def request_id_of(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def wants_cache_bypass(request: Request) -> bool:
    """
    Cache-Control: no-cache, or X-Bypass-Cache: 1/true.
    """

    cache_control = request.headers.get("cache-control", "").lower()

    if "no-cache" in cache_control:
        return True

    return request.headers.get(CACHE_BYPASS_HEADER, "").lower() in ("1", "true", "yes")


def validate_file_size(content: bytes, max_mb: int = MAX_UPLOAD_SIZE_MB):

    size_mb = len(content) / (1024 * 1024)

    if size_mb > max_mb:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {size_mb:.2f}MB (max {max_mb}MB)",
        )

    if not content:
        raise HTTPException(status_code=400, detail="Empty file")


def completion_http_error(error: CompletionError, request: Request, endpoint: str) -> HTTPException:

    posthog_client.track_error(
        distinct_id=request_id_of(request),
        error_type=type(error).__name__,
        error_message=str(error),
        endpoint=endpoint,
    )

    return HTTPException(status_code=error.status_code, detail=str(error))


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(services: Services = Depends(get_services)):

    corpus = await services.engine.load_corpus()

    try:
        indexed = len(await services.vector_store.list_indexed_ids())
    except BackendError as e:

        logger.warning("Vector index unreadable", extra={"error": str(e)})

        indexed = 0

    key_status = api_key_status()

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        openai_api_key_configured=key_status == "configured",
        openai_api_key_status=key_status,
        environment=os.getenv("ENVIRONMENT", "development"),
        kv_enabled=services.kv.enabled,
        vector_backend=services.vector_store.backend,
        total_documents=len(corpus),
        indexed_documents=indexed,
    )


# ============================================================
# CHAT
# ============================================================

@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    request: Request,
    services: Services = Depends(get_services),
):

    start_time = time.time()

    try:

        result = await services.chat.answer(
            payload.message,
            search_mode=payload.search_mode,
            history=payload.history,
            bypass_cache=wants_cache_bypass(request),
        )

    except CompletionError as e:
        raise completion_http_error(e, request, "/chat")

    latency = time.time() - start_time

    if result.refused:
        metrics_tracker.record_refusal()

    posthog_client.track_retrieval(
        distinct_id=request_id_of(request),
        search_mode=payload.search_mode.value,
        method=result.search_method,
        documents_retrieved=len(result.sources),
        top_score=result.top_score,
    )

    posthog_client.track_chat(
        distinct_id=request_id_of(request),
        message=payload.message,
        search_mode=payload.search_mode.value,
        latency=latency,
        refused=result.refused,
        sources=len(result.sources),
    )

    return ChatResponse(response=result.response, sources=result.sources)


# ============================================================
# UPLOAD DOCUMENT
# ============================================================

@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
):

    start_time = time.time()

    filename = file.filename or "document.pdf"

    if not filename.lower().endswith(tuple(ALLOWED_FILE_EXTENSIONS)):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type. Allowed: {', '.join(ALLOWED_FILE_EXTENSIONS)}",
        )

    data = await file.read()

    validate_file_size(data)

    doc = await services.ingestion.start_upload(filename)

    background_tasks.add_task(
        services.ingestion.process_upload,
        doc.id,
        filename,
        data,
    )

    posthog_client.track_document_upload(
        distinct_id=request_id_of(request),
        document_id=doc.id,
        filename=filename,
        size_bytes=len(data),
        latency=time.time() - start_time,
    )

    return UploadResponse(document_id=doc.id)


# ============================================================
# LIST DOCUMENTS
# ============================================================

@router.get("/documents", response_model=ListDocumentsResponse)
async def list_documents(services: Services = Depends(get_services)):

    documents = [
        DocumentInfo(
            id=doc.id,
            name=doc.name,
            type=doc.type,
            uploaded_at=doc.uploaded_at,
            status=doc.status,
            author=doc.author,
        )
        for doc in await services.repository.list()
    ]

    return ListDocumentsResponse(documents=documents)


# ============================================================
# PDF EXTRACTION
# ============================================================

@router.post("/pdf", response_model=PdfResponse)
async def process_pdf(
    pdf: UploadFile = File(...),
    settings: Optional[str] = Form(None),
):

    data = await pdf.read()

    validate_file_size(data)

    extraction = await extract_pdf_text_async(data)

    text = extraction.text
    sections = None

    if settings:

        try:
            parsed = PdfSettings.model_validate(json.loads(settings))
        except (ValueError, ValidationError) as e:

            logger.warning("PDF settings ignored", extra={"error": str(e)})

            parsed = PdfSettings()

        if parsed.start_section and parsed.end_section:
            sections = extract_section(text, parsed.start_section, parsed.end_section)

        if parsed.enable_formatting:

            text = format_text(text)

            if sections:
                sections = format_text(sections)

    return PdfResponse(
        text=text,
        extracted_sections=sections,
        metadata={"pages": extraction.pages, "info": extraction.info},
    )


# ============================================================
# TRANSLATION
# ============================================================

@router.post("/translate", response_model=TranslateResponse, response_model_exclude_none=True)
async def translate(
    payload: TranslateRequest,
    request: Request,
    services: Services = Depends(get_services),
):

    start_time = time.time()

    settings = payload.settings

    try:

        result = await services.translation.translate(
            payload.text,
            target_language=settings.target_language,
            model=settings.model,
            include_summary=settings.includes_summary,
            custom_prompt=settings.custom_prompt,
        )

    except CompletionError as e:
        raise completion_http_error(e, request, "/translate")

    posthog_client.track_translation(
        distinct_id=request_id_of(request),
        characters=len(payload.text),
        target_language=settings.target_language,
        include_summary=settings.includes_summary,
        latency=time.time() - start_time,
    )

    return TranslateResponse(translation=result.translation, summary=result.summary)


# ============================================================
# INGESTION
# ============================================================

@router.post("/ingest/urls", response_model=IngestResponse)
async def ingest_urls(
    payload: IngestUrlsRequest,
    services: Services = Depends(get_services),
):

    results = await services.ingestion.ingest_urls(payload.urls)

    return IngestResponse(count=sum(1 for r in results if r.ok), results=results)


@router.post("/ingest/local", response_model=IngestResponse)
async def ingest_local(services: Services = Depends(get_services)):

    try:
        results = await services.ingestion.ingest_local()
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return IngestResponse(count=sum(1 for r in results if r.ok), results=results)


# ============================================================
# MAINTENANCE
# ============================================================

@router.post("/maintenance/backfill", response_model=MaintenanceResponse)
async def backfill(services: Services = Depends(get_services)):

    migrated = await services.repository.backfill()

    return MaintenanceResponse(ok=True, count=migrated)


@router.post("/maintenance/reset", response_model=MaintenanceResponse)
async def reset(services: Services = Depends(get_services)):

    removed = await services.repository.reset()

    try:
        await services.vector_store.reset()
    except BackendError as e:
        logger.warning("Vector store reset failed", extra={"error": str(e)})

    return MaintenanceResponse(ok=True, count=removed)


# ============================================================
# METRICS ENDPOINT
# ============================================================

@router.get("/metrics")
def get_metrics():

    metrics = dict(metrics_tracker.get_metrics())

    metrics["p95_latency"] = metrics_tracker.get_latency_percentile(95)

    metrics.pop("latencies", None)

    return metrics
