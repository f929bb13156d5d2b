# lab_assistant/models.py
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lab_assistant.errors import InvalidStatusTransition


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentType(str, Enum):
    THESIS = "thesis"
    PAPER = "paper"
    DOCUMENT = "document"


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class SearchMode(str, Enum):
    KEYWORD = "keyword"
    SEMANTIC = "semantic"


_ALLOWED_TRANSITIONS = {
    DocumentStatus.PROCESSING: {DocumentStatus.READY, DocumentStatus.ERROR},
    DocumentStatus.READY: set(),
    DocumentStatus.ERROR: set(),
}


class Document(BaseModel):
    """A thesis, paper or note in the knowledge base."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: DocumentType = DocumentType.DOCUMENT
    content: str = ""
    author: Optional[str] = None
    year: Optional[int] = None
    status: DocumentStatus = DocumentStatus.PROCESSING
    uploaded_at: datetime = Field(default_factory=utcnow, alias="uploadedAt")

    @property
    def title(self) -> str:
        return self.name

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())

    def with_patch(self, patch: Dict[str, Any]) -> "Document":
        """
        Return a copy with the patch applied.

        Status may move processing -> ready|error once; repeating the
        current status is allowed (re-ingest of the same file).
        """
        new_status = patch.get("status")

        if new_status is not None:

            new_status = DocumentStatus(new_status)

            if (
                new_status != self.status
                and new_status not in _ALLOWED_TRANSITIONS[self.status]
            ):
                raise InvalidStatusTransition(
                    f"{self.id}: {self.status.value} -> {new_status.value}"
                )

            patch = {**patch, "status": new_status}

        return self.model_copy(update=patch)

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class VectorChunk(BaseModel):
    """A fixed-length slice of a document plus its embedding."""

    idx: int
    text: str
    embedding: List[float]


# ============================================================
# CHAT
# ============================================================

class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    """Request to the lab chatbot."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., max_length=4000)
    search_mode: SearchMode = Field(SearchMode.SEMANTIC, alias="searchMode")
    history: List[ChatMessage] = Field(default_factory=list)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        """Ensure message is not just whitespace."""
        if not v.strip():
            raise ValueError("Message is required")
        return v.strip()


class ChatSource(BaseModel):
    id: str
    title: str
    author: Optional[str] = None
    year: Optional[int] = None
    score: float
    snippet: str


class ChatResponse(BaseModel):
    response: str
    sources: List[ChatSource]


# ============================================================
# DOCUMENTS
# ============================================================

class UploadResponse(BaseModel):
    """Response after uploading a document."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Upload started"
    document_id: str = Field(..., alias="documentId")


class DocumentInfo(BaseModel):
    """Information about a stored document."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: DocumentType
    uploaded_at: datetime = Field(..., alias="uploadedAt")
    status: DocumentStatus
    author: Optional[str] = None


class ListDocumentsResponse(BaseModel):
    """Response listing all documents in the system."""

    documents: List[DocumentInfo]


# ============================================================
# INGESTION / MAINTENANCE
# ============================================================

class IngestUrlsRequest(BaseModel):
    urls: List[str] = Field(..., min_length=1)


class IngestItemResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str
    ok: bool
    document_id: Optional[str] = Field(None, alias="documentId")
    reason: Optional[str] = None


class IngestResponse(BaseModel):
    success: bool = True
    count: int
    results: List[IngestItemResult]


class MaintenanceResponse(BaseModel):
    ok: bool
    count: Optional[int] = None


# ============================================================
# PDF / TRANSLATION
# ============================================================

class PdfSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_section: Optional[str] = Field(None, alias="startSection")
    end_section: Optional[str] = Field(None, alias="endSection")
    enable_formatting: bool = Field(False, alias="enableFormatting")


class PdfResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    extracted_sections: Optional[str] = Field(None, alias="extractedSections")
    metadata: Dict[str, Any]


class TranslationSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_language: str = Field("日本語", alias="targetLanguage")
    model: Optional[str] = None
    includes_summary: bool = Field(False, alias="includesSummary")
    custom_prompt: str = Field("", alias="customPrompt")


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1)
    settings: TranslationSettings


class TranslateResponse(BaseModel):
    translation: Optional[str] = None
    summary: Optional[str] = None


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    openai_api_key_configured: bool
    openai_api_key_status: str
    environment: str
    kv_enabled: bool
    vector_backend: str
    total_documents: int
    indexed_documents: int
