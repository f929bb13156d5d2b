# lab_assistant/observability/posthog_client.py

"""
PostHog product analytics client.

Architecture contract:
- Does NOT replace logging
- Uses request_id as distinct_id
- Never blocks or breaks API execution
"""

import logging
import os
from typing import Any, Dict, Optional

from posthog import Posthog


logger = logging.getLogger(__name__)


class PostHogClient:
    """
    Safe PostHog wrapper.

    Guarantees:
    - Disabled without POSTHOG_API_KEY
    - Tracking never raises
    """

    def __init__(self, api_key: Optional[str] = None, host: Optional[str] = None):

        self._enabled = False
        self._client: Optional[Posthog] = None

        api_key = api_key or os.getenv("POSTHOG_API_KEY")
        host = host or os.getenv("POSTHOG_HOST", "https://app.posthog.com")

        if not api_key:
            logger.warning(
                "PostHog disabled: POSTHOG_API_KEY not set"
            )
            return

        try:

            self._client = Posthog(
                project_api_key=api_key,
                host=host,
                timeout=5,
                flush_interval=1,
            )

            self._enabled = True

            logger.info(
                "PostHog client initialized",
                extra={"host": host}
            )

        except Exception as e:

            logger.error(
                "PostHog initialization failed",
                extra={"error": str(e)}
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ==========================================================
    # INTERNAL SAFE TRACK
    # ==========================================================

    def _track(
        self,
        distinct_id: str,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog tracking failed",
                extra={
                    "event": event,
                    "error": str(e),
                }
            )

    # ==========================================================
    # DOCUMENT UPLOAD TRACKING
    # ==========================================================

    def track_document_upload(
        self,
        distinct_id: str,
        document_id: str,
        filename: str,
        size_bytes: int,
        latency: float,
    ):

        self._track(
            distinct_id,
            "document_uploaded",
            {
                "document_id": document_id,
                "filename": filename,
                "size_bytes": size_bytes,
                "latency_seconds": latency,
            },
        )

    # ==========================================================
    # CHAT TRACKING
    # ==========================================================

    def track_chat(
        self,
        distinct_id: str,
        message: str,
        search_mode: str,
        latency: float,
        refused: bool,
        sources: int,
    ):

        self._track(
            distinct_id,
            "chat_answered",
            {
                "message_length": len(message),
                "search_mode": search_mode,
                "latency_seconds": latency,
                "refused": refused,
                "sources": sources,
            },
        )

    # ==========================================================
    # RETRIEVAL TRACKING
    # ==========================================================

    def track_retrieval(
        self,
        distinct_id: str,
        search_mode: str,
        method: Optional[str],
        documents_retrieved: int,
        top_score: Optional[float],
    ):

        self._track(
            distinct_id,
            "retrieval_completed",
            {
                "search_mode": search_mode,
                "method": method,
                "documents_retrieved": documents_retrieved,
                "top_score": top_score,
            },
        )

    # ==========================================================
    # TRANSLATION TRACKING
    # ==========================================================

    def track_translation(
        self,
        distinct_id: str,
        characters: int,
        target_language: str,
        include_summary: bool,
        latency: float,
    ):

        self._track(
            distinct_id,
            "text_translated",
            {
                "characters": characters,
                "target_language": target_language,
                "include_summary": include_summary,
                "latency_seconds": latency,
            },
        )

    # ==========================================================
    # ERROR TRACKING
    # ==========================================================

    def track_error(
        self,
        distinct_id: str,
        error_type: str,
        error_message: str,
        endpoint: str,
    ):

        self._track(
            distinct_id,
            "system_error",
            {
                "error_type": error_type,
                "error_message": error_message,
                "endpoint": endpoint,
            },
        )

    def shutdown(self):

        if self._client is None:
            return

        try:
            self._client.shutdown()
        except Exception as e:
            logger.warning("PostHog shutdown failed", extra={"error": str(e)})


# ==============================================================
# GLOBAL SINGLETON
# ==============================================================

posthog_client = PostHogClient()
