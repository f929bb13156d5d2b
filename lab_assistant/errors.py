# lab_assistant/errors.py
"""
Typed failures shared across layers.

Routes translate these into HTTP status codes; everything below the
route layer raises them and never builds HTTP responses itself.
"""


# ============================================================
# ORACLES
# ============================================================

class CompletionError(RuntimeError):
    """Completion oracle failed for a reason other than auth or quota."""

    status_code = 502


class MissingCredentialsError(CompletionError):
    """OPENAI_API_KEY is not configured."""

    status_code = 500


class CompletionAuthError(CompletionError):
    """The oracle rejected the configured credentials."""

    status_code = 401


class CompletionQuotaError(CompletionError):
    """Quota exhausted or billing problem on the oracle account."""

    status_code = 429


class EmbeddingError(RuntimeError):
    """Raised when embedding generation fails."""


# ============================================================
# STORAGE
# ============================================================

class BackendError(RuntimeError):
    """A storage backend could not complete an operation."""

    backend = "unknown"


class MemoryBackendError(BackendError):
    backend = "memory"


class KVBackendError(BackendError):
    backend = "kv"


class BlobBackendError(BackendError):
    backend = "blob"


class VectorStoreError(BackendError):
    backend = "vector"


class DocumentNotFoundError(KeyError):
    pass


class InvalidStatusTransition(ValueError):
    pass


# ============================================================
# EXTRACTION
# ============================================================

class UnsupportedContentError(ValueError):
    """Fetched content has a type the loader cannot turn into text."""
