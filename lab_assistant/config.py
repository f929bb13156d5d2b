# lab_assistant/config.py
"""
Configuration for the Lab Thesis Assistant.

This file centralizes all tunable parameters for ingestion, retrieval
and chat. Changes here affect system behavior without code modifications.
Values that depend on the deployment are read from the environment.
"""

import os


# ========== OPENAI ==========

OPENAI_API_KEY_ENV = "OPENAI_API_KEY"
OPENAI_KEY_PLACEHOLDER = "your_openai_api_key_here"

CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o")
CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 2000

TRANSLATION_MODEL = os.getenv("TRANSLATION_MODEL", "gpt-4o")


# ========== EMBEDDING CONFIGURATION ==========

EMBEDDING_MODEL = "text-embedding-3-small"  # 1536 dimensions
EMBEDDING_DIMENSION = 1536
EMBEDDING_MAX_CHARS = 8000  # per request input, token limit safety
EMBED_BATCH_SIZE = 32


# ========== DOCUMENT PROCESSING ==========

MAX_CONTENT_CHARS = 100000  # stored content cap after preprocessing
MAX_UPLOAD_SIZE_MB = 50
ALLOWED_FILE_EXTENSIONS = [".pdf", ".txt", ".md"]

# Vector chunks are fixed-width character windows
VECTOR_CHUNK_SIZE = 1500
VECTORIZE_MAX_CHARS = 20000  # per document at ingestion time

# Gradual ensure: documents vectorized per chat request
GRADUAL_VECTORS_PER_RUN = 3
GRADUAL_VECTORS_MAX_CHARS = 8000

# Filename fragments that mark a thesis
THESIS_FILENAME_MARKERS = ["卒論", "修論"]

DEFAULT_THESIS_PATH = os.getenv("DEFAULT_THESIS_PATH")


# ========== RETRIEVAL CONFIGURATION ==========

TOP_K = 5
SEMANTIC_MAX_CANDIDATES = 10  # above this the semantic path falls back to keywords
SEMANTIC_ON_THE_FLY_MAX_CHARS = 4500  # 3 chunks for documents without stored vectors
SIMILARITY_FLOOR = 0.1

# Keyword scoring weights. Placeholder defaults pending evaluation data.
SCORING_WEIGHTS = {
    "author_exact": 15,
    "author_partial": 10,
    "title": 8,
    "title_technical": 3,
    "content_single": 1,
    "content_multi": 3,
    "content_frequent": 5,
    "content_technical": 2,
    "field_cohesion": 5,
}

CONTENT_MULTI_MIN = 2
CONTENT_FREQUENT_MIN = 5
FIELD_COHESION_MIN = 3

# Below this keyword score the chat answers with the no-data template
KEYWORD_MIN_CONFIDENCE = 2


# ========== CACHE ==========

CORPUS_CACHE_TTL_SECONDS = 30 * 60
CACHE_BYPASS_HEADER = "x-bypass-cache"


# ========== CHAT ==========

HISTORY_TURNS = 6
CONTEXT_EXCERPT_CHARS = 8000  # per document
CONTEXT_MAX_CHARS = 24000
SNIPPET_CHARS = 160


# ========== STORAGE BACKENDS ==========

# Key-value REST service (Upstash / Vercel KV compatible)
KV_REST_API_URL = os.getenv("KV_REST_API_URL")
KV_REST_API_TOKEN = os.getenv("KV_REST_API_TOKEN")
KV_TIMEOUT_SECONDS = 10.0

# Object storage root (local directory)
BLOB_STORAGE_DIR = os.getenv("BLOB_STORAGE_DIR", "storage/blob")
BLOB_METADATA_PATH = "kb/metadata.json"

# Vector backend: "kv" (flat chunk lists) or "qdrant"
VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "kv")

QDRANT_URL = os.getenv("QDRANT_URL")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY")
QDRANT_COLLECTION = os.getenv("QDRANT_COLLECTION", "lab_thesis_chunks")


# ========== TRANSLATION ==========

TRANSLATION_CHUNK_CHARS = 3000
SUMMARY_CHUNK_CHARS = 4000


# ========== OBSERVABILITY ==========

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
METRICS_PATH = os.getenv("METRICS_PATH", "storage/metrics.json")


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. Flat vector list in the KV service:
   - Tens of documents, linear scan is fine
   - No ANN index, no eviction

2. SEMANTIC_MAX_CANDIDATES = 10:
   - Large prefilter sets are ranked by keywords instead
   - Keeps embedding calls per request bounded

3. CORPUS_CACHE_TTL_SECONDS = 30 min + version counter:
   - A stale corpus can be served for up to the TTL on other instances
   - Best effort, no locking
"""
