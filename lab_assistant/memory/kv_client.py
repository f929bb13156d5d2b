# lab_assistant/memory/kv_client.py

"""
Key-value service clients.

Two variants share one async interface:

• RestKVClient     Redis-over-REST service (Upstash / Vercel KV protocol)
• InMemoryKVClient process-local dict, used when no service is configured

Values are JSON-encoded on write and decoded on read, so callers store
plain lists and dicts. Every failure surfaces as KVBackendError.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from lab_assistant.config import (
    KV_REST_API_TOKEN,
    KV_REST_API_URL,
    KV_TIMEOUT_SECONDS,
)
from lab_assistant.errors import KVBackendError

logger = logging.getLogger(__name__)


def _encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _decode(raw: Any) -> Any:

    if raw is None or not isinstance(raw, str):
        return raw

    try:
        return json.loads(raw)
    except ValueError:
        return raw


class KVClient:
    """
    Async key-value interface used by the repository and vector store.
    """

    enabled = True

    async def get(self, key: str) -> Any:
        raise NotImplementedError

    async def mget(self, keys: List[str]) -> List[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def delete(self, *keys: str) -> int:
        raise NotImplementedError

    async def incr(self, key: str) -> int:
        raise NotImplementedError

    async def zadd(self, key: str, score: float, member: str) -> None:
        raise NotImplementedError

    async def zrange(self, key: str, start: int = 0, stop: int = -1) -> List[str]:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


# ============================================================
# REST CLIENT
# ============================================================

class RestKVClient(KVClient):
    """
    Sends Redis commands as JSON arrays to a REST endpoint.

    Request:  POST <url>  ["SET", "key", "value"]
    Response: {"result": ...} or {"error": "..."}
    """

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = KV_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):

        if not url or not token:
            raise ValueError("KV REST url and token are required")

        self._client = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

        logger.info(
            "KV client initialized",
            extra={"kv_url": url},
        )

    async def _command(self, *args: Any) -> Any:

        command = [str(a) for a in args]

        try:

            response = await self._client.post("", json=command)

            response.raise_for_status()

            data = response.json()

        except (httpx.HTTPError, ValueError) as e:

            logger.error(
                "KV command failed",
                extra={"command": command[0], "error": str(e)},
            )

            raise KVBackendError(f"KV {command[0]} failed: {e}") from e

        if isinstance(data, dict) and data.get("error"):
            raise KVBackendError(f"KV {command[0]} error: {data['error']}")

        return data.get("result") if isinstance(data, dict) else data

    async def get(self, key: str) -> Any:
        return _decode(await self._command("GET", key))

    async def mget(self, keys: List[str]) -> List[Any]:

        if not keys:
            return []

        raw = await self._command("MGET", *keys)

        return [_decode(item) for item in (raw or [])]

    async def set(self, key: str, value: Any) -> None:
        await self._command("SET", key, _encode(value))

    async def delete(self, *keys: str) -> int:

        if not keys:
            return 0

        return int(await self._command("DEL", *keys) or 0)

    async def incr(self, key: str) -> int:
        return int(await self._command("INCR", key))

    async def zadd(self, key: str, score: float, member: str) -> None:
        await self._command("ZADD", key, score, member)

    async def zrange(self, key: str, start: int = 0, stop: int = -1) -> List[str]:
        return list(await self._command("ZRANGE", key, start, stop) or [])

    async def aclose(self) -> None:
        await self._client.aclose()


# ============================================================
# IN-MEMORY CLIENT
# ============================================================

class InMemoryKVClient(KVClient):
    """
    Process-local variant. Values round-trip through JSON like the
    REST client so both behave the same for callers.
    """

    def __init__(self, enabled: bool = True):

        self.enabled = enabled
        self._data: Dict[str, str] = {}
        self._zsets: Dict[str, Dict[str, float]] = {}

    async def get(self, key: str) -> Any:
        return _decode(self._data.get(key))

    async def mget(self, keys: List[str]) -> List[Any]:
        return [_decode(self._data.get(k)) for k in keys]

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = _encode(value)

    async def delete(self, *keys: str) -> int:

        removed = 0

        for key in keys:

            if self._data.pop(key, None) is not None:
                removed += 1

            if self._zsets.pop(key, None) is not None:
                removed += 1

        return removed

    async def incr(self, key: str) -> int:

        value = int(_decode(self._data.get(key)) or 0) + 1

        self._data[key] = str(value)

        return value

    async def zadd(self, key: str, score: float, member: str) -> None:
        self._zsets.setdefault(key, {})[member] = score

    async def zrange(self, key: str, start: int = 0, stop: int = -1) -> List[str]:

        members = sorted(
            self._zsets.get(key, {}).items(),
            key=lambda item: (item[1], item[0]),
        )

        ordered = [m for m, _ in members]

        end = None if stop == -1 else stop + 1

        return ordered[start:end]


def build_kv_client() -> KVClient:
    """
    REST client when KV_REST_API_URL/TOKEN are set, else a disabled
    in-memory client.
    """

    if KV_REST_API_URL and KV_REST_API_TOKEN:
        return RestKVClient(KV_REST_API_URL, KV_REST_API_TOKEN)

    logger.warning("KV disabled: KV_REST_API_URL / KV_REST_API_TOKEN not set")

    return InMemoryKVClient(enabled=False)
