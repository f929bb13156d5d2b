# lab_assistant/llm/client.py

import logging
import time
from typing import Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from lab_assistant.config import CHAT_MAX_TOKENS, CHAT_MODEL, CHAT_TEMPERATURE
from lab_assistant.errors import (
    CompletionAuthError,
    CompletionError,
    CompletionQuotaError,
    MissingCredentialsError,
)
from lab_assistant.memory.embedder import api_key_status

logger = logging.getLogger(__name__)


_QUOTA_MARKERS = ("billing", "quota")


def classify_openai_error(error: Exception) -> CompletionError:
    """
    Map an OpenAI SDK exception to the completion error taxonomy.
    """

    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return CompletionAuthError(f"OpenAI authentication failed: {error}")

    if isinstance(error, openai.RateLimitError):
        return CompletionQuotaError(f"OpenAI quota or rate limit exceeded: {error}")

    if isinstance(error, openai.APIStatusError):

        if error.status_code == 402 or any(m in str(error).lower() for m in _QUOTA_MARKERS):
            return CompletionQuotaError(f"OpenAI billing problem: {error}")

    return CompletionError(f"OpenAI API call failed: {error}")


class CompletionClient:
    """
    Chat completion oracle over the OpenAI API.

    Guarantees:
    • MissingCredentialsError when OPENAI_API_KEY is absent or a placeholder
    • every SDK failure is re-raised as a CompletionError subclass
    • provider latency is logged per call
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = CHAT_MODEL,
    ):

        self._client = client
        self.model = model

    def _get_client(self) -> AsyncOpenAI:

        if self._client is not None:
            return self._client

        if api_key_status() != "configured":
            raise MissingCredentialsError(
                "OpenAI API key not configured. Please set OPENAI_API_KEY."
            )

        self._client = AsyncOpenAI()

        return self._client

    # ============================================================
    # PUBLIC API
    # ============================================================

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[Dict[str, str]],
        user_message: str,
        *,
        model: Optional[str] = None,
        temperature: float = CHAT_TEMPERATURE,
        max_tokens: int = CHAT_MAX_TOKENS,
    ) -> str:

        client = self._get_client()

        messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
        messages += [{"role": m["role"], "content": m["content"]} for m in history]
        messages.append({"role": "user", "content": user_message})

        model = model or self.model

        start = time.time()

        try:

            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )

        except openai.OpenAIError as e:

            error = classify_openai_error(e)

            logger.error(
                "LLM provider failed",
                extra={
                    "provider": "openai",
                    "error_type": type(error).__name__,
                    "error": str(e),
                },
            )

            raise error from e

        logger.info(
            "LLM provider success",
            extra={
                "provider": "openai",
                "model": model,
                "latency_seconds": round(time.time() - start, 3),
                "messages": len(messages),
            },
        )

        if not response.choices:
            return ""

        return (response.choices[0].message.content or "").strip()
