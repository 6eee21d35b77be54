# mealplanner/services/llm_client.py
"""
Completion client: the single place that talks to the language model.

- Blocking OpenAI SDK calls are executed off the event loop.
- Transient errors (rate limits, timeouts, dropped connections) are retried
  with a small linear backoff; authentication errors are not.
- Callers only ever see text or a ModelError; raw API errors stay in the logs.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Protocol

from openai import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    AzureOpenAI,
    OpenAI,
    OpenAIError,
    RateLimitError,
)

from mealplanner.config.settings import Settings, settings as default_settings
from mealplanner.services.errors import ModelError

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (RateLimitError, APITimeoutError, APIConnectionError)


class CompletionClient(Protocol):
    async def complete(
        self,
        prompt: str,
        temperature: float,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        ...


def _mask_key(k: Optional[str]) -> str:
    if not k:
        return "(none)"
    if len(k) <= 8:
        return k
    return f"{k[:4]}...{k[-4:]}"


def _extract_content(resp: Any) -> Optional[str]:
    """Pull the first choice's text out of an SDK response (object or dict)."""
    choices = getattr(resp, "choices", None)
    if choices is None and isinstance(resp, dict):
        choices = resp.get("choices")
    if not choices:
        return None
    choice = choices[0]
    if isinstance(choice, dict):
        return (choice.get("message") or {}).get("content") or choice.get("text")
    message = getattr(choice, "message", None)
    content = getattr(message, "content", None) if message is not None else None
    return content or getattr(choice, "text", None)


class OpenAICompletionClient:

    def __init__(self, config: Optional[Settings] = None, client: Any = None):
        self.settings = config or default_settings
        self.max_attempts = self.settings.openai_max_attempts
        self.backoff = 0.8

        if self.settings.use_azure:
            self.model = self.settings.azure_openai_deployment_name
        else:
            self.model = self.settings.openai_model

        # LLM client (may be None when not configured)
        self.openai_client = client
        if self.openai_client is None:
            self.openai_client = self._build_client()

    def _build_client(self) -> Any:
        s = self.settings
        try:
            if s.use_azure and s.azure_openai_api_key:
                logger.info("✅ Azure OpenAI client configured (deployment=%s)", self.model)
                return AzureOpenAI(
                    api_key=s.azure_openai_api_key,
                    api_version=s.azure_openai_api_version,
                    azure_endpoint=s.azure_openai_endpoint,
                    timeout=s.openai_timeout_seconds,
                    max_retries=0,
                )
            if s.openai_api_key:
                logger.info("✅ OpenAI client configured (model=%s)", self.model)
                return OpenAI(
                    api_key=s.openai_api_key,
                    base_url=s.openai_base_url,
                    timeout=s.openai_timeout_seconds,
                    max_retries=0,
                )
        except OpenAIError as exc:
            logger.exception("❌ Failed creating OpenAI client: %s", exc)
            return None
        logger.info("ℹ️ OpenAI client not configured.")
        return None

    @property
    def configured(self) -> bool:
        return self.openai_client is not None

    async def complete(
        self,
        prompt: str,
        temperature: float,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        if self.openai_client is None:
            raise ModelError(
                "Language model client is not configured", operation="complete"
            )

        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        max_tokens = max_tokens or self.settings.openai_max_tokens

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            started = time.monotonic()
            try:
                loop = asyncio.get_running_loop()
                func = lambda: self.openai_client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
                resp = await loop.run_in_executor(None, func)
            except AuthenticationError as auth_exc:
                # Bad API key: log masked key info and abort (no retry)
                logger.error(
                    "OpenAI AuthenticationError: %s (key=%s)",
                    auth_exc,
                    _mask_key(self.settings.azure_openai_api_key or self.settings.openai_api_key),
                )
                raise ModelError(
                    "Authentication with the language model failed",
                    operation="complete",
                    context={"model": self.model},
                ) from auth_exc
            except TRANSIENT_ERRORS as exc:
                last_error = exc
                logger.warning(
                    "Transient OpenAI error on attempt %d/%d: %s",
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff * attempt)
                continue
            except OpenAIError as exc:
                logger.exception("OpenAI call failed: %s", exc)
                raise ModelError(
                    "Language model call failed",
                    operation="complete",
                    context={"model": self.model},
                ) from exc

            content = _extract_content(resp)
            elapsed = round(time.monotonic() - started, 3)
            if not content or not content.strip():
                logger.warning("OpenAI returned no content (model=%s, %.3fs)", self.model, elapsed)
                raise ModelError(
                    "Empty response from language model",
                    operation="complete",
                    context={"model": self.model},
                )
            logger.debug(
                "Completion ok model=%s attempt=%d elapsed=%.3fs chars=%d",
                self.model,
                attempt,
                elapsed,
                len(content),
            )
            return content

        raise ModelError(
            "Language model unavailable after retries",
            operation="complete",
            context={"model": self.model, "attempts": self.max_attempts},
        ) from last_error
