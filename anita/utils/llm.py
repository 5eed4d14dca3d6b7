from __future__ import annotations
from typing import Dict, List, Optional, Protocol
import logging
import time

import requests

from anita.config import settings
from anita.utils.request_ctx import get_request_id

_log = logging.getLogger(__name__)

# Separate connect timeout so an unreachable provider fails fast.
LLM_CONNECT_TIMEOUT = 5.0


class CompletionError(Exception):
    """Any failure talking to the completion provider.

    ``reason`` is a short label (timeout | transport | http | malformed | empty)
    used for logs and metrics.
    """

    def __init__(self, reason: str, message: str = ""):
        super().__init__(message or reason)
        self.reason = reason


class TextCompletionClient(Protocol):
    def complete(self, prompt: str, max_tokens: int, temperature: float) -> str: ...


def _post_chat(base: str, key: str, payload: dict, timeout: float) -> dict:
    """POST a chat completion to an OpenAI-compatible endpoint.

    Single attempt, no retry: callers on the request path degrade instead of
    waiting. Every failure surfaces as CompletionError.
    """
    root = base.rstrip("/")
    if not root.endswith("/v1"):
        root = f"{root}/v1"
    url = f"{root}/chat/completions"
    headers = {"Authorization": f"Bearer {key}", "Content-Type": "application/json"}
    eff_timeout = (min(LLM_CONNECT_TIMEOUT, timeout), timeout)
    try:
        r = requests.post(url, json=payload, headers=headers, timeout=eff_timeout)
    except requests.Timeout as e:
        raise CompletionError("timeout", f"LLM request timed out after {timeout}s") from e
    except requests.RequestException as e:
        raise CompletionError("transport", str(e)) from e
    if r.status_code >= 400:
        raise CompletionError("http", f"LLM HTTP error {r.status_code}: {r.text[:200]}")
    try:
        return r.json()
    except ValueError as e:
        raise CompletionError("malformed", "LLM response was not JSON") from e


def _first_message_content(data: dict) -> str:
    try:
        content = data["choices"][0]["message"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError) as e:
        raise CompletionError("malformed", "LLM response missing choices") from e
    if not isinstance(content, str) or not content.strip():
        raise CompletionError("empty", "LLM returned no content")
    return content.strip()


class LLMClient:
    """OpenAI-compatible chat client (sync; FastAPI runs sync handlers in its threadpool)."""

    def __init__(
        self,
        *,
        base: Optional[str] = None,
        key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        stub: Optional[bool] = None,
    ):
        self.base = base or settings.OPENAI_BASE_URL
        self.key = key if key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout if timeout is not None else settings.CHAT_LLM_TIMEOUT_S
        self.stub = settings.DEV_ALLOW_NO_LLM if stub is None else stub

    def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int = 1200,
        temperature: float = 0.8,
        timeout: Optional[float] = None,
    ) -> str:
        if self.stub:
            # Deterministic stub for dev
            return "(stub)"
        if not self.key:
            raise CompletionError("config", "OPENAI_API_KEY not configured")
        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        eff_timeout = timeout if timeout is not None else self.timeout
        t0 = time.perf_counter()
        _log.info(
            "LLM:call start rid=%s model=%s msgs=%d",
            get_request_id() or "-",
            self.model,
            len(messages),
        )
        data = _post_chat(self.base, self.key, payload, eff_timeout)
        text = _first_message_content(data)
        _log.info(
            "LLM:call ok rid=%s ms=%d",
            get_request_id() or "-",
            int((time.perf_counter() - t0) * 1000),
        )
        return text

    def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        return self.chat(
            [{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )


def get_llm_client() -> LLMClient:
    return LLMClient()


def get_completion_client(timeout: Optional[float] = None) -> Optional[LLMClient]:
    """Client for short auxiliary completions, or None when the LLM is disabled."""
    if settings.DEV_ALLOW_NO_LLM or not settings.OPENAI_API_KEY:
        return None
    eff = timeout if timeout is not None else settings.DESCRIPTION_LLM_TIMEOUT_S
    return LLMClient(timeout=min(eff, 10.0), stub=False)
