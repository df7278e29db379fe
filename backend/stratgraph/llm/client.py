"""
PURPOSE: Async client for OpenAI-compatible chat completion endpoints.

The LLM is an untrusted text oracle: this client only moves text in and
out. Transient failures (HTTP 429, 5xx, timeouts, connection errors) are
retried with exponential backoff; anything else fails fast with
LLMResponseError carrying the provider's own error message.

CALLED BY: strategy_builder/interpreter.py
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from stratgraph.config.settings import Settings, settings as default_settings
from stratgraph.core.exceptions import LLMResponseError
from stratgraph.utils.logger import get_logger

logger = get_logger("llm.client")


def _normalize_error_message(raw_message: Optional[str], fallback: str) -> str:
    """Collapse whitespace so logged and returned errors are never blank."""
    msg = " ".join(str(raw_message or "").strip().split())
    return msg[:240] if msg else fallback


def _extract_http_error_detail(response: httpx.Response) -> str:
    """Extract a meaningful detail from a non-2xx provider response."""
    fallback = f"HTTP {response.status_code}"
    try:
        payload = response.json()
    except ValueError:
        return _normalize_error_message(response.text, fallback=fallback)
    if isinstance(payload, dict):
        if isinstance(payload.get("error"), dict):
            return _normalize_error_message(payload["error"].get("message"), fallback=fallback)
        for key in ("message", "detail", "error"):
            if payload.get(key):
                return _normalize_error_message(payload.get(key), fallback=fallback)
    if isinstance(payload, list) and payload:
        return _normalize_error_message(str(payload[0]), fallback=fallback)
    return _normalize_error_message(response.text, fallback=fallback)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class LLMClient:
    """
    PURPOSE: Send one system + user prompt pair and return the completion text.

    Keeps call and token counters for the /health style stats endpoints.
    A custom httpx transport can be injected (tests use httpx.MockTransport).

    CALLED BY: StrategyInterpreter
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        provider: str = "openai",
        base_url: str = "https://api.openai.com/v1/chat/completions",
        temperature: float = 0.3,
        max_tokens: int = 2000,
        timeout: float = 60.0,
        max_retries: int = 3,
        retry_base_delay: float = 3.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._model = model
        self._provider = provider
        self._base_url = base_url
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._retry_base_delay = retry_base_delay
        self._transport = transport
        self._total_calls = 0
        self._total_tokens_used = 0
        self._total_retries = 0
        self._last_error: Optional[str] = None

        logger.info(
            "llm_client_initialized",
            provider=provider,
            model=model,
            base_url=base_url,
            max_retries=self._max_retries,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, **overrides: Any) -> "LLMClient":
        """Build a client from the LLM_* settings."""
        config = config or default_settings
        kwargs: Dict[str, Any] = {
            "api_key": config.LLM_API_KEY,
            "model": config.LLM_MODEL,
            "provider": config.LLM_PROVIDER,
            "base_url": config.resolve_llm_base_url(),
            "temperature": config.LLM_TEMPERATURE,
            "max_tokens": config.LLM_MAX_TOKENS,
            "timeout": config.LLM_TIMEOUT_SECONDS,
            "max_retries": config.LLM_MAX_RETRIES,
            "retry_base_delay": config.LLM_RETRY_BASE_DELAY,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def model(self) -> str:
        return self._model

    def _payload(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

    def _read_content(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise LLMResponseError("Provider response was not a JSON object")

        tokens_used = (data.get("usage") or {}).get("total_tokens", 0) or 0
        self._total_tokens_used += tokens_used

        choices = data.get("choices") or []
        if not choices:
            raise LLMResponseError("Provider response had no choices")
        first_choice = choices[0] if isinstance(choices[0], dict) else {}
        message_obj = first_choice.get("message") or {}
        content = message_obj.get("content") if isinstance(message_obj, dict) else None
        content_str = str(content or "").strip()
        if not content_str:
            raise LLMResponseError("Provider returned an empty completion")
        return content_str

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        return await client.post(
            self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        PURPOSE: Run one chat completion, retrying transient failures.

        Args:
            system_prompt: System role instruction (rendered from the catalog).
            user_prompt: User message carrying the strategy description.

        Returns:
            str: Completion text (not yet parsed).

        Raises:
            LLMResponseError: On a non-retryable error or once retries run out.
        """
        payload = self._payload(system_prompt, user_prompt)
        self._total_calls += 1

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for attempt in range(1, self._max_retries + 1):
                try:
                    response = await self._post(client, payload)
                except httpx.TransportError as e:
                    err_type = type(e).__name__
                    detail = _normalize_error_message(str(e), fallback=err_type)
                    logger.warning("llm_transport_error", error_type=err_type, error=detail, attempt=attempt)
                    if attempt < self._max_retries:
                        await self._backoff(attempt, reason=err_type)
                        continue
                    self._last_error = detail
                    raise LLMResponseError(f"LLM request failed: {detail}", {"error_type": err_type}) from e

                if response.is_success:
                    try:
                        data = response.json()
                    except ValueError as e:
                        self._last_error = "non-JSON provider response"
                        raise LLMResponseError("Provider returned a non-JSON response body") from e
                    content = self._read_content(data)
                    logger.info(
                        "llm_call_success",
                        provider=self._provider,
                        model=self._model,
                        attempt=attempt,
                        total_calls=self._total_calls,
                        total_tokens=self._total_tokens_used,
                    )
                    return content

                detail = _extract_http_error_detail(response)
                logger.error("llm_api_http_error", status=response.status_code, detail=detail, attempt=attempt)
                if _is_retryable_status(response.status_code) and attempt < self._max_retries:
                    await self._backoff(attempt, reason=f"HTTP {response.status_code}")
                    continue
                self._last_error = detail
                raise LLMResponseError(
                    f"LLM API error (HTTP {response.status_code}): {detail}",
                    {"status": response.status_code},
                )

        # Unreachable: the loop either returns or raises on its last attempt
        raise LLMResponseError("LLM request failed")

    async def _backoff(self, attempt: int, reason: str) -> None:
        wait = self._retry_base_delay * (2 ** (attempt - 1))
        self._total_retries += 1
        logger.info("llm_retry", attempt=attempt, max_retries=self._max_retries, wait=wait, reason=reason)
        await asyncio.sleep(wait)

    def get_stats(self) -> Dict[str, Any]:
        """
        PURPOSE: Get LLM usage statistics.

        Returns:
            Dict with provider, model, total_calls, total_tokens_used,
            total_retries and last_error.
        """
        return {
            "provider": self._provider,
            "model": self._model,
            "total_calls": self._total_calls,
            "total_tokens_used": self._total_tokens_used,
            "total_retries": self._total_retries,
            "last_error": self._last_error,
        }
