"""Inference backend for the in-memory engine.

Text generation is delegated to an Ollama-compatible HTTP endpoint configured
with ``ConfigureModel``. Tokenization is byte-level and runs locally, so it
works without any endpoint:

- ids 0-255 are UTF-8 bytes
- ``BOS_ID`` / ``EOS_ID`` are the special tokens added on request
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
import tenacity

from ..errors import StoreError
from .records import GenerationResult, ModelConfig

logger = logging.getLogger(__name__)

BOS_ID = 256
EOS_ID = 257

DEFAULT_TIMEOUT_SECONDS = 120.0


# =============================================================================
# Retry Configuration
# =============================================================================


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception should trigger a retry."""
    return isinstance(exc, (httpx.TimeoutException, httpx.ConnectError))


_retry_transient = tenacity.retry(
    stop=tenacity.stop_after_attempt(3),
    wait=tenacity.wait_exponential(multiplier=1, min=1, max=4),
    retry=tenacity.retry_if_exception(_is_retryable),
    before_sleep=lambda rs: logger.debug(
        "Retrying generation request (attempt %d)", rs.attempt_number + 1
    ),
    reraise=True,
)


# =============================================================================
# Byte-level tokenizer
# =============================================================================


def encode_tokens(text: str, *, add_special_tokens: bool = False) -> list[int]:
    ids = list(text.encode("utf-8"))
    if add_special_tokens:
        return [BOS_ID, *ids, EOS_ID]
    return ids


def decode_tokens(ids: list[int]) -> str:
    """Decode ids back to text, dropping special tokens."""
    data = bytes(i for i in ids if 0 <= i < 256)
    return data.decode("utf-8", errors="replace")


# =============================================================================
# HTTP generator
# =============================================================================


class HttpGenerator:
    """Client for an Ollama-compatible ``/api/generate`` endpoint.

    Example:
        gen = HttpGenerator(ModelConfig(endpoint="http://localhost:11434", model="llama3.2"))
        result = gen.generate(model="llama3.2", prompt="Hello")
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        self._url = config.endpoint.rstrip("/")

    @property
    def timeout_seconds(self) -> float:
        if self._config.timeout_ms:
            return self._config.timeout_ms / 1000.0
        return DEFAULT_TIMEOUT_SECONDS

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_k: int | None = None,
        top_p: float | None = None,
        seed: int | None = None,
        stop_tokens: list[int] | None = None,
    ) -> GenerationResult:
        options: dict[str, Any] = {}
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        if temperature is not None:
            options["temperature"] = float(temperature)
        if top_k is not None:
            options["top_k"] = top_k
        if top_p is not None:
            options["top_p"] = float(top_p)
        if seed is not None:
            options["seed"] = seed
        if stop_tokens:
            options["stop"] = [decode_tokens([t]) for t in stop_tokens]

        payload = {"model": model, "prompt": prompt, "stream": False, "options": options}
        data = self._request(payload)

        text = data.get("response")
        if not isinstance(text, str):
            raise StoreError("INFERENCE_FAILED", "Unexpected generation response: missing response")

        return GenerationResult(
            text=text,
            stop_reason=str(data.get("done_reason") or "stop"),
            prompt_tokens=int(data.get("prompt_eval_count") or 0),
            completion_tokens=int(data.get("eval_count") or 0),
            model=str(data.get("model") or model),
        )

    def unload(self, model: str) -> None:
        """Ask the endpoint to evict ``model`` from memory."""
        self._request({"model": model, "keep_alive": 0})

    def _headers(self) -> dict[str, str]:
        if self._config.api_key:
            return {"Authorization": f"Bearer {self._config.api_key}"}
        return {}

    def _request(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            return self._post_generate(payload)
        except httpx.ConnectError as e:
            raise StoreError(
                "INFERENCE_FAILED", f"Cannot connect to model endpoint at {self._url}"
            ) from e
        except httpx.TimeoutException as e:
            raise StoreError(
                "INFERENCE_FAILED",
                f"Generation request timed out after {self.timeout_seconds}s",
            ) from e

    @_retry_transient
    def _post_generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a generate request with automatic retry."""
        url = f"{self._url}/api/generate"
        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                res = client.post(url, json=payload, headers=self._headers())
                res.raise_for_status()
                data = res.json()
        except (httpx.ConnectError, httpx.TimeoutException):
            raise
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise StoreError(
                    "MODEL_NOT_FOUND",
                    f"Model '{payload.get('model', 'unknown')}' not found at {self._url}",
                ) from e
            raise StoreError("INFERENCE_FAILED", f"Generation HTTP error: {e}") from e
        except httpx.HTTPError as e:
            raise StoreError("INFERENCE_FAILED", f"Generation request failed: {e}") from e
        except ValueError as e:
            raise StoreError("INFERENCE_FAILED", f"Invalid generation response: {e}") from e

        if not isinstance(data, dict):
            raise StoreError("INFERENCE_FAILED", "Unexpected generation response")
        return data
