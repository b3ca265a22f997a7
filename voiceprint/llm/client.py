"""
voiceprint.llm.client - LLM backend abstraction using litellm.

The generator only ever needs prompt in, text out. LLMClient hides which
backend answers (a local Ollama or LM Studio server, or Claude/OpenAI when
the workspace allows cloud calls), retries transient failures with backoff,
and keeps a running token count for the CLI to report.
"""

from __future__ import annotations

import time
from typing import Any

from voiceprint.exceptions import LLMError, LLMPrivacyError, LLMResponseError
from voiceprint.logging import logger

LOCAL_API_BASES = {
    "ollama": "http://localhost:11434",
    "lmstudio": "http://localhost:1234/v1",
}
MODEL_PREFIXES = {
    "ollama": "ollama/",
    "lmstudio": "openai/",
    "claude": "anthropic/",
    "openai": "",
}
CLOUD_BACKENDS = frozenset({"claude", "openai"})
USAGE_KEYS = ("prompt_tokens", "completion_tokens", "total_tokens")


class LLMClient:
    """Prompt-in, text-out access to one configured model."""

    def __init__(
        self,
        backend: str = "ollama",
        model: str = "llama3.1:8b-instruct-q4_K_M",
        privacy_mode: str = "local",
        timeout: float = 120.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ) -> None:
        self.backend = backend
        self.model = model
        self.privacy_mode = privacy_mode
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._token_usage = dict.fromkeys(USAGE_KEYS, 0)

    def _get_model_string(self) -> str:
        return MODEL_PREFIXES.get(self.backend, "") + self.model

    def _check_privacy(self) -> None:
        if self.privacy_mode == "local" and self.backend in CLOUD_BACKENDS:
            raise LLMPrivacyError(
                f"Cloud LLM backend '{self.backend}' is blocked in local privacy mode. "
                "Set privacy_mode: hybrid in voiceprint.yaml to allow it."
            )

    def _request(self, prompt: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self._get_model_string(),
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if self.backend in LOCAL_API_BASES:
            request["api_base"] = LOCAL_API_BASES[self.backend]
        return request

    def _record_usage(self, response: Any) -> None:
        usage = getattr(response, "usage", None)
        if usage is None:
            return
        for key in USAGE_KEYS:
            self._token_usage[key] += getattr(usage, key, 0) or 0

    @staticmethod
    def _content(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise LLMResponseError("Empty response from LLM")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if content is None:
            raise LLMResponseError("No content in LLM message")
        return content

    def _backoff(self, attempt: int, error: Exception) -> float:
        delay = self.retry_delay * (2**attempt)
        if "rate limit" in str(error).lower():
            delay *= 2
        return delay

    def complete(
        self,
        prompt: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> str:
        """Send a prompt and return the completion text.

        Args:
            prompt: The prompt string
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature

        Returns:
            LLM response text

        Raises:
            LLMPrivacyError: If a cloud backend is used in local mode
            LLMResponseError: If the response has no usable content
            LLMError: If the request fails after all retries
        """
        self._check_privacy()

        try:
            import litellm
        except ImportError as e:
            raise LLMError("litellm not installed. Install with: pip install litellm") from e

        litellm.telemetry = False
        request = self._request(prompt, max_tokens, temperature)
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                response = litellm.completion(**request)
            except Exception as e:
                last_error = e
                logger.warning(
                    "LLM request %d/%d to %s failed: %s",
                    attempt + 1,
                    self.max_retries,
                    request["model"],
                    e,
                )
                if attempt < self.max_retries - 1:
                    time.sleep(self._backoff(attempt, e))
                continue

            self._record_usage(response)
            return self._content(response)

        raise LLMError(
            f"LLM request failed after {self.max_retries} retries: {last_error}"
        ) from last_error

    def get_token_usage(self) -> dict[str, int]:
        return self._token_usage.copy()


def create_client_from_config(config: Any) -> LLMClient:
    """Create an LLM client from a VoiceprintConfig."""
    return LLMClient(
        backend=config.llm_backend,
        model=config.llm_model,
        privacy_mode=config.privacy_mode,
        timeout=config.generation.timeout_seconds,
    )
