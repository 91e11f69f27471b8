"""Clients for a local Ollama model."""

from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass
from typing import Any, Callable, cast

import requests  # type: ignore[import-untyped]

from codexcli.llm.base import LLMClient, LLMClientError, LLMConfigurationError
from codexcli.util.logging import get_logger
from codexcli.util.observability import ObservabilityManager
from codexcli.util.retry import RetryPolicy


class OllamaCLIClient(LLMClient):
    """Pipe the prompt to ``ollama run <model>`` on standard input."""

    def __init__(
        self,
        *,
        model: str,
        executable: str = "ollama",
        timeout_s: float | None = None,
        runner: Callable[..., subprocess.CompletedProcess[str]] | None = None,
    ) -> None:
        """Initialize the CLI client.

        Args:
            model: Local model name.
            executable: Ollama executable.
            timeout_s: Optional timeout for a single response.
            runner: ``subprocess.run``-compatible callable, replaceable in tests.
        """

        if not model:
            raise LLMConfigurationError("model is required for the Ollama client.")
        self._model = model
        self._executable = executable
        self._timeout_s = timeout_s
        self._run = runner or subprocess.run
        self._logger = get_logger(self.__class__.__name__)

    def complete(self, prompt: str) -> str:
        command = [self._executable, "run", self._model]
        self._logger.debug("Sending prompt to %s", command)
        try:
            completed = self._run(
                command,
                input=prompt,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise LLMClientError(f"{self._executable} timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise LLMClientError(f"Failed to launch '{self._executable}': {exc}") from exc
        if completed.returncode != 0:
            raise LLMClientError(
                f"{self._executable} exited with status {completed.returncode}: "
                f"{(completed.stderr or '').strip()}"
            )
        return cast(str, completed.stdout)


@dataclass(frozen=True)
class OllamaHTTPConfig:
    """Configuration for the Ollama HTTP client."""

    base_url: str
    model: str
    timeout_s: float
    max_retries: int


class _TransientHTTPError(LLMClientError):
    pass


class OllamaHTTPClient(LLMClient):
    """Call the ``/api/generate`` endpoint of a running Ollama server."""

    def __init__(
        self,
        *,
        base_url: str | None,
        model: str | None,
        timeout_s: float = 300.0,
        max_retries: int = 2,
        session: requests.Session | None = None,
        observability: ObservabilityManager | None = None,
    ) -> None:
        if not base_url:
            raise LLMConfigurationError("base_url is required for the Ollama HTTP client.")
        if not model:
            raise LLMConfigurationError("model is required for the Ollama HTTP client.")

        self._config = OllamaHTTPConfig(
            base_url=base_url.rstrip("/"),
            model=model,
            timeout_s=timeout_s,
            max_retries=max_retries,
        )
        self._session = session or requests.Session()
        self._observability = observability
        self._retry = RetryPolicy(
            max_attempts=max_retries + 1,
            delay_s=0.5,
            backoff=2.0,
            retry_on=lambda exc: isinstance(exc, _TransientHTTPError),
        )
        self._logger = get_logger(self.__class__.__name__)

    def complete(self, prompt: str) -> str:
        payload = {"model": self._config.model, "prompt": prompt, "stream": False}
        start = time.perf_counter()
        try:
            data = self._retry.call(
                lambda: self._post("/api/generate", payload), label="Ollama request"
            )
        except _TransientHTTPError as exc:
            raise LLMClientError(f"Ollama request failed: {exc}") from exc
        if self._observability:
            self._observability.metrics.record_duration(
                "llm.duration", time.perf_counter() - start
            )
        content = data.get("response")
        if not isinstance(content, str):
            raise LLMClientError("Unexpected response format from Ollama.")
        return content

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._config.base_url}{path}"
        try:
            response = self._session.post(url, json=payload, timeout=self._config.timeout_s)
        except requests.RequestException as exc:
            raise _TransientHTTPError(str(exc)) from exc
        if response.status_code >= 400:
            message = f"status {response.status_code}: {response.text}"
            if self._should_retry(response.status_code):
                raise _TransientHTTPError(message)
            raise LLMClientError(f"Ollama request failed with {message}")
        try:
            data = response.json()
        except ValueError as exc:
            raise LLMClientError("Unexpected response format from Ollama.") from exc
        if not isinstance(data, dict):
            raise LLMClientError("Unexpected response format from Ollama.")
        return cast(dict[str, Any], data)

    @staticmethod
    def _should_retry(status_code: int) -> bool:
        return status_code in {429, 500, 502, 503, 504}

