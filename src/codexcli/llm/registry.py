"""AI backend client factory."""

from __future__ import annotations

from codexcli.config import LLMConfig
from codexcli.llm.base import LLMClient, LLMConfigurationError
from codexcli.llm.ollama_client import OllamaCLIClient, OllamaHTTPClient
from codexcli.util.observability import ObservabilityManager


def create_llm_client(
    config: LLMConfig, *, observability: ObservabilityManager | None = None
) -> LLMClient:
    """Create an AI backend client from configuration.

    Args:
        config: Backend configuration settings.

    Returns:
        An initialized client.

    Raises:
        LLMConfigurationError: If the provider is unknown.
    """

    provider = config.provider.lower()
    if provider in {"ollama", "ollama-cli", "ollama_cli"}:
        return OllamaCLIClient(
            model=config.model,
            executable=config.executable,
            timeout_s=config.timeout_s,
        )
    if provider in {"ollama-http", "ollama_http"}:
        return OllamaHTTPClient(
            base_url=config.base_url,
            model=config.model,
            timeout_s=config.timeout_s,
            max_retries=config.max_retries,
            observability=observability,
        )
    raise LLMConfigurationError(f"Unknown LLM provider: {config.provider}")
