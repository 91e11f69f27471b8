"""AI backend client package."""

from codexcli.llm.base import LLMClient, LLMClientError, LLMConfigurationError
from codexcli.llm.ollama_client import OllamaCLIClient, OllamaHTTPClient
from codexcli.llm.registry import create_llm_client

__all__ = [
    "LLMClient",
    "LLMClientError",
    "LLMConfigurationError",
    "OllamaCLIClient",
    "OllamaHTTPClient",
    "create_llm_client",
]
