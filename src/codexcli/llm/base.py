"""Base interfaces for AI backend clients."""

from __future__ import annotations

from abc import ABC, abstractmethod


class LLMClientError(RuntimeError):
    """Base exception for AI backend failures."""


class LLMConfigurationError(LLMClientError):
    """Raised when backend configuration is invalid or incomplete."""


class LLMClient(ABC):
    """Abstract interface for AI backends."""

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Send a prompt and return the full response text.

        Raises:
            LLMClientError: If the backend fails to produce a response.
        """
