"""LLM transport backends for batch canonicalization, and their factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import ReceiptChefConfig


class ClassifierBackend(ABC):
    """Sends one prompt to an LLM and returns its raw text reply."""

    name: str = "llm"

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's text response for *prompt*.

        Any transport problem may surface as an exception; the caller turns
        it into a batch fallback.
        """
        ...


def create_backend(config: ReceiptChefConfig) -> ClassifierBackend:
    """Create an LLM backend based on configuration."""
    backend_name = config.llm.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiBackend

            return GeminiBackend(
                api_key=config.llm.gemini.api_key,
                model=config.llm.gemini.model,
                temperature=config.llm.gemini.temperature,
            )
        case "claude":
            from .claude import ClaudeBackend

            return ClaudeBackend(
                api_key=config.llm.claude.api_key,
                model=config.llm.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown LLM backend: {backend_name!r} (choose gemini or claude)"
            )
