"""Gemini API backend for receipt line canonicalization."""

from __future__ import annotations

from . import ClassifierBackend


class GeminiBackend(ClassifierBackend):
    """Canonicalize receipt lines with Google Gemini in JSON mode."""

    name = "gemini"

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.5-flash",
        temperature: float = 0.2,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature

    async def complete(self, prompt: str) -> str:
        if not self._api_key:
            raise ValueError(
                "Gemini API key is not set. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(
            self._model,
            generation_config={
                "temperature": self._temperature,
                "response_mime_type": "application/json",
            },
        )

        response = await model.generate_content_async(prompt)
        return response.text
