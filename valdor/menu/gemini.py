"""Gemini API backend for menu extraction."""

from __future__ import annotations

from ..client import ExtractionResponse
from . import ExtractionBackend
from .prompt import PROMPT, parse_model_response


class GeminiExtractionBackend(ExtractionBackend):
    """Extract menu items from a photo using Google Gemini."""

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        self._api_key = api_key
        self._model = model

    async def extract_image(
        self,
        data: bytes,
        filename: str = "menu.jpg",
        content_type: str = "image/jpeg",
    ) -> ExtractionResponse:
        if not self._api_key:
            raise ValueError(
                "Gemini API key is not set. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install 'valdor-ops[gemini]'"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        parts: list = [{"mime_type": content_type, "data": data}, PROMPT]
        response = await model.generate_content_async(parts)
        return parse_model_response(response.text, source=filename)
