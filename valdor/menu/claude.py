"""Claude API backend for menu extraction."""

from __future__ import annotations

import base64

from ..client import ExtractionResponse
from . import ExtractionBackend
from .prompt import PROMPT, parse_model_response


class ClaudeExtractionBackend(ExtractionBackend):
    """Extract menu items from a photo using Claude's vision capability."""

    def __init__(
        self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929"
    ) -> None:
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
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install 'valdor-ops[claude]'"
            ) from None

        content: list[dict] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": content_type,
                    "data": base64.standard_b64encode(data).decode(),
                },
            },
            {"type": "text", "text": PROMPT},
        ]

        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=8192,
            messages=[{"role": "user", "content": content}],
        )

        text = response.content[0].text
        return parse_model_response(text, source=filename)
