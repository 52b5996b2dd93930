"""Extraction backend that delegates to the hotel API's AI endpoints."""

from __future__ import annotations

from ..client import ExtractionResponse, ValdorAPI
from . import ExtractionBackend


class RemoteExtractionBackend(ExtractionBackend):
    """Send images and URLs to the server-side OCR / vision pipeline."""

    def __init__(self, api: ValdorAPI) -> None:
        self._api = api

    async def extract_image(
        self,
        data: bytes,
        filename: str = "menu.jpg",
        content_type: str = "image/jpeg",
    ) -> ExtractionResponse:
        return await self._api.extract_from_image(data, filename, content_type)

    async def extract_url(self, url: str) -> ExtractionResponse:
        return await self._api.extract_from_url(url)
