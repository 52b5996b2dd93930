"""Menu extraction: candidate records, extraction backends, and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from ..client import ExtractionResponse

if TYPE_CHECKING:
    from ..client import ValdorAPI
    from ..config import ValdorConfig

UNNAMED_ITEM = "Unnamed Item"


@dataclass
class CandidateRecord:
    """A menu item proposed by the extraction service, not yet persisted."""

    name_english: str = ""
    name_local: str = ""  # secondary-language name (Tamil, Sinhala)
    description: str = ""
    price: Decimal = Decimal("0")
    category: str = ""  # category id when resolved against a category list
    ingredients: list[str] = field(default_factory=list)
    dietary_tags: set[str] = field(default_factory=set)
    is_vegetarian: bool = False
    is_spicy: bool = False
    confidence: float = 0.0  # 0〜100
    source_image_ref: str = ""
    image_url: str = ""
    cooking_time: int | None = None

    @property
    def display_name(self) -> str:
        return self.name_english.strip() or UNNAMED_ITEM


class ExtractionBackend(ABC):
    """Abstract base for turning a menu image or page into raw records."""

    @abstractmethod
    async def extract_image(
        self,
        data: bytes,
        filename: str = "menu.jpg",
        content_type: str = "image/jpeg",
    ) -> ExtractionResponse:
        """Extract raw menu item dicts from one image."""
        ...

    async def extract_url(self, url: str) -> ExtractionResponse:
        """Extract raw menu item dicts from a web page."""
        raise ValueError(
            f"{type(self).__name__} does not support URL extraction; "
            "use the remote backend"
        )


def create_backend(
    config: ValdorConfig, api: ValdorAPI | None = None
) -> ExtractionBackend:
    """Create an extraction backend based on configuration."""
    backend_name = config.extraction.backend

    match backend_name:
        case "remote":
            from ..client import ValdorAPI
            from .remote import RemoteExtractionBackend

            return RemoteExtractionBackend(api or ValdorAPI.from_config(config))
        case "claude":
            from .claude import ClaudeExtractionBackend

            return ClaudeExtractionBackend(
                api_key=config.extraction.claude.api_key,
                model=config.extraction.claude.model,
            )
        case "gemini":
            from .gemini import GeminiExtractionBackend

            return GeminiExtractionBackend(
                api_key=config.extraction.gemini.api_key,
                model=config.extraction.gemini.model,
            )
        case _:
            raise ValueError(
                f"Unknown extraction backend: {backend_name!r} "
                "(choose remote / claude / gemini)"
            )
