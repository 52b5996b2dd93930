"""Async REST client for the Valdor hotel API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from .config import ValdorConfig

logger = logging.getLogger(__name__)

EXTRACT_IMAGE_PATH = "/food-complete/ai/extract"
EXTRACT_URL_PATH = "/food-complete/ai/extract-from-url"
CATEGORIES_PATH = "/food/categories"
MENU_ITEMS_PATH = "/food/items"
MENU_BATCH_PATH = "/food/batch"
TASKS_PATH = "/task-management/tasks"


class APIError(Exception):
    """Raised when the API answers with an error or cannot be reached."""

    def __init__(
        self,
        status_code: int | None,
        message: str,
        *,
        timeout: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.timeout = timeout

    @property
    def category(self) -> str:
        """Coarse failure category used to pick a remediation hint."""
        if self.timeout:
            return "timeout"
        code = self.status_code
        if code in (400, 415, 422):
            return "bad_format"
        if code == 413:
            return "too_large"
        if code in (401, 403):
            return "forbidden"
        if code == 404:
            return "not_found"
        if code is not None and code >= 500:
            return "server_error"
        return "unknown"


@dataclass
class ExtractionResponse:
    """What the extraction service returned for one image or URL."""

    items: list[dict] = field(default_factory=list)
    confidence: float = 0.0
    diagnostic_text: str = ""
    source: str = ""


def _unwrap(payload: Any) -> Any:
    """Strip the ``{"success": ..., "data": ...}`` envelope if present."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase or f"HTTP {response.status_code}"


def parse_extraction(payload: Any, source: str = "") -> ExtractionResponse:
    """Build an ExtractionResponse from any of the envelopes the API uses."""
    data = _unwrap(payload)
    if isinstance(data, list):
        return ExtractionResponse(items=data, source=source)
    if not isinstance(data, dict):
        return ExtractionResponse(source=source)

    items = data.get("menuItems")
    if items is None:
        items = data.get("items", [])
    if not isinstance(items, list):
        items = []

    confidence = data.get("confidence", data.get("ocrConfidence", 0)) or 0
    try:
        confidence = float(confidence)
    except (TypeError, ValueError):
        confidence = 0.0

    return ExtractionResponse(
        items=[i for i in items if isinstance(i, dict)],
        confidence=confidence,
        diagnostic_text=str(data.get("ocrText") or data.get("extractedText") or ""),
        source=str(data.get("source") or source),
    )


class ValdorAPI:
    """Thin async wrapper over the hotel backend's JSON endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000/api",
        token: str = "",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: ValdorConfig) -> ValdorAPI:
        return cls(
            base_url=config.api.base_url,
            token=config.api.token,
            timeout=config.api.timeout,
        )

    async def __aenter__(self) -> ValdorAPI:
        self._get_client()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise APIError(None, "Request timed out", timeout=True) from e
        except httpx.TransportError as e:
            raise APIError(None, f"Connection failed: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.debug(
                "%s %s failed with %d: %s",
                method, path, response.status_code, message,
            )
            raise APIError(response.status_code, message)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise APIError(response.status_code, "Malformed JSON response") from e

    # ── Menu extraction ──

    async def extract_from_image(
        self,
        data: bytes,
        filename: str = "menu.jpg",
        content_type: str = "image/jpeg",
    ) -> ExtractionResponse:
        payload = await self._request(
            "POST",
            EXTRACT_IMAGE_PATH,
            files={"image": (filename, data, content_type)},
        )
        return parse_extraction(payload, source=filename)

    async def extract_from_url(self, url: str) -> ExtractionResponse:
        payload = await self._request("POST", EXTRACT_URL_PATH, json={"url": url})
        return parse_extraction(payload, source=url)

    # ── Menu items ──

    async def list_categories(self) -> list[dict]:
        data = _unwrap(await self._request("GET", CATEGORIES_PATH))
        if isinstance(data, dict):
            data = data.get("categories", [])
        return [c for c in data or [] if isinstance(c, dict)]

    async def create_menu_item(self, item: dict) -> str:
        """Create one menu item and return its id."""
        data = _unwrap(await self._request("POST", MENU_ITEMS_PATH, json=item))
        if isinstance(data, dict):
            created = data.get("item") or data.get("menuItem") or data
            return str(created.get("_id") or created.get("id") or "")
        return ""

    async def create_menu_items_batch(self, items: list[dict]) -> list[dict]:
        """Create several menu items in one call.

        When the server reports per-item ``results``, each entry is
        ``{"success": bool, "id": ..., "error": ..., "index": n}`` where
        ``index`` is the position of the submitted item. A bare
        ``savedItems`` list only covers the items that were stored, so those
        entries carry the saved ``name`` instead of an index.
        """
        data = _unwrap(
            await self._request("POST", MENU_BATCH_PATH, json={"items": items})
        )
        if isinstance(data, dict) and not isinstance(data.get("results"), list):
            saved = data.get("savedItems")
            if not isinstance(saved, list):
                return []
            return [
                {"success": True, "id": s.get("_id") or s.get("id"), "name": s.get("name")}
                for s in saved
                if isinstance(s, dict)
            ]
        results = data["results"] if isinstance(data, dict) else data
        if not isinstance(results, list):
            return []
        return [dict(r, index=i) for i, r in enumerate(results) if isinstance(r, dict)]

    # ── Tasks ──

    async def list_tasks(self, params: dict | None = None) -> list[dict]:
        query = {k: v for k, v in (params or {}).items() if v not in (None, "")}
        data = _unwrap(await self._request("GET", TASKS_PATH, params=query))
        if isinstance(data, dict):
            data = data.get("tasks", [])
        return [t for t in data or [] if isinstance(t, dict)]

    async def create_task(self, payload: dict) -> dict:
        data = _unwrap(await self._request("POST", TASKS_PATH, json=payload))
        if isinstance(data, dict) and isinstance(data.get("task"), dict):
            return data["task"]
        return data if isinstance(data, dict) else {}

    async def assign_task(self, task_id: str, staff_id: str) -> dict:
        return await self._request(
            "PUT", f"{TASKS_PATH}/{task_id}/assign", json={"staffId": staff_id}
        )

    async def cancel_task(self, task_id: str, reason: str) -> dict:
        return await self._request(
            "PUT", f"{TASKS_PATH}/{task_id}/cancel", json={"reason": reason}
        )

    async def update_task_status(
        self, task_id: str, status: str, notes: str = ""
    ) -> dict:
        body: dict[str, Any] = {"status": status}
        if notes:
            body["completionNotes"] = notes
        return await self._request(
            "PUT", f"{TASKS_PATH}/{task_id}/status", json=body
        )
