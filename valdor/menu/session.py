"""Extraction wizard state machine: input → processing → review → complete."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..client import APIError, ExtractionResponse
from ..results import Outcome, OutcomeKind
from . import CandidateRecord, ExtractionBackend
from .commit import CommitBatcher, CommitResult
from .normalizer import CategoryPolicy, normalize
from .validation import (
    MAX_UPLOAD_BYTES,
    ValidationError,
    confidence_level,
    image_quality_hint,
    validate_patch,
    validate_upload,
    validate_url,
)

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    INPUT = "input"
    PROCESSING = "processing"
    REVIEW = "review"
    COMPLETE = "complete"


class InputMode(str, Enum):
    IMAGE = "image"
    URL = "url"


class EmptyCause(str, Enum):
    """Why an extraction that technically succeeded produced nothing."""

    UNREADABLE_TEXT = "unreadable_text"
    LOW_CONFIDENCE = "low_confidence"
    NO_MENU_STRUCTURE = "no_menu_structure"


REMEDIATION_HINTS: dict[EmptyCause, str] = {
    EmptyCause.UNREADABLE_TEXT: (
        "Image text is unreadable. Use a high-resolution photo (>500 KB), "
        "good lighting and sharp focus, or try URL extraction instead."
    ),
    EmptyCause.LOW_CONFIDENCE: (
        "Low confidence extraction. Photograph the menu straight on, "
        "avoid shadows and glare, or try URL extraction."
    ),
    EmptyCause.NO_MENU_STRUCTURE: (
        "Text was found but no menu structure. Check that the source lists "
        "dishes with prices, or add the items manually."
    ),
}

_URL_EMPTY_HINT = (
    "Page structure not recognised. Check that the URL lists menu items with "
    "prices and does not require a login, or upload a photo instead."
)

_SERVICE_HINTS: dict[InputMode, dict[str, str]] = {
    InputMode.IMAGE: {
        "bad_format": "Invalid image format. Use JPEG, PNG or WEBP.",
        "too_large": "Image file too large. Compress it to under 10 MB.",
        "server_error": "Server processing error. Try again or use URL extraction.",
        "timeout": "Request timed out. Check the connection and try again.",
    },
    InputMode.URL: {
        "bad_format": "Invalid URL or format. Check the URL is correct and accessible.",
        "forbidden": "Access denied. The page may require a login or block scrapers.",
        "not_found": "Page not found. Verify the URL.",
        "server_error": "Server error. Try again or upload a photo instead.",
        "timeout": "Connection timed out. The website may be slow or unreachable.",
    },
}


def diagnose_empty(response: ExtractionResponse, mode: InputMode) -> tuple[EmptyCause, str]:
    """Pick the cause and remediation hint for an empty extraction."""
    if mode is InputMode.URL:
        return EmptyCause.NO_MENU_STRUCTURE, _URL_EMPTY_HINT
    if len(response.diagnostic_text.strip()) < 10:
        cause = EmptyCause.UNREADABLE_TEXT
    elif response.confidence < 50:
        cause = EmptyCause.LOW_CONFIDENCE
    else:
        cause = EmptyCause.NO_MENU_STRUCTURE
    return cause, REMEDIATION_HINTS[cause]


def service_error_message(error: APIError, mode: InputMode) -> str:
    hint = _SERVICE_HINTS[mode].get(error.category)
    return hint or error.message or "Unknown error"


@dataclass
class ImageSource:
    filename: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class ExtractionSession:
    """One run of the menu extraction wizard.

    Every operation returns an Outcome; nothing raises for user errors.
    A response that arrives after a reset, or after the stage moved on,
    is discarded.
    """

    def __init__(
        self,
        backend: ExtractionBackend,
        batcher: CommitBatcher,
        *,
        categories: Sequence[Mapping] | None = None,
        policy: CategoryPolicy | None = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        allowed_types: list[str] | None = None,
        allow_heic: bool = False,
        on_committed: Callable[[CommitResult], Any] | None = None,
    ) -> None:
        self._backend = backend
        self._batcher = batcher
        self._categories = list(categories or [])
        self._policy = policy or CategoryPolicy()
        self._max_upload_bytes = max_upload_bytes
        self._allowed_types = allowed_types
        self._allow_heic = allow_heic
        self._on_committed = on_committed

        self._generation = 0
        self._clear()

    def _clear(self) -> None:
        self._stage = Stage.INPUT
        self._mode = InputMode.IMAGE
        self._source_file: ImageSource | None = None
        self._source_url = ""
        self._candidates: list[CandidateRecord] = []
        self._selected: set[int] = set()
        self._editing: int | None = None
        self._busy = False
        self.last_confidence = 0.0
        self.last_commit: CommitResult | None = None
        self.last_error: str | None = None

    # ── State ──

    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def input_mode(self) -> InputMode:
        return self._mode

    @property
    def source_file(self) -> ImageSource | None:
        return self._source_file

    @property
    def source_url(self) -> str:
        return self._source_url

    @property
    def candidates(self) -> list[CandidateRecord]:
        return list(self._candidates)

    @property
    def selected(self) -> set[int]:
        return set(self._selected)

    @property
    def editing_index(self) -> int | None:
        return self._editing

    @property
    def busy(self) -> bool:
        return self._busy

    def selected_records(self) -> list[CandidateRecord]:
        return [self._candidates[i] for i in sorted(self._selected)]

    def _valid_index(self, index: int) -> bool:
        return 0 <= index < len(self._candidates)

    def _require_stage(self, stage: Stage) -> Outcome | None:
        if self._stage is not stage:
            return Outcome.warning(
                f"Not available while the wizard is in the {self._stage.value} step"
            )
        return None

    # ── Input step ──

    def select_image(
        self, filename: str, data: bytes, content_type: str | None = None
    ) -> Outcome:
        if (rejected := self._require_stage(Stage.INPUT)) is not None:
            return rejected
        try:
            content_type = validate_upload(
                filename,
                len(data),
                content_type,
                allowed_types=self._allowed_types,
                max_bytes=self._max_upload_bytes,
                allow_heic=self._allow_heic,
            )
        except ValidationError as e:
            return Outcome.invalid(e.message, e.field)

        self._mode = InputMode.IMAGE
        self._source_file = ImageSource(filename, data, content_type)
        quality = image_quality_hint(len(data))
        detail = None
        if quality == "low":
            detail = (
                "Low quality image; results may be poor. "
                "Use a higher resolution photo or URL extraction."
            )
        return Outcome.success(f"Loaded {filename}", detail=detail, data=quality)

    def clear_image(self) -> Outcome:
        if (rejected := self._require_stage(Stage.INPUT)) is not None:
            return rejected
        self._source_file = None
        return Outcome.success()

    def set_url(self, url: str) -> Outcome:
        if (rejected := self._require_stage(Stage.INPUT)) is not None:
            return rejected
        self._mode = InputMode.URL
        self._source_url = url
        return Outcome.success()

    def set_mode(self, mode: InputMode) -> Outcome:
        if (rejected := self._require_stage(Stage.INPUT)) is not None:
            return rejected
        self._mode = InputMode(mode)
        return Outcome.success()

    def _check_source(self) -> Outcome | None:
        if self._mode is InputMode.URL:
            try:
                self._source_url = validate_url(self._source_url)
            except ValidationError as e:
                return Outcome.invalid(e.message, e.field)
        elif self._source_file is None:
            return Outcome.invalid("Please select an image first", "file")
        return None

    async def _extract(self) -> ExtractionResponse:
        if self._mode is InputMode.URL:
            return await self._backend.extract_url(self._source_url)
        source = self._source_file
        return await self._backend.extract_image(
            source.data, source.filename, source.content_type
        )

    def _normalize_all(self, response: ExtractionResponse) -> list[CandidateRecord]:
        return [normalize(raw, self._categories, self._policy) for raw in response.items]

    def _failure_outcome(self, error: Exception) -> Outcome:
        if isinstance(error, APIError):
            message = service_error_message(error, self._mode)
            category = error.category
        else:
            message = str(error) or "Extraction failed"
            category = "unknown"
        self.last_error = message
        return Outcome(OutcomeKind.SERVICE_ERROR, message, detail=category)

    async def submit(self) -> Outcome:
        """Validate the source and run extraction (input → processing → review)."""
        if (rejected := self._require_stage(Stage.INPUT)) is not None:
            return rejected

        if (invalid := self._check_source()) is not None:
            return invalid

        self._stage = Stage.PROCESSING
        generation = self._generation
        logger.info("Extracting menu from %s", self._mode.value)

        try:
            response = await self._extract()
        except Exception as e:
            if generation != self._generation or self._stage is not Stage.PROCESSING:
                return Outcome(OutcomeKind.STALE, "Discarded a late extraction error")
            if not isinstance(e, APIError):
                logger.exception("Extraction failed unexpectedly")
            self._stage = Stage.INPUT
            self._candidates = []
            self._selected = set()
            return self._failure_outcome(e)

        if generation != self._generation or self._stage is not Stage.PROCESSING:
            return Outcome(OutcomeKind.STALE, "Discarded a late extraction response")

        records = self._normalize_all(response)
        if not records:
            cause, hint = diagnose_empty(response, self._mode)
            self._stage = Stage.INPUT
            logger.info("Extraction returned no items (%s)", cause.value)
            return Outcome(
                OutcomeKind.NO_RESULTS,
                "No menu items found",
                detail=hint,
                data=cause,
            )

        self._candidates = records
        self._selected = set(range(len(records)))
        self._editing = None
        self.last_confidence = response.confidence
        self._stage = Stage.REVIEW
        self.last_error = None
        logger.info("Extraction produced %d candidates", len(records))
        return Outcome.success(
            f"Extracted {len(records)} items",
            detail=confidence_level(response.confidence),
            data=len(records),
        )

    # ── Review step ──

    def toggle(self, index: int) -> Outcome:
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        if not self._valid_index(index):
            return Outcome.warning(f"No item at position {index}")
        self._selected ^= {index}
        return Outcome.success()

    def select_all(self) -> Outcome:
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        self._selected = set(range(len(self._candidates)))
        return Outcome.success()

    def select_none(self) -> Outcome:
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        self._selected = set()
        return Outcome.success()

    def start_edit(self, index: int) -> Outcome:
        """Open a candidate for editing, dropping any unsaved edit."""
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        if not self._valid_index(index):
            return Outcome.warning(f"No item at position {index}")
        self._editing = index
        return Outcome.success()

    def cancel_edit(self) -> None:
        self._editing = None

    def save_edit(self, index: int, patch: dict[str, Any]) -> Outcome:
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        if self._editing is None or self._editing != index:
            return Outcome.warning(f"Item {index} is not being edited")
        try:
            changes = validate_patch(self._candidates[index], patch)
        except ValidationError as e:
            return Outcome.invalid(e.message, e.field)
        self._candidates[index] = dataclasses.replace(self._candidates[index], **changes)
        self._editing = None
        return Outcome.success("Item updated")

    def delete(self, index: int) -> Outcome:
        """Remove a candidate and shift later selection/edit indices down."""
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        if self._busy:
            return Outcome.warning("Wait for the current operation to finish")
        if not self._valid_index(index):
            return Outcome.warning(f"No item at position {index}")

        del self._candidates[index]
        self._selected = {
            i if i < index else i - 1 for i in self._selected if i != index
        }
        if self._editing is not None:
            if self._editing == index:
                self._editing = None
            elif self._editing > index:
                self._editing -= 1
        return Outcome.success("Item removed")

    async def regenerate(self) -> Outcome:
        """Re-run extraction on the same source; the stage stays review."""
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        if self._busy:
            return Outcome.warning("Wait for the current operation to finish")
        if (invalid := self._check_source()) is not None:
            return invalid

        self._busy = True
        generation = self._generation
        try:
            response = await self._extract()
        except Exception as e:
            if generation != self._generation:
                return Outcome(OutcomeKind.STALE, "Discarded a late extraction error")
            if not isinstance(e, APIError):
                logger.exception("Regeneration failed unexpectedly")
            return self._failure_outcome(e)
        finally:
            if generation == self._generation:
                self._busy = False

        if generation != self._generation or self._stage is not Stage.REVIEW:
            return Outcome(OutcomeKind.STALE, "Discarded a late extraction response")

        records = self._normalize_all(response)
        if not records:
            cause, hint = diagnose_empty(response, self._mode)
            return Outcome(
                OutcomeKind.NO_RESULTS,
                "Regeneration found no items; kept the previous results",
                detail=hint,
                data=cause,
            )

        self._candidates = records
        self._selected = set(range(len(records)))
        self._editing = None
        self.last_confidence = response.confidence
        return Outcome.success(f"Regenerated {len(records)} items", data=len(records))

    async def commit(self) -> Outcome:
        """Save the selected candidates (review → complete when any saved)."""
        if (rejected := self._require_stage(Stage.REVIEW)) is not None:
            return rejected
        if self._busy:
            return Outcome.warning("Wait for the current operation to finish")
        if not self._selected:
            return Outcome.warning("Please select at least one item to save")

        self._busy = True
        generation = self._generation
        try:
            result = await self._batcher.commit(self._candidates, self._selected)
        finally:
            if generation == self._generation:
                self._busy = False

        if result.saved_count > 0 and self._on_committed is not None:
            self._on_committed(result)

        if generation != self._generation or self._stage is not Stage.REVIEW:
            return Outcome(OutcomeKind.STALE, "Session was reset during save", data=result)

        self.last_commit = result
        if result.saved_count == 0:
            # Stay in review with the failed items still selected for retry
            return Outcome.failure(
                f"Failed to save {result.failed_count} items",
                detail="; ".join(
                    f"{f.record.display_name}: {f.reason}" for f in result.failures
                ),
                data=result,
            )

        self._stage = Stage.COMPLETE
        if result.failed_count:
            return Outcome(
                OutcomeKind.PARTIAL_SUCCESS,
                f"{result.saved_count} items saved, {result.failed_count} failed",
                detail="; ".join(
                    f"{f.record.display_name}: {f.reason}" for f in result.failures
                ),
                data=result,
            )
        return Outcome.success(f"{result.saved_count} items saved", data=result)

    def retry_failed(self) -> Outcome:
        """Return to review holding only the records the last commit failed on."""
        if (rejected := self._require_stage(Stage.COMPLETE)) is not None:
            return rejected
        if self.last_commit is None or not self.last_commit.failures:
            return Outcome(OutcomeKind.NOTHING_TO_DO, "No failed items to retry")
        self._candidates = [f.record for f in self.last_commit.failures]
        self._selected = set(range(len(self._candidates)))
        self._editing = None
        self._stage = Stage.REVIEW
        return Outcome.success(f"{len(self._candidates)} items ready to retry")

    def reset(self) -> None:
        """Discard everything and go back to the input step."""
        self._generation += 1
        self._clear()
