"""Persist the selected candidates as menu items."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..client import APIError, ValdorAPI
from . import CandidateRecord
from .normalizer import to_payload

logger = logging.getLogger(__name__)


@dataclass
class CommitFailure:
    index: int  # position in the session's candidate list
    record: CandidateRecord
    reason: str


@dataclass
class CommitResult:
    saved_count: int = 0
    failed_count: int = 0
    failures: list[CommitFailure] = field(default_factory=list)
    saved: list[tuple[int, str]] = field(default_factory=list)  # (index, id)

    @property
    def saved_indices(self) -> list[int]:
        return [index for index, _ in self.saved]

    @property
    def failed_indices(self) -> list[int]:
        return [f.index for f in self.failures]

    def add_success(self, index: int, item_id: str) -> None:
        self.saved.append((index, item_id))
        self.saved_count += 1

    def add_failure(self, index: int, record: CandidateRecord, reason: str) -> None:
        self.failures.append(CommitFailure(index=index, record=record, reason=reason))
        self.failed_count += 1


def _take_by_name(outcomes: list[dict], name: str) -> dict | None:
    """Pop the first outcome whose saved name matches ``name``."""
    key = name.strip().casefold()
    for i, outcome in enumerate(outcomes):
        if str(outcome.get("name") or "").strip().casefold() == key:
            return outcomes.pop(i)
    return None


class CommitBatcher:
    """Save candidates one by one with per-record success accounting.

    A failure never stops the remaining records from being attempted.
    """

    def __init__(self, api: ValdorAPI, use_batch_endpoint: bool = False) -> None:
        self._api = api
        self._use_batch_endpoint = use_batch_endpoint

    async def commit(
        self,
        candidates: Sequence[CandidateRecord],
        selected: Iterable[int],
    ) -> CommitResult:
        result = CommitResult()
        indices = sorted(i for i in set(selected) if 0 <= i < len(candidates))

        pending: list[int] = []
        for index in indices:
            if not candidates[index].name_english.strip():
                result.add_failure(index, candidates[index], "Name is required")
            else:
                pending.append(index)

        if pending and self._use_batch_endpoint:
            if await self._commit_batch(candidates, pending, result):
                return self._finish(result)

        for index in pending:
            await self._commit_one(candidates, index, result)

        return self._finish(result)

    async def _commit_one(
        self,
        candidates: Sequence[CandidateRecord],
        index: int,
        result: CommitResult,
    ) -> None:
        record = candidates[index]
        try:
            item_id = await self._api.create_menu_item(to_payload(record))
        except APIError as e:
            logger.warning("Saving %r failed: %s", record.display_name, e.message)
            result.add_failure(index, record, e.message)
        except Exception as e:
            logger.exception("Unexpected error saving %r", record.display_name)
            result.add_failure(index, record, str(e) or type(e).__name__)
        else:
            result.add_success(index, item_id)

    async def _commit_batch(
        self,
        candidates: Sequence[CandidateRecord],
        pending: list[int],
        result: CommitResult,
    ) -> bool:
        """Try the batch endpoint. Returns False if the caller should fall back."""
        payloads = [to_payload(candidates[i]) for i in pending]
        try:
            outcomes = await self._api.create_menu_items_batch(payloads)
        except APIError as e:
            logger.warning(
                "Batch save failed (%s); falling back to per-item saves", e.message
            )
            return False
        except Exception:
            logger.exception("Unusable batch save response; falling back to per-item saves")
            return False

        by_position: dict[int, dict] = {}
        by_name: list[dict] = []
        for outcome in outcomes or []:
            if not isinstance(outcome, dict):
                continue
            position = outcome.get("index")
            if isinstance(position, int) and 0 <= position < len(pending):
                by_position.setdefault(position, outcome)
            else:
                by_name.append(outcome)

        for position, index in enumerate(pending):
            record = candidates[index]
            outcome = by_position.get(position)
            if outcome is None:
                outcome = _take_by_name(by_name, payloads[position]["name"])
            if outcome is None:
                result.add_failure(index, record, "No result returned for item")
            elif outcome.get("success", True) and not outcome.get("error"):
                result.add_success(index, str(outcome.get("id") or ""))
            else:
                result.add_failure(
                    index, record, str(outcome.get("error") or "Save failed")
                )
        if by_name:
            logger.warning(
                "%d saved item(s) could not be matched to a record", len(by_name)
            )
        return True

    @staticmethod
    def _finish(result: CommitResult) -> CommitResult:
        logger.info(
            "Commit finished: %d saved, %d failed",
            result.saved_count, result.failed_count,
        )
        return result
