"""
Scheduling drafts — in-progress date/time/notes/deposit choice per cart line.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace

from bookcart.config import settings
from bookcart.domain import SchedulingDraft, EMPTY_DRAFT

logger = logging.getLogger(__name__)


class DraftBook:
    """
    Drafts keyed by cart line id.

    Drafts are immutable values; every edit swaps in a new one, so a
    reference handed out earlier never changes under its holder.
    """

    def __init__(self, notes_max_length: int | None = None) -> None:
        self._drafts: dict[str, SchedulingDraft] = {}
        self._notes_max_length = notes_max_length or settings.NOTES_MAX_LENGTH

    def get(self, item_id: str) -> SchedulingDraft:
        return self._drafts.get(item_id, EMPTY_DRAFT)

    def update(self, item_id: str, **changes: object) -> SchedulingDraft:
        if "notes" in changes:
            changes["notes"] = self._bound_notes(str(changes["notes"] or ""))
        draft = replace(self.get(item_id), **changes)  # type: ignore[arg-type]
        self._drafts[item_id] = draft
        return draft

    def set_date(self, item_id: str, selected_date: str) -> SchedulingDraft:
        return self.update(item_id, selected_date=selected_date)

    def set_time(self, item_id: str, selected_time: str) -> SchedulingDraft:
        return self.update(item_id, selected_time=selected_time)

    def set_notes(self, item_id: str, notes: str) -> SchedulingDraft:
        return self.update(item_id, notes=notes)

    def set_deposit_only(self, item_id: str, is_deposit_only: bool) -> SchedulingDraft:
        return self.update(item_id, is_deposit_only=is_deposit_only)

    def discard(self, item_id: str) -> None:
        self._drafts.pop(item_id, None)

    def clear(self) -> None:
        self._drafts.clear()

    def as_mapping(self) -> Mapping[str, SchedulingDraft]:
        """Live view; callers that need isolation take a snapshot."""
        return self._drafts

    def __len__(self) -> int:
        return len(self._drafts)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._drafts

    def _bound_notes(self, notes: str) -> str:
        notes = notes.strip()
        if len(notes) > self._notes_max_length:
            logger.info("notes truncated to %d characters", self._notes_max_length)
            notes = notes[: self._notes_max_length]
        return notes


__all__ = ("DraftBook",)
