"""
Schedule validation — every cart line needs a real date and time.

Runs synchronously before any snapshot is taken, and again inside booking
creation against the snapshot.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum, auto

from kungfu import Result, Ok, Error

from bookcart.domain import CartLineItem, SchedulingDraft

_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s?(AM|PM)$", re.IGNORECASE)
_DURATION = re.compile(r"(\d+(?:\.\d+)?)\s*(hours?|hrs?|h|minutes?|mins?|m)\b", re.IGNORECASE)


# ═══════════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════════


def parse_date(text: str) -> date | None:
    """Calendar date from "YYYY-MM-DD" or an ISO timestamp; None if not a real day."""
    text = (text or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_time_to_minutes(text: str) -> int | None:
    """Minutes after midnight for "14:30" or "2:30 PM"; None if malformed."""
    text = (text or "").strip()
    if match := _TIME_12H.match(text):
        hours, minutes, period = int(match[1]), int(match[2]), match[3].upper()
        if not 1 <= hours <= 12 or minutes > 59:
            return None
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
        return hours * 60 + minutes
    if match := _TIME_24H.match(text):
        hours, minutes = int(match[1]), int(match[2])
        if hours > 23 or minutes > 59:
            return None
        return hours * 60 + minutes
    return None


def duration_minutes(text: str) -> int:
    """ "1 hour" -> 60, "1.5 hr" -> 90, "45 min" -> 45. Unknown -> 0."""
    match = _DURATION.search(text or "")
    if not match:
        return 0
    amount = float(match[1])
    if match[2].lower().startswith("h"):
        return round(amount * 60)
    return round(amount)


def format_minutes(total: int) -> str:
    hours, minutes = divmod(total % (24 * 60), 60)
    period = "PM" if hours >= 12 else "AM"
    display = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
    return f"{display}:{minutes:02d} {period}"


def end_time(start: str, duration: str) -> str:
    """Appointment end as "H:MM AM/PM". Falls back to start when unparseable."""
    start_minutes = parse_time_to_minutes(start)
    length = duration_minutes(duration)
    if start_minutes is None or not length:
        return start
    return format_minutes(start_minutes + length)


# ═══════════════════════════════════════════════════════════════════════════════
# Report
# ═══════════════════════════════════════════════════════════════════════════════


class IssueKind(Enum):
    EMPTY_CART = auto()
    MISSING_DATE = auto()
    MISSING_TIME = auto()
    INVALID_DATE = auto()
    INVALID_TIME = auto()


@dataclass(frozen=True, slots=True)
class ScheduleIssue:
    kind: IssueKind
    cart_item_id: str
    service_name: str

    @property
    def message(self) -> str:
        match self.kind:
            case IssueKind.EMPTY_CART:
                return "Your cart is empty."
            case IssueKind.MISSING_DATE:
                return f"{self.service_name} needs a date"
            case IssueKind.MISSING_TIME:
                return f"{self.service_name} needs a time"
            case IssueKind.INVALID_DATE:
                return f"Invalid date for {self.service_name}"
            case IssueKind.INVALID_TIME:
                return f"Invalid time format for {self.service_name}"


_INCOMPLETE = (IssueKind.MISSING_DATE, IssueKind.MISSING_TIME)


@dataclass(frozen=True, slots=True)
class ScheduleReport:
    issues: tuple[ScheduleIssue, ...]

    @property
    def incomplete_items(self) -> tuple[str, ...]:
        """Ids of lines missing a date or a time, each once, in cart order."""
        seen: dict[str, None] = {}
        for issue in self.issues:
            if issue.kind in _INCOMPLETE:
                seen.setdefault(issue.cart_item_id, None)
        return tuple(seen)

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(issue.message for issue in self.issues)

    def user_message(self) -> str:
        if any(issue.kind is IssueKind.EMPTY_CART for issue in self.issues):
            return "Your cart is empty."
        incomplete = self.incomplete_items
        if incomplete:
            return f"Please schedule {len(incomplete)} appointment(s) before checkout."
        return "\n".join(self.messages)


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def check_line(item: CartLineItem, draft: SchedulingDraft | None) -> list[ScheduleIssue]:
    issues: list[ScheduleIssue] = []
    name = item.service_name
    selected_date = draft.selected_date if draft else ""
    selected_time = draft.selected_time if draft else ""

    if not selected_date:
        issues.append(ScheduleIssue(IssueKind.MISSING_DATE, item.id, name))
    elif parse_date(selected_date) is None:
        issues.append(ScheduleIssue(IssueKind.INVALID_DATE, item.id, name))

    if not selected_time:
        issues.append(ScheduleIssue(IssueKind.MISSING_TIME, item.id, name))
    elif parse_time_to_minutes(selected_time) is None:
        issues.append(ScheduleIssue(IssueKind.INVALID_TIME, item.id, name))

    return issues


def validate_schedule(
    items: Sequence[CartLineItem],
    drafts: Mapping[str, SchedulingDraft],
) -> Result[None, ScheduleReport]:
    """Ok(None) when every line is ready to book, else the full report."""
    if not items:
        return Error(ScheduleReport((ScheduleIssue(IssueKind.EMPTY_CART, "", ""),)))

    issues: list[ScheduleIssue] = []
    for item in items:
        issues.extend(check_line(item, drafts.get(item.id)))

    if issues:
        return Error(ScheduleReport(tuple(issues)))
    return Ok(None)


__all__ = (
    "parse_date",
    "parse_time_to_minutes",
    "duration_minutes",
    "format_minutes",
    "end_time",
    "IssueKind",
    "ScheduleIssue",
    "ScheduleReport",
    "check_line",
    "validate_schedule",
)
