"""
Client-side list shaping: merging, filtering, counting and pagination.

List pages fetch whole collections once and then slice them locally, so
these helpers are pure functions over lists of record dictionaries.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .envelopes import record_id
from .models import DisplayStatus, ResourceKind, display_status


@dataclass(frozen=True)
class Submission:
    """
    One row of the combined "my submissions" table.

    Attributes:
        kind: Which collection the record came from.
        record: The backend record, untouched.
        display: The record's status in the unified vocabulary.
    """

    kind: ResourceKind
    record: dict[str, Any]
    display: DisplayStatus

    @property
    def id(self) -> Any:
        return record_id(self.record)

    @property
    def status(self) -> str | None:
        """The raw status exactly as stored on the record."""
        return self.record.get("status")

    @property
    def title(self) -> str:
        return self.record.get("title") or self.record.get("name") or ""

    @property
    def submitted(self) -> str | None:
        return (
            self.record.get("submittedDate")
            or self.record.get("createdAt")
            or self.record.get("created_at")
        )


@dataclass(frozen=True)
class Page:
    """A slice of a list plus the numbers a pager needs."""

    items: list[Any]
    page: int
    per_page: int
    total: int
    pages: int = field(default=1)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def to_submissions(
    applications: Iterable[dict[str, Any]],
    grievances: Iterable[dict[str, Any]],
) -> list[Submission]:
    """Merge both collections into display rows, applications first."""
    rows = [
        Submission(ResourceKind.APPLICATIONS, record, display_status(record.get("status"), ResourceKind.APPLICATIONS))
        for record in applications
    ]
    rows.extend(
        Submission(ResourceKind.GRIEVANCES, record, display_status(record.get("status"), ResourceKind.GRIEVANCES))
        for record in grievances
    )
    return rows


def _matches_search(record: dict[str, Any], search: str, fields: Sequence[str]) -> bool:
    needle = search.strip().lower()
    if not needle:
        return True
    return any(needle in str(record.get(name) or "").lower() for name in fields)


def filter_records(
    records: Iterable[dict[str, Any]],
    search: str = "",
    fields: Sequence[str] = ("title", "name", "description"),
    **equals: str | None,
) -> list[dict[str, Any]]:
    """
    Case-insensitive search plus exact-match filters.

    ``equals`` values of ``None``, ``""`` or ``"all"`` disable that filter.

    Example:
        >>> filter_records(schemes, "water", category="infrastructure")
    """
    active = {key: value for key, value in equals.items() if value and value != "all"}
    return [
        record
        for record in records
        if _matches_search(record, search, fields)
        and all(str(record.get(key, "")).lower() == str(value).lower() for key, value in active.items())
    ]


def filter_submissions(
    rows: Iterable[Submission],
    tab: str = "all",
    search: str = "",
    status: str = "all",
) -> list[Submission]:
    """
    Filter combined submission rows.

    Args:
        rows: Rows from :func:`to_submissions`.
        tab: ``"applications"``, ``"grievances"`` or ``"all"``.
        search: Matched against title, description and id.
        status: A :class:`DisplayStatus` value or ``"all"``.
    """
    result = []
    for row in rows:
        if tab != "all" and row.kind.value != tab:
            continue
        if status and status != "all" and row.display.value != status:
            continue
        haystack = {**row.record, "id": str(row.id or "")}
        if not _matches_search(haystack, search, ("title", "description", "id")):
            continue
        result.append(row)
    return result


def status_counts(rows: Iterable[Submission]) -> dict[str, int]:
    """Count rows per display status, plus a ``total``."""
    counts = {status.value: 0 for status in DisplayStatus}
    total = 0
    for row in rows:
        counts[row.display.value] += 1
        total += 1
    counts["total"] = total
    return counts


def split_pinned(
    announcements: Iterable[dict[str, Any]],
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split announcements into ``(pinned, regular)``."""
    pinned, regular = [], []
    for item in announcements:
        (pinned if item.get("isPinned") or item.get("pinned") else regular).append(item)
    return pinned, regular


def summarize(
    applications: Iterable[dict[str, Any]],
    grievances: Iterable[dict[str, Any]],
) -> dict[str, int]:
    """Compute the dashboard summary from locally held collections."""
    app_rows = [display_status(item.get("status"), ResourceKind.APPLICATIONS) for item in applications]
    grv_rows = [display_status(item.get("status"), ResourceKind.GRIEVANCES) for item in grievances]
    return {
        "total_applications": len(app_rows),
        "pending_applications": sum(1 for status in app_rows if status is DisplayStatus.PENDING),
        "approved_applications": sum(1 for status in app_rows if status is DisplayStatus.RESOLVED),
        "total_grievances": len(grv_rows),
        "pending_grievances": sum(1 for status in grv_rows if status is DisplayStatus.PENDING),
        "resolved_grievances": sum(1 for status in grv_rows if status is DisplayStatus.RESOLVED),
    }


def paginate(items: Sequence[Any], page: int = 1, per_page: int = 10) -> Page:
    """
    Return one page of *items*.

    Out-of-range page numbers are clamped to the first/last page, so a
    stale ``?page=`` link after a delete still shows something.
    """
    per_page = max(1, per_page)
    total = len(items)
    pages = max(1, math.ceil(total / per_page))
    page = min(max(1, page), pages)
    start = (page - 1) * per_page
    return Page(items=list(items[start:start + per_page]), page=page, per_page=per_page, total=total, pages=pages)
