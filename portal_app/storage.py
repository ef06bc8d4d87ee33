"""
Durable client-side storage.

The browser portal kept its bearer token, the signed-in user and any saved
form drafts in local storage.  Here the same role is played by the Flask
session cookie (:class:`SessionStorage`); :class:`MemoryStorage` offers the
same interface for unit tests and scripts that run without a request.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Protocol

from flask import session

TOKEN_KEY = "token"
USER_KEY = "user"
DRAFTS_KEY = "drafts"


class Storage(Protocol):
    """Key/value store that survives across page requests."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class SessionStorage:
    """Storage backed by the signed Flask session cookie."""

    def get(self, key: str, default: Any = None) -> Any:
        return session.get(key, default)

    def set(self, key: str, value: Any) -> None:
        session[key] = value

    def remove(self, key: str) -> None:
        session.pop(key, None)


class MemoryStorage:
    """Dictionary-backed storage."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class DraftTooLarge(ValueError):
    """Raised when saving a draft would take the stored drafts past their size limit."""


def save_draft(
    storage: Storage,
    name: str,
    form: dict[str, Any],
    files: list[tuple[str, int]] | None = None,
    max_bytes: int | None = None,
) -> dict[str, Any]:
    """
    Write a snapshot of a half-filled form.

    All drafts live together under :data:`DRAFTS_KEY`, so their combined
    size can be held under ``max_bytes``.  Only file names and sizes are
    kept; file contents never go into durable storage.

    Args:
        storage: Where to write the draft.
        name: Draft slot, e.g. ``"application"``.
        form: Field values to keep.
        files: ``(filename, size)`` pairs of files picked so far.
        max_bytes: Limit on the JSON size of every stored draft together.

    Returns:
        The stored snapshot.

    Raises:
        DraftTooLarge: The drafts would exceed ``max_bytes``.  Nothing is
            written and any earlier draft under ``name`` is kept.
    """
    draft = {
        **form,
        "uploadedFiles": [{"name": filename, "size": size} for filename, size in files or []],
        "savedAt": datetime.now(timezone.utc).isoformat(),
    }
    drafts = {**(storage.get(DRAFTS_KEY) or {}), name: draft}
    if max_bytes is not None:
        size = len(json.dumps(drafts).encode("utf-8"))
        if size > max_bytes:
            raise DraftTooLarge(f"Drafts would take {size} bytes, limit is {max_bytes}")
    storage.set(DRAFTS_KEY, drafts)
    return draft


def load_draft(storage: Storage, name: str) -> dict[str, Any] | None:
    return (storage.get(DRAFTS_KEY) or {}).get(name)


def discard_draft(storage: Storage, name: str) -> None:
    drafts = {key: value for key, value in (storage.get(DRAFTS_KEY) or {}).items() if key != name}
    if drafts:
        storage.set(DRAFTS_KEY, drafts)
    else:
        storage.remove(DRAFTS_KEY)
