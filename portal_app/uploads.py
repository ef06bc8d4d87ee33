"""Advisory validation of user-selected attachments before upload."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .api import DOCUMENTS_FIELD

REJECTED_FILES_MESSAGE = (
    "Some files were rejected. Only PNG, JPEG and PDF files up to 10MB are allowed."
)


@dataclass
class UploadCheck:
    accepted: list[Any] = field(default_factory=list)
    rejected: list[Any] = field(default_factory=list)


def file_size(upload: Any) -> int:
    """Size in bytes of an uploaded file, measured from its stream."""
    stream = getattr(upload, "stream", upload)
    try:
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
    except (AttributeError, OSError):
        return int(getattr(upload, "content_length", 0) or 0)
    return size


def _mimetype(upload: Any) -> str:
    return (getattr(upload, "mimetype", None) or getattr(upload, "content_type", None) or "").lower()


def validate_uploads(
    files: Iterable[Any],
    max_bytes: int,
    allowed_types: Sequence[str],
) -> UploadCheck:
    """
    Split *files* into accepted and rejected.

    A file is accepted when its MIME type is in *allowed_types* and it is
    no larger than *max_bytes*.  Empty file inputs (no filename) are
    ignored entirely.

    This check is advisory only; the backend enforces its own limits.
    """
    allowed = {item.lower() for item in allowed_types}
    check = UploadCheck()
    for upload in files:
        if not getattr(upload, "filename", None):
            continue
        if _mimetype(upload) in allowed and file_size(upload) <= max_bytes:
            check.accepted.append(upload)
        else:
            check.rejected.append(upload)
    return check


def to_multipart(files: Iterable[Any]) -> list[tuple[str, tuple[str, Any, str]]]:
    """Build the ``files=`` argument for a documents upload."""
    return [
        (DOCUMENTS_FIELD, (upload.filename, upload.stream, _mimetype(upload) or "application/octet-stream"))
        for upload in files
    ]


def describe(files: Iterable[Any]) -> list[tuple[str, int]]:
    """``(filename, size)`` pairs, as kept in saved drafts."""
    return [(upload.filename, file_size(upload)) for upload in files if getattr(upload, "filename", None)]
