from __future__ import annotations

import re
from datetime import datetime

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]")
_TRAVERSAL_RE = re.compile(r"\.{2,}")

OUTPUT_TYPES = {
    "checksheet": (
        "inspection-checksheet",
        "xlsx",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ),
    "workInstructions": (
        "work-instructions",
        "docx",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
}


def sanitize_file_name(name: str | None) -> str:
    """Object-key-safe file name.

    Anything outside [A-Za-z0-9._-] becomes `_`, runs of dots collapse so
    `..` cannot escape a prefix, leading/trailing `_` go away.
    """
    s = _UNSAFE_RE.sub("_", (name or "").strip())
    s = _TRAVERSAL_RE.sub("_", s)
    s = s.strip("_")
    return s or "document"


def document_key(file_id: str, file_name: str) -> str:
    return f"documents/{file_id}/{sanitize_file_name(file_name)}"


def output_file_name(use_case: str, file_id: str, now: datetime) -> str:
    prefix, ext, _ = OUTPUT_TYPES[use_case]
    return f"{prefix}-{now.strftime('%Y%m%d')}-{file_id[:8]}.{ext}"


def output_key(file_id: str, file_name: str) -> str:
    return f"outputs/{file_id}/{file_name}"
