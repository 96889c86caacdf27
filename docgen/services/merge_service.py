"""Normalize per-shard LLM output and merge it into one payload.

Normalization is forgiving about key names the models like to invent
(`name` for `itemName`, `status` for `expectedStatus`, ...) but strict about
shape: a value of the wrong type raises InvalidSchema.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from docgen.core.errors import EmptyGeneration, InvalidSchema
from docgen.core.models import (
    ChecksheetItem,
    ChecksheetMetadata,
    ChecksheetPayload,
    GroupedPrerequisites,
    Step,
    WorkInstructionsPayload,
)
from docgen.services.citation_service import format_citation

DEFAULT_TITLE = "Work Instructions"

_WS_RE = re.compile(r"\s+")


@dataclass
class Citation:
    file_name: str | None
    page_number: int | None

    def __str__(self):
        return format_citation(self.file_name, self.page_number)


@dataclass
class ShardResult:
    index: int
    citations: list[Citation] = field(default_factory=list)
    data: Any = None


def normalize_key(text: str | None) -> str:
    return _WS_RE.sub(" ", (text or "").strip()).lower()


def normalize_frequency(value: Any) -> str:
    f = str(value or "").strip().lower()
    if "daily" in f or f == "day":
        return "daily"
    if "weekly" in f or f == "week":
        return "weekly"
    if "monthly" in f or f == "month":
        return "monthly"
    if "quarter" in f:
        return "quarterly"
    if "annual" in f or "yearly" in f or "year" in f:
        return "annually"
    return "other"


def _text(value: Any, what: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    raise InvalidSchema(f"{what} must be a string")


def _str_list(value: Any, what: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        raise InvalidSchema(f"{what} must be a list of strings")
    return [_text(v, what) for v in value if _text(v, what)]


def _page(value: Any) -> int | str | None:
    if value in (None, ""):
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip()
    return int(s) if s.isdigit() else s


# ---- checksheet ----

def normalize_checksheet_items(raw: Any) -> list[ChecksheetItem]:
    if isinstance(raw, dict):
        for key in ("items", "data", "checksheet"):
            if key in raw:
                raw = raw[key]
                break
        else:
            raw = [raw]
    if not isinstance(raw, list):
        raise InvalidSchema("checksheet output must be a JSON array of items")

    items = []
    for i, obj in enumerate(raw):
        if not isinstance(obj, dict):
            raise InvalidSchema(f"checksheet item {i} must be an object")
        name = _text(obj.get("itemName", obj.get("name")), "itemName")
        point = _text(obj.get("inspectionPoint", obj.get("inspection")), "inspectionPoint")
        if not name and not point:
            continue
        items.append(ChecksheetItem(
            item_name=name,
            inspection_point=point,
            frequency=normalize_frequency(obj.get("frequency")),
            expected_status=_text(obj.get("expectedStatus", obj.get("status")), "expectedStatus"),
            notes=_text(obj.get("notes", obj.get("note")), "notes"),
            source=_text(obj.get("source", obj.get("sourceFile")), "source"),
            source_page=_page(obj.get("sourcePage", obj.get("pageNumber"))),
        ))
    return items


def _attach_citation(item: ChecksheetItem, citations: list[Citation]) -> ChecksheetItem:
    if not citations:
        return item
    if not item.source and item.source_page is None:
        first = citations[0]
        return item.model_copy(update={"source": first.file_name or "", "source_page": first.page_number})
    if item.source and item.source_page is None:
        for c in citations:
            if c.file_name and c.file_name == item.source:
                return item.model_copy(update={"source_page": c.page_number})
    return item


def merge_checksheet(results: list[ShardResult]) -> ChecksheetPayload:
    """Append items in shard order, first occurrence of (itemName, inspectionPoint) wins."""
    items: list[ChecksheetItem] = []
    seen: set[tuple[str, str]] = set()
    sources: list[str] = []
    for r in sorted(results, key=lambda r: r.index):
        produced = False
        for item in normalize_checksheet_items(r.data):
            key = (normalize_key(item.item_name), normalize_key(item.inspection_point))
            if key in seen:
                continue
            seen.add(key)
            items.append(_attach_citation(item, r.citations))
            produced = True
        if produced:
            for c in r.citations:
                s = str(c)
                if s not in sources:
                    sources.append(s)
    if not items:
        raise EmptyGeneration("No checksheet items could be extracted from the documents")
    try:
        return ChecksheetPayload(items=items, metadata=ChecksheetMetadata(sources=sources))
    except ValidationError as e:
        raise InvalidSchema(str(e)) from e


# ---- work instructions ----

def normalize_steps(raw: Any) -> list[Step]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidSchema("steps must be a list")
    steps = []
    for i, s in enumerate(raw):
        if isinstance(s, str):
            desc, details = s.strip(), None
        elif isinstance(s, dict):
            desc = _text(s.get("description", s.get("action", s.get("step"))), "step.description")
            details = _text(s.get("details"), "step.details") or None
        else:
            raise InvalidSchema(f"step {i} must be an object or string")
        if desc:
            steps.append(Step(step_number=len(steps) + 1, description=desc, details=details))
    return steps


def normalize_prerequisites(raw: Any) -> list[str] | GroupedPrerequisites:
    if raw is None:
        return []
    if isinstance(raw, dict):
        return GroupedPrerequisites(
            tools=_str_list(raw.get("tools"), "prerequisites.tools"),
            materials=_str_list(raw.get("materials"), "prerequisites.materials"),
            safety=_str_list(raw.get("safety"), "prerequisites.safety"),
        )
    return _str_list(raw, "prerequisites")


def normalize_work_instructions(raw: Any) -> WorkInstructionsPayload:
    if isinstance(raw, list):
        raw = {"steps": raw}
    if not isinstance(raw, dict):
        raise InvalidSchema("work instructions output must be a JSON object")
    title = _text(raw.get("title"), "title")
    return WorkInstructionsPayload(
        title=title,
        overview=_text(raw.get("overview"), "overview") or None,
        prerequisites=normalize_prerequisites(raw.get("prerequisites")),
        steps=normalize_steps(raw.get("steps")),
        safety_warnings=_str_list(raw.get("safetyWarnings"), "safetyWarnings"),
        completion_checklist=_str_list(raw.get("completionChecklist"), "completionChecklist"),
    )


def _has_content(p: WorkInstructionsPayload) -> bool:
    prereq_empty = p.prerequisites.is_empty() if isinstance(p.prerequisites, GroupedPrerequisites) else not p.prerequisites
    return bool(p.overview or p.steps or p.safety_warnings or p.completion_checklist or not prereq_empty)


def _union(into: list[str], values: list[str]) -> None:
    for v in values:
        if v not in into:
            into.append(v)


def merge_prerequisites(parts: list[list[str] | GroupedPrerequisites]) -> list[str] | GroupedPrerequisites:
    """Flat lists stay flat; once any shard groups them, flat items go under tools."""
    if not any(isinstance(p, GroupedPrerequisites) for p in parts):
        flat: list[str] = []
        for p in parts:
            _union(flat, p)
        return flat

    grouped = GroupedPrerequisites()
    for p in parts:
        if isinstance(p, GroupedPrerequisites):
            _union(grouped.tools, p.tools)
            _union(grouped.materials, p.materials)
            _union(grouped.safety, p.safety)
    for p in parts:
        if isinstance(p, list):
            everywhere = grouped.tools + grouped.materials + grouped.safety
            _union(grouped.tools, [v for v in p if v not in everywhere])
    return grouped


def merge_work_instructions(results: list[ShardResult]) -> WorkInstructionsPayload:
    title = ""
    overview = None
    prereqs: list[list[str] | GroupedPrerequisites] = []
    steps: list[Step] = []
    seen_steps: set[str] = set()
    warnings: list[str] = []
    checklist: list[str] = []

    for r in sorted(results, key=lambda r: r.index):
        part = normalize_work_instructions(r.data)
        if not _has_content(part):
            continue
        if not title and part.title:
            title = part.title
        if overview is None and part.overview:
            overview = part.overview
        prereqs.append(part.prerequisites)
        for s in part.steps:
            key = normalize_key(s.description)
            if key in seen_steps:
                continue
            seen_steps.add(key)
            steps.append(s)
        _union(warnings, part.safety_warnings)
        _union(checklist, part.completion_checklist)

    merged = WorkInstructionsPayload(
        title=title or DEFAULT_TITLE,
        overview=overview,
        prerequisites=merge_prerequisites(prereqs),
        steps=[s.model_copy(update={"step_number": i}) for i, s in enumerate(steps, 1)],
        safety_warnings=warnings,
        completion_checklist=checklist,
    )
    if not _has_content(merged):
        raise EmptyGeneration("No work instruction content could be extracted from the documents")
    return merged
