"""Work-instructions payload -> .docx bytes."""

from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from typing import Callable

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

from docgen.core.errors import RenderFailure
from docgen.core.models import GroupedPrerequisites, WorkInstructionsPayload
from docgen.services import ooxml

logger = logging.getLogger(__name__)

CHECKBOX = "☐"
SIGNATURE_LINES = (
    "Performed By: ____________________________    Date: ____________    Time: ____________",
    "Verified By:  ____________________________    Date: ____________    Time: ____________",
)
_MUTED = RGBColor(0x66, 0x66, 0x66)
_WARNING = RGBColor(0xC0, 0x00, 0x00)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _prerequisite_lines(prereqs) -> list[tuple[str, bool]]:
    """(text, is_group_label) pairs."""
    if isinstance(prereqs, GroupedPrerequisites):
        lines: list[tuple[str, bool]] = []
        for label, values in (
            ("Tools:", prereqs.tools),
            ("Materials:", prereqs.materials),
            ("Safety Requirements:", prereqs.safety),
        ):
            if values:
                lines.append((label, True))
                lines.extend((v, False) for v in values)
        return lines
    return [(v, False) for v in prereqs or []]


def _bullet(doc, text: str):
    return doc.add_paragraph(text, style="List Bullet")


def render_work_instructions(
    payload: WorkInstructionsPayload,
    clock: Callable[[], datetime] = utcnow,
    show_completed_marker: bool = True,
) -> bytes:
    """Render the work-instructions document.

    Sections appear in a fixed order and only when they have content. Output
    bytes depend only on `payload` and the time returned by `clock`.
    """
    now = clock()
    stamp = ooxml.as_naive_utc(now)
    try:
        doc = Document()

        if payload.title:
            heading = doc.add_heading(payload.title.upper(), level=1)
            heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

        generated = doc.add_paragraph()
        run = generated.add_run(f"Generated: {stamp.strftime('%A, %B %d, %Y %H:%M UTC')}")
        run.italic = True
        run.font.size = Pt(9)
        run.font.color.rgb = _MUTED
        generated.alignment = WD_ALIGN_PARAGRAPH.CENTER

        if payload.overview:
            doc.add_heading("Overview", level=2)
            doc.add_paragraph(payload.overview)

        prereq_lines = _prerequisite_lines(payload.prerequisites)
        if prereq_lines:
            doc.add_heading("Prerequisites", level=2)
            for text, is_label in prereq_lines:
                if is_label:
                    doc.add_paragraph().add_run(text).bold = True
                else:
                    _bullet(doc, text)

        if payload.steps:
            doc.add_heading("Procedure", level=2)
            for n, step in enumerate(payload.steps, 1):
                header = doc.add_paragraph()
                header.add_run(f"Step {n}: ").bold = True
                header.add_run(step.description)
                if step.details:
                    details = doc.add_paragraph(step.details)
                    details.paragraph_format.left_indent = Pt(24)
                if show_completed_marker:
                    marker = doc.add_paragraph()
                    marker.paragraph_format.left_indent = Pt(24)
                    m = marker.add_run(f"Completed {CHECKBOX}")
                    m.font.size = Pt(9)
                    m.font.color.rgb = _MUTED

        if payload.safety_warnings:
            doc.add_heading("Safety Warnings & Precautions", level=2)
            for i, warning in enumerate(payload.safety_warnings, 1):
                p = doc.add_paragraph()
                label = p.add_run(f"WARNING {i}: ")
                label.bold = True
                label.font.color.rgb = _WARNING
                p.add_run(warning)

        if payload.completion_checklist:
            doc.add_heading("Completion Checklist", level=2)
            doc.add_paragraph("Verify all items below before marking this work instruction as complete:")
            for item in payload.completion_checklist:
                doc.add_paragraph(f"{CHECKBOX}  {item}")

        doc.add_paragraph()
        for line in SIGNATURE_LINES:
            doc.add_paragraph(line)

        props = doc.core_properties
        props.title = payload.title
        props.author = "DocGen"
        props.last_modified_by = "DocGen"
        props.revision = 1
        props.created = stamp
        props.modified = stamp

        buf = io.BytesIO()
        doc.save(buf)
        data = ooxml.normalize(buf.getvalue(), now)
    except Exception as e:
        logger.exception("work instructions rendering failed")
        raise RenderFailure(f"Failed to generate Word document: {e}") from e

    logger.info("rendered work instructions: %d steps, %d bytes", len(payload.steps), len(data))
    return data
