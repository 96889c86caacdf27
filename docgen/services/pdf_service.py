"""PDF text extraction and page-bounded chunking."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass

from pypdf import PasswordType, PdfReader
from pypdf.errors import FileNotDecryptedError

from docgen.core.config import settings
from docgen.core.errors import CorruptPdf, EmptyOrImagePdf, PasswordProtected
from docgen.core.models import Chunk, PageText

logger = logging.getLogger(__name__)

# Most specific first; the first pattern that matches decides.
PAGE_NUMBER_PATTERNS = [
    re.compile(r"Page:\s*(\d+)", re.IGNORECASE),
    re.compile(r"Pg\.?\s*(\d+)", re.IGNORECASE),
    re.compile(r"Page\s+(\d+)\s+of", re.IGNORECASE),
    re.compile(r"Page\s+(\d+)", re.IGNORECASE),
    re.compile(r"\(Page\s+(\d+)\)", re.IGNORECASE),
]

# Preferred cut points, strongest first.
BOUNDARIES = ("\n\n", ". ", "\n", " ")

# Separator used when page texts are laid end to end for character offsets.
PAGE_SEPARATOR = "\n\n"


@dataclass
class ExtractResult:
    pages: list[PageText]
    total_pages: int

    @property
    def total_chars(self) -> int:
        return sum(len(p.text) for p in self.pages)


def detect_internal_page_number(text: str | None) -> int | None:
    if not text:
        return None
    for pattern in PAGE_NUMBER_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        n = int(m.group(1))
        return n if 1 <= n <= 9999 else None
    return None


def _page_text(page) -> str:
    fragments: list[str] = []

    def visitor(text, cm, tm, font_dict, font_size):
        if text and text.strip():
            fragments.append(text.strip())

    raw = page.extract_text(visitor_text=visitor) or ""
    if fragments:
        return " ".join(fragments)
    return raw.strip()


def extract(pdf_bytes: bytes) -> ExtractResult:
    """Read PDF bytes into per-page text.

    Raises PasswordProtected, CorruptPdf or EmptyOrImagePdf.
    """
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
    except Exception as e:
        raise CorruptPdf(f"Unable to parse PDF: {e}") from e

    if reader.is_encrypted:
        # owner-password-only files open with an empty user password
        try:
            unlocked = reader.decrypt("")
        except Exception as e:
            raise PasswordProtected() from e
        if unlocked == PasswordType.NOT_DECRYPTED:
            raise PasswordProtected()

    pages: list[PageText] = []
    try:
        for idx, page in enumerate(reader.pages, 1):
            text = _page_text(page)
            pages.append(PageText(
                pdf_page_index=idx,
                internal_page_number=detect_internal_page_number(text),
                text=text,
            ))
    except FileNotDecryptedError as e:
        raise PasswordProtected() from e
    except Exception as e:
        raise CorruptPdf(f"Unable to read PDF content: {e}") from e

    if not pages:
        raise CorruptPdf("PDF has no pages")

    if not any(p.text.strip() for p in pages):
        raise EmptyOrImagePdf()

    mapped = sum(1 for p in pages if p.internal_page_number is not None)
    logger.info("extracted %d pages (%d with internal page numbers)", len(pages), mapped)
    return ExtractResult(pages=pages, total_pages=len(pages))


def page_offsets(pages: list[PageText]) -> list[int]:
    """Start offset of every page in the end-to-end document text."""
    offsets = []
    pos = 0
    for p in pages:
        offsets.append(pos)
        pos += len(p.text) + len(PAGE_SEPARATOR)
    return offsets


def page_at(pages: list[PageText], offset: int) -> PageText | None:
    """Page whose text contains document offset `offset`."""
    for page, start in zip(pages, page_offsets(pages)):
        if start <= offset < start + len(page.text):
            return page
    return None


def _find_cut(text: str, start: int, max_chars: int, overlap: int) -> int:
    end = start + max_chars
    floor = max(start + 1, end - overlap)
    for sep in BOUNDARIES:
        i = text.rfind(sep, floor, end)
        if i != -1 and i + len(sep) <= end:
            return i + len(sep)
    return end


def _split_page(text: str, max_chars: int, overlap: int) -> list[tuple[int, int]]:
    if len(text) <= max_chars:
        return [(0, len(text))]
    spans = []
    start = 0
    while start < len(text):
        if len(text) - start <= max_chars:
            spans.append((start, len(text)))
            break
        cut = _find_cut(text, start, max_chars, overlap)
        spans.append((start, cut))
        start = cut
    return spans


def split_by_pages(
    pages: list[PageText],
    file_id: str,
    max_chunk_chars: int | None = None,
    chunk_overlap: int | None = None,
    file_name: str | None = None,
) -> list[Chunk]:
    """Cut each page into bounded chunks; chunks never span pages."""
    max_chars = max_chunk_chars or settings.MAX_CHUNK_CHARS
    overlap = settings.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
    if max_chars <= overlap:
        raise ValueError("max_chunk_chars must be greater than chunk_overlap")

    chunks: list[Chunk] = []
    for page, page_start in zip(pages, page_offsets(pages)):
        if not page.text.strip():
            continue
        for s, e in _split_page(page.text, max_chars, overlap):
            piece = page.text[s:e]
            # trim whitespace but keep offsets honest
            lead = len(piece) - len(piece.lstrip())
            trail = len(piece) - len(piece.rstrip())
            s, e = s + lead, e - trail
            if s >= e:
                continue
            idx = len(chunks)
            chunks.append(Chunk(
                id=f"{file_id}-chunk-{idx}",
                file_id=file_id,
                chunk_index=idx,
                text=page.text[s:e],
                page_number=page.page_number,
                page_range=str(page.page_number),
                start_char=page_start + s,
                end_char=page_start + e,
                file_name=file_name,
            ))
    return chunks
