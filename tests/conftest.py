"""Pytest configuration and fixtures."""

import io
import os
import tempfile

# Settings are read once at import time, so the environment has to be in
# place before anything from docgen is imported.
_TMP = tempfile.mkdtemp(prefix="docgen-tests-")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATA_DIR", _TMP)
os.environ.setdefault("DB_PATH", os.path.join(_TMP, "docgen.sqlite3"))
os.environ.setdefault("VECTOR_DB", "memory")
os.environ.setdefault("RETRY_MAX_WAIT_SECONDS", "0")
os.environ.setdefault("JOB_SCHEDULER", "inline")
os.environ.setdefault("CORS_ORIGINS", "*")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

import pytest
from pypdf import PdfReader, PdfWriter

from docgen.adapters.vector.memory import InMemoryVectorIndex
from docgen.core.config import settings
from docgen.services.job_controller import set_controller
from docgen.services.prompt_service import PromptRepository
from docgen.services.providers import Services, set_services
from docgen.services.store_service import init_db
from tests.fakes.embedder import FakeEmbedder
from tests.fakes.llm import FakeLLM
from tests.fakes.storage import FakeStorage


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: list[str]) -> bytes:
    """Minimal text PDF, one Helvetica text block per page.

    Lines within a page are separated by newlines in `pages`.
    """
    n = len(pages)
    page_ids = [4 + 2 * i for i in range(n)]
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        ("<< /Type /Pages /Kids [%s] /Count %d >>" % (" ".join(f"{p} 0 R" for p in page_ids), n)).encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for i, text in enumerate(pages):
        objects.append((
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            "/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>" % (page_ids[i] + 1)
        ).encode())
        ops = ["BT", "/F1 11 Tf", "14 TL", "72 720 Td"]
        for line in text.split("\n"):
            ops.append(f"({_escape(line)}) Tj T*")
        ops.append("ET")
        stream = "\n".join(ops).encode("latin-1")
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for num, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % num + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    return bytes(out)


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def encrypted_pdf() -> bytes:
    reader = PdfReader(io.BytesIO(build_pdf(["Confidential maintenance data for the pump."])))
    writer = PdfWriter()
    for page in reader.pages:
        writer.add_page(page)
    writer.encrypt("secret")
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


@pytest.fixture
def owner_locked_pdf() -> bytes:
    reader = PdfReader(io.BytesIO(build_pdf(["Inspect oil level weekly."])))
    writer = PdfWriter()
    for page in reader.pages:
        writer.add_page(page)
    writer.encrypt(user_password="", owner_password="owner")
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


@pytest.fixture
def blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    writer.add_blank_page(width=612, height=792)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Fresh sqlite file per test."""
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path / "docgen.sqlite3"))
    init_db()
    yield


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def services(fake_llm):
    """Fakes wired in as the process-wide services; reset afterwards."""
    svc = Services(
        storage=FakeStorage(),
        index=InMemoryVectorIndex(),
        embedder=FakeEmbedder(dimension=256),
        prompts=PromptRepository(),
        llm_factory=lambda provider: fake_llm,
    )
    set_services(svc)
    set_controller(None)
    yield svc
    set_services(None)
    set_controller(None)
