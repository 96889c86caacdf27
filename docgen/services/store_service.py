"""SQLite persistence for uploaded documents and job records.

Each call opens its own connection and commits before returning, so a write
is visible to the next read of the same key.
"""

import json
import os
import sqlite3
from typing import TypeVar

from docgen.core.config import settings
from docgen.core.models import Document, JobRecord

J = TypeVar("J", bound=JobRecord)


def _connect() -> sqlite3.Connection:
    return sqlite3.connect(settings.DB_PATH, timeout=10)


def init_db():
    db_dir = os.path.dirname(settings.DB_PATH)
    os.makedirs(db_dir or settings.DATA_DIR, exist_ok=True)
    conn = _connect()
    cur = conn.cursor()
    cur.execute("PRAGMA journal_mode=WAL;")
    cur.execute("""
    CREATE TABLE IF NOT EXISTS documents(
        file_id TEXT PRIMARY KEY,
        object_key TEXT,
        original_name TEXT,
        content_type TEXT,
        size INTEGER,
        uploaded_at TEXT
    );
    """)
    cur.execute("""
    CREATE TABLE IF NOT EXISTS jobs(
        kind TEXT,
        job_id TEXT,
        record_json TEXT,
        updated_at TEXT,
        PRIMARY KEY(kind, job_id)
    );
    """)
    conn.commit()
    conn.close()


def save_document(doc: Document):
    conn = _connect()
    cur = conn.cursor()
    # Documents are immutable once recorded.
    cur.execute(
        "INSERT OR IGNORE INTO documents(file_id, object_key, original_name, content_type, size, uploaded_at) "
        "VALUES(?,?,?,?,?,?)",
        (doc.file_id, doc.object_key, doc.original_name, doc.content_type, doc.size, doc.uploaded_at.isoformat()),
    )
    conn.commit()
    conn.close()


def get_document(file_id: str) -> Document | None:
    conn = _connect()
    cur = conn.cursor()
    cur.execute(
        "SELECT file_id, object_key, original_name, content_type, size, uploaded_at FROM documents WHERE file_id=?",
        (file_id,),
    )
    row = cur.fetchone()
    conn.close()
    if not row:
        return None
    return Document(
        file_id=row[0],
        object_key=row[1],
        original_name=row[2],
        content_type=row[3],
        size=row[4],
        uploaded_at=row[5],
    )


def put_job(kind: str, job_id: str, record: JobRecord):
    conn = _connect()
    cur = conn.cursor()
    cur.execute(
        "INSERT OR REPLACE INTO jobs(kind, job_id, record_json, updated_at) VALUES(?,?,?,?)",
        (kind, job_id, record.model_dump_json(by_alias=True), record.updated_at.isoformat()),
    )
    conn.commit()
    conn.close()


def get_job(kind: str, job_id: str, model: type[J]) -> J | None:
    conn = _connect()
    cur = conn.cursor()
    cur.execute("SELECT record_json FROM jobs WHERE kind=? AND job_id=?", (kind, job_id))
    row = cur.fetchone()
    conn.close()
    if not row:
        return None
    return model.model_validate(json.loads(row[0]))
