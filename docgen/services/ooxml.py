"""Make office-XML archives reproducible.

openpyxl and python-docx stamp zip entries and docProps/core.xml with the
wall clock. Rewriting both from the injected clock makes the bytes a function
of the payload alone.
"""

from __future__ import annotations

import io
import re
import zipfile
from datetime import datetime, timezone

CORE_PROPS = "docProps/core.xml"
_DATE_RE = re.compile(r"(<dcterms:(created|modified)\b[^>]*>)[^<]*(</dcterms:\2>)")


def as_naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts.replace(microsecond=0)


def normalize(data: bytes, timestamp: datetime) -> bytes:
    ts = as_naive_utc(timestamp)
    stamp = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
    # zip cannot store dates before 1980
    date_time = (max(ts.year, 1980), ts.month, ts.day, ts.hour, ts.minute, ts.second)

    src = zipfile.ZipFile(io.BytesIO(data))
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED) as dst:
        for info in src.infolist():
            body = src.read(info.filename)
            if info.filename == CORE_PROPS:
                text = _DATE_RE.sub(lambda m: f"{m.group(1)}{stamp}{m.group(3)}", body.decode("utf-8"))
                body = text.encode("utf-8")
            entry = zipfile.ZipInfo(info.filename, date_time=date_time)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = 0o600 << 16
            dst.writestr(entry, body)
    return out.getvalue()
