"""CSV rendering for audit log export.

Output is UTF-8 with a leading BOM so spreadsheet tools detect the
encoding, quoted per RFC 4180 by the csv module. Cells that would start
with a formula character are prefixed with a tab (CWE-1236).
"""

import csv
import io
import json
from datetime import datetime
from typing import Any, Iterable

BOM = "\ufeff"

HEADERS = [
    "ID",
    "Action",
    "Entity Type",
    "Entity ID",
    "User Name",
    "User Email",
    "Admin",
    "Level",
    "IP",
    "Timestamp",
    "Details",
]

_FORMULA_PREFIXES = ("=", "+", "-", "@")
_CONTROL_CHARS = str.maketrans({"\r": " ", "\n": " ", "\t": " "})


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    text = str(value).translate(_CONTROL_CHARS)
    if text.startswith(_FORMULA_PREFIXES):
        return "\t" + text
    return text


def summarize_details(details: Any) -> str:
    """Compact JSON summary: presence flags for old/new data plus extra info."""
    if not isinstance(details, dict):
        return ""
    summary = {
        "old_data": "available" if details.get("old_data") else None,
        "new_data": "available" if details.get("new_data") else None,
        "additional_info": details.get("additional_info"),
        "error": details.get("error"),
    }
    summary = {k: v for k, v in summary.items() if v is not None}
    return json.dumps(summary, default=str, ensure_ascii=False)


def render_logs_csv(logs: Iterable[dict]) -> str:
    """Render denormalized log dicts (see audit_service.get_logs) as CSV text."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\r\n")
    writer.writerow(HEADERS)
    for log in logs:
        user = log.get("user") or {}
        admin = log.get("admin") or {}
        writer.writerow([
            _cell(log.get("id")),
            _cell(log.get("action")),
            _cell(log.get("entity_type")),
            _cell(log.get("entity_id")),
            _cell(user.get("name")),
            _cell(user.get("email")),
            _cell(admin.get("name")),
            _cell(log.get("level")),
            _cell(log.get("ip_address")),
            _cell(log.get("timestamp")),
            _cell(summarize_details(log.get("details"))),
        ])
    return BOM + buf.getvalue()
