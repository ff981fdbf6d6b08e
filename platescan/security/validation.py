# -*- coding: utf-8 -*-
"""Security — input validation and sanitization helpers.

Pattern checks are heuristics for rejecting obviously hostile free text before it
reaches storage or a third-party search endpoint. SQL is always parameterized;
`detect_sql_injection` matches statement-shaped input only, so food text that
merely contains a keyword ("Select Harvest", "a drop of honey") passes.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List
from urllib.parse import urlparse
from uuid import UUID

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-8][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

XSS_PATTERNS = [
    re.compile(r"<script[\s\S]*?>[\s\S]*?</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<iframe[\s\S]*?>", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
]

SQL_PATTERNS = [
    # Keywords only count in statement context ("a drop of honey" is food text).
    re.compile(r"\bunion\b[\s\S]*\bselect\b", re.IGNORECASE),
    re.compile(r"\b(drop|create|alter|truncate)\s+(table|database|index|view)\b", re.IGNORECASE),
    re.compile(r"\binsert\s+into\b", re.IGNORECASE),
    re.compile(r"\bdelete\s+from\b", re.IGNORECASE),
    re.compile(r"\bupdate\s+\w+\s+set\b", re.IGNORECASE),
    re.compile(r"\bexec(ute)?\s*\(", re.IGNORECASE),
    re.compile(r"(%27|%2527|%22|%2522|''|\\')", re.IGNORECASE),
    re.compile(r"(;\s*--|--\s*$|/\*|\*/|@@)"),
]

PATH_TRAVERSAL_PATTERNS = [
    re.compile(r"\.\."),
    re.compile(r"%2e%2e", re.IGNORECASE),
    re.compile(r"%252e%252e", re.IGNORECASE),
]

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")

MAX_SAFE_TEXT = 1000
MAX_GENERAL_TEXT = 10000


def is_valid_uuid(value: Any) -> bool:
    if not isinstance(value, str) or not _UUID_RE.match(value.strip()):
        return False
    try:
        UUID(value.strip())
    except ValueError:
        return False
    return True


def check_safe_text(value: str, *, max_length: int = MAX_SAFE_TEXT) -> str:
    """Return the stripped text or raise ValueError when it looks hostile."""
    if not isinstance(value, str):
        raise ValueError("Text is required")
    text = value.strip()
    if not text:
        raise ValueError("Text is required")
    if len(text) > max_length:
        raise ValueError("Text too long")
    if any(p.search(text) for p in XSS_PATTERNS):
        raise ValueError("Invalid characters detected")
    return text


def check_safe_url(value: str) -> str:
    try:
        parsed = urlparse(value)
    except ValueError as exc:
        raise ValueError("Invalid URL format") from exc
    if not parsed.scheme or not parsed.netloc:
        raise ValueError("Invalid URL format")
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("Only HTTP and HTTPS protocols are allowed")
    return value


def check_safe_path(value: str) -> str:
    if any(p.search(value) for p in PATH_TRAVERSAL_PATTERNS):
        raise ValueError("Invalid path detected")
    return value


def detect_sql_injection(value: str) -> bool:
    return any(p.search(value or "") for p in SQL_PATTERNS)


def sanitize_html(value: str) -> str:
    # '&' must go first or the other entities get double-escaped.
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


def sanitize_sql(value: str) -> str:
    return (
        value.replace("'", "''")
        .replace(";", "")
        .replace("--", "")
        .replace("/*", "")
        .replace("*/", "")
    )


def sanitize_file_path(value: str) -> str:
    out = value.replace("..", "")
    out = re.sub(r'[<>:"|?*]', "", out)
    out = out.replace("\\", "/")
    return re.sub(r"/+", "/", out)


def sanitize_general(value: str) -> str:
    return _CONTROL_CHARS_RE.sub("", value.strip())[:MAX_GENERAL_TEXT]


def detect_and_sanitize(value: str) -> Dict[str, Any]:
    threats: List[str] = []
    if any(p.search(value) for p in XSS_PATTERNS):
        threats.append("xss")
    if detect_sql_injection(value):
        threats.append("sql_injection")
    if any(p.search(value) for p in PATH_TRAVERSAL_PATTERNS):
        threats.append("path_traversal")
    if _CONTROL_CHARS_RE.search(value):
        threats.append("control_characters")

    sanitized = sanitize_html(sanitize_general(value))

    if "xss" in threats and "sql_injection" in threats:
        severity = "critical"
    elif "xss" in threats or "sql_injection" in threats:
        severity = "high"
    elif threats:
        severity = "medium"
    else:
        severity = "low"
    return {"sanitized": sanitized, "threats": threats, "severity": severity}
