"""
Content-type aware body decoding.

Three buckets only: JSON, text (html/plain) and everything else as base64.
"""

from __future__ import annotations

import base64
import enum
import json
from typing import Any


class BodyKind(enum.Enum):
    JSON = "json"
    TEXT = "text"
    BINARY = "binary"


def body_kind(content_type: str | None) -> BodyKind:
    ct = (content_type or "").lower()
    if "application/json" in ct:
        return BodyKind.JSON
    if "text/html" in ct or "text/plain" in ct:
        return BodyKind.TEXT
    return BodyKind.BINARY


def decode_body(kind: BodyKind, raw: bytes) -> Any:
    """Decode raw upstream bytes for the envelope's `data` field.

    JSON errors propagate (json.JSONDecodeError / UnicodeDecodeError); the
    handler reports them like any other unclassified failure.
    """
    if kind is BodyKind.JSON:
        return json.loads(raw.decode("utf-8"))
    if kind is BodyKind.TEXT:
        return raw.decode("utf-8", errors="replace")
    return base64.b64encode(raw).decode("ascii")
