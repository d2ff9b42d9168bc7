"""
Response envelopes and failure classification.
"""

from __future__ import annotations

import socket
import urllib.error
from typing import Any

from .client import RelayTimeout, UpstreamResponse

TIMEOUT = (504, "Request timeout")
UNREACHABLE = (503, "Host unreachable")

# Resolver / refused-connection wording across platforms (and node-style codes)
UNREACHABLE_MARKERS = (
    "ENOTFOUND",
    "ECONNREFUSED",
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "No address associated",
    "Temporary failure in name resolution",
    "Connection refused",
)


def success_envelope(resp: UpstreamResponse, data: Any, url: str) -> dict[str, Any]:
    return {
        "ok": resp.ok,
        "status": resp.status,
        "statusText": resp.status_text,
        "headers": dict(resp.headers),
        "data": data,
        "url": url,
    }


def error_envelope(status: int, message: str) -> dict[str, Any]:
    return {
        "ok": False,
        "status": status,
        "statusText": "Error",
        "error": message,
        "data": "",
    }


def _is_timeout(exc: BaseException) -> bool:
    # socket.timeout is an alias of TimeoutError on current Pythons
    return isinstance(exc, (RelayTimeout, TimeoutError, socket.timeout))


def _is_unreachable(exc: BaseException) -> bool:
    if isinstance(exc, (socket.gaierror, ConnectionRefusedError)):
        return True
    msg = str(exc)
    return any(m in msg for m in UNREACHABLE_MARKERS)


def error_message(exc: BaseException) -> str:
    msg = str(exc)
    return msg if msg else type(exc).__name__


def classify_error(exc: BaseException) -> tuple[int, str]:
    """Map a fetch-step exception to (relay status, error message)."""
    # urllib wraps connect-phase errors: URLError(reason=<OSError>)
    reason = getattr(exc, "reason", None) if isinstance(exc, urllib.error.URLError) else None
    causes = [e for e in (exc, reason) if isinstance(e, BaseException)]
    if any(_is_timeout(e) for e in causes):
        return TIMEOUT
    if any(_is_unreachable(e) for e in causes):
        return UNREACHABLE
    return 500, error_message(exc)
