"""
AWS Lambda / Netlify handler: POST {"url": ...} -> fetched upstream envelope.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
import urllib.parse
from typing import Any

from .client import UpstreamClient
from .config import Settings, load_settings
from .decode import body_kind, decode_body
from .envelope import classify_error, error_envelope, success_envelope

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    logger.setLevel(level)
    root = logging.getLogger()
    if root.level and root.level > level:
        root.setLevel(level)


def _rid(context: Any) -> str | None:
    return getattr(context, "aws_request_id", None)


def _log(msg: str, **fields: Any) -> None:
    try:
        rec = {"msg": msg, **fields}
        logger.info(json.dumps(rec, ensure_ascii=False))
    except (TypeError, ValueError):
        # Fallback to plain log
        logger.info("%s | %s", msg, fields)


def _response(status: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, ensure_ascii=False),
    }


def _get_method(event: dict[str, Any]) -> str:
    method = event.get("httpMethod")
    if method:
        return str(method)
    # Function URL / HTTP API v2 payloads
    http = ((event.get("requestContext") or {}).get("http")) or {}
    return str(http.get("method") or "")


def _get_body(event: dict[str, Any]) -> str:
    body = event.get("body")
    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body or b"", validate=True)
        except (binascii.Error, ValueError):
            return ""
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    return body or ""


def _parse_request(raw_body: str | bytes | None) -> dict[str, Any]:
    if isinstance(raw_body, (bytes, bytearray)):
        raw_body = raw_body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(raw_body or "{}")
    except (ValueError, RecursionError):
        return {}
    return payload if isinstance(payload, dict) else {}


def is_absolute_url(url: Any) -> bool:
    """True for `scheme://host[...]`; the scheme itself is checked at fetch time."""
    if not isinstance(url, str):
        return False
    try:
        u = urllib.parse.urlsplit(url)
        _ = u.port  # raises ValueError on a malformed port
    except ValueError:
        return False
    if not u.scheme or not u.netloc or not u.hostname:
        return False
    return not any(ch.isspace() for ch in u.netloc)


def handle(
    method: str | None,
    raw_body: str | bytes | None,
    settings: Settings | None = None,
    rid: str | None = None,
) -> tuple[int, dict[str, Any]]:
    """Validate, fetch once, and return (relay status, JSON-ready body)."""
    settings = settings or load_settings()

    # 1) Validate
    if method != "POST":
        _log("request_rejected", rid=rid, reason="method", method=method)
        return 405, {"error": "Method not allowed"}

    url = _parse_request(raw_body).get("url")
    if not url:
        _log("request_rejected", rid=rid, reason="missing_url")
        return 400, {"error": "URL is required"}
    if not is_absolute_url(url):
        _log("request_rejected", rid=rid, reason="invalid_url", url=str(url)[:200])
        return 400, {"error": "Invalid URL format"}

    # 2) Fetch + decode
    client = UpstreamClient(settings.user_agent, settings.timeout_seconds)
    t0 = time.time()
    try:
        resp = client.get(url)
        kind = body_kind(resp.content_type)
        data = decode_body(kind, resp.body)
    except Exception as e:
        status, message = classify_error(e)
        if status == 500:
            logger.exception("Upstream fetch failed")
        _log(
            "fetch_error",
            rid=rid,
            url=url,
            status=status,
            error=message,
            ms=int((time.time() - t0) * 1000),
        )
        return status, error_envelope(status, message)

    # 3) Respond
    _log(
        "fetch_ok",
        rid=rid,
        url=url,
        upstreamStatus=resp.status,
        kind=kind.value,
        bytes=len(resp.body),
        ms=int((time.time() - t0) * 1000),
    )
    return 200, success_envelope(resp, data, url)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    settings = load_settings()
    configure_logging(settings)
    status, body = handle(_get_method(event), _get_body(event), settings, rid=_rid(context))
    return _response(status, body)
