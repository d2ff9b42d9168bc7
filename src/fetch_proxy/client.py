"""
Upstream HTTP client using stdlib urllib.

One GET per call, bounded by a single deadline covering DNS, connect, headers and body.
"""

from __future__ import annotations

import functools
import http.client
import queue
import socket
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any

CHUNK_SIZE = 64 * 1024


class RelayTimeout(TimeoutError):
    """Raised when the upstream fetch does not finish before the deadline."""


@dataclass(frozen=True)
class UpstreamResponse:
    status: int
    status_text: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


def flatten_headers(raw: Any) -> dict[str, str]:
    """Lowercase header names; repeated headers are joined with ", "."""
    out: dict[str, str] = {}
    for k, v in (raw.items() if raw is not None else []):
        name = str(k).lower()
        out[name] = f"{out[name]}, {v}" if name in out else str(v)
    return out


class Deadline:
    """Wall-clock budget for one fetch; expiring it shuts down every socket it opened."""

    def __init__(self, seconds: float) -> None:
        self.expires_at = time.monotonic() + seconds
        self.expired = False
        self._lock = threading.Lock()
        self._socks: list[socket.socket] = []

    def remaining(self) -> float:
        return self.expires_at - time.monotonic()

    def track(self, sock: socket.socket) -> None:
        with self._lock:
            if not self.expired:
                self._socks.append(sock)
                return
        sock.close()
        raise RelayTimeout("Request timeout")

    def expire(self) -> None:
        with self._lock:
            self.expired = True
            socks, self._socks = self._socks, []
        for sock in socks:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                # already closed by the fetching thread
                continue


class _DeadlineConnectionMixin:
    def __init__(self, *args: Any, deadline: Deadline, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._deadline = deadline

    def connect(self) -> None:
        remaining = self._deadline.remaining()
        if remaining <= 0 or self._deadline.expired:
            raise RelayTimeout("Request timeout")
        self.timeout = remaining
        super().connect()
        self._deadline.track(self.sock)


class _DeadlineHTTPConnection(_DeadlineConnectionMixin, http.client.HTTPConnection):
    pass


class _DeadlineHTTPSConnection(_DeadlineConnectionMixin, http.client.HTTPSConnection):
    pass


class _DeadlineHTTPHandler(urllib.request.HTTPHandler):
    def __init__(self, deadline: Deadline) -> None:
        super().__init__()
        self._deadline = deadline

    def http_open(self, req):
        conn = functools.partial(_DeadlineHTTPConnection, deadline=self._deadline)
        return self.do_open(conn, req)


class _DeadlineHTTPSHandler(urllib.request.HTTPSHandler):
    def __init__(self, deadline: Deadline) -> None:
        super().__init__()
        self._deadline = deadline

    def https_open(self, req):
        conn = functools.partial(_DeadlineHTTPSConnection, deadline=self._deadline)
        return self.do_open(conn, req, context=self._context)


class UpstreamClient:
    def __init__(self, user_agent: str, timeout_seconds: float) -> None:
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds

    # ----- Helpers -----
    def _open(self, req: urllib.request.Request, deadline: Deadline) -> Any:
        opener = urllib.request.build_opener(
            _DeadlineHTTPHandler(deadline), _DeadlineHTTPSHandler(deadline)
        )
        try:
            return opener.open(req, timeout=self.timeout_seconds)  # nosec B310
        except urllib.error.HTTPError as e:
            # 4xx/5xx still carry a readable upstream response
            return e

    def _read_body(self, resp: Any, deadline: Deadline) -> bytes:
        read = getattr(resp, "read1", None) or resp.read
        chunks: list[bytes] = []
        while True:
            if deadline.remaining() <= 0 or deadline.expired:
                raise RelayTimeout("Request timeout")
            chunk = read(CHUNK_SIZE)
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)

    def _fetch(self, url: str, deadline: Deadline) -> UpstreamResponse:
        req = urllib.request.Request(
            url, headers={"User-Agent": self.user_agent}, method="GET"
        )
        resp = self._open(req, deadline)
        try:
            body = self._read_body(resp, deadline)
            return UpstreamResponse(
                status=int(resp.getcode()),
                status_text=str(resp.reason or ""),
                headers=flatten_headers(resp.headers),
                body=body,
            )
        finally:
            resp.close()

    # ----- Public APIs -----
    def get(self, url: str) -> UpstreamResponse:
        scheme = urllib.parse.urlsplit(url).scheme.lower()
        if scheme not in ("http", "https"):
            raise ValueError("Only HTTP(S) protocols are supported")

        deadline = Deadline(self.timeout_seconds)
        results: queue.Queue = queue.Queue(maxsize=1)

        def run() -> None:
            try:
                results.put((self._fetch(url, deadline), None))
            except Exception as e:
                results.put((None, e))

        # DNS cannot be interrupted, so the fetch runs in a worker and we wait on the deadline
        threading.Thread(target=run, name="upstream-fetch", daemon=True).start()
        try:
            resp, err = results.get(timeout=self.timeout_seconds)
        except queue.Empty:
            deadline.expire()
            raise RelayTimeout("Request timeout") from None
        if err is not None:
            raise err
        return resp
