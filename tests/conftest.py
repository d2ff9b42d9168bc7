import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\xff\xfe\x01"


class UpstreamHandler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):
        pass

    def _send(self, status: int, body: bytes, content_type: str | None = None, extra=()):
        self.send_response(status)
        if content_type:
            self.send_header("Content-Type", content_type)
        for k, v in extra:
            self.send_header(k, v)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        try:
            self._route()
        except (BrokenPipeError, ConnectionResetError):
            # client gave up (timeout tests)
            pass

    def _route(self):
        if self.path == "/json":
            self._send(200, b'{"a":1}', "application/json")
        elif self.path == "/json-charset":
            self._send(200, json.dumps({"name": "é"}).encode(), "application/json; charset=utf-8")
        elif self.path == "/bad-json":
            self._send(200, b"{not json", "application/json")
        elif self.path == "/html":
            self._send(200, b"<html></html>", "text/html; charset=utf-8")
        elif self.path == "/plain":
            self._send(200, "héllo".encode("utf-8"), "text/plain")
        elif self.path == "/image":
            self._send(200, PNG_BYTES, "image/png")
        elif self.path == "/no-type":
            self._send(200, b"\x00\x01\x02")
        elif self.path == "/missing":
            self._send(404, b"<h1>nope</h1>", "text/html")
        elif self.path == "/boom":
            self._send(500, b'{"error":"x"}', "application/json")
        elif self.path == "/redirect":
            self._send(302, b"", "text/html", extra=[("Location", "/html")])
        elif self.path == "/cookies":
            self._send(
                200,
                b"ok",
                "text/plain",
                extra=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), ("X-Trace", "t1")],
            )
        elif self.path == "/ua":
            self._send(200, (self.headers.get("User-Agent") or "").encode(), "text/plain")
        elif self.path == "/slow":
            time.sleep(1.5)
            self._send(200, b"late", "text/plain")
        elif self.path == "/drip":
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", "20")
            self.end_headers()
            for _ in range(20):
                self.wfile.write(b"x")
                self.wfile.flush()
                time.sleep(0.1)
        elif self.path == "/drip-headers":
            self.wfile.write(b"HTTP/1.1 200 OK\r\n")
            for i in range(20):
                self.wfile.write(f"X-Pad-{i}: y\r\n".encode())
                self.wfile.flush()
                time.sleep(0.1)
            self.wfile.write(b"Content-Length: 0\r\n\r\n")
        else:
            self._send(404, b"", "text/plain")


@pytest.fixture
def upstream():
    """Base URL of a local upstream server."""
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), UpstreamHandler)
    httpd.daemon_threads = True
    t = threading.Thread(target=httpd.serve_forever, daemon=True)
    t.start()
    try:
        yield f"http://127.0.0.1:{httpd.server_port}"
    finally:
        httpd.shutdown()
        httpd.server_close()


@pytest.fixture
def png_bytes():
    return PNG_BYTES
