"""Local development server for the fetch proxy (POST /fetch, GET /health)."""

from __future__ import annotations

import argparse
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlparse

from .config import Settings, load_settings
from .handler import configure_logging, handle

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080


class FetchProxyRequestHandler(BaseHTTPRequestHandler):
    """Routes dev-server requests; /fetch is answered by `handle`."""

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def _json(self, data: dict[str, Any], status: int = 200) -> None:
        payload = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(payload)

    def _not_found(self) -> None:
        self._read_body()
        self._json(
            {"error": "Endpoint not found", "message": "Use POST /fetch to fetch URLs"}, 404
        )

    def _read_body(self) -> bytes:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            # unparseable length: treat as no body, handle() answers 400
            length = 0
        return self.rfile.read(length) if length > 0 else b""

    def _relay(self) -> None:
        raw = self._read_body()
        status, body = handle(self.command, raw, self.server.settings)
        self._json(body, status)

    def do_OPTIONS(self):
        """Handle CORS preflight requests."""
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def do_GET(self):
        path = urlparse(self.path).path
        if path == "/health":
            self._json({"status": "ok", "message": "CORS proxy is running"})
        elif path == "/fetch":
            self._relay()
        else:
            self._not_found()

    def do_POST(self):
        # handle() turns non-POST methods on /fetch into 405; other paths get the JSON 404
        if urlparse(self.path).path == "/fetch":
            self._relay()
        else:
            self._not_found()

    do_PUT = do_DELETE = do_PATCH = do_POST


def make_server(
    host: str = "127.0.0.1", port: int = DEFAULT_PORT, settings: Settings | None = None
) -> ThreadingHTTPServer:
    settings = settings or load_settings()
    configure_logging(settings)
    httpd = ThreadingHTTPServer((host, port), FetchProxyRequestHandler)
    httpd.settings = settings
    return httpd


def run_server(host: str = "127.0.0.1", port: int = DEFAULT_PORT) -> None:
    httpd = make_server(host, port)
    logger.info("CORS proxy server running on http://%s:%d", host, httpd.server_port)
    logger.info("Send POST requests to http://%s:%d/fetch", host, httpd.server_port)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        httpd.server_close()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    parser = argparse.ArgumentParser(description="Fetch proxy development server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to listen on")
    args = parser.parse_args()
    run_server(args.host, args.port)


if __name__ == "__main__":
    main()
