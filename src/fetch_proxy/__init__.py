"""
Fetch Proxy (Lambda / Netlify function)

Where: HTTP-triggered function (Function URL / Netlify) or the local dev server.
What:  Accept {"url": ...}, GET it server-side, return a normalized JSON envelope.
Why:   Let a browser crawler read cross-origin pages without CORS failures.
"""

__all__ = [
    "config",
    "client",
    "decode",
    "envelope",
    "handler",
    "server",
]
