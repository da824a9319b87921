"""Test helper functions."""

import json
from io import BytesIO
from typing import Any, Dict, Optional
from unittest.mock import Mock


class MockSocket:
    """Just enough socket for BaseHTTPRequestHandler to parse a request line."""

    def __init__(self, request: bytes):
        self.request = request

    def makefile(self, *args, **kwargs):
        return BytesIO(self.request)

    def sendall(self, data):
        pass

    def close(self):
        pass


def build_handler(handler_cls, path: str = "/", headers: Optional[Dict[str, str]] = None):
    """Instantiate a Vercel-style handler with response methods mocked out.

    The request line uses a verb the handler does not implement, so parsing
    the request during construction does not dispatch; tests call do_GET.
    """
    header_lines = "".join(f"{name}: {value}\r\n" for name, value in (headers or {}).items())
    request = f"PROBE {path} HTTP/1.1\r\n{header_lines}\r\n".encode("utf-8")
    h = handler_cls(MockSocket(request), ("127.0.0.1", 8000), None)
    h.wfile = BytesIO()
    h.send_response = Mock()
    h.send_header = Mock()
    h.end_headers = Mock()
    return h


def response_json(h) -> Dict[str, Any]:
    """Decode the JSON body a handler wrote."""
    h.wfile.seek(0)
    return json.loads(h.wfile.read().decode("utf-8"))


def response_status(h) -> int:
    return h.send_response.call_args[0][0]
