"""HTTP request and response values passed between the router and handlers."""

from __future__ import annotations

import json as _json
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any
from urllib.parse import urlsplit


def _find_key(headers: dict[str, str], name: str) -> str | None:
    """Return the stored key matching ``name`` case-insensitively."""
    lowered = name.lower()
    return next((key for key in headers if key.lower() == lowered), None)


@dataclass
class HttpRequest:
    """An incoming HTTP request with a text body."""

    method: str = "GET"
    target: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    version: int = 11

    def __post_init__(self) -> None:
        self.method = self.method.upper()

    def header(self, name: str) -> str | None:
        """Return the value of header ``name``, or None if it is absent."""
        key = _find_key(self.headers, name)
        return None if key is None else self.headers[key]

    def path(self) -> str:
        """Return the request target without its query string."""
        return urlsplit(self.target).path if "?" in self.target else self.target


@dataclass
class HttpResponse:
    """An outgoing HTTP response with a text body."""

    status: int
    version: int = 11
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def __post_init__(self) -> None:
        self.status = HTTPStatus(self.status)

    def set_header(self, name: str, value: str) -> None:
        """Set header ``name``, replacing any existing header of that name."""
        existing = _find_key(self.headers, name)
        if existing is not None:
            del self.headers[existing]
        self.headers[name] = value

    def json(self) -> Any:
        """Decode the body as JSON."""
        return _json.loads(self.body)

    def prepare_payload(self) -> None:
        """Set Content-Length to match the encoded body."""
        self.set_header("Content-Length", str(len(self.body.encode("utf-8"))))