"""Exact-path request routing with authentication before dispatch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Callable, Optional

from mindshift.messages import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

RouteHandler = Callable[[HttpRequest, str], HttpResponse]
FallbackHandler = Callable[[HttpRequest], HttpResponse]
Authenticator = Callable[[HttpRequest], str]


def _json_response(status: HTTPStatus, version: int, server: str, body: str) -> HttpResponse:
    response = HttpResponse(status, version)
    response.set_header("Server", server)
    response.set_header("Content-Type", "application/json")
    response.body = body
    response.prepare_payload()
    return response


def _not_found(request: HttpRequest) -> HttpResponse:
    return _json_response(
        HTTPStatus.NOT_FOUND,
        request.version,
        "HTTP Server",
        '{"error": "Not Found", "message": "The requested resource was not found"}',
    )


def _internal_error(request: HttpRequest) -> HttpResponse:
    return _json_response(
        HTTPStatus.INTERNAL_SERVER_ERROR,
        request.version,
        "Beast HTTP Server",
        '{"error": "Internal Server Error", "message": "An unexpected error occurred"}',
    )


@dataclass(frozen=True)
class _Route:
    method: str
    pattern: str
    handler: RouteHandler


class Router:
    """Dispatch requests to handlers registered by method and exact path."""

    def __init__(self, authenticate: Optional[Authenticator] = None) -> None:
        self._authenticate = authenticate
        self._routes: list[_Route] = []
        self._not_found_handler: FallbackHandler = _not_found
        self._error_handler: FallbackHandler = _internal_error

    def _add_route(self, method: str, pattern: str, handler: RouteHandler) -> None:
        self._routes.append(_Route(method, pattern, handler))

    def get(self, pattern: str, handler: RouteHandler) -> None:
        self._add_route("GET", pattern, handler)

    def post(self, pattern: str, handler: RouteHandler) -> None:
        self._add_route("POST", pattern, handler)

    def put(self, pattern: str, handler: RouteHandler) -> None:
        self._add_route("PUT", pattern, handler)

    def delete(self, pattern: str, handler: RouteHandler) -> None:
        self._add_route("DELETE", pattern, handler)

    def set_not_found_handler(self, handler: FallbackHandler) -> None:
        self._not_found_handler = handler

    def set_error_handler(self, handler: FallbackHandler) -> None:
        self._error_handler = handler

    def handle_request(self, request: HttpRequest) -> HttpResponse:
        """Authenticate the request and pass it to the first matching route."""
        try:
            user_id = self._authenticate(request) if self._authenticate else ""
            path = request.path()
            route = next(
                (r for r in self._routes if r.method == request.method and r.pattern == path),
                None,
            )
            if route is None:
                return self._not_found_handler(request)
            return route.handler(request, user_id)
        except Exception as exc:
            logger.error("Error trying to handle request: %s", exc)
            return self._error_handler(request)