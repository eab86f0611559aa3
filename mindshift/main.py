"""Command-line entry point that wires the handlers into a running server."""

from __future__ import annotations

import argparse
import functools
import os
import sys
import time
from typing import Callable, Optional, Sequence

from mindshift.auth import get_user_id_from_token
from mindshift.clients import DBClient, OpenAIClient
from mindshift.messages import HttpRequest
from mindshift.request_handler import RequestHandler
from mindshift.router import Router
from mindshift.server import Server

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_THREADS = 4
SECRET_ENV = "MINDSHIFT_AUTH_SECRET"
VERIFY_URL_ENV = "MINDSHIFT_VERIFY_URL"


def build_router(
    handler: RequestHandler,
    authenticate: Optional[Callable[[HttpRequest], str]] = None,
) -> Router:
    """Register the application's endpoints on a new router."""
    router = Router(authenticate)
    router.get("/health", lambda request, _user_id: handler.handle_health(request))
    router.get("/api/get-user", handler.handle_get_user)
    router.post("/api/chat", lambda request, _user_id: handler.handle_chat_completion(request))
    router.post("/api/new-user", handler.handle_create_user)
    router.post("/api/add-journal-entry", handler.handle_add_user_journal)
    return router


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mindshift", description="Run the API server.")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument(
        "--threads", type=int, default=DEFAULT_THREADS, help="number of worker threads"
    )
    parser.add_argument(
        "--verify-url",
        default=None,
        help=f"token verification endpoint (default: ${VERIFY_URL_ENV})",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the server and serve until interrupted."""
    args = _parse_args(argv)
    verify_url = args.verify_url or os.environ.get(VERIFY_URL_ENV)
    if not verify_url:
        print(
            f"Error running server: no verification URL (use --verify-url or ${VERIFY_URL_ENV})",
            file=sys.stderr,
        )
        return 1

    authenticate = functools.partial(
        get_user_id_from_token,
        secret=os.environ.get(SECRET_ENV, ""),
        verify_url=verify_url,
    )
    handler = RequestHandler(DBClient(), OpenAIClient(), authenticate)

    try:
        server = Server(args.host, args.port, args.threads)
        server.set_router(build_router(handler, authenticate))
        server.start()
    except (RuntimeError, ValueError) as exc:
        print(f"Error running server: {exc}", file=sys.stderr)
        return 1

    try:
        while True:
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())