"""Threaded HTTP/1.x server that hands each request to a router."""

from __future__ import annotations

import ipaddress
import logging
import os
import re
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from http import HTTPStatus
from typing import BinaryIO, Optional, Protocol

from mindshift.messages import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

_READ_TIMEOUT_SECONDS = 30.0
_ACCEPT_POLL_SECONDS = 0.2
_MAX_LINE = 65536
_MAX_HEADERS = 100
_VERSION_RE = re.compile(r"HTTP/(\d)\.(\d)")

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class _RequestRouter(Protocol):
    def handle_request(self, request: HttpRequest) -> HttpResponse: ...


class _ProtocolError(ValueError):
    """Raised when the peer sends something that is not a valid HTTP request."""


def _read_line(rfile: BinaryIO) -> bytes:
    line = rfile.readline(_MAX_LINE + 1)
    if len(line) > _MAX_LINE:
        raise _ProtocolError("Line too long")
    return line


def _read_exact(rfile: BinaryIO, size: int) -> bytes:
    data = rfile.read(size)
    if len(data) < size:
        raise _ProtocolError("Truncated request body")
    return data


def _parse_version(text: str) -> int:
    match = _VERSION_RE.fullmatch(text)
    if match is None:
        raise _ProtocolError(f"Bad HTTP version: {text!r}")
    return int(match.group(1)) * 10 + int(match.group(2))


def _read_headers(rfile: BinaryIO) -> dict[str, str]:
    headers: dict[str, str] = {}
    names: dict[str, str] = {}
    while True:
        line = _read_line(rfile)
        if not line:
            raise _ProtocolError("Connection closed inside headers")
        if line in (b"\r\n", b"\n"):
            return headers
        if len(headers) >= _MAX_HEADERS:
            raise _ProtocolError("Too many headers")
        name, sep, value = line.decode("latin-1").partition(":")
        name = name.strip()
        if not sep or not name:
            raise _ProtocolError(f"Bad header line: {line!r}")
        value = value.strip()
        key = names.get(name.lower())
        if key is None:
            names[name.lower()] = name
            headers[name] = value
        else:
            headers[key] = f"{headers[key]}, {value}"


def _read_chunked(rfile: BinaryIO) -> bytes:
    chunks = []
    while True:
        size_text = _read_line(rfile).split(b";", 1)[0].strip()
        try:
            size = int(size_text, 16)
        except ValueError as exc:
            raise _ProtocolError(f"Bad chunk size: {size_text!r}") from exc
        if size == 0:
            break
        chunks.append(_read_exact(rfile, size))
        _read_line(rfile)
    while _read_line(rfile) not in (b"\r\n", b"\n", b""):
        pass
    return b"".join(chunks)


def _read_body(rfile: BinaryIO, request: HttpRequest) -> bytes:
    encoding = (request.header("Transfer-Encoding") or "").lower()
    if "chunked" in encoding:
        return _read_chunked(rfile)
    length_text = request.header("Content-Length")
    if length_text is None:
        return b""
    try:
        length = int(length_text)
    except ValueError as exc:
        raise _ProtocolError(f"Bad Content-Length: {length_text!r}") from exc
    if length < 0:
        raise _ProtocolError(f"Bad Content-Length: {length_text!r}")
    return _read_exact(rfile, length)


def _read_request(rfile: BinaryIO) -> Optional[HttpRequest]:
    """Read one request, or return None when the peer has closed the stream."""
    line = _read_line(rfile)
    while line in (b"\r\n", b"\n"):
        line = _read_line(rfile)
    if not line:
        return None
    parts = line.decode("latin-1").split()
    if len(parts) != 3:
        raise _ProtocolError(f"Bad request line: {line!r}")
    method, target, version_text = parts
    request = HttpRequest(method, target, _read_headers(rfile), "", _parse_version(version_text))
    request.body = _read_body(rfile, request).decode("utf-8", errors="replace")
    return request


def _wants_close(request: HttpRequest) -> bool:
    tokens = {t.strip().lower() for t in (request.header("Connection") or "").split(",")}
    if request.version >= 11:
        return "close" in tokens
    return "keep-alive" not in tokens


def _internal_error_response(version: int) -> HttpResponse:
    response = HttpResponse(HTTPStatus.INTERNAL_SERVER_ERROR, version)
    response.set_header("Server", "Beast HTTP Server")
    response.set_header("Content-Type", "application/json")
    response.body = '{"error": "Internal Server Error"}'
    response.prepare_payload()
    return response


def _serialize(response: HttpResponse) -> bytes:
    major, minor = divmod(response.version, 10)
    status = HTTPStatus(response.status)
    lines = [f"HTTP/{major}.{minor} {int(status)} {status.phrase}"]
    lines.extend(f"{name}: {value}" for name, value in response.headers.items())
    head = "\r\n".join(lines) + "\r\n\r\n"
    return head.encode("latin-1") + response.body.encode("utf-8")


class HttpSession:
    """Serve the requests arriving on one connection until it closes."""

    def __init__(
        self,
        sock: socket.socket,
        router: _RequestRouter,
        timeout: float = _READ_TIMEOUT_SECONDS,
    ) -> None:
        self._sock = sock
        self._router = router
        self._timeout = timeout

    def run(self) -> None:
        """Read, dispatch and answer requests until the connection ends."""
        try:
            with self._sock, self._sock.makefile("rb") as rfile:
                while True:
                    self._sock.settimeout(self._timeout)
                    request = _read_request(rfile)
                    if request is None:
                        break
                    logger.info("Received %s request for %s", request.method, request.target)
                    close = _wants_close(request)
                    self._send(self._dispatch(request), close)
                    if close:
                        break
                self._close()
        except (OSError, ValueError) as exc:
            logger.warning("Connection ended: %s", exc)

    def _dispatch(self, request: HttpRequest) -> HttpResponse:
        try:
            return self._router.handle_request(request)
        except Exception as exc:
            logger.error("Error processing request: %s", exc)
            return _internal_error_response(request.version)

    def _send(self, response: HttpResponse, close: bool) -> None:
        for name, value in _CORS_HEADERS.items():
            response.set_header(name, value)
        if close and response.version >= 11:
            response.set_header("Connection", "close")
        elif not close and response.version < 11:
            response.set_header("Connection", "keep-alive")
        if not any(name.lower() == "content-length" for name in response.headers):
            response.prepare_payload()
        self._sock.sendall(_serialize(response))

    def _close(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_WR)
        except OSError:
            pass

    def _abort(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass


class Server:
    """Listen on an address and serve connections on a pool of threads."""

    def __init__(
        self,
        address: str = "0.0.0.0",
        port: int = 8000,
        threads: Optional[int] = None,
    ) -> None:
        self.address = address
        self.port = port
        self.thread_count = threads if threads is not None else (os.cpu_count() or 1)
        if self.thread_count < 1:
            raise ValueError("threads must be at least 1")
        self._router: Optional[_RequestRouter] = None
        self._listener: Optional[socket.socket] = None
        self._pool: Optional[ThreadPoolExecutor] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        self._sessions: set[HttpSession] = set()
        self._lock = threading.Lock()

    def __enter__(self) -> Server:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def set_router(self, router: _RequestRouter) -> None:
        self._router = router

    def start(self) -> None:
        """Bind, listen and begin accepting connections in the background."""
        if self._router is None:
            raise RuntimeError("No router set")
        if self._listener is not None:
            raise RuntimeError("Server already started")

        try:
            family = (
                socket.AF_INET6
                if ipaddress.ip_address(self.address).version == 6
                else socket.AF_INET
            )
            listener = socket.socket(family, socket.SOCK_STREAM)
        except (ValueError, OSError) as exc:
            raise RuntimeError(f"Error creating endpoint: {exc}") from exc

        try:
            try:
                listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            except OSError as exc:
                raise RuntimeError(f"Error setting socket option: {exc}") from exc
            try:
                listener.bind((self.address, self.port))
            except OSError as exc:
                raise RuntimeError(f"Error binding socket: {exc}") from exc
            try:
                listener.listen(socket.SOMAXCONN)
            except OSError as exc:
                raise RuntimeError(f"Error listening on endpoint{exc}") from exc
        except RuntimeError:
            listener.close()
            raise

        listener.settimeout(_ACCEPT_POLL_SECONDS)
        self.port = listener.getsockname()[1]
        self._listener = listener
        self._stopping.clear()
        print(f"Server listening on: {self.address}:{self.port}", flush=True)

        self._pool = ThreadPoolExecutor(max_workers=self.thread_count)
        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._accept_thread.start()

    def stop(self) -> None:
        """Stop accepting, end open connections and wait for the workers."""
        self._stopping.set()
        if self._accept_thread is not None:
            self._accept_thread.join()
            self._accept_thread = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        with self._lock:
            sessions = list(self._sessions)
        for session in sessions:
            session._abort()
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def _accept_loop(self) -> None:
        assert self._listener is not None and self._pool is not None
        while not self._stopping.is_set():
            try:
                sock, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stopping.is_set():
                    break
                logger.error("Accept error: %s", exc)
                continue
            sock.settimeout(None)
            session = HttpSession(sock, self._router)
            with self._lock:
                self._sessions.add(session)
            self._pool.submit(self._serve, session)

    def _serve(self, session: HttpSession) -> None:
        try:
            session.run()
        finally:
            with self._lock:
                self._sessions.discard(session)