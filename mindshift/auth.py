"""Resolve the user behind a request by verifying its token remotely."""

from __future__ import annotations

import json
import urllib.error
import urllib.request

from mindshift.messages import HttpRequest

_TIMEOUT_SECONDS = 10


class AuthError(RuntimeError):
    """Raised when a request's user cannot be established."""


def get_user_id_from_token(request: HttpRequest, secret: str, verify_url: str) -> str:
    """Verify the request's Authorization token and return its user id."""
    token = request.header("Authorization")
    if token is None:
        raise AuthError("Missing user token in request")

    verification = urllib.request.Request(
        verify_url,
        data=json.dumps({"token": token}).encode("utf-8"),
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {secret}",
        },
        method="POST",
    )
    try:
        with urllib.request.urlopen(verification, timeout=_TIMEOUT_SECONDS) as reply:
            payload = reply.read()
    except urllib.error.HTTPError as exc:
        payload = exc.read()
    except (urllib.error.URLError, OSError) as exc:
        raise AuthError(str(exc)) from exc

    try:
        user_id = json.loads(payload)["sessions"]["user_id"]
    except (ValueError, KeyError, TypeError) as exc:
        raise AuthError(f"Unexpected verification response: {exc}") from exc
    if not isinstance(user_id, str):
        raise AuthError("Unexpected verification response: user_id is not a string")
    return user_id