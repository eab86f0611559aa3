"""Endpoint handlers for health, chat, user and journal requests."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, Optional

from mindshift.clients import DBClient, OpenAIClient
from mindshift.messages import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"

Authenticator = Callable[[HttpRequest], str]
Clock = Callable[[], float]


class BadRequestBody(ValueError):
    """Raised when a request body is not valid JSON or lacks required fields."""


@dataclass(frozen=True)
class User:
    """A registered user."""

    id: str
    email: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class JournalData:
    """One daily journal entry."""

    yesterdays_reflection: str
    intentions: str
    need_entry: str
    gratitude_entry: str
    mood_level: int
    energy_level: int


def create_json_response(status: int, data: Any) -> HttpResponse:
    """Build a response whose body is ``data`` encoded as compact JSON."""
    response = HttpResponse(status, 11)
    response.set_header("Server", "Mindshift Server")
    response.set_header("Content-Type", "application/json")
    response.body = json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    response.prepare_payload()
    return response


def create_error_response(status: int, message: str, details: str = "") -> HttpResponse:
    """Build a JSON error response, adding ``details`` when it is not empty."""
    status = HTTPStatus(status)
    error_data: dict[str, Any] = {"error": message, "status": int(status)}
    if details:
        error_data["details"] = details
    return create_json_response(status, error_data)


def parse_request_body(request: HttpRequest) -> Any:
    """Decode the request body as JSON."""
    try:
        return json.loads(request.body)
    except ValueError as exc:
        raise BadRequestBody(f"Invalid JSON in request body: {exc}") from exc


def _require_object(body: Any) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise BadRequestBody("Request body must be a JSON object")
    return body


def _require_str(body: dict[str, Any], key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str):
        raise BadRequestBody(f"Field '{key}' must be a string")
    return value


def _require_level(body: dict[str, Any], key: str) -> int:
    value = body.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequestBody(f"Field '{key}' must be an integer")
    if not 0 <= value <= 255:
        raise BadRequestBody(f"Field '{key}' must be between 0 and 255")
    return value


class RequestHandler:
    """Handlers for the application's HTTP endpoints."""

    def __init__(
        self,
        db_client: Optional[DBClient] = None,
        openai_client: Optional[OpenAIClient] = None,
        authenticate: Optional[Authenticator] = None,
        clock: Clock = time.time,
    ) -> None:
        self._db_client = db_client
        self._openai_client = openai_client
        self._authenticate = authenticate
        self._clock = clock

    def handle_health(self, request: HttpRequest) -> HttpResponse:
        """Report service status."""
        data = {
            "status": "healthy",
            "timestamp": int(self._clock()),
            "services": {
                "database": "connected" if self._db_client is not None else "disconnected",
                "openai": "configured" if self._openai_client is not None else "not configured",
            },
        }
        return create_json_response(HTTPStatus.OK, data)

    def handle_chat_completion(self, request: HttpRequest) -> HttpResponse:
        """Answer a chat message."""
        try:
            body = parse_request_body(request)
            if not isinstance(body, dict) or not isinstance(body.get("message"), str):
                return create_error_response(
                    HTTPStatus.BAD_REQUEST, "Missing or invalid response from OpenAI"
                )
            message = body["message"]
            model = body.get("model", DEFAULT_CHAT_MODEL)
            logger.debug("Chat request for model %s: %d characters", model, len(message))
            return create_json_response(HTTPStatus.OK, "FAKE RESPONSE")
        except Exception as exc:
            return create_error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR, "Failed to process chat", str(exc)
            )

    def handle_get_user(self, request: HttpRequest, user_id: str) -> HttpResponse:
        """Look up the user who made the request."""
        try:
            parse_request_body(request)
            if self._authenticate is not None:
                user_id = self._authenticate(request)
            if not user_id:
                return create_error_response(HTTPStatus.BAD_REQUEST, "Missing user ID")
            return create_json_response(HTTPStatus.OK, None)
        except Exception as exc:
            return create_error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR, "Error trying to get user.", str(exc)
            )

    def handle_create_user(self, request: HttpRequest, user_id: str) -> HttpResponse:
        """Register a new user from the request body."""
        body = parse_request_body(request)
        if not user_id:
            return create_error_response(HTTPStatus.BAD_REQUEST, "Missing user ID")

        fields = _require_object(body)
        user = User(
            id=user_id,
            email=_require_str(fields, "email"),
            first_name=_require_str(fields, "firstName"),
            last_name=_require_str(fields, "lastName"),
        )
        try:
            logger.debug("Creating user %s", user.id)
            return create_json_response(
                HTTPStatus.OK, {"message": "User created successfully"}
            )
        except Exception as exc:
            logger.error("Error adding user to database: %s", exc)
            return create_error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "Error creating user")

    def handle_add_user_journal(self, request: HttpRequest, user_id: str) -> HttpResponse:
        """Store a journal entry for the user."""
        fields = _require_object(parse_request_body(request))
        entry = JournalData(
            yesterdays_reflection=_require_str(fields, "yesterdayReflection"),
            intentions=_require_str(fields, "intentionsEntry"),
            need_entry=_require_str(fields, "needEntry"),
            gratitude_entry=_require_str(fields, "gratitudeEntry"),
            mood_level=_require_level(fields, "moodLevel"),
            energy_level=_require_level(fields, "energyLevel"),
        )
        try:
            logger.debug("Adding journal entry for %s (mood %d)", user_id, entry.mood_level)
            return create_json_response(
                HTTPStatus.OK, {"message": "Journal added successfully"}
            )
        except Exception:
            return create_error_response(
                HTTPStatus.INTERNAL_SERVER_ERROR, "Error adding journal entry"
            )