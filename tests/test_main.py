import json
import socket
from http import HTTPStatus

import pytest

from mindshift.auth import AuthError
from mindshift.clients import DBClient, OpenAIClient
from mindshift.main import VERIFY_URL_ENV, build_router, main
from mindshift.messages import HttpRequest
from mindshift.request_handler import RequestHandler

FIXED_TIME = 1700000000.0


def _authenticate(request):
    return "user-1"


def _reject(request):
    raise AuthError("Missing user token in request")


@pytest.fixture
def router():
    handler = RequestHandler(
        DBClient(), OpenAIClient(), authenticate=_authenticate, clock=lambda: FIXED_TIME
    )
    return build_router(handler, _authenticate)


def _request(method, target, body=""):
    return HttpRequest(method, target, {"Authorization": "Bearer token"}, body)


def test_health_route(router):
    response = router.handle_request(_request("GET", "/health"))
    assert response.status == HTTPStatus.OK
    assert response.json() == {
        "status": "healthy",
        "timestamp": int(FIXED_TIME),
        "services": {"database": "connected", "openai": "configured"},
    }
    assert response.headers["Server"] == "Mindshift Server"


def test_chat_route(router):
    response = router.handle_request(_request("POST", "/api/chat", json.dumps({"message": "hi"})))
    assert response.status == HTTPStatus.OK
    assert response.json() == "FAKE RESPONSE"


def test_get_user_route(router):
    response = router.handle_request(_request("GET", "/api/get-user", "{}"))
    assert response.status == HTTPStatus.OK
    assert response.json() is None


def test_new_user_route(router):
    body = {"email": "someone@example.com", "firstName": "Ada", "lastName": "Byron"}
    response = router.handle_request(_request("POST", "/api/new-user", json.dumps(body)))
    assert response.status == HTTPStatus.OK
    assert response.json() == {"message": "User created successfully"}


def test_new_user_with_bad_body_is_internal_error(router):
    response = router.handle_request(_request("POST", "/api/new-user", "not json"))
    assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR


def test_journal_route(router):
    body = {
        "yesterdayReflection": "good",
        "intentionsEntry": "rest",
        "needEntry": "sleep",
        "gratitudeEntry": "friends",
        "moodLevel": 7,
        "energyLevel": 5,
    }
    response = router.handle_request(
        _request("POST", "/api/add-journal-entry", json.dumps(body))
    )
    assert response.status == HTTPStatus.OK
    assert response.json() == {"message": "Journal added successfully"}


def test_wrong_method_is_not_found(router):
    response = router.handle_request(_request("GET", "/api/chat"))
    assert response.status == HTTPStatus.NOT_FOUND


def test_failed_authentication_is_internal_error():
    handler = RequestHandler(DBClient(), OpenAIClient(), authenticate=_reject)
    rejecting = build_router(handler, _reject)
    response = rejecting.handle_request(_request("GET", "/health"))
    assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR


def test_main_without_verify_url_fails(monkeypatch, capsys):
    monkeypatch.delenv(VERIFY_URL_ENV, raising=False)
    assert main(["--host", "127.0.0.1", "--port", "0"]) == 1
    assert "Error running server" in capsys.readouterr().err


def test_main_reports_port_in_use(monkeypatch, capsys):
    monkeypatch.delenv(VERIFY_URL_ENV, raising=False)
    with socket.socket() as holder:
        holder.bind(("127.0.0.1", 0))
        holder.listen()
        port = holder.getsockname()[1]
        result = main(
            [
                "--host",
                "127.0.0.1",
                "--port",
                str(port),
                "--verify-url",
                "http://localhost/verify",
            ]
        )
    assert result == 1
    assert "Error binding socket" in capsys.readouterr().err


def test_main_rejects_bad_port_argument():
    with pytest.raises(SystemExit):
        main(["--port", "not-a-number"])