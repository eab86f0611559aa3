import pytest

from mindshift.messages import HttpRequest, HttpResponse
from mindshift.router import Router


def _echo(request, user_id):
    return HttpResponse(200, body=f"{request.method} {user_id}")


def test_dispatches_with_authenticated_user():
    router = Router(authenticate=lambda request: "user_1")
    router.get("/api/get-user", _echo)
    response = router.handle_request(HttpRequest("GET", "/api/get-user"))
    assert response.status == 200
    assert response.body == "GET user_1"


def test_without_authenticator_user_id_is_empty():
    router = Router()
    router.post("/api/chat", _echo)
    assert router.handle_request(HttpRequest("POST", "/api/chat")).body == "POST "


def test_query_string_is_ignored():
    router = Router()
    router.get("/health", _echo)
    assert router.handle_request(HttpRequest("GET", "/health?x=1")).status == 200


def test_method_mismatch_is_not_found():
    router = Router()
    router.get("/health", _echo)
    response = router.handle_request(HttpRequest("POST", "/health"))
    assert response.status == 404
    assert response.json() == {
        "error": "Not Found",
        "message": "The requested resource was not found",
    }
    assert response.headers["Server"] == "HTTP Server"
    assert response.headers["Content-Type"] == "application/json"


@pytest.mark.parametrize("method", ["PUT", "DELETE"])
def test_put_and_delete_routes(method):
    router = Router()
    router.put("/item", _echo)
    router.delete("/item", _echo)
    assert router.handle_request(HttpRequest(method, "/item")).body == f"{method} "


def test_first_matching_route_wins():
    router = Router()
    router.get("/a", lambda r, u: HttpResponse(200, body="first"))
    router.get("/a", lambda r, u: HttpResponse(200, body="second"))
    assert router.handle_request(HttpRequest("GET", "/a")).body == "first"


def test_failed_authentication_gives_internal_error():
    def refuse(request):
        raise RuntimeError("Missing user token in request")

    router = Router(authenticate=refuse)
    router.get("/health", _echo)
    response = router.handle_request(HttpRequest("GET", "/health"))
    assert response.status == 500
    assert response.json()["error"] == "Internal Server Error"


def test_handler_exception_gives_internal_error():
    def broken(request, user_id):
        raise ValueError("boom")

    router = Router()
    router.get("/broken", broken)
    assert router.handle_request(HttpRequest("GET", "/broken")).status == 500


def test_response_keeps_request_version():
    router = Router()
    response = router.handle_request(HttpRequest("GET", "/missing", version=10))
    assert response.version == 10


def test_custom_not_found_handler():
    router = Router()
    router.set_not_found_handler(lambda request: HttpResponse(410, body=request.target))
    response = router.handle_request(HttpRequest("GET", "/gone"))
    assert response.status == 410
    assert response.body == "/gone"


def test_custom_error_handler():
    def broken(request, user_id):
        raise ValueError("boom")

    router = Router()
    router.get("/broken", broken)
    router.set_error_handler(lambda request: HttpResponse(503))
    assert router.handle_request(HttpRequest("GET", "/broken")).status == 503


def test_content_length_matches_body():
    response = Router().handle_request(HttpRequest("GET", "/nothing"))
    assert response.headers["Content-Length"] == str(len(response.body.encode()))