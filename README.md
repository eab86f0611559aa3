# mindshift

A small multi-threaded HTTP/1.x server that answers JSON requests for a
journaling app. It uses only the Python standard library.

## Running

```
pip install .
MINDSHIFT_VERIFY_URL=https://auth.example.com/v1/clients/verify mindshift
```

Options of the `mindshift` command:

| Option          | Default                  | Meaning                              |
|-----------------|--------------------------|--------------------------------------|
| `--host`        | `0.0.0.0`                | address to listen on                 |
| `--port`        | `8000`                   | port to listen on                    |
| `--threads`     | `4`                      | number of worker threads             |
| `--verify-url`  | `$MINDSHIFT_VERIFY_URL`  | token verification endpoint          |

A verification URL is required; without one the command prints an error and
exits with status 1. The bearer secret sent to the verification endpoint is
read from `MINDSHIFT_AUTH_SECRET` (empty if unset). On start the server prints
`Server listening on: <host>:<port>` and serves until Ctrl+C.

## Endpoints

| Method | Path                     | Response                                                          |
|--------|--------------------------|-------------------------------------------------------------------|
| GET    | `/health`                | `status`, a Unix `timestamp`, and `services` (database, openai)   |
| GET    | `/api/get-user`          | `null` once the user id has been resolved                         |
| POST   | `/api/chat`              | body `{"message": ..., "model": ...}`; answers `"FAKE RESPONSE"`   |
| POST   | `/api/new-user`          | body with `email`, `firstName`, `lastName`                        |
| POST   | `/api/add-journal-entry` | body with `yesterdayReflection`, `intentionsEntry`, `needEntry`, `gratitudeEntry`, `moodLevel`, `energyLevel` (0–255) |

Every request must carry an `Authorization` header (for example
`Authorization: Bearer token`). Before dispatching, the router posts the token
to the verification URL and takes `sessions.user_id` from the reply as the
user id. A request that cannot be authenticated, or whose handler raises,
gets a `500` JSON error; an unknown method/path pair gets a `404` JSON error.
Paths are matched exactly, ignoring any query string. Every response carries
permissive CORS headers.

Request bodies are JSON. The chat and get-user endpoints report an invalid
body as a `500` JSON error with a `details` field; the chat endpoint answers
`400` when `message` is missing or not a string.

## What it does not do

The database and chat clients (`mindshift.clients.DBClient`,
`mindshift.clients.OpenAIClient`) hold no connection. Nothing is stored:
new users and journal entries are validated and acknowledged but not saved,
`/api/get-user` returns no user data, and `/api/chat` returns a fixed
placeholder rather than a model's answer.

## Using the pieces

```python
from mindshift.messages import HttpResponse
from mindshift.router import Router
from mindshift.server import Server

def authenticate(request):
    return "user-1"

router = Router(authenticate)
router.get("/ping", lambda request, user_id: HttpResponse(200, body=user_id))

with Server("127.0.0.1", 0, 2) as server:   # port 0 picks a free port
    router_port = server.port
    ...
```

- `mindshift.messages` – `HttpRequest` (`header()`, `path()`) and
  `HttpResponse` (`set_header()`, `json()`, `prepare_payload()`).
- `mindshift.router.Router` – `get`, `post`, `put`, `delete`,
  `set_not_found_handler`, `set_error_handler`, `handle_request`.
- `mindshift.request_handler` – `RequestHandler` and the helpers
  `create_json_response`, `create_error_response`, `parse_request_body`.
- `mindshift.auth.get_user_id_from_token(request, secret, verify_url)` –
  raises `AuthError` when the user cannot be established.
- `mindshift.server.Server` – `set_router`, `start`, `stop`; also a context
  manager.
- `mindshift.main.build_router(handler, authenticate)` – wires a
  `RequestHandler` to the endpoints above.

## Tests

```
pip install ".[test]"
pytest
```