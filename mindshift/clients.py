"""Clients for the services the request handlers depend on."""


class DBClient:
    """Connection to the application database."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class OpenAIClient:
    """Connection to the chat completion service."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"