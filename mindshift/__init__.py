"""Threaded JSON HTTP backend with a router, endpoint handlers and token authentication."""

__version__ = "0.1.0"