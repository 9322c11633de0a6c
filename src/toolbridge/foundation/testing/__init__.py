"""Testing helpers: a recording stub for the REST backends."""

from .backend import Route, StubBackend, json_response

__all__ = ["Route", "StubBackend", "json_response"]
