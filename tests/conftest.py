"""Pytest hooks and fixtures."""

from __future__ import annotations

import pytest

from generpc import HttpRequest, Method, ResponseWriter, Server, Settings
from generpc.coder import Error


class SubtractMethod(Method):
    def parse_named_params(self, params):
        if "minuend" not in params:
            raise ValueError("parameter minuend not provided")
        if "subtrahend" not in params:
            raise ValueError("parameter subtrahend not provided")
        return [params["minuend"], params["subtrahend"]]

    def invoke(self, params):
        # Unsafe: input types are not validated.
        p0, _ = params[0].cast_int()
        p1, _ = params[1].cast_int()
        return p0 - p1


class ErrorMethod(Method):
    def parse_named_params(self, params):
        return []

    def invoke(self, params):
        return Error(code=1, message="Test error")


@pytest.fixture
def settings() -> Settings:
    return Settings(expose_internal_errors=True)


@pytest.fixture
def server(settings) -> Server:
    s = Server(settings=settings)
    s.register("subtract", SubtractMethod())
    s.register("error", ErrorMethod())
    return s


@pytest.fixture
def call(server):
    """Serve one exchange and return the response writer."""

    def _call(
        body: str | bytes = b"",
        *,
        method: str = "POST",
        content_type: str = "application/json",
        target: Server | None = None,
    ) -> ResponseWriter:
        data = body.encode("utf-8") if isinstance(body, str) else body
        writer = ResponseWriter()
        (target or server).serve(writer, HttpRequest.from_bytes(data, method=method, content_type=content_type))
        return writer

    return _call
