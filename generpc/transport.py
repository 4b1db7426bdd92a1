"""HTTP exchange boundary between a transport adapter and the RPC server."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import BinaryIO, Mapping

from loguru import logger
from starlette.datastructures import Headers, MutableHeaders


@dataclass(slots=True)
class HttpRequest:
    """
    Inbound HTTP request as seen by the server.

    ``content_length`` is None when the transport does not know the body size
    up front (e.g. chunked transfer encoding).
    """

    method: str
    headers: Headers
    body: BinaryIO
    content_length: int | None = None

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @classmethod
    def from_bytes(
        cls,
        body: bytes,
        *,
        method: str = "POST",
        content_type: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpRequest:
        """Build a request around an in-memory body."""
        values = dict(headers or {})
        if content_type is not None:
            values["Content-Type"] = content_type
        return cls(
            method=method,
            headers=Headers(headers=values),
            body=io.BytesIO(body),
            content_length=len(body),
        )


@dataclass(slots=True)
class ResponseWriter:
    """
    In-memory HTTP response sink.

    Headers may be changed until the first ``write_header``/``write`` call;
    the transport adapter copies status, headers and body out afterwards.
    """

    headers: MutableHeaders = field(default_factory=MutableHeaders)
    status_code: int = 200
    _buffer: io.BytesIO = field(default_factory=io.BytesIO, init=False, repr=False)
    _header_written: bool = field(default=False, init=False)

    @property
    def header_written(self) -> bool:
        return self._header_written

    def write_header(self, status_code: int) -> None:
        if self._header_written:
            logger.warning("superfluous write_header call: status {} already sent", self.status_code)
            return
        self.status_code = status_code
        self._header_written = True

    def write(self, data: bytes) -> int:
        if not self._header_written:
            self.write_header(200)
        return self._buffer.write(data)

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()


def http_error(writer: ResponseWriter, message: str, status_code: int) -> None:
    """Reply with a plain-text error. The message is terminated by a newline."""
    writer.headers["Content-Type"] = "text/plain; charset=utf-8"
    writer.headers["X-Content-Type-Options"] = "nosniff"
    writer.write_header(status_code)
    writer.write((message + "\n").encode("utf-8"))
